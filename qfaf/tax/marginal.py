from typing import Dict, List, Optional, Tuple

from qfaf.models import FilingStatus
from qfaf.tax.brackets import (
    FEDERAL_TAX_BRACKETS_2026, LTCG_BRACKETS_2026,
    NIIT_THRESHOLD_2026, NIIT_RATE,
    STATE_TAX_RATES, OTHER_STATE_CODE
)


def find_marginal_rate(income: float, brackets: List[Tuple[float, float]],
                       inclusive_ceiling: bool = False) -> float:
    """
    Marginal rate of the bracket that income falls in.

    Args:
        income: Taxable income
        brackets: List of (upper_limit, rate) tuples in ascending order
        inclusive_ceiling: If True, income equal to a ceiling stays in that
                           bracket (LTCG style). Otherwise it moves up
                           (ordinary bracket style, where the ceiling is the
                           next bracket's floor).

    Returns:
        Marginal rate as a decimal
    """
    if not brackets:
        return 0.0

    for bracket_limit, rate in brackets:
        if income < bracket_limit or (inclusive_ceiling and income == bracket_limit):
            return rate

    return brackets[-1][1]


def niit_applies(income: float, filing_status: str,
                 thresholds: Optional[Dict[str, float]] = None) -> bool:
    thresholds = thresholds or NIIT_THRESHOLD_2026
    key = FilingStatus.parse(filing_status).value
    return income > thresholds[key]


def marginal_ordinary_rate(income: float, filing_status: str,
                           brackets: Optional[Dict] = None,
                           niit_rate: float = NIIT_RATE,
                           niit_thresholds: Optional[Dict[str, float]] = None) -> float:
    """
    Federal marginal rate on short-term gains (ordinary income brackets),
    plus the 3.8% NIIT above the filing-status threshold.
    """
    brackets = brackets or FEDERAL_TAX_BRACKETS_2026
    key = FilingStatus.parse(filing_status).value

    rate = find_marginal_rate(income, brackets[key])
    if niit_applies(income, key, niit_thresholds):
        rate += niit_rate
    return rate


def marginal_ltcg_rate(income: float, filing_status: str,
                       brackets: Optional[Dict] = None,
                       niit_rate: float = NIIT_RATE,
                       niit_thresholds: Optional[Dict[str, float]] = None) -> float:
    """
    Federal marginal long-term gain rate (0% / 15% / 20%) plus NIIT.

    Uses total income to pick the bracket rather than stacking gains on top
    of ordinary income; the engine works with marginal rates only.
    """
    brackets = brackets or LTCG_BRACKETS_2026
    key = FilingStatus.parse(filing_status).value

    rate = find_marginal_rate(income, brackets[key], inclusive_ceiling=True)
    if niit_applies(income, key, niit_thresholds):
        rate += niit_rate
    return rate


def lookup_state_rate(state_code: str, custom_rate: float = 0.0,
                      table: Optional[Dict] = None) -> float:
    """Top marginal state rate; 'OTHER' uses the caller's own rate, unknown codes 0."""
    if state_code == OTHER_STATE_CODE:
        return custom_rate
    table = table or STATE_TAX_RATES
    entry = table.get(state_code)
    return entry['rate'] if entry else 0.0


class BracketTableProvider:
    """Bracket lookups over static tables. Swap tables to model another tax year."""

    def __init__(self, ordinary_brackets=None, ltcg_brackets=None,
                 niit_thresholds=None, niit_rate: float = NIIT_RATE,
                 state_rates=None):
        self.ordinary_brackets = ordinary_brackets or FEDERAL_TAX_BRACKETS_2026
        self.ltcg_brackets = ltcg_brackets or LTCG_BRACKETS_2026
        self.niit_thresholds = niit_thresholds or NIIT_THRESHOLD_2026
        self.niit_rate = niit_rate
        self.state_rates = state_rates or STATE_TAX_RATES

    def ordinary_rate(self, income: float, filing_status: str) -> float:
        return marginal_ordinary_rate(
            income, filing_status, self.ordinary_brackets,
            self.niit_rate, self.niit_thresholds
        )

    def long_term_rate(self, income: float, filing_status: str) -> float:
        return marginal_ltcg_rate(
            income, filing_status, self.ltcg_brackets,
            self.niit_rate, self.niit_thresholds
        )

    def state_rate(self, state_code: str, custom_rate: float = 0.0) -> float:
        return lookup_state_rate(state_code, custom_rate, self.state_rates)


DEFAULT_BRACKETS = BracketTableProvider()
