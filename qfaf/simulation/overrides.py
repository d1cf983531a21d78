"""
Year-by-year planning overrides.

Re-runs the core loop allowing, per year:
- a W-2 income substitution (drives that year's bracket rates, the §461(l)
  income cap and the NOL limitation)
- a cash infusion (or withdrawal) applied to collateral at the start of the
  year, which resizes the QFAF position to the new collateral's capacity
"""

from dataclasses import replace
from typing import Dict, Iterable, Mapping, Optional, Union

from qfaf import config as cfg
from qfaf.models import ClientProfile, YearOverride, CalculationResult, CalculatedSizing
from qfaf.strategies import StrategyTable
from qfaf.tax.marginal import BracketTableProvider
from qfaf.tax.rates import RateOverrideStore
from qfaf.simulation.engine import build_context, simulate_year, projection_years
from qfaf.simulation.sizing import size_strategy
from qfaf.simulation.summary import summarize
from qfaf.utils import safe_number, non_negative

YearOverrides = Union[Mapping[int, YearOverride], Iterable[YearOverride]]


def index_overrides(year_overrides: Optional[YearOverrides]) -> Dict[int, YearOverride]:
    """Key overrides by year. Later entries for the same year win."""
    if not year_overrides:
        return {}
    if isinstance(year_overrides, Mapping):
        return {int(year): override for year, override in year_overrides.items()}
    return {override.year: override for override in year_overrides}


def resized_qfaf_value(collateral_value: float, st_loss_rate: float, multiplier: float) -> float:
    """QFAF value whose ST gains match the collateral's year-1 base loss rate."""
    if not multiplier:
        return 0.0
    return safe_number(collateral_value * st_loss_rate / multiplier)


def project_with_overrides(profile: ClientProfile,
                           settings: Optional[cfg.EngineSettings] = None,
                           year_overrides: Optional[YearOverrides] = None,
                           *,
                           strategies: Optional[StrategyTable] = None,
                           rate_overrides: Optional[RateOverrideStore] = None,
                           brackets: Optional[BracketTableProvider] = None,
                           debug: bool = cfg.DEBUG) -> CalculationResult:
    settings = settings or cfg.get_default_settings()
    context = build_context(profile, settings, strategies, rate_overrides, brackets)
    base_sizing = size_strategy(profile, settings, strategies)
    overrides = index_overrides(year_overrides)

    strategy = context.strategy
    multiplier = settings.qfaf_multiplier
    cumulative_infusion = 0.0
    year1_infusion = 0.0
    state = context.initial_state(base_sizing)
    years = []

    if debug:
        print(f"\nProjecting {base_sizing.strategy_name} with {len(overrides)} year override(s)")

    for year in range(1, projection_years(settings) + 1):
        override = overrides.get(year)
        year_income = profile.annual_income
        cash_infusion = 0.0
        if override is not None:
            if override.w2_income is not None:
                year_income = override.w2_income
            cash_infusion = safe_number(override.cash_infusion)

        if cash_infusion != 0:
            collateral_value = max(0.0, state.collateral_value + cash_infusion)
            # Withdrawals stop at zero collateral; only the applied change counts
            applied_infusion = collateral_value - state.collateral_value
            cumulative_infusion += applied_infusion
            if year == 1:
                year1_infusion = applied_infusion
            qfaf_value = state.qfaf_value
            if profile.qfaf_enabled:
                qfaf_value = resized_qfaf_value(collateral_value, strategy.st_loss_rate, multiplier)
            state = replace(state, collateral_value=collateral_value, qfaf_value=qfaf_value)

            if debug:
                print(f"  Year {year:>2}: infusion ${cash_infusion:,.0f} -> collateral "
                      f"${collateral_value:,.0f}, QFAF ${qfaf_value:,.0f}"
                      + (f" ({override.note})" if override.note else ""))

        tax_rates = context.tax_rates_for(year_income)
        result, state = simulate_year(year, state, context, tax_rates,
                                      income=year_income, debug=debug)
        years.append(result)

    sizing = restate_sizing(base_sizing, year1_infusion, cumulative_infusion,
                            strategy.st_loss_rate, multiplier, profile.qfaf_enabled)

    return CalculationResult(
        sizing=sizing,
        years=tuple(years),
        summary=summarize(years, sizing),
    )


def restate_sizing(sizing: CalculatedSizing,
                   year1_infusion: float,
                   cumulative_infusion: float,
                   st_loss_rate: float,
                   multiplier: float,
                   qfaf_enabled: bool) -> CalculatedSizing:
    """
    Reflect infusions in the sizing summary.

    Collateral includes the year-1 infusion only; exposure adds every infusion
    plus the QFAF needed to pair with it. Both take the infusions as applied,
    so a withdrawal larger than the collateral counts only down to zero.
    """
    paired_qfaf = (resized_qfaf_value(cumulative_infusion, st_loss_rate, multiplier)
                   if qfaf_enabled else 0.0)

    return replace(
        sizing,
        collateral_value=sizing.collateral_value + year1_infusion,
        total_exposure=non_negative(sizing.total_exposure + cumulative_infusion + paired_qfaf),
    )
