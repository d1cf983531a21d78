"""
Section 461(l) ordinary-loss planner ("QFAF test by year").

A standalone year-by-year view of QFAF subscriptions: each year's
subscription generates ordinary losses, the §461(l) limit caps what is
deductible, and the excess rolls into the next year. Fees are netted against
the resulting tax savings. Independent of the collateral projection.
"""

from dataclasses import dataclass, replace
from typing import List, Sequence

from qfaf.errors import InvalidInputError
from qfaf.models import FilingStatus

# 2026 projected §461(l) limits used by the planner defaults
SECTION_461_LIMITS_2026 = {
    'single': 320000,
    'mfj': 640000,
    'mfs': 320000,
    'hoh': 320000,
}

EDITABLE_FIELDS = (
    'cash_infusion',
    'subscription_pct',
    'loss_rate',
    'marginal_tax_rate',
    'management_fee_rate',
    'qfaf_fee_rate',
    'section_461_limit',
)


@dataclass(frozen=True)
class Section461YearInput:
    year: int
    cash_infusion: float = 0.0
    subscription_pct: float = 1.0       # share of the infusion allocated to QFAF
    loss_rate: float = 1.5              # ordinary loss per dollar subscribed
    marginal_tax_rate: float = 0.45     # combined federal + state
    management_fee_rate: float = 0.01
    qfaf_fee_rate: float = 0.015
    section_461_limit: float = 640000


@dataclass(frozen=True)
class Section461YearResult:
    input: Section461YearInput
    subscription_size: float
    estimated_ordinary_loss: float
    carry_forward_prior: float
    loss_available: float
    allowed_loss: float
    carry_forward_next: float
    tax_savings: float
    management_fee: float
    qfaf_fee: float
    total_fees: float
    net_savings_no_alpha: float

    @property
    def year(self) -> int:
        return self.input.year


@dataclass(frozen=True)
class Section461Summary:
    total_cash_infusion: float
    total_subscription_size: float
    total_estimated_ordinary_loss: float
    total_allowed_loss: float
    total_tax_savings: float
    total_fees: float
    total_net_savings_no_alpha: float
    final_carry_forward: float


def compute_section461_year(year_input: Section461YearInput,
                            carry_forward_prior: float = 0.0) -> Section461YearResult:
    subscription_size = year_input.cash_infusion * year_input.subscription_pct
    estimated_ordinary_loss = subscription_size * year_input.loss_rate
    loss_available = estimated_ordinary_loss + carry_forward_prior
    allowed_loss = min(loss_available, year_input.section_461_limit)
    carry_forward_next = loss_available - allowed_loss
    tax_savings = allowed_loss * year_input.marginal_tax_rate
    management_fee = subscription_size * year_input.management_fee_rate
    qfaf_fee = subscription_size * year_input.qfaf_fee_rate
    total_fees = management_fee + qfaf_fee

    return Section461YearResult(
        input=year_input,
        subscription_size=subscription_size,
        estimated_ordinary_loss=estimated_ordinary_loss,
        carry_forward_prior=carry_forward_prior,
        loss_available=loss_available,
        allowed_loss=allowed_loss,
        carry_forward_next=carry_forward_next,
        tax_savings=tax_savings,
        management_fee=management_fee,
        qfaf_fee=qfaf_fee,
        total_fees=total_fees,
        net_savings_no_alpha=tax_savings - total_fees,
    )


def compute_section461_years(inputs: Sequence[Section461YearInput],
                             initial_carry_forward: float = 0.0) -> List[Section461YearResult]:
    """Run every year in order, rolling the disallowed loss forward."""
    results = []
    carry_forward = initial_carry_forward
    for year_input in inputs:
        result = compute_section461_year(year_input, carry_forward)
        results.append(result)
        carry_forward = result.carry_forward_next
    return results


def summarize_section461(results: Sequence[Section461YearResult]) -> Section461Summary:
    return Section461Summary(
        total_cash_infusion=sum(r.input.cash_infusion for r in results),
        total_subscription_size=sum(r.subscription_size for r in results),
        total_estimated_ordinary_loss=sum(r.estimated_ordinary_loss for r in results),
        total_allowed_loss=sum(r.allowed_loss for r in results),
        total_tax_savings=sum(r.tax_savings for r in results),
        total_fees=sum(r.total_fees for r in results),
        total_net_savings_no_alpha=sum(r.net_savings_no_alpha for r in results),
        final_carry_forward=results[-1].carry_forward_next if results else 0.0,
    )


def default_section461_inputs(num_years: int, filing_status='mfj',
                              start_year: int = 1) -> List[Section461YearInput]:
    limit = SECTION_461_LIMITS_2026[FilingStatus.parse(filing_status).value]
    return [
        Section461YearInput(year=start_year + i, section_461_limit=limit)
        for i in range(num_years)
    ]


def update_section461_input(inputs: Sequence[Section461YearInput], year: int,
                            field_name: str, value: float) -> List[Section461YearInput]:
    """Return a new list with one whitelisted field changed for one year."""
    if field_name not in EDITABLE_FIELDS:
        raise InvalidInputError(f"Field is not editable: {field_name!r}")
    return [
        replace(item, **{field_name: value}) if item.year == year else item
        for item in inputs
    ]


def apply_filing_status_limits(inputs: Sequence[Section461YearInput],
                               filing_status) -> List[Section461YearInput]:
    limit = SECTION_461_LIMITS_2026[FilingStatus.parse(filing_status).value]
    return [replace(item, section_461_limit=limit) for item in inputs]
