"""Domain records for the projection engine.

Every record is frozen. The core loop threads YearState from one year to the
next instead of reassigning loop variables.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional, Tuple

from qfaf.errors import InvalidFilingStatusError


class FilingStatus(str, Enum):
    SINGLE = "single"
    MARRIED_FILING_JOINTLY = "mfj"
    MARRIED_FILING_SEPARATELY = "mfs"
    HEAD_OF_HOUSEHOLD = "hoh"

    @classmethod
    def parse(cls, value) -> 'FilingStatus':
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidFilingStatusError(value) from None


@dataclass(frozen=True)
class ClientProfile:
    """One client scenario. Created once, never mutated by the engine."""
    filing_status: FilingStatus = FilingStatus.MARRIED_FILING_JOINTLY
    state_code: str = 'CA'
    state_rate: float = 0.0          # only used when state_code == 'OTHER'
    annual_income: float = 3000000
    strategy_id: str = 'core-145-45'
    collateral_amount: float = 10000000
    existing_st_loss_carryforward: float = 0.0
    existing_lt_loss_carryforward: float = 0.0
    existing_nol_carryforward: float = 0.0
    qfaf_override: Optional[float] = None
    qfaf_enabled: bool = True
    qfaf_sizing_years: int = 5
    qfaf_sizing_cushion: float = 0.0


@dataclass(frozen=True)
class StrategyRates:
    id: str
    name: str
    type: str                        # 'core' (cash funded) or 'overlay'
    label: str
    st_loss_rate: float              # year-1 rate
    st_loss_rates_by_year: Tuple[float, ...]
    lt_gain_rate: float
    financing_cost_rate: float
    tracking_error: float = 0.0
    tracking_error_display: str = ''

    def st_loss_rate_for_year(self, year: int) -> float:
        """Scheduled rate for a 1-indexed year; years past the schedule reuse its last entry."""
        if not self.st_loss_rates_by_year:
            return self.st_loss_rate
        index = min(year - 1, len(self.st_loss_rates_by_year) - 1)
        return self.st_loss_rates_by_year[max(0, index)]

    def average_st_loss_rate(self, from_year: int, to_year: int) -> float:
        clamped_from = max(1, from_year)
        clamped_to = max(clamped_from, to_year)
        rates = [self.st_loss_rate_for_year(y) for y in range(clamped_from, clamped_to + 1)]
        return sum(rates) / len(rates) if rates else 0.0


@dataclass(frozen=True)
class YearState:
    qfaf_value: float
    collateral_value: float
    st_carryforward: float
    lt_carryforward: float
    nol_carryforward: float

    @property
    def total_value(self) -> float:
        return self.qfaf_value + self.collateral_value


@dataclass(frozen=True)
class YearResult:
    year: int

    # Portfolio values at end of year (after growth)
    qfaf_value: float
    collateral_value: float
    total_value: float

    # QFAF tax events
    st_gains_generated: float
    ordinary_losses_generated: float
    usable_ordinary_loss: float
    excess_to_nol: float

    # Collateral tax events
    st_losses_harvested: float
    lt_gains_realized: float

    # Residual ST gain after netting (never negative)
    net_st_gain_loss: float

    federal_tax: float
    state_tax: float
    total_tax: float

    baseline_tax: float
    tax_savings: float

    # Carryforward balances after the year
    st_loss_carryforward: float
    lt_loss_carryforward: float
    nol_carryforward: float
    nol_used: float
    capital_loss_used_against_income: float

    effective_st_loss_rate: float
    income: float

    income_offset_amount: float
    max_income_offset_capacity: float

    qfaf_tax_benefit: float
    collateral_tax_benefit: float

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class CalculatedSizing:
    strategy_id: str
    strategy_name: str
    strategy_type: str
    collateral_value: float
    qfaf_value: float
    qfaf_max_value: float
    total_exposure: float
    qfaf_ratio: float
    year1_st_losses: float
    year1_st_gains: float
    year1_ordinary_losses: float
    year1_usable_ordinary_loss: float
    year1_excess_to_nol: float
    section_461_limit: float
    avg_st_loss_rate: float
    sizing_years: int


@dataclass(frozen=True)
class ProjectionSummary:
    total_tax_savings: float
    final_portfolio_value: float
    effective_tax_alpha: float
    total_nol_generated: float


@dataclass(frozen=True)
class CalculationResult:
    sizing: CalculatedSizing
    years: Tuple[YearResult, ...]
    summary: ProjectionSummary

    @property
    def final_state(self) -> Optional[YearState]:
        if not self.years:
            return None
        last = self.years[-1]
        return YearState(
            qfaf_value=last.qfaf_value,
            collateral_value=last.collateral_value,
            st_carryforward=last.st_loss_carryforward,
            lt_carryforward=last.lt_loss_carryforward,
            nol_carryforward=last.nol_carryforward,
        )


@dataclass(frozen=True)
class YearOverride:
    """Sparse per-year planning input."""
    year: int
    w2_income: Optional[float] = None
    cash_infusion: float = 0.0
    note: str = ''


@dataclass(frozen=True)
class SensitivityParams:
    federal_rate_change: float = 0.0     # percentage points, e.g. +0.02
    state_rate_change: float = 0.0
    annual_return: float = 0.07          # replaces the default return when different
    tracking_error_multiplier: float = 1.0
    st_loss_rate_variance: float = 0.0   # relative, e.g. -0.25 = 25% fewer losses
    lt_gain_rate_variance: float = 0.0


DEFAULT_SENSITIVITY = SensitivityParams()
