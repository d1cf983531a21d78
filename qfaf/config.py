from dataclasses import dataclass, field, replace
from typing import Dict

# ============================================================================
# CONFIGURATION
# ============================================================================

# QFAF mechanics: fixed 250/250 leverage, 500% gross exposure.
# Each year the fund realizes ST gains and ordinary losses of 150% of its MV,
# both driven by the same multiplier.
QFAF_ST_GAIN_RATE = 1.5

# Section 461(l) excess business loss limits (2026, Rev. Proc. 2025-32)
SECTION_461L_LIMITS = {
    'single': 256000,
    'mfj': 512000,
    'mfs': 256000,
    'hoh': 256000,
}

# IRC §1211(b) capital loss deduction against ordinary income
CAPITAL_LOSS_LIMITS = {
    'single': 3000,
    'mfj': 3000,
    'mfs': 1500,
    'hoh': 3000,
}

# NOL carryforward may offset at most 80% of taxable income (IRC §172(a))
NOL_OFFSET_PERCENTAGE = 0.80

# Geometric loss-rate decay, used only when loss_rate_mode == 'decay'
LOSS_RATE_DECAY_FACTOR = 0.93   # 7% annual decay
LOSS_RATE_FLOOR = 0.30          # never below 30% of the year-1 rate

# Portfolio assumptions
DEFAULT_ANNUAL_RETURN = 0.07
PROJECTION_YEARS = 10
MAX_PROJECTION_YEARS = 30

# Flat-rate assumptions (only used when they differ from these defaults)
DEFAULT_STCG_RATE = 0.37
DEFAULT_LTCG_RATE = 0.20
DEFAULT_NIIT_RATE = 0.038

# QFAF sizing defaults
DEFAULT_SIZING_YEARS = 5

LOSS_RATE_MODES = ('schedule', 'decay')

# Market scenarios for bull/base/bear sweeps
DEFAULT_SCENARIOS = {
    'bull': {'return': 0.12, 'probability': 0.25, 'label': 'Bull Market'},
    'base': {'return': 0.07, 'probability': 0.50, 'label': 'Base Case'},
    'bear': {'return': 0.02, 'probability': 0.25, 'label': 'Bear Market'},
}

# Parallel runs (strategy comparison). 1 = run in-process.
N_JOBS = 1

# Debugging and logging
DEBUG = False                     # Set to True for per-year console traces


@dataclass(frozen=True)
class EngineSettings:
    """Formula constants for one projection run. Never mutated by the engine."""
    qfaf_multiplier: float = QFAF_ST_GAIN_RATE
    qfaf_growth_enabled: bool = True
    growth_enabled: bool = False
    financing_fees_enabled: bool = False
    wash_sale_disallowance_rate: float = 0.0
    section_461_limits: Dict[str, float] = field(
        default_factory=lambda: dict(SECTION_461L_LIMITS)
    )
    nol_offset_limit: float = NOL_OFFSET_PERCENTAGE
    default_annual_return: float = DEFAULT_ANNUAL_RETURN
    projection_years: int = PROJECTION_YEARS
    stcg_rate: float = DEFAULT_STCG_RATE
    ltcg_rate: float = DEFAULT_LTCG_RATE
    niit_rate: float = DEFAULT_NIIT_RATE
    loss_rate_mode: str = 'schedule'

    def section_461_limit(self, filing_status: str) -> float:
        """§461(l) cap for a filing status, falling back to the statutory table."""
        key = getattr(filing_status, 'value', filing_status)
        if key in self.section_461_limits:
            return self.section_461_limits[key]
        return SECTION_461L_LIMITS.get(key, SECTION_461L_LIMITS['single'])

    def with_overrides(self, **changes) -> 'EngineSettings':
        return replace(self, **changes)


def get_default_settings() -> EngineSettings:
    """Return the canonical default settings in one object."""
    return EngineSettings()


def capital_loss_limit(filing_status: str) -> float:
    """Two-tier §1211(b) cap: $1,500 for MFS, $3,000 for everyone else."""
    key = getattr(filing_status, 'value', filing_status)
    return CAPITAL_LOSS_LIMITS.get(key, CAPITAL_LOSS_LIMITS['single'])
