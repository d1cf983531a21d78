from typing import Optional

from qfaf import config as cfg
from qfaf.errors import InvalidInputError
from qfaf.models import ClientProfile, CalculatedSizing, FilingStatus
from qfaf.strategies import StrategyTable, DEFAULT_STRATEGY_TABLE
from qfaf.utils import safe_number


def validate_profile(profile: ClientProfile, strategies: Optional[StrategyTable] = None):
    """
    Fail fast on configuration errors before any year is simulated.

    Returns:
        (StrategyRates, FilingStatus) for the profile
    """
    strategies = strategies or DEFAULT_STRATEGY_TABLE
    strategy = strategies.get(profile.strategy_id)
    filing_status = FilingStatus.parse(profile.filing_status)

    if not 0 <= profile.qfaf_sizing_cushion < 1:
        raise InvalidInputError(
            f"Sizing cushion must be in [0, 1), got {profile.qfaf_sizing_cushion}"
        )
    if profile.collateral_amount < 0:
        raise InvalidInputError(
            f"Collateral amount cannot be negative, got {profile.collateral_amount}"
        )
    if profile.qfaf_override is not None and profile.qfaf_override < 0:
        raise InvalidInputError(
            f"QFAF override cannot be negative, got {profile.qfaf_override}"
        )
    for name in ('existing_st_loss_carryforward', 'existing_lt_loss_carryforward',
                 'existing_nol_carryforward'):
        if getattr(profile, name) < 0:
            raise InvalidInputError(f"{name} cannot be negative")

    return strategy, filing_status


def size_strategy(profile: ClientProfile,
                  settings: Optional[cfg.EngineSettings] = None,
                  strategies: Optional[StrategyTable] = None) -> CalculatedSizing:
    """
    Size the QFAF position against the collateral's short-term losses.

    QFAF is sized so its ST gains match the collateral's AVERAGE ST losses over
    the sizing window (years 1..W):

        QFAF = (Collateral x Avg_ST_Loss_Rate / multiplier) x (1 - cushion)

    With W = 1 this is the year-1-only sizing. A manual override replaces the
    formula but the cushion still applies.
    """
    settings = settings or cfg.get_default_settings()
    strategy, filing_status = validate_profile(profile, strategies)

    collateral_value = safe_number(profile.collateral_amount)
    window = profile.qfaf_sizing_years
    sizing_years = max(1, int(window if window is not None else cfg.DEFAULT_SIZING_YEARS))
    multiplier = settings.qfaf_multiplier

    avg_st_loss_rate = strategy.average_st_loss_rate(1, sizing_years)
    year1_st_losses = safe_number(collateral_value * avg_st_loss_rate)

    qfaf_value = 0.0
    year1_st_gains = 0.0
    year1_ordinary_losses = 0.0

    if profile.qfaf_enabled:
        cushion = profile.qfaf_sizing_cushion or 0.0
        if profile.qfaf_override is not None:
            base_sizing = profile.qfaf_override
        else:
            base_sizing = year1_st_losses / multiplier if multiplier else 0.0
        qfaf_value = safe_number(base_sizing * (1 - cushion))
        year1_st_gains = safe_number(qfaf_value * multiplier)
        year1_ordinary_losses = safe_number(qfaf_value * multiplier)

    section_461_limit = settings.section_461_limit(filing_status.value)
    year1_usable_ordinary_loss = min(year1_ordinary_losses, section_461_limit)
    year1_excess_to_nol = year1_ordinary_losses - year1_usable_ordinary_loss

    return CalculatedSizing(
        strategy_id=strategy.id,
        strategy_name=strategy.name,
        strategy_type=strategy.type,
        collateral_value=collateral_value,
        qfaf_value=qfaf_value,
        qfaf_max_value=qfaf_value,
        total_exposure=collateral_value + qfaf_value,
        qfaf_ratio=safe_number(qfaf_value / collateral_value) if collateral_value > 0 else 0.0,
        year1_st_losses=year1_st_losses,
        year1_st_gains=year1_st_gains,
        year1_ordinary_losses=year1_ordinary_losses,
        year1_usable_ordinary_loss=year1_usable_ordinary_loss,
        year1_excess_to_nol=year1_excess_to_nol,
        section_461_limit=section_461_limit,
        avg_st_loss_rate=avg_st_loss_rate,
        sizing_years=sizing_years,
    )
