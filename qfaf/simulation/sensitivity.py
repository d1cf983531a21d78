from dataclasses import replace
from typing import Optional

from qfaf import config as cfg
from qfaf.models import ClientProfile, SensitivityParams, DEFAULT_SENSITIVITY, CalculationResult
from qfaf.strategies import StrategyTable
from qfaf.tax.marginal import BracketTableProvider
from qfaf.tax.rates import RateOverrideStore
from qfaf.simulation.engine import build_context, run_projection, projection_years
from qfaf.simulation.sizing import size_strategy
from qfaf.simulation.summary import summarize


def sensitivity_settings(settings: cfg.EngineSettings,
                         sensitivity: SensitivityParams) -> cfg.EngineSettings:
    """A return that differs from the default replaces it and turns growth on."""
    if sensitivity.annual_return == DEFAULT_SENSITIVITY.annual_return:
        return settings
    return settings.with_overrides(
        default_annual_return=sensitivity.annual_return,
        growth_enabled=True,
    )


def project_with_sensitivity(profile: ClientProfile,
                             settings: Optional[cfg.EngineSettings] = None,
                             sensitivity: Optional[SensitivityParams] = None,
                             *,
                             strategies: Optional[StrategyTable] = None,
                             rate_overrides: Optional[RateOverrideStore] = None,
                             brackets: Optional[BracketTableProvider] = None,
                             debug: bool = cfg.DEBUG) -> CalculationResult:
    """
    Stress test: re-run the core loop with perturbed rates and return.

    - federal_rate_change is added to both ST and LT federal rates (floor 0)
    - state_rate_change is added to the state rate (floor 0)
    - st_loss_rate_variance scales the collateral's effective ST loss rate
    - lt_gain_rate_variance scales the LT gain rate

    Sizing is left at the unperturbed values.
    """
    settings = settings or cfg.get_default_settings()
    sensitivity = sensitivity or DEFAULT_SENSITIVITY
    adjusted_settings = sensitivity_settings(settings, sensitivity)

    context = build_context(profile, adjusted_settings, strategies, rate_overrides, brackets)
    context = replace(
        context,
        federal_rate_change=sensitivity.federal_rate_change,
        state_rate_change=sensitivity.state_rate_change,
        st_loss_rate_variance=sensitivity.st_loss_rate_variance,
        lt_gain_rate_variance=sensitivity.lt_gain_rate_variance,
    )
    sizing = size_strategy(profile, settings, strategies)
    tax_rates = context.tax_rates_for(profile.annual_income)

    if debug:
        print(f"\nSensitivity run: federal {sensitivity.federal_rate_change:+.1%}, "
              f"state {sensitivity.state_rate_change:+.1%}, return {adjusted_settings.default_annual_return:.1%}, "
              f"ST loss {sensitivity.st_loss_rate_variance:+.0%}, LT gain {sensitivity.lt_gain_rate_variance:+.0%}")

    years = run_projection(
        context, context.initial_state(sizing), tax_rates,
        projection_years(adjusted_settings), debug=debug
    )

    return CalculationResult(
        sizing=sizing,
        years=tuple(years),
        summary=summarize(years, sizing),
    )
