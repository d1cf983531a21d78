from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from qfaf import config as cfg
from qfaf.models import (
    ClientProfile, StrategyRates, FilingStatus,
    YearState, YearResult, CalculatedSizing, CalculationResult
)
from qfaf.strategies import StrategyTable
from qfaf.tax.engine import compute_carryforwards
from qfaf.tax.marginal import BracketTableProvider, DEFAULT_BRACKETS
from qfaf.tax.rates import (
    RateChoice, TaxRates, RateOverrideStore, StrategyRateResolver,
    choose_rate_source, resolve_tax_rates
)
from qfaf.simulation.sizing import validate_profile, size_strategy
from qfaf.simulation.summary import summarize
from qfaf.utils import safe_number, non_negative


# ============================================================================
# RUN CONTEXT
# ============================================================================

@dataclass(frozen=True)
class ProjectionContext:
    """
    Everything one run needs that does not change from year to year.

    The loss-rate resolver holds a snapshot of the override store, and the
    rate choice is made once here, so every year of a run sees the same inputs.
    """
    profile: ClientProfile
    strategy: StrategyRates
    filing_status: FilingStatus
    settings: cfg.EngineSettings
    loss_rates: StrategyRateResolver
    rate_choice: RateChoice
    brackets: BracketTableProvider
    state_rate: float
    section_461_limit: float

    # Stress-test adjustments (identity by default)
    federal_rate_change: float = 0.0
    state_rate_change: float = 0.0
    st_loss_rate_variance: float = 0.0
    lt_gain_rate_variance: float = 0.0

    def tax_rates_for(self, income: float) -> TaxRates:
        """Resolve tax rates at an income level, then apply any rate deltas (floored at 0)."""
        rates = resolve_tax_rates(
            self.rate_choice,
            income,
            self.filing_status.value,
            self.state_rate,
            self.section_461_limit,
            self.brackets,
        )
        if not (self.federal_rate_change or self.state_rate_change):
            return rates
        return replace(
            rates,
            st_rate=max(0.0, rates.st_rate + self.federal_rate_change),
            lt_rate=max(0.0, rates.lt_rate + self.federal_rate_change),
            state_rate=max(0.0, rates.state_rate + self.state_rate_change),
        )

    def effective_st_loss_rate(self, year: int) -> float:
        rate = self.loss_rates.effective_st_loss_rate(
            self.strategy.id, self.strategy.lt_gain_rate, year
        )
        return rate * (1 + self.st_loss_rate_variance)

    @property
    def lt_gain_rate(self) -> float:
        return self.strategy.lt_gain_rate * (1 + self.lt_gain_rate_variance)

    def initial_state(self, sizing: CalculatedSizing) -> YearState:
        return YearState(
            qfaf_value=sizing.qfaf_value,
            collateral_value=sizing.collateral_value,
            st_carryforward=non_negative(self.profile.existing_st_loss_carryforward),
            lt_carryforward=non_negative(self.profile.existing_lt_loss_carryforward),
            nol_carryforward=non_negative(self.profile.existing_nol_carryforward),
        )


def build_context(profile: ClientProfile,
                  settings: Optional[cfg.EngineSettings] = None,
                  strategies: Optional[StrategyTable] = None,
                  rate_overrides: Optional[RateOverrideStore] = None,
                  brackets: Optional[BracketTableProvider] = None) -> ProjectionContext:
    """Validate the profile and resolve all run-level lookups."""
    settings = settings or cfg.get_default_settings()
    brackets = brackets or DEFAULT_BRACKETS
    strategy, filing_status = validate_profile(profile, strategies)

    return ProjectionContext(
        profile=profile,
        strategy=strategy,
        filing_status=filing_status,
        settings=settings,
        loss_rates=StrategyRateResolver(strategies, rate_overrides, settings.loss_rate_mode),
        rate_choice=choose_rate_source(settings),
        brackets=brackets,
        state_rate=brackets.state_rate(profile.state_code, profile.state_rate),
        section_461_limit=settings.section_461_limit(filing_status.value),
    )


# ============================================================================
# ONE YEAR
# ============================================================================

def simulate_year(year: int,
                  state: YearState,
                  context: ProjectionContext,
                  tax_rates: TaxRates,
                  income: Optional[float] = None,
                  debug: bool = False) -> Tuple[YearResult, YearState]:
    """
    Advance one year: tax events, netting, savings, then growth.

    Args:
        year: 1-indexed projection year
        state: Balances entering the year
        context: Run-level constants
        tax_rates: Federal/state rates for this year
        income: This year's income (defaults to the profile's annual income)

    Returns:
        (YearResult, YearState) where the state is the next year's starting point
    """
    settings = context.settings
    income = context.profile.annual_income if income is None else income
    multiplier = settings.qfaf_multiplier

    # QFAF tax events
    st_gains_generated = safe_number(state.qfaf_value * multiplier)
    ordinary_losses_generated = safe_number(state.qfaf_value * multiplier)

    # Collateral tax events
    effective_st_loss_rate = safe_number(context.effective_st_loss_rate(year))
    gross_st_losses = state.collateral_value * effective_st_loss_rate
    st_losses_harvested = safe_number(gross_st_losses * (1 - settings.wash_sale_disallowance_rate))
    lt_gains_realized = safe_number(state.collateral_value * context.lt_gain_rate)

    # First pass: entering ST carryforward against a positive net ST gain
    net_st_gain_loss = st_gains_generated - st_losses_harvested
    used_st_carryforward = 0.0
    if net_st_gain_loss > 0 and state.st_carryforward > 0:
        used_st_carryforward = min(state.st_carryforward, net_st_gain_loss)
        net_st_gain_loss -= used_st_carryforward

    # §461(l): capped by losses generated, the statutory limit, and income
    usable_ordinary_loss = max(0.0, min(
        ordinary_losses_generated,
        tax_rates.section_461_limit,
        safe_number(income),
    ))
    excess_to_nol = ordinary_losses_generated - usable_ordinary_loss

    netting = compute_carryforwards(
        net_st_gain_loss=net_st_gain_loss,
        lt_gains=lt_gains_realized,
        usable_ordinary_loss=usable_ordinary_loss,
        st_loss_cf_in=state.st_carryforward - used_st_carryforward,
        lt_loss_cf_in=state.lt_carryforward,
        nol_cf_in=state.nol_carryforward,
        filing_status=context.filing_status.value,
        income=income,
        nol_offset_limit=settings.nol_offset_limit,
    )

    nol_used = netting.nol_used
    capital_loss_used = netting.capital_loss_used_against_income
    new_nol_carryforward = non_negative(state.nol_carryforward + excess_to_nol - nol_used)

    # Tax savings: benefits at combined rates, conversion at the federal differential
    st_rate = tax_rates.st_rate
    state_rate = tax_rates.state_rate
    combined_st_rate = tax_rates.combined_st_rate
    combined_lt_rate = tax_rates.combined_lt_rate
    rate_differential = st_rate - tax_rates.lt_rate

    ordinary_loss_benefit = safe_number(usable_ordinary_loss * combined_st_rate)
    st_gains_offset = min(st_gains_generated, st_losses_harvested)
    conversion_benefit = safe_number(st_gains_offset * rate_differential)
    capital_loss_benefit = safe_number(capital_loss_used * combined_st_rate)
    nol_usage_benefit = safe_number(nol_used * combined_st_rate)

    lt_gain_cost = safe_number(lt_gains_realized * combined_lt_rate)
    residual_st_gain = max(0.0, net_st_gain_loss)
    residual_st_gain_cost = safe_number(residual_st_gain * combined_st_rate)

    tax_savings = safe_number(
        ordinary_loss_benefit + conversion_benefit + capital_loss_benefit
        + nol_usage_benefit - lt_gain_cost - residual_st_gain_cost
    )
    qfaf_tax_benefit = safe_number(ordinary_loss_benefit + nol_usage_benefit + conversion_benefit)
    collateral_tax_benefit = safe_number(capital_loss_benefit - lt_gain_cost - residual_st_gain_cost)

    # Display-only split of the residual investment tax
    gross_investment_tax = safe_number(residual_st_gain * combined_st_rate
                                       + lt_gains_realized * combined_lt_rate)
    net_investment_tax = max(0.0, gross_investment_tax - ordinary_loss_benefit
                             - capital_loss_benefit - nol_usage_benefit)
    if combined_st_rate > 0:
        federal_tax = safe_number(net_investment_tax * st_rate / combined_st_rate)
        state_tax = safe_number(net_investment_tax * state_rate / combined_st_rate)
    else:
        federal_tax = state_tax = 0.0
    baseline_tax = safe_number(lt_gains_realized * combined_lt_rate)

    # Growth
    base_return = settings.default_annual_return if settings.growth_enabled else 0.0
    financing_cost = context.strategy.financing_cost_rate if settings.financing_fees_enabled else 0.0
    growth_rate = base_return - financing_cost
    qfaf_growth_rate = growth_rate if settings.qfaf_growth_enabled else 0.0
    new_qfaf_value = safe_number(state.qfaf_value * (1 + qfaf_growth_rate))
    new_collateral_value = safe_number(state.collateral_value * (1 + growth_rate))

    # Income offset actually used, and what could have been used with more income
    income_offset_amount = safe_number(usable_ordinary_loss + nol_used + capital_loss_used)
    remaining_capital_loss = netting.st_loss_cf_out + netting.lt_loss_cf_out
    max_capital_loss_offset = min(cfg.capital_loss_limit(context.filing_status.value),
                                  remaining_capital_loss)
    max_income_offset_capacity = safe_number(
        usable_ordinary_loss + new_nol_carryforward + max_capital_loss_offset
    )

    result = YearResult(
        year=year,
        qfaf_value=new_qfaf_value,
        collateral_value=new_collateral_value,
        total_value=new_qfaf_value + new_collateral_value,
        st_gains_generated=st_gains_generated,
        ordinary_losses_generated=ordinary_losses_generated,
        usable_ordinary_loss=usable_ordinary_loss,
        excess_to_nol=excess_to_nol,
        st_losses_harvested=st_losses_harvested,
        lt_gains_realized=lt_gains_realized,
        net_st_gain_loss=residual_st_gain,
        federal_tax=federal_tax,
        state_tax=state_tax,
        total_tax=federal_tax + state_tax,
        baseline_tax=baseline_tax,
        tax_savings=max(0.0, tax_savings),
        st_loss_carryforward=netting.st_loss_cf_out,
        lt_loss_carryforward=netting.lt_loss_cf_out,
        nol_carryforward=new_nol_carryforward,
        nol_used=nol_used,
        capital_loss_used_against_income=capital_loss_used,
        effective_st_loss_rate=effective_st_loss_rate,
        income=safe_number(income),
        income_offset_amount=income_offset_amount,
        max_income_offset_capacity=max_income_offset_capacity,
        qfaf_tax_benefit=qfaf_tax_benefit,
        collateral_tax_benefit=collateral_tax_benefit,
    )

    next_state = YearState(
        qfaf_value=new_qfaf_value,
        collateral_value=new_collateral_value,
        st_carryforward=netting.st_loss_cf_out,
        lt_carryforward=netting.lt_loss_cf_out,
        nol_carryforward=new_nol_carryforward,
    )

    if debug:
        print(f"  Year {year:>2}: QFAF ${state.qfaf_value:>14,.0f}  Collateral ${state.collateral_value:>14,.0f}  "
              f"Savings ${result.tax_savings:>12,.0f}  "
              f"CF ST/LT/NOL ${next_state.st_carryforward:,.0f} / "
              f"${next_state.lt_carryforward:,.0f} / ${next_state.nol_carryforward:,.0f}")

    return result, next_state


# ============================================================================
# PROJECTION
# ============================================================================

def run_projection(context: ProjectionContext,
                   initial_state: YearState,
                   tax_rates: TaxRates,
                   years: int,
                   debug: bool = False) -> List[YearResult]:
    """Fold simulate_year over years 1..N with fixed tax rates."""
    results = []
    state = initial_state
    for year in range(1, years + 1):
        result, state = simulate_year(year, state, context, tax_rates, debug=debug)
        results.append(result)
    return results


def projection_years(settings: cfg.EngineSettings) -> int:
    return max(0, min(int(settings.projection_years), cfg.MAX_PROJECTION_YEARS))


def project(profile: ClientProfile,
            settings: Optional[cfg.EngineSettings] = None,
            *,
            strategies: Optional[StrategyTable] = None,
            rate_overrides: Optional[RateOverrideStore] = None,
            brackets: Optional[BracketTableProvider] = None,
            debug: bool = cfg.DEBUG) -> CalculationResult:
    """
    Size the strategy and run the core projection.

    Tax rates are resolved once at the profile's annual income and held for
    every year of the run.
    """
    settings = settings or cfg.get_default_settings()
    context = build_context(profile, settings, strategies, rate_overrides, brackets)
    sizing = size_strategy(profile, settings, strategies)
    tax_rates = context.tax_rates_for(profile.annual_income)

    if debug:
        print(f"\nProjecting {sizing.strategy_name}: collateral ${sizing.collateral_value:,.0f}, "
              f"QFAF ${sizing.qfaf_value:,.0f}, ST {tax_rates.st_rate:.1%} / LT {tax_rates.lt_rate:.1%} "
              f"/ state {tax_rates.state_rate:.1%}")

    years = run_projection(
        context, context.initial_state(sizing), tax_rates,
        projection_years(settings), debug=debug
    )

    return CalculationResult(
        sizing=sizing,
        years=tuple(years),
        summary=summarize(years, sizing),
    )
