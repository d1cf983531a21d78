"""
Core multi-year projection: per-year formulas, invariants across runs, and the
reference client scenarios.
"""

import itertools
from dataclasses import replace

import pytest

from qfaf import config as cfg
from qfaf.models import ClientProfile, FilingStatus, YearState
from qfaf.simulation.engine import build_context, simulate_year, project
from qfaf.tax.rates import FlatOverride, BracketBased, InMemoryRateOverrideStore


# =============================================================================
# ONE YEAR
# =============================================================================

class TestYearOneDefaultClient:
    """$10M Core 145/45, MFJ, $3M income, CA. Rates: ST 40.8%, LT 23.8%, state 13.3%."""

    @pytest.fixture
    def year1(self, profile, settings):
        return project(profile, settings).years[0]

    def test_tax_events(self, year1):
        assert year1.st_gains_generated == pytest.approx(1390000)
        assert year1.st_losses_harvested == pytest.approx(2850000)
        assert year1.lt_gains_realized == pytest.approx(290000)
        assert year1.net_st_gain_loss == 0

    def test_ordinary_loss_capped(self, year1):
        assert year1.usable_ordinary_loss == 512000
        assert year1.excess_to_nol == pytest.approx(878000)
        assert year1.nol_carryforward == pytest.approx(878000)
        assert year1.nol_used == 0

    def test_carryforwards(self, year1):
        # 1.46M net ST loss: 290k absorbs LT gains, 3k used against income
        assert year1.st_loss_carryforward == pytest.approx(1167000)
        assert year1.lt_loss_carryforward == 0
        assert year1.capital_loss_used_against_income == 3000

    def test_tax_savings(self, year1):
        ordinary = 512000 * 0.541
        conversion = 1390000 * 0.17
        capital = 3000 * 0.541
        lt_cost = 290000 * 0.371
        assert year1.tax_savings == pytest.approx(ordinary + conversion + capital - lt_cost)
        assert year1.qfaf_tax_benefit == pytest.approx(ordinary + conversion)
        assert year1.collateral_tax_benefit == pytest.approx(capital - lt_cost)

    def test_display_figures(self, year1):
        assert year1.baseline_tax == pytest.approx(290000 * 0.371)
        # Ordinary loss benefit exceeds the investment tax
        assert year1.federal_tax == 0
        assert year1.state_tax == 0
        assert year1.income_offset_amount == pytest.approx(515000)
        assert year1.max_income_offset_capacity == pytest.approx(512000 + 878000 + 3000)

    def test_no_growth_by_default(self, year1, profile, settings):
        assert year1.collateral_value == 10000000
        assert year1.qfaf_value == pytest.approx(10000000 * 0.139 / 1.5)


class TestSimulateYear:

    def test_returns_next_state(self, profile, settings):
        context = build_context(profile, settings)
        state = YearState(qfaf_value=100000, collateral_value=1000000,
                          st_carryforward=0, lt_carryforward=0, nol_carryforward=0)
        result, next_state = simulate_year(1, state, context, context.tax_rates_for(3000000))
        assert next_state.st_carryforward == result.st_loss_carryforward
        assert next_state.nol_carryforward == result.nol_carryforward
        assert next_state.total_value == result.total_value

    def test_first_pass_st_carryforward(self, profile, settings):
        context = build_context(profile, settings)
        # Gains 300k vs losses 285k: 15k net ST gain absorbed by the entering CF
        state = YearState(qfaf_value=200000, collateral_value=1000000,
                          st_carryforward=20000, lt_carryforward=0, nol_carryforward=0)
        result, _ = simulate_year(1, state, context, context.tax_rates_for(3000000))
        assert result.net_st_gain_loss == 0
        # Remaining 5k CF crosses to LT gains
        assert result.st_loss_carryforward == 0

    def test_residual_st_gain_is_taxed(self, profile, settings):
        context = build_context(profile, settings)
        state = YearState(qfaf_value=1000000, collateral_value=1000000,
                          st_carryforward=0, lt_carryforward=0, nol_carryforward=0)
        result, _ = simulate_year(1, state, context, context.tax_rates_for(3000000))
        assert result.net_st_gain_loss == pytest.approx(1215000)
        assert result.federal_tax >= 0
        assert result.total_tax == pytest.approx(result.federal_tax + result.state_tax)

    def test_income_caps_usable_loss(self, profile, settings):
        context = build_context(profile, settings)
        state = YearState(qfaf_value=1000000, collateral_value=10000000,
                          st_carryforward=0, lt_carryforward=0, nol_carryforward=0)
        result, _ = simulate_year(1, state, context, context.tax_rates_for(100000), income=100000)
        assert result.usable_ordinary_loss == 100000
        assert result.excess_to_nol == pytest.approx(1400000)

    def test_wash_sale_disallowance(self, profile, settings):
        context = build_context(profile, settings.with_overrides(wash_sale_disallowance_rate=0.1))
        state = YearState(qfaf_value=0, collateral_value=1000000,
                          st_carryforward=0, lt_carryforward=0, nol_carryforward=0)
        result, _ = simulate_year(1, state, context, context.tax_rates_for(3000000))
        assert result.st_losses_harvested == pytest.approx(285000 * 0.9)

    def test_debug_output(self, profile, settings, capsys):
        context = build_context(profile, settings)
        state = YearState(qfaf_value=0, collateral_value=1000000,
                          st_carryforward=0, lt_carryforward=0, nol_carryforward=0)
        simulate_year(1, state, context, context.tax_rates_for(3000000), debug=True)
        assert "Year  1" in capsys.readouterr().out

    def test_one_multiplier_drives_gains_and_losses(self, profile, settings):
        assert settings.qfaf_multiplier == cfg.QFAF_ST_GAIN_RATE
        context = build_context(profile, settings.with_overrides(qfaf_multiplier=2.0))
        state = YearState(qfaf_value=100000, collateral_value=1000000,
                          st_carryforward=0, lt_carryforward=0, nol_carryforward=0)
        result, _ = simulate_year(1, state, context, context.tax_rates_for(3000000))
        assert result.st_gains_generated == 200000
        assert result.ordinary_losses_generated == 200000

    def test_rate_deltas_applied_at_any_income(self, profile, settings):
        context = replace(build_context(profile, settings), federal_rate_change=0.01)
        base = build_context(profile, settings)
        for income in (150000, 3000000):
            assert context.tax_rates_for(income).st_rate == pytest.approx(
                base.tax_rates_for(income).st_rate + 0.01)
            assert context.tax_rates_for(income).state_rate == base.tax_rates_for(income).state_rate


# =============================================================================
# RUN-LEVEL BEHAVIOUR
# =============================================================================

class TestProjectionRun:

    def test_horizon(self, profile, settings):
        assert len(project(profile, settings).years) == 10
        assert len(project(profile, settings.with_overrides(projection_years=20)).years) == 20
        assert len(project(profile, settings.with_overrides(projection_years=99)).years) == cfg.MAX_PROJECTION_YEARS

    def test_years_are_numbered(self, profile, settings):
        assert [y.year for y in project(profile, settings).years] == list(range(1, 11))

    def test_deterministic(self, profile, settings):
        assert project(profile, settings) == project(profile, settings)

    def test_state_threads_between_years(self, profile, settings):
        years = project(profile, settings).years
        for prev, curr in zip(years, years[1:]):
            assert curr.qfaf_value == pytest.approx(prev.qfaf_value)
            assert curr.st_gains_generated == pytest.approx(prev.qfaf_value * 1.5)

    def test_growth(self, profile, settings):
        grown = project(profile, settings.with_overrides(growth_enabled=True)).years[0]
        assert grown.collateral_value == pytest.approx(10000000 * 1.07)

    def test_growth_net_of_financing(self, profile, settings):
        custom = settings.with_overrides(growth_enabled=True, financing_fees_enabled=True)
        year1 = project(profile, custom).years[0]
        assert year1.collateral_value == pytest.approx(10000000 * (1 + 0.07 - 0.023))

    def test_qfaf_growth_toggle(self, profile, settings):
        custom = settings.with_overrides(growth_enabled=True, qfaf_growth_enabled=False)
        result = project(profile, custom)
        assert result.years[-1].qfaf_value == pytest.approx(result.sizing.qfaf_value)
        assert result.years[-1].collateral_value > 10000000

    def test_flat_rates_chosen_once(self, profile, settings):
        custom = settings.with_overrides(stcg_rate=0.35)
        assert isinstance(build_context(profile, custom).rate_choice, FlatOverride)
        assert isinstance(build_context(profile, settings).rate_choice, BracketBased)
        assert project(profile, custom) != project(profile, settings)

    def test_rate_override_store(self, profile, settings):
        store = InMemoryRateOverrideStore()
        store.set('core-145-45', 1, 0.1)
        year1 = project(profile, settings, rate_overrides=store).years[0]
        assert year1.effective_st_loss_rate == pytest.approx(0.129)
        assert year1.st_losses_harvested == pytest.approx(1290000)

    def test_decay_mode(self, profile, settings):
        years = project(profile, settings.with_overrides(loss_rate_mode='decay')).years
        assert years[1].effective_st_loss_rate == pytest.approx(0.285 * 0.93)

    def test_summary(self, profile, settings):
        result = project(profile, settings)
        assert result.summary.total_tax_savings == pytest.approx(sum(y.tax_savings for y in result.years))
        assert result.summary.total_nol_generated == pytest.approx(sum(y.excess_to_nol for y in result.years))
        assert result.summary.final_portfolio_value == result.years[-1].total_value
        assert result.summary.effective_tax_alpha == pytest.approx(
            result.summary.total_tax_savings / result.sizing.total_exposure / 10
        )

    def test_empty_horizon(self, profile, settings):
        result = project(profile, settings.with_overrides(projection_years=0))
        assert result.years == ()
        assert result.summary.final_portfolio_value == 0
        assert result.summary.effective_tax_alpha == 0
        assert result.final_state is None

    def test_final_state(self, profile, settings):
        result = project(profile, settings)
        assert result.final_state.nol_carryforward == result.years[-1].nol_carryforward

    def test_tax_savings_never_negative(self, settings):
        # Collateral only: LT gain cost dominates
        profile = ClientProfile(qfaf_enabled=False, strategy_id='overlay-125-125', annual_income=3000000)
        for y in project(profile, settings).years:
            assert y.tax_savings >= 0


# =============================================================================
# INVARIANTS ACROSS A GRID OF CLIENTS
# =============================================================================

GRID = [
    ClientProfile(filing_status=status, strategy_id=sid, annual_income=income,
                  existing_st_loss_carryforward=st_cf, existing_nol_carryforward=nol_cf,
                  existing_lt_loss_carryforward=50000)
    for status, sid, income, (st_cf, nol_cf) in itertools.product(
        list(FilingStatus),
        ['core-130-30', 'core-225-125', 'overlay-45-45'],
        [80000, 3000000],
        [(0, 0), (250000, 2000000)],
    )
]


def _all_years(settings):
    growth = settings.with_overrides(growth_enabled=True, financing_fees_enabled=True)
    for profile in GRID:
        for run_settings in (settings, growth):
            result = project(profile, run_settings)
            yield profile, run_settings, result


class TestInvariants:

    def test_carryforwards_non_negative(self, settings):
        for _, _, result in _all_years(settings):
            for y in result.years:
                assert y.st_loss_carryforward >= 0
                assert y.lt_loss_carryforward >= 0
                assert y.nol_carryforward >= 0

    def test_usable_ordinary_loss_cap(self, settings):
        for profile, run_settings, result in _all_years(settings):
            cap = run_settings.section_461_limit(profile.filing_status)
            for y in result.years:
                assert y.usable_ordinary_loss <= min(y.ordinary_losses_generated, cap, y.income) + 1e-6

    def test_capital_loss_cap(self, settings):
        for profile, _, result in _all_years(settings):
            cap = cfg.capital_loss_limit(profile.filing_status)
            for y in result.years:
                assert y.capital_loss_used_against_income <= cap

    def test_nol_limitation(self, settings):
        for profile, _, result in _all_years(settings):
            entering = profile.existing_nol_carryforward
            for y in result.years:
                taxable_ceiling = max(0.0, y.income + y.net_st_gain_loss + y.lt_gains_realized
                                      - y.usable_ordinary_loss - y.capital_loss_used_against_income)
                assert y.nol_used <= 0.8 * taxable_ceiling + 1e-6
                assert y.nol_used <= entering + 1e-6
                entering = y.nol_carryforward

    def test_matching_with_one_year_window(self, settings):
        for sid in ('core-145-45', 'overlay-75-75'):
            profile = ClientProfile(strategy_id=sid, qfaf_sizing_years=1, qfaf_sizing_cushion=0)
            year1 = project(profile, settings).years[0]
            assert year1.st_gains_generated == pytest.approx(year1.st_losses_harvested)


# =============================================================================
# REFERENCE SCENARIOS
# =============================================================================

class TestReferenceScenarios:

    def test_moderate_million_is_matched(self, moderate_profile, settings, moderate_strategies):
        result = project(moderate_profile, settings, strategies=moderate_strategies)
        assert result.sizing.qfaf_value == pytest.approx(86666.67, abs=0.01)
        year1 = result.years[0]
        assert year1.st_losses_harvested == pytest.approx(130000)
        assert year1.st_gains_generated == pytest.approx(130000)

    def test_ten_million_hits_joint_cap(self, moderate_profile, settings, moderate_strategies):
        profile = replace(moderate_profile, collateral_amount=10000000)
        year1 = project(profile, settings, strategies=moderate_strategies).years[0]
        assert year1.ordinary_losses_generated == pytest.approx(1300000)
        assert year1.usable_ordinary_loss == 512000
        assert year1.excess_to_nol == pytest.approx(1300000 - 512000)
        assert year1.nol_carryforward == pytest.approx(year1.excess_to_nol)

    def test_st_carryforward_consumed_by_lt_gains(self, moderate_strategies, settings):
        profile = ClientProfile(strategy_id='moderate', collateral_amount=10000000,
                                existing_st_loss_carryforward=100000,
                                qfaf_sizing_years=1, qfaf_sizing_cushion=0)
        year1 = project(profile, settings, strategies=moderate_strategies).years[0]
        # 290k of LT gains absorb the whole 100k carryforward
        assert year1.lt_gains_realized == pytest.approx(290000)
        assert year1.st_loss_carryforward == pytest.approx(0, abs=1e-6)
        assert year1.capital_loss_used_against_income == pytest.approx(0, abs=1e-6)

    def test_separate_filer_capital_loss_cap(self, settings):
        profile = ClientProfile(filing_status=FilingStatus.MARRIED_FILING_SEPARATELY,
                                strategy_id='core-145-45', collateral_amount=1000000,
                                qfaf_enabled=False, annual_income=400000)
        years = project(profile, settings).years
        for y in years:
            assert y.capital_loss_used_against_income <= 1500
        # Carryforward stays positive, so the full 1,500 is used every year
        assert all(y.capital_loss_used_against_income == 1500 for y in years)

    def test_zero_collateral(self, profile, settings):
        result = project(replace(profile, collateral_amount=0), settings)
        assert result.sizing.qfaf_value == 0
        for y in result.years:
            for name in ('qfaf_value', 'collateral_value', 'total_value', 'st_gains_generated',
                         'ordinary_losses_generated', 'usable_ordinary_loss', 'excess_to_nol',
                         'st_losses_harvested', 'lt_gains_realized', 'net_st_gain_loss',
                         'federal_tax', 'state_tax', 'total_tax', 'baseline_tax', 'tax_savings',
                         'st_loss_carryforward', 'lt_loss_carryforward', 'nol_carryforward',
                         'nol_used', 'capital_loss_used_against_income',
                         'income_offset_amount', 'max_income_offset_capacity'):
                assert getattr(y, name) == 0, name
        assert result.summary.effective_tax_alpha == 0
