"""
QFAF Projection Package - multi-year tax strategy projection engine

Pairs a levered QFAF position (ST gains + ordinary losses) with a long/short
collateral strategy (ST losses + LT gains) and projects year-by-year usable
deductions, carryforwards and net tax savings.

Entry point: qfaf.run()
"""

import time
from qfaf import config as cfg
from qfaf.errors import QfafError, InvalidStrategyError, InvalidFilingStatusError, InvalidInputError
from qfaf.models import (
    FilingStatus, ClientProfile, StrategyRates, YearState, YearResult,
    CalculatedSizing, ProjectionSummary, CalculationResult,
    YearOverride, SensitivityParams, DEFAULT_SENSITIVITY
)
from qfaf.strategies import StrategyTable, DEFAULT_STRATEGY_TABLE
from qfaf.simulation import (
    size_strategy, project, project_with_overrides, project_with_sensitivity, summarize
)


def _fmt_elapsed(seconds):
    if seconds < 60:
        return f"{seconds:.1f}s"
    m, s = divmod(seconds, 60)
    return f"{int(m)}m {s:.1f}s"


def run(profile: ClientProfile = None, settings: cfg.EngineSettings = None):
    """Validate the netting waterfall, then print a default client report."""

    run_start = time.time()

    # Lazy imports to keep import-time cost down
    from qfaf.tax.engine import run_golden_tests
    from qfaf.tax.section461 import (
        default_section461_inputs, update_section461_input, compute_section461_years
    )
    from qfaf.runner import run_scenarios, compare_strategies
    from qfaf.reporting import (
        print_projection_report, print_scenario_report,
        print_strategy_comparison, print_section461_report
    )

    profile = profile or ClientProfile()
    settings = settings or cfg.get_default_settings()

    # ========================================================================
    # STEP 0: Validate Netting Waterfall (mandatory)
    # ========================================================================
    print("\n### VALIDATING CARRYFORWARD WATERFALL ###\n")
    golden = run_golden_tests(trace_failures=True)
    if golden['failed'] > 0:
        print("\nSTOPPING - carryforward waterfall is broken")
        return None

    # ========================================================================
    # STEP 1: Base Projection
    # ========================================================================
    result = project(profile, settings, debug=cfg.DEBUG)
    print_projection_report(result)

    # ========================================================================
    # STEP 2: Market Scenarios and Strategy Comparison
    # ========================================================================
    print_scenario_report(run_scenarios(profile, settings, n_jobs=cfg.N_JOBS))
    print_strategy_comparison(compare_strategies(profile, settings, n_jobs=cfg.N_JOBS, show_progress=True))

    # ========================================================================
    # STEP 3: §461(l) Planner Defaults
    # ========================================================================
    planner_inputs = default_section461_inputs(5, profile.filing_status)
    planner_inputs = update_section461_input(planner_inputs, 1, 'cash_infusion', result.sizing.qfaf_value)
    print_section461_report(compute_section461_years(planner_inputs))

    print(f"\n  Total runtime: {_fmt_elapsed(time.time() - run_start)}")
    return result
