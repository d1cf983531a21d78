from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from joblib import Parallel, delayed
from tqdm import tqdm

from qfaf import config as cfg
from qfaf.models import ClientProfile, CalculationResult
from qfaf.strategies import StrategyTable, DEFAULT_STRATEGY_TABLE
from qfaf.tax.marginal import BracketTableProvider
from qfaf.tax.rates import RateOverrideStore
from qfaf.simulation.engine import project
from qfaf.utils import weighted_sum


@dataclass(frozen=True)
class ScenarioOutcome:
    name: str
    label: str
    probability: float
    annual_return: float
    result: CalculationResult

    @property
    def total_tax_savings(self) -> float:
        return self.result.summary.total_tax_savings

    @property
    def final_portfolio_value(self) -> float:
        return self.result.summary.final_portfolio_value

    @property
    def effective_tax_alpha(self) -> float:
        return self.result.summary.effective_tax_alpha


@dataclass(frozen=True)
class ScenarioAnalysis:
    outcomes: List[ScenarioOutcome]
    expected_tax_savings: float
    expected_portfolio_value: float
    expected_tax_alpha: float


@dataclass(frozen=True)
class StrategyComparison:
    strategy_id: str
    strategy_name: str
    qfaf_value: float
    total_exposure: float
    total_tax_savings: float
    final_portfolio_value: float
    effective_tax_alpha: float
    total_nol_generated: float
    rank: int


def _run_projection_job(profile, settings, strategies, rate_overrides, brackets):
    """Worker entry point; module level so joblib can pickle it."""
    return project(profile, settings, strategies=strategies,
                   rate_overrides=rate_overrides, brackets=brackets, debug=False)


def run_scenarios(profile: ClientProfile,
                  settings: Optional[cfg.EngineSettings] = None,
                  scenarios: Optional[Dict[str, Dict]] = None,
                  *,
                  strategies: Optional[StrategyTable] = None,
                  rate_overrides: Optional[RateOverrideStore] = None,
                  brackets: Optional[BracketTableProvider] = None,
                  n_jobs: int = cfg.N_JOBS,
                  show_progress: bool = False) -> ScenarioAnalysis:
    """
    Bull / base / bear sweep of the annual return.

    Each scenario re-runs the core projection with its return and growth
    turned on. Expected values are probability-weighted across scenarios.
    """
    settings = settings or cfg.get_default_settings()
    scenarios = scenarios or cfg.DEFAULT_SCENARIOS
    names = list(scenarios)

    scenario_settings = [
        settings.with_overrides(default_annual_return=scenarios[name]['return'], growth_enabled=True)
        for name in names
    ]

    results = Parallel(n_jobs=n_jobs, verbose=0)(
        delayed(_run_projection_job)(profile, s, strategies, rate_overrides, brackets)
        for s in tqdm(scenario_settings, desc="Scenarios", unit="run", disable=not show_progress)
    )

    outcomes = [
        ScenarioOutcome(
            name=name,
            label=scenarios[name].get('label', name),
            probability=scenarios[name]['probability'],
            annual_return=scenarios[name]['return'],
            result=result,
        )
        for name, result in zip(names, results)
    ]

    probabilities = [o.probability for o in outcomes]
    return ScenarioAnalysis(
        outcomes=outcomes,
        expected_tax_savings=weighted_sum([o.total_tax_savings for o in outcomes], probabilities),
        expected_portfolio_value=weighted_sum([o.final_portfolio_value for o in outcomes], probabilities),
        expected_tax_alpha=weighted_sum([o.effective_tax_alpha for o in outcomes], probabilities),
    )


def compare_strategies(profile: ClientProfile,
                       settings: Optional[cfg.EngineSettings] = None,
                       strategy_ids: Optional[Sequence[str]] = None,
                       *,
                       strategies: Optional[StrategyTable] = None,
                       rate_overrides: Optional[RateOverrideStore] = None,
                       brackets: Optional[BracketTableProvider] = None,
                       n_jobs: int = cfg.N_JOBS,
                       show_progress: bool = False) -> List[StrategyComparison]:
    """
    Project the same client under each strategy and rank by tax alpha.

    Returns comparisons sorted best first (rank 1 = highest tax alpha).
    """
    settings = settings or cfg.get_default_settings()
    table = strategies or DEFAULT_STRATEGY_TABLE
    strategy_ids = list(strategy_ids) if strategy_ids is not None else table.ids()

    # Unknown ids fail here, before any work is dispatched
    for sid in strategy_ids:
        table.get(sid)

    profiles = [replace(profile, strategy_id=sid) for sid in strategy_ids]

    results = Parallel(n_jobs=n_jobs, verbose=0)(
        delayed(_run_projection_job)(p, settings, strategies, rate_overrides, brackets)
        for p in tqdm(profiles, desc="Strategies", unit="run", disable=not show_progress)
    )

    ordered = sorted(zip(strategy_ids, results),
                     key=lambda item: item[1].summary.effective_tax_alpha, reverse=True)

    return [
        StrategyComparison(
            strategy_id=sid,
            strategy_name=result.sizing.strategy_name,
            qfaf_value=result.sizing.qfaf_value,
            total_exposure=result.sizing.total_exposure,
            total_tax_savings=result.summary.total_tax_savings,
            final_portfolio_value=result.summary.final_portfolio_value,
            effective_tax_alpha=result.summary.effective_tax_alpha,
            total_nol_generated=result.summary.total_nol_generated,
            rank=rank,
        )
        for rank, (sid, result) in enumerate(ordered, start=1)
    ]
