"""
Rate resolution for one projection run.

Two independent concerns:
1. Tax rates (federal ST/LT, state, §461(l) cap) from either bracket tables or
   user-supplied flat rates. The choice is made once per run.
2. Collateral short-term loss rates per strategy and year, from the strategy
   schedule (or geometric decay), optionally replaced by a per-strategy,
   per-year override store.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

from qfaf import config as cfg
from qfaf.errors import InvalidInputError
from qfaf.strategies import StrategyTable, DEFAULT_STRATEGY_TABLE
from qfaf.tax.marginal import BracketTableProvider, DEFAULT_BRACKETS


# ============================================================================
# TAX RATES
# ============================================================================

@dataclass(frozen=True)
class BracketBased:
    """Marginal rates from bracket tables at the year's income."""


@dataclass(frozen=True)
class FlatOverride:
    """User-supplied flat rates. NIIT is stacked on the LT rate only."""
    stcg_rate: float
    ltcg_rate: float
    niit_rate: float


RateChoice = Union[BracketBased, FlatOverride]


@dataclass(frozen=True)
class TaxRates:
    st_rate: float
    lt_rate: float
    state_rate: float
    section_461_limit: float

    @property
    def combined_st_rate(self) -> float:
        return self.st_rate + self.state_rate

    @property
    def combined_lt_rate(self) -> float:
        return self.lt_rate + self.state_rate


def choose_rate_source(settings: cfg.EngineSettings) -> RateChoice:
    """Flat rates win as soon as any one of them differs from its default."""
    use_custom_rates = (
        settings.stcg_rate != cfg.DEFAULT_STCG_RATE
        or settings.ltcg_rate != cfg.DEFAULT_LTCG_RATE
        or settings.niit_rate != cfg.DEFAULT_NIIT_RATE
    )
    if use_custom_rates:
        return FlatOverride(settings.stcg_rate, settings.ltcg_rate, settings.niit_rate)
    return BracketBased()


def resolve_tax_rates(
    choice: RateChoice,
    income: float,
    filing_status: str,
    state_rate: float,
    section_461_limit: float,
    brackets: Optional[BracketTableProvider] = None
) -> TaxRates:
    brackets = brackets or DEFAULT_BRACKETS

    if isinstance(choice, FlatOverride):
        st_rate = choice.stcg_rate
        lt_rate = choice.ltcg_rate + choice.niit_rate
    else:
        st_rate = brackets.ordinary_rate(income, filing_status)
        lt_rate = brackets.long_term_rate(income, filing_status)

    return TaxRates(
        st_rate=st_rate,
        lt_rate=lt_rate,
        state_rate=state_rate,
        section_461_limit=section_461_limit,
    )


# ============================================================================
# STRATEGY LOSS RATES
# ============================================================================

class RateOverrideStore(ABC):
    """
    Key-value store of custom net capital loss rates, keyed by (strategy, year).

    Values are NET rates (ST loss rate - LT gain rate), matching how users
    edit them. Persistence is the caller's concern; the engine only reads a
    snapshot taken at the start of a run.
    """

    @abstractmethod
    def get(self, strategy_id: str, year: int) -> Optional[float]:
        ...

    @abstractmethod
    def set(self, strategy_id: str, year: int, rate: float) -> None:
        ...

    @abstractmethod
    def clear(self, strategy_id: Optional[str] = None) -> None:
        ...

    @abstractmethod
    def snapshot(self) -> 'RateOverrideStore':
        ...


class InMemoryRateOverrideStore(RateOverrideStore):

    def __init__(self, overrides: Optional[Dict[Tuple[str, int], float]] = None):
        self._rates = dict(overrides or {})

    @staticmethod
    def key(strategy_id: str, year: int) -> str:
        return f"{strategy_id}-{year}"

    @classmethod
    def from_flat_dict(cls, overrides: Dict[str, float]) -> 'InMemoryRateOverrideStore':
        """Load the '<strategy_id>-<year>' -> rate layout used by saved overrides."""
        parsed = {}
        for key, rate in overrides.items():
            strategy_id, _, year = key.rpartition('-')
            if not strategy_id or not year.isdigit():
                raise InvalidInputError(f"Malformed rate override key: {key!r}")
            parsed[(strategy_id, int(year))] = float(rate)
        return cls(parsed)

    def to_flat_dict(self) -> Dict[str, float]:
        return {self.key(sid, year): rate for (sid, year), rate in sorted(self._rates.items())}

    def get(self, strategy_id: str, year: int) -> Optional[float]:
        return self._rates.get((strategy_id, year))

    def set(self, strategy_id: str, year: int, rate: float) -> None:
        self._rates[(strategy_id, year)] = float(rate)

    def clear(self, strategy_id: Optional[str] = None) -> None:
        if strategy_id is None:
            self._rates.clear()
        else:
            self._rates = {k: v for k, v in self._rates.items() if k[0] != strategy_id}

    def snapshot(self) -> 'InMemoryRateOverrideStore':
        return InMemoryRateOverrideStore(self._rates)

    def __len__(self) -> int:
        return len(self._rates)


class StrategyRateResolver:
    """Resolves collateral loss rates for one run from a frozen override snapshot."""

    def __init__(self, strategies: Optional[StrategyTable] = None,
                 overrides: Optional[RateOverrideStore] = None,
                 mode: str = 'schedule'):
        if mode not in cfg.LOSS_RATE_MODES:
            raise InvalidInputError(f"Unknown loss rate mode: {mode!r}")
        self.strategies = strategies or DEFAULT_STRATEGY_TABLE
        self.overrides = overrides.snapshot() if overrides is not None else None
        self.mode = mode

    def base_st_loss_rate(self, strategy_id: str, year: int) -> float:
        strategy = self.strategies.get(strategy_id)
        if self.mode == 'decay':
            decay = max(cfg.LOSS_RATE_DECAY_FACTOR ** (year - 1), cfg.LOSS_RATE_FLOOR)
            return strategy.st_loss_rate * decay
        return strategy.st_loss_rate_for_year(year)

    def default_net_capital_loss_rate(self, strategy_id: str, year: int) -> float:
        strategy = self.strategies.get(strategy_id)
        return self.base_st_loss_rate(strategy_id, year) - strategy.lt_gain_rate

    def net_capital_loss_rate(self, strategy_id: str, year: int) -> float:
        if self.overrides is not None:
            custom = self.overrides.get(strategy_id, year)
            if custom is not None:
                return custom
        return self.default_net_capital_loss_rate(strategy_id, year)

    def effective_st_loss_rate(self, strategy_id: str, lt_gain_rate: float, year: int) -> float:
        """ST loss rate = net capital loss rate + LT gain rate."""
        return self.net_capital_loss_rate(strategy_id, year) + lt_gain_rate

    def default_rates(self, years: int = cfg.PROJECTION_YEARS) -> Dict[str, float]:
        """All default net rates in the flat '<strategy_id>-<year>' layout."""
        return {
            InMemoryRateOverrideStore.key(sid, year): self.default_net_capital_loss_rate(sid, year)
            for sid in self.strategies.ids()
            for year in range(1, years + 1)
        }
