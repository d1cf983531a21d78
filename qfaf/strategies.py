"""
Collateral strategy reference data.

Year-by-year net short-term capital loss estimates (years 1-10) for the core
(cash funded) and overlay (appreciated stock as collateral) long/short
strategies, plus their long-term gain and financing cost rates.
"""

from typing import Dict, Iterable, List, Optional

from qfaf.errors import InvalidStrategyError
from qfaf.models import StrategyRates


OVERLAY_ST_LOSS_RATES = {
    '30-30':   (0.110, 0.070, 0.060, 0.040, 0.030, 0.030, 0.030, 0.030, 0.030, 0.030),
    '45-45':   (0.165, 0.105, 0.090, 0.060, 0.045, 0.045, 0.045, 0.045, 0.045, 0.045),
    '75-75':   (0.275, 0.175, 0.150, 0.100, 0.075, 0.075, 0.075, 0.075, 0.075, 0.075),
    '100-100': (0.367, 0.233, 0.200, 0.133, 0.100, 0.100, 0.100, 0.100, 0.100, 0.100),
    '125-125': (0.458, 0.292, 0.250, 0.167, 0.125, 0.125, 0.125, 0.125, 0.125, 0.125),
}

CORE_ST_LOSS_RATES = {
    '130-30':  (0.230, 0.130, 0.090, 0.050, 0.040, 0.030, 0.030, 0.030, 0.030, 0.030),
    '145-45':  (0.285, 0.165, 0.120, 0.070, 0.055, 0.045, 0.045, 0.045, 0.045, 0.045),
    '175-75':  (0.395, 0.235, 0.180, 0.110, 0.085, 0.075, 0.075, 0.075, 0.075, 0.075),
    '200-100': (0.487, 0.293, 0.230, 0.143, 0.110, 0.100, 0.100, 0.100, 0.100, 0.100),
    '225-125': (0.578, 0.352, 0.280, 0.177, 0.135, 0.125, 0.125, 0.125, 0.125, 0.125),
}

# Financing cost scales with leverage; overlays carry lower costs
STRATEGIES = {
    'core-130-30': {
        'name': 'Core 130/30', 'type': 'core', 'label': 'Conservative',
        'schedule': CORE_ST_LOSS_RATES['130-30'],
        'lt_gain_rate': 0.024, 'financing_cost_rate': 0.015,
        'tracking_error': 0.014, 'tracking_error_display': '1.3-1.5%',
    },
    'core-145-45': {
        'name': 'Core 145/45', 'type': 'core', 'label': 'Moderate',
        'schedule': CORE_ST_LOSS_RATES['145-45'],
        'lt_gain_rate': 0.029, 'financing_cost_rate': 0.023,
        'tracking_error': 0.019, 'tracking_error_display': '1.8-2.0%',
    },
    'core-175-75': {
        'name': 'Core 175/75', 'type': 'core', 'label': 'Enhanced',
        'schedule': CORE_ST_LOSS_RATES['175-75'],
        'lt_gain_rate': 0.038, 'financing_cost_rate': 0.035,
        'tracking_error': 0.028, 'tracking_error_display': '2.5-3.0%',
    },
    'core-200-100': {
        'name': 'Core 200/100', 'type': 'core', 'label': 'Enhanced+',
        'schedule': CORE_ST_LOSS_RATES['200-100'],
        'lt_gain_rate': 0.045, 'financing_cost_rate': 0.04,
        'tracking_error': 0.038, 'tracking_error_display': '3.5-4.0%',
    },
    'core-225-125': {
        'name': 'Core 225/125', 'type': 'core', 'label': 'Aggressive',
        'schedule': CORE_ST_LOSS_RATES['225-125'],
        'lt_gain_rate': 0.053, 'financing_cost_rate': 0.045,
        'tracking_error': 0.043, 'tracking_error_display': '4.0-4.5%',
    },
    'overlay-30-30': {
        'name': 'Overlay 30/30', 'type': 'overlay', 'label': 'Conservative',
        'schedule': OVERLAY_ST_LOSS_RATES['30-30'],
        'lt_gain_rate': 0.009, 'financing_cost_rate': 0.01,
        'tracking_error': 0.01, 'tracking_error_display': '1.0%',
    },
    'overlay-45-45': {
        'name': 'Overlay 45/45', 'type': 'overlay', 'label': 'Moderate',
        'schedule': OVERLAY_ST_LOSS_RATES['45-45'],
        'lt_gain_rate': 0.014, 'financing_cost_rate': 0.015,
        'tracking_error': 0.015, 'tracking_error_display': '1.5%',
    },
    'overlay-75-75': {
        'name': 'Overlay 75/75', 'type': 'overlay', 'label': 'Enhanced',
        'schedule': OVERLAY_ST_LOSS_RATES['75-75'],
        'lt_gain_rate': 0.023, 'financing_cost_rate': 0.025,
        'tracking_error': 0.025, 'tracking_error_display': '2.5%',
    },
    'overlay-100-100': {
        'name': 'Overlay 100/100', 'type': 'overlay', 'label': 'Enhanced+',
        'schedule': OVERLAY_ST_LOSS_RATES['100-100'],
        'lt_gain_rate': 0.032, 'financing_cost_rate': 0.032,
        'tracking_error': 0.035, 'tracking_error_display': '3.5%',
    },
    'overlay-125-125': {
        'name': 'Overlay 125/125', 'type': 'overlay', 'label': 'Aggressive',
        'schedule': OVERLAY_ST_LOSS_RATES['125-125'],
        'lt_gain_rate': 0.038, 'financing_cost_rate': 0.04,
        'tracking_error': 0.042, 'tracking_error_display': '4.2%',
    },
}


def _build_strategy(strategy_id: str, entry: Dict) -> StrategyRates:
    schedule = tuple(float(r) for r in entry['schedule'])
    return StrategyRates(
        id=strategy_id,
        name=entry['name'],
        type=entry['type'],
        label=entry['label'],
        st_loss_rate=entry.get('st_loss_rate', schedule[0]),
        st_loss_rates_by_year=schedule,
        lt_gain_rate=entry['lt_gain_rate'],
        financing_cost_rate=entry['financing_cost_rate'],
        tracking_error=entry.get('tracking_error', 0.0),
        tracking_error_display=entry.get('tracking_error_display', ''),
    )


class StrategyTable:
    """Read-only lookup of StrategyRates by strategy id."""

    def __init__(self, strategies: Optional[Iterable[StrategyRates]] = None):
        if strategies is None:
            strategies = [_build_strategy(sid, entry) for sid, entry in STRATEGIES.items()]
        self._by_id = {s.id: s for s in strategies}

    @classmethod
    def from_dict(cls, table: Dict[str, Dict]) -> 'StrategyTable':
        return cls(_build_strategy(sid, entry) for sid, entry in table.items())

    def lookup(self, strategy_id: str) -> Optional[StrategyRates]:
        return self._by_id.get(strategy_id)

    def get(self, strategy_id: str) -> StrategyRates:
        strategy = self.lookup(strategy_id)
        if strategy is None:
            raise InvalidStrategyError(strategy_id)
        return strategy

    def ids(self) -> List[str]:
        return list(self._by_id)

    def __contains__(self, strategy_id) -> bool:
        return strategy_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


DEFAULT_STRATEGY_TABLE = StrategyTable()
