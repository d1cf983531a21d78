import pytest

from qfaf import config as cfg
from qfaf.models import ClientProfile, FilingStatus
from qfaf.strategies import StrategyTable


MODERATE_TABLE = {
    'moderate': {
        'name': 'Moderate 13/2.9', 'type': 'core', 'label': 'Moderate',
        'schedule': (0.13,),
        'lt_gain_rate': 0.029, 'financing_cost_rate': 0.02,
    },
}


@pytest.fixture
def moderate_strategies():
    """Flat 13% ST loss / 2.9% LT gain strategy."""
    return StrategyTable.from_dict(MODERATE_TABLE)


@pytest.fixture
def settings():
    return cfg.get_default_settings()


@pytest.fixture
def profile():
    return ClientProfile(
        filing_status=FilingStatus.MARRIED_FILING_JOINTLY,
        state_code='CA',
        annual_income=3000000,
        strategy_id='core-145-45',
        collateral_amount=10000000,
    )


@pytest.fixture
def moderate_profile():
    return ClientProfile(
        filing_status=FilingStatus.MARRIED_FILING_JOINTLY,
        state_code='CA',
        annual_income=3000000,
        strategy_id='moderate',
        collateral_amount=1000000,
        qfaf_sizing_years=1,
        qfaf_sizing_cushion=0.0,
    )
