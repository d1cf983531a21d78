"""Configuration errors raised before a projection starts.

Numeric problems (zero collateral, overflow) are never raised: every computed
figure goes through utils.safe_number instead.
"""


class QfafError(Exception):
    """Base class for engine errors."""


class InvalidStrategyError(QfafError, ValueError):
    def __init__(self, strategy_id):
        self.strategy_id = strategy_id
        super().__init__(f"Invalid strategy ID: {strategy_id}")


class InvalidFilingStatusError(QfafError, ValueError):
    def __init__(self, filing_status):
        self.filing_status = filing_status
        super().__init__(f"Invalid filing status: {filing_status}")


class InvalidInputError(QfafError, ValueError):
    """Profile or settings value outside its domain."""
