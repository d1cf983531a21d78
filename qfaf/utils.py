import numpy as np


def safe_number(value, fallback: float = 0.0) -> float:
    """Return value as a float, or fallback if it is NaN or infinite."""
    try:
        value = float(value)
    except (TypeError, ValueError):
        return fallback
    return value if np.isfinite(value) else fallback


def non_negative(value) -> float:
    """Finite-guarded and floored at zero (carryforward balances)."""
    return max(0.0, safe_number(value))


def weighted_sum(values, weights) -> float:
    """Probability-weighted total, guarded against empty or non-finite input."""
    values = np.asarray(values, dtype=float)
    weights = np.asarray(weights, dtype=float)
    if values.size == 0:
        return 0.0
    return safe_number(np.dot(np.nan_to_num(values), weights))
