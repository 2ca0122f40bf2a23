# offer_analytics/target_achievement/ratios.py
"""Guarded percentage math. Every percentage in the engine goes through here."""

from typing import Union

import numpy as np
import pandas as pd

Number = Union[int, float]


def safe_percentage(numerator, denominator) -> Union[float, np.ndarray]:
    """
    numerator / denominator * 100, or 0 where the denominator is not > 0.

    Works element-wise on Series/arrays and returns a plain float for
    scalars. Never yields NaN or Infinity.
    """
    num = np.asarray(numerator, dtype=float)
    den = np.asarray(denominator, dtype=float)
    valid = np.isfinite(den) & (den > 0)
    shape = np.broadcast(num, den).shape
    result = np.divide(
        num * 100, den,
        out=np.zeros(shape, dtype=float),
        where=np.broadcast_to(valid, shape)
    )
    result = np.where(np.isfinite(result), result, 0.0)
    if result.ndim == 0:
        return float(result)
    return result


def safe_divide(numerator: Number, denominator: Number) -> float:
    """Scalar division returning 0 for a zero, negative or missing denominator."""
    if denominator is None or pd.isna(denominator) or denominator <= 0:
        return 0.0
    if numerator is None or pd.isna(numerator):
        return 0.0
    return float(numerator) / float(denominator)
