"""
═══════════════════════════════════════════════════════════════════════════════
                    STATISTICS PRIMITIVES
═══════════════════════════════════════════════════════════════════════════════

Pure functions, no I/O. Numeric degeneracies resolve to safe defaults
instead of raising: flat demand is common and legitimate.

Mathematical Foundations:
─────────────────────────
    Sample variance:
        s² = Σ(x_i - x̄)² / (n - 1)

    Linear trend (OLS slope against position i = 0..n-1):
        b = (n Σ i·x_i - Σ i · Σ x_i) / (n Σ i² - (Σ i)²)

    Seasonal index (calendar month m):
        S_m = mean(x | month = m) / mean(x)

    Inverse normal CDF (rational approximation, |error| < 4.5e-4):
        t = sqrt(-2 ln(min(p, 1 - p)))
        z = t - (c0 + c1 t + c2 t²) / (1 + d1 t + d2 t² + d3 t³)

    Simple exponential smoothing:
        F_0 = x_0,  F_i = α x_i + (1 - α) F_{i-1}
"""

from __future__ import annotations

import math
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .models import DemandObservation

_EPSILON = np.finfo(float).eps

# Rational approximation constants
_C0, _C1, _C2 = 2.515517, 0.802853, 0.010328
_D1, _D2, _D3 = 1.432788, 0.189269, 0.001308


# ═══════════════════════════════════════════════════════════════════════════════
# DISPERSION & TREND
# ═══════════════════════════════════════════════════════════════════════════════

def variance(values: Sequence[float]) -> float:
    """Sample variance (n - 1); 0 for fewer than two values."""
    arr = np.asarray(values, dtype=float)
    if arr.size < 2:
        return 0.0
    return float(np.var(arr, ddof=1))


def linear_trend_slope(values: Sequence[float]) -> float:
    """
    OLS slope of the values against their index position.

    Returns 0 for fewer than two values or a singular design matrix.
    """
    y = np.asarray(values, dtype=float)
    n = y.size
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = float(np.dot(x, y))
    sum_x_squared = float(np.dot(x, x))

    denominator = n * sum_x_squared - sum_x ** 2
    if abs(denominator) < _EPSILON:
        return 0.0

    return float((n * sum_xy - sum_x * sum_y) / denominator)


# ═══════════════════════════════════════════════════════════════════════════════
# SEASONALITY
# ═══════════════════════════════════════════════════════════════════════════════

def seasonal_index(observations: Sequence[DemandObservation]) -> Dict[int, float]:
    """
    Average demand per calendar month divided by the overall average.

    Months without observations are omitted; callers default them to 1.0.
    When overall demand is zero every observed month gets 1.0.
    """
    if not observations:
        return {}

    frame = pd.DataFrame({
        "date": pd.to_datetime([o.date for o in observations]),
        "quantity": [float(o.quantity) for o in observations],
    })
    overall_average = frame["quantity"].mean()
    monthly_average = frame.groupby(frame["date"].dt.month)["quantity"].mean()

    if overall_average <= 0:
        return {int(month): 1.0 for month in monthly_average.index}

    return {
        int(month): float(average / overall_average)
        for month, average in monthly_average.items()
    }


def monthly_indices(indices: Dict[int, float]) -> List[float]:
    """Expand a month -> index mapping into 12 values, Jan..Dec, missing = 1.0."""
    return [indices.get(month, 1.0) for month in range(1, 13)]


# ═══════════════════════════════════════════════════════════════════════════════
# NORMAL DISTRIBUTION
# ═══════════════════════════════════════════════════════════════════════════════

def inverse_normal_cdf(probability: float) -> float:
    """
    z-score for a probability in (0, 1).

    Symmetric around 0.5. Outside (0, 1) returns 0 rather than raising;
    callers validate service levels before getting here.
    """
    if probability <= 0.0 or probability >= 1.0:
        return 0.0

    tail = 1.0 - probability if probability > 0.5 else probability
    t = math.sqrt(-2.0 * math.log(tail))

    numerator = _C0 + _C1 * t + _C2 * t ** 2
    denominator = 1.0 + _D1 * t + _D2 * t ** 2 + _D3 * t ** 3
    z = t - numerator / denominator

    return z if probability > 0.5 else -z


# ═══════════════════════════════════════════════════════════════════════════════
# SMOOTHING
# ═══════════════════════════════════════════════════════════════════════════════

def exponential_smoothing(values: Sequence[float], alpha: float) -> List[float]:
    """Simple exponential smoothing seeded with the first value."""
    if len(values) == 0:
        return []

    smoothed = [float(values[0])]
    for value in values[1:]:
        smoothed.append(alpha * float(value) + (1.0 - alpha) * smoothed[-1])
    return smoothed


def moving_average(values: Sequence[float], window: int) -> List[float]:
    """
    Trailing moving average.

    Early positions average over what is available. Series shorter than the
    window are returned unchanged.
    """
    if len(values) < window:
        return [float(v) for v in values]

    series = pd.Series(values, dtype=float)
    return series.rolling(window=window, min_periods=1).mean().tolist()


# ═══════════════════════════════════════════════════════════════════════════════
# SERIES HELPERS
# ═══════════════════════════════════════════════════════════════════════════════

def to_daily_series(
    observations: Sequence[DemandObservation],
    fill_gaps: bool = False,
    window: Optional[Tuple[date, date]] = None,
) -> pd.Series:
    """
    Demand as a date-indexed Series (same-day rows summed).

    With fill_gaps, calendar days without movement are inserted as zero
    demand. Without a window that covers the span between the first and
    last observation; with one, every day of the (first, last) window is
    present as well, so quiet days before the first sale and after the
    last one count.
    """
    if not observations:
        return pd.Series(dtype=float)

    series = pd.Series(
        [float(o.quantity) for o in observations],
        index=pd.to_datetime([o.date for o in observations]),
        dtype=float,
    )
    series = series.groupby(level=0).sum().sort_index()

    if fill_gaps:
        if window is not None:
            days = pd.date_range(window[0], window[1], freq="D").union(series.index)
            series = series.reindex(days, fill_value=0.0)
        series = series.asfreq("D", fill_value=0.0)
    return series


def densify(
    observations: Sequence[DemandObservation],
    fill_gaps: bool,
    window: Optional[Tuple[date, date]] = None,
) -> List[DemandObservation]:
    """Observations with quiet days materialized as zero demand (when asked)."""
    if not fill_gaps or not observations:
        return list(observations)
    series = to_daily_series(observations, fill_gaps=True, window=window)
    return [DemandObservation(ts.date(), float(qty)) for ts, qty in series.items()]


def forecast_error_metrics(actual: Sequence[float], predicted: Sequence[float]) -> Dict[str, float]:
    """MAPE (over non-zero actuals, %) and RMSE of a fitted series."""
    actual_arr = np.asarray(actual, dtype=float)
    predicted_arr = np.asarray(predicted, dtype=float)
    if actual_arr.size == 0:
        return {}

    rmse = float(np.sqrt(np.mean((actual_arr - predicted_arr) ** 2)))
    mask = actual_arr != 0
    if not np.any(mask):
        return {"rmse": rmse}
    mape = float(np.mean(np.abs((actual_arr[mask] - predicted_arr[mask]) / actual_arr[mask])) * 100)
    return {"mape": mape, "rmse": rmse}
