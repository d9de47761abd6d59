"""
═══════════════════════════════════════════════════════════════════════════════
                    SEASONAL PATTERN ANALYZER
═══════════════════════════════════════════════════════════════════════════════

Monthly demand profile of a product/location and the stock levels it implies.

    S_m       = month mean / overall mean  (observed months only)
    mean_S    = mean of the observed S_m
    peak      : S_m > 1.2 · mean_S
    low       : S_m < 0.8 · mean_S
    CV        = population std(S) / mean_S
    trend     : OLS slope > 0.01 increasing, < -0.01 decreasing, else stable
    stock_m   = base_stock_level · S_m   (unobserved months use 1.0)
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from .demand_stats import linear_trend_slope, seasonal_index
from .errors import InsufficientDataError, InvalidParametersError
from .models import DemandObservation, SeasonalAnalysis, SeasonalInventoryAdjustment, as_observations

logger = logging.getLogger(__name__)

PEAK_RATIO = 1.2
LOW_RATIO = 0.8
TREND_TOLERANCE = 0.01


def analyze_seasonal_patterns(
    history: Sequence[DemandObservation],
    analysis_period_months: int,
    base_stock_level: float = 100.0,
    product_id: str = "",
    location_id: str = "",
) -> SeasonalAnalysis:
    """
    Seasonal indices, peak/low months and monthly stock adjustments.

    Raises:
        InvalidParametersError: analysis_period_months < 1 or negative base stock
        InsufficientDataError: history is empty
    """
    if analysis_period_months < 1:
        raise InvalidParametersError(
            f"Analysis period must be at least 1 month, got {analysis_period_months}",
            field="analysis_period_months",
        )
    if base_stock_level < 0:
        raise InvalidParametersError(
            f"Base stock level cannot be negative, got {base_stock_level}",
            field="base_stock_level",
        )

    observations = as_observations(history)
    if not observations:
        raise InsufficientDataError(
            "No historical data for seasonal analysis",
            product_id=product_id,
            location_id=location_id,
        )

    indices = seasonal_index(observations)
    values = np.asarray(list(indices.values()), dtype=float)
    mean_index = float(values.mean())

    peak_months = sorted(m for m, s in indices.items() if s > mean_index * PEAK_RATIO)
    low_months = sorted(m for m, s in indices.items() if s < mean_index * LOW_RATIO)
    variation = float(values.std() / mean_index) if mean_index > 0 else 0.0

    slope = linear_trend_slope([o.quantity for o in observations])
    if slope > TREND_TOLERANCE:
        trend_direction = "Increasing"
    elif slope < -TREND_TOLERANCE:
        trend_direction = "Decreasing"
    else:
        trend_direction = "Stable"

    adjustments = []
    for month in range(1, 13):
        factor = indices.get(month, 1.0)
        if factor > PEAK_RATIO:
            reason = "High demand season - increase stock"
        elif factor < LOW_RATIO:
            reason = "Low demand season - reduce stock"
        else:
            reason = "Normal demand - maintain average stock"
        adjustments.append(SeasonalInventoryAdjustment(
            month=month,
            recommended_stock_level=base_stock_level * factor,
            percentage_change_from_average=(factor - 1.0) * 100.0,
            reason=reason,
        ))

    if peak_months or low_months:
        strategy = "Implement dynamic safety stock based on seasonal patterns"
    else:
        strategy = "Maintain level stocking; no pronounced seasonality"

    logger.debug(
        f"Seasonality {product_id}@{location_id}: peak={peak_months}, low={low_months}, "
        f"cv={variation:.3f}, trend={trend_direction}"
    )

    return SeasonalAnalysis(
        product_id=product_id,
        location_id=location_id,
        analysis_period_months=analysis_period_months,
        seasonal_index_by_month=dict(sorted(indices.items())),
        peak_season_months=peak_months,
        low_season_months=low_months,
        seasonal_variation_coefficient=variation,
        trend_direction=trend_direction,
        recommended_seasonal_strategy=strategy,
        inventory_adjustments=adjustments,
    )
