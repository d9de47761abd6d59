"""
═══════════════════════════════════════════════════════════════════════════════
                    DEMAND FORECAST GENERATOR
═══════════════════════════════════════════════════════════════════════════════

Day-by-day demand forecast from a smoothed baseline, a linear trend and
monthly seasonal indices.

Mathematical Formulation:
─────────────────────────
    baseline  = last exponentially smoothed value (α = 0.3)
                or last trailing moving average
    trend     = OLS slope of demand vs. position (× trend_factor)
    S_m       = seasonal index of month m (× planner factor, 1.0 if unseen)

    F(i)  = max(0, (baseline + trend · i) · S_month(today + i)),  i = 1..H
    CI(i) = [max(0, F(i) - z·σ), F(i) + z·σ],  σ = sqrt(sample variance)

"today" comes from the injected clock, so two runs with the same history and
the same clock produce identical forecasts.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from .clock import Clock, SystemClock, history_window, today
from .config import BaselineMethod, ForecastPolicy, OptimizationParameters
from .demand_stats import (
    densify,
    exponential_smoothing,
    forecast_error_metrics,
    linear_trend_slope,
    monthly_indices,
    moving_average,
    seasonal_index,
    variance,
)
from .errors import InsufficientDataError, InvalidParametersError
from .models import DemandForecast, DemandObservation, as_observations

logger = logging.getLogger(__name__)

_METHOD_LABELS = {
    BaselineMethod.EXPONENTIAL_SMOOTHING: "Exponential Smoothing with Trend and Seasonality",
    BaselineMethod.MOVING_AVERAGE: "Moving Average with Trend and Seasonality",
}


class DemandForecaster:
    """
    Classical, explainable demand forecaster.

    Stateless apart from its policy and clock; safe to share across threads.
    """

    def __init__(
        self,
        policy: Optional[ForecastPolicy] = None,
        clock: Optional[Clock] = None,
    ):
        self.policy = policy or ForecastPolicy()
        self.clock = clock or SystemClock()

    def forecast(
        self,
        history: Sequence[DemandObservation],
        horizon_days: int,
        product_id: str = "",
        location_id: str = "",
        parameters: Optional[OptimizationParameters] = None,
        history_days: Optional[int] = None,
    ) -> DemandForecast:
        """
        Forecast daily demand for the next `horizon_days` days.

        Args:
            history: Observations ascending by date
            horizon_days: Number of days to forecast (>= 1)
            product_id: Product being forecast (labels only)
            location_id: Location being forecast (labels only)
            parameters: Optional planner overrides (trend_factor,
                seasonality_factors)
            history_days: Lookback the history was fetched with; when gap
                filling is on, quiet days across the whole lookback count
                as zero demand

        Returns:
            DemandForecast with exactly `horizon_days` daily values and
            confidence intervals

        Raises:
            InvalidParametersError: horizon_days < 1
            InsufficientDataError: history is empty
        """
        if horizon_days < 1:
            raise InvalidParametersError(
                f"Forecast horizon must be at least 1 day, got {horizon_days}",
                field="forecast_horizon_days",
            )

        window = history_window(self.clock, history_days) if history_days else None
        observations = densify(as_observations(history), self.policy.fill_gaps, window=window)
        if not observations:
            raise InsufficientDataError(
                "No historical data for forecasting",
                product_id=product_id,
                location_id=location_id,
            )

        values = [o.quantity for o in observations]

        fitted = self._fit_baseline(values)
        baseline = fitted[-1]

        trend = linear_trend_slope(values)
        if parameters is not None:
            trend *= parameters.trend_factor

        indices = self._seasonal_indices(observations, parameters)

        demand_variance = variance(values)
        margin = self.policy.confidence_z * math.sqrt(demand_variance)

        start = today(self.clock)
        daily: List[float] = []
        intervals: List[Tuple[float, float]] = []
        for day in range(1, horizon_days + 1):
            month = (start + timedelta(days=day)).month
            adjusted = max(0.0, (baseline + trend * day) * indices.get(month, 1.0))
            daily.append(adjusted)
            intervals.append((max(0.0, adjusted - margin), adjusted + margin))

        # One-step-ahead fit: the smoothed value at t-1 predicts t
        metrics = forecast_error_metrics(values[1:], fitted[:-1])
        if "mape" in metrics:
            accuracy = min(1.0, max(0.0, 1.0 - metrics["mape"] / 100.0))
        else:
            accuracy = 0.0

        logger.debug(
            f"Forecast {product_id}@{location_id}: baseline={baseline:.2f}, "
            f"trend={trend:.4f}, variance={demand_variance:.2f}, horizon={horizon_days}"
        )

        return DemandForecast(
            product_id=product_id,
            location_id=location_id,
            forecast_date=self.clock.now(),
            forecast_horizon_days=horizon_days,
            daily_demand_forecast=daily,
            demand_variance=demand_variance,
            seasonality_component=monthly_indices(indices),
            trend_component=trend,
            confidence_intervals=intervals,
            forecast_accuracy=accuracy,
            method_used=_METHOD_LABELS[self.policy.baseline_method],
            metrics=metrics,
        )

    def _fit_baseline(self, values: List[float]) -> List[float]:
        if self.policy.baseline_method == BaselineMethod.MOVING_AVERAGE:
            return moving_average(values, self.policy.moving_average_window)
        return exponential_smoothing(values, self.policy.smoothing_alpha)

    @staticmethod
    def _seasonal_indices(
        observations: Sequence[DemandObservation],
        parameters: Optional[OptimizationParameters],
    ) -> Dict[int, float]:
        measured = seasonal_index(observations)
        if parameters is None:
            return measured
        return {
            month: measured.get(month, 1.0) * parameters.seasonality_factor(month)
            for month in range(1, 13)
        }


def forecast_demand(
    history: Sequence[DemandObservation],
    horizon_days: int,
    clock: Optional[Clock] = None,
    policy: Optional[ForecastPolicy] = None,
    **labels,
) -> DemandForecast:
    """Functional entry point: DemandForecaster(policy, clock).forecast(...)."""
    return DemandForecaster(policy=policy, clock=clock).forecast(history, horizon_days, **labels)
