"""
════════════════════════════════════════════════════════════════════════════════
TESTS - Demand Forecast Generator
════════════════════════════════════════════════════════════════════════════════
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from backend.stock_optimization.clock import FixedClock
from backend.stock_optimization.config import BaselineMethod, ForecastPolicy, build_parameters
from backend.stock_optimization.errors import InsufficientDataError, InvalidParametersError, NotFoundError
from backend.stock_optimization.forecasting import DemandForecaster, forecast_demand
from backend.stock_optimization.models import DemandObservation


class TestForecastShape:
    """Length and interval invariants."""

    @pytest.mark.parametrize("horizon", [1, 7, 30, 90])
    def test_length_equals_horizon(self, clock, variable_history, horizon):
        forecast = forecast_demand(variable_history, horizon, clock=clock)

        assert forecast.forecast_horizon_days == horizon
        assert len(forecast.daily_demand_forecast) == horizon
        assert len(forecast.confidence_intervals) == horizon

    def test_intervals_are_non_negative_and_contain_forecast(self, clock, variable_history):
        forecast = forecast_demand(variable_history, 60, clock=clock)

        for value, (low, high) in zip(forecast.daily_demand_forecast, forecast.confidence_intervals):
            assert value >= 0
            assert low >= 0
            assert low <= value <= high

    def test_seasonality_component_has_twelve_months(self, clock, variable_history):
        forecast = forecast_demand(variable_history, 10, clock=clock)
        assert len(forecast.seasonality_component) == 12


class TestForecastValues:
    """Baseline, trend and seasonality."""

    def test_flat_history_forecasts_flat(self, clock, flat_history):
        forecast = forecast_demand(flat_history, 30, clock=clock)

        assert forecast.daily_demand_forecast == pytest.approx([10.0] * 30)
        assert forecast.trend_component == 0.0
        assert forecast.demand_variance == 0.0
        assert forecast.forecast_accuracy == pytest.approx(1.0)

    def test_moving_average_baseline(self, clock, flat_history):
        forecaster = DemandForecaster(
            policy=ForecastPolicy(baseline_method=BaselineMethod.MOVING_AVERAGE), clock=clock
        )
        forecast = forecaster.forecast(flat_history, 5)

        assert forecast.daily_demand_forecast == pytest.approx([10.0] * 5)
        assert forecast.method_used.startswith("Moving Average")

    def test_december_peak_in_seasonal_component(self, december_history):
        clock = FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
        forecast = forecast_demand(december_history, 30, clock=clock)

        component = forecast.seasonality_component
        assert component[11] / component[0] == pytest.approx(2.0)

    def test_seasonality_factor_scales_forecast(self, clock, flat_history):
        factors = [1.0] * 12
        factors[6] = 1.5  # July
        parameters = build_parameters(seasonality_factors=factors)

        forecast = DemandForecaster(clock=clock).forecast(flat_history, 2, parameters=parameters)

        # Clock is 2024-06-30: day 1 and 2 fall in July
        assert forecast.daily_demand_forecast == pytest.approx([15.0, 15.0])

    def test_trend_factor_zero_removes_trend(self, clock):
        rising = [
            DemandObservation(date(2024, 4, 30) + timedelta(days=i), float(i + 1)) for i in range(60)
        ]
        parameters = build_parameters(trend_factor=0.0)

        forecast = DemandForecaster(clock=clock).forecast(rising, 3, parameters=parameters)

        assert forecast.trend_component == 0.0
        assert forecast.daily_demand_forecast[0] == pytest.approx(forecast.daily_demand_forecast[2])

    def test_same_clock_same_forecast(self, clock, variable_history):
        first = forecast_demand(variable_history, 30, clock=clock)
        second = forecast_demand(variable_history, 30, clock=clock)
        assert first.to_dict() == second.to_dict()


class TestForecastErrors:
    """Invalid inputs."""

    def test_empty_history(self, clock):
        with pytest.raises(InsufficientDataError) as exc_info:
            forecast_demand([], 30, clock=clock, product_id="P9", location_id="WH-01")

        assert isinstance(exc_info.value, NotFoundError)
        assert exc_info.value.product_id == "P9"

    @pytest.mark.parametrize("horizon", [0, -5])
    def test_non_positive_horizon(self, clock, flat_history, horizon):
        with pytest.raises(InvalidParametersError) as exc_info:
            forecast_demand(flat_history, horizon, clock=clock)
        assert exc_info.value.field == "forecast_horizon_days"
