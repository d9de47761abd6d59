"""
════════════════════════════════════════════════════════════════════════════════
TESTS - Configuration
════════════════════════════════════════════════════════════════════════════════
"""

from datetime import date, datetime

import pytest
from pydantic import ValidationError

from backend.stock_optimization.clock import FixedClock, SystemClock, history_window, today
from backend.stock_optimization.config import (
    BaselineMethod,
    EngineSettings,
    OptimizationParameters,
    ProbabilityMode,
    build_parameters,
)
from backend.stock_optimization.errors import InvalidParametersError


class TestOptimizationParameters:
    """Validated, immutable business inputs."""

    def test_defaults(self):
        parameters = build_parameters()

        assert parameters.target_service_level == 0.95
        assert parameters.holding_cost_rate == 0.25
        assert parameters.ordering_cost == 50.0
        assert parameters.lead_time_days == 7.0
        assert parameters.seasonality_factors == (1.0,) * 12

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"target_service_level": 1.0}, "target_service_level"),
            ({"target_service_level": 0.0}, "target_service_level"),
            ({"holding_cost_rate": 0.0}, "holding_cost_rate"),
            ({"ordering_cost": -5.0}, "ordering_cost"),
            ({"lead_time_days": 0.0}, "lead_time_days"),
            ({"seasonality_factors": [1.0] * 11}, "seasonality_factors"),
            ({"seasonality_factors": [1.0] * 11 + [-0.5]}, "seasonality_factors"),
            ({"storage_constraints": {"WH-01": -1.0}}, "storage_constraints"),
        ],
    )
    def test_invalid_values(self, overrides, field):
        with pytest.raises(InvalidParametersError) as exc_info:
            build_parameters(**overrides)
        assert exc_info.value.field == field

    def test_frozen(self):
        parameters = build_parameters()
        with pytest.raises(ValidationError):
            parameters.ordering_cost = 10.0

    def test_seasonality_factor_by_month(self):
        factors = [1.0] * 12
        factors[11] = 1.8
        parameters = OptimizationParameters(seasonality_factors=factors)

        assert parameters.seasonality_factor(12) == 1.8
        assert parameters.seasonality_factor(1) == 1.0


class TestEngineSettings:
    """Environment overrides."""

    def test_defaults(self):
        settings = EngineSettings.from_env({})

        assert settings.pool_size == 10
        assert settings.worker_count == 10
        assert settings.forecast.smoothing_alpha == 0.3
        assert settings.risk.probability_mode == ProbabilityMode.BINARY

    def test_overrides(self):
        settings = EngineSettings.from_env({
            "STOCKOPT_DATABASE_URL": "sqlite:///other.db",
            "STOCKOPT_POOL_SIZE": "4",
            "STOCKOPT_SMOOTHING_ALPHA": "0.5",
            "STOCKOPT_FORECAST_BASELINE": "MOVING_AVERAGE",
            "STOCKOPT_RISK_PROBABILITY_MODE": "normal",
        })

        assert settings.database_url == "sqlite:///other.db"
        assert settings.pool_size == 4
        assert settings.worker_count == 4
        assert settings.forecast.smoothing_alpha == 0.5
        assert settings.forecast.baseline_method == BaselineMethod.MOVING_AVERAGE
        assert settings.risk.probability_mode == ProbabilityMode.NORMAL

    def test_invalid_values_are_ignored(self, caplog):
        settings = EngineSettings.from_env({
            "STOCKOPT_WORKERS": "many",
            "STOCKOPT_RISK_PROBABILITY_MODE": "fuzzy",
        })

        assert settings.workers is None
        assert settings.risk.probability_mode == ProbabilityMode.BINARY
        assert any("STOCKOPT_WORKERS" in message for message in caplog.messages)

    def test_out_of_range_alpha_reset(self):
        settings = EngineSettings.from_env({"STOCKOPT_SMOOTHING_ALPHA": "1.5"})
        assert settings.forecast.smoothing_alpha == 0.3

    def test_to_dict(self):
        data = EngineSettings(workers=3).to_dict()

        assert data["worker_count"] == 3
        assert data["baseline_method"] == "exponential_smoothing"


class TestClock:
    """Injected time."""

    def test_fixed_clock_is_utc(self):
        clock = FixedClock(datetime(2024, 3, 1, 8, 30))

        assert clock.now().tzinfo is not None
        assert today(clock).isoformat() == "2024-03-01"

    def test_system_clock_is_aware(self):
        assert SystemClock().now().tzinfo is not None

    def test_history_window_ends_yesterday(self):
        clock = FixedClock(datetime(2024, 6, 30, 12, 0))

        assert history_window(clock, 60) == (date(2024, 5, 1), date(2024, 6, 29))
