"""
════════════════════════════════════════════════════════════════════════════════
TESTS - Seasonal Pattern Analyzer
════════════════════════════════════════════════════════════════════════════════
"""

from datetime import date, timedelta

import pytest

from backend.stock_optimization.errors import InsufficientDataError, InvalidParametersError
from backend.stock_optimization.models import DemandObservation
from backend.stock_optimization.seasonality import analyze_seasonal_patterns


class TestSeasonalAnalysis:
    """Peak/low months, variation and adjustments."""

    def test_december_is_the_only_peak(self, december_history):
        analysis = analyze_seasonal_patterns(december_history, 12, base_stock_level=100.0)

        assert analysis.peak_season_months == [12]
        assert analysis.low_season_months == []
        index = analysis.seasonal_index_by_month
        assert index[12] / index[1] == pytest.approx(2.0)
        assert analysis.recommended_seasonal_strategy.startswith("Implement dynamic safety stock")

    def test_two_years_of_history(self, two_year_december_history):
        analysis = analyze_seasonal_patterns(two_year_december_history, 24, base_stock_level=100.0)

        assert analysis.peak_season_months == [12]
        assert analysis.low_season_months == []
        index = analysis.seasonal_index_by_month
        assert index[12] / index[7] == pytest.approx(2.0)

    def test_adjustments_cover_every_month(self, december_history):
        analysis = analyze_seasonal_patterns(december_history, 12, base_stock_level=100.0)

        adjustments = analysis.inventory_adjustments
        assert [a.month for a in adjustments] == list(range(1, 13))
        december = adjustments[11]
        assert december.recommended_stock_level == pytest.approx(100.0 * analysis.seasonal_index_by_month[12])
        assert december.reason == "High demand season - increase stock"
        assert adjustments[0].reason == "Normal demand - maintain average stock"

    def test_unobserved_months_default_to_neutral(self, flat_history):
        analysis = analyze_seasonal_patterns(flat_history, 3, base_stock_level=80.0)

        january = analysis.inventory_adjustments[0]
        assert january.recommended_stock_level == pytest.approx(80.0)
        assert january.percentage_change_from_average == pytest.approx(0.0)
        assert analysis.seasonal_variation_coefficient == pytest.approx(0.0)
        assert analysis.trend_direction == "Stable"
        assert analysis.peak_season_months == []

    def test_trend_direction(self):
        start = date(2024, 1, 1)
        rising = [DemandObservation(start + timedelta(days=i), 10.0 + i) for i in range(60)]
        falling = [DemandObservation(start + timedelta(days=i), 100.0 - i) for i in range(60)]

        assert analyze_seasonal_patterns(rising, 2).trend_direction == "Increasing"
        assert analyze_seasonal_patterns(falling, 2).trend_direction == "Decreasing"

    def test_low_season(self):
        start = date(2023, 1, 1)
        history = []
        for i in range(365):
            day = start + timedelta(days=i)
            history.append(DemandObservation(day, 2.0 if day.month == 7 else 10.0))

        analysis = analyze_seasonal_patterns(history, 12)
        assert analysis.low_season_months == [7]


class TestSeasonalErrors:
    """Invalid inputs."""

    def test_empty_history(self):
        with pytest.raises(InsufficientDataError):
            analyze_seasonal_patterns([], 12)

    def test_period_must_be_positive(self, flat_history):
        with pytest.raises(InvalidParametersError) as exc_info:
            analyze_seasonal_patterns(flat_history, 0)
        assert exc_info.value.field == "analysis_period_months"

    def test_negative_base_stock(self, flat_history):
        with pytest.raises(InvalidParametersError):
            analyze_seasonal_patterns(flat_history, 3, base_stock_level=-1.0)
