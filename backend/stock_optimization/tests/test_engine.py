"""
════════════════════════════════════════════════════════════════════════════════
TESTS - Inventory Optimization Engine
════════════════════════════════════════════════════════════════════════════════

End-to-end behaviour of the facade over an in-memory history source.
"""

from datetime import date, timedelta

import pytest

from backend.stock_optimization.config import EngineSettings, ForecastPolicy, OptimizerPolicy
from backend.stock_optimization.engine import InventoryOptimizationEngine
from backend.stock_optimization.errors import InsufficientDataError, InvalidParametersError
from backend.stock_optimization.models import RiskLevel
from backend.stock_optimization.sources import InMemoryHistorySource


class TestStockingOperations:
    """Single product, location batch and replenishment rules."""

    def test_single_product(self, engine, parameters):
        result = engine.optimize_single_product("P1", "WH-01", parameters)

        assert result.reorder_point == pytest.approx(70.0)
        assert result.safety_stock == 0.0

    def test_single_product_without_history(self, engine, parameters):
        with pytest.raises(InsufficientDataError):
            engine.optimize_single_product("P5", "WH-01", parameters)

    def test_idempotent_under_fixed_clock(self, engine, parameters):
        first = engine.optimize_single_product("P2", "WH-01", parameters)
        second = engine.optimize_single_product("P2", "WH-01", parameters)

        assert first.to_dict() == second.to_dict()

    def test_location_inventory(self, engine, parameters):
        report = engine.optimize_location_inventory("WH-01", parameters)

        assert report.total_products_analyzed == 4
        assert report.skipped_products == ["P5"]

    def test_replenishment_cycles(self, engine, parameters):
        rules = engine.optimize_replenishment_cycles("WH-01", parameters)

        assert [r.product_id for r in rules] == ["P1", "P2", "P3", "P4"]
        assert rules[0].reorder_point == 70

    def test_building_blocks(self, engine):
        assert engine.calculate_economic_order_quantity(3650, 50, 0.25) == pytest.approx(1208.30, abs=0.01)
        assert engine.calculate_reorder_point(10.0, 7, 3.0) == pytest.approx(73.0)
        assert engine.calculate_safety_stock("P1", "WH-01", 0.95, 7) == 0.0
        assert engine.calculate_safety_stock("P2", "WH-01", 0.95, 7) > 0

    def test_safety_stock_validates_service_level(self, engine):
        with pytest.raises(InvalidParametersError):
            engine.calculate_safety_stock("P2", "WH-01", 1.5, 7)


class TestForecastAndRisk:
    """Forecast and stockout outlook."""

    def test_forecast(self, engine):
        forecast = engine.generate_demand_forecast("P1", "WH-01", 14)

        assert forecast.product_id == "P1"
        assert forecast.daily_demand_forecast == pytest.approx([10.0] * 14)

    def test_stockout_risk_uses_current_stock(self, engine):
        # P1: 50 units on hand, 10/day
        analysis = engine.analyze_stockout_risk("P1", "WH-01")

        assert analysis.current_stock == 50.0
        assert analysis.days_until_stockout == 6
        assert analysis.risk_level == RiskLevel.CRITICAL

    def test_stockout_risk_rejects_zero_horizon(self, engine):
        with pytest.raises(InvalidParametersError):
            engine.analyze_stockout_risk("P1", "WH-01", forecast_horizon_days=0)

    def test_seasonal_patterns_default_base_stock(self, engine):
        analysis = engine.analyze_seasonal_patterns("P1", "WH-01", 12)

        assert analysis.analysis_period_months == 12
        assert analysis.inventory_adjustments[0].recommended_stock_level == pytest.approx(50.0)


class TestNetworkAndTurnover:
    """Cross-location operations."""

    def test_supply_chain_network(self, engine):
        result = engine.optimize_supply_chain_network(["WH-02", "WH-01"])

        # Only P4 (1000 at WH-01, absent at WH-02) pairs a surplus with a deficit
        transfers = [
            (t.from_location_id, t.to_location_id, t.product_id, t.quantity, t.urgency)
            for t in result.recommended_stock_transfers
        ]
        assert transfers == [("WH-01", "WH-02", "P4", 100.0, "High")]
        assert result.cost_savings_potential == pytest.approx(150.0)

        gaps = [(p.location_id, p.product_id, p.quantity) for p in result.recommended_procurement_changes]
        assert gaps == [("WH-01", "P3", 30.0), ("WH-01", "P5", 20.0)]
        assert result.locations_analyzed == ["WH-02", "WH-01"]

    def test_inventory_turnover(self, engine):
        result = engine.calculate_inventory_turnover_optimization("WH-01", 10.0)

        by_product = {r.product_id: r for r in result.optimization_recommendations}
        # P4: 1000 on hand, 2250 sold; target stock 225
        assert set(by_product) == {"P2", "P4", "P5"}
        assert by_product["P4"].quantity_adjustment == pytest.approx(-775.0)
        assert by_product["P4"].priority == "High"
        assert result.target_turnover_ratio == 10.0
        assert result.current_turnover_ratio > 0


class TestQuietDays:
    """Gap filling across the whole lookback window."""

    @pytest.fixture
    def stopped_source(self, clock):
        # 10/day for ten days, nothing since 2024-05-10
        history = [(date(2024, 5, 1) + timedelta(days=i), 10.0) for i in range(10)]
        return InMemoryHistorySource({("P9", "WH-01"): history}, {"WH-01": {"P9": 40.0}}, clock=clock)

    def test_trailing_quiet_days_count_as_zero_demand(self, stopped_source, clock, parameters):
        settings = EngineSettings(
            forecast=ForecastPolicy(fill_gaps=True),
            optimizer=OptimizerPolicy(history_days=60),
        )
        engine = InventoryOptimizationEngine(stopped_source, settings=settings, clock=clock)

        result = engine.optimize_single_product("P9", "WH-01", parameters)
        forecast = engine.generate_demand_forecast("P9", "WH-01", 7)

        # 100 units over 2024-05-01..2024-06-29
        assert result.average_daily_demand == pytest.approx(100.0 / 60)
        assert forecast.daily_demand_forecast[0] < 1.0

    def test_observed_days_only_without_gap_filling(self, stopped_source, clock, parameters):
        engine = InventoryOptimizationEngine(stopped_source, clock=clock)

        result = engine.optimize_single_product("P9", "WH-01", parameters)

        assert result.average_daily_demand == pytest.approx(10.0)
