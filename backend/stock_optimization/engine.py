"""
═══════════════════════════════════════════════════════════════════════════════
                    INVENTORY OPTIMIZATION ENGINE
═══════════════════════════════════════════════════════════════════════════════

Facade wiring a DemandHistorySource to the forecasting, optimization, risk,
rebalancing, seasonality and turnover components.

The engine holds no mutable state of its own: every call reads what it needs
from the source and returns a fresh result object. Multi-product operations
fan out on a thread pool bounded by EngineSettings.worker_count.

Usage:
    source = SqlHistorySource(create_history_engine(settings))
    engine = InventoryOptimizationEngine(source, settings)
    report = engine.optimize_location_inventory("WH-01", build_parameters())
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from . import batch, optimizer, rebalancing, replenishment, risk, seasonality
from .clock import Clock, SystemClock, history_window
from .config import EngineSettings, OptimizationParameters
from .demand_stats import densify
from .forecasting import DemandForecaster
from .models import (
    DemandForecast,
    DemandObservation,
    InventoryOptimizationReport,
    OptimizationResult,
    ReplenishmentRule,
    SeasonalAnalysis,
    StockoutRiskAnalysis,
    StockPosition,
    SupplyChainOptimization,
    TurnoverOptimizationResult,
)
from .sources import DemandHistorySource

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30


class InventoryOptimizationEngine:
    """
    Demand forecasting and stock optimization against one history source.

    Args:
        source: Demand history and stock provider
        settings: Policies, pool sizing and worker count
        clock: Source of "today" and of result timestamps
    """

    def __init__(
        self,
        source: DemandHistorySource,
        settings: Optional[EngineSettings] = None,
        clock: Optional[Clock] = None,
    ):
        self.source = source
        self.settings = settings or EngineSettings()
        self.clock = clock or SystemClock()
        self.forecaster = DemandForecaster(policy=self.settings.forecast, clock=self.clock)
        logger.debug(f"Inventory optimization engine ready: {self.settings.to_dict()}")

    def _history(self, product_id: str, location_id: str, days_back: int) -> List[DemandObservation]:
        history = self.source.fetch_history(product_id, location_id, days_back)
        return densify(
            history,
            self.settings.forecast.fill_gaps,
            window=history_window(self.clock, days_back),
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # STOCKING PARAMETERS
    # ═══════════════════════════════════════════════════════════════════════════

    def optimize_single_product(
        self,
        product_id: str,
        location_id: str,
        parameters: OptimizationParameters,
    ) -> OptimizationResult:
        history = self._history(product_id, location_id, self.settings.optimizer.history_days)
        return optimizer.optimize_single_product(
            history,
            parameters,
            product_id=product_id,
            location_id=location_id,
            policy=self.settings.optimizer,
            clock=self.clock,
        )

    def optimize_location_inventory(
        self,
        location_id: str,
        parameters: OptimizationParameters,
    ) -> InventoryOptimizationReport:
        return batch.optimize_location_inventory(
            self.source, location_id, parameters, settings=self.settings, clock=self.clock
        )

    def calculate_economic_order_quantity(
        self,
        annual_demand: float,
        ordering_cost: float,
        holding_cost_rate: float,
    ) -> float:
        return optimizer.calculate_economic_order_quantity(annual_demand, ordering_cost, holding_cost_rate)

    def calculate_safety_stock(
        self,
        product_id: str,
        location_id: str,
        service_level: float,
        lead_time_days: float,
        demand_variability: float = 0.0,
    ) -> float:
        """Safety stock from the recent history window (180 days by default)."""
        history = self._history(product_id, location_id, self.settings.optimizer.safety_stock_history_days)
        return optimizer.calculate_safety_stock(history, service_level, lead_time_days, demand_variability)

    def calculate_reorder_point(
        self,
        average_daily_demand: float,
        lead_time_days: float,
        safety_stock: float,
    ) -> float:
        return optimizer.calculate_reorder_point(average_daily_demand, lead_time_days, safety_stock)

    def optimize_replenishment_cycles(
        self,
        location_id: str,
        parameters: OptimizationParameters,
        review_period_days: int = 30,
    ) -> List[ReplenishmentRule]:
        """Reorder-point rules for every product at the location with usable history."""
        product_ids = self.source.list_products(location_id)
        results, _ = batch.optimize_products(
            self.source, location_id, product_ids, parameters, self.settings, self.clock
        )
        return [
            replenishment.build_replenishment_rule(result, parameters, review_period_days)
            for result in results
        ]

    # ═══════════════════════════════════════════════════════════════════════════
    # FORECAST & RISK
    # ═══════════════════════════════════════════════════════════════════════════

    def generate_demand_forecast(
        self,
        product_id: str,
        location_id: str,
        forecast_horizon_days: int,
        parameters: Optional[OptimizationParameters] = None,
    ) -> DemandForecast:
        history = self.source.fetch_history(product_id, location_id, self.settings.optimizer.history_days)
        return self.forecaster.forecast(
            history,
            forecast_horizon_days,
            product_id=product_id,
            location_id=location_id,
            parameters=parameters,
            history_days=self.settings.optimizer.history_days,
        )

    def analyze_stockout_risk(
        self,
        product_id: str,
        location_id: str,
        forecast_horizon_days: Optional[int] = None,
    ) -> StockoutRiskAnalysis:
        horizon = forecast_horizon_days
        if horizon is None:
            horizon = self.settings.risk.default_horizon_days
        forecast = self.generate_demand_forecast(product_id, location_id, horizon)
        current_stock = self.source.current_stock(product_id, location_id)
        return risk.analyze_stockout_risk(current_stock, forecast, policy=self.settings.risk, clock=self.clock)

    def analyze_seasonal_patterns(
        self,
        product_id: str,
        location_id: str,
        historical_months: int,
        base_stock_level: Optional[float] = None,
    ) -> SeasonalAnalysis:
        """
        Seasonal profile over the last `historical_months` (30-day months).

        Monthly adjustments scale `base_stock_level`, defaulting to the
        current stock of the product at the location.
        """
        history = self._history(product_id, location_id, max(0, historical_months) * DAYS_PER_MONTH)
        if base_stock_level is None:
            base_stock_level = self.source.current_stock(product_id, location_id)
        return seasonality.analyze_seasonal_patterns(
            history,
            historical_months,
            base_stock_level=base_stock_level,
            product_id=product_id,
            location_id=location_id,
        )

    # ═══════════════════════════════════════════════════════════════════════════
    # NETWORK & TURNOVER
    # ═══════════════════════════════════════════════════════════════════════════

    def optimize_supply_chain_network(self, location_ids: Sequence[str]) -> SupplyChainOptimization:
        locations = list(dict.fromkeys(location_ids))
        levels = batch.run_bounded(self.source.stock_levels, locations, self.settings.worker_count)
        return rebalancing.rebalance(
            locations,
            dict(zip(locations, levels)),
            policy=self.settings.rebalancing,
            clock=self.clock,
        )

    def calculate_inventory_turnover_optimization(
        self,
        location_id: str,
        target_turnover_ratio: float,
        parameters: Optional[OptimizationParameters] = None,
    ) -> TurnoverOptimizationResult:
        """Turnover of stocked products against trailing-year sales."""
        stock = self.source.stock_levels(location_id)
        history_days = self.settings.turnover.history_days

        def _position(product_id: str) -> StockPosition:
            history = self.source.fetch_history(product_id, location_id, history_days)
            return StockPosition(
                product_id=product_id,
                current_stock=stock[product_id],
                annual_sales=sum(o.quantity for o in history),
            )

        positions = batch.run_bounded(_position, list(stock), self.settings.worker_count)
        parameters = parameters or OptimizationParameters()
        return replenishment.optimize_turnover(
            location_id,
            positions,
            target_turnover_ratio,
            carrying_cost_rate=parameters.holding_cost_rate,
            policy=self.settings.turnover,
            clock=self.clock,
        )
