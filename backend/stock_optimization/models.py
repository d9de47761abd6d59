"""
═══════════════════════════════════════════════════════════════════════════════
                    STOCK OPTIMIZATION - Value Objects
═══════════════════════════════════════════════════════════════════════════════

Inputs (DemandObservation) and outputs (optimization, forecast, risk,
rebalancing, seasonal and turnover results) of the engine. Results are
created once per run and never updated in place; re-running produces a new
object. Every output exposes to_dict() for the calling service.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import InvalidDataError


# ═══════════════════════════════════════════════════════════════════════════════
# INPUTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DemandObservation:
    """Demand of one product at one location on one day."""
    date: date
    quantity: float

    def __post_init__(self):
        if not math.isfinite(self.quantity) or self.quantity < 0:
            raise InvalidDataError(
                f"Invalid demand {self.quantity} on {self.date.isoformat()}"
            )


def as_observations(rows: Sequence[Any]) -> List[DemandObservation]:
    """Accept DemandObservation objects or (date, quantity) pairs."""
    observations = []
    for row in rows:
        if isinstance(row, DemandObservation):
            observations.append(row)
        else:
            day, quantity = row
            if isinstance(day, datetime):
                day = day.date()
            observations.append(DemandObservation(day, float(quantity)))
    return observations


@dataclass
class StockPosition:
    """Stock on hand and trailing annual sales of a product at a location."""
    product_id: str
    current_stock: float
    annual_sales: float


# ═══════════════════════════════════════════════════════════════════════════════
# STOCKING PARAMETERS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class OptimizationResult:
    """
    Recommended stocking parameters for one product/location pair.

    Attributes:
        reorder_point: avg_daily_demand * lead_time_days + safety_stock
        order_quantity: Economic Order Quantity
        safety_stock: Buffer sized for the target service level
        max_stock: reorder_point + order_quantity
        expected_total_cost: holding + ordering (annual)
        expected_stockout_cost: reported separately, not part of the total
        confidence_interval: (low, high) band around the total cost
        validity_period_days: How long the recommendation should be trusted
    """
    product_id: str
    location_id: str
    reorder_point: float
    order_quantity: float
    safety_stock: float
    max_stock: float
    expected_service_level: float
    expected_total_cost: float
    expected_holding_cost: float
    expected_ordering_cost: float
    expected_stockout_cost: float
    confidence_interval: Tuple[float, float]
    optimization_method: str
    last_updated: datetime
    validity_period_days: int
    average_daily_demand: float = 0.0
    demand_std_dev: float = 0.0
    lead_time_days: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "recommended_reorder_point": self.reorder_point,
            "recommended_order_quantity": self.order_quantity,
            "recommended_safety_stock": self.safety_stock,
            "recommended_max_stock": self.max_stock,
            "expected_service_level": self.expected_service_level,
            "expected_total_cost": self.expected_total_cost,
            "expected_holding_cost": self.expected_holding_cost,
            "expected_ordering_cost": self.expected_ordering_cost,
            "expected_stockout_cost": self.expected_stockout_cost,
            "confidence_interval": list(self.confidence_interval),
            "optimization_method": self.optimization_method,
            "last_updated": self.last_updated.isoformat(),
            "validity_period_days": self.validity_period_days,
            "average_daily_demand": self.average_daily_demand,
            "demand_std_dev": self.demand_std_dev,
            "lead_time_days": self.lead_time_days,
        }


@dataclass
class InventoryOptimizationReport:
    """
    Location-wide batch result. Skipped products had no usable history.

    total_current_investment is the annual holding cost of the stock on hand;
    total_recommended_investment is holding + ordering of the recommended
    policies; expected_cost_savings compares the two holding costs.
    """
    location_id: str
    optimization_date: datetime
    total_products_analyzed: int
    total_current_investment: float
    total_recommended_investment: float
    expected_cost_savings: float
    optimization_results: List[OptimizationResult] = field(default_factory=list)
    skipped_products: List[str] = field(default_factory=list)
    constraints_violated: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location_id": self.location_id,
            "optimization_date": self.optimization_date.isoformat(),
            "total_products_analyzed": self.total_products_analyzed,
            "total_current_investment": self.total_current_investment,
            "total_recommended_investment": self.total_recommended_investment,
            "expected_cost_savings": self.expected_cost_savings,
            "optimization_results": [r.to_dict() for r in self.optimization_results],
            "skipped_products": list(self.skipped_products),
            "constraints_violated": list(self.constraints_violated),
            "recommendations": list(self.recommendations),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# FORECAST
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class DemandForecast:
    """
    Day-by-day demand forecast.

    daily_demand_forecast and confidence_intervals both have exactly
    forecast_horizon_days entries; day 1 is the day after forecast_date.
    seasonality_component holds the 12 monthly indices (Jan..Dec).
    """
    product_id: str
    location_id: str
    forecast_date: datetime
    forecast_horizon_days: int
    daily_demand_forecast: List[float]
    demand_variance: float
    seasonality_component: List[float]
    trend_component: float
    confidence_intervals: List[Tuple[float, float]]
    forecast_accuracy: float
    method_used: str
    metrics: Dict[str, float] = field(default_factory=dict)

    @property
    def total_demand(self) -> float:
        return float(sum(self.daily_demand_forecast))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "forecast_date": self.forecast_date.isoformat(),
            "forecast_horizon_days": self.forecast_horizon_days,
            "daily_demand_forecast": list(self.daily_demand_forecast),
            "demand_variance": self.demand_variance,
            "seasonality_component": list(self.seasonality_component),
            "trend_component": self.trend_component,
            "confidence_intervals": [list(ci) for ci in self.confidence_intervals],
            "forecast_accuracy": self.forecast_accuracy,
            "method_used": self.method_used,
            "metrics": dict(self.metrics),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# STOCKOUT RISK
# ═══════════════════════════════════════════════════════════════════════════════

class RiskLevel(str, Enum):
    """Stockout risk classification."""
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


@dataclass
class StockoutRiskAnalysis:
    """Stockout outlook of one product/location against its forecast."""
    product_id: str
    location_id: str
    analysis_date: datetime
    current_stock: float
    stockout_probability_30_days: float
    stockout_probability_60_days: float
    stockout_probability_90_days: float
    days_until_stockout: Optional[int]
    risk_level: RiskLevel
    recommended_actions: List[str] = field(default_factory=list)
    contributing_factors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "analysis_date": self.analysis_date.isoformat(),
            "current_stock": self.current_stock,
            "stockout_probability_30_days": self.stockout_probability_30_days,
            "stockout_probability_60_days": self.stockout_probability_60_days,
            "stockout_probability_90_days": self.stockout_probability_90_days,
            "days_until_potential_stockout": self.days_until_stockout,
            "risk_level": self.risk_level.value,
            "recommended_actions": list(self.recommended_actions),
            "contributing_factors": list(self.contributing_factors),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# NETWORK REBALANCING
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class RecommendedStockTransfer:
    """Move `quantity` of a product from a surplus to a deficit location."""
    from_location_id: str
    to_location_id: str
    product_id: str
    quantity: float
    transfer_cost: float
    expected_benefit: float
    urgency: str
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "from_location_id": self.from_location_id,
            "to_location_id": self.to_location_id,
            "product_id": self.product_id,
            "recommended_quantity": self.quantity,
            "transfer_cost": self.transfer_cost,
            "expected_benefit": self.expected_benefit,
            "urgency_level": self.urgency,
            "reason": self.reason,
        }


@dataclass
class RecommendedProcurement:
    """Deficit position that no location in the network can cover."""
    location_id: str
    product_id: str
    quantity: float
    recommended_order_date: datetime
    risk_assessment: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location_id": self.location_id,
            "product_id": self.product_id,
            "recommended_quantity": self.quantity,
            "recommended_order_date": self.recommended_order_date.isoformat(),
            "risk_assessment": self.risk_assessment,
        }


@dataclass
class SupplyChainOptimization:
    """Result of one network rebalancing run."""
    optimization_id: str
    optimization_date: datetime
    locations_analyzed: List[str]
    products_analyzed: List[str]
    network_efficiency_score: float
    recommended_stock_transfers: List[RecommendedStockTransfer] = field(default_factory=list)
    recommended_procurement_changes: List[RecommendedProcurement] = field(default_factory=list)
    cost_savings_potential: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optimization_id": self.optimization_id,
            "optimization_date": self.optimization_date.isoformat(),
            "locations_analyzed": list(self.locations_analyzed),
            "products_analyzed": list(self.products_analyzed),
            "network_efficiency_score": self.network_efficiency_score,
            "recommended_stock_transfers": [t.to_dict() for t in self.recommended_stock_transfers],
            "recommended_procurement_changes": [p.to_dict() for p in self.recommended_procurement_changes],
            "cost_savings_potential": self.cost_savings_potential,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# SEASONALITY
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class SeasonalInventoryAdjustment:
    month: int
    recommended_stock_level: float
    percentage_change_from_average: float
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "recommended_stock_level": self.recommended_stock_level,
            "percentage_change_from_average": self.percentage_change_from_average,
            "reason": self.reason,
        }


@dataclass
class SeasonalAnalysis:
    """Monthly demand pattern of one product/location."""
    product_id: str
    location_id: str
    analysis_period_months: int
    seasonal_index_by_month: Dict[int, float]
    peak_season_months: List[int]
    low_season_months: List[int]
    seasonal_variation_coefficient: float
    trend_direction: str
    recommended_seasonal_strategy: str
    inventory_adjustments: List[SeasonalInventoryAdjustment] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "analysis_period_months": self.analysis_period_months,
            "seasonal_index_by_month": dict(self.seasonal_index_by_month),
            "peak_season_months": list(self.peak_season_months),
            "low_season_months": list(self.low_season_months),
            "seasonal_variation_coefficient": self.seasonal_variation_coefficient,
            "trend_direction": self.trend_direction,
            "recommended_seasonal_strategy": self.recommended_seasonal_strategy,
            "inventory_adjustments": [a.to_dict() for a in self.inventory_adjustments],
        }


# ═══════════════════════════════════════════════════════════════════════════════
# REPLENISHMENT & TURNOVER
# ═══════════════════════════════════════════════════════════════════════════════

class ReplenishmentType(str, Enum):
    REORDER_POINT = "reorder_point"


@dataclass
class ReplenishmentRule:
    """Reorder-point rule derived from an OptimizationResult (whole units)."""
    product_id: str
    location_id: str
    rule_type: ReplenishmentType
    reorder_point: int
    reorder_quantity: int
    max_stock_level: int
    min_stock_level: int
    safety_stock: int
    lead_time_days: int
    review_period_days: int
    service_level_target: float
    cost_per_order: float
    carrying_cost_rate: float
    automatic_ordering: bool = True
    active: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "rule_type": self.rule_type.value,
            "reorder_point": self.reorder_point,
            "reorder_quantity": self.reorder_quantity,
            "max_stock_level": self.max_stock_level,
            "min_stock_level": self.min_stock_level,
            "safety_stock": self.safety_stock,
            "lead_time_days": self.lead_time_days,
            "review_period_days": self.review_period_days,
            "service_level_target": self.service_level_target,
            "cost_per_order": self.cost_per_order,
            "carrying_cost_rate": self.carrying_cost_rate,
            "automatic_ordering": self.automatic_ordering,
            "active": self.active,
        }


@dataclass
class TurnoverRecommendation:
    product_id: str
    current_turnover: float
    target_turnover: float
    action: str
    quantity_adjustment: float
    expected_impact: float
    priority: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "product_id": self.product_id,
            "current_turnover": self.current_turnover,
            "target_turnover": self.target_turnover,
            "action": self.action,
            "quantity_adjustment": self.quantity_adjustment,
            "expected_impact": self.expected_impact,
            "priority": self.priority,
        }


@dataclass
class TurnoverOptimizationResult:
    location_id: str
    analysis_date: datetime
    current_turnover_ratio: float
    target_turnover_ratio: float
    optimization_recommendations: List[TurnoverRecommendation] = field(default_factory=list)
    expected_working_capital_reduction: float = 0.0
    expected_carrying_cost_savings: float = 0.0
    implementation_timeline_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location_id": self.location_id,
            "analysis_date": self.analysis_date.isoformat(),
            "current_turnover_ratio": self.current_turnover_ratio,
            "target_turnover_ratio": self.target_turnover_ratio,
            "optimization_recommendations": [r.to_dict() for r in self.optimization_recommendations],
            "expected_working_capital_reduction": self.expected_working_capital_reduction,
            "expected_carrying_cost_savings": self.expected_carrying_cost_savings,
            "implementation_timeline_days": self.implementation_timeline_days,
        }
