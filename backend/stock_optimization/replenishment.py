"""
═══════════════════════════════════════════════════════════════════════════════
                    REPLENISHMENT RULES & TURNOVER
═══════════════════════════════════════════════════════════════════════════════

Turns optimizer output into operational rules and flags slow-moving stock.

Reorder-point rule (whole units, truncated):
    reorder_point    = ROP
    reorder_quantity = EOQ
    max_stock_level  = ROP + EOQ
    min_stock_level  = safety_stock

Turnover:
    turnover_i = annual_sales_i / stock_i         (0 when stock_i = 0)
    below target → target_stock_i = annual_sales_i / target
                   excess_i       = stock_i - target_stock_i
                   impact_i       = excess_i · unit_value
    working capital reduction = Σ impact_i
    carrying cost savings     = reduction · carrying_cost_rate
    overall turnover          = Σ annual_sales / Σ stock
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .clock import Clock, SystemClock
from .config import OptimizationParameters, TurnoverPolicy
from .errors import InvalidParametersError
from .models import (
    OptimizationResult,
    ReplenishmentRule,
    ReplenishmentType,
    StockPosition,
    TurnoverOptimizationResult,
    TurnoverRecommendation,
)

logger = logging.getLogger(__name__)


def build_replenishment_rule(
    result: OptimizationResult,
    parameters: OptimizationParameters,
    review_period_days: int = 30,
) -> ReplenishmentRule:
    if review_period_days < 1:
        raise InvalidParametersError(
            f"Review period must be at least 1 day, got {review_period_days}",
            field="review_period_days",
        )

    lead_time = result.lead_time_days or parameters.lead_time_days
    return ReplenishmentRule(
        product_id=result.product_id,
        location_id=result.location_id,
        rule_type=ReplenishmentType.REORDER_POINT,
        reorder_point=int(result.reorder_point),
        reorder_quantity=int(result.order_quantity),
        max_stock_level=int(result.max_stock),
        min_stock_level=int(result.safety_stock),
        safety_stock=int(result.safety_stock),
        lead_time_days=int(lead_time),
        review_period_days=review_period_days,
        service_level_target=result.expected_service_level,
        cost_per_order=parameters.ordering_cost,
        carrying_cost_rate=parameters.holding_cost_rate,
    )


def optimize_turnover(
    location_id: str,
    positions: Sequence[StockPosition],
    target_turnover_ratio: float,
    carrying_cost_rate: float = 0.25,
    policy: Optional[TurnoverPolicy] = None,
    clock: Optional[Clock] = None,
) -> TurnoverOptimizationResult:
    """
    Stock reductions that bring every product up to the target turnover.

    Args:
        location_id: Location being analysed
        positions: Stock and trailing annual sales per product
        target_turnover_ratio: Desired annual sales / stock (> 0)
        carrying_cost_rate: Fraction of freed capital saved per year
        policy: Unit value and priority threshold
        clock: Source of the analysis date

    Raises:
        InvalidParametersError: target ratio <= 0
    """
    policy = policy or TurnoverPolicy()
    clock = clock or SystemClock()

    if target_turnover_ratio <= 0:
        raise InvalidParametersError(
            f"Target turnover ratio must be positive, got {target_turnover_ratio}",
            field="target_turnover_ratio",
        )

    recommendations: List[TurnoverRecommendation] = []
    working_capital_reduction = 0.0

    for position in positions:
        if position.current_stock > 0:
            current_turnover = position.annual_sales / position.current_stock
        else:
            current_turnover = 0.0

        if current_turnover >= target_turnover_ratio:
            continue

        target_stock = position.annual_sales / target_turnover_ratio
        excess = position.current_stock - target_stock
        if excess <= 0:
            continue

        impact = excess * policy.unit_value
        working_capital_reduction += impact
        recommendations.append(TurnoverRecommendation(
            product_id=position.product_id,
            current_turnover=current_turnover,
            target_turnover=target_turnover_ratio,
            action="Reduce inventory level",
            quantity_adjustment=-excess,
            expected_impact=impact,
            priority="High" if excess > policy.high_priority_excess_units else "Medium",
        ))

    total_stock = sum(p.current_stock for p in positions)
    total_sales = sum(p.annual_sales for p in positions)
    overall_turnover = total_sales / total_stock if total_stock > 0 else 0.0

    logger.info(
        f"Turnover at {location_id}: current {overall_turnover:.2f}, target {target_turnover_ratio:.2f}, "
        f"{len(recommendations)} reductions worth {working_capital_reduction:.2f}"
    )

    return TurnoverOptimizationResult(
        location_id=location_id,
        analysis_date=clock.now(),
        current_turnover_ratio=overall_turnover,
        target_turnover_ratio=target_turnover_ratio,
        optimization_recommendations=recommendations,
        expected_working_capital_reduction=working_capital_reduction,
        expected_carrying_cost_savings=working_capital_reduction * carrying_cost_rate,
        implementation_timeline_days=policy.implementation_timeline_days,
    )
