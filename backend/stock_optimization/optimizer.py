"""
═══════════════════════════════════════════════════════════════════════════════
                    STOCKING PARAMETER OPTIMIZER
═══════════════════════════════════════════════════════════════════════════════

EOQ, safety stock, reorder point and cost of a parameter set for one
product/location pair.

Mathematical Formulation:
─────────────────────────
    μ_d  = mean daily demand,  D = 365 · μ_d
    σ_d  = sqrt(sample variance of daily demand)
    L    = lead time (days)

    EOQ  = sqrt(2 · D · S / H)          S = ordering cost, H = holding cost rate
    SS   = max(0, z · σ_d · sqrt(L))    z = Φ⁻¹(service level)
    ROP  = μ_d · L + SS
    Max  = ROP + EOQ

    Holding  = (EOQ / 2 + SS) · H
    Ordering = D / EOQ · S
    Total    = Holding + Ordering,  reported with a ±10% band

    Expected stockout cost (reported, not in Total):
        σ_L = σ_d · sqrt(L),  k = SS / σ_L
        G(k) = φ(k) - k · (1 - Φ(k))            (standard normal loss)
        E[short per cycle] = σ_L · G(k)
        Stockout = p · (D / EOQ) · E[short per cycle]

References:
    Silver, Pyke & Thomas (2016). Inventory and Production Management in
    Supply Chains, ch. 4 and 6.
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np
from scipy import stats

from .clock import Clock, SystemClock
from .config import OptimizationParameters, OptimizerPolicy
from .demand_stats import inverse_normal_cdf, variance
from .errors import InsufficientDataError, InvalidParametersError
from .models import DemandObservation, OptimizationResult, as_observations

logger = logging.getLogger(__name__)

DAYS_PER_YEAR = 365.0


# ═══════════════════════════════════════════════════════════════════════════════
# BUILDING BLOCKS
# ═══════════════════════════════════════════════════════════════════════════════

def calculate_economic_order_quantity(
    annual_demand: float,
    ordering_cost: float,
    holding_cost_rate: float,
) -> float:
    """
    EOQ = sqrt(2 · D · S / H).

    Raises:
        InvalidParametersError: any input <= 0
    """
    if annual_demand <= 0 or ordering_cost <= 0 or holding_cost_rate <= 0:
        raise InvalidParametersError(
            f"Invalid parameters for EOQ calculation: annual_demand={annual_demand}, "
            f"ordering_cost={ordering_cost}, holding_cost_rate={holding_cost_rate}"
        )
    return math.sqrt(2.0 * annual_demand * ordering_cost / holding_cost_rate)


def calculate_safety_stock(
    history: Sequence[DemandObservation],
    service_level: float,
    lead_time_days: float,
    demand_variability: float = 0.0,
) -> float:
    """
    Safety stock for a service level over a lead time.

    With fewer than two observations the variance is approximated as
    (first demand · demand_variability)².

    Raises:
        InvalidParametersError: service level outside (0, 1) or negative lead time
    """
    if service_level <= 0.0 or service_level >= 1.0:
        raise InvalidParametersError(
            "Service level must be between 0 and 1", field="service_level"
        )
    if lead_time_days < 0:
        raise InvalidParametersError(
            f"Lead time cannot be negative, got {lead_time_days}", field="lead_time_days"
        )

    values = [o.quantity for o in as_observations(history)]
    if len(values) > 1:
        demand_variance = variance(values)
    else:
        first = values[0] if values else 0.0
        demand_variance = (first * demand_variability) ** 2

    z = inverse_normal_cdf(service_level)
    safety_stock = z * math.sqrt(demand_variance) * math.sqrt(lead_time_days)
    return max(0.0, safety_stock)


def calculate_reorder_point(
    average_daily_demand: float,
    lead_time_days: float,
    safety_stock: float,
) -> float:
    return max(0.0, average_daily_demand * lead_time_days + safety_stock)


def expected_stockout_cost(
    annual_demand: float,
    order_quantity: float,
    demand_std_dev: float,
    lead_time_days: float,
    safety_stock: float,
    stockout_cost: float,
) -> float:
    """Annual expected shortage penalty via the standard normal loss function."""
    sigma_lead_time = demand_std_dev * math.sqrt(lead_time_days)
    if sigma_lead_time <= 0 or stockout_cost <= 0 or order_quantity <= 0:
        return 0.0

    k = safety_stock / sigma_lead_time
    loss = float(stats.norm.pdf(k) - k * stats.norm.sf(k))
    cycles_per_year = annual_demand / order_quantity
    return max(0.0, stockout_cost * cycles_per_year * sigma_lead_time * loss)


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLE PRODUCT OPTIMIZATION
# ═══════════════════════════════════════════════════════════════════════════════

def optimize_single_product(
    history: Sequence[DemandObservation],
    parameters: OptimizationParameters,
    product_id: str = "",
    location_id: str = "",
    policy: Optional[OptimizerPolicy] = None,
    clock: Optional[Clock] = None,
) -> OptimizationResult:
    """
    Recommended stocking parameters for one product at one location.

    Args:
        history: Demand observations for the lookback window
        parameters: Service level, costs and lead time
        product_id: Product id carried into the result
        location_id: Location id carried into the result
        policy: Cost band, validity window, method label
        clock: Source of the result timestamp

    Returns:
        OptimizationResult

    Raises:
        InsufficientDataError: history is empty
        InvalidParametersError: zero demand or non-positive costs (EOQ undefined)
    """
    policy = policy or OptimizerPolicy()
    clock = clock or SystemClock()

    observations = as_observations(history)
    if not observations:
        raise InsufficientDataError(
            "No historical demand data found",
            product_id=product_id,
            location_id=location_id,
        )

    values = np.asarray([o.quantity for o in observations], dtype=float)
    average_daily_demand = float(values.mean())
    annual_demand = average_daily_demand * DAYS_PER_YEAR
    demand_std_dev = math.sqrt(variance(values))

    eoq = calculate_economic_order_quantity(
        annual_demand, parameters.ordering_cost, parameters.holding_cost_rate
    )

    lead_time_days = parameters.lead_time_days
    z = inverse_normal_cdf(parameters.target_service_level)
    safety_stock = max(0.0, z * demand_std_dev * math.sqrt(lead_time_days))
    reorder_point = average_daily_demand * lead_time_days + safety_stock
    max_stock = reorder_point + eoq

    holding_cost = (eoq / 2.0 + safety_stock) * parameters.holding_cost_rate
    ordering_cost = annual_demand / eoq * parameters.ordering_cost
    total_cost = holding_cost + ordering_cost

    stockout_cost = expected_stockout_cost(
        annual_demand,
        eoq,
        demand_std_dev,
        lead_time_days,
        safety_stock,
        parameters.stockout_cost,
    )

    logger.debug(
        f"Optimized {product_id}@{location_id}: EOQ={eoq:.1f}, SS={safety_stock:.1f}, "
        f"ROP={reorder_point:.1f}, total_cost={total_cost:.2f}"
    )

    return OptimizationResult(
        product_id=product_id,
        location_id=location_id,
        reorder_point=reorder_point,
        order_quantity=eoq,
        safety_stock=safety_stock,
        max_stock=max_stock,
        expected_service_level=parameters.target_service_level,
        expected_total_cost=total_cost,
        expected_holding_cost=holding_cost,
        expected_ordering_cost=ordering_cost,
        expected_stockout_cost=stockout_cost,
        confidence_interval=(
            total_cost * (1.0 - policy.cost_band),
            total_cost * (1.0 + policy.cost_band),
        ),
        optimization_method=policy.method_label,
        last_updated=clock.now(),
        validity_period_days=policy.validity_period_days,
        average_daily_demand=average_daily_demand,
        demand_std_dev=demand_std_dev,
        lead_time_days=lead_time_days,
    )
