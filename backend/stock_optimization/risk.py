"""
═══════════════════════════════════════════════════════════════════════════════
                    STOCKOUT RISK ANALYZER
═══════════════════════════════════════════════════════════════════════════════

Walks a demand forecast against current stock.

    days_until_stockout = min{ d : Σ_{i<=d} F(i) > stock }

    Risk level:
        d <= 7   → Critical
        d <= 30  → High
        d <= 60  → Medium
        otherwise (or no stockout within the horizon) → Low

    30/60/90-day probabilities:
        BINARY (default): 1.0 if cumulative demand at the checkpoint exceeds
            stock, else 0.0. A flag, not a statistical confidence.
        NORMAL: P(C_c > stock) with C_c ~ N(Σ_{i<=c} F(i), c · σ²), where σ² is
            the forecast's demand variance.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

from scipy import stats

from .clock import Clock, SystemClock
from .config import ProbabilityMode, RiskPolicy
from .errors import InvalidParametersError
from .models import DemandForecast, RiskLevel, StockoutRiskAnalysis

logger = logging.getLogger(__name__)


RECOMMENDED_ACTIONS: Dict[RiskLevel, List[str]] = {
    RiskLevel.CRITICAL: [
        "Place emergency order immediately",
        "Contact suppliers for expedited delivery",
        "Consider temporary product substitution",
    ],
    RiskLevel.HIGH: [
        "Place replenishment order within 24 hours",
        "Monitor stock levels daily",
        "Prepare contingency suppliers",
    ],
    RiskLevel.MEDIUM: [
        "Schedule replenishment order",
        "Review demand forecast accuracy",
    ],
    RiskLevel.LOW: [
        "Continue normal monitoring",
    ],
}


def classify_risk(days_until_stockout: Optional[int], policy: Optional[RiskPolicy] = None) -> RiskLevel:
    policy = policy or RiskPolicy()
    if days_until_stockout is None:
        return RiskLevel.LOW
    if days_until_stockout <= policy.critical_days:
        return RiskLevel.CRITICAL
    if days_until_stockout <= policy.high_days:
        return RiskLevel.HIGH
    if days_until_stockout <= policy.medium_days:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def analyze_stockout_risk(
    current_stock: float,
    forecast: DemandForecast,
    policy: Optional[RiskPolicy] = None,
    clock: Optional[Clock] = None,
) -> StockoutRiskAnalysis:
    """
    Stockout outlook of current stock against a forecast.

    Args:
        current_stock: Units on hand (>= 0)
        forecast: Daily demand forecast
        policy: Thresholds, checkpoints and probability mode
        clock: Source of the analysis date

    Returns:
        StockoutRiskAnalysis

    Raises:
        InvalidParametersError: negative current stock
    """
    policy = policy or RiskPolicy()
    clock = clock or SystemClock()

    if current_stock < 0:
        raise InvalidParametersError(
            f"Current stock cannot be negative, got {current_stock}", field="current_stock"
        )

    cumulative: List[float] = []
    running = 0.0
    days_until_stockout: Optional[int] = None
    for day, daily_demand in enumerate(forecast.daily_demand_forecast, start=1):
        running += daily_demand
        cumulative.append(running)
        if days_until_stockout is None and running > current_stock:
            days_until_stockout = day

    probabilities = [
        _checkpoint_probability(checkpoint, current_stock, cumulative, days_until_stockout,
                                forecast.demand_variance, policy)
        for checkpoint in policy.checkpoints
    ]

    risk_level = classify_risk(days_until_stockout, policy)

    logger.debug(
        f"Stockout risk {forecast.product_id}@{forecast.location_id}: "
        f"stock={current_stock}, days_until_stockout={days_until_stockout}, level={risk_level.value}"
    )

    return StockoutRiskAnalysis(
        product_id=forecast.product_id,
        location_id=forecast.location_id,
        analysis_date=clock.now(),
        current_stock=current_stock,
        stockout_probability_30_days=probabilities[0],
        stockout_probability_60_days=probabilities[1],
        stockout_probability_90_days=probabilities[2],
        days_until_stockout=days_until_stockout,
        risk_level=risk_level,
        recommended_actions=list(RECOMMENDED_ACTIONS[risk_level]),
        contributing_factors=_contributing_factors(current_stock, forecast, policy),
    )


def _checkpoint_probability(
    checkpoint: int,
    current_stock: float,
    cumulative: List[float],
    days_until_stockout: Optional[int],
    demand_variance: float,
    policy: RiskPolicy,
) -> float:
    if policy.probability_mode == ProbabilityMode.NORMAL and cumulative:
        days = min(checkpoint, len(cumulative))
        mean_demand = cumulative[days - 1]
        std_demand = math.sqrt(days * demand_variance)
        if std_demand > 0:
            return float(stats.norm.sf(current_stock, loc=mean_demand, scale=std_demand))
        return 1.0 if mean_demand > current_stock else 0.0

    # Demand is non-negative, so cumulative demand never decreases: a stockout
    # on or before the checkpoint means the checkpoint total exceeds stock too.
    if days_until_stockout is not None and days_until_stockout <= checkpoint:
        return 1.0
    return 0.0


def _contributing_factors(
    current_stock: float,
    forecast: DemandForecast,
    policy: RiskPolicy,
) -> List[str]:
    factors = [f"Current stock level: {current_stock:.0f} units"]

    if forecast.trend_component > 0.01:
        factors.append(f"Rising demand trend (+{forecast.trend_component:.2f} units/day)")
    elif forecast.trend_component < -0.01:
        factors.append(f"Declining demand trend ({forecast.trend_component:.2f} units/day)")
    else:
        factors.append("Stable demand trend")

    horizon = forecast.forecast_horizon_days
    mean_daily = forecast.total_demand / horizon if horizon else 0.0
    if mean_daily > 0:
        cv = math.sqrt(forecast.demand_variance) / mean_daily
        if cv > policy.volatile_cv:
            factors.append(f"High historical demand variability (CV={cv:.2f})")
        else:
            factors.append(f"Historical demand variability (CV={cv:.2f})")
        factors.append(f"Stock covers {current_stock / mean_daily:.1f} days of forecast demand")
    else:
        factors.append("No demand forecast within the horizon")

    return factors
