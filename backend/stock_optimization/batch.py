"""
═══════════════════════════════════════════════════════════════════════════════
                    BATCH ORCHESTRATOR
═══════════════════════════════════════════════════════════════════════════════

Runs the stocking parameter optimizer for every product at a location.

Products are independent, so they fan out on a bounded thread pool. The pool
is sized to the history source's connection pool rather than to CPU count:
the dominant cost is fetching movement rows, and more workers than
connections would only queue on pool checkout.

Failure handling per product:
    InsufficientDataError / NotFoundError  → logged, product skipped
    InvalidParametersError (zero demand)   → logged, product skipped
    HistorySourceError                     → propagates, run aborted
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .clock import Clock, SystemClock, history_window
from .config import EngineSettings, OptimizationParameters
from .demand_stats import densify
from .errors import InvalidParametersError, NotFoundError
from .models import InventoryOptimizationReport, OptimizationResult
from .optimizer import optimize_single_product
from .sources import DemandHistorySource

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_RECOMMENDATIONS = [
    "Implement automated reorder point calculations",
    "Set up regular inventory optimization reviews",
    "Consider implementing ABC analysis for prioritization",
]


def run_bounded(task: Callable[[T], R], items: Sequence[T], workers: int) -> List[R]:
    """Apply `task` to every item on at most `workers` threads, keeping input order."""
    if not items:
        return []
    with ThreadPoolExecutor(max_workers=max(1, min(workers, len(items)))) as executor:
        return list(executor.map(task, items))


def optimize_products(
    source: DemandHistorySource,
    location_id: str,
    product_ids: Sequence[str],
    parameters: OptimizationParameters,
    settings: Optional[EngineSettings] = None,
    clock: Optional[Clock] = None,
) -> Tuple[List[OptimizationResult], List[str]]:
    """
    Optimize a list of products at one location.

    Returns:
        (results in product order, ids of skipped products)
    """
    settings = settings or EngineSettings()
    clock = clock or SystemClock()

    def _optimize(product_id: str) -> Optional[OptimizationResult]:
        history = source.fetch_history(product_id, location_id, settings.optimizer.history_days)
        history = densify(
            history,
            settings.forecast.fill_gaps,
            window=history_window(clock, settings.optimizer.history_days),
        )
        try:
            return optimize_single_product(
                history,
                parameters,
                product_id=product_id,
                location_id=location_id,
                policy=settings.optimizer,
                clock=clock,
            )
        except NotFoundError as e:
            logger.warning(f"Skipping {product_id}@{location_id}: {e}")
        except InvalidParametersError as e:
            logger.warning(f"Skipping {product_id}@{location_id}, no positive demand: {e}")
        return None

    outcomes = run_bounded(_optimize, list(product_ids), settings.worker_count)

    results = [r for r in outcomes if r is not None]
    skipped = [p for p, r in zip(product_ids, outcomes) if r is None]
    return results, skipped


def optimize_location_inventory(
    source: DemandHistorySource,
    location_id: str,
    parameters: OptimizationParameters,
    settings: Optional[EngineSettings] = None,
    clock: Optional[Clock] = None,
) -> InventoryOptimizationReport:
    """
    Location-wide optimization report.

    Args:
        source: History source
        location_id: Location to optimize
        parameters: Cost and service-level parameters shared by all products
        settings: Worker count and policies
        clock: Source of timestamps

    Returns:
        InventoryOptimizationReport with one result per product that had
        usable history

    Raises:
        HistorySourceError: the history source failed
    """
    settings = settings or EngineSettings()
    clock = clock or SystemClock()

    product_ids = source.list_products(location_id)
    results, skipped = optimize_products(source, location_id, product_ids, parameters, settings, clock)

    stock = source.stock_levels(location_id)
    # Annual holding cost of the stock on hand
    total_current_investment = sum(
        stock.get(r.product_id, 0.0) * parameters.holding_cost_rate for r in results
    )
    total_recommended_investment = sum(r.expected_total_cost for r in results)
    # Savings compare holding cost only
    recommended_holding_cost = sum(r.expected_holding_cost for r in results)
    expected_cost_savings = max(0.0, total_current_investment - recommended_holding_cost)

    constraints_violated = _check_constraints(location_id, parameters, results, total_recommended_investment)

    recommendations = list(DEFAULT_RECOMMENDATIONS)
    if skipped:
        recommendations.append(
            f"Review movement data for {len(skipped)} products without usable demand history"
        )
    if constraints_violated:
        recommendations.append("Adjust service levels or constraints before applying these parameters")

    logger.info(
        f"Location {location_id}: optimized {len(results)}/{len(product_ids)} products, "
        f"skipped {len(skipped)}, recommended investment {total_recommended_investment:.2f}"
    )

    return InventoryOptimizationReport(
        location_id=location_id,
        optimization_date=clock.now(),
        total_products_analyzed=len(results),
        total_current_investment=total_current_investment,
        total_recommended_investment=total_recommended_investment,
        expected_cost_savings=expected_cost_savings,
        optimization_results=results,
        skipped_products=skipped,
        constraints_violated=constraints_violated,
        recommendations=recommendations,
    )


def _check_constraints(
    location_id: str,
    parameters: OptimizationParameters,
    results: Sequence[OptimizationResult],
    total_recommended_investment: float,
) -> List[str]:
    violated = []

    limit = parameters.max_inventory_investment
    if limit is not None and total_recommended_investment > limit:
        violated.append(
            f"Recommended investment {total_recommended_investment:.2f} exceeds maximum {limit:.2f}"
        )

    capacity = parameters.storage_constraints.get(location_id)
    if capacity is not None:
        required = sum(r.max_stock for r in results)
        if required > capacity:
            violated.append(
                f"Storage capacity at {location_id} exceeded: {required:.0f} units required, "
                f"{capacity:.0f} available"
            )

    return violated
