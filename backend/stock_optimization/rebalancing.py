"""
═══════════════════════════════════════════════════════════════════════════════
                    NETWORK REBALANCING OPTIMIZER
═══════════════════════════════════════════════════════════════════════════════

Proposes stock transfers of the same product from surplus to deficit
locations.

Rule (per ordered pair of distinct locations, per product):
    from.stock > surplus_threshold (100)  and  to.stock < deficit_threshold (50)
    qty = min(from.stock · 0.3, 100), emitted only when qty > 10
    transfer_cost    = qty · 0.5
    expected_benefit = qty · 2.0
    savings          = Σ qty · (2.0 - 0.5)

A product with no stock record at the destination counts as zero stock there.

Instead of visiting all L² location pairs for every product, locations are
bucketed once per run into surplus and deficit lists per product and only
surplus × deficit combinations are matched. The output is the same as the
pairwise scan, ordered by (from location, to location, product) in the order
the locations were given.

Deficit positions that receive no transfer get a procurement recommendation
topping them up to the deficit threshold.
"""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from .clock import Clock, SystemClock
from .config import RebalancingPolicy
from .models import RecommendedProcurement, RecommendedStockTransfer, SupplyChainOptimization

logger = logging.getLogger(__name__)

StockLevels = Mapping[str, Mapping[str, float]]  # {location_id: {product_id: stock}}


def _index_imbalances(
    location_ids: Sequence[str],
    products: Sequence[str],
    stock_levels: StockLevels,
    policy: RebalancingPolicy,
) -> Tuple[Dict[str, List[str]], Dict[str, List[str]]]:
    """Surplus and deficit locations per product, in location order."""
    surplus: Dict[str, List[str]] = defaultdict(list)
    deficit: Dict[str, List[str]] = defaultdict(list)

    for location_id in location_ids:
        levels = stock_levels.get(location_id, {})
        for product_id in products:
            stock = levels.get(product_id, 0.0)
            if product_id in levels and stock > policy.surplus_threshold:
                surplus[product_id].append(location_id)
            if stock < policy.deficit_threshold:
                deficit[product_id].append(location_id)

    return surplus, deficit


def rebalance(
    location_ids: Sequence[str],
    stock_levels: StockLevels,
    policy: Optional[RebalancingPolicy] = None,
    clock: Optional[Clock] = None,
) -> SupplyChainOptimization:
    """
    Rebalancing proposal for a set of locations.

    Args:
        location_ids: Locations to analyse (duplicates ignored)
        stock_levels: Current stock per location and product
        policy: Thresholds and per-unit economics
        clock: Source of the optimization date

    Returns:
        SupplyChainOptimization with transfers, procurement recommendations
        and the aggregate savings potential
    """
    policy = policy or RebalancingPolicy()
    clock = clock or SystemClock()
    now = clock.now()

    locations = list(dict.fromkeys(location_ids))
    position = {location_id: i for i, location_id in enumerate(locations)}
    products = sorted({
        product_id
        for location_id in locations
        for product_id in stock_levels.get(location_id, {})
    })

    surplus, deficit = _index_imbalances(locations, products, stock_levels, policy)

    transfers: List[RecommendedStockTransfer] = []
    served = set()
    for product_id in products:
        for from_location in surplus.get(product_id, []):
            from_stock = stock_levels[from_location][product_id]
            quantity = min(from_stock * policy.transfer_fraction, policy.max_transfer_quantity)
            if quantity <= policy.min_transfer_quantity:
                continue

            for to_location in deficit.get(product_id, []):
                if to_location == from_location:
                    continue
                to_stock = stock_levels.get(to_location, {}).get(product_id, 0.0)
                transfers.append(RecommendedStockTransfer(
                    from_location_id=from_location,
                    to_location_id=to_location,
                    product_id=product_id,
                    quantity=quantity,
                    transfer_cost=quantity * policy.transfer_cost_per_unit,
                    expected_benefit=quantity * policy.benefit_per_unit,
                    urgency=policy.empty_destination_urgency if to_stock <= 0 else policy.urgency,
                    reason=policy.reason,
                ))
                served.add((to_location, product_id))

    transfers.sort(key=lambda t: (position[t.from_location_id], position[t.to_location_id], t.product_id))
    cost_savings = sum(t.quantity * policy.savings_per_unit for t in transfers)

    procurements = _procurement_gaps(locations, stock_levels, deficit, served, policy, now)

    logger.info(
        f"Rebalancing {len(locations)} locations / {len(products)} products: "
        f"{len(transfers)} transfers, {len(procurements)} procurement gaps, "
        f"savings potential {cost_savings:.2f}"
    )

    return SupplyChainOptimization(
        optimization_id=str(uuid.uuid4()),
        optimization_date=now,
        locations_analyzed=locations,
        products_analyzed=products,
        network_efficiency_score=_efficiency_score(locations, stock_levels, policy),
        recommended_stock_transfers=transfers,
        recommended_procurement_changes=procurements,
        cost_savings_potential=cost_savings,
    )


def _procurement_gaps(
    locations: Sequence[str],
    stock_levels: StockLevels,
    deficit: Dict[str, List[str]],
    served: set,
    policy: RebalancingPolicy,
    now,
) -> List[RecommendedProcurement]:
    procurements = []
    for location_id in locations:
        levels = stock_levels.get(location_id, {})
        for product_id in sorted(levels):
            if location_id not in deficit.get(product_id, []) or (location_id, product_id) in served:
                continue
            procurements.append(RecommendedProcurement(
                location_id=location_id,
                product_id=product_id,
                quantity=policy.deficit_threshold - levels[product_id],
                recommended_order_date=now,
                risk_assessment="No surplus location in the network can cover this deficit",
            ))
    return procurements


def _efficiency_score(
    locations: Sequence[str],
    stock_levels: StockLevels,
    policy: RebalancingPolicy,
) -> float:
    """Share of recorded (location, product) positions in neither surplus nor deficit."""
    positions = 0
    balanced = 0
    for location_id in locations:
        for stock in stock_levels.get(location_id, {}).values():
            positions += 1
            if policy.deficit_threshold <= stock <= policy.surplus_threshold:
                balanced += 1
    if positions == 0:
        return 1.0
    return balanced / positions
