"""
═══════════════════════════════════════════════════════════════════════════════
                    DEMAND HISTORY SOURCES
═══════════════════════════════════════════════════════════════════════════════

Read-only access to demand history and current stock.

    DemandHistorySource    - protocol the engine depends on
    InMemoryHistorySource  - dict-backed, for tests and embedding
    SqlHistorySource       - SQLAlchemy over inventory_movements /
                             location_inventory

Demand of a day = Σ |quantity| of the stock-consuming movements
(sales_shipment, transfer_out, production_consumption). Days without
movements are absent from the result and mean zero demand.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .clock import Clock, SystemClock, today
from .db import DEMAND_MOVEMENT_TYPES, InventoryMovement, LocationInventory, session_factory
from .errors import HistorySourceError
from .models import DemandObservation, as_observations

logger = logging.getLogger(__name__)


class DemandHistorySource(Protocol):
    """What the engine needs from the inventory store."""

    def fetch_history(self, product_id: str, location_id: str, days_back: int) -> List[DemandObservation]:
        ...

    def current_stock(self, product_id: str, location_id: str) -> float:
        ...

    def list_products(self, location_id: str) -> List[str]:
        ...

    def stock_levels(self, location_id: str) -> Dict[str, float]:
        ...


# ═══════════════════════════════════════════════════════════════════════════════
# IN-MEMORY
# ═══════════════════════════════════════════════════════════════════════════════

class InMemoryHistorySource:
    """
    Dict-backed history source.

    Args:
        histories: {(product_id, location_id): observations or (date, qty) pairs}
        stock: {location_id: {product_id: units on hand}}
        clock: Anchors the `days_back` window
    """

    def __init__(
        self,
        histories: Optional[Mapping[Tuple[str, str], Sequence]] = None,
        stock: Optional[Mapping[str, Mapping[str, float]]] = None,
        clock: Optional[Clock] = None,
    ):
        self._histories: Dict[Tuple[str, str], List[DemandObservation]] = {
            key: sorted(as_observations(rows), key=lambda o: o.date)
            for key, rows in (histories or {}).items()
        }
        self._stock: Dict[str, Dict[str, float]] = {
            location_id: dict(levels) for location_id, levels in (stock or {}).items()
        }
        self.clock = clock or SystemClock()

    def fetch_history(self, product_id: str, location_id: str, days_back: int) -> List[DemandObservation]:
        start = today(self.clock) - timedelta(days=days_back)
        return [
            o for o in self._histories.get((product_id, location_id), [])
            if o.date >= start
        ]

    def current_stock(self, product_id: str, location_id: str) -> float:
        return float(self._stock.get(location_id, {}).get(product_id, 0.0))

    def list_products(self, location_id: str) -> List[str]:
        products = [p for (p, loc) in self._histories if loc == location_id]
        products.extend(self._stock.get(location_id, {}))
        return list(dict.fromkeys(products))

    def stock_levels(self, location_id: str) -> Dict[str, float]:
        return dict(self._stock.get(location_id, {}))


# ═══════════════════════════════════════════════════════════════════════════════
# SQL
# ═══════════════════════════════════════════════════════════════════════════════

class SqlHistorySource:
    """
    History source over the inventory tables.

    Safe to call from the batch worker threads: every call checks a
    connection out of the engine's pool and returns it on exit. A pool
    checkout that times out surfaces as HistorySourceError.
    """

    def __init__(self, engine: Engine, clock: Optional[Clock] = None):
        self.engine = engine
        self.clock = clock or SystemClock()
        self._sessions = session_factory(engine)

    @property
    def pool_size(self) -> Optional[int]:
        size = getattr(self.engine.pool, "size", None)
        return size() if callable(size) else None

    def fetch_history(self, product_id: str, location_id: str, days_back: int) -> List[DemandObservation]:
        start = today(self.clock) - timedelta(days=days_back)
        stmt = (
            select(
                InventoryMovement.movement_date,
                func.sum(func.abs(InventoryMovement.quantity)),
            )
            .where(
                InventoryMovement.product_id == product_id,
                InventoryMovement.location_id == location_id,
                InventoryMovement.movement_type.in_(DEMAND_MOVEMENT_TYPES),
                InventoryMovement.movement_date >= start,
            )
            .group_by(InventoryMovement.movement_date)
            .order_by(InventoryMovement.movement_date)
        )
        rows = self._execute(stmt, f"demand history of {product_id}@{location_id}")
        return [DemandObservation(day, float(quantity or 0.0)) for day, quantity in rows]

    def current_stock(self, product_id: str, location_id: str) -> float:
        stmt = select(func.sum(LocationInventory.current_stock)).where(
            LocationInventory.product_id == product_id,
            LocationInventory.location_id == location_id,
        )
        rows = self._execute(stmt, f"stock of {product_id}@{location_id}")
        value = rows[0][0] if rows else None
        return float(value) if value is not None else 0.0

    def list_products(self, location_id: str) -> List[str]:
        stocked = select(LocationInventory.product_id).where(LocationInventory.location_id == location_id)
        moved = select(InventoryMovement.product_id).where(InventoryMovement.location_id == location_id)
        products = stocked.union(moved).subquery()
        stmt = select(products.c.product_id).order_by(products.c.product_id)
        rows = self._execute(stmt, f"products at {location_id}")
        return [product_id for (product_id,) in rows]

    def stock_levels(self, location_id: str) -> Dict[str, float]:
        stmt = (
            select(LocationInventory.product_id, func.sum(LocationInventory.current_stock))
            .where(LocationInventory.location_id == location_id)
            .group_by(LocationInventory.product_id)
            .order_by(LocationInventory.product_id)
        )
        rows = self._execute(stmt, f"stock levels at {location_id}")
        return {product_id: float(stock or 0.0) for product_id, stock in rows}

    def _execute(self, stmt, what: str) -> List[Tuple]:
        try:
            with self._sessions() as session:
                return [tuple(row) for row in session.execute(stmt).all()]
        except SQLAlchemyError as e:
            logger.error(f"Failed to load {what}: {e}")
            raise HistorySourceError(f"Failed to load {what}: {e}") from e


def load_movements(engine: Engine, rows: Iterable[Mapping]) -> int:
    """Bulk insert movement rows (dicts of InventoryMovement columns)."""
    movements = [InventoryMovement(**row) for row in rows]
    with session_factory(engine)() as session:
        session.add_all(movements)
        session.commit()
    return len(movements)


def load_stock(engine: Engine, stock: Mapping[str, Mapping[str, float]]) -> int:
    """Insert {location_id: {product_id: units}} into location_inventory."""
    records = [
        LocationInventory(product_id=product_id, location_id=location_id, current_stock=units)
        for location_id, levels in stock.items()
        for product_id, units in levels.items()
    ]
    with session_factory(engine)() as session:
        session.add_all(records)
        session.commit()
    return len(records)
