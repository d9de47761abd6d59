"""SQLAlchemy models and engine factory for the stock optimization history store."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, Float, Index, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import EngineSettings

Base = declarative_base()

# Movement types that consume stock and therefore count as demand
DEMAND_MOVEMENT_TYPES = ("sales_shipment", "transfer_out", "production_consumption")


class InventoryMovement(Base):
    __tablename__ = "inventory_movements"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, nullable=False)
    location_id = Column(String, nullable=False)
    movement_type = Column(String, nullable=False)
    quantity = Column(Float, nullable=False)
    movement_date = Column(Date, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_inventory_movements_product_location_date", "product_id", "location_id", "movement_date"),
    )


class LocationInventory(Base):
    __tablename__ = "location_inventory"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(String, nullable=False, index=True)
    location_id = Column(String, nullable=False, index=True)
    current_stock = Column(Float, default=0.0)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


def create_history_engine(settings: EngineSettings) -> Engine:
    """
    Engine with a bounded connection pool.

    Checkout blocks for at most `pool_timeout_seconds` once `pool_size +
    max_overflow` connections are in use. In-memory SQLite shares one
    connection across threads instead.
    """
    url = settings.database_url
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(url, connect_args=connect_args, poolclass=StaticPool)
    else:
        connect_args = {}

    return create_engine(
        url,
        connect_args=connect_args,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout_seconds,
        pool_pre_ping=True,
    )


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
