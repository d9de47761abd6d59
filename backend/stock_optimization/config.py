"""
═══════════════════════════════════════════════════════════════════════════════
                    STOCK OPTIMIZATION - Configuration
═══════════════════════════════════════════════════════════════════════════════

Two kinds of configuration live here:

    OptimizationParameters
        Business inputs supplied by the caller for one run (service level,
        costs, seasonality overrides, constraints). Frozen pydantic model,
        validated on construction.

    Policies + EngineSettings
        Deployment-level tuning (smoothing constant, risk thresholds,
        rebalancing economics, connection pool sizing). Dataclasses with
        standard defaults, optionally overridden from STOCKOPT_*
        environment variables.

Environment variables:
    STOCKOPT_DATABASE_URL=postgresql+psycopg2://...
    STOCKOPT_POOL_SIZE=10
    STOCKOPT_MAX_OVERFLOW=0
    STOCKOPT_POOL_TIMEOUT=30
    STOCKOPT_WORKERS=10
    STOCKOPT_SMOOTHING_ALPHA=0.3
    STOCKOPT_FORECAST_BASELINE=exponential_smoothing
    STOCKOPT_RISK_PROBABILITY_MODE=binary
    STOCKOPT_HISTORY_DAYS=365
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidParametersError

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# OPTIMIZATION PARAMETERS (caller-supplied)
# ═══════════════════════════════════════════════════════════════════════════════

class OptimizationParameters(BaseModel):
    """
    Inputs for one optimization run.

    Attributes:
        target_service_level: Probability of not stocking out during lead time
        holding_cost_rate: Holding cost per unit per year
        ordering_cost: Fixed cost per order
        stockout_cost: Penalty per unit short
        lead_time_variability: Relative lead-time spread (informational)
        demand_variability: Relative demand spread, used when history is too short
        seasonality_factors: Planner overrides per month (Jan..Dec), multiplied
            into the measured seasonal indices
        trend_factor: Multiplier applied to the measured trend
        max_inventory_investment: Cap on recommended investment for a location
        storage_constraints: Capacity in units per location id
        lead_time_days: Replenishment lead time
    """
    model_config = ConfigDict(frozen=True)

    target_service_level: float = Field(0.95, gt=0, lt=1)
    holding_cost_rate: float = Field(0.25, gt=0)
    ordering_cost: float = Field(50.0, gt=0)
    stockout_cost: float = Field(100.0, ge=0)
    lead_time_variability: float = Field(0.1, ge=0)
    demand_variability: float = Field(0.2, ge=0)
    seasonality_factors: Tuple[float, ...] = Field(default=(1.0,) * 12)
    trend_factor: float = 1.0
    max_inventory_investment: Optional[float] = Field(None, ge=0)
    storage_constraints: Dict[str, float] = Field(default_factory=dict)
    lead_time_days: float = Field(7.0, gt=0)

    @field_validator("seasonality_factors", mode="before")
    @classmethod
    def _twelve_factors(cls, v):
        values = tuple(float(x) for x in v)
        if len(values) != 12:
            raise ValueError(f"expected 12 monthly factors, got {len(values)}")
        if any(x < 0 for x in values):
            raise ValueError("seasonality factors must be non-negative")
        return values

    @field_validator("storage_constraints")
    @classmethod
    def _non_negative_capacity(cls, v: Dict[str, float]) -> Dict[str, float]:
        for location_id, capacity in v.items():
            if capacity < 0:
                raise ValueError(f"negative storage capacity for location {location_id}")
        return v

    def seasonality_factor(self, month: int) -> float:
        return self.seasonality_factors[month - 1]


def build_parameters(**values: Any) -> OptimizationParameters:
    """
    Build OptimizationParameters, reporting bad input as InvalidParametersError.

    Raises:
        InvalidParametersError: first offending field in `field`
    """
    try:
        return OptimizationParameters(**values)
    except ValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(part) for part in first.get("loc", ())) or "parameters"
        raise InvalidParametersError(f"{loc}: {first.get('msg')}", field=loc) from e


# ═══════════════════════════════════════════════════════════════════════════════
# POLICIES (deployment-level tuning)
# ═══════════════════════════════════════════════════════════════════════════════

class BaselineMethod(str, Enum):
    """How the forecast baseline is smoothed."""
    EXPONENTIAL_SMOOTHING = "exponential_smoothing"
    MOVING_AVERAGE = "moving_average"


class ProbabilityMode(str, Enum):
    """
    How 30/60/90-day stockout probabilities are reported.

    BINARY: 1.0 if cumulative forecast demand exceeds stock, else 0.0
    NORMAL: P(cumulative demand > stock) under a normal approximation
    """
    BINARY = "binary"
    NORMAL = "normal"


@dataclass
class ForecastPolicy:
    """Forecast generator tuning."""
    smoothing_alpha: float = 0.3
    baseline_method: BaselineMethod = BaselineMethod.EXPONENTIAL_SMOOTHING
    moving_average_window: int = 7
    confidence_z: float = 1.96
    # Insert zero-demand rows for calendar days without movements
    fill_gaps: bool = False


@dataclass
class OptimizerPolicy:
    """Stocking parameter optimizer tuning."""
    cost_band: float = 0.10
    validity_period_days: int = 30
    history_days: int = 365
    safety_stock_history_days: int = 180
    method_label: str = "Economic Order Quantity with Safety Stock"


@dataclass
class RiskPolicy:
    """Stockout risk thresholds (days until stockout)."""
    critical_days: int = 7
    high_days: int = 30
    medium_days: int = 60
    checkpoints: Tuple[int, int, int] = (30, 60, 90)
    probability_mode: ProbabilityMode = ProbabilityMode.BINARY
    default_horizon_days: int = 90
    # Coefficient of variation above which demand is reported as volatile
    volatile_cv: float = 0.5


@dataclass
class RebalancingPolicy:
    """Network rebalancing thresholds and flat per-unit economics."""
    surplus_threshold: float = 100.0
    deficit_threshold: float = 50.0
    transfer_fraction: float = 0.3
    max_transfer_quantity: float = 100.0
    min_transfer_quantity: float = 10.0
    transfer_cost_per_unit: float = 0.5
    benefit_per_unit: float = 2.0
    urgency: str = "Medium"
    empty_destination_urgency: str = "High"
    reason: str = "Excess stock rebalancing"

    @property
    def savings_per_unit(self) -> float:
        return self.benefit_per_unit - self.transfer_cost_per_unit


@dataclass
class TurnoverPolicy:
    """Inventory turnover optimization tuning."""
    unit_value: float = 10.0
    high_priority_excess_units: float = 100.0
    implementation_timeline_days: int = 90
    history_days: int = 365


@dataclass
class EngineSettings:
    """
    Everything the engine facade needs besides the history source.

    worker_count defaults to the connection pool size: the dominant cost of a
    batch is fetching movement rows, so more workers than connections only
    queue on the pool.
    """
    database_url: str = "sqlite:///stock_optimization.db"
    pool_size: int = 10
    max_overflow: int = 0
    pool_timeout_seconds: float = 30.0
    workers: Optional[int] = None
    forecast: ForecastPolicy = field(default_factory=ForecastPolicy)
    optimizer: OptimizerPolicy = field(default_factory=OptimizerPolicy)
    risk: RiskPolicy = field(default_factory=RiskPolicy)
    rebalancing: RebalancingPolicy = field(default_factory=RebalancingPolicy)
    turnover: TurnoverPolicy = field(default_factory=TurnoverPolicy)

    @property
    def worker_count(self) -> int:
        return max(1, self.workers or self.pool_size)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> EngineSettings:
        """Load settings from STOCKOPT_* variables; invalid values are logged and ignored."""
        env = os.environ if environ is None else environ
        settings = cls()

        url = env.get("STOCKOPT_DATABASE_URL")
        if url:
            settings.database_url = url

        numeric_mapping = {
            "STOCKOPT_POOL_SIZE": (settings, "pool_size", int),
            "STOCKOPT_MAX_OVERFLOW": (settings, "max_overflow", int),
            "STOCKOPT_POOL_TIMEOUT": (settings, "pool_timeout_seconds", float),
            "STOCKOPT_WORKERS": (settings, "workers", int),
            "STOCKOPT_SMOOTHING_ALPHA": (settings.forecast, "smoothing_alpha", float),
            "STOCKOPT_HISTORY_DAYS": (settings.optimizer, "history_days", int),
        }
        for env_var, (target, attr_name, cast) in numeric_mapping.items():
            value = env.get(env_var)
            if not value:
                continue
            try:
                setattr(target, attr_name, cast(value))
                logger.info(f"Setting {attr_name} = {value}")
            except ValueError:
                logger.warning(f"Invalid value for {env_var}: {value}")

        enum_mapping = {
            "STOCKOPT_FORECAST_BASELINE": (settings.forecast, "baseline_method", BaselineMethod),
            "STOCKOPT_RISK_PROBABILITY_MODE": (settings.risk, "probability_mode", ProbabilityMode),
        }
        for env_var, (target, attr_name, enum_class) in enum_mapping.items():
            value = env.get(env_var)
            if not value:
                continue
            try:
                setattr(target, attr_name, enum_class(value.lower()))
                logger.info(f"Setting {attr_name} = {value}")
            except ValueError:
                logger.warning(f"Invalid value for {env_var}: {value}")

        if not 0 < settings.forecast.smoothing_alpha <= 1:
            logger.warning(
                f"Smoothing alpha {settings.forecast.smoothing_alpha} outside (0, 1], using 0.3"
            )
            settings.forecast.smoothing_alpha = 0.3

        return settings

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout_seconds": self.pool_timeout_seconds,
            "worker_count": self.worker_count,
            "smoothing_alpha": self.forecast.smoothing_alpha,
            "baseline_method": self.forecast.baseline_method.value,
            "probability_mode": self.risk.probability_mode.value,
            "history_days": self.optimizer.history_days,
        }
