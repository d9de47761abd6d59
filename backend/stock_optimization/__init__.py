"""
═══════════════════════════════════════════════════════════════════════════════
                    STOCK OPTIMIZATION MODULE
═══════════════════════════════════════════════════════════════════════════════

Inventory demand forecasting and stock optimization engine.

Turns historical movement data into stocking parameters:

1. **Forecast**: exponential smoothing / moving average + linear trend +
   monthly seasonal indices, with confidence intervals
2. **Stocking parameters**: EOQ, safety stock, reorder point, max stock and
   cost breakdown per product/location
3. **Stockout risk**: days until stockout and 30/60/90-day outlook
4. **Network rebalancing**: surplus → deficit transfers across locations
5. **Batch**: location-wide optimization on a bounded worker pool
6. **Seasonality, replenishment rules, turnover**

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │  InventoryOptimizationEngine (engine.py)                        │
    ├─────────────────────────────────────────────────────────────────┤
    │  Batch Orchestrator (batch.py)                                  │
    │    ├─ Stocking Parameter Optimizer (optimizer.py)               │
    │    └─ Replenishment rules & turnover (replenishment.py)         │
    ├─────────────────────────────────────────────────────────────────┤
    │  Forecast Generator (forecasting.py)                            │
    │    ├─ Stockout Risk Analyzer (risk.py)                          │
    │    └─ Seasonal Pattern Analyzer (seasonality.py)                │
    ├─────────────────────────────────────────────────────────────────┤
    │  Network Rebalancing Optimizer (rebalancing.py)                 │
    ├─────────────────────────────────────────────────────────────────┤
    │  Statistics Primitives (demand_stats.py)                        │
    ├─────────────────────────────────────────────────────────────────┤
    │  Demand History Sources (sources.py, db.py)                     │
    │    ├─ InMemoryHistorySource                                     │
    │    └─ SqlHistorySource (SQLAlchemy, pooled)                     │
    └─────────────────────────────────────────────────────────────────┘

Dependencies:
    - numpy: Numerical operations
    - pandas: Daily series, monthly grouping, rolling means
    - scipy: Normal distribution (loss function, survival function)
    - pydantic: Parameter validation
    - sqlalchemy: History store access and connection pooling
"""

from .clock import Clock, FixedClock, SystemClock
from .config import (
    BaselineMethod,
    EngineSettings,
    ForecastPolicy,
    OptimizationParameters,
    OptimizerPolicy,
    ProbabilityMode,
    RebalancingPolicy,
    RiskPolicy,
    TurnoverPolicy,
    build_parameters,
)
from .engine import InventoryOptimizationEngine
from .errors import (
    HistorySourceError,
    InsufficientDataError,
    InvalidDataError,
    InvalidParametersError,
    NotFoundError,
    StockOptimizationError,
)
from .forecasting import DemandForecaster, forecast_demand
from .models import (
    DemandForecast,
    DemandObservation,
    InventoryOptimizationReport,
    OptimizationResult,
    RecommendedProcurement,
    RecommendedStockTransfer,
    ReplenishmentRule,
    RiskLevel,
    SeasonalAnalysis,
    StockoutRiskAnalysis,
    StockPosition,
    SupplyChainOptimization,
    TurnoverOptimizationResult,
)
from .optimizer import (
    calculate_economic_order_quantity,
    calculate_reorder_point,
    calculate_safety_stock,
    optimize_single_product,
)
from .rebalancing import rebalance
from .risk import analyze_stockout_risk
from .seasonality import analyze_seasonal_patterns
from .sources import DemandHistorySource, InMemoryHistorySource, SqlHistorySource
from .db import create_history_engine, init_db

__all__ = [
    # Clock
    "Clock",
    "FixedClock",
    "SystemClock",
    # Config
    "BaselineMethod",
    "EngineSettings",
    "ForecastPolicy",
    "OptimizationParameters",
    "OptimizerPolicy",
    "ProbabilityMode",
    "RebalancingPolicy",
    "RiskPolicy",
    "TurnoverPolicy",
    "build_parameters",
    # Engine
    "InventoryOptimizationEngine",
    # Errors
    "HistorySourceError",
    "InsufficientDataError",
    "InvalidDataError",
    "InvalidParametersError",
    "NotFoundError",
    "StockOptimizationError",
    # Forecast
    "DemandForecaster",
    "forecast_demand",
    # Models
    "DemandForecast",
    "DemandObservation",
    "InventoryOptimizationReport",
    "OptimizationResult",
    "RecommendedProcurement",
    "RecommendedStockTransfer",
    "ReplenishmentRule",
    "RiskLevel",
    "SeasonalAnalysis",
    "StockoutRiskAnalysis",
    "StockPosition",
    "SupplyChainOptimization",
    "TurnoverOptimizationResult",
    # Operations
    "analyze_seasonal_patterns",
    "analyze_stockout_risk",
    "calculate_economic_order_quantity",
    "calculate_reorder_point",
    "calculate_safety_stock",
    "optimize_single_product",
    "rebalance",
    # Sources
    "DemandHistorySource",
    "InMemoryHistorySource",
    "SqlHistorySource",
    "create_history_engine",
    "init_db",
]

__version__ = "0.1.0"
