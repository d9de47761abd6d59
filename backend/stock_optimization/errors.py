"""
Stock Optimization - Error taxonomy

Single-product requests surface these as typed errors. Batch runs catch the
data-gap errors per product and keep going; infrastructure errors always
propagate to the calling service.
"""

from __future__ import annotations


class StockOptimizationError(Exception):
    """Base class for every error raised by the engine."""


class InvalidParametersError(StockOptimizationError, ValueError):
    """A supplied parameter is outside its valid domain."""

    def __init__(self, message: str, field: str = "parameters"):
        super().__init__(message)
        self.field = field


class InvalidDataError(StockOptimizationError, ValueError):
    """An observation supplied by the history source is malformed."""


class NotFoundError(StockOptimizationError, LookupError):
    """The requested product/location has nothing to compute from."""


class InsufficientDataError(NotFoundError):
    """The history window contains zero observations."""

    def __init__(self, message: str, product_id: str = "", location_id: str = ""):
        super().__init__(message)
        self.product_id = product_id
        self.location_id = location_id


class HistorySourceError(StockOptimizationError):
    """The storage collaborator failed (connection, pool timeout, query)."""
