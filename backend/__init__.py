"""
Inventory optimization backend package.

Domain modules live in subpackages; see backend.stock_optimization.
"""
