"""
StockFlow
Multi-warehouse inventory and procurement service
"""

__version__ = "1.0.0"
