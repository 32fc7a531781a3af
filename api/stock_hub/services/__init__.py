# stock_hub/services/__init__.py
"""
Domain services for Stock Hub.

Only the ledger rules are re-exported here; models.py imports them, so this
module must not pull in anything that imports models.
"""
from stock_hub.services.ledger import StockLedger, StockStatus, classify, needs_replenishment

__all__ = [
    "StockLedger",
    "StockStatus",
    "classify",
    "needs_replenishment",
]
