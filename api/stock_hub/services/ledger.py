# stock_hub/services/ledger.py
"""
Stock ledger - quantity on hand and reorder threshold for one product.

This module is the single source of the stock classification rules:

- SIN_STOCK  quantity == 0
- CRITICO    0 < quantity <= threshold * 0.5
- BAJO       threshold * 0.5 < quantity <= threshold
- NORMAL     otherwise

``needs_replenishment`` is a separate, stricter cutoff (20% of threshold)
used only by the urgent-restock query. It is not the same as CRITICO and
the two must not be merged.

Mutation primitives never modify a ledger in place: they validate the
expected revision and return the next state with ``revision + 1``.
"""
from __future__ import annotations
import enum
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from stock_hub.errors import ConcurrencyConflict, InsufficientStock, InvalidArgument

CRITICAL_RATIO = Decimal("0.5")
REPLENISHMENT_RATIO = Decimal("0.2")


class StockStatus(str, enum.Enum):
    SIN_STOCK = "SIN_STOCK"
    CRITICO = "CRITICO"
    BAJO = "BAJO"
    NORMAL = "NORMAL"


# Statuses a "low stock" query returns (at or below threshold)
LOW_STATUSES = frozenset({StockStatus.BAJO, StockStatus.CRITICO, StockStatus.SIN_STOCK})
# Statuses a "critical stock" query returns (at or below half the threshold)
CRITICAL_STATUSES = frozenset({StockStatus.CRITICO, StockStatus.SIN_STOCK})


def classify(quantity: int, threshold: int) -> StockStatus:
    """Classify a (quantity, threshold) pair. Exactly one status applies."""
    if quantity < 0 or threshold < 0:
        raise InvalidArgument("quantity and threshold must be non-negative",
                              quantity=quantity, threshold=threshold)
    if quantity == 0:
        return StockStatus.SIN_STOCK
    if quantity <= threshold * CRITICAL_RATIO:
        return StockStatus.CRITICO
    if quantity <= threshold:
        return StockStatus.BAJO
    return StockStatus.NORMAL


def needs_replenishment(quantity: int, threshold: int) -> bool:
    """Urgent restock: out of stock or at most 20% of the threshold."""
    return quantity == 0 or quantity <= threshold * REPLENISHMENT_RATIO


def crossed_into_critical(previous: StockStatus, current: StockStatus) -> bool:
    """True when a mutation moved the ledger from NORMAL/BAJO into CRITICO/SIN_STOCK."""
    return previous not in CRITICAL_STATUSES and current in CRITICAL_STATUSES


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StockLedger:
    product_id: int
    quantity: int
    threshold: int = 0
    revision: int = 0
    id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.quantity < 0:
            raise InvalidArgument("quantity cannot be negative", quantity=self.quantity)
        if self.threshold < 0:
            raise InvalidArgument("threshold cannot be negative", threshold=self.threshold)

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def status(self) -> StockStatus:
        return classify(self.quantity, self.threshold)

    @property
    def needs_replenishment(self) -> bool:
        return needs_replenishment(self.quantity, self.threshold)

    def has_at_least(self, requested: int) -> bool:
        return self.quantity >= requested

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def _check_revision(self, expected_revision: int) -> None:
        if expected_revision != self.revision:
            raise ConcurrencyConflict(
                product_id=self.product_id,
                expected_revision=expected_revision,
                actual_revision=self.revision,
            )

    def _next(self, **changes) -> "StockLedger":
        return replace(self, revision=self.revision + 1, updated_at=_utcnow(), **changes)

    def set_quantity(self, expected_revision: int, new_quantity: int) -> "StockLedger":
        if new_quantity < 0:
            raise InvalidArgument("quantity cannot be negative", quantity=new_quantity)
        self._check_revision(expected_revision)
        return self._next(quantity=new_quantity)

    def increment(self, expected_revision: int, amount: int) -> "StockLedger":
        if amount <= 0:
            raise InvalidArgument("increment must be greater than zero", amount=amount)
        self._check_revision(expected_revision)
        return self._next(quantity=self.quantity + amount)

    def decrement(self, expected_revision: int, amount: int) -> "StockLedger":
        if amount <= 0:
            raise InvalidArgument("decrement must be greater than zero", amount=amount)
        self._check_revision(expected_revision)
        if amount > self.quantity:
            raise InsufficientStock(product_id=self.product_id, available=self.quantity, requested=amount)
        return self._next(quantity=self.quantity - amount)

    def set_threshold(self, expected_revision: int, new_threshold: int) -> "StockLedger":
        if new_threshold < 0:
            raise InvalidArgument("threshold cannot be negative", threshold=new_threshold)
        self._check_revision(expected_revision)
        return self._next(threshold=new_threshold)

    def replace_levels(self, expected_revision: int, quantity: int, threshold: int) -> "StockLedger":
        """Full update of quantity and threshold in one revision step."""
        if quantity < 0:
            raise InvalidArgument("quantity cannot be negative", quantity=quantity)
        if threshold < 0:
            raise InvalidArgument("threshold cannot be negative", threshold=threshold)
        self._check_revision(expected_revision)
        return self._next(quantity=quantity, threshold=threshold)
