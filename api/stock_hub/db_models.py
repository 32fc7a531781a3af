# stock_hub/db_models.py
"""
SQLAlchemy ORM Models for the Stock Hub data tier.

3 tables: categories, products, stock_ledgers.
"""
from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    String, Integer, BigInteger, Boolean, Text, DateTime,
    Numeric, ForeignKey, Index, CheckConstraint, func
)
from sqlalchemy.orm import (
    Mapped, mapped_column, relationship
)

from stock_hub.database import Base
from stock_hub.services.ledger import StockLedger

# BIGINT in PostgreSQL, INTEGER (rowid alias, autoincrement) in SQLite
IdType = BigInteger().with_variant(Integer(), "sqlite")


# ============================================================================
# MIXIN for updated_at
# ============================================================================

class TimestampMixin:
    """Mixin for created_at and updated_at columns."""
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# ============================================================================
# 1. CATEGORIES
# ============================================================================

class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)

    # Relationships
    products: Mapped[List["Product"]] = relationship(back_populates="category")


# ============================================================================
# 2. PRODUCTS
# ============================================================================

class Product(TimestampMixin, Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    category_id: Mapped[int] = mapped_column(IdType, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    category: Mapped["Category"] = relationship(back_populates="products")
    ledger: Mapped[Optional["StockLedgerRecord"]] = relationship(back_populates="product", uselist=False)

    __table_args__ = (
        CheckConstraint("price > 0", name="chk_products_price_positive"),
        Index("idx_products_category", "category_id"),
        Index("idx_products_active", "is_active", postgresql_where="is_active = true"),
    )


# ============================================================================
# 3. STOCK LEDGERS (one per product, revision-guarded)
# ============================================================================

class StockLedgerRecord(Base):
    __tablename__ = "stock_ledgers"

    id: Mapped[int] = mapped_column(IdType, primary_key=True)
    product_id: Mapped[int] = mapped_column(
        IdType, ForeignKey("products.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    threshold: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    revision: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    product: Mapped["Product"] = relationship(back_populates="ledger")

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="chk_stock_ledgers_quantity_non_negative"),
        CheckConstraint("threshold >= 0", name="chk_stock_ledgers_threshold_non_negative"),
        CheckConstraint("revision >= 0", name="chk_stock_ledgers_revision_non_negative"),
        Index("idx_stock_ledgers_quantity", "quantity"),
        Index("idx_stock_ledgers_threshold", "threshold"),
    )

    def to_ledger(self) -> StockLedger:
        """Snapshot of this row as an immutable domain ledger."""
        return StockLedger(
            id=self.id,
            product_id=self.product_id,
            quantity=self.quantity,
            threshold=self.threshold,
            revision=self.revision,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# Case-insensitive name uniqueness
Index("idx_categories_name_lower", func.lower(Category.name), unique=True)
Index("idx_products_name_lower", func.lower(Product.name), unique=True)
