from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, List, Generic, TypeVar
from pydantic import BaseModel, ConfigDict, Field

from stock_hub.services.ledger import StockStatus

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

class CategoryIn(BaseModel):
    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)

class CategoryOut(CategoryIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class CategoryStats(BaseModel):
    id: int
    name: str
    product_count: int = 0
    total_value: Decimal = Decimal("0")

class ProductIn(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    category_id: int = Field(gt=0)
    is_active: bool = True

class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    price: Decimal
    category_id: int
    category_name: Optional[str] = None
    is_active: bool = True
    stock: Optional[int] = None
    threshold: Optional[int] = None
    # filled in by the business tier
    stock_status: Optional[StockStatus] = None
    inventory_value: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class ProductValue(BaseModel):
    product_id: int
    name: str
    category_name: Optional[str] = None
    price: Decimal
    quantity: int
    total_value: Decimal

# ---------------------------------------------------------------------------
# Stock ledger
# ---------------------------------------------------------------------------

class LedgerIn(BaseModel):
    product_id: int = Field(gt=0)
    quantity: int = Field(ge=0)
    threshold: int = Field(default=0, ge=0)

class LedgerUpdate(BaseModel):
    quantity: int = Field(ge=0)
    threshold: int = Field(ge=0)
    revision: Optional[int] = Field(default=None, ge=0)

class LedgerOut(BaseModel):
    id: Optional[int] = None
    product_id: int
    product_name: Optional[str] = None
    product_price: Optional[Decimal] = None
    category_name: Optional[str] = None
    quantity: int
    threshold: int
    revision: int
    status: StockStatus
    needs_replenishment: bool
    inventory_value: Decimal = Decimal("0")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class StockMutationOut(BaseModel):
    ledger: LedgerOut
    previous_status: StockStatus
    status: StockStatus
    crossed_into_critical: bool = False
    attempts: int = 1

class InventoryStats(BaseModel):
    total_products: int = 0
    total_quantity: int = 0
    average_quantity: float = 0.0
    below_threshold: int = 0
    service_available: bool = True

class StockCheck(BaseModel):
    product_id: int
    requested: int
    sufficient: bool

# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

class StockStateReport(BaseModel):
    total_products: int = 0
    normal: int = 0
    low: int = 0
    critical: int = 0
    out_of_stock: int = 0
    percent_normal: float = 0.0
    percent_low: float = 0.0
    percent_critical: float = 0.0
    percent_out_of_stock: float = 0.0
    total_value: Decimal = Decimal("0")
    average_value: Decimal = Decimal("0")
    ledgers: List[LedgerOut] = Field(default_factory=list)
    degraded: bool = False

class CategoryReport(BaseModel):
    total_categories: int = 0
    total_products: int = 0
    total_value: Decimal = Decimal("0")
    products_per_category: Dict[str, int] = Field(default_factory=dict)
    value_per_category: Dict[str, Decimal] = Field(default_factory=dict)
    category_with_most_products: Optional[str] = None
    category_with_highest_value: Optional[str] = None
    degraded: bool = False

class AlertReport(BaseModel):
    out_of_stock: List[LedgerOut] = Field(default_factory=list)
    critical: List[LedgerOut] = Field(default_factory=list)
    low: List[LedgerOut] = Field(default_factory=list)
    replenishment: List[LedgerOut] = Field(default_factory=list)
    total_alerts: int = 0
    impact_out_of_stock: Decimal = Decimal("0")
    impact_critical: Decimal = Decimal("0")
    recommendations: Dict[str, str] = Field(default_factory=dict)
    degraded: bool = False

class FinancialReport(BaseModel):
    total_value: Decimal = Decimal("0")
    average_value_per_product: Decimal = Decimal("0")
    top_products: List[ProductValue] = Field(default_factory=list)
    value_per_category: Dict[str, Decimal] = Field(default_factory=dict)
    degraded: bool = False

# ---------------------------------------------------------------------------
# Business tier envelope
# ---------------------------------------------------------------------------

class Envelope(BaseModel, Generic[T]):
    data: Optional[T] = None
    degraded: bool = False
    request_id: Optional[str] = None
