"""
Pydantic Schemas for Request/Response Validation

Covers:
- Menu items (read model + create/update payloads)
- Orders with dine-in/takeaway fulfillment
- Cart, checkout and admin session payloads
- Write results and health responses

The same snake_case shape is used for remote rows and for the local
mirror entries (``model_dump(mode="json")``).

Author: Khalil Bannouri
Version: 4.0.0
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, List, Any
from datetime import datetime
from enum import Enum


# =============================================================================
# ENUMS
# =============================================================================

class Category(str, Enum):
    MAIN_COURSE = "Makanan Utama"
    DRINK = "Minuman"
    DESSERT = "Dessert"


class OrderType(str, Enum):
    DINE_IN = "dine-in"
    TAKEAWAY = "takeaway"


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"


# =============================================================================
# MENU ITEMS
# =============================================================================

class MenuItem(BaseModel):
    """Menu item as stored remotely and in the local mirror."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    price: int
    category: str
    image_url: Optional[str] = None
    created_at: datetime


class MenuItemCreate(BaseModel):
    """Payload for a new menu item (admin)."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Nasi Goreng Spesial"])
    price: int = Field(..., ge=0, examples=[25000])
    category: Category = Field(..., examples=["Makanan Utama"])
    image_url: Optional[str] = Field(None, examples=["/placeholder.svg?height=200&width=200"])

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v


class MenuItemUpdate(BaseModel):
    """Partial update: unset fields stay unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[int] = Field(None, ge=0)
    category: Optional[Category] = None
    image_url: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    def to_patch(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(mode="json", exclude_unset=True)


# =============================================================================
# ORDERS
# =============================================================================

class OrderItem(BaseModel):
    """Line item snapshot: name and unit price copied at checkout."""
    name: str = Field(..., min_length=1, max_length=100, examples=["Es Teh Manis"])
    quantity: int = Field(..., ge=1, examples=[2])
    price: int = Field(..., ge=0, examples=[5000])

    @property
    def subtotal(self) -> int:
        return self.quantity * self.price


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


class OrderCreate(BaseModel):
    """
    Request schema for creating a new order.

    Fulfillment payloads are mutually exclusive: dine-in carries a table
    number, takeaway carries an address and a phone number. The total is
    computed from the line items; a supplied total must agree with it.
    """
    customer_name: str = Field(..., max_length=100, examples=["Budi"])
    type: OrderType = Field(..., examples=["takeaway"])
    table_number: Optional[str] = Field(None, max_length=20, examples=["7"])
    address: Optional[str] = Field(None, max_length=255, examples=["Jl. Mawar 1"])
    phone_number: Optional[str] = Field(None, max_length=20, examples=["08123456789"])
    items: List[OrderItem] = Field(..., min_length=1)
    total: Optional[int] = Field(None, ge=0, examples=[10000])

    @model_validator(mode="after")
    def validate_fulfillment(self) -> "OrderCreate":
        self.customer_name = _clean(self.customer_name) or ""
        if not self.customer_name:
            raise ValueError("Customer name is required")

        if self.type == OrderType.DINE_IN:
            self.table_number = _clean(self.table_number)
            if not self.table_number:
                raise ValueError("Table number is required for dine-in orders")
            self.address = None
            self.phone_number = None
        else:
            self.address = _clean(self.address)
            self.phone_number = _clean(self.phone_number)
            if not self.address or not self.phone_number:
                raise ValueError("Address and phone number are required for takeaway orders")
            self.table_number = None

        computed = sum(item.subtotal for item in self.items)
        if self.total is not None and self.total != computed:
            raise ValueError(f"Total {self.total} does not match line items ({computed})")
        self.total = computed
        return self


class Order(BaseModel):
    """Order as stored remotely and in the local mirror."""
    model_config = ConfigDict(extra="ignore")

    id: int
    customer_name: str
    type: OrderType
    table_number: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    items: List[OrderItem]
    total: int
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime


# =============================================================================
# CART / CHECKOUT
# =============================================================================

class CartLine(BaseModel):
    item_id: int
    name: str
    price: int
    quantity: int
    subtotal: int


class CartResponse(BaseModel):
    items: dict[int, int]
    lines: List[CartLine]
    count: int
    total: int


class CheckoutRequest(BaseModel):
    """Customer details; the line items come from the stored cart."""
    customer_name: str = Field(..., max_length=100)
    type: OrderType
    table_number: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None


# =============================================================================
# ADMIN
# =============================================================================

class AdminLoginRequest(BaseModel):
    password: str


class AdminSessionResponse(BaseModel):
    logged_in: bool
    login_time: Optional[datetime] = None
    expires_at: Optional[datetime] = None


# =============================================================================
# RESPONSES
# =============================================================================

class WriteResultResponse(BaseModel):
    """Outcome of a write through the data-access layer."""
    success: bool
    outcome: str
    synced: bool
    data: Optional[Any] = None
    error: Optional[str] = None


class ImageUploadResponse(BaseModel):
    image_url: str
    embedded: bool


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    remote: str
    remote_provider: str
    mode: str
    timestamp: datetime
