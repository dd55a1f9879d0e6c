"""
Pydantic Schemas for Documents, Requests and Responses

The same models describe what is persisted in the JSON documents
(coupons, orders, drafts) and what travels over the API, so a stored
document can be validated straight back into its model.

Version: 1.0.0
"""

import re
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class ProductCategory(str, Enum):
    FAT = "fat"
    FIT = "fit"


class DeliveryZone(str, Enum):
    """Delivery areas. OTHER is priced out of band (fee 0 here)."""
    ZONE_A = "zoneA"
    ZONE_B = "zoneB"
    ZONE_C = "zoneC"
    ZONE_D = "zoneD"
    OTHER = "other"


class CouponStatus(str, Enum):
    PENDING = "pending"
    USED = "used"


class OrderStatus(str, Enum):
    """Order status workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# =============================================================================
# CATALOG
# =============================================================================

class Product(BaseModel):
    """A menu item."""
    id: str
    name: str
    price: float = Field(..., gt=0)
    category: ProductCategory
    sauces_per_unit: int = Field(default=0, ge=0)
    old_price: Optional[float] = None
    sold_out: bool = False


class Sauce(BaseModel):
    id: str
    name: str


class AddOn(BaseModel):
    """Drinks and extras; priced flat per line, not per unit."""
    id: str
    name: str
    price: float = Field(..., ge=0)


# =============================================================================
# PRICING
# =============================================================================

class OrderLine(BaseModel):
    """
    One configured menu item.

    Immutable: edits go through an explicit replace of the whole line.
    """
    model_config = ConfigDict(frozen=True)

    product_id: str = Field(..., min_length=1, examples=["duo-dilema"])
    quantity: int = Field(default=1, ge=1, le=99, examples=[1])
    chosen_sauces: List[str] = Field(default_factory=list, examples=[["barbecue", "teriyaki"]])
    add_on_ids: List[str] = Field(default_factory=list, examples=[["coca-cola"]])
    unit_price_override: Optional[float] = Field(None, ge=0)
    original_unit_price: Optional[float] = Field(None, ge=0)
    promo_flag: bool = False


class PricedOrder(BaseModel):
    """Derived totals; recomputed from scratch on every change."""
    subtotal: float
    combo_discount: float = 0.0
    coupon_discount: float = 0.0
    delivery_fee: float = 0.0
    total: float
    combo_active: bool = False
    zone: Optional[DeliveryZone] = None
    coupon_code: Optional[str] = None
    discount_percent: Optional[float] = None


# =============================================================================
# COUPONS
# =============================================================================

class Coupon(BaseModel):
    """One-time, per-owner percentage discount."""
    id: str
    code: str
    owner_identifier: str
    display_name: str
    discount_percent: float
    status: CouponStatus = CouponStatus.PENDING
    created_at: datetime
    used_at: Optional[datetime] = None
    expires_at: datetime
    linked_order_id: Optional[str] = None
    redeemed_order_id: Optional[str] = None


class CouponValidateRequest(BaseModel):
    """Dry-run validation; the current lines decide whether a combo is active."""
    code: str = Field(..., min_length=1)
    owner_identifier: str = Field(..., min_length=1)
    lines: List[OrderLine] = Field(default_factory=list)


class CouponValidateResponse(BaseModel):
    valid: bool
    code: str
    discount_percent: float


class CouponIssueRequest(BaseModel):
    owner_identifier: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, max_length=100)
    order_id: str = Field(..., min_length=1)
    chosen_sauces: List[str] = Field(default_factory=list)


class CouponIssueResponse(BaseModel):
    success: bool = True
    coupon: Coupon


class CouponMarkUsedRequest(BaseModel):
    code: str = Field(..., min_length=1)
    owner_identifier: str = Field(..., min_length=1)
    order_id: Optional[str] = None


class CouponEligibilityResponse(BaseModel):
    eligible: bool
    has_coupon: bool
    coupon_status: Optional[CouponStatus] = None
    remaining_slots: int


# =============================================================================
# DRAFTS
# =============================================================================

class OrderDraft(BaseModel):
    """Server-side cart, addressed by its token."""
    id: str
    lines: List[OrderLine] = Field(default_factory=list)
    zone: Optional[DeliveryZone] = None
    coupon_code: Optional[str] = None
    coupon_owner: Optional[str] = None
    coupon_percent: Optional[float] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class DraftCreateRequest(BaseModel):
    lines: List[OrderLine] = Field(default_factory=list)
    zone: Optional[DeliveryZone] = None


class ZoneUpdateRequest(BaseModel):
    zone: DeliveryZone


class ApplyCouponRequest(BaseModel):
    code: str = Field(..., min_length=1)
    owner_identifier: str = Field(..., min_length=1)


class DraftResponse(BaseModel):
    draft: OrderDraft
    pricing: PricedOrder


class QuoteRequest(BaseModel):
    """Stateless price check."""
    lines: List[OrderLine] = Field(default_factory=list)
    zone: Optional[DeliveryZone] = None
    coupon_code: Optional[str] = None
    owner_identifier: Optional[str] = None


# =============================================================================
# ORDERS
# =============================================================================

class CustomerInfo(BaseModel):
    """Contact details captured at checkout."""
    name: str = Field(..., min_length=2, max_length=100, examples=["Rosa Quispe"])
    national_id: str = Field(..., examples=["45678912"])
    phone: str = Field(..., min_length=9, max_length=20, examples=["987654321"])
    address: str = Field(..., min_length=3, max_length=255, examples=["Jr. Grau 123, Chancay"])
    email: Optional[str] = Field(None, examples=["rosa@example.com"])

    @field_validator("national_id")
    @classmethod
    def validate_national_id(cls, v: str) -> str:
        v = v.strip()
        if not re.match(r"^\d{8}$", v):
            raise ValueError("National ID must have exactly 8 digits")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        cleaned = re.sub(r"[^\d]", "", v)
        if len(cleaned) < 9:
            raise ValueError("Phone number must have at least 9 digits")
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not re.match(r"^[\w\.-]+@[\w\.-]+\.\w+$", v):
            raise ValueError("Invalid email format")
        return v


class Order(BaseModel):
    """A confirmed order as stored in the orders document."""
    id: str
    name: str
    national_id: str
    phone: str
    address: str
    email: Optional[str] = None
    lines: List[OrderLine]
    zone: DeliveryZone
    pricing: PricedOrder
    coupon_code: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    created_at: datetime
    updated_at: Optional[datetime] = None


class OrderCreate(BaseModel):
    """Confirm a draft into an order."""
    draft_id: str = Field(..., min_length=1)
    customer: CustomerInfo


class OrderCreateResponse(BaseModel):
    success: bool
    message: str
    order: Order
    issued_coupon: Optional[Coupon] = None


class OrderListResponse(BaseModel):
    total: int
    orders: List[Order]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class CustomerLookupResponse(BaseModel):
    found: bool
    customer: Optional[CustomerInfo] = None


# =============================================================================
# MENU
# =============================================================================

class MenuResponse(BaseModel):
    products: List[Product]
    sauces: List[Sauce]
    add_ons: List[AddOn]
    delivery_fees: dict[str, float]
    currency: str = "PEN"
    is_open: bool
    next_open_message: Optional[str] = None


class MenuStockUpdate(BaseModel):
    product_id: str = Field(..., min_length=1)
    sold_out: bool


# =============================================================================
# COMMON
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    storage: str
    storage_provider: str
    is_open: bool
    timestamp: datetime
