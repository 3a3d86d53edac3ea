"""Pydantic request/response schemas for the Checkout API.

These are the HTTP contracts of the checkout service, kept apart from the
Protean commands they are translated into.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Discount Request Schemas
# ---------------------------------------------------------------------------
class CreateDiscountRequest(BaseModel):
    code: str = Field(min_length=1, max_length=50)
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    discount_type: str
    percentage_value: float | None = None
    fixed_value: float | None = None
    minimum_order_value: float | None = None
    maximum_discount_amount: float | None = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    is_featured: bool = False
    scope: str = "AllProducts"
    product_ids: list[str] = []
    category_ids: list[str] = []
    max_usage_count: int | None = Field(default=None, ge=0)
    max_usage_per_customer: int | None = Field(default=None, ge=0)
    created_by: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE10",
                    "name": "10% off everything",
                    "discount_type": "Percentage",
                    "percentage_value": 10,
                    "start_date": "2026-01-01T00:00:00Z",
                    "end_date": "2026-12-31T00:00:00Z",
                }
            ]
        }
    }


class UpdateDiscountRequest(BaseModel):
    code: str | None = None
    name: str | None = None
    description: str | None = None
    discount_type: str | None = None
    percentage_value: float | None = None
    fixed_value: float | None = None
    minimum_order_value: float | None = None
    maximum_discount_amount: float | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_featured: bool | None = None
    scope: str | None = None
    max_usage_count: int | None = Field(default=None, ge=0)
    max_usage_per_customer: int | None = Field(default=None, ge=0)


class ProductIdsRequest(BaseModel):
    product_ids: list[str] = Field(min_length=1)


class CategoryIdsRequest(BaseModel):
    category_ids: list[str] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_email: str | None = None
    session_id: str | None = None


class AddToCartRequest(BaseModel):
    variant_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartQuantityRequest(BaseModel):
    new_quantity: int = Field(ge=1)


class ValidateDiscountRequest(BaseModel):
    code: str
    identity: str | None = None


class QuoteRequest(BaseModel):
    code: str | None = None
    identity: str | None = None


class CheckoutRequest(BaseModel):
    discount_code: str | None = None
    identity: str | None = None
    payment_method: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class DiscountIdResponse(BaseModel):
    discount_id: str


class CartIdResponse(BaseModel):
    cart_id: str


class ItemIdResponse(BaseModel):
    item_id: str


class DiscountResponse(BaseModel):
    discount_id: str
    code: str
    name: str
    description: str | None = None
    discount_type: str
    percentage_value: float | None = None
    fixed_value: float | None = None
    minimum_order_value: float | None = None
    maximum_discount_amount: float | None = None
    start_date: datetime
    end_date: datetime
    is_active: bool
    is_featured: bool
    scope: str
    product_ids: list[str] = []
    category_ids: list[str] = []
    max_usage_count: int | None = None
    max_usage_per_customer: int | None = None
    current_usage_count: int = 0
    is_currently_active: bool
    can_be_used: bool


class DailyUsageResponse(BaseModel):
    day: str
    count: int
    total: float


class DiscountStatisticsResponse(BaseModel):
    discount_id: str
    code: str
    total_usage_count: int
    unique_identity_count: int
    total_discount_amount: float
    average_discount_amount: float
    first_used_at: datetime | None = None
    last_used_at: datetime | None = None
    daily_usage: list[DailyUsageResponse] = []


class CartItemResponse(BaseModel):
    item_id: str
    variant_id: str
    product_id: str
    quantity: int
    unit_price: float
    state: str
    deleted_at: datetime | None = None
    order_id: str | None = None


class CartResponse(BaseModel):
    cart_id: str
    customer_email: str | None = None
    session_id: str | None = None
    items: list[CartItemResponse] = []
    subtotal: float


class ValidateDiscountResponse(BaseModel):
    applicable: bool
    reason: str | None = None
    discount_code: str | None = None
    amount: float | None = None


class QuoteResponse(BaseModel):
    subtotal: float
    discount_amount: float
    total: float
    currency: str
    discount_code: str | None = None
    rejection: str | None = None


class OrderResponse(BaseModel):
    order_id: str
    cart_id: str
    status: str
    subtotal: float
    discount_total: float
    grand_total: float
    currency: str
    discount_code: str | None = None


class ErrorResponse(BaseModel):
    error: str
    reason: str | None = None
