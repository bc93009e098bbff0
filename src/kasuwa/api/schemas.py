"""Pydantic request/response schemas for the Kasuwa API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------
class ApiResponse(BaseModel):
    success: bool = True
    message: str | None = None
    data: Any = None
    errors: list[str] = Field(default_factory=list)


class PagedResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool = True
    message: str | None = None
    data: list[Any] = Field(default_factory=list)
    total_count: int = 0
    page_size: int = 10
    current_page: int = 1
    total_pages: int = 0
    has_next_page: bool = False
    has_previous_page: bool = False

    @classmethod
    def of(cls, page, data: list, message: str | None = None) -> "PagedResponse":
        return cls(
            message=message,
            data=data,
            total_count=page.total_count,
            page_size=page.page_size,
            current_page=page.current_page,
            total_pages=page.total_pages,
            has_next_page=page.has_next_page,
            has_previous_page=page.has_previous_page,
        )


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
class CreateProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    sku: str = Field(min_length=1, max_length=50)
    price: float = Field(gt=0)
    stock_quantity: int = Field(ge=0, default=0)
    description: str | None = None
    weight_kg: float | None = Field(ge=0, default=None)
    requires_shipping: bool = True
    track_quantity: bool = True
    allow_oversell: bool = False
    vendor_id: str | None = None  # Administrators create on behalf of a vendor

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Ankara Tote Bag",
                    "sku": "ANK-TOTE-01",
                    "price": 3500.0,
                    "stock_quantity": 40,
                    "weight_kg": 0.4,
                }
            ]
        }
    }


class AddVariantRequest(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    value: str = Field(min_length=1, max_length=100)
    price_adjustment: float = 0.0
    stock_quantity: int = Field(ge=0, default=0)
    sku: str | None = None


class AddImageRequest(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    alt_text: str | None = None
    is_primary: bool = False


class ChangePriceRequest(BaseModel):
    price: float = Field(gt=0)


class AdjustStockRequest(BaseModel):
    quantity: int | None = Field(ge=0, default=None)
    delta: int | None = None
    variant_id: str | None = None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1, default=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int  # Below 1 removes the line


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CheckoutItemSchema(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1)


class CheckoutRequest(BaseModel):
    shipping_address: str = Field(min_length=1, max_length=500)
    billing_address: str | None = Field(default=None, max_length=500)
    shipping_method: str = "standard"
    shipping_cost: float | None = Field(ge=0, default=None)
    tax_amount: float | None = Field(ge=0, default=None)
    discount_amount: float = Field(ge=0, default=0.0)
    expected_subtotal: float | None = None
    notes: str | None = None
    items: list[CheckoutItemSchema] | None = None  # The cart is used when omitted

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "shipping_address": "12 Broad Street, Lagos Island, Lagos",
                    "shipping_method": "standard",
                    "shipping_cost": 1500.0,
                    "tax_amount": 850.0,
                }
            ]
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class UpdateOrderStatusRequest(BaseModel):
    status: str
    notes: str | None = None
    tracking_number: str | None = None
    location: str | None = None


class UpdateTrackingRequest(BaseModel):
    tracking_number: str = Field(min_length=1, max_length=100)
    location: str | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------
class ProcessPaymentRequest(BaseModel):
    order_id: str
    payment_method: str = Field(min_length=1, max_length=50)
    payment_provider: str | None = None


class PaymentCallbackRequest(BaseModel):
    status: Literal["completed", "failed"]
    external_transaction_id: str | None = None
    failure_reason: str | None = None
    response: str | None = None


class RefundRequest(BaseModel):
    amount: float = Field(gt=0)
    reason: str = Field(min_length=1, max_length=500)


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------
class SubmitReviewRequest(BaseModel):
    product_id: str
    rating: int = Field(ge=1, le=5)
    title: str | None = Field(default=None, max_length=200)
    comment: str | None = None
    reviewer_name: str | None = Field(default=None, max_length=100)


class EditReviewRequest(BaseModel):
    rating: int | None = Field(default=None, ge=1, le=5)
    title: str | None = Field(default=None, max_length=200)
    comment: str | None = None


class HelpfulVoteRequest(BaseModel):
    is_helpful: bool = True


class ModerateReviewRequest(BaseModel):
    approve: bool = True
    notes: str | None = None
