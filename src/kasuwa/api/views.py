"""Read models returned by the API, built from aggregates and projections."""

from dataclasses import asdict
from datetime import datetime

from pydantic import BaseModel

from kasuwa.api.schemas import ApiResponse


class VariantView(BaseModel):
    id: str
    name: str
    value: str
    price_adjustment: float
    stock_quantity: int
    sku: str | None = None
    is_active: bool

    @classmethod
    def of(cls, variant) -> "VariantView":
        return cls(
            id=str(variant.id),
            name=variant.name,
            value=variant.value,
            price_adjustment=variant.price_adjustment or 0.0,
            stock_quantity=variant.stock_quantity or 0,
            sku=variant.sku,
            is_active=bool(variant.is_active),
        )


class ImageView(BaseModel):
    id: str
    url: str
    alt_text: str | None = None
    is_primary: bool
    display_order: int


class ProductView(BaseModel):
    id: str
    vendor_id: str
    name: str
    description: str | None = None
    sku: str
    price: float
    stock_quantity: int
    weight_kg: float | None = None
    is_active: bool
    requires_shipping: bool
    track_quantity: bool
    allow_oversell: bool
    variants: list[VariantView] = []
    images: list[ImageView] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def of(cls, product) -> "ProductView":
        return cls(
            id=str(product.id),
            vendor_id=str(product.vendor_id),
            name=product.name,
            description=product.description,
            sku=product.sku,
            price=product.price,
            stock_quantity=product.stock_quantity or 0,
            weight_kg=product.weight_kg,
            is_active=bool(product.is_active),
            requires_shipping=bool(product.requires_shipping),
            track_quantity=bool(product.track_quantity),
            allow_oversell=bool(product.allow_oversell),
            variants=[VariantView.of(v) for v in product.variants],
            images=[
                ImageView(
                    id=str(i.id),
                    url=i.url,
                    alt_text=i.alt_text,
                    is_primary=bool(i.is_primary),
                    display_order=i.display_order or 0,
                )
                for i in sorted(product.images, key=lambda i: i.display_order or 0)
            ],
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class OrderItemView(BaseModel):
    id: str
    product_id: str
    variant_id: str | None = None
    vendor_id: str
    product_name: str
    sku: str | None = None
    variant_label: str | None = None
    image_url: str | None = None
    quantity: int
    unit_price: float
    total_price: float


class TrackingView(BaseModel):
    status: str
    status_date: datetime
    notes: str | None = None
    tracking_number: str | None = None
    location: str | None = None
    updated_by: str | None = None

    @classmethod
    def of(cls, entry) -> "TrackingView":
        return cls(
            status=entry.status,
            status_date=entry.status_date,
            notes=entry.notes,
            tracking_number=entry.tracking_number,
            location=entry.location,
            updated_by=entry.updated_by,
        )


class OrderView(BaseModel):
    id: str
    order_number: str
    customer_id: str
    status: str
    items: list[OrderItemView]
    subtotal: float
    shipping_cost: float
    tax_amount: float
    discount_amount: float
    total: float
    currency: str
    shipping_address: str
    billing_address: str | None = None
    shipping_method: str | None = None
    tracking_number: str | None = None
    notes: str | None = None
    estimated_delivery_date: datetime | None = None
    actual_delivery_date: datetime | None = None
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def of(cls, order) -> "OrderView":
        pricing = order.pricing
        return cls(
            id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            status=order.status,
            items=[
                OrderItemView(
                    id=str(item.id),
                    product_id=str(item.product.product_id),
                    variant_id=str(item.product.variant_id) if item.product.variant_id else None,
                    vendor_id=str(item.product.vendor_id),
                    product_name=item.product.name,
                    sku=item.product.sku,
                    variant_label=item.product.variant_label,
                    image_url=item.product.image_url,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in order.items
            ],
            subtotal=pricing.subtotal,
            shipping_cost=pricing.shipping_cost,
            tax_amount=pricing.tax_amount,
            discount_amount=pricing.discount_amount,
            total=pricing.total,
            currency=pricing.currency,
            shipping_address=order.shipping_address,
            billing_address=order.billing_address,
            shipping_method=order.shipping_method,
            tracking_number=order.tracking_number,
            notes=order.notes,
            estimated_delivery_date=order.estimated_delivery_date,
            actual_delivery_date=order.actual_delivery_date,
            cancellation_reason=order.cancellation_reason,
            cancelled_at=order.cancelled_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderListItem(BaseModel):
    id: str
    order_number: str
    customer_id: str
    status: str
    item_count: int
    total: float
    currency: str | None = None
    tracking_number: str | None = None
    created_at: datetime | None = None

    @classmethod
    def of(cls, summary) -> "OrderListItem":
        return cls(
            id=str(summary.order_id),
            order_number=summary.order_number,
            customer_id=str(summary.customer_id),
            status=summary.status,
            item_count=summary.item_count or 0,
            total=summary.total or 0.0,
            currency=summary.currency,
            tracking_number=summary.tracking_number,
            created_at=summary.created_at,
        )


class PaymentView(BaseModel):
    id: str
    order_id: str
    customer_id: str
    payment_method: str
    payment_provider: str | None = None
    transaction_id: str
    external_transaction_id: str | None = None
    amount: float
    currency: str
    status: str
    payment_date: datetime | None = None
    processed_date: datetime | None = None
    failure_reason: str | None = None
    attempt_count: int
    refund_amount: float
    refund_date: datetime | None = None
    refund_reason: str | None = None
    refund_transaction_id: str | None = None

    @classmethod
    def of(cls, payment) -> "PaymentView":
        return cls(
            id=str(payment.id),
            order_id=str(payment.order_id),
            customer_id=str(payment.customer_id),
            payment_method=payment.payment_method,
            payment_provider=payment.payment_provider,
            transaction_id=payment.transaction_id,
            external_transaction_id=payment.external_transaction_id,
            amount=payment.amount,
            currency=payment.currency,
            status=payment.status,
            payment_date=payment.payment_date,
            processed_date=payment.processed_date,
            failure_reason=payment.failure_reason,
            attempt_count=payment.attempt_count or 0,
            refund_amount=payment.refund_amount or 0.0,
            refund_date=payment.refund_date,
            refund_reason=payment.refund_reason,
            refund_transaction_id=payment.refund_transaction_id,
        )


class ReviewView(BaseModel):
    id: str
    product_id: str
    customer_id: str
    rating: int
    title: str | None = None
    comment: str | None = None
    reviewer_name: str | None = None
    is_approved: bool
    is_verified_purchase: bool
    helpful_count: int
    created_at: datetime | None = None
    approved_at: datetime | None = None

    @classmethod
    def of(cls, review) -> "ReviewView":
        return cls(
            id=str(review.id),
            product_id=str(review.product_id),
            customer_id=str(review.customer_id),
            rating=review.rating.score,
            title=review.title,
            comment=review.comment,
            reviewer_name=review.reviewer_name,
            is_approved=bool(review.is_approved),
            is_verified_purchase=bool(review.is_verified_purchase),
            helpful_count=review.helpful_count or 0,
            created_at=review.created_at,
            approved_at=review.approved_at,
        )


def dump(data):
    """JSON-ready form of a view, a list of views or a query dataclass."""
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, list):
        return [dump(item) for item in data]
    if hasattr(data, "__dataclass_fields__"):
        return asdict(data)
    return data


def ok(data=None, message: str | None = None) -> ApiResponse:
    return ApiResponse(message=message, data=dump(data))
