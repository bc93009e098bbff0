"""FastAPI routes for the marketplace — products, cart, orders, payments, reviews."""

import json
from datetime import datetime

from fastapi import APIRouter, Depends, Header, HTTPException, Request
from protean.utils.globals import current_domain

from kasuwa.api.auth import Actor, Role, current_actor, forbid, require_roles
from kasuwa.api.schemas import (
    AddImageRequest,
    AddToCartRequest,
    AddVariantRequest,
    AdjustStockRequest,
    ApiResponse,
    CancelOrderRequest,
    ChangePriceRequest,
    CheckoutRequest,
    CreateProductRequest,
    EditReviewRequest,
    HelpfulVoteRequest,
    ModerateReviewRequest,
    PagedResponse,
    PaymentCallbackRequest,
    ProcessPaymentRequest,
    RefundRequest,
    SubmitReviewRequest,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    UpdateTrackingRequest,
)
from kasuwa.api.views import (
    OrderListItem,
    OrderView,
    PaymentView,
    ProductView,
    ReviewView,
    TrackingView,
    dump,
    ok,
)
from kasuwa.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItemQuantity
from kasuwa.cart.queries import summarize_cart, validate_cart
from kasuwa.catalogue.creation import CreateProduct
from kasuwa.catalogue.lifecycle import ActivateProduct, AdjustStock, ChangeProductPrice, DeactivateProduct
from kasuwa.catalogue.product import Product
from kasuwa.catalogue.variants import AddProductImage, AddVariant
from kasuwa.ordering.cancellation import CancelOrder
from kasuwa.ordering.checkout import PlaceOrder
from kasuwa.ordering.order import Order
from kasuwa.ordering.search import OrderSearchCriteria, search_orders
from kasuwa.ordering.status import UpdateOrderStatus, UpdateOrderTracking
from kasuwa.payments.gateway import get_gateway
from kasuwa.payments.payment import Payment, PaymentStatus
from kasuwa.payments.processing import ProcessPayment, RecordPaymentResult
from kasuwa.payments.queries import payment_for_order
from kasuwa.payments.refund import RefundPayment
from kasuwa.reviews.moderation import ModerateReview
from kasuwa.reviews.queries import approved_reviews_for
from kasuwa.reviews.review import Review
from kasuwa.reviews.submission import EditReview, SubmitReview
from kasuwa.reviews.voting import VoteOnReview
from kasuwa.shared.paging import DEFAULT_PAGE_SIZE

_catalogue_staff = require_roles(Role.VENDOR, Role.ADMINISTRATOR)
_customer = require_roles(Role.CUSTOMER)
_administrator = require_roles(Role.ADMINISTRATOR)


# ---------------------------------------------------------------------------
# Access helpers
# ---------------------------------------------------------------------------
def _managed_product(product_id: str, actor: Actor) -> Product:
    product = current_domain.repository_for(Product).get(product_id)
    if actor.is_vendor and str(product.vendor_id) != actor.user_id:
        raise forbid()
    return product


def _can_view_order(order: Order, actor: Actor) -> bool:
    if actor.is_admin:
        return True
    if actor.is_vendor:
        return order.has_vendor(actor.user_id)
    return str(order.customer_id) == actor.user_id


def _visible_order(order_id: str, actor: Actor) -> Order:
    order = current_domain.repository_for(Order).get(order_id)
    if not _can_view_order(order, actor):
        raise forbid()
    return order


def _visible_payment(payment: Payment, actor: Actor) -> Payment:
    if not actor.is_admin and str(payment.customer_id) != actor.user_id:
        raise forbid()
    return payment


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ApiResponse)
async def create_product(body: CreateProductRequest, actor: Actor = Depends(_catalogue_staff)) -> ApiResponse:
    vendor_id = actor.user_id if actor.is_vendor else (body.vendor_id or actor.user_id)
    command = CreateProduct(
        vendor_id=vendor_id,
        name=body.name,
        sku=body.sku,
        price=body.price,
        stock_quantity=body.stock_quantity,
        description=body.description,
        weight_kg=body.weight_kg,
        requires_shipping=body.requires_shipping,
        track_quantity=body.track_quantity,
        allow_oversell=body.allow_oversell,
    )
    product_id = current_domain.process(command, asynchronous=False)
    product = current_domain.repository_for(Product).get(product_id)
    return ok(ProductView.of(product), "Product created")


@product_router.get("/{product_id}", response_model=ApiResponse)
async def get_product(product_id: str) -> ApiResponse:
    product = current_domain.repository_for(Product).get(product_id)
    return ok(ProductView.of(product))


@product_router.post("/{product_id}/variants", status_code=201, response_model=ApiResponse)
async def add_variant(
    product_id: str, body: AddVariantRequest, actor: Actor = Depends(_catalogue_staff)
) -> ApiResponse:
    _managed_product(product_id, actor)
    command = AddVariant(
        product_id=product_id,
        name=body.name,
        value=body.value,
        price_adjustment=body.price_adjustment,
        stock_quantity=body.stock_quantity,
        sku=body.sku,
    )
    current_domain.process(command, asynchronous=False)
    return ok(ProductView.of(current_domain.repository_for(Product).get(product_id)), "Variant added")


@product_router.post("/{product_id}/images", status_code=201, response_model=ApiResponse)
async def add_image(product_id: str, body: AddImageRequest, actor: Actor = Depends(_catalogue_staff)) -> ApiResponse:
    _managed_product(product_id, actor)
    command = AddProductImage(
        product_id=product_id,
        url=body.url,
        alt_text=body.alt_text,
        is_primary=body.is_primary,
    )
    current_domain.process(command, asynchronous=False)
    return ok(ProductView.of(current_domain.repository_for(Product).get(product_id)), "Image added")


@product_router.put("/{product_id}/price", response_model=ApiResponse)
async def change_price(
    product_id: str, body: ChangePriceRequest, actor: Actor = Depends(_catalogue_staff)
) -> ApiResponse:
    _managed_product(product_id, actor)
    current_domain.process(ChangeProductPrice(product_id=product_id, price=body.price), asynchronous=False)
    return ok(ProductView.of(current_domain.repository_for(Product).get(product_id)), "Price updated")


@product_router.put("/{product_id}/stock", response_model=ApiResponse)
async def adjust_stock(
    product_id: str, body: AdjustStockRequest, actor: Actor = Depends(_catalogue_staff)
) -> ApiResponse:
    _managed_product(product_id, actor)
    command = AdjustStock(
        product_id=product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
        delta=body.delta,
        reason=body.reason,
    )
    current_domain.process(command, asynchronous=False)
    return ok(ProductView.of(current_domain.repository_for(Product).get(product_id)), "Stock updated")


@product_router.put("/{product_id}/deactivate", response_model=ApiResponse)
async def deactivate_product(product_id: str, actor: Actor = Depends(_catalogue_staff)) -> ApiResponse:
    _managed_product(product_id, actor)
    current_domain.process(DeactivateProduct(product_id=product_id), asynchronous=False)
    return ok(message="Product deactivated")


@product_router.put("/{product_id}/activate", response_model=ApiResponse)
async def activate_product(product_id: str, actor: Actor = Depends(_catalogue_staff)) -> ApiResponse:
    _managed_product(product_id, actor)
    current_domain.process(ActivateProduct(product_id=product_id), asynchronous=False)
    return ok(message="Product activated")


@product_router.get("/{product_id}/reviews", response_model=PagedResponse)
async def list_product_reviews(product_id: str, page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> PagedResponse:
    current_domain.repository_for(Product).get(product_id)
    result = approved_reviews_for(product_id, page=page, page_size=page_size)
    return PagedResponse.of(result, dump([ReviewView.of(r) for r in result.items]))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=ApiResponse)
async def get_cart(shipping_method: str | None = None, actor: Actor = Depends(_customer)) -> ApiResponse:
    return ok(summarize_cart(actor.user_id, shipping_method))


@cart_router.post("/items", response_model=ApiResponse)
async def add_cart_item(body: AddToCartRequest, actor: Actor = Depends(_customer)) -> ApiResponse:
    command = AddToCart(
        customer_id=actor.user_id,
        product_id=body.product_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return ok(summarize_cart(actor.user_id), "Item added to cart")


@cart_router.put("/items/{item_id}", response_model=ApiResponse)
async def update_cart_item(item_id: str, body: UpdateCartItemRequest, actor: Actor = Depends(_customer)) -> ApiResponse:
    command = UpdateCartItemQuantity(
        customer_id=actor.user_id,
        item_id=item_id,
        new_quantity=body.quantity,
    )
    current_domain.process(command, asynchronous=False)
    return ok(summarize_cart(actor.user_id), "Cart updated")


@cart_router.delete("/items/{item_id}", response_model=ApiResponse)
async def remove_cart_item(item_id: str, actor: Actor = Depends(_customer)) -> ApiResponse:
    current_domain.process(RemoveFromCart(customer_id=actor.user_id, item_id=item_id), asynchronous=False)
    return ok(summarize_cart(actor.user_id), "Item removed from cart")


@cart_router.delete("", response_model=ApiResponse)
async def clear_cart(actor: Actor = Depends(_customer)) -> ApiResponse:
    current_domain.process(ClearCart(customer_id=actor.user_id), asynchronous=False)
    return ok(message="Cart cleared")


@cart_router.get("/validate", response_model=ApiResponse)
async def validate(actor: Actor = Depends(_customer)) -> ApiResponse:
    result = validate_cart(actor.user_id)
    return ok(result, "Cart is valid" if result.is_valid else "Cart has problems")


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=ApiResponse)
async def place_order(body: CheckoutRequest, actor: Actor = Depends(_customer)) -> ApiResponse:
    items = None
    if body.items is not None:
        items = json.dumps([item.model_dump() for item in body.items])

    command = PlaceOrder(
        customer_id=actor.user_id,
        shipping_address=body.shipping_address,
        billing_address=body.billing_address,
        shipping_method=body.shipping_method,
        shipping_cost=body.shipping_cost,
        tax_amount=body.tax_amount,
        discount_amount=body.discount_amount,
        expected_subtotal=body.expected_subtotal,
        notes=body.notes,
        items=items,
    )
    order_id = current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return ok(OrderView.of(order), f"Order {order.order_number} placed")


@order_router.get("", response_model=PagedResponse)
async def list_orders(
    order_number: str | None = None,
    status: str | None = None,
    customer_id: str | None = None,
    vendor_id: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    min_amount: float | None = None,
    max_amount: float | None = None,
    sort_by: str = "date",
    sort_direction: str = "desc",
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
    actor: Actor = Depends(current_actor),
) -> PagedResponse:
    if actor.is_customer:
        customer_id, vendor_id = actor.user_id, None
    elif actor.is_vendor:
        vendor_id = actor.user_id

    criteria = OrderSearchCriteria(
        order_number=order_number,
        status=status,
        customer_id=customer_id,
        vendor_id=vendor_id,
        date_from=date_from,
        date_to=date_to,
        min_amount=min_amount,
        max_amount=max_amount,
        sort_by=sort_by,
        descending=sort_direction.lower() != "asc",
        page=page,
        page_size=page_size,
    )
    result = search_orders(criteria)
    return PagedResponse.of(result, dump([OrderListItem.of(s) for s in result.items]))


@order_router.get("/{order_id}", response_model=ApiResponse)
async def get_order(order_id: str, actor: Actor = Depends(current_actor)) -> ApiResponse:
    return ok(OrderView.of(_visible_order(order_id, actor)))


@order_router.get("/{order_id}/tracking", response_model=ApiResponse)
async def get_order_tracking(order_id: str, actor: Actor = Depends(current_actor)) -> ApiResponse:
    order = _visible_order(order_id, actor)
    return ok([TrackingView.of(entry) for entry in order.tracking_history()])


@order_router.post("/{order_id}/cancel", response_model=ApiResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest, actor: Actor = Depends(current_actor)) -> ApiResponse:
    order = current_domain.repository_for(Order).get(order_id)
    if not actor.is_admin and not (actor.is_customer and str(order.customer_id) == actor.user_id):
        raise forbid()

    command = CancelOrder(order_id=order_id, reason=body.reason, cancelled_by=actor.user_id)
    current_domain.process(command, asynchronous=False)
    return ok(OrderView.of(current_domain.repository_for(Order).get(order_id)), "Order cancelled")


@order_router.put("/{order_id}/status", response_model=ApiResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, actor: Actor = Depends(current_actor)
) -> ApiResponse:
    order = current_domain.repository_for(Order).get(order_id)
    if not actor.is_admin and not (actor.is_vendor and order.has_vendor(actor.user_id)):
        raise forbid()

    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        notes=body.notes,
        tracking_number=body.tracking_number,
        location=body.location,
        updated_by=actor.user_id,
    )
    current_domain.process(command, asynchronous=False)
    order = current_domain.repository_for(Order).get(order_id)
    return ok(OrderView.of(order), f"Order status updated to {order.status}")


@order_router.put("/{order_id}/tracking", response_model=ApiResponse)
async def update_order_tracking(
    order_id: str, body: UpdateTrackingRequest, actor: Actor = Depends(current_actor)
) -> ApiResponse:
    order = current_domain.repository_for(Order).get(order_id)
    if not actor.is_admin and not (actor.is_vendor and order.has_vendor(actor.user_id)):
        raise forbid()

    command = UpdateOrderTracking(
        order_id=order_id,
        tracking_number=body.tracking_number,
        location=body.location,
        notes=body.notes,
        updated_by=actor.user_id,
    )
    current_domain.process(command, asynchronous=False)
    return ok(OrderView.of(current_domain.repository_for(Order).get(order_id)), "Tracking updated")


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])

_PAYMENT_MESSAGES = {
    PaymentStatus.COMPLETED.value: "Payment completed",
    PaymentStatus.PROCESSING.value: "Payment is being processed",
}


@payment_router.post("/process", response_model=ApiResponse)
async def process_payment(body: ProcessPaymentRequest, actor: Actor = Depends(_customer)) -> ApiResponse:
    order = current_domain.repository_for(Order).get(body.order_id)
    if str(order.customer_id) != actor.user_id:
        raise forbid()

    command = ProcessPayment(
        order_id=body.order_id,
        customer_id=actor.user_id,
        payment_method=body.payment_method,
        payment_provider=body.payment_provider,
    )
    payment_id = current_domain.process(command, asynchronous=False)
    payment = current_domain.repository_for(Payment).get(payment_id)
    message = _PAYMENT_MESSAGES.get(payment.status) or f"Payment failed: {payment.failure_reason}"
    return ok(PaymentView.of(payment), message)


@payment_router.post("/{payment_id}/callback", response_model=ApiResponse)
async def payment_callback(
    payment_id: str,
    body: PaymentCallbackRequest,
    request: Request,
    x_gateway_signature: str = Header(default=""),
) -> ApiResponse:
    """Record a result the provider declares. Only signed callbacks are accepted."""
    payload = (await request.body()).decode()
    if not get_gateway().verify_webhook_signature(payload, x_gateway_signature):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    command = RecordPaymentResult(
        payment_id=payment_id,
        status=body.status,
        external_transaction_id=body.external_transaction_id,
        failure_reason=body.failure_reason,
        response=body.response,
    )
    current_domain.process(command, asynchronous=False)
    return ok(PaymentView.of(current_domain.repository_for(Payment).get(payment_id)), "Payment result recorded")


@payment_router.post("/{payment_id}/refund", response_model=ApiResponse)
async def refund_payment(payment_id: str, body: RefundRequest, actor: Actor = Depends(_administrator)) -> ApiResponse:
    command = RefundPayment(
        payment_id=payment_id,
        amount=body.amount,
        reason=body.reason,
        requested_by=actor.user_id,
    )
    current_domain.process(command, asynchronous=False)
    return ok(PaymentView.of(current_domain.repository_for(Payment).get(payment_id)), "Refund processed")


@payment_router.get("/order/{order_id}", response_model=ApiResponse)
async def get_payment_for_order(order_id: str, actor: Actor = Depends(current_actor)) -> ApiResponse:
    _visible_order(order_id, actor)
    payment = payment_for_order(order_id)
    if payment is None:
        return ok(message="No payment recorded for this order")
    return ok(PaymentView.of(payment))


@payment_router.get("/{payment_id}", response_model=ApiResponse)
async def get_payment(payment_id: str, actor: Actor = Depends(current_actor)) -> ApiResponse:
    payment = _visible_payment(current_domain.repository_for(Payment).get(payment_id), actor)
    return ok(PaymentView.of(payment))


# ---------------------------------------------------------------------------
# Review Router
# ---------------------------------------------------------------------------
review_router = APIRouter(prefix="/reviews", tags=["reviews"])


@review_router.post("", status_code=201, response_model=ApiResponse)
async def submit_review(body: SubmitReviewRequest, actor: Actor = Depends(_customer)) -> ApiResponse:
    command = SubmitReview(
        product_id=body.product_id,
        customer_id=actor.user_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
        reviewer_name=body.reviewer_name,
    )
    review_id = current_domain.process(command, asynchronous=False)
    review = current_domain.repository_for(Review).get(review_id)
    return ok(ReviewView.of(review), "Review submitted for moderation")


@review_router.put("/{review_id}", response_model=ApiResponse)
async def edit_review(review_id: str, body: EditReviewRequest, actor: Actor = Depends(current_actor)) -> ApiResponse:
    review = current_domain.repository_for(Review).get(review_id)
    if str(review.customer_id) != actor.user_id:
        raise forbid()

    command = EditReview(
        review_id=review_id,
        customer_id=actor.user_id,
        rating=body.rating,
        title=body.title,
        comment=body.comment,
    )
    current_domain.process(command, asynchronous=False)
    return ok(ReviewView.of(current_domain.repository_for(Review).get(review_id)), "Review updated")


@review_router.post("/{review_id}/helpful", response_model=ApiResponse)
async def vote_helpful(review_id: str, body: HelpfulVoteRequest, actor: Actor = Depends(current_actor)) -> ApiResponse:
    command = VoteOnReview(review_id=review_id, user_id=actor.user_id, is_helpful=body.is_helpful)
    current_domain.process(command, asynchronous=False)
    return ok(ReviewView.of(current_domain.repository_for(Review).get(review_id)), "Vote recorded")


@review_router.post("/{review_id}/approve", response_model=ApiResponse)
async def moderate_review(
    review_id: str, body: ModerateReviewRequest, actor: Actor = Depends(_administrator)
) -> ApiResponse:
    command = ModerateReview(review_id=review_id, admin_id=actor.user_id, approve=body.approve, notes=body.notes)
    current_domain.process(command, asynchronous=False)
    review = current_domain.repository_for(Review).get(review_id)
    return ok(ReviewView.of(review), "Review approved" if review.is_approved else "Review rejected")
