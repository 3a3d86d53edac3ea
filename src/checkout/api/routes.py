"""FastAPI routes for the Checkout domain — discounts, carts and settlement."""

import json

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    AddToCartRequest,
    CartIdResponse,
    CartItemResponse,
    CartResponse,
    CategoryIdsRequest,
    CheckoutRequest,
    CreateCartRequest,
    CreateDiscountRequest,
    DailyUsageResponse,
    DiscountIdResponse,
    DiscountResponse,
    DiscountStatisticsResponse,
    ItemIdResponse,
    OrderResponse,
    ProductIdsRequest,
    QuoteRequest,
    QuoteResponse,
    StatusResponse,
    UpdateCartQuantityRequest,
    UpdateDiscountRequest,
    ValidateDiscountRequest,
    ValidateDiscountResponse,
)
from checkout.cart.cart import Cart
from checkout.cart.items import AddToCart, CreateCart, ExpireCartItems, RemoveFromCart, UpdateCartQuantity
from checkout.promotion.discount import Discount
from checkout.promotion.management import (
    ActivateDiscount,
    AddCategoriesToDiscount,
    AddProductsToDiscount,
    CreateDiscount,
    DeactivateDiscount,
    DeleteDiscount,
    RemoveCategoriesFromDiscount,
    RemoveProductsFromDiscount,
    UpdateDiscount,
)
from checkout.promotion.repository import DiscountFilter
from checkout.promotion.statistics import discount_statistics
from checkout.settlement.settlement import CartSettlement
from checkout.utils.logging import bind_checkout_context


def _discount_response(discount: Discount) -> DiscountResponse:
    return DiscountResponse(
        discount_id=str(discount.id),
        code=discount.code,
        name=discount.name,
        description=discount.description,
        discount_type=discount.discount_type,
        percentage_value=discount.percentage_value,
        fixed_value=discount.fixed_value,
        minimum_order_value=discount.minimum_order_value,
        maximum_discount_amount=discount.maximum_discount_amount,
        start_date=discount.start_date,
        end_date=discount.end_date,
        is_active=bool(discount.is_active),
        is_featured=bool(discount.is_featured),
        scope=discount.scope,
        product_ids=sorted(discount.product_ids),
        category_ids=sorted(discount.category_ids),
        max_usage_count=discount.max_usage_count,
        max_usage_per_customer=discount.max_usage_per_customer,
        current_usage_count=discount.current_usage_count or 0,
        is_currently_active=discount.is_currently_active(),
        can_be_used=discount.can_be_used(),
    )


def _cart_response(cart: Cart) -> CartResponse:
    return CartResponse(
        cart_id=str(cart.id),
        customer_email=cart.customer_email,
        session_id=cart.session_id,
        items=[
            CartItemResponse(
                item_id=str(item.id),
                variant_id=str(item.variant_id),
                product_id=str(item.product_id),
                quantity=item.quantity,
                unit_price=item.unit_price,
                state=item.state,
                deleted_at=item.deleted_at,
                order_id=str(item.order_id) if item.order_id else None,
            )
            for item in cart.items
        ],
        subtotal=float(cart.subtotal()),
    )


# ---------------------------------------------------------------------------
# Discount Router
# ---------------------------------------------------------------------------
discount_router = APIRouter(prefix="/discounts", tags=["discounts"])


@discount_router.post("", status_code=201, response_model=DiscountIdResponse)
async def create_discount(body: CreateDiscountRequest) -> DiscountIdResponse:
    command = CreateDiscount(
        code=body.code,
        name=body.name,
        description=body.description,
        discount_type=body.discount_type,
        percentage_value=body.percentage_value,
        fixed_value=body.fixed_value,
        minimum_order_value=body.minimum_order_value,
        maximum_discount_amount=body.maximum_discount_amount,
        start_date=body.start_date,
        end_date=body.end_date,
        is_active=body.is_active,
        is_featured=body.is_featured,
        scope=body.scope,
        product_ids=json.dumps(body.product_ids),
        category_ids=json.dumps(body.category_ids),
        max_usage_count=body.max_usage_count,
        max_usage_per_customer=body.max_usage_per_customer,
        created_by=body.created_by,
    )
    result = current_domain.process(command, asynchronous=False)
    return DiscountIdResponse(discount_id=result)


@discount_router.get("", response_model=list[DiscountResponse])
async def list_discounts(
    search: str | None = None,
    is_active: bool | None = None,
    discount_type: str | None = None,
    status: str | None = Query(default=None, pattern="^(active|expired|upcoming)$"),
    featured_only: bool = False,
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> list[DiscountResponse]:
    criteria = DiscountFilter(
        search=search,
        is_active=is_active,
        discount_type=discount_type,
        status=status,
        featured_only=featured_only,
        page=page,
        page_size=page_size,
    )
    discounts = current_domain.repository_for(Discount).list_discounts(criteria)
    return [_discount_response(d) for d in discounts]


@discount_router.get("/featured", response_model=list[DiscountResponse])
async def featured_discounts(count: int = Query(default=5, ge=1, le=50)) -> list[DiscountResponse]:
    discounts = current_domain.repository_for(Discount).featured(count)
    return [_discount_response(d) for d in discounts]


@discount_router.get("/{discount_id}", response_model=DiscountResponse)
async def get_discount(discount_id: str) -> DiscountResponse:
    discount = current_domain.repository_for(Discount).get(discount_id)
    return _discount_response(discount)


@discount_router.put("/{discount_id}", response_model=StatusResponse)
async def update_discount(discount_id: str, body: UpdateDiscountRequest) -> StatusResponse:
    command = UpdateDiscount(discount_id=discount_id, **body.model_dump(exclude_none=True))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@discount_router.delete("/{discount_id}", response_model=StatusResponse)
async def delete_discount(discount_id: str) -> StatusResponse:
    current_domain.process(DeleteDiscount(discount_id=discount_id), asynchronous=False)
    return StatusResponse()


@discount_router.post("/{discount_id}/activate", response_model=StatusResponse)
async def activate_discount(discount_id: str) -> StatusResponse:
    current_domain.process(ActivateDiscount(discount_id=discount_id), asynchronous=False)
    return StatusResponse()


@discount_router.post("/{discount_id}/deactivate", response_model=StatusResponse)
async def deactivate_discount(discount_id: str) -> StatusResponse:
    current_domain.process(DeactivateDiscount(discount_id=discount_id), asynchronous=False)
    return StatusResponse()


@discount_router.post("/{discount_id}/products", response_model=StatusResponse)
async def add_discount_products(discount_id: str, body: ProductIdsRequest) -> StatusResponse:
    command = AddProductsToDiscount(discount_id=discount_id, product_ids=json.dumps(body.product_ids))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@discount_router.post("/{discount_id}/products/remove", response_model=StatusResponse)
async def remove_discount_products(discount_id: str, body: ProductIdsRequest) -> StatusResponse:
    command = RemoveProductsFromDiscount(discount_id=discount_id, product_ids=json.dumps(body.product_ids))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@discount_router.post("/{discount_id}/categories", response_model=StatusResponse)
async def add_discount_categories(discount_id: str, body: CategoryIdsRequest) -> StatusResponse:
    command = AddCategoriesToDiscount(discount_id=discount_id, category_ids=json.dumps(body.category_ids))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@discount_router.post("/{discount_id}/categories/remove", response_model=StatusResponse)
async def remove_discount_categories(discount_id: str, body: CategoryIdsRequest) -> StatusResponse:
    command = RemoveCategoriesFromDiscount(discount_id=discount_id, category_ids=json.dumps(body.category_ids))
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@discount_router.get("/{discount_id}/statistics", response_model=DiscountStatisticsResponse)
async def get_discount_statistics(discount_id: str) -> DiscountStatisticsResponse:
    stats = discount_statistics(discount_id)
    return DiscountStatisticsResponse(
        discount_id=stats.discount_id,
        code=stats.code,
        total_usage_count=stats.total_usage_count,
        unique_identity_count=stats.unique_identity_count,
        total_discount_amount=float(stats.total_discount_amount),
        average_discount_amount=float(stats.average_discount_amount),
        first_used_at=stats.first_used_at,
        last_used_at=stats.last_used_at,
        daily_usage=[
            DailyUsageResponse(day=day.day.isoformat(), count=day.count, total=float(day.total))
            for day in stats.daily_usage
        ],
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(
        customer_email=body.customer_email,
        session_id=body.session_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def get_cart(cart_id: str) -> CartResponse:
    cart = current_domain.repository_for(Cart).get(cart_id)
    return _cart_response(cart)


@cart_router.post("/{cart_id}/items", response_model=ItemIdResponse)
async def add_cart_item(cart_id: str, body: AddToCartRequest) -> ItemIdResponse:
    command = AddToCart(
        cart_id=cart_id,
        variant_id=body.variant_id,
        quantity=body.quantity,
    )
    result = current_domain.process(command, asynchronous=False)
    return ItemIdResponse(item_id=result)


@cart_router.put("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def update_cart_item_quantity(cart_id: str, item_id: str, body: UpdateCartQuantityRequest) -> StatusResponse:
    command = UpdateCartQuantity(
        cart_id=cart_id,
        item_id=item_id,
        new_quantity=body.new_quantity,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.delete("/{cart_id}/items/{item_id}", response_model=StatusResponse)
async def remove_cart_item(cart_id: str, item_id: str) -> StatusResponse:
    command = RemoveFromCart(
        cart_id=cart_id,
        item_id=item_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/expire", response_model=StatusResponse)
async def expire_cart_items(cart_id: str) -> StatusResponse:
    current_domain.process(ExpireCartItems(cart_id=cart_id), asynchronous=False)
    return StatusResponse()


@cart_router.post("/{cart_id}/validate-discount", response_model=ValidateDiscountResponse)
async def validate_cart_discount(cart_id: str, body: ValidateDiscountRequest) -> ValidateDiscountResponse:
    result = CartSettlement().validate_discount(body.code, cart_id, body.identity)
    return ValidateDiscountResponse(
        applicable=result.applicable,
        reason=result.reason,
        discount_code=result.discount.code if result.discount else None,
        amount=float(result.amount) if result.amount is not None else None,
    )


@cart_router.post("/{cart_id}/quote", response_model=QuoteResponse)
async def quote_cart(cart_id: str, body: QuoteRequest) -> QuoteResponse:
    quote = CartSettlement().quote(cart_id, body.code, body.identity)
    return QuoteResponse(
        subtotal=float(quote.subtotal),
        discount_amount=float(quote.discount_amount),
        total=float(quote.total),
        currency=quote.currency,
        discount_code=quote.discount_code,
        rejection=quote.rejection,
    )


@cart_router.post("/{cart_id}/checkout", status_code=201, response_model=OrderResponse)
async def checkout_cart(cart_id: str, body: CheckoutRequest) -> OrderResponse:
    """Settle the cart into an order, applying at most one discount code."""
    bind_checkout_context(cart_id=cart_id)
    order = CartSettlement().settle_cart(
        cart_id,
        identity=body.identity,
        applied_code=body.discount_code,
        payment_method=body.payment_method,
    )
    return OrderResponse(
        order_id=str(order.id),
        cart_id=str(order.cart_id),
        status=order.status,
        subtotal=order.pricing.subtotal,
        discount_total=order.pricing.discount_total,
        grand_total=order.pricing.grand_total,
        currency=order.pricing.currency,
        discount_code=order.discount_code,
    )
