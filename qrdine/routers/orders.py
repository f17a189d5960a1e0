"""
Order routes.

Public: checkout from a table, order tracking, card payment.
Staff: order board, status workflow, kitchen notes, dashboards, refunds.
"""

import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.core.rate_limit import limiter
from qrdine.core.security import (
    ensure_restaurant_access,
    require_admin,
    require_staff,
    resolve_restaurant_id,
)
from qrdine.database import get_db
from qrdine.models import (
    MenuItem,
    NotificationLog,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Restaurant,
    RestaurantStatus,
    TableStatus,
    User,
    utcnow,
)
from qrdine.schemas import (
    AllergenSummary,
    ConfirmPaymentRequest,
    ErrorResponse,
    NotificationOut,
    OrderCreate,
    OrderEnvelope,
    OrderListResponse,
    OrderNotesUpdate,
    OrderOut,
    OrderStatusUpdate,
    PaymentIntentResponse,
    RefundRequest,
    RefundResponse,
    restaurant_settings,
)
from qrdine.services.notifications import NotificationDispatcher, get_notification_dispatcher
from qrdine.services.order_lifecycle import (
    InvalidTransition,
    apply_status,
    get_table,
    mark_payment_completed,
    mark_payment_failed,
    mark_refunded,
    occupy_table,
)
from qrdine.services.ordering import (
    PricingError,
    build_allergen_summary,
    calculate_order_totals,
    estimate_prep_time,
    price_line_item,
)
from qrdine.services.payment import BasePaymentService, get_payment_service

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def _envelope(order: Order, message: Optional[str] = None) -> OrderEnvelope:
    return OrderEnvelope(
        message=message,
        order=OrderOut.model_validate(order),
        allergen_summary=AllergenSummary.model_validate(order.allergen_summary or {}),
    )


async def _get_order(db: AsyncSession, order_id: int) -> Order:
    order = await db.get(Order, order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


async def _get_staff_order(db: AsyncSession, order_id: int, user: User) -> Order:
    order = await _get_order(db, order_id)
    ensure_restaurant_access(user, order.restaurant_id, "Order")
    return order


def _pages(total: int, limit: int) -> int:
    return max(1, math.ceil(total / limit))


# =============================================================================
# CHECKOUT
# =============================================================================

@router.post(
    "",
    response_model=OrderEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Place an order from a table",
)
@limiter.limit(settings.rate_limit_orders)
async def create_order(
    request: Request,
    payload: OrderCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> OrderEnvelope:
    """
    Price the cart from the restaurant's own menu, persist the order,
    occupy the table and queue the customer/kitchen notifications.

    Nothing is persisted when any line fails validation.
    """
    logger.info(
        f"Creating order for restaurant {payload.restaurant_id} table {payload.table_id} "
        f"({len(payload.items)} lines)"
    )

    try:
        restaurant = await db.get(Restaurant, payload.restaurant_id)
        if restaurant is None or restaurant.status != RestaurantStatus.ACTIVE:
            raise HTTPException(status_code=404, detail="Restaurant not found or inactive")

        table = await get_table(db, restaurant.id, payload.table_id)
        if table is None:
            raise HTTPException(status_code=404, detail=f"Table {payload.table_id} not found")
        if table.status == TableStatus.CLEANING:
            raise HTTPException(
                status_code=400,
                detail=f"Table {payload.table_id} is being prepared. Please ask a member of staff.",
            )

        options = restaurant_settings(restaurant)
        if payload.payment_method == PaymentMethod.CASH and not options.allow_cash_payment:
            raise HTTPException(status_code=400, detail="Cash payment is not accepted at this restaurant")

        menu_ids = {item.menu_item_id for item in payload.items}
        result = await db.execute(
            select(MenuItem).where(MenuItem.id.in_(menu_ids), MenuItem.restaurant_id == restaurant.id)
        )
        menu = {m.id: m for m in result.scalars().all()}

        lines = []
        for item in payload.items:
            menu_item = menu.get(item.menu_item_id)
            if menu_item is None:
                raise HTTPException(status_code=400, detail=f"Menu item {item.menu_item_id} not found")
            if not menu_item.is_available:
                raise HTTPException(status_code=400, detail=f"{menu_item.name} is currently unavailable")
            try:
                lines.append(price_line_item(menu_item, item))
            except PricingError as e:
                raise HTTPException(status_code=400, detail=str(e))

        totals = calculate_order_totals(lines, options.tax_rate)
        summary = build_allergen_summary(lines, payload.special_instructions)
        prep_time = estimate_prep_time(lines, summary)

        auto_confirm = options.auto_confirm_orders
        order = Order(
            restaurant_id=restaurant.id,
            table_number=table.table_number,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            customer_email=payload.customer_email,
            items=lines,
            special_instructions=payload.special_instructions,
            subtotal=totals["subtotal"],
            tax=totals["tax"],
            tax_rate=totals["tax_rate"],
            total=totals["total"],
            payment_method=payload.payment_method,
            payment_status=PaymentStatus.PENDING,
            status=OrderStatus.CONFIRMED if auto_confirm else OrderStatus.PENDING,
            estimated_prep_time=prep_time,
            allergen_summary=summary,
            has_allergen_concerns=summary["has_allergen_concerns"],
            confirmed_at=utcnow() if auto_confirm else None,
        )
        db.add(order)
        await db.flush()

        occupy_table(table, order)
        queued = dispatcher.queue_order_created(db, order, restaurant)
        await db.commit()

        dispatcher.schedule(background_tasks, queued)

        logger.info(
            f"Order #{order.id} created: ${order.total:.2f}, prep {prep_time} min"
            + (" [ALLERGEN]" if order.has_allergen_concerns else "")
        )
        return _envelope(order, "Order placed successfully")

    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Error creating order: {e}")
        await db.rollback()
        raise HTTPException(
            status_code=500,
            detail=f"Failed to create order: {e}" if settings.show_error_details else "Failed to create order",
        )


# =============================================================================
# STAFF LISTINGS & DASHBOARDS (static paths before /{order_id})
# =============================================================================

@router.get("", response_model=OrderListResponse)
async def list_orders(
    restaurant_id: Optional[int] = Query(None, alias="restaurantId"),
    status_filter: Optional[OrderStatus] = Query(None, alias="status"),
    payment_status: Optional[PaymentStatus] = Query(None, alias="paymentStatus"),
    table_id: Optional[str] = Query(None, alias="tableId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Paginated order board for the caller's restaurant, newest first."""
    rid = resolve_restaurant_id(user, restaurant_id)

    conditions = [Order.restaurant_id == rid]
    if status_filter:
        conditions.append(Order.status == status_filter)
    if payment_status:
        conditions.append(Order.payment_status == payment_status)
    if table_id:
        conditions.append(Order.table_number == table_id)

    total_result = await db.execute(select(func.count(Order.id)).where(*conditions))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    orders = result.scalars().all()

    return OrderListResponse(
        total=total,
        page=page,
        pages=_pages(total, limit),
        orders=[OrderOut.model_validate(o) for o in orders],
    )


@router.get("/stats")
async def order_stats(
    restaurant_id: Optional[int] = Query(None, alias="restaurantId"),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Aggregated order statistics for the dashboard."""
    rid = resolve_restaurant_id(user, restaurant_id)
    scope = Order.restaurant_id == rid

    by_status = await db.execute(
        select(Order.status, func.count(Order.id)).where(scope).group_by(Order.status)
    )
    status_counts = {s.value: 0 for s in OrderStatus}
    for order_status, count in by_status.all():
        status_counts[order_status.value] = count

    by_payment = await db.execute(
        select(Order.payment_status, func.count(Order.id)).where(scope).group_by(Order.payment_status)
    )
    payment_counts = {s.value: 0 for s in PaymentStatus}
    for payment_status, count in by_payment.all():
        payment_counts[payment_status.value] = count

    revenue_result = await db.execute(
        select(func.sum(Order.total)).where(
            scope,
            or_(Order.payment_status == PaymentStatus.COMPLETED, Order.status == OrderStatus.COMPLETED),
            Order.payment_status != PaymentStatus.REFUNDED,
        )
    )
    revenue = revenue_result.scalar() or 0.0

    avg_result = await db.execute(
        select(func.avg(Order.total)).where(scope, Order.status != OrderStatus.CANCELLED)
    )
    avg_order_value = avg_result.scalar() or 0.0

    today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    today_result = await db.execute(
        select(func.count(Order.id)).where(scope, Order.created_at >= today_start)
    )

    allergen_result = await db.execute(
        select(Order.allergen_summary).where(scope, Order.has_allergen_concerns.is_(True))
    )
    summaries = allergen_result.scalars().all()
    allergen_counter = Counter(
        allergen
        for summary in summaries
        for allergen in (summary or {}).get("avoided_allergens", [])
    )

    return {
        "success": True,
        "stats": {
            "totalOrders": sum(status_counts.values()),
            "byStatus": status_counts,
            "byPaymentStatus": payment_counts,
            "activeOrders": sum(status_counts[s.value] for s in OrderStatus.active()),
            "totalRevenue": round(revenue, 2),
            "averageOrderValue": round(avg_order_value, 2),
            "todayOrders": today_result.scalar() or 0,
            "allergenOrders": len(summaries),
            "topAvoidedAllergens": [
                {"allergen": name, "count": count} for name, count in allergen_counter.most_common(5)
            ],
        },
    }


@router.get("/allergen", response_model=OrderListResponse)
async def allergen_orders(
    restaurant_id: Optional[int] = Query(None, alias="restaurantId"),
    active_only: bool = Query(False, alias="activeOnly"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    """Orders carrying allergen concerns, for the kitchen."""
    rid = resolve_restaurant_id(user, restaurant_id)

    conditions = [Order.restaurant_id == rid, Order.has_allergen_concerns.is_(True)]
    if active_only:
        conditions.append(Order.status.in_(OrderStatus.active()))

    total_result = await db.execute(select(func.count(Order.id)).where(*conditions))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Order)
        .where(*conditions)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return OrderListResponse(
        total=total,
        page=page,
        pages=_pages(total, limit),
        orders=[OrderOut.model_validate(o) for o in result.scalars().all()],
    )


# =============================================================================
# SINGLE ORDER
# =============================================================================

@router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: int,
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """Order tracking for the customer at the table."""
    return _envelope(await _get_order(db, order_id))


@router.put(
    "/{order_id}/status",
    response_model=OrderEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_order_status(
    order_id: int,
    payload: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> OrderEnvelope:
    order = await _get_staff_order(db, order_id, user)

    try:
        await apply_status(db, order, payload.status)
    except InvalidTransition as e:
        raise HTTPException(status_code=400, detail=str(e))

    if payload.kitchen_notes is not None:
        order.kitchen_notes = payload.kitchen_notes

    restaurant = await db.get(Restaurant, order.restaurant_id)
    queued = dispatcher.queue_status_update(db, order, restaurant)
    await db.commit()

    dispatcher.schedule(background_tasks, queued)
    return _envelope(order, f"Order status updated to {order.status.value}")


@router.put("/{order_id}/notes", response_model=OrderEnvelope)
async def update_kitchen_notes(
    order_id: int,
    payload: OrderNotesUpdate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> OrderEnvelope:
    """Kitchen notes stay editable on completed and cancelled orders."""
    order = await _get_staff_order(db, order_id, user)
    order.kitchen_notes = payload.kitchen_notes
    order.updated_at = utcnow()
    await db.commit()
    return _envelope(order, "Kitchen notes updated")


@router.get("/{order_id}/notifications", response_model=list[NotificationOut])
async def order_notifications(
    order_id: int,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> list[NotificationOut]:
    """Delivery log of every notification queued for the order."""
    await _get_staff_order(db, order_id, user)
    result = await db.execute(
        select(NotificationLog).where(NotificationLog.order_id == order_id).order_by(NotificationLog.id)
    )
    return [NotificationOut.model_validate(n) for n in result.scalars().all()]


# =============================================================================
# PAYMENTS
# =============================================================================

@router.post(
    "/{order_id}/payment-intent",
    response_model=PaymentIntentResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def create_payment_intent(
    order_id: int,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse:
    """
    Create (or return the existing) card payment intent for an order.

    Calling this twice returns the same intent rather than charging twice.
    """
    order = await _get_order(db, order_id)

    if order.payment_status == PaymentStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Order is already paid")
    if order.status == OrderStatus.CANCELLED:
        raise HTTPException(status_code=400, detail="Cannot pay for a cancelled order")
    if order.payment_method == PaymentMethod.CASH:
        raise HTTPException(status_code=400, detail="This order is set to be paid in cash")

    restaurant = await db.get(Restaurant, order.restaurant_id)
    currency = restaurant_settings(restaurant).currency if restaurant else settings.stripe_currency

    metadata = {
        "order_id": str(order.id),
        "restaurant_id": str(order.restaurant_id),
        "table_id": order.table_number,
    }
    if order.payment_intent_id:
        existing = await payment_service.retrieve_payment_intent(order.payment_intent_id)
        if existing.payable:
            logger.info(f"Order #{order.id}: reusing payment intent {existing.payment_intent_id}")
            return PaymentIntentResponse(
                payment_intent_id=existing.payment_intent_id,
                client_secret=existing.client_secret,
                amount=order.total,
                currency=existing.currency or currency,
                reused=True,
            )
        logger.warning(
            f"Order #{order.id}: stored intent {order.payment_intent_id} unusable "
            f"({existing.status or existing.error_message}), creating a new one"
        )
        metadata["replaces_intent"] = order.payment_intent_id

    result = await payment_service.create_payment_intent(
        amount=order.total,
        currency=currency,
        metadata=metadata,
    )
    if not result.success:
        logger.error(f"Order #{order.id}: payment intent failed - {result.error_message}")
        raise HTTPException(status_code=500, detail="Failed to create payment intent")

    order.payment_intent_id = result.payment_intent_id
    order.payment_status = PaymentStatus.PROCESSING
    order.updated_at = utcnow()
    await db.commit()

    return PaymentIntentResponse(
        payment_intent_id=result.payment_intent_id,
        client_secret=result.client_secret,
        amount=order.total,
        currency=result.currency or currency,
    )


@router.post(
    "/{order_id}/confirm-payment",
    response_model=OrderEnvelope,
    responses={400: {"model": ErrorResponse}},
)
async def confirm_payment(
    order_id: int,
    payload: ConfirmPaymentRequest,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> OrderEnvelope:
    order = await _get_order(db, order_id)

    if not order.payment_intent_id or payload.payment_intent_id != order.payment_intent_id:
        raise HTTPException(status_code=400, detail="Payment intent does not match this order")
    if order.payment_status == PaymentStatus.COMPLETED:
        return _envelope(order, "Payment already confirmed")

    result = await payment_service.retrieve_payment_intent(payload.payment_intent_id)

    if not result.succeeded:
        mark_payment_failed(order)
        await db.commit()
        reason = result.status or result.error_message or "unknown"
        raise HTTPException(status_code=400, detail=f"Payment not completed (status: {reason})")

    mark_payment_completed(order)
    restaurant = await db.get(Restaurant, order.restaurant_id)
    queued = dispatcher.queue_payment_confirmed(db, order, restaurant)
    await db.commit()

    dispatcher.schedule(background_tasks, queued)
    return _envelope(order, "Payment confirmed")


@router.post(
    "/{order_id}/refund",
    response_model=RefundResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def refund_order(
    order_id: int,
    payload: Optional[RefundRequest] = None,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
) -> RefundResponse:
    order = await _get_staff_order(db, order_id, user)

    if order.payment_status != PaymentStatus.COMPLETED or not order.payment_intent_id:
        raise HTTPException(status_code=400, detail="Only orders with a completed card payment can be refunded")

    payload = payload or RefundRequest()
    if payload.amount is not None and payload.amount > order.total:
        raise HTTPException(status_code=400, detail="Refund amount exceeds the order total")

    result = await payment_service.refund_payment(
        order.payment_intent_id,
        amount=payload.amount,
        reason=payload.reason,
    )
    if not result.success:
        logger.error(f"Order #{order.id}: refund failed - {result.error_message}")
        raise HTTPException(status_code=500, detail="Failed to process refund")

    mark_refunded(order)
    await db.commit()

    return RefundResponse(
        refund_id=result.refund_id,
        amount=result.amount,
        order=OrderOut.model_validate(order),
    )
