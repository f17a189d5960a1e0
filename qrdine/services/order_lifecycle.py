"""
Order lifecycle transitions.

Order status and table state are tracked independently; this module holds
the coupling between them and the payment status transitions shared by
the confirm-payment endpoint and the Stripe webhook.

Table coupling:
    order placed  -> table occupied, phase waiting_food, current order set
    served        -> phase eating
    completed     -> table cleaning / departure once no other order is active
    cancelled     -> table stays occupied, phase back to ordering
"""

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.models import (
    Order,
    OrderStatus,
    PaymentStatus,
    RestaurantTable,
    TablePhase,
    TableStatus,
    utcnow,
)

logger = logging.getLogger(__name__)


class InvalidTransition(ValueError):
    """The order cannot move to the requested state."""


async def get_table(db: AsyncSession, restaurant_id: int, table_number: str) -> Optional[RestaurantTable]:
    result = await db.execute(
        select(RestaurantTable).where(
            RestaurantTable.restaurant_id == restaurant_id,
            RestaurantTable.table_number == table_number,
        )
    )
    return result.scalar_one_or_none()


async def count_active_orders(
    db: AsyncSession,
    restaurant_id: int,
    table_number: str,
    exclude_order_id: Optional[int] = None,
) -> int:
    query = select(func.count(Order.id)).where(
        Order.restaurant_id == restaurant_id,
        Order.table_number == table_number,
        Order.status.in_(OrderStatus.active()),
    )
    if exclude_order_id is not None:
        query = query.where(Order.id != exclude_order_id)
    result = await db.execute(query)
    return result.scalar() or 0


def occupy_table(table: RestaurantTable, order: Order) -> None:
    table.status = TableStatus.OCCUPIED
    table.current_phase = TablePhase.WAITING_FOOD
    table.current_order_id = order.id
    table.updated_at = utcnow()


async def apply_status(db: AsyncSession, order: Order, new_status: OrderStatus) -> None:
    """
    Move an order to ``new_status`` and update its table.

    Raises:
        InvalidTransition: the order is already completed or cancelled
    """
    if order.is_terminal:
        raise InvalidTransition(f"Cannot change status of a {order.status.value} order")

    now = utcnow()
    previous = order.status
    order.status = new_status
    order.updated_at = now

    if new_status == OrderStatus.CONFIRMED and order.confirmed_at is None:
        order.confirmed_at = now
    elif new_status == OrderStatus.COMPLETED:
        order.completed_at = now

    table = await get_table(db, order.restaurant_id, order.table_number)
    if table is None:
        logger.warning(
            f"Order #{order.id}: table {order.table_number} no longer exists, table state not updated"
        )
    elif new_status == OrderStatus.SERVED:
        table.current_phase = TablePhase.EATING
        table.updated_at = now
    elif new_status == OrderStatus.COMPLETED:
        others = await count_active_orders(db, order.restaurant_id, order.table_number, exclude_order_id=order.id)
        if others == 0:
            table.status = TableStatus.CLEANING
            table.current_phase = TablePhase.DEPARTURE
            table.current_order_id = None
            table.updated_at = now
    elif new_status == OrderStatus.CANCELLED:
        table.current_phase = TablePhase.ORDERING
        if table.current_order_id == order.id:
            table.current_order_id = None
        table.updated_at = now

    logger.info(f"Order #{order.id}: {previous.value} -> {new_status.value}")


def mark_payment_completed(order: Order) -> bool:
    """
    Record a successful payment. Returns False when it was already recorded.

    A pending order is confirmed by payment; orders further along keep
    their status.
    """
    if order.payment_status == PaymentStatus.COMPLETED:
        return False

    now = utcnow()
    order.payment_status = PaymentStatus.COMPLETED
    order.updated_at = now
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.CONFIRMED
    if order.confirmed_at is None:
        order.confirmed_at = now
    logger.info(f"Order #{order.id}: payment completed")
    return True


def mark_payment_failed(order: Order) -> None:
    if order.payment_status == PaymentStatus.COMPLETED:
        logger.warning(f"Order #{order.id}: ignoring failure event for a completed payment")
        return
    order.payment_status = PaymentStatus.FAILED
    order.updated_at = utcnow()
    logger.info(f"Order #{order.id}: payment failed")


def mark_refunded(order: Order) -> None:
    order.payment_status = PaymentStatus.REFUNDED
    order.updated_at = utcnow()
    logger.info(f"Order #{order.id}: payment refunded")
