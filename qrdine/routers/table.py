"""
Public table routes: what a customer sees after scanning a table's QR code.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.database import get_db
from qrdine.models import MenuItem, Order, OrderStatus, Restaurant, RestaurantStatus, RestaurantTable
from qrdine.schemas import (
    WEEKDAYS,
    MenuItemOut,
    OrderOut,
    RestaurantPublic,
    RestaurantSettings,
    TableOut,
    restaurant_settings,
)
from qrdine.services.order_lifecycle import get_table

logger = logging.getLogger(__name__)

# Mounted at /api/table and its /api/tables alias
router = APIRouter(tags=["Table"])


def is_open(options: RestaurantSettings, now: Optional[datetime] = None) -> bool:
    """
    Whether ``now`` falls inside today's operating hours.

    Closing times at or before the opening time run past midnight.
    """
    now = now or datetime.now()
    hours = options.operating_hours[WEEKDAYS[now.weekday()]]
    if hours.closed:
        return False

    current = now.strftime("%H:%M")
    if hours.close <= hours.open:
        return current >= hours.open or current < hours.close
    return hours.open <= current < hours.close


async def _load(db: AsyncSession, restaurant_id: int, table_id: str) -> tuple[Restaurant, RestaurantTable]:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.status != RestaurantStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    table = await get_table(db, restaurant_id, table_id)
    if table is None:
        raise HTTPException(status_code=404, detail=f"Table {table_id} not found")
    return restaurant, table


@router.get("/{restaurant_id}/{table_id}")
async def get_table_info(
    restaurant_id: int,
    table_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    restaurant, table = await _load(db, restaurant_id, table_id)
    options = restaurant_settings(restaurant)

    return {
        "success": True,
        "restaurant": RestaurantPublic.model_validate(restaurant).model_dump(by_alias=True),
        "table": TableOut.model_validate(table).model_dump(by_alias=True, mode="json", exclude={"qr_code"}),
        "isOpen": is_open(options),
        "features": {
            "allowCashPayment": options.allow_cash_payment,
            "enableServerCall": options.enable_server_call,
            "enableWaitingList": options.enable_waiting_list,
        },
        "currency": options.currency,
        "taxRate": options.tax_rate,
    }


@router.get("/{restaurant_id}/{table_id}/menu")
async def get_table_menu(
    restaurant_id: int,
    table_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Available menu grouped by category."""
    await _load(db, restaurant_id, table_id)

    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.restaurant_id == restaurant_id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.category, MenuItem.name)
    )
    grouped: dict[str, list[dict]] = {}
    for item in result.scalars().all():
        grouped.setdefault(item.category, []).append(
            MenuItemOut.model_validate(item).model_dump(by_alias=True, mode="json")
        )

    return {
        "success": True,
        "tableId": table_id,
        "categories": list(grouped),
        "menu": grouped,
    }


@router.get("/{restaurant_id}/{table_id}/status")
async def get_table_status(
    restaurant_id: int,
    table_id: str,
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Table state, the table's active orders and current kitchen load."""
    _, table = await _load(db, restaurant_id, table_id)

    result = await db.execute(
        select(Order)
        .where(
            Order.restaurant_id == restaurant_id,
            Order.table_number == table.table_number,
            Order.status.in_(OrderStatus.active()),
        )
        .order_by(Order.created_at)
    )
    orders = result.scalars().all()

    kitchen = await db.execute(
        select(func.count(Order.id)).where(
            Order.restaurant_id == restaurant_id,
            Order.status.in_((OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PREPARING)),
        )
    )
    in_kitchen = kitchen.scalar() or 0

    return {
        "success": True,
        "table": {
            "tableNumber": table.table_number,
            "status": table.status.value,
            "currentPhase": table.current_phase.value,
            "currentOrderId": table.current_order_id,
        },
        "activeOrders": [OrderOut.model_validate(o).model_dump(by_alias=True, mode="json") for o in orders],
        "kitchenLoad": {
            "ordersInProgress": in_kitchen,
            "level": "high" if in_kitchen >= 10 else "medium" if in_kitchen >= 5 else "low",
        },
    }
