"""
Restaurant administration routes (admin of the restaurant).

Restaurant profile and settings, data reset, dashboard stats, and the
table inventory with its QR codes.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.core.security import get_owned_restaurant, require_admin
from qrdine.database import get_db
from qrdine.models import (
    ChatMessage,
    ChatSession,
    MenuItem,
    Order,
    OrderStatus,
    PaymentStatus,
    Restaurant,
    RestaurantTable,
    Review,
    ReviewResponse,
    ReviewStatus,
    ServiceRequest,
    ServiceStatus,
    TablePhase,
    TableStatus,
    User,
    UserRole,
    WaitingListEntry,
    utcnow,
)
from qrdine.schemas import (
    ErrorResponse,
    MessageResponse,
    ResetRequest,
    RestaurantCreate,
    RestaurantEnvelope,
    RestaurantOut,
    RestaurantSettings,
    RestaurantSettingsUpdate,
    RestaurantUpdate,
    TableCreate,
    TableEnvelope,
    TableOut,
    TableUpdate,
    restaurant_settings,
)
from qrdine.services.order_lifecycle import count_active_orders
from qrdine.services.qr import assign_qr_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/restaurants", tags=["Restaurants"])


# =============================================================================
# HELPERS (shared with the superadmin routes)
# =============================================================================

def initial_settings(update: Optional[RestaurantSettingsUpdate]) -> dict[str, Any]:
    base = RestaurantSettings(tax_rate=get_settings().default_tax_rate)
    return merge_settings(base, update)


def merge_settings(current: RestaurantSettings, update: Optional[RestaurantSettingsUpdate]) -> dict[str, Any]:
    """Apply a partial settings update; operating hours merge per day."""
    merged = current.model_dump()
    if update is not None:
        changes = update.model_dump(exclude_unset=True, exclude_none=True)
        hours = changes.pop("operating_hours", None)
        merged.update(changes)
        if hours:
            merged["operating_hours"] = {**merged["operating_hours"], **hours}
    return RestaurantSettings.model_validate(merged).model_dump(mode="json")


def build_tables(restaurant: Restaurant, tables: list[TableCreate]) -> None:
    for table_in in tables:
        table = RestaurantTable(
            table_number=table_in.table_number,
            capacity=table_in.capacity,
            status=TableStatus.AVAILABLE,
            current_phase=TablePhase.WAITING,
        )
        restaurant.tables.append(table)


def assign_all_qr_codes(restaurant: Restaurant) -> int:
    for table in restaurant.tables:
        assign_qr_code(table, restaurant.id)
    return len(restaurant.tables)


async def delete_restaurant_data(db: AsyncSession, restaurant_id: int, scope: str) -> dict[str, int]:
    """
    Bulk-delete operational data for one restaurant.

    ``scope`` is orders, reviews, service or all. Returns deleted row
    counts per kind.
    """
    counts: dict[str, int] = {}

    if scope in ("orders", "all"):
        result = await db.execute(delete(Order).where(Order.restaurant_id == restaurant_id))
        counts["orders"] = result.rowcount or 0
        await db.execute(
            update(RestaurantTable)
            .where(RestaurantTable.restaurant_id == restaurant_id)
            .values(status=TableStatus.AVAILABLE, current_phase=TablePhase.WAITING, current_order_id=None)
        )

    if scope in ("reviews", "all"):
        review_ids = select(Review.id).where(Review.restaurant_id == restaurant_id)
        await db.execute(delete(ReviewResponse).where(ReviewResponse.review_id.in_(review_ids)))
        result = await db.execute(delete(Review).where(Review.restaurant_id == restaurant_id))
        counts["reviews"] = result.rowcount or 0

    if scope in ("service", "all"):
        result = await db.execute(delete(ServiceRequest).where(ServiceRequest.restaurant_id == restaurant_id))
        counts["serviceRequests"] = result.rowcount or 0

    if scope == "all":
        result = await db.execute(delete(WaitingListEntry).where(WaitingListEntry.restaurant_id == restaurant_id))
        counts["waitingList"] = result.rowcount or 0
        session_ids = select(ChatSession.id).where(ChatSession.restaurant_id == restaurant_id)
        await db.execute(delete(ChatMessage).where(ChatMessage.session_id.in_(session_ids)))
        result = await db.execute(delete(ChatSession).where(ChatSession.restaurant_id == restaurant_id))
        counts["chatSessions"] = result.rowcount or 0

    return counts


def _find_table(restaurant: Restaurant, table_number: str) -> RestaurantTable:
    for table in restaurant.tables:
        if table.table_number == table_number:
            return table
    raise HTTPException(status_code=404, detail=f"Table {table_number} not found")


def _envelope(restaurant: Restaurant, message: Optional[str] = None) -> RestaurantEnvelope:
    return RestaurantEnvelope(message=message, restaurant=RestaurantOut.model_validate(restaurant))


# =============================================================================
# RESTAURANT
# =============================================================================

@router.post(
    "",
    response_model=RestaurantEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_restaurant(
    payload: RestaurantCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    """Create the caller's restaurant with its tables and their QR codes."""
    if user.role != UserRole.SUPERADMIN:
        if user.restaurant_id is not None:
            raise HTTPException(status_code=400, detail="You already have a restaurant")
        owned = await db.execute(select(Restaurant.id).where(Restaurant.owner_id == user.id))
        if owned.first() is not None:
            raise HTTPException(status_code=400, detail="You already have a restaurant")

    restaurant = Restaurant(
        name=payload.name,
        description=payload.description,
        cuisine=payload.cuisine,
        address=payload.address,
        phone=payload.phone,
        email=payload.email,
        website=payload.website,
        owner_id=user.id,
        settings=initial_settings(payload.settings),
        tables=[],
    )
    build_tables(restaurant, payload.tables)
    db.add(restaurant)
    await db.flush()

    assign_all_qr_codes(restaurant)
    if user.role != UserRole.SUPERADMIN:
        user.restaurant_id = restaurant.id
    await db.commit()

    logger.info(f"Restaurant #{restaurant.id} '{restaurant.name}' created by user #{user.id}")
    return _envelope(restaurant, "Restaurant created successfully")


@router.get("/my", response_model=RestaurantEnvelope)
async def get_my_restaurant(
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    return _envelope(await get_owned_restaurant(db, user))


@router.put("/my", response_model=RestaurantEnvelope)
async def update_my_restaurant(
    payload: RestaurantUpdate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    restaurant = await get_owned_restaurant(db, user)
    for field, value in payload.model_dump(exclude_unset=True).items():
        if field == "name" and value is None:
            continue
        setattr(restaurant, field, value)
    restaurant.updated_at = utcnow()
    await db.commit()
    return _envelope(restaurant, "Restaurant updated")


@router.put("/my/settings", response_model=RestaurantEnvelope)
async def update_my_settings(
    payload: RestaurantSettingsUpdate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    restaurant = await get_owned_restaurant(db, user)
    restaurant.settings = merge_settings(restaurant_settings(restaurant), payload)
    restaurant.updated_at = utcnow()
    await db.commit()
    return _envelope(restaurant, "Settings updated")


@router.post("/my/reset")
async def reset_my_restaurant(
    payload: ResetRequest,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Wipe orders, reviews, service requests or everything operational."""
    restaurant = await get_owned_restaurant(db, user)
    counts = await delete_restaurant_data(db, restaurant.id, payload.reset_type)
    await db.commit()

    logger.warning(f"Restaurant #{restaurant.id} reset ({payload.reset_type}) by user #{user.id}: {counts}")
    return {"success": True, "message": f"Reset of {payload.reset_type} completed", "deleted": counts}


@router.get("/my/stats")
async def my_restaurant_stats(
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    restaurant = await get_owned_restaurant(db, user)
    rid = restaurant.id

    table_counts = {s.value: 0 for s in TableStatus}
    for table in restaurant.tables:
        table_counts[table.status.value] += 1

    today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    orders_today = await db.execute(
        select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0.0)).where(
            Order.restaurant_id == rid,
            Order.created_at >= today_start,
            Order.status != OrderStatus.CANCELLED,
        )
    )
    today_count, today_revenue = orders_today.one()

    totals = await db.execute(
        select(func.count(Order.id), func.coalesce(func.sum(Order.total), 0.0)).where(
            Order.restaurant_id == rid,
            Order.payment_status == PaymentStatus.COMPLETED,
        )
    )
    paid_count, paid_revenue = totals.one()

    active_orders = await db.execute(
        select(func.count(Order.id)).where(Order.restaurant_id == rid, Order.status.in_(OrderStatus.active()))
    )
    pending_requests = await db.execute(
        select(func.count(ServiceRequest.id)).where(
            ServiceRequest.restaurant_id == rid,
            ServiceRequest.status.in_((ServiceStatus.PENDING, ServiceStatus.IN_PROGRESS)),
        )
    )
    ratings = await db.execute(
        select(func.count(Review.id), func.avg(Review.rating)).where(
            Review.restaurant_id == rid, Review.status == ReviewStatus.APPROVED
        )
    )
    review_count, avg_rating = ratings.one()
    menu_count = await db.execute(select(func.count(MenuItem.id)).where(MenuItem.restaurant_id == rid))

    return {
        "success": True,
        "stats": {
            "tables": {"total": len(restaurant.tables), **table_counts},
            "todayOrders": today_count or 0,
            "todayRevenue": round(today_revenue or 0.0, 2),
            "paidOrders": paid_count or 0,
            "totalRevenue": round(paid_revenue or 0.0, 2),
            "activeOrders": active_orders.scalar() or 0,
            "pendingServiceRequests": pending_requests.scalar() or 0,
            "reviews": review_count or 0,
            "averageRating": round(avg_rating or 0.0, 1),
            "menuItems": menu_count.scalar() or 0,
        },
    }


# =============================================================================
# TABLES & QR CODES
# =============================================================================

@router.post(
    "/my/tables",
    response_model=TableEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def add_table(
    payload: TableCreate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TableEnvelope:
    restaurant = await get_owned_restaurant(db, user)
    if any(t.table_number == payload.table_number for t in restaurant.tables):
        raise HTTPException(status_code=400, detail=f"Table {payload.table_number} already exists")

    table = RestaurantTable(
        table_number=payload.table_number,
        capacity=payload.capacity,
        status=TableStatus.AVAILABLE,
        current_phase=TablePhase.WAITING,
    )
    assign_qr_code(table, restaurant.id)
    restaurant.tables.append(table)
    await db.commit()

    return TableEnvelope(message="Table added", table=TableOut.model_validate(table))


@router.put(
    "/my/tables/{table_number}",
    response_model=TableEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_table(
    table_number: str,
    payload: TableUpdate,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> TableEnvelope:
    """Capacity, status, phase, or renumbering (which regenerates the QR code)."""
    restaurant = await get_owned_restaurant(db, user)
    table = _find_table(restaurant, table_number)

    if payload.table_number and payload.table_number != table.table_number:
        if any(t.table_number == payload.table_number for t in restaurant.tables):
            raise HTTPException(status_code=400, detail=f"Table {payload.table_number} already exists")
        if await count_active_orders(db, restaurant.id, table.table_number):
            raise HTTPException(status_code=400, detail="Cannot renumber a table with active orders")
        table.table_number = payload.table_number
        assign_qr_code(table, restaurant.id)

    if payload.capacity is not None:
        table.capacity = payload.capacity
    if payload.status is not None:
        table.status = payload.status
        if payload.status == TableStatus.AVAILABLE:
            table.current_order_id = None
            if payload.current_phase is None:
                table.current_phase = TablePhase.WAITING
    if payload.current_phase is not None:
        table.current_phase = payload.current_phase

    table.updated_at = utcnow()
    await db.commit()

    return TableEnvelope(message="Table updated", table=TableOut.model_validate(table))


@router.delete(
    "/my/tables/{table_number}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_table(
    table_number: str,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    restaurant = await get_owned_restaurant(db, user)
    table = _find_table(restaurant, table_number)

    if await count_active_orders(db, restaurant.id, table_number):
        raise HTTPException(status_code=400, detail="Cannot delete a table with active orders")

    restaurant.tables.remove(table)
    await db.commit()

    logger.info(f"Table {table_number} removed from restaurant #{restaurant.id}")
    return MessageResponse(message=f"Table {table_number} deleted")


@router.get("/my/tables/{table_number}/qr")
async def get_table_qr(
    table_number: str,
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    restaurant = await get_owned_restaurant(db, user)
    table = _find_table(restaurant, table_number)

    if not table.qr_code:
        assign_qr_code(table, restaurant.id)
        await db.commit()

    return {
        "success": True,
        "tableNumber": table.table_number,
        "qrCode": table.qr_code,
        "qrUrl": table.qr_url,
    }


@router.post("/my/generate-qr-codes", response_model=RestaurantEnvelope)
async def generate_qr_codes(
    user: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    """Regenerate every table's QR code (e.g. after the frontend URL changes)."""
    restaurant = await get_owned_restaurant(db, user)
    count = assign_all_qr_codes(restaurant)
    await db.commit()
    return _envelope(restaurant, f"Generated {count} QR codes")
