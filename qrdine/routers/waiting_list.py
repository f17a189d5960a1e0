"""
Waiting list for walk-in parties when every table is taken.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.security import ensure_restaurant_access, require_staff
from qrdine.database import get_db
from qrdine.models import Restaurant, RestaurantStatus, User, WaitingListEntry, WaitingStatus, utcnow
from qrdine.schemas import (
    ErrorResponse,
    WaitingListEntryOut,
    WaitingListEnvelope,
    WaitingListJoin,
    WaitingStatusUpdate,
    restaurant_settings,
)
from qrdine.services.notifications import NotificationDispatcher, get_notification_dispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/waiting-list", tags=["Waiting List"])


async def queue_position(db: AsyncSession, entry: WaitingListEntry) -> Optional[int]:
    """1-based place among parties still waiting; None once the party left the queue."""
    if entry.status != WaitingStatus.WAITING:
        return None
    result = await db.execute(
        select(func.count(WaitingListEntry.id)).where(
            WaitingListEntry.restaurant_id == entry.restaurant_id,
            WaitingListEntry.status == WaitingStatus.WAITING,
            WaitingListEntry.id < entry.id,
        )
    )
    return (result.scalar() or 0) + 1


def _out(entry: WaitingListEntry, position: Optional[int]) -> WaitingListEntryOut:
    out = WaitingListEntryOut.model_validate(entry)
    out.position = position
    return out


async def _get_entry(db: AsyncSession, entry_id: int) -> WaitingListEntry:
    entry = await db.get(WaitingListEntry, entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Waiting list entry not found")
    return entry


@router.post(
    "/{restaurant_id}",
    response_model=WaitingListEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def join_waiting_list(
    restaurant_id: int,
    payload: WaitingListJoin,
    db: AsyncSession = Depends(get_db),
) -> WaitingListEnvelope:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.status != RestaurantStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Restaurant not found")

    options = restaurant_settings(restaurant)
    if not options.enable_waiting_list:
        raise HTTPException(status_code=400, detail="Waiting list is not available at this restaurant")

    ahead_result = await db.execute(
        select(func.count(WaitingListEntry.id)).where(
            WaitingListEntry.restaurant_id == restaurant_id,
            WaitingListEntry.status == WaitingStatus.WAITING,
        )
    )
    position = (ahead_result.scalar() or 0) + 1

    entry = WaitingListEntry(
        restaurant_id=restaurant_id,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        party_size=payload.party_size,
        status=WaitingStatus.WAITING,
        estimated_wait_time=position * options.wait_minutes_per_party,
    )
    db.add(entry)
    await db.commit()

    logger.info(f"Party of {entry.party_size} joined waiting list of restaurant {restaurant_id} at #{position}")
    return WaitingListEnvelope(
        message=f"You are number {position} in line",
        entry=_out(entry, position),
    )


@router.get("/position/{entry_id}", response_model=WaitingListEnvelope)
async def get_position(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
) -> WaitingListEnvelope:
    entry = await _get_entry(db, entry_id)
    return WaitingListEnvelope(entry=_out(entry, await queue_position(db, entry)))


@router.get("/{restaurant_id}")
async def list_waiting(
    restaurant_id: int,
    status_filter: Optional[WaitingStatus] = Query(None, alias="status"),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Queue in arrival order; only parties still waiting by default."""
    ensure_restaurant_access(user, restaurant_id)

    wanted = status_filter or WaitingStatus.WAITING
    result = await db.execute(
        select(WaitingListEntry)
        .where(WaitingListEntry.restaurant_id == restaurant_id, WaitingListEntry.status == wanted)
        .order_by(WaitingListEntry.created_at, WaitingListEntry.id)
    )
    entries = result.scalars().all()

    waiting = wanted == WaitingStatus.WAITING
    return {
        "success": True,
        "count": len(entries),
        "entries": [
            _out(e, i + 1 if waiting else None).model_dump(by_alias=True, mode="json")
            for i, e in enumerate(entries)
        ],
    }


@router.put("/entries/{entry_id}/status", response_model=WaitingListEnvelope)
async def update_entry_status(
    entry_id: int,
    payload: WaitingStatusUpdate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> WaitingListEnvelope:
    entry = await _get_entry(db, entry_id)
    ensure_restaurant_access(user, entry.restaurant_id, what="Waiting list entry")

    entry.status = payload.status
    if payload.status == WaitingStatus.NOTIFIED and entry.notified_at is None:
        entry.notified_at = utcnow()
    elif payload.status == WaitingStatus.SEATED:
        entry.seated_at = utcnow()
    await db.commit()

    return WaitingListEnvelope(
        message=f"Entry marked {payload.status.value}",
        entry=_out(entry, await queue_position(db, entry)),
    )


@router.post(
    "/entries/{entry_id}/notify",
    response_model=WaitingListEnvelope,
    responses={400: {"model": ErrorResponse}},
)
async def notify_entry(
    entry_id: int,
    background_tasks: BackgroundTasks,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> WaitingListEnvelope:
    """Text the party that their table is ready."""
    entry = await _get_entry(db, entry_id)
    ensure_restaurant_access(user, entry.restaurant_id, what="Waiting list entry")

    if entry.status in (WaitingStatus.SEATED, WaitingStatus.CANCELLED):
        raise HTTPException(status_code=400, detail=f"Entry is already {entry.status.value}")

    restaurant = await db.get(Restaurant, entry.restaurant_id)
    queued = dispatcher.queue_table_ready(db, entry, restaurant)
    entry.status = WaitingStatus.NOTIFIED
    entry.notified_at = utcnow()
    await db.commit()
    dispatcher.schedule(background_tasks, [queued])

    logger.info(f"Waiting list entry #{entry.id} notified by user #{user.id}")
    return WaitingListEnvelope(message="Customer notified", entry=_out(entry, None))
