"""
Payment provider webhooks.

Every event is signature-checked before anything is read from it; events
for unknown orders or of unhandled types are acknowledged and logged.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.database import get_db
from qrdine.models import Order, Restaurant
from qrdine.schemas import ErrorResponse
from qrdine.services.notifications import NotificationDispatcher, get_notification_dispatcher
from qrdine.services.order_lifecycle import (
    mark_payment_completed,
    mark_payment_failed,
    mark_refunded,
)
from qrdine.services.payment import (
    BasePaymentService,
    WebhookVerificationError,
    get_payment_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhooks", tags=["Webhooks"])

HANDLED_EVENTS = (
    "payment_intent.succeeded",
    "payment_intent.payment_failed",
    "charge.refunded",
)


def _order_id_from(obj: dict[str, Any]) -> Optional[int]:
    metadata = obj.get("metadata") or {}
    raw = metadata.get("order_id") or metadata.get("orderId")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


async def _find_order(db: AsyncSession, obj: dict[str, Any], intent_id: Optional[str]) -> Optional[Order]:
    order_id = _order_id_from(obj)
    if order_id is not None:
        order = await db.get(Order, order_id)
        if order is not None:
            return order
    if intent_id:
        result = await db.execute(select(Order).where(Order.payment_intent_id == intent_id))
        return result.scalars().first()
    return None


@router.post(
    "/stripe",
    responses={400: {"model": ErrorResponse}},
    summary="Stripe webhook",
)
async def stripe_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
    payment_service: BasePaymentService = Depends(get_payment_service),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
) -> dict[str, Any]:
    payload = await request.body()

    try:
        event = await payment_service.verify_webhook(payload, stripe_signature)
    except WebhookVerificationError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    event_type = event.get("type", "")
    obj = (event.get("data") or {}).get("object") or {}
    logger.info(f"Stripe webhook received: {event_type} ({event.get('id', 'no id')})")

    if event_type not in HANDLED_EVENTS:
        logger.info(f"Unhandled Stripe event type {event_type}")
        return {"received": True}

    intent_id = obj.get("payment_intent") if event_type == "charge.refunded" else obj.get("id")
    order = await _find_order(db, obj, intent_id)
    if order is None:
        logger.warning(f"Stripe {event_type}: no order for intent {intent_id}")
        return {"received": True}

    if event_type == "payment_intent.succeeded":
        if mark_payment_completed(order):
            if not order.payment_intent_id:
                order.payment_intent_id = intent_id
            restaurant = await db.get(Restaurant, order.restaurant_id)
            queued = dispatcher.queue_payment_confirmed(db, order, restaurant)
            await db.commit()
            dispatcher.schedule(background_tasks, queued)
    elif event_type == "payment_intent.payment_failed":
        mark_payment_failed(order)
        await db.commit()
    else:
        mark_refunded(order)
        await db.commit()

    return {"received": True}
