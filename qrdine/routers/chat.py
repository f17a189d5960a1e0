"""
AI dining assistant routes.

Conversations are stored per session so the assistant sees the recent
history; the menu is sent along as context on every turn.
"""

import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.database import get_db
from qrdine.models import ChatMessage, ChatSession, MenuItem, Restaurant, utcnow
from qrdine.schemas import (
    ChatHistoryResponse,
    ChatMessageOut,
    ChatReply,
    ChatSendRequest,
    ErrorResponse,
    MenuItemOut,
    MessageResponse,
    RecommendationRequest,
    RecommendationResponse,
)
from qrdine.services.chat import BaseChatService, ChatContext, get_chat_service, suggest_items

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["Chat"])


def menu_context(item: MenuItem) -> dict:
    return {
        "id": item.id,
        "name": item.name,
        "category": item.category,
        "price": item.price,
        "description": item.description,
        "allergens": item.allergens or [],
        "dietary_info": item.dietary_info or [],
    }


async def _restaurant_and_menu(db: AsyncSession, restaurant_id: int) -> tuple[Restaurant, list[MenuItem]]:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    result = await db.execute(
        select(MenuItem)
        .where(MenuItem.restaurant_id == restaurant_id, MenuItem.is_available.is_(True))
        .order_by(MenuItem.category, MenuItem.name)
    )
    return restaurant, list(result.scalars().all())


async def _get_session(db: AsyncSession, session_id: str) -> ChatSession:
    result = await db.execute(select(ChatSession).where(ChatSession.session_id == session_id))
    session = result.scalars().first()
    if session is None:
        raise HTTPException(status_code=404, detail="Chat session not found")
    return session


@router.post(
    "/send",
    response_model=ChatReply,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def send_message(
    payload: ChatSendRequest,
    db: AsyncSession = Depends(get_db),
    chat_service: BaseChatService = Depends(get_chat_service),
) -> ChatReply:
    settings = get_settings()
    restaurant, menu = await _restaurant_and_menu(db, payload.restaurant_id)

    session = None
    if payload.session_id:
        result = await db.execute(select(ChatSession).where(ChatSession.session_id == payload.session_id))
        session = result.scalars().first()
        if session is not None and session.restaurant_id != payload.restaurant_id:
            raise HTTPException(status_code=404, detail="Chat session not found")

    if session is None:
        session = ChatSession(
            session_id=payload.session_id or uuid.uuid4().hex,
            restaurant_id=payload.restaurant_id,
            table_number=payload.table_id,
            is_active=True,
        )
        db.add(session)
        await db.flush()
        history = []
    else:
        result = await db.execute(
            select(ChatMessage)
            .where(ChatMessage.session_id == session.id)
            .order_by(ChatMessage.id.desc())
            .limit(settings.chat_history_limit)
        )
        history = [{"role": m.role, "content": m.content} for m in reversed(result.scalars().all())]

    context = ChatContext(
        restaurant_name=restaurant.name,
        table_number=payload.table_id or session.table_number,
        menu_items=[menu_context(item) for item in menu],
    )
    result = await chat_service.get_response(payload.message, history, context)
    if not result.success:
        logger.error(f"Chat reply failed for session {session.session_id}: {result.error_message}")
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to process chat message")

    db.add(ChatMessage(session_id=session.id, role="user", content=payload.message))
    db.add(ChatMessage(session_id=session.id, role="assistant", content=result.reply))
    session.is_active = True
    session.updated_at = utcnow()
    await db.commit()

    return ChatReply(session_id=session.session_id, reply=result.reply, provider=result.provider)


@router.get("/history/{session_id}", response_model=ChatHistoryResponse)
async def get_history(
    session_id: str,
    db: AsyncSession = Depends(get_db),
) -> ChatHistoryResponse:
    session = await _get_session(db, session_id)
    result = await db.execute(
        select(ChatMessage).where(ChatMessage.session_id == session.id).order_by(ChatMessage.id)
    )
    return ChatHistoryResponse(
        session_id=session.session_id,
        is_active=session.is_active,
        messages=[ChatMessageOut.model_validate(m) for m in result.scalars().all()],
    )


@router.post(
    "/recommendations",
    response_model=RecommendationResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def recommendations(
    payload: RecommendationRequest,
    db: AsyncSession = Depends(get_db),
    chat_service: BaseChatService = Depends(get_chat_service),
) -> RecommendationResponse:
    restaurant, menu = await _restaurant_and_menu(db, payload.restaurant_id)
    items = [menu_context(item) for item in menu]

    context = ChatContext(restaurant_name=restaurant.name, menu_items=items)
    result = await chat_service.recommend(
        payload.preferences or "",
        payload.dietary_restrictions,
        payload.budget,
        context,
    )
    if not result.success:
        logger.error(f"Recommendations failed for restaurant {restaurant.id}: {result.error_message}")
        raise HTTPException(status_code=500, detail="Failed to get recommendations")

    by_id = {item.id: item for item in menu}
    picks = suggest_items(items, payload.dietary_restrictions, payload.budget)

    return RecommendationResponse(
        recommendations=result.reply,
        provider=result.provider,
        suggested_items=[MenuItemOut.model_validate(by_id[p["id"]]) for p in picks],
    )


@router.delete("/session/{session_id}", response_model=MessageResponse)
async def end_session(
    session_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """Close a conversation; its history stays readable."""
    session = await _get_session(db, session_id)
    session.is_active = False
    session.updated_at = utcnow()
    await db.commit()
    return MessageResponse(message="Chat session ended")
