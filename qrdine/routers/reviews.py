"""
Review routes.

Public: read approved reviews, write a review, mark one helpful.
Staff: moderation queue, replies, status changes, deletion.
"""

import logging
import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.security import ensure_restaurant_access, require_staff
from qrdine.database import get_db
from qrdine.models import Order, Restaurant, Review, ReviewResponse, ReviewStatus, User, utcnow
from qrdine.schemas import (
    ErrorResponse,
    MessageResponse,
    ReviewCreate,
    ReviewEnvelope,
    ReviewListResponse,
    ReviewOut,
    ReviewReplyCreate,
    ReviewStatusUpdate,
    restaurant_settings,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])

SORTS = {
    "newest": (Review.created_at.desc(), Review.id.desc()),
    "oldest": (Review.created_at.asc(), Review.id.asc()),
    "highest": (Review.rating.desc(), Review.created_at.desc()),
    "lowest": (Review.rating.asc(), Review.created_at.desc()),
    "helpful": (Review.helpful_count.desc(), Review.created_at.desc()),
}


async def _get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


async def _get_review(db: AsyncSession, restaurant_id: int, review_id: int) -> Review:
    review = await db.get(Review, review_id)
    if review is None or review.restaurant_id != restaurant_id:
        raise HTTPException(status_code=404, detail="Review not found")
    return review


async def _page(
    db: AsyncSession,
    conditions: list,
    sort: str,
    page: int,
    limit: int,
) -> tuple[int, list[Review]]:
    total_result = await db.execute(select(func.count(Review.id)).where(*conditions))
    total = total_result.scalar() or 0
    result = await db.execute(
        select(Review).where(*conditions).order_by(*SORTS[sort]).offset((page - 1) * limit).limit(limit)
    )
    return total, list(result.scalars().all())


@router.get("/{restaurant_id}", response_model=ReviewListResponse)
async def list_reviews(
    restaurant_id: int,
    rating: Optional[int] = Query(None, ge=1, le=5),
    sort: Literal["newest", "oldest", "highest", "lowest", "helpful"] = Query("newest"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    """Approved reviews with the restaurant's rating distribution."""
    await _get_restaurant(db, restaurant_id)

    approved = [Review.restaurant_id == restaurant_id, Review.status == ReviewStatus.APPROVED]

    distribution_result = await db.execute(
        select(Review.rating, func.count(Review.id)).where(*approved).group_by(Review.rating)
    )
    distribution = {str(star): 0 for star in range(1, 6)}
    for stars, count in distribution_result.all():
        distribution[str(stars)] = count

    rated = sum(distribution.values())
    average = sum(int(stars) * count for stars, count in distribution.items()) / rated if rated else 0.0

    conditions = approved + ([Review.rating == rating] if rating else [])
    total, reviews = await _page(db, conditions, sort, page, limit)

    return ReviewListResponse(
        total=total,
        page=page,
        pages=max(1, math.ceil(total / limit)),
        average_rating=round(average, 1),
        rating_distribution=distribution,
        reviews=[ReviewOut.model_validate(r) for r in reviews],
    )


@router.post(
    "/{restaurant_id}",
    response_model=ReviewEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_review(
    restaurant_id: int,
    payload: ReviewCreate,
    db: AsyncSession = Depends(get_db),
) -> ReviewEnvelope:
    restaurant = await _get_restaurant(db, restaurant_id)

    if payload.order_id is not None:
        order = await db.get(Order, payload.order_id)
        if order is None or order.restaurant_id != restaurant_id:
            raise HTTPException(status_code=400, detail="Order does not belong to this restaurant")

    auto_approve = restaurant_settings(restaurant).auto_approve_reviews
    review = Review(
        restaurant_id=restaurant_id,
        order_id=payload.order_id,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        table_number=payload.table_number,
        rating=payload.rating,
        title=payload.title,
        comment=payload.comment,
        status=ReviewStatus.APPROVED if auto_approve else ReviewStatus.PENDING,
        helpful_count=0,
        responses=[],
    )
    db.add(review)
    await db.commit()

    logger.info(f"Review #{review.id} ({review.rating}*) for restaurant {restaurant_id}, status {review.status.value}")
    message = "Thank you for your review!" if auto_approve else "Thank you! Your review will appear after moderation."
    return ReviewEnvelope(message=message, review=ReviewOut.model_validate(review))


@router.get("/{restaurant_id}/moderation", response_model=ReviewListResponse)
async def moderation_queue(
    restaurant_id: int,
    status_filter: Optional[ReviewStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ReviewListResponse:
    """All reviews of any status, newest first (defaults to the whole list)."""
    ensure_restaurant_access(user, restaurant_id)

    conditions = [Review.restaurant_id == restaurant_id]
    if status_filter:
        conditions.append(Review.status == status_filter)
    total, reviews = await _page(db, conditions, "newest", page, limit)

    distribution_result = await db.execute(
        select(Review.status, func.count(Review.id))
        .where(Review.restaurant_id == restaurant_id)
        .group_by(Review.status)
    )
    by_status = {s.value: 0 for s in ReviewStatus}
    for review_status, count in distribution_result.all():
        by_status[review_status.value] = count

    avg_result = await db.execute(select(func.avg(Review.rating)).where(*conditions))

    return ReviewListResponse(
        total=total,
        page=page,
        pages=max(1, math.ceil(total / limit)),
        average_rating=round(avg_result.scalar() or 0.0, 1),
        rating_distribution=by_status,
        reviews=[ReviewOut.model_validate(r) for r in reviews],
    )


@router.get("/{restaurant_id}/{review_id}", response_model=ReviewEnvelope)
async def get_review(
    restaurant_id: int,
    review_id: int,
    db: AsyncSession = Depends(get_db),
) -> ReviewEnvelope:
    review = await _get_review(db, restaurant_id, review_id)
    if review.status != ReviewStatus.APPROVED:
        raise HTTPException(status_code=404, detail="Review not found")
    return ReviewEnvelope(review=ReviewOut.model_validate(review))


@router.post("/{restaurant_id}/{review_id}/helpful", response_model=ReviewEnvelope)
async def mark_helpful(
    restaurant_id: int,
    review_id: int,
    db: AsyncSession = Depends(get_db),
) -> ReviewEnvelope:
    review = await _get_review(db, restaurant_id, review_id)
    if review.status != ReviewStatus.APPROVED:
        raise HTTPException(status_code=404, detail="Review not found")

    review.helpful_count = (review.helpful_count or 0) + 1
    await db.commit()
    return ReviewEnvelope(message="Marked as helpful", review=ReviewOut.model_validate(review))


@router.post(
    "/{restaurant_id}/{review_id}/responses",
    response_model=ReviewEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def respond_to_review(
    restaurant_id: int,
    review_id: int,
    payload: ReviewReplyCreate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ReviewEnvelope:
    ensure_restaurant_access(user, restaurant_id)
    review = await _get_review(db, restaurant_id, review_id)

    review.responses.append(
        ReviewResponse(responder_id=user.id, responder_name=user.name, message=payload.message)
    )
    review.updated_at = utcnow()
    await db.commit()

    return ReviewEnvelope(message="Response added", review=ReviewOut.model_validate(review))


@router.put("/{restaurant_id}/{review_id}/status", response_model=ReviewEnvelope)
async def update_review_status(
    restaurant_id: int,
    review_id: int,
    payload: ReviewStatusUpdate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ReviewEnvelope:
    ensure_restaurant_access(user, restaurant_id)
    review = await _get_review(db, restaurant_id, review_id)

    review.status = payload.status
    review.updated_at = utcnow()
    await db.commit()

    return ReviewEnvelope(message=f"Review {payload.status.value}", review=ReviewOut.model_validate(review))


@router.delete("/{restaurant_id}/{review_id}", response_model=MessageResponse)
async def delete_review(
    restaurant_id: int,
    review_id: int,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    ensure_restaurant_access(user, restaurant_id)
    review = await _get_review(db, restaurant_id, review_id)

    await db.delete(review)
    await db.commit()

    logger.info(f"Review #{review_id} deleted by user #{user.id}")
    return MessageResponse(message="Review deleted")
