"""
Table service requests: special requests, server calls and written
instructions from customers, worked through by staff.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.security import ensure_restaurant_access, require_staff
from qrdine.database import get_db
from qrdine.models import (
    Restaurant,
    RestaurantStatus,
    ServicePriority,
    ServiceRequest,
    ServiceStatus,
    ServiceType,
    User,
    UserRole,
    utcnow,
)
from qrdine.schemas import (
    CallServerRequest,
    ErrorResponse,
    ServiceRequestCreate,
    ServiceRequestEnvelope,
    ServiceRequestOut,
    ServiceRequestUpdate,
    SpecialInstructionsRequest,
    restaurant_settings,
)
from qrdine.services.order_lifecycle import get_table

logger = logging.getLogger(__name__)

# Mounted at /api/service and its /api/services alias
router = APIRouter(tags=["Service"])

HIGH_PRIORITY_CATEGORIES = frozenset({"dietary", "allergy", "allergies", "allergen"})


def priority_for(category: Optional[str]) -> ServicePriority:
    if category and category.strip().lower() in HIGH_PRIORITY_CATEGORIES:
        return ServicePriority.HIGH
    return ServicePriority.MEDIUM


async def _check_table(db: AsyncSession, restaurant_id: int, table_id: str) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None or restaurant.status != RestaurantStatus.ACTIVE:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    if await get_table(db, restaurant_id, table_id) is None:
        raise HTTPException(status_code=404, detail=f"Table {table_id} not found")
    return restaurant


def _envelope(message: Optional[str], requests: list[ServiceRequest]) -> ServiceRequestEnvelope:
    return ServiceRequestEnvelope(
        message=message,
        requests=[ServiceRequestOut.model_validate(r) for r in requests],
    )


# =============================================================================
# CUSTOMER
# =============================================================================

@router.post(
    "/request",
    response_model=ServiceRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def request_service(
    payload: ServiceRequestCreate,
    db: AsyncSession = Depends(get_db),
) -> ServiceRequestEnvelope:
    """One service request per submitted item; dietary and allergy items jump the queue."""
    await _check_table(db, payload.restaurant_id, payload.table_id)

    created = []
    for item in payload.requests:
        request = ServiceRequest(
            restaurant_id=payload.restaurant_id,
            table_number=payload.table_id,
            type=ServiceType.SPECIAL_REQUEST,
            category=item.category,
            title=item.title,
            details={"selectedOptions": item.selected_options},
            note=item.note,
            status=ServiceStatus.PENDING,
            priority=priority_for(item.category),
        )
        db.add(request)
        created.append(request)

    await db.commit()

    logger.info(f"{len(created)} special requests created for table {payload.table_id} (restaurant {payload.restaurant_id})")
    return _envelope("Special requests submitted successfully", created)


@router.post(
    "/call-server",
    response_model=ServiceRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def call_server(
    payload: CallServerRequest,
    db: AsyncSession = Depends(get_db),
) -> ServiceRequestEnvelope:
    restaurant = await _check_table(db, payload.restaurant_id, payload.table_id)
    if not restaurant_settings(restaurant).enable_server_call:
        raise HTTPException(status_code=400, detail="Server call is not available at this restaurant")

    request = ServiceRequest(
        restaurant_id=payload.restaurant_id,
        table_number=payload.table_id,
        type=ServiceType.CALL_SERVER,
        category=payload.reason,
        title="Server Assistance",
        details={"message": payload.message or "Customer needs assistance"},
        status=ServiceStatus.PENDING,
        priority=ServicePriority.URGENT,
    )
    db.add(request)
    await db.commit()

    logger.info(f"Server called to table {payload.table_id} (restaurant {payload.restaurant_id})")
    return _envelope("Server called successfully", [request])


@router.post(
    "/special-instructions",
    response_model=ServiceRequestEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}},
)
async def submit_special_instructions(
    payload: SpecialInstructionsRequest,
    db: AsyncSession = Depends(get_db),
) -> ServiceRequestEnvelope:
    await _check_table(db, payload.restaurant_id, payload.table_id)

    details: dict[str, Any] = {
        "instructions": payload.instructions,
        "allergens": payload.allergens,
        "dietaryPreferences": payload.dietary_preferences,
    }
    if payload.order_id is not None:
        details["orderId"] = payload.order_id

    request = ServiceRequest(
        restaurant_id=payload.restaurant_id,
        table_number=payload.table_id,
        type=ServiceType.SPECIAL_INSTRUCTIONS,
        category="allergy" if payload.allergens else None,
        title="Special Instructions",
        details=details,
        note=payload.instructions,
        status=ServiceStatus.PENDING,
        priority=ServicePriority.HIGH if payload.allergens else ServicePriority.MEDIUM,
    )
    db.add(request)
    await db.commit()

    return _envelope("Special instructions submitted successfully", [request])


# =============================================================================
# STAFF
# =============================================================================

@router.get("/requests/{restaurant_id}", response_model=ServiceRequestEnvelope)
async def list_service_requests(
    restaurant_id: int,
    status_filter: Optional[str] = Query(None, alias="status"),
    type_filter: Optional[ServiceType] = Query(None, alias="type"),
    limit: int = Query(100, ge=1, le=500),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ServiceRequestEnvelope:
    ensure_restaurant_access(user, restaurant_id)

    query = select(ServiceRequest).where(ServiceRequest.restaurant_id == restaurant_id)
    if status_filter and status_filter != "all":
        try:
            query = query.where(ServiceRequest.status == ServiceStatus(status_filter))
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Invalid status '{status_filter}'")
    if type_filter:
        query = query.where(ServiceRequest.type == type_filter)

    result = await db.execute(query.order_by(ServiceRequest.created_at.desc()).limit(limit))
    return _envelope(None, list(result.scalars().all()))


@router.put(
    "/requests/{request_id}",
    response_model=ServiceRequestEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_service_request(
    request_id: int,
    payload: ServiceRequestUpdate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> ServiceRequestEnvelope:
    request = await db.get(ServiceRequest, request_id)
    if request is None:
        raise HTTPException(status_code=404, detail="Service request not found")
    ensure_restaurant_access(user, request.restaurant_id, what="Service request")

    if payload.assigned_to is not None:
        assignee = await db.get(User, payload.assigned_to)
        if (
            assignee is None
            or assignee.restaurant_id != request.restaurant_id
            or assignee.role not in (UserRole.STAFF, UserRole.ADMIN)
        ):
            raise HTTPException(status_code=400, detail="Assignee must be staff of this restaurant")
        request.assigned_to = assignee.id

    if payload.status is not None and payload.status != request.status:
        request.status = payload.status
        request.completed_at = utcnow() if payload.status == ServiceStatus.COMPLETED else None
    if payload.priority is not None:
        request.priority = payload.priority
    if payload.staff_notes is not None:
        request.staff_notes = payload.staff_notes

    request.updated_at = utcnow()
    await db.commit()

    logger.info(f"Service request #{request.id} updated by user #{user.id}: {request.status.value}")
    return _envelope("Service request updated", [request])


@router.get("/stats/{restaurant_id}")
async def service_stats(
    restaurant_id: int,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    ensure_restaurant_access(user, restaurant_id)
    scope = ServiceRequest.restaurant_id == restaurant_id

    by_status_result = await db.execute(
        select(ServiceRequest.status, func.count(ServiceRequest.id)).where(scope).group_by(ServiceRequest.status)
    )
    by_status = {s.value: 0 for s in ServiceStatus}
    for request_status, count in by_status_result.all():
        by_status[request_status.value] = count

    by_type_result = await db.execute(
        select(ServiceRequest.type, func.count(ServiceRequest.id)).where(scope).group_by(ServiceRequest.type)
    )
    by_type = {t.value: 0 for t in ServiceType}
    for request_type, count in by_type_result.all():
        by_type[request_type.value] = count

    urgent_result = await db.execute(
        select(func.count(ServiceRequest.id)).where(
            scope,
            ServiceRequest.status.in_((ServiceStatus.PENDING, ServiceStatus.IN_PROGRESS)),
            ServiceRequest.priority.in_((ServicePriority.HIGH, ServicePriority.URGENT)),
        )
    )

    return {
        "success": True,
        "total": sum(by_status.values()),
        "byStatus": by_status,
        "byType": by_type,
        "openHighPriority": urgent_result.scalar() or 0,
    }
