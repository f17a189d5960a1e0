"""
Platform operator routes: every restaurant and every account.
"""

import logging
import math
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.security import hash_password, require_superadmin
from qrdine.database import get_db
from qrdine.models import (
    MenuItem,
    NotificationLog,
    Order,
    OrderStatus,
    PaymentStatus,
    Restaurant,
    RestaurantStatus,
    User,
    UserRole,
    utcnow,
)
from qrdine.routers.restaurants import (
    assign_all_qr_codes,
    build_tables,
    delete_restaurant_data,
    initial_settings,
)
from qrdine.schemas import (
    AdminRestaurantCreate,
    AdminRestaurantUpdate,
    AdminUserCreate,
    AdminUserUpdate,
    ErrorResponse,
    MessageResponse,
    OrderOut,
    RestaurantEnvelope,
    RestaurantOut,
    UserEnvelope,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/superadmin",
    tags=["Superadmin"],
    dependencies=[Depends(require_superadmin)],
)


def _pagination(page: int, limit: int, total: int) -> dict[str, int]:
    return {"current": page, "total": max(1, math.ceil(total / limit)), "count": total}


async def _get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


async def _get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


async def _email_taken(db: AsyncSession, email: str, exclude_id: Optional[int] = None) -> bool:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def _restaurant_counts(db: AsyncSession, restaurant_id: int) -> dict[str, int]:
    menu = await db.execute(select(func.count(MenuItem.id)).where(MenuItem.restaurant_id == restaurant_id))
    orders = await db.execute(select(func.count(Order.id)).where(Order.restaurant_id == restaurant_id))
    return {"menuItemsCount": menu.scalar() or 0, "ordersCount": orders.scalar() or 0}


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/stats")
async def platform_stats(db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    total_restaurants = (await db.execute(select(func.count(Restaurant.id)))).scalar() or 0
    active_restaurants = (
        await db.execute(select(func.count(Restaurant.id)).where(Restaurant.status == RestaurantStatus.ACTIVE))
    ).scalar() or 0

    users_by_role = {r.value: 0 for r in UserRole}
    for role, count in (await db.execute(select(User.role, func.count(User.id)).group_by(User.role))).all():
        users_by_role[role.value] = count

    total_orders = (await db.execute(select(func.count(Order.id)))).scalar() or 0
    revenue = (
        await db.execute(select(func.sum(Order.total)).where(Order.payment_status == PaymentStatus.COMPLETED))
    ).scalar() or 0.0
    completed = (
        await db.execute(select(func.count(Order.id)).where(Order.status == OrderStatus.COMPLETED))
    ).scalar() or 0

    return {
        "success": True,
        "stats": {
            "totalRestaurants": total_restaurants,
            "activeRestaurants": active_restaurants,
            "totalUsers": sum(users_by_role.values()),
            "usersByRole": users_by_role,
            "totalOrders": total_orders,
            "completedOrders": completed,
            "totalRevenue": round(revenue, 2),
        },
    }


@router.get("/activity")
async def recent_activity(
    limit: int = Query(10, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    """Newest orders, restaurants and accounts across the platform."""
    orders = await db.execute(select(Order).order_by(Order.created_at.desc()).limit(limit))
    restaurants = await db.execute(select(Restaurant).order_by(Restaurant.created_at.desc()).limit(limit))
    users = await db.execute(select(User).order_by(User.created_at.desc()).limit(limit))

    return {
        "success": True,
        "recentOrders": [OrderOut.model_validate(o).model_dump(by_alias=True, mode="json") for o in orders.scalars()],
        "recentRestaurants": [
            {"id": r.id, "name": r.name, "status": r.status.value, "createdAt": r.created_at.isoformat()}
            for r in restaurants.scalars()
        ],
        "recentUsers": [
            UserOut.model_validate(u).model_dump(by_alias=True, mode="json") for u in users.scalars()
        ],
    }


# =============================================================================
# RESTAURANTS
# =============================================================================

@router.get("/restaurants")
async def list_restaurants(
    status_filter: Optional[RestaurantStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    conditions = []
    if status_filter:
        conditions.append(Restaurant.status == status_filter)
    if search:
        pattern = f"%{search}%"
        conditions.append(
            or_(Restaurant.name.ilike(pattern), Restaurant.email.ilike(pattern), Restaurant.address.ilike(pattern))
        )

    total = (await db.execute(select(func.count(Restaurant.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(Restaurant)
        .where(*conditions)
        .order_by(Restaurant.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    restaurants = []
    for restaurant in result.scalars().all():
        data = RestaurantOut.model_validate(restaurant).model_dump(by_alias=True, mode="json", exclude={"tables"})
        data["stats"] = {"tablesCount": len(restaurant.tables), **await _restaurant_counts(db, restaurant.id)}
        restaurants.append(data)

    return {"success": True, "restaurants": restaurants, "pagination": _pagination(page, limit, total)}


@router.get("/restaurants/{restaurant_id}", response_model=RestaurantEnvelope)
async def get_restaurant(restaurant_id: int, db: AsyncSession = Depends(get_db)) -> RestaurantEnvelope:
    restaurant = await _get_restaurant(db, restaurant_id)
    return RestaurantEnvelope(restaurant=RestaurantOut.model_validate(restaurant))


@router.post(
    "/restaurants",
    response_model=RestaurantEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_restaurant(
    payload: AdminRestaurantCreate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    """Create a restaurant on behalf of an owner; the owner is linked to it."""
    owner = await db.get(User, payload.owner_id)
    if owner is None:
        raise HTTPException(status_code=400, detail="Owner user not found")
    if payload.email:
        existing = await db.execute(select(Restaurant.id).where(Restaurant.email == payload.email))
        if existing.first() is not None:
            raise HTTPException(status_code=400, detail="Restaurant with this email already exists")

    restaurant = Restaurant(
        name=payload.name,
        description=payload.description,
        cuisine=payload.cuisine,
        address=payload.address,
        phone=payload.phone,
        email=payload.email,
        website=payload.website,
        owner_id=owner.id,
        status=RestaurantStatus.ACTIVE,
        settings=initial_settings(payload.settings),
        tables=[],
    )
    build_tables(restaurant, payload.tables)
    db.add(restaurant)
    await db.flush()

    assign_all_qr_codes(restaurant)
    if owner.role != UserRole.SUPERADMIN:
        owner.restaurant_id = restaurant.id
        if owner.role == UserRole.CUSTOMER:
            owner.role = UserRole.ADMIN
    await db.commit()

    logger.info(f"Superadmin created restaurant #{restaurant.id} '{restaurant.name}' for user #{owner.id}")
    return RestaurantEnvelope(message="Restaurant created successfully", restaurant=RestaurantOut.model_validate(restaurant))


@router.put("/restaurants/{restaurant_id}", response_model=RestaurantEnvelope)
async def update_restaurant(
    restaurant_id: int,
    payload: AdminRestaurantUpdate,
    db: AsyncSession = Depends(get_db),
) -> RestaurantEnvelope:
    restaurant = await _get_restaurant(db, restaurant_id)

    changes = payload.model_dump(exclude_unset=True)
    if "owner_id" in changes and changes["owner_id"] is not None:
        if await db.get(User, changes["owner_id"]) is None:
            raise HTTPException(status_code=400, detail="Owner user not found")

    for field, value in changes.items():
        if value is not None or field in ("description", "website"):
            setattr(restaurant, field, value)
    restaurant.updated_at = utcnow()
    await db.commit()

    return RestaurantEnvelope(message="Restaurant updated successfully", restaurant=RestaurantOut.model_validate(restaurant))


@router.delete("/restaurants/{restaurant_id}")
async def delete_restaurant(restaurant_id: int, db: AsyncSession = Depends(get_db)) -> dict[str, Any]:
    """Remove a restaurant and everything that belongs to it."""
    restaurant = await _get_restaurant(db, restaurant_id)

    notifications = await db.execute(delete(NotificationLog).where(NotificationLog.restaurant_id == restaurant_id))
    counts = await delete_restaurant_data(db, restaurant_id, "all")
    menu = await db.execute(delete(MenuItem).where(MenuItem.restaurant_id == restaurant_id))
    await db.execute(update(User).where(User.restaurant_id == restaurant_id).values(restaurant_id=None))

    counts["notifications"] = notifications.rowcount or 0
    counts["menuItems"] = menu.rowcount or 0
    counts["tables"] = len(restaurant.tables)

    await db.delete(restaurant)
    await db.commit()

    logger.info(f"Restaurant #{restaurant_id} deleted: {counts}")
    return {"success": True, "message": "Restaurant deleted successfully", "deleted": counts}


# =============================================================================
# USERS
# =============================================================================

@router.get("/users")
async def list_users(
    role: Optional[UserRole] = Query(None),
    active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    conditions = []
    if role:
        conditions.append(User.role == role)
    if active is not None:
        conditions.append(User.is_active.is_(active))
    if search:
        pattern = f"%{search}%"
        conditions.append(or_(User.email.ilike(pattern), User.name.ilike(pattern)))

    total = (await db.execute(select(func.count(User.id)).where(*conditions))).scalar() or 0
    result = await db.execute(
        select(User).where(*conditions).order_by(User.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )

    return {
        "success": True,
        "users": [UserOut.model_validate(u).model_dump(by_alias=True, mode="json") for u in result.scalars()],
        "pagination": _pagination(page, limit, total),
    }


@router.post(
    "/users",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_user(payload: AdminUserCreate, db: AsyncSession = Depends(get_db)) -> UserEnvelope:
    if await _email_taken(db, payload.email):
        raise HTTPException(status_code=400, detail="User with this email already exists")

    restaurant_id = None
    if payload.role in (UserRole.ADMIN, UserRole.STAFF) and payload.restaurant_id is not None:
        if await db.get(Restaurant, payload.restaurant_id) is None:
            raise HTTPException(status_code=400, detail="Restaurant not found")
        restaurant_id = payload.restaurant_id

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=payload.role,
        restaurant_id=restaurant_id,
        phone=payload.phone,
        is_active=True,
    )
    db.add(user)
    await db.commit()

    logger.info(f"Superadmin created user #{user.id} ({user.role.value})")
    return UserEnvelope(message="User created successfully", user=UserOut.model_validate(user))


@router.put(
    "/users/{user_id}",
    response_model=UserEnvelope,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_user(
    user_id: int,
    payload: AdminUserUpdate,
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    user = await _get_user(db, user_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("email") and await _email_taken(db, changes["email"], exclude_id=user.id):
        raise HTTPException(status_code=400, detail="User with this email already exists")
    if changes.get("restaurant_id") is not None and await db.get(Restaurant, changes["restaurant_id"]) is None:
        raise HTTPException(status_code=400, detail="Restaurant not found")

    password = changes.pop("password", None)
    if password:
        user.password_hash = hash_password(password)
    for field, value in changes.items():
        if value is not None or field in ("restaurant_id", "phone"):
            setattr(user, field, value)

    user.updated_at = utcnow()
    await db.commit()

    return UserEnvelope(message="User updated successfully", user=UserOut.model_validate(user))


@router.delete(
    "/users/{user_id}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_user(
    user_id: int,
    current: User = Depends(require_superadmin),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    if user_id == current.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    user = await _get_user(db, user_id)
    await db.execute(update(Restaurant).where(Restaurant.owner_id == user.id).values(owner_id=None))
    await db.delete(user)
    await db.commit()

    logger.info(f"User #{user_id} deleted by superadmin #{current.id}")
    return MessageResponse(message="User deleted successfully")
