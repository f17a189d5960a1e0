"""
Authentication routes: register, login, profile.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.core.rate_limit import limiter
from qrdine.core.security import (
    create_access_token,
    get_current_user,
    hash_password,
    verify_password,
)
from qrdine.database import get_db
from qrdine.models import Restaurant, User, UserRole, utcnow
from qrdine.schemas import (
    AuthResponse,
    ErrorResponse,
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    RestaurantOut,
    UserEnvelope,
    UserOut,
)

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/api/auth", tags=["Auth"])


async def _user_restaurant(db: AsyncSession, user: User):
    if user.restaurant_id is None:
        return None
    restaurant = await db.get(Restaurant, user.restaurant_id)
    return RestaurantOut.model_validate(restaurant) if restaurant else None


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_auth)
async def register(
    request: Request,
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    """Create an account. Superadmins can only be created by other superadmins."""
    existing = await db.execute(select(User.id).where(User.email == payload.email))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(status_code=400, detail="User already exists with this email")

    user = User(
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
        role=UserRole(payload.role),
        phone=payload.phone,
        is_active=True,
    )
    db.add(user)
    await db.commit()

    logger.info(f"User #{user.id} registered ({user.role.value})")

    return AuthResponse(
        message="User registered successfully",
        token=create_access_token(user),
        user=UserOut.model_validate(user),
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"model": ErrorResponse}},
)
@limiter.limit(settings.rate_limit_auth)
async def login(
    request: Request,
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthResponse:
    result = await db.execute(select(User).where(User.email == payload.email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(payload.password, user.password_hash):
        logger.info(f"Failed login for {payload.email}")
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")

    user.last_login = utcnow()
    await db.commit()

    return AuthResponse(
        message="Login successful",
        token=create_access_token(user),
        user=UserOut.model_validate(user),
        restaurant=await _user_restaurant(db, user),
    )


@router.get("/me", response_model=UserEnvelope)
async def me(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    return UserEnvelope(
        user=UserOut.model_validate(user),
        restaurant=await _user_restaurant(db, user),
    )


@router.put("/me", response_model=UserEnvelope)
async def update_me(
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserEnvelope:
    if payload.name is not None:
        user.name = payload.name
    if payload.phone is not None:
        user.phone = payload.phone
    if payload.password is not None:
        user.password_hash = hash_password(payload.password)

    user.updated_at = utcnow()
    await db.commit()

    return UserEnvelope(message="Profile updated", user=UserOut.model_validate(user))
