"""
Authentication and authorization utilities.

- bcrypt password hashing
- HS256 JWT access tokens carrying user id, role and restaurant id
- FastAPI dependencies for the current user, role checks and tenant scoping
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import bcrypt
import jwt
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.config import get_settings
from qrdine.database import get_db
from qrdine.models import Restaurant, User, UserRole

logger = logging.getLogger(__name__)


# =============================================================================
# PASSWORDS
# =============================================================================

def hash_password(password: str) -> str:
    """Hash a password using bcrypt (salt and cost are embedded in the hash)."""
    salt = bcrypt.gensalt(rounds=12)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    if not hashed_password.startswith(("$2a$", "$2b$", "$2y$")):
        logger.warning("Rejected login against a non-bcrypt password hash")
        return False
    return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))


# =============================================================================
# JWT
# =============================================================================

def create_access_token(user: User) -> str:
    """
    Sign an access token for a user.

    Claims:
        sub: user id (string)
        role: user role value
        restaurant_id: the user's restaurant, if any
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "role": user.role.value,
        "restaurant_id": user.restaurant_id,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expire_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Verify and decode an access token.

    Raises:
        HTTPException: 401 if the token is expired, malformed or badly signed.
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT validation failed: {e}")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        int(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: malformed subject claim",
        )
    return payload


def get_bearer_token(authorization: Optional[str] = Header(None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
        )
    return authorization.split(" ", 1)[1].strip()


# =============================================================================
# DEPENDENCIES
# =============================================================================

async def get_current_user(
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the bearer token to a live User row.

    The row is loaded on every request so role and restaurant changes
    take effect without re-login.
    """
    payload = decode_access_token(token)
    user = await db.get(User, int(payload["sub"]))

    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def require_roles(*roles: UserRole):
    """
    Dependency factory enforcing that the current user holds one of `roles`.

    Example:
        @router.get("/stats")
        async def stats(user: User = Depends(require_roles(UserRole.ADMIN))): ...
    """
    allowed = set(roles)

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.info(f"User #{user.id} ({user.role.value}) denied; requires {sorted(r.value for r in allowed)}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied. Insufficient permissions.",
            )
        return user

    return checker


require_staff = require_roles(UserRole.STAFF, UserRole.ADMIN, UserRole.SUPERADMIN)
require_admin = require_roles(UserRole.ADMIN, UserRole.SUPERADMIN)
require_superadmin = require_roles(UserRole.SUPERADMIN)


# =============================================================================
# TENANT SCOPING
# =============================================================================

def can_access_restaurant(user: User, restaurant_id: int) -> bool:
    return user.role == UserRole.SUPERADMIN or user.restaurant_id == restaurant_id


def ensure_restaurant_access(user: User, restaurant_id: int, what: str = "Restaurant") -> None:
    """Foreign tenants look the same as missing ones (404)."""
    if not can_access_restaurant(user, restaurant_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def resolve_restaurant_id(user: User, requested: Optional[int] = None) -> int:
    """
    Restaurant a staff action applies to.

    Staff and admins always act on their own restaurant; superadmins must
    name one explicitly.
    """
    if user.role == UserRole.SUPERADMIN:
        if requested is None:
            raise HTTPException(status_code=400, detail="restaurantId is required")
        return requested

    if user.restaurant_id is None:
        raise HTTPException(status_code=404, detail="No restaurant associated with this account")

    if requested is not None and requested != user.restaurant_id:
        raise HTTPException(status_code=404, detail="Restaurant not found")

    return user.restaurant_id


async def get_owned_restaurant(db: AsyncSession, user: User) -> Restaurant:
    """The restaurant owned or staffed by the current admin."""
    restaurant = None
    if user.restaurant_id is not None:
        restaurant = await db.get(Restaurant, user.restaurant_id)
    if restaurant is None:
        result = await db.execute(select(Restaurant).where(Restaurant.owner_id == user.id))
        restaurant = result.scalars().first()
    if restaurant is None:
        raise HTTPException(status_code=404, detail="No restaurant found for this account")
    return restaurant
