"""
Rate limiting using slowapi.

A default per-IP limit applies to every route through SlowAPIMiddleware;
login, registration and order creation carry stricter decorators.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from qrdine.core.config import get_settings

settings = get_settings()

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_default],
    enabled=settings.rate_limit_enabled,
    storage_uri=settings.rate_limit_storage_uri,
)
