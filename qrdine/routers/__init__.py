"""HTTP routers, one per resource."""

from qrdine.routers import (
    auth,
    chat,
    menu,
    orders,
    restaurants,
    reviews,
    service,
    superadmin,
    table,
    waiting_list,
    webhooks,
)

__all__ = [
    "auth",
    "chat",
    "menu",
    "orders",
    "restaurants",
    "reviews",
    "service",
    "superadmin",
    "table",
    "waiting_list",
    "webhooks",
]
