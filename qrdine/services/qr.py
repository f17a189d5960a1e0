"""
Table QR codes.

Each table gets a PNG QR code pointing at the customer frontend route
``/table/{restaurantId}/{tableNumber}``, stored as a base64 data URL.
"""

import base64
import logging
from io import BytesIO

import qrcode

from qrdine.core.config import get_settings
from qrdine.models import RestaurantTable

logger = logging.getLogger(__name__)


def table_url(restaurant_id: int, table_number: str) -> str:
    base_url = get_settings().frontend_url.rstrip("/")
    return f"{base_url}/table/{restaurant_id}/{table_number}"


def qr_png(url: str) -> bytes:
    qr_img = qrcode.make(url)
    buf = BytesIO()
    qr_img.save(buf, format="PNG")
    return buf.getvalue()


def qr_data_url(url: str) -> str:
    encoded = base64.b64encode(qr_png(url)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def assign_qr_code(table: RestaurantTable, restaurant_id: int) -> RestaurantTable:
    """(Re)generate the QR code for a table in place."""
    url = table_url(restaurant_id, table.table_number)
    table.qr_url = url
    table.qr_code = qr_data_url(url)
    logger.debug(f"QR code generated for restaurant {restaurant_id} table {table.table_number}")
    return table
