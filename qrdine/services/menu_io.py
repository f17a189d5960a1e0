"""
Menu File Import / Export

CSV and Excel (openpyxl engine) menu spreadsheets via pandas:
- parse uploaded files into row dicts for validation
- export a restaurant's menu
- produce a fill-in template

List columns (allergens, dietaryInfo) hold comma or semicolon separated
values. Customizations are not part of the spreadsheet format.

Author: QR Dine Team
Version: 1.0.0
"""

import logging
import re
from io import BytesIO
from typing import Any, Iterable

import pandas as pd

logger = logging.getLogger(__name__)

MENU_COLUMNS = [
    "name",
    "description",
    "price",
    "category",
    "image_url",
    "is_available",
    "preparation_time",
    "allergens",
    "dietary_info",
]

LIST_COLUMNS = ("allergens", "dietary_info")

FORMATS = {
    "csv": "text/csv",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}

TEMPLATE_ROWS = [
    {
        "name": "Margherita Pizza",
        "description": "Tomato, mozzarella, basil",
        "price": 16.99,
        "category": "Mains",
        "image_url": "",
        "is_available": True,
        "preparation_time": 15,
        "allergens": "gluten, dairy",
        "dietary_info": "vegetarian",
    },
    {
        "name": "Caesar Salad",
        "description": "Romaine, parmesan, croutons",
        "price": 11.5,
        "category": "Starters",
        "image_url": "",
        "is_available": True,
        "preparation_time": 10,
        "allergens": "gluten, dairy, eggs, fish",
        "dietary_info": "",
    },
]


class MenuFileError(ValueError):
    """Uploaded file could not be read as a menu spreadsheet."""


def _snake(column: str) -> str:
    column = str(column).strip()
    column = re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", column)
    return re.sub(r"[\s\-]+", "_", column).lower()


def _split_list(value: Any) -> list[str]:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return []
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [part.strip() for part in re.split(r"[;,]", str(value)) if part.strip()]


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in ("false", "0", "no", "n", "")


def file_format(filename: str) -> str:
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if extension == "xls":
        extension = "xlsx"
    if extension not in FORMATS:
        raise MenuFileError("Unsupported file type. Upload a .csv or .xlsx file")
    return extension


def read_menu_file(content: bytes, filename: str) -> list[dict[str, Any]]:
    """
    Parse an uploaded CSV/XLSX menu into row dicts.

    Empty cells are dropped so model defaults apply.

    Raises:
        MenuFileError: unsupported extension, unreadable file or missing
            required columns
    """
    fmt = file_format(filename)

    try:
        if fmt == "csv":
            df = pd.read_csv(BytesIO(content))
        else:
            df = pd.read_excel(BytesIO(content), engine="openpyxl")
    except Exception as e:
        logger.warning(f"Could not parse uploaded menu file {filename}: {e}")
        raise MenuFileError(f"Could not read file: {e}") from e

    df = df.rename(columns=_snake)
    missing = {"name", "price", "category"} - set(df.columns)
    if missing:
        raise MenuFileError(f"Missing required column(s): {', '.join(sorted(missing))}")

    rows = []
    for record in df.to_dict(orient="records"):
        row = {}
        for key, value in record.items():
            if key not in MENU_COLUMNS:
                continue
            if key in LIST_COLUMNS:
                row[key] = _split_list(value)
            elif value is None or (not isinstance(value, (list, dict)) and pd.isna(value)):
                continue
            elif key == "is_available":
                row[key] = _parse_bool(value)
            elif key in ("name", "description", "category", "image_url"):
                text = str(value).strip()
                if text:
                    row[key] = text
            else:
                # numpy scalars -> python
                row[key] = value.item() if hasattr(value, "item") else value
        rows.append(row)

    logger.info(f"Parsed {len(rows)} menu rows from {filename}")
    return rows


def _to_bytes(df: pd.DataFrame, fmt: str) -> bytes:
    buf = BytesIO()
    if fmt == "csv":
        buf.write(df.to_csv(index=False).encode("utf-8"))
    else:
        df.to_excel(buf, index=False, engine="openpyxl", sheet_name="Menu")
    return buf.getvalue()


def export_menu(items: Iterable, fmt: str = "csv") -> bytes:
    """Serialize MenuItem rows to CSV or XLSX."""
    if fmt not in FORMATS:
        raise MenuFileError(f"Unsupported export format: {fmt}")

    records = [
        {
            "name": item.name,
            "description": item.description or "",
            "price": item.price,
            "category": item.category,
            "image_url": item.image_url or "",
            "is_available": item.is_available,
            "preparation_time": item.preparation_time,
            "allergens": ", ".join(item.allergens or []),
            "dietary_info": ", ".join(item.dietary_info or []),
        }
        for item in items
    ]
    return _to_bytes(pd.DataFrame(records, columns=MENU_COLUMNS), fmt)


def menu_template(fmt: str = "csv") -> bytes:
    if fmt not in FORMATS:
        raise MenuFileError(f"Unsupported template format: {fmt}")
    return _to_bytes(pd.DataFrame(TEMPLATE_ROWS, columns=MENU_COLUMNS), fmt)
