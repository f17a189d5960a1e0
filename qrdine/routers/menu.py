"""
Menu routes.

Public: browse a restaurant's menu and categories.
Staff: CRUD, availability toggle, bulk JSON upload, CSV/XLSX import/export.
"""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile, status
from pydantic import ValidationError
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from qrdine.core.errors import describe_validation_errors
from qrdine.core.security import ensure_restaurant_access, require_staff, resolve_restaurant_id
from qrdine.database import get_db
from qrdine.models import MenuItem, Restaurant, User, utcnow
from qrdine.schemas import (
    BulkRowError,
    BulkUploadRequest,
    BulkUploadResponse,
    ErrorResponse,
    MenuItemCreate,
    MenuItemEnvelope,
    MenuItemOut,
    MenuItemUpdate,
    MenuListResponse,
    MessageResponse,
)
from qrdine.services import menu_io

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/menu", tags=["Menu"])

FileFormat = Literal["csv", "xlsx"]


def _new_item(restaurant_id: int, data: MenuItemCreate) -> MenuItem:
    return MenuItem(
        restaurant_id=restaurant_id,
        name=data.name,
        description=data.description,
        price=data.price,
        category=data.category,
        image_url=data.image_url,
        is_available=data.is_available,
        preparation_time=data.preparation_time,
        allergens=data.allergens,
        dietary_info=data.dietary_info,
        customizations=[c.model_dump() for c in data.customizations],
    )


async def _get_restaurant(db: AsyncSession, restaurant_id: int) -> Restaurant:
    restaurant = await db.get(Restaurant, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=404, detail="Restaurant not found")
    return restaurant


async def _get_item(db: AsyncSession, item_id: int, user: User) -> MenuItem:
    item = await db.get(MenuItem, item_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Menu item not found")
    ensure_restaurant_access(user, item.restaurant_id, "Menu item")
    return item


async def _import_rows(db: AsyncSession, restaurant_id: int, rows: list[dict]) -> BulkUploadResponse:
    """Validate every row, insert the valid ones, report the rest by row number (1-based)."""
    created = []
    errors = []

    for index, row in enumerate(rows, start=1):
        try:
            data = MenuItemCreate.model_validate(row)
        except ValidationError as e:
            errors.append(BulkRowError(row=index, error=describe_validation_errors(e.errors())))
            continue
        item = _new_item(restaurant_id, data)
        db.add(item)
        created.append(item)

    if created:
        await db.commit()

    logger.info(f"Menu import for restaurant {restaurant_id}: {len(created)} created, {len(errors)} rejected")

    return BulkUploadResponse(
        success=bool(created),
        created=len(created),
        errors=errors,
        items=[MenuItemOut.model_validate(i) for i in created],
    )


# =============================================================================
# FILE IMPORT / EXPORT (static paths first)
# =============================================================================

@router.get("/template")
async def download_template(format: FileFormat = Query("csv")) -> Response:
    """Blank menu spreadsheet with example rows."""
    return Response(
        content=menu_io.menu_template(format),
        media_type=menu_io.FORMATS[format],
        headers={"Content-Disposition": f'attachment; filename="menu-template.{format}"'},
    )


@router.get("/export")
async def export_menu(
    format: FileFormat = Query("csv"),
    restaurant_id: Optional[int] = Query(None, alias="restaurantId"),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> Response:
    rid = resolve_restaurant_id(user, restaurant_id)
    result = await db.execute(
        select(MenuItem).where(MenuItem.restaurant_id == rid).order_by(MenuItem.category, MenuItem.name)
    )
    content = menu_io.export_menu(result.scalars().all(), format)

    return Response(
        content=content,
        media_type=menu_io.FORMATS[format],
        headers={"Content-Disposition": f'attachment; filename="menu-{rid}.{format}"'},
    )


@router.post(
    "/bulk-upload",
    response_model=BulkUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def bulk_upload(
    payload: BulkUploadRequest,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> BulkUploadResponse:
    rid = resolve_restaurant_id(user, payload.restaurant_id)
    await _get_restaurant(db, rid)
    return await _import_rows(db, rid, payload.items)


@router.post(
    "/upload-file",
    response_model=BulkUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def upload_file(
    file: UploadFile = File(...),
    restaurant_id: Optional[int] = Form(None, alias="restaurantId"),
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> BulkUploadResponse:
    rid = resolve_restaurant_id(user, restaurant_id)
    await _get_restaurant(db, rid)

    content = await file.read()
    try:
        rows = menu_io.read_menu_file(content, file.filename or "")
    except menu_io.MenuFileError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not rows:
        raise HTTPException(status_code=400, detail="The file contains no menu rows")

    return await _import_rows(db, rid, rows)


# =============================================================================
# CRUD
# =============================================================================

@router.post(
    "",
    response_model=MenuItemEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_item(
    payload: MenuItemCreate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    rid = resolve_restaurant_id(user, payload.restaurant_id)
    await _get_restaurant(db, rid)

    item = _new_item(rid, payload)
    db.add(item)
    await db.commit()

    logger.info(f"Menu item #{item.id} '{item.name}' created for restaurant {rid}")
    return MenuItemEnvelope(message="Menu item created", item=MenuItemOut.model_validate(item))


@router.get("/{restaurant_id}", response_model=MenuListResponse)
async def get_menu(
    restaurant_id: int,
    category: Optional[str] = Query(None),
    available: Optional[bool] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_db),
) -> MenuListResponse:
    """Public menu with optional category, availability and text filters."""
    await _get_restaurant(db, restaurant_id)

    query = select(MenuItem).where(MenuItem.restaurant_id == restaurant_id)
    if category:
        query = query.where(func.lower(MenuItem.category) == category.lower())
    if available is not None:
        query = query.where(MenuItem.is_available == available)
    if search:
        pattern = f"%{search.lower()}%"
        query = query.where(
            or_(func.lower(MenuItem.name).like(pattern), func.lower(MenuItem.description).like(pattern))
        )

    result = await db.execute(query.order_by(MenuItem.category, MenuItem.name))
    items = result.scalars().all()

    return MenuListResponse(
        count=len(items),
        categories=sorted({i.category for i in items}),
        items=[MenuItemOut.model_validate(i) for i in items],
    )


@router.get("/{restaurant_id}/categories")
async def get_categories(
    restaurant_id: int,
    db: AsyncSession = Depends(get_db),
) -> dict:
    await _get_restaurant(db, restaurant_id)
    result = await db.execute(
        select(MenuItem.category, func.count(MenuItem.id))
        .where(MenuItem.restaurant_id == restaurant_id, MenuItem.is_available.is_(True))
        .group_by(MenuItem.category)
        .order_by(MenuItem.category)
    )
    return {
        "success": True,
        "categories": [{"name": name, "count": count} for name, count in result.all()],
    }


@router.get("/{restaurant_id}/stats")
async def get_menu_stats(
    restaurant_id: int,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> dict:
    ensure_restaurant_access(user, restaurant_id)

    totals = await db.execute(
        select(
            func.count(MenuItem.id),
            func.avg(MenuItem.price),
            func.min(MenuItem.price),
            func.max(MenuItem.price),
        ).where(MenuItem.restaurant_id == restaurant_id)
    )
    total, avg_price, min_price, max_price = totals.one()

    available = await db.execute(
        select(func.count(MenuItem.id)).where(
            MenuItem.restaurant_id == restaurant_id, MenuItem.is_available.is_(True)
        )
    )
    by_category = await db.execute(
        select(MenuItem.category, func.count(MenuItem.id))
        .where(MenuItem.restaurant_id == restaurant_id)
        .group_by(MenuItem.category)
    )

    available_count = available.scalar() or 0
    return {
        "success": True,
        "stats": {
            "totalItems": total or 0,
            "availableItems": available_count,
            "unavailableItems": (total or 0) - available_count,
            "averagePrice": round(avg_price or 0.0, 2),
            "minPrice": round(min_price or 0.0, 2),
            "maxPrice": round(max_price or 0.0, 2),
            "byCategory": {name: count for name, count in by_category.all()},
        },
    }


@router.put("/{item_id}", response_model=MenuItemEnvelope)
async def update_item(
    item_id: int,
    payload: MenuItemUpdate,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    item = await _get_item(db, item_id, user)

    changes = payload.model_dump(exclude_unset=True)
    if "customizations" in changes and payload.customizations is not None:
        changes["customizations"] = [c.model_dump() for c in payload.customizations]
    for field, value in changes.items():
        if value is None and field in ("name", "price", "category", "is_available", "preparation_time"):
            continue
        setattr(item, field, value)

    item.updated_at = utcnow()
    await db.commit()

    return MenuItemEnvelope(message="Menu item updated", item=MenuItemOut.model_validate(item))


@router.delete("/{item_id}", response_model=MessageResponse)
async def delete_item(
    item_id: int,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    item = await _get_item(db, item_id, user)
    await db.delete(item)
    await db.commit()

    logger.info(f"Menu item #{item_id} deleted by user #{user.id}")
    return MessageResponse(message="Menu item deleted")


@router.patch("/{item_id}/availability", response_model=MenuItemEnvelope)
async def toggle_availability(
    item_id: int,
    user: User = Depends(require_staff),
    db: AsyncSession = Depends(get_db),
) -> MenuItemEnvelope:
    item = await _get_item(db, item_id, user)
    item.is_available = not item.is_available
    item.updated_at = utcnow()
    await db.commit()

    state = "available" if item.is_available else "unavailable"
    return MenuItemEnvelope(message=f"Menu item is now {state}", item=MenuItemOut.model_validate(item))
