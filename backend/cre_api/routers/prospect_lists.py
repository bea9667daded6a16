"""
Prospect Lists API

Saved property filters with a snapshot of matching properties. Each item
carries its own outreach status (pending, contacted, qualified,
not_interested).
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete, update
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID
import io
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import ProspectList, ProspectListItem, User, utcnow
from cre_api.rbac import require_prospecting
from cre_api.schemas.prospect import (
    BulkItemUpdate,
    PreviewRequest,
    ProspectItemUpdate,
    ProspectListCreate,
    ProspectListUpdate,
)
from cre_api.services import prospect_filters
from cre_api.services.prospect_export import (
    build_export_rows,
    export_filename,
    generate_csv,
    generate_excel,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/prospect-lists", tags=["Prospect Lists"])


async def _get_own_list_or_404(db: AsyncSession, list_id: UUID, user_id: UUID) -> ProspectList:
    result = await db.execute(
        select(ProspectList).where(
            ProspectList.id == list_id,
            ProspectList.created_by == user_id,
        )
    )
    prospect_list = result.scalar_one_or_none()
    if not prospect_list:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Prospect list not found")
    return prospect_list


async def _snapshot_items(
    db: AsyncSession,
    list_id: UUID,
    filters: Dict[str, Any],
    carried: Optional[Dict[Any, Tuple[str, Optional[str]]]] = None,
) -> int:
    """Insert one item per matching property; returns the match count."""
    carried = carried or {}
    property_ids = await prospect_filters.fetch_matching_ids(db, filters)
    for property_id in property_ids:
        status_value, notes = carried.get(property_id, ("pending", None))
        db.add(ProspectListItem(
            list_id=list_id,
            master_property_id=property_id,
            status=status_value,
            notes=notes,
        ))
    return len(property_ids)


async def _items_with_properties(db: AsyncSession, list_id: UUID) -> List[Dict[str, Any]]:
    result = await db.execute(
        select(ProspectListItem)
        .where(ProspectListItem.list_id == list_id)
        .order_by(ProspectListItem.added_at.asc())
    )
    items = result.scalars().all()
    properties = await prospect_filters.fetch_by_ids(db, [i.master_property_id for i in items])

    merged = []
    for item in items:
        data = item.to_dict()
        data["property"] = properties.get(item.master_property_id)
        merged.append(data)
    return merged


# ============================================================================
# PREVIEW
# ============================================================================

@router.post("/preview")
async def preview_filters(
    payload: PreviewRequest,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    """Match count plus the newest matching properties."""
    try:
        total = await prospect_filters.count_matches(db, payload.filters)
        properties = await prospect_filters.fetch_page(
            db, payload.filters, limit=settings.PREVIEW_ROW_LIMIT
        )
        return {"success": True, "total": total, "properties": properties}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error previewing filters: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to preview filters")


# ============================================================================
# LISTS
# ============================================================================

@router.get("")
async def list_prospect_lists(
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await db.execute(
            select(ProspectList)
            .where(ProspectList.created_by == current_user.id)
            .order_by(ProspectList.created_at.desc())
        )
        lists = [pl.to_dict() for pl in result.scalars().all()]
        return {"success": True, "lists": lists, "total": len(lists)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing prospect lists: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch prospect lists")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_prospect_list(
    payload: ProspectListCreate,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    """Save the filter and snapshot every matching property as pending."""
    if not payload.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    try:
        filters = payload.filters.model_dump(exclude_none=True)
        prospect_list = ProspectList(
            name=payload.name.strip(),
            description=payload.description,
            filters=filters,
            created_by=current_user.id,
        )
        db.add(prospect_list)
        await db.flush()

        prospect_list.result_count = await _snapshot_items(db, prospect_list.id, filters)
        prospect_list.last_refreshed_at = utcnow()
        await db.commit()
        await db.refresh(prospect_list)

        logger.info(
            f"Prospect list created: {prospect_list.id} "
            f"({prospect_list.result_count} properties)"
        )
        return {"success": True, "list": prospect_list.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating prospect list: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create prospect list")


@router.get("/{list_id}")
async def get_prospect_list(
    list_id: UUID,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    try:
        prospect_list = await _get_own_list_or_404(db, list_id, current_user.id)
        items = await _items_with_properties(db, list_id)
        return {"success": True, "list": prospect_list.to_dict(), "items": items}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching prospect list {list_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch prospect list")


@router.patch("/{list_id}")
async def update_prospect_list(
    list_id: UUID,
    payload: ProspectListUpdate,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    """Rename or edit the saved filter; items change only on refresh."""
    try:
        prospect_list = await _get_own_list_or_404(db, list_id, current_user.id)

        if payload.name is not None:
            prospect_list.name = payload.name.strip()
        if payload.description is not None:
            prospect_list.description = payload.description
        if payload.filters is not None:
            prospect_list.filters = payload.filters.model_dump(exclude_none=True)

        await db.commit()
        await db.refresh(prospect_list)
        return {"success": True, "list": prospect_list.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating prospect list {list_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update prospect list")


@router.delete("/{list_id}")
async def delete_prospect_list(
    list_id: UUID,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    try:
        prospect_list = await _get_own_list_or_404(db, list_id, current_user.id)

        await db.execute(delete(ProspectListItem).where(ProspectListItem.list_id == list_id))
        await db.delete(prospect_list)
        await db.commit()

        logger.info(f"Prospect list deleted: {list_id}")
        return {"success": True, "message": "Prospect list deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting prospect list {list_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete prospect list")


@router.post("/{list_id}/refresh")
async def refresh_prospect_list(
    list_id: UUID,
    preserve_status: bool = Query(False),
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    """
    Re-run the saved filter and replace the item snapshot.

    By default item status and notes are reset. With preserve_status=true,
    properties that still match keep their status and notes.
    """
    try:
        prospect_list = await _get_own_list_or_404(db, list_id, current_user.id)

        carried = {}
        if preserve_status:
            result = await db.execute(
                select(ProspectListItem).where(ProspectListItem.list_id == list_id)
            )
            carried = {
                item.master_property_id: (item.status, item.notes)
                for item in result.scalars().all()
            }

        await db.execute(delete(ProspectListItem).where(ProspectListItem.list_id == list_id))

        prospect_list.result_count = await _snapshot_items(
            db, list_id, prospect_list.filters or {}, carried
        )
        prospect_list.last_refreshed_at = utcnow()
        await db.commit()
        await db.refresh(prospect_list)

        logger.info(f"Prospect list refreshed: {list_id} ({prospect_list.result_count} properties)")
        return {"success": True, "list": prospect_list.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error refreshing prospect list {list_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to refresh prospect list")


@router.get("/{list_id}/export")
async def export_prospect_list(
    list_id: UUID,
    format: str = Query("csv", pattern="^(csv|xlsx)$"),
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    """Download the list as CSV (default) or Excel."""
    try:
        prospect_list = await _get_own_list_or_404(db, list_id, current_user.id)
        items = await _items_with_properties(db, list_id)
        rows = build_export_rows(items)

        if format == "xlsx":
            filename = export_filename(prospect_list.name, "xlsx")
            output = generate_excel(rows)
            media_type = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        else:
            filename = export_filename(prospect_list.name, "csv")
            output = io.BytesIO(generate_csv(rows).encode("utf-8"))
            media_type = "text/csv"

        logger.info(f"Prospect list exported: {list_id} ({len(rows)} rows, {format})")
        return StreamingResponse(
            output,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="{filename}"'}
        )

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error exporting prospect list {list_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to export prospect list")


# ============================================================================
# ITEMS
# ============================================================================

@router.patch("/{list_id}/items/{item_id}")
async def update_prospect_item(
    list_id: UUID,
    item_id: UUID,
    payload: ProspectItemUpdate,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_own_list_or_404(db, list_id, current_user.id)

        result = await db.execute(
            select(ProspectListItem).where(
                ProspectListItem.id == item_id,
                ProspectListItem.list_id == list_id,
            )
        )
        item = result.scalar_one_or_none()
        if not item:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

        if payload.status is not None:
            item.status = payload.status
        if payload.notes is not None:
            item.notes = payload.notes

        await db.commit()
        await db.refresh(item)
        return {"success": True, "item": item.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating prospect item {item_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update item")


@router.post("/{list_id}/items/bulk-update")
async def bulk_update_prospect_items(
    list_id: UUID,
    payload: BulkItemUpdate,
    current_user: User = Depends(require_prospecting),
    db: AsyncSession = Depends(get_db)
):
    if not payload.item_ids:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="item_ids is required")

    values = {}
    if payload.status is not None:
        values["status"] = payload.status
    if payload.notes is not None:
        values["notes"] = payload.notes
    if not values:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Nothing to update: provide status or notes"
        )

    try:
        await _get_own_list_or_404(db, list_id, current_user.id)

        result = await db.execute(
            update(ProspectListItem)
            .where(
                ProspectListItem.list_id == list_id,
                ProspectListItem.id.in_(payload.item_ids),
            )
            .values(**values)
        )
        await db.commit()

        return {"success": True, "updated": result.rowcount}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error bulk-updating items of {list_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update items")
