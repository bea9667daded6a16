"""
Master Properties API

Canonical property records, bulk import from CoStar/Crexi exports,
duplicate lookup and the annual verification queue.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import Optional
from uuid import UUID
from datetime import timedelta
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import MasterProperty, Transaction, ImportBatch, User, utcnow
from cre_api.rbac import (
    require_view_properties,
    require_edit_properties,
    require_import_properties,
    require_verify_properties,
)
from cre_api.schemas.property import (
    ImportRequest,
    MasterPropertyCreate,
    MasterPropertyUpdate,
    TransactionCreate,
)
from cre_api.services.import_mappings import auto_map_columns, parse_csv_file
from cre_api.services.normalization import normalization_service as ns
from cre_api.services.property_import import property_import_service, ImportValidationError
from cre_api.services import prospect_filters

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/master-properties", tags=["Master Properties"])


def _normalize_fields(data: dict) -> dict:
    if data.get("state"):
        data["state"] = ns.normalize_state(data["state"])
    if data.get("property_type"):
        data["property_type"] = ns.map_property_type(data["property_type"]) or data["property_type"]
    if data.get("owner_phone"):
        data["owner_phone"] = ns.normalize_phone(data["owner_phone"], settings.DEFAULT_PHONE_REGION)
    return data


async def _get_property_or_404(db: AsyncSession, property_id: UUID) -> MasterProperty:
    result = await db.execute(
        select(MasterProperty).where(
            MasterProperty.id == property_id,
            MasterProperty.is_deleted.is_(False),
        )
    )
    prop = result.scalar_one_or_none()
    if not prop:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")
    return prop


async def _find_duplicate_id(
    db: AsyncSession,
    address_normalized: str,
    city: str,
    state: str,
    exclude_id: Optional[UUID] = None,
) -> Optional[UUID]:
    """Id of a non-deleted property at the same normalized address, city and state."""
    query = select(MasterProperty.id).where(
        MasterProperty.address_normalized == address_normalized,
        func.lower(MasterProperty.city) == city.lower(),
        MasterProperty.state == state,
        MasterProperty.is_deleted.is_(False),
    )
    if exclude_id is not None:
        query = query.where(MasterProperty.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none()


# ============================================================================
# LIST
# ============================================================================

@router.get("")
async def list_master_properties(
    city: Optional[str] = None,
    state: Optional[str] = None,
    property_type: Optional[str] = None,
    search: Optional[str] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_properties),
    db: AsyncSession = Depends(get_db)
):
    """List properties with their latest transaction."""
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        view = prospect_filters.property_view

        query = select(view)
        if city:
            query = query.where(view.c.city.ilike(f"%{city}%"))
        if state:
            query = query.where(view.c.state == ns.normalize_state(state))
        if property_type:
            query = query.where(view.c.property_type == property_type)
        if search:
            term = f"%{search}%"
            query = query.where(or_(
                view.c.address.ilike(term),
                view.c.property_name.ilike(term),
                view.c.city.ilike(term),
            ))

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(
            query.order_by(view.c.created_at.desc()).limit(limit).offset(offset)
        )
        properties = [prospect_filters.serialize_row(row) for row in result.all()]

        return {
            "success": True,
            "properties": properties,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing properties: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch properties")


# ============================================================================
# IMPORT
# ============================================================================

@router.post("/import/preview")
async def preview_import(
    file: UploadFile = File(...),
    current_user: User = Depends(require_import_properties),
):
    """
    Preview a CSV export before import.
    Returns headers, a row sample and the proposed column mapping.
    Nothing is persisted.
    """
    if not file.filename or not file.filename.lower().endswith(".csv"):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be a CSV file")

    content = await file.read()
    if len(content) == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File is empty")

    try:
        headers, rows = parse_csv_file(content)
    except Exception as e:
        logger.error(f"CSV parse error: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Failed to parse CSV file")

    if not headers:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="CSV file has no header row")

    mapping = auto_map_columns(headers)

    return {
        "success": True,
        "filename": file.filename,
        "headers": headers,
        "total_rows": len(rows),
        "sample_rows": rows[:settings.PREVIEW_ROW_LIMIT],
        **mapping.to_dict(),
    }


@router.post("/import")
async def import_properties(
    payload: ImportRequest,
    current_user: User = Depends(require_import_properties),
    db: AsyncSession = Depends(get_db)
):
    """
    Bulk import mapped rows.

    Duplicates (normalized address + city + state) are updated in place;
    row failures are reported in error_details and never abort the batch.
    """
    user_id = current_user.id
    try:
        result = await property_import_service.run_import(
            db,
            source=payload.source,
            column_mapping=payload.column_mapping,
            rows=payload.rows,
            user_id=user_id,
            filename=payload.filename,
        )
        return result.to_dict()

    except ImportValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        await db.rollback()
        logger.error(f"Import failed for user {user_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to import properties")


@router.get("/import/batches")
async def list_import_batches(
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_import_properties),
    db: AsyncSession = Depends(get_db)
):
    """Caller's import batches, newest first."""
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(ImportBatch).where(ImportBatch.created_by == current_user.id)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(
            query.order_by(ImportBatch.created_at.desc()).limit(limit).offset(offset)
        )
        batches = [b.to_dict() for b in result.scalars().all()]

        return {
            "success": True,
            "batches": batches,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing import batches: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch import batches")


@router.get("/import/batches/{batch_id}")
async def get_import_batch(
    batch_id: UUID,
    current_user: User = Depends(require_import_properties),
    db: AsyncSession = Depends(get_db)
):
    batch = await db.get(ImportBatch, batch_id)
    if not batch or batch.created_by != current_user.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Import batch not found")
    return {"success": True, "batch": batch.to_dict()}


# ============================================================================
# DUPLICATES & VERIFICATION
# ============================================================================

@router.get("/duplicates")
async def find_duplicates(
    address: Optional[str] = None,
    city: Optional[str] = None,
    state: Optional[str] = None,
    current_user: User = Depends(require_view_properties),
    db: AsyncSession = Depends(get_db)
):
    """Up to 5 existing properties sharing the normalized address."""
    if not address or not address.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Address is required")

    try:
        query = select(MasterProperty).where(
            MasterProperty.address_normalized == ns.normalize_address(address),
            MasterProperty.is_deleted.is_(False),
        )
        if city:
            query = query.where(func.lower(MasterProperty.city) == city.strip().lower())
        if state:
            query = query.where(MasterProperty.state == ns.normalize_state(state))

        result = await db.execute(query.limit(5))
        matches = [p.to_dict(exclude=("raw_import_data",)) for p in result.scalars().all()]

        return {"success": True, "duplicates": matches, "count": len(matches)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error checking duplicates: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to check duplicates")


@router.get("/verification-queue")
async def get_verification_queue(
    current_user: User = Depends(require_verify_properties),
    db: AsyncSession = Depends(get_db)
):
    """Properties never verified or past their reminder date."""
    try:
        now = utcnow()
        query = select(MasterProperty).where(
            MasterProperty.is_deleted.is_(False),
            or_(
                MasterProperty.verified_at.is_(None),
                MasterProperty.verification_reminder_at <= now,
            ),
        )

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(
            query.order_by(
                MasterProperty.verification_reminder_at.is_not(None),
                MasterProperty.verification_reminder_at.asc(),
            ).limit(settings.VERIFICATION_QUEUE_LIMIT)
        )
        properties = [p.to_dict(exclude=("raw_import_data",)) for p in result.scalars().all()]

        return {"success": True, "properties": properties, "total": total}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching verification queue: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch verification queue")


# ============================================================================
# CRUD
# ============================================================================

@router.post("", status_code=status.HTTP_201_CREATED)
async def create_master_property(
    payload: MasterPropertyCreate,
    current_user: User = Depends(require_edit_properties),
    db: AsyncSession = Depends(get_db)
):
    """Manual entry; 409 when the property already exists."""
    try:
        data = _normalize_fields(payload.model_dump(exclude_none=True))
        data["address_normalized"] = ns.normalize_address(data["address"])

        existing_id = await _find_duplicate_id(
            db, data["address_normalized"], data["city"], data["state"]
        )
        if existing_id:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Property already exists: {existing_id}"
            )

        prop = MasterProperty(**data, source="manual", created_by=current_user.id)
        db.add(prop)
        await db.commit()
        await db.refresh(prop)

        logger.info(f"Property created: {prop.id} ({prop.address}, {prop.city})")
        return {"success": True, "property": prop.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating property: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create property")


@router.get("/{property_id}")
async def get_master_property(
    property_id: UUID,
    current_user: User = Depends(require_view_properties),
    db: AsyncSession = Depends(get_db)
):
    """Property with its transactions, most recent first."""
    try:
        prop = await _get_property_or_404(db, property_id)

        result = await db.execute(
            select(Transaction)
            .where(Transaction.property_id == property_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
        )
        transactions = [t.to_dict(exclude=("raw_import_data",)) for t in result.scalars().all()]

        return {"success": True, "property": prop.to_dict(), "transactions": transactions}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching property {property_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch property")


@router.patch("/{property_id}")
async def update_master_property(
    property_id: UUID,
    payload: MasterPropertyUpdate,
    current_user: User = Depends(require_edit_properties),
    db: AsyncSession = Depends(get_db)
):
    try:
        prop = await _get_property_or_404(db, property_id)
        data = _normalize_fields(payload.model_dump(exclude_unset=True))

        for field in ("address", "city", "state"):
            if field in data and not (data[field] or "").strip():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"{field} cannot be empty"
                )

        if "address" in data:
            data["address_normalized"] = ns.normalize_address(data["address"])

        if {"address", "city", "state"} & data.keys():
            existing_id = await _find_duplicate_id(
                db,
                data.get("address_normalized", prop.address_normalized),
                data.get("city", prop.city),
                data.get("state", prop.state),
                exclude_id=prop.id,
            )
            if existing_id:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Property already exists: {existing_id}"
                )

        for key, value in data.items():
            setattr(prop, key, value)

        await db.commit()
        await db.refresh(prop)
        return {"success": True, "property": prop.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating property {property_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update property")


@router.delete("/{property_id}")
async def delete_master_property(
    property_id: UUID,
    current_user: User = Depends(require_edit_properties),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete; the row is kept for history."""
    try:
        prop = await _get_property_or_404(db, property_id)
        prop.is_deleted = True
        await db.commit()

        logger.info(f"Property soft-deleted: {property_id} by {current_user.email}")
        return {"success": True, "message": "Property deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting property {property_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete property")


@router.post("/{property_id}/transactions", status_code=status.HTTP_201_CREATED)
async def create_transaction(
    property_id: UUID,
    payload: TransactionCreate,
    current_user: User = Depends(require_edit_properties),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_property_or_404(db, property_id)

        transaction = Transaction(
            property_id=property_id,
            source="manual",
            created_by=current_user.id,
            **payload.model_dump(exclude_none=True),
        )
        db.add(transaction)
        await db.commit()
        await db.refresh(transaction)

        return {"success": True, "transaction": transaction.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating transaction for {property_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create transaction")


@router.post("/{property_id}/verify")
async def verify_property(
    property_id: UUID,
    current_user: User = Depends(require_verify_properties),
    db: AsyncSession = Depends(get_db)
):
    """Mark verified now and schedule the next reminder."""
    try:
        prop = await _get_property_or_404(db, property_id)

        now = utcnow()
        prop.verified_at = now
        prop.verification_reminder_at = now + timedelta(days=settings.VERIFICATION_INTERVAL_DAYS)
        await db.commit()
        await db.refresh(prop)

        return {"success": True, "property": prop.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error verifying property {property_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to verify property")
