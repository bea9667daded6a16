"""Vendors API (asset management)."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_
from typing import Optional
from uuid import UUID
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import Vendor, User
from cre_api.rbac import require_view_assets, require_manage_assets
from cre_api.schemas.asset import VendorCreate, VendorUpdate
from cre_api.services.normalization import normalization_service as ns

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/vendors", tags=["Vendors"])


async def _get_vendor_or_404(db: AsyncSession, vendor_id: UUID) -> Vendor:
    result = await db.execute(
        select(Vendor).where(Vendor.id == vendor_id, Vendor.is_deleted.is_(False))
    )
    vendor = result.scalar_one_or_none()
    if not vendor:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vendor not found")
    return vendor


@router.get("")
async def list_vendors(
    search: Optional[str] = None,
    trade: Optional[str] = None,
    is_preferred: Optional[bool] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(Vendor).where(Vendor.is_deleted.is_(False))

        if search:
            term = f"%{search}%"
            query = query.where(or_(
                Vendor.name.ilike(term),
                Vendor.company_name.ilike(term),
                Vendor.trade.ilike(term),
            ))
        if trade:
            query = query.where(Vendor.trade == trade)
        if is_preferred is not None:
            query = query.where(Vendor.is_preferred.is_(is_preferred))

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(query.order_by(Vendor.name.asc()).limit(limit).offset(offset))
        vendors = [v.to_dict() for v in result.scalars().all()]

        return {
            "success": True,
            "vendors": vendors,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing vendors: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch vendors")


@router.get("/{vendor_id}")
async def get_vendor(
    vendor_id: UUID,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    vendor = await _get_vendor_or_404(db, vendor_id)
    return {"success": True, "vendor": vendor.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_vendor(
    payload: VendorCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    if not payload.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    try:
        data = payload.model_dump(exclude_none=True)
        if data.get("phone"):
            data["phone"] = ns.normalize_phone(data["phone"], settings.DEFAULT_PHONE_REGION)
        if data.get("email"):
            data["email"] = ns.normalize_email(data["email"])

        vendor = Vendor(**data, created_by=current_user.id)
        db.add(vendor)
        await db.commit()
        await db.refresh(vendor)
        return {"success": True, "vendor": vendor.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating vendor: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create vendor")


@router.patch("/{vendor_id}")
async def update_vendor(
    vendor_id: UUID,
    payload: VendorUpdate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        vendor = await _get_vendor_or_404(db, vendor_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(vendor, key, value)

        await db.commit()
        await db.refresh(vendor)
        return {"success": True, "vendor": vendor.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating vendor {vendor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update vendor")


@router.delete("/{vendor_id}")
async def delete_vendor(
    vendor_id: UUID,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        vendor = await _get_vendor_or_404(db, vendor_id)
        vendor.is_deleted = True
        await db.commit()
        return {"success": True, "message": "Vendor deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting vendor {vendor_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete vendor")
