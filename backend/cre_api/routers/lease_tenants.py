"""
Lease Tenants API (asset management)

Tenants occupy units of a master property. Removing a tenant only
deactivates the lease so rent history stays attached.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from cre_api.database import get_db
from cre_api.models import LeaseTenant, MasterProperty, User
from cre_api.rbac import require_view_assets, require_manage_assets
from cre_api.schemas.asset import LeaseTenantCreate, LeaseTenantUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/lease-tenants", tags=["Lease Tenants"])


async def _get_tenant_or_404(db: AsyncSession, tenant_id: UUID) -> LeaseTenant:
    tenant = await db.get(LeaseTenant, tenant_id)
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def build_rent_roll(tenants, building_size=None, today: Optional[date] = None) -> dict:
    """Summarize active leases: monthly and annual rent, leased SF, occupancy."""
    today = today or date.today()
    active = [t for t in tenants if t.is_active]

    monthly = sum(float(t.monthly_base_rent or 0) for t in active)
    leased_sf = sum(float(t.leased_sf or 0) for t in active)
    expiring = [
        t for t in active
        if t.lease_end and 0 <= (t.lease_end - today).days <= 365
    ]

    occupancy = None
    if building_size:
        occupancy = round(min(leased_sf / float(building_size), 1.0) * 100, 1)

    return {
        "tenants": [t.to_dict() for t in active],
        "active_tenants": len(active),
        "monthly_rent": monthly,
        "annual_rent": monthly * 12,
        "leased_sf": leased_sf,
        "occupancy_percent": occupancy,
        "expiring_within_year": len(expiring),
    }


@router.get("")
async def list_lease_tenants(
    property_id: Optional[UUID] = None,
    include_inactive: bool = False,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        query = select(LeaseTenant)
        if property_id:
            query = query.where(LeaseTenant.master_property_id == property_id)
        if not include_inactive:
            query = query.where(LeaseTenant.is_active.is_(True))

        result = await db.execute(query.order_by(LeaseTenant.unit_number.asc()))
        tenants = [t.to_dict() for t in result.scalars().all()]
        return {"success": True, "tenants": tenants, "total": len(tenants)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing tenants: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch tenants")


@router.get("/rent-roll/{property_id}")
async def get_rent_roll(
    property_id: UUID,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        prop = await db.get(MasterProperty, property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

        result = await db.execute(
            select(LeaseTenant)
            .where(LeaseTenant.master_property_id == property_id)
            .order_by(LeaseTenant.unit_number.asc())
        )
        roll = build_rent_roll(result.scalars().all(), prop.building_size)
        return {"success": True, "property_id": str(property_id), **roll}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building rent roll for {property_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to build rent roll")


@router.get("/{tenant_id}")
async def get_lease_tenant(
    tenant_id: UUID,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    tenant = await _get_tenant_or_404(db, tenant_id)
    return {"success": True, "tenant": tenant.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_lease_tenant(
    payload: LeaseTenantCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        prop = await db.get(MasterProperty, payload.master_property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

        if payload.lease_start and payload.lease_end and payload.lease_end < payload.lease_start:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Lease end must be after lease start"
            )

        tenant = LeaseTenant(**payload.model_dump(exclude_none=True), created_by=current_user.id)
        db.add(tenant)
        await db.commit()
        await db.refresh(tenant)

        logger.info(f"Tenant {tenant.tenant_name} added to property {payload.master_property_id}")
        return {"success": True, "tenant": tenant.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating tenant: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create tenant")


@router.patch("/{tenant_id}")
async def update_lease_tenant(
    tenant_id: UUID,
    payload: LeaseTenantUpdate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        tenant = await _get_tenant_or_404(db, tenant_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(tenant, key, value)

        await db.commit()
        await db.refresh(tenant)
        return {"success": True, "tenant": tenant.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating tenant {tenant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update tenant")


@router.delete("/{tenant_id}")
async def deactivate_lease_tenant(
    tenant_id: UUID,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        tenant = await _get_tenant_or_404(db, tenant_id)
        tenant.is_active = False
        await db.commit()
        return {"success": True, "message": "Tenant deactivated"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deactivating tenant {tenant_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to deactivate tenant")
