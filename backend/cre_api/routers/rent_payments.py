"""Rent Payments API (asset management)."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from cre_api.database import get_db
from cre_api.models import RentPayment, LeaseTenant, User
from cre_api.rbac import require_view_assets, require_manage_assets
from cre_api.schemas import PaymentStatus
from cre_api.schemas.asset import RentPaymentCreate, RentPaymentUpdate, RentPaymentBulkCreate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/rent-payments", tags=["Rent Payments"])


async def _get_payment_or_404(db: AsyncSession, payment_id: UUID) -> RentPayment:
    payment = await db.get(RentPayment, payment_id)
    if not payment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rent payment not found")
    return payment


@router.get("")
async def list_rent_payments(
    tenant_id: Optional[UUID] = None,
    property_id: Optional[UUID] = None,
    period_start: Optional[date] = None,
    period_end: Optional[date] = None,
    payment_status: Optional[PaymentStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        query = select(RentPayment)
        if property_id:
            query = query.join(LeaseTenant, LeaseTenant.id == RentPayment.tenant_id).where(
                LeaseTenant.master_property_id == property_id
            )
        if tenant_id:
            query = query.where(RentPayment.tenant_id == tenant_id)
        if period_start:
            query = query.where(RentPayment.period_start >= period_start)
        if period_end:
            query = query.where(RentPayment.period_end <= period_end)
        if payment_status:
            query = query.where(RentPayment.payment_status == payment_status.value)

        result = await db.execute(query.order_by(RentPayment.period_start.desc()))
        payments = [p.to_dict() for p in result.scalars().all()]

        total_due = sum(p["amount_due"] or 0 for p in payments)
        total_paid = sum(p["amount_paid"] or 0 for p in payments)

        return {
            "success": True,
            "payments": payments,
            "total": len(payments),
            "total_due": total_due,
            "total_paid": total_paid,
            "outstanding": total_due - total_paid,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing rent payments: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch rent payments")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_rent_payment(
    payload: RentPaymentCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        tenant = await db.get(LeaseTenant, payload.tenant_id)
        if not tenant:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

        data = payload.model_dump(exclude_none=True)
        data.setdefault("amount_due", tenant.monthly_base_rent)

        payment = RentPayment(**data, created_by=current_user.id)
        db.add(payment)
        await db.commit()
        await db.refresh(payment)
        return {"success": True, "payment": payment.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating rent payment: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create rent payment")


@router.post("/bulk", status_code=status.HTTP_201_CREATED)
async def bulk_create_rent_payments(
    payload: RentPaymentBulkCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    """
    Generate one expected payment per active tenant of a property.

    amount_due is the tenant's monthly base rent; nothing is paid yet.
    """
    if payload.period_end < payload.period_start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Period end must be after period start"
        )

    try:
        result = await db.execute(
            select(LeaseTenant).where(
                LeaseTenant.master_property_id == payload.master_property_id,
                LeaseTenant.is_active.is_(True),
            )
        )
        tenants = result.scalars().all()
        if not tenants:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No active tenants for this property"
            )

        payments = [
            RentPayment(
                tenant_id=tenant.id,
                period_start=payload.period_start,
                period_end=payload.period_end,
                amount_due=tenant.monthly_base_rent or 0,
                amount_paid=0,
                payment_status=PaymentStatus.EXPECTED.value,
                created_by=current_user.id,
            )
            for tenant in tenants
        ]
        db.add_all(payments)
        await db.commit()

        logger.info(
            f"Generated {len(payments)} rent payments for {payload.master_property_id} "
            f"({payload.period_start} - {payload.period_end})"
        )
        return {
            "success": True,
            "created": len(payments),
            "payments": [p.to_dict() for p in payments],
        }

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error generating rent payments: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to generate rent payments")


@router.patch("/{payment_id}")
async def update_rent_payment(
    payment_id: UUID,
    payload: RentPaymentUpdate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        payment = await _get_payment_or_404(db, payment_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(payment, key, value)

        await db.commit()
        await db.refresh(payment)
        return {"success": True, "payment": payment.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating rent payment {payment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update rent payment")


@router.delete("/{payment_id}")
async def delete_rent_payment(
    payment_id: UUID,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        payment = await _get_payment_or_404(db, payment_id)
        await db.delete(payment)
        await db.commit()
        return {"success": True, "message": "Rent payment deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting rent payment {payment_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete rent payment")
