"""
CRM Deals API

Pipeline deals with stage history, contacts and analytics.
Every stage change appends one row to deal_stage_history.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, delete
from typing import Optional
from uuid import UUID
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import CrmDeal, Contact, DealContact, DealStageHistory, Activity, User
from cre_api.rbac import require_view_crm, require_edit_crm
from cre_api.schemas.crm import DealCreate, DealUpdate, StageChangeRequest, DealContactAdd
from cre_api.services.deal_stages import (
    compute_analytics,
    group_pipeline,
    record_initial_stage,
    transition_stage,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/crm-deals", tags=["CRM Deals"])


async def _get_deal_or_404(db: AsyncSession, deal_id: UUID) -> CrmDeal:
    result = await db.execute(
        select(CrmDeal).where(CrmDeal.id == deal_id, CrmDeal.is_deleted.is_(False))
    )
    deal = result.scalar_one_or_none()
    if not deal:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Deal not found")
    return deal


async def _active_deals(db: AsyncSession):
    result = await db.execute(
        select(CrmDeal).where(CrmDeal.is_deleted.is_(False)).order_by(CrmDeal.updated_at.desc())
    )
    return result.scalars().all()


# ============================================================================
# LIST / PIPELINE / ANALYTICS
# ============================================================================

@router.get("")
async def list_deals(
    stage: Optional[str] = None,
    deal_type: Optional[str] = None,
    assigned_to: Optional[UUID] = None,
    search: Optional[str] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(CrmDeal).where(CrmDeal.is_deleted.is_(False))

        if stage:
            query = query.where(CrmDeal.stage == stage)
        if deal_type:
            query = query.where(CrmDeal.deal_type == deal_type)
        if assigned_to:
            query = query.where(CrmDeal.assigned_to == assigned_to)
        if search:
            query = query.where(CrmDeal.deal_name.ilike(f"%{search}%"))

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(
            query.order_by(CrmDeal.updated_at.desc()).limit(limit).offset(offset)
        )
        deals = [d.to_dict() for d in result.scalars().all()]

        return {
            "success": True,
            "deals": deals,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing deals: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch deals")


@router.get("/pipeline")
async def get_pipeline(
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    """Deals grouped by open stage."""
    try:
        deals = await _active_deals(db)
        return {"success": True, "pipeline": group_pipeline(deals)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error building pipeline: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch pipeline")


@router.get("/analytics")
async def get_deal_analytics(
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        deals = await _active_deals(db)
        return {"success": True, "analytics": compute_analytics(deals)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing deal analytics: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch deal analytics")


# ============================================================================
# CRUD
# ============================================================================

@router.get("/{deal_id}")
async def get_deal(
    deal_id: UUID,
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    """Deal with its contacts, activities and stage history."""
    try:
        deal = await _get_deal_or_404(db, deal_id)

        contacts_result = await db.execute(
            select(DealContact, Contact)
            .join(Contact, Contact.id == DealContact.contact_id)
            .where(DealContact.deal_id == deal_id)
        )
        contacts = []
        for link, contact in contacts_result.all():
            data = contact.to_dict()
            data["role"] = link.role
            contacts.append(data)

        activities_result = await db.execute(
            select(Activity)
            .where(Activity.deal_id == deal_id)
            .order_by(Activity.activity_date.desc())
        )
        history_result = await db.execute(
            select(DealStageHistory)
            .where(DealStageHistory.deal_id == deal_id)
            .order_by(DealStageHistory.changed_at.asc())
        )

        return {
            "success": True,
            "deal": deal.to_dict(),
            "contacts": contacts,
            "activities": [a.to_dict() for a in activities_result.scalars().all()],
            "stage_history": [h.to_dict() for h in history_result.scalars().all()],
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching deal {deal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch deal")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_deal(
    payload: DealCreate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        deal = CrmDeal(
            **payload.model_dump(exclude_none=True),
            created_by=current_user.id,
        )
        if deal.assigned_to is None:
            deal.assigned_to = current_user.id
        db.add(deal)
        await db.flush()

        record_initial_stage(db, deal, current_user.id)
        await db.commit()
        await db.refresh(deal)

        logger.info(f"Deal created: {deal.id} ({deal.deal_name}) in {deal.stage}")
        return {"success": True, "deal": deal.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating deal: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create deal")


@router.patch("/{deal_id}")
async def update_deal(
    deal_id: UUID,
    payload: DealUpdate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    """Partial update; a stage change is recorded in stage history."""
    try:
        deal = await _get_deal_or_404(db, deal_id)

        data = payload.model_dump(exclude_unset=True)
        new_stage = data.pop("stage", None)
        stage_notes = data.pop("stage_notes", None)

        for key, value in data.items():
            setattr(deal, key, value)

        if new_stage is not None and new_stage != deal.stage:
            transition_stage(db, deal, new_stage, current_user.id, stage_notes)

        await db.commit()
        await db.refresh(deal)
        return {"success": True, "deal": deal.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating deal {deal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update deal")


@router.patch("/{deal_id}/stage")
async def change_deal_stage(
    deal_id: UUID,
    payload: StageChangeRequest,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    """Move a deal to any stage; always appends one history row."""
    try:
        deal = await _get_deal_or_404(db, deal_id)
        history = transition_stage(db, deal, payload.stage, current_user.id, payload.notes)

        await db.commit()
        await db.refresh(deal)
        return {"success": True, "deal": deal.to_dict(), "history": history.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error changing stage of deal {deal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to change deal stage")


@router.delete("/{deal_id}")
async def delete_deal(
    deal_id: UUID,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        deal = await _get_deal_or_404(db, deal_id)
        deal.is_deleted = True
        await db.commit()
        return {"success": True, "message": "Deal deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting deal {deal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete deal")


# ============================================================================
# DEAL CONTACTS
# ============================================================================

@router.post("/{deal_id}/contacts", status_code=status.HTTP_201_CREATED)
async def add_deal_contact(
    deal_id: UUID,
    payload: DealContactAdd,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_deal_or_404(db, deal_id)

        contact = await db.get(Contact, payload.contact_id)
        if not contact or contact.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")

        existing = await db.execute(
            select(DealContact.id).where(
                DealContact.deal_id == deal_id,
                DealContact.contact_id == payload.contact_id,
                DealContact.role == payload.role,
            )
        )
        if existing.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Contact already linked to this deal with that role"
            )

        link = DealContact(deal_id=deal_id, contact_id=payload.contact_id, role=payload.role)
        db.add(link)
        await db.commit()
        await db.refresh(link)

        return {"success": True, "deal_contact": link.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error adding contact to deal {deal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to add contact to deal")


@router.delete("/{deal_id}/contacts/{contact_id}")
async def remove_deal_contact(
    deal_id: UUID,
    contact_id: UUID,
    role: Optional[str] = None,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    """Unlink a contact (all roles unless role is given)."""
    try:
        await _get_deal_or_404(db, deal_id)

        stmt = delete(DealContact).where(
            DealContact.deal_id == deal_id,
            DealContact.contact_id == contact_id,
        )
        if role:
            stmt = stmt.where(DealContact.role == role)
        result = await db.execute(stmt)
        await db.commit()

        if result.rowcount == 0:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not linked to deal")

        return {"success": True, "message": "Contact removed from deal"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error removing contact from deal {deal_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to remove contact from deal")
