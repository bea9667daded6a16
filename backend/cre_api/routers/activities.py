"""CRM Activities API: calls, emails, meetings, notes and tasks."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
from uuid import UUID
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import Activity, Contact, User, utcnow
from cre_api.rbac import require_view_crm, require_edit_crm
from cre_api.schemas.crm import ActivityCreate, ActivityUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/activities", tags=["Activities"])

# Activity types that count as touching the contact
CONTACT_TOUCH_TYPES = {"call", "email", "meeting", "site_visit"}

UPCOMING_TASK_LIMIT = 25


async def _get_activity_or_404(db: AsyncSession, activity_id: UUID) -> Activity:
    activity = await db.get(Activity, activity_id)
    if not activity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Activity not found")
    return activity


@router.get("")
async def list_activities(
    activity_type: Optional[str] = None,
    contact_id: Optional[UUID] = None,
    deal_id: Optional[UUID] = None,
    company_id: Optional[UUID] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(Activity)

        if activity_type:
            query = query.where(Activity.activity_type == activity_type)
        if contact_id:
            query = query.where(Activity.contact_id == contact_id)
        if deal_id:
            query = query.where(Activity.deal_id == deal_id)
        if company_id:
            query = query.where(Activity.company_id == company_id)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(
            query.order_by(Activity.activity_date.desc()).limit(limit).offset(offset)
        )
        activities = [a.to_dict() for a in result.scalars().all()]

        return {
            "success": True,
            "activities": activities,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing activities: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch activities")


@router.get("/upcoming")
async def upcoming_tasks(
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    """Open tasks with a due date, soonest first."""
    try:
        result = await db.execute(
            select(Activity)
            .where(
                Activity.activity_type == "task",
                Activity.is_completed.is_(False),
                Activity.due_date.is_not(None),
            )
            .order_by(Activity.due_date.asc())
            .limit(UPCOMING_TASK_LIMIT)
        )
        return {"success": True, "tasks": [a.to_dict() for a in result.scalars().all()]}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching upcoming tasks: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch upcoming tasks")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_activity(
    payload: ActivityCreate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    if not payload.subject.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Subject is required")

    try:
        activity = Activity(**payload.model_dump(exclude_none=True), created_by=current_user.id)
        db.add(activity)

        if payload.contact_id and payload.activity_type in CONTACT_TOUCH_TYPES:
            contact = await db.get(Contact, payload.contact_id)
            if contact:
                contact.last_contacted_at = utcnow()

        await db.commit()
        await db.refresh(activity)
        return {"success": True, "activity": activity.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating activity: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create activity")


@router.patch("/{activity_id}")
async def update_activity(
    activity_id: UUID,
    payload: ActivityUpdate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        activity = await _get_activity_or_404(db, activity_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(activity, key, value)

        await db.commit()
        await db.refresh(activity)
        return {"success": True, "activity": activity.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating activity {activity_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update activity")


@router.post("/{activity_id}/complete")
async def complete_activity(
    activity_id: UUID,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        activity = await _get_activity_or_404(db, activity_id)
        activity.is_completed = True
        await db.commit()
        await db.refresh(activity)
        return {"success": True, "activity": activity.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error completing activity {activity_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to complete activity")


@router.delete("/{activity_id}")
async def delete_activity(
    activity_id: UUID,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        activity = await _get_activity_or_404(db, activity_id)
        await db.delete(activity)
        await db.commit()
        return {"success": True, "message": "Activity deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting activity {activity_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete activity")
