"""Capital Projects API (asset management)."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import Optional
from uuid import UUID
from datetime import date
import logging

from cre_api.database import get_db
from cre_api.models import CapitalProject, MasterProperty, User
from cre_api.rbac import require_view_assets, require_manage_assets
from cre_api.schemas import CapitalProjectStatus
from cre_api.schemas.asset import CapitalProjectCreate, CapitalProjectUpdate

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/capital-projects", tags=["Capital Projects"])


def _stamp_completion(project: CapitalProject):
    if project.status == CapitalProjectStatus.COMPLETED.value and not project.actual_completion:
        project.actual_completion = date.today()


async def _get_project_or_404(db: AsyncSession, project_id: UUID) -> CapitalProject:
    project = await db.get(CapitalProject, project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Capital project not found")
    return project


@router.get("")
async def list_capital_projects(
    property_id: Optional[UUID] = None,
    status_filter: Optional[CapitalProjectStatus] = Query(None, alias="status"),
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        query = select(CapitalProject)
        if property_id:
            query = query.where(CapitalProject.master_property_id == property_id)
        if status_filter:
            query = query.where(CapitalProject.status == status_filter.value)

        result = await db.execute(query.order_by(CapitalProject.created_at.desc()))
        projects = [p.to_dict() for p in result.scalars().all()]

        estimated = sum(p["estimated_cost"] or 0 for p in projects)
        actual = sum(p["actual_cost"] or 0 for p in projects)

        return {
            "success": True,
            "projects": projects,
            "total": len(projects),
            "total_estimated_cost": estimated,
            "total_actual_cost": actual,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing capital projects: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch capital projects")


@router.get("/{project_id}")
async def get_capital_project(
    project_id: UUID,
    current_user: User = Depends(require_view_assets),
    db: AsyncSession = Depends(get_db)
):
    project = await _get_project_or_404(db, project_id)
    return {"success": True, "project": project.to_dict()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_capital_project(
    payload: CapitalProjectCreate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        prop = await db.get(MasterProperty, payload.master_property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

        project = CapitalProject(**payload.model_dump(exclude_none=True), created_by=current_user.id)
        _stamp_completion(project)
        db.add(project)
        await db.commit()
        await db.refresh(project)
        return {"success": True, "project": project.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating capital project: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create capital project")


@router.patch("/{project_id}")
async def update_capital_project(
    project_id: UUID,
    payload: CapitalProjectUpdate,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    """Partial update; moving to completed stamps actual_completion if unset."""
    try:
        project = await _get_project_or_404(db, project_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(project, key, value)
        _stamp_completion(project)

        await db.commit()
        await db.refresh(project)
        return {"success": True, "project": project.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating capital project {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update capital project")


@router.delete("/{project_id}")
async def delete_capital_project(
    project_id: UUID,
    current_user: User = Depends(require_manage_assets),
    db: AsyncSession = Depends(get_db)
):
    try:
        project = await _get_project_or_404(db, project_id)
        await db.delete(project)
        await db.commit()
        return {"success": True, "message": "Capital project deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting capital project {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete capital project")
