"""CRM Companies API."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
from uuid import UUID
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import Company, Contact, User
from cre_api.rbac import require_view_crm, require_edit_crm
from cre_api.schemas.crm import CompanyCreate, CompanyUpdate
from cre_api.services.normalization import normalization_service as ns

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/companies", tags=["Companies"])


async def _get_company_or_404(db: AsyncSession, company_id: UUID) -> Company:
    result = await db.execute(
        select(Company).where(Company.id == company_id, Company.is_deleted.is_(False))
    )
    company = result.scalar_one_or_none()
    if not company:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Company not found")
    return company


@router.get("")
async def list_companies(
    search: Optional[str] = None,
    company_type: Optional[str] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(Company).where(Company.is_deleted.is_(False))

        if search:
            query = query.where(Company.name.ilike(f"%{search}%"))
        if company_type:
            query = query.where(Company.company_type == company_type)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(query.order_by(Company.name.asc()).limit(limit).offset(offset))
        companies = [c.to_dict() for c in result.scalars().all()]

        return {
            "success": True,
            "companies": companies,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing companies: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch companies")


@router.get("/{company_id}")
async def get_company(
    company_id: UUID,
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        company = await _get_company_or_404(db, company_id)
        result = await db.execute(
            select(Contact)
            .where(Contact.company_id == company_id, Contact.is_deleted.is_(False))
            .order_by(Contact.last_name.asc())
        )
        contacts = [c.to_dict() for c in result.scalars().all()]
        return {"success": True, "company": company.to_dict(), "contacts": contacts}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching company {company_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch company")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_company(
    payload: CompanyCreate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    if not payload.name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    try:
        data = payload.model_dump(exclude_none=True)
        data["name"] = data["name"].strip()
        if data.get("phone"):
            data["phone"] = ns.normalize_phone(data["phone"], settings.DEFAULT_PHONE_REGION)
        if data.get("email"):
            data["email"] = ns.normalize_email(data["email"])

        company = Company(**data, created_by=current_user.id)
        db.add(company)
        await db.commit()
        await db.refresh(company)

        return {"success": True, "company": company.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating company: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create company")


@router.patch("/{company_id}")
async def update_company(
    company_id: UUID,
    payload: CompanyUpdate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        company = await _get_company_or_404(db, company_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(company, key, value)

        await db.commit()
        await db.refresh(company)
        return {"success": True, "company": company.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating company {company_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update company")


@router.delete("/{company_id}")
async def delete_company(
    company_id: UUID,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        company = await _get_company_or_404(db, company_id)
        company.is_deleted = True
        await db.commit()
        return {"success": True, "message": "Company deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting company {company_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete company")
