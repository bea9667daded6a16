"""CRM Contacts API."""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_, delete
from typing import Optional
from uuid import UUID
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import (
    Contact, Company, ContactProperty, MasterProperty, DealContact, CrmDeal, Activity, User
)
from cre_api.rbac import require_view_crm, require_edit_crm
from cre_api.schemas.crm import ContactCreate, ContactUpdate, ContactPropertyLink
from cre_api.services.normalization import normalization_service as ns

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/contacts", tags=["Contacts"])


def _normalize_contact_fields(data: dict) -> dict:
    if data.get("email"):
        data["email"] = ns.normalize_email(data["email"])
    for field in ("phone", "mobile_phone"):
        if data.get(field):
            data[field] = ns.normalize_phone(data[field], settings.DEFAULT_PHONE_REGION)
    return data


async def _get_contact_or_404(db: AsyncSession, contact_id: UUID) -> Contact:
    result = await db.execute(
        select(Contact).where(Contact.id == contact_id, Contact.is_deleted.is_(False))
    )
    contact = result.scalar_one_or_none()
    if not contact:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Contact not found")
    return contact


@router.get("")
async def list_contacts(
    search: Optional[str] = None,
    contact_type: Optional[str] = None,
    company_id: Optional[UUID] = None,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        limit = min(limit, settings.MAX_PAGE_SIZE)
        query = select(Contact).where(Contact.is_deleted.is_(False))

        if search:
            term = f"%{search}%"
            query = query.where(or_(
                Contact.first_name.ilike(term),
                Contact.last_name.ilike(term),
                Contact.email.ilike(term),
            ))
        if contact_type:
            query = query.where(Contact.contact_type == contact_type)
        if company_id:
            query = query.where(Contact.company_id == company_id)

        count_result = await db.execute(select(func.count()).select_from(query.subquery()))
        total = count_result.scalar() or 0

        result = await db.execute(
            query.order_by(Contact.last_name.asc(), Contact.first_name.asc()).limit(limit).offset(offset)
        )
        contacts = [c.to_dict() for c in result.scalars().all()]

        return {
            "success": True,
            "contacts": contacts,
            "pagination": {"total": total, "limit": limit, "offset": offset},
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing contacts: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch contacts")


@router.get("/{contact_id}")
async def get_contact(
    contact_id: UUID,
    current_user: User = Depends(require_view_crm),
    db: AsyncSession = Depends(get_db)
):
    """Contact with company, linked properties, deals and recent activities."""
    try:
        contact = await _get_contact_or_404(db, contact_id)

        company = None
        if contact.company_id:
            company_obj = await db.get(Company, contact.company_id)
            company = company_obj.to_dict() if company_obj else None

        properties_result = await db.execute(
            select(ContactProperty, MasterProperty)
            .join(MasterProperty, MasterProperty.id == ContactProperty.master_property_id)
            .where(ContactProperty.contact_id == contact_id, MasterProperty.is_deleted.is_(False))
        )
        properties = []
        for link, prop in properties_result.all():
            properties.append({
                "link_id": str(link.id),
                "relationship": link.relationship,
                "notes": link.notes,
                "property": prop.to_dict(exclude=("raw_import_data",)),
            })

        deals_result = await db.execute(
            select(DealContact, CrmDeal)
            .join(CrmDeal, CrmDeal.id == DealContact.deal_id)
            .where(DealContact.contact_id == contact_id, CrmDeal.is_deleted.is_(False))
        )
        deals = []
        for link, deal in deals_result.all():
            data = deal.to_dict()
            data["role"] = link.role
            deals.append(data)

        activities_result = await db.execute(
            select(Activity)
            .where(Activity.contact_id == contact_id)
            .order_by(Activity.activity_date.desc())
            .limit(20)
        )

        return {
            "success": True,
            "contact": contact.to_dict(),
            "company": company,
            "properties": properties,
            "deals": deals,
            "activities": [a.to_dict() for a in activities_result.scalars().all()],
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch contact")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_contact(
    payload: ContactCreate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        data = _normalize_contact_fields(payload.model_dump(exclude_none=True))
        contact = Contact(**data, created_by=current_user.id)
        db.add(contact)
        await db.commit()
        await db.refresh(contact)

        return {"success": True, "contact": contact.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating contact: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create contact")


@router.patch("/{contact_id}")
async def update_contact(
    contact_id: UUID,
    payload: ContactUpdate,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        contact = await _get_contact_or_404(db, contact_id)
        data = _normalize_contact_fields(payload.model_dump(exclude_unset=True))

        for key, value in data.items():
            setattr(contact, key, value)

        await db.commit()
        await db.refresh(contact)
        return {"success": True, "contact": contact.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update contact")


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: UUID,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        contact = await _get_contact_or_404(db, contact_id)
        contact.is_deleted = True
        await db.commit()
        return {"success": True, "message": "Contact deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete contact")


# ============================================================================
# PROPERTY LINKS
# ============================================================================

@router.post("/{contact_id}/properties", status_code=status.HTTP_201_CREATED)
async def link_contact_property(
    contact_id: UUID,
    payload: ContactPropertyLink,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_contact_or_404(db, contact_id)

        prop = await db.get(MasterProperty, payload.master_property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

        link = ContactProperty(contact_id=contact_id, **payload.model_dump(exclude_none=True))
        db.add(link)
        await db.commit()
        await db.refresh(link)

        return {"success": True, "link": link.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error linking property to contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to link property")


@router.delete("/{contact_id}/properties/{link_id}")
async def unlink_contact_property(
    contact_id: UUID,
    link_id: UUID,
    current_user: User = Depends(require_edit_crm),
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await db.execute(
            delete(ContactProperty).where(
                ContactProperty.id == link_id,
                ContactProperty.contact_id == contact_id,
            )
        )
        await db.commit()

        if result.rowcount == 0:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Link not found")

        return {"success": True, "message": "Property unlinked"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error unlinking property from contact {contact_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to unlink property")
