"""
Public Listings API (no authentication)

Serves published listing sites by slug and captures inquiries. Each
inquiry is also pushed into the CRM as a buyer contact with a note
activity; a CRM failure never fails the inquiry itself.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from uuid import UUID
import logging

from cre_api.config import settings
from cre_api.database import get_db
from cre_api.models import (
    ListingSite, ListingLead, MasterProperty, Transaction, User, Contact, Activity
)
from cre_api.schemas.listing import LeadSubmission
from cre_api.services.normalization import normalization_service as ns

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/public/listings", tags=["Public Listings"])

BROKER_PROFILE_FIELDS = ("full_name", "company_name", "company_phone", "company_email", "company_logo_url")


async def _get_published_site(db: AsyncSession, slug: str) -> ListingSite:
    result = await db.execute(
        select(ListingSite).where(
            ListingSite.slug == slug,
            ListingSite.is_published.is_(True),
        )
    )
    site = result.scalar_one_or_none()
    if not site:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")
    return site


@router.get("/{slug}")
async def get_public_listing(
    slug: str,
    db: AsyncSession = Depends(get_db)
):
    """Published site with property, latest transaction and broker profile."""
    try:
        site = await _get_published_site(db, slug)

        prop = await db.get(MasterProperty, site.master_property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing not found")

        txn_result = await db.execute(
            select(Transaction)
            .where(Transaction.property_id == prop.id)
            .order_by(Transaction.transaction_date.desc(), Transaction.created_at.desc())
            .limit(1)
        )
        latest = txn_result.scalar_one_or_none()

        broker = await db.get(User, site.created_by)
        broker_profile = (
            {field: getattr(broker, field) for field in BROKER_PROFILE_FIELDS} if broker else None
        )

        site.view_count = (site.view_count or 0) + 1
        await db.commit()

        return {
            "success": True,
            "site": site.to_dict(exclude=("created_by", "lead_capture_email")),
            "property": prop.to_dict(exclude=("created_by", "raw_import_data", "notes")),
            "latest_transaction": (
                latest.to_dict(exclude=("created_by", "raw_import_data")) if latest else None
            ),
            "broker": broker_profile,
        }

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error serving public listing {slug}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load listing")


async def _push_lead_to_crm(
    db: AsyncSession,
    lead_id: UUID,
    site_id: UUID,
    owner_id: UUID,
    property_id: UUID,
    submission: LeadSubmission,
    phone,
):
    """Create a buyer contact and a note activity, then link the lead."""
    names = ns.split_full_name(submission.name)
    contact = Contact(
        first_name=names["first_name"] or submission.name,
        last_name=names["last_name"] or "",
        email=submission.email,
        phone=phone,
        contact_type="buyer",
        source="listing_site",
        tags=["listing_lead"],
        notes=submission.message,
        created_by=owner_id,
    )
    db.add(contact)
    await db.flush()

    db.add(Activity(
        activity_type="note",
        subject=f"Listing inquiry from {submission.name}",
        description=submission.message,
        contact_id=contact.id,
        master_property_id=property_id,
        created_by=owner_id,
    ))

    lead = await db.get(ListingLead, lead_id)
    lead.contact_id = contact.id
    lead.is_converted = True
    await db.commit()

    logger.info(f"Listing lead {lead_id} on site {site_id} added to CRM as contact {contact.id}")


@router.post("/{slug}/leads", status_code=status.HTTP_201_CREATED)
async def submit_listing_lead(
    slug: str,
    payload: LeadSubmission,
    db: AsyncSession = Depends(get_db)
):
    try:
        site = await _get_published_site(db, slug)
        site_id = site.id
        owner_id = site.created_by
        property_id = site.master_property_id

        phone = ns.normalize_phone(payload.phone, settings.DEFAULT_PHONE_REGION) if payload.phone else None

        lead = ListingLead(
            listing_site_id=site_id,
            name=payload.name,
            email=payload.email,
            phone=phone,
            company=payload.company,
            message=payload.message,
        )
        db.add(lead)
        site.lead_count = (site.lead_count or 0) + 1
        await db.commit()
        lead_id = lead.id

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error capturing lead for {slug}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to submit inquiry")

    try:
        await _push_lead_to_crm(db, lead_id, site_id, owner_id, property_id, payload, phone)
    except Exception as e:
        await db.rollback()
        logger.warning(f"Lead {lead_id} saved but CRM sync failed: {e}", exc_info=True)

    return {"success": True, "lead_id": str(lead_id), "message": "Thank you for your inquiry"}
