"""
Listing Sites API (authenticated)

Public microsites for master properties. A site belongs to the user who
created it; other users get 403.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from uuid import UUID
import logging

from cre_api.database import get_db
from cre_api.models import ListingSite, ListingLead, MasterProperty, User
from cre_api.rbac import require_manage_listings
from cre_api.schemas.listing import ListingSiteCreate, ListingSiteUpdate
from cre_api.services.listing_slugs import generate_unique_slug

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/listing-sites", tags=["Listing Sites"])


async def _get_own_site(db: AsyncSession, site_id: UUID, user: User) -> ListingSite:
    site = await db.get(ListingSite, site_id)
    if not site:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Listing site not found")
    if site.created_by != user.id:
        logger.warning(f"Listing site {site_id} access denied for {user.email}")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")
    return site


@router.get("")
async def list_listing_sites(
    current_user: User = Depends(require_manage_listings),
    db: AsyncSession = Depends(get_db)
):
    try:
        result = await db.execute(
            select(ListingSite, MasterProperty)
            .join(MasterProperty, MasterProperty.id == ListingSite.master_property_id)
            .where(ListingSite.created_by == current_user.id)
            .order_by(ListingSite.created_at.desc())
        )
        sites = []
        for site, prop in result.all():
            data = site.to_dict()
            data["property"] = {
                "id": str(prop.id),
                "address": prop.address,
                "city": prop.city,
                "state": prop.state,
                "property_type": prop.property_type,
            }
            sites.append(data)

        return {"success": True, "sites": sites, "total": len(sites)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error listing listing sites: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch listing sites")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_listing_site(
    payload: ListingSiteCreate,
    current_user: User = Depends(require_manage_listings),
    db: AsyncSession = Depends(get_db)
):
    try:
        prop = await db.get(MasterProperty, payload.master_property_id)
        if not prop or prop.is_deleted:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")

        slug = await generate_unique_slug(db, prop.address, prop.city, prop.state)

        site = ListingSite(
            **payload.model_dump(exclude_none=True),
            slug=slug,
            created_by=current_user.id,
        )
        db.add(site)
        await db.commit()
        await db.refresh(site)

        logger.info(f"Listing site created: {site.slug} for property {prop.id}")
        return {"success": True, "site": site.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error creating listing site: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create listing site")


@router.get("/{site_id}")
async def get_listing_site(
    site_id: UUID,
    current_user: User = Depends(require_manage_listings),
    db: AsyncSession = Depends(get_db)
):
    try:
        site = await _get_own_site(db, site_id, current_user)
        prop = await db.get(MasterProperty, site.master_property_id)
        return {
            "success": True,
            "site": site.to_dict(),
            "property": prop.to_dict(exclude=("raw_import_data",)) if prop else None,
        }

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching listing site {site_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch listing site")


@router.patch("/{site_id}")
async def update_listing_site(
    site_id: UUID,
    payload: ListingSiteUpdate,
    current_user: User = Depends(require_manage_listings),
    db: AsyncSession = Depends(get_db)
):
    """Update site settings; the slug changes only with regenerate_slug."""
    try:
        site = await _get_own_site(db, site_id, current_user)

        data = payload.model_dump(exclude_unset=True)
        regenerate_slug = data.pop("regenerate_slug", False)
        for key, value in data.items():
            setattr(site, key, value)

        if regenerate_slug:
            prop = await db.get(MasterProperty, site.master_property_id)
            site.slug = await generate_unique_slug(
                db, prop.address, prop.city, prop.state, exclude_id=site.id
            )

        await db.commit()
        await db.refresh(site)
        return {"success": True, "site": site.to_dict()}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error updating listing site {site_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update listing site")


@router.delete("/{site_id}")
async def delete_listing_site(
    site_id: UUID,
    current_user: User = Depends(require_manage_listings),
    db: AsyncSession = Depends(get_db)
):
    try:
        site = await _get_own_site(db, site_id, current_user)
        await db.execute(delete(ListingLead).where(ListingLead.listing_site_id == site_id))
        await db.delete(site)
        await db.commit()

        logger.info(f"Listing site deleted: {site_id}")
        return {"success": True, "message": "Listing site deleted"}

    except HTTPException:
        raise
    except Exception as e:
        await db.rollback()
        logger.error(f"Error deleting listing site {site_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete listing site")


@router.get("/{site_id}/leads")
async def list_listing_leads(
    site_id: UUID,
    current_user: User = Depends(require_manage_listings),
    db: AsyncSession = Depends(get_db)
):
    try:
        await _get_own_site(db, site_id, current_user)
        result = await db.execute(
            select(ListingLead)
            .where(ListingLead.listing_site_id == site_id)
            .order_by(ListingLead.created_at.desc())
        )
        leads = [lead.to_dict() for lead in result.scalars().all()]
        return {"success": True, "leads": leads, "total": len(leads)}

    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error fetching leads for site {site_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to fetch leads")
