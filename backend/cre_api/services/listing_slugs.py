"""Unique, URL-safe slugs for listing sites."""

import logging
import string
import time
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cre_api.models import ListingSite
from cre_api.services.normalization import normalization_service as ns

logger = logging.getLogger(__name__)

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


async def slug_exists(db: AsyncSession, slug: str, exclude_id: Optional[UUID] = None) -> bool:
    query = select(ListingSite.id).where(ListingSite.slug == slug)
    if exclude_id is not None:
        query = query.where(ListingSite.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.scalar_one_or_none() is not None


async def generate_unique_slug(
    db: AsyncSession,
    address: Optional[str],
    city: Optional[str],
    state: Optional[str],
    exclude_id: Optional[UUID] = None,
) -> str:
    """
    Slug from address/city/state. A taken slug gets a base36 millisecond
    timestamp suffix; the suffix is bumped until the slug is free.
    """
    base = ns.generate_slug(address, city, state) or "listing"
    if not await slug_exists(db, base, exclude_id):
        return base

    stamp = int(time.time() * 1000)
    slug = f"{base}-{to_base36(stamp)}"
    while await slug_exists(db, slug, exclude_id):
        stamp += 1
        slug = f"{base}-{to_base36(stamp)}"
    logger.info(f"Slug {base!r} taken, using {slug!r}")
    return slug
