"""
Prospect filter query builder.

All prospecting queries run against a "property with latest transaction"
view: every master_properties column plus the type, date, price, price/SF
and cap rate of the property's most recent transaction.
"""

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from cre_api.models import MasterProperty, Transaction
from cre_api.schemas.prospect import ProspectFilters

logger = logging.getLogger(__name__)


def _latest_transaction_value(column):
    return (
        select(column)
        .where(Transaction.property_id == MasterProperty.id)
        .order_by(
            func.coalesce(Transaction.transaction_date, Transaction.created_at).desc(),
            Transaction.created_at.desc(),
        )
        .limit(1)
        .correlate(MasterProperty)
        .scalar_subquery()
    )


property_view = (
    select(
        *MasterProperty.__table__.columns,
        _latest_transaction_value(Transaction.transaction_type).label("latest_transaction_type"),
        _latest_transaction_value(Transaction.transaction_date).label("latest_transaction_date"),
        _latest_transaction_value(Transaction.sale_price).label("latest_sale_price"),
        _latest_transaction_value(Transaction.price_per_sf).label("latest_price_per_sf"),
        _latest_transaction_value(Transaction.cap_rate).label("latest_cap_rate"),
    )
    .where(MasterProperty.is_deleted.is_(False))
    .subquery("property_with_latest_transaction")
)

# Multi-select filter -> view column
MULTI_SELECT_FIELDS = ["property_type", "city", "state", "zip", "submarket", "property_subtype"]

# Range filter prefix -> view column
RANGE_FIELDS = {
    "building_size": "building_size",
    "lot_size_acres": "lot_size_acres",
    "year_built": "year_built",
    "sale_price": "latest_sale_price",
    "price_per_sf": "latest_price_per_sf",
    "cap_rate": "latest_cap_rate",
}

SEARCH_FIELDS = ["address", "property_name", "city"]


FiltersInput = Union[ProspectFilters, Dict[str, Any], None]


def _as_filters(filters: FiltersInput) -> ProspectFilters:
    if filters is None:
        return ProspectFilters()
    if isinstance(filters, ProspectFilters):
        return filters
    return ProspectFilters.model_validate(filters)


def build_filter_query(filters: FiltersInput) -> Select:
    """Compose every supplied predicate (ANDed) into one select over the view."""
    f = _as_filters(filters)
    query = select(property_view)
    c = property_view.c

    for name in MULTI_SELECT_FIELDS:
        values = getattr(f, name)
        if values:
            query = query.where(c[name].in_(values))

    for prefix, column in RANGE_FIELDS.items():
        low = getattr(f, f"{prefix}_min")
        high = getattr(f, f"{prefix}_max")
        if low is not None:
            query = query.where(c[column] >= low)
        if high is not None:
            query = query.where(c[column] <= high)

    if f.owner_name:
        query = query.where(c.owner_name.ilike(f"%{f.owner_name}%"))

    if f.search:
        term = f"%{f.search}%"
        query = query.where(or_(*[c[name].ilike(term) for name in SEARCH_FIELDS]))

    return query


def serialize_row(row) -> Dict[str, Any]:
    """Convert a view row into a JSON-ready dict."""
    data = {}
    for key, value in row._mapping.items():
        if isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, Decimal):
            value = float(value)
        data[key] = value
    return data


async def count_matches(db: AsyncSession, filters: FiltersInput) -> int:
    query = build_filter_query(filters)
    result = await db.execute(select(func.count()).select_from(query.subquery()))
    return result.scalar() or 0


async def fetch_page(
    db: AsyncSession,
    filters: FiltersInput,
    limit: int,
    offset: int = 0,
) -> List[Dict[str, Any]]:
    """Matching rows, newest first."""
    query = (
        build_filter_query(filters)
        .order_by(property_view.c.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    return [serialize_row(row) for row in result.all()]


async def fetch_matching_ids(db: AsyncSession, filters: FiltersInput) -> List[UUID]:
    """Ids of every matching property, newest first."""
    query = build_filter_query(filters).with_only_columns(property_view.c.id).order_by(
        property_view.c.created_at.desc()
    )
    result = await db.execute(query)
    return [row[0] for row in result.all()]


async def fetch_by_ids(db: AsyncSession, property_ids: List[UUID]) -> Dict[Any, Dict[str, Any]]:
    """View rows keyed by property id (deleted properties are absent)."""
    if not property_ids:
        return {}
    result = await db.execute(select(property_view).where(property_view.c.id.in_(property_ids)))
    return {row.id: serialize_row(row) for row in result.all()}


async def fetch_one(db: AsyncSession, property_id: UUID) -> Optional[Dict[str, Any]]:
    rows = await fetch_by_ids(db, [property_id])
    return rows.get(property_id)
