"""Prospect list and filter schemas."""

from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from cre_api.schemas import ProspectItemStatus, RequestModel


class ProspectFilters(RequestModel):
    """
    Saved prospecting filter.

    Multi-select fields match with IN semantics, *_min/*_max are inclusive,
    and every supplied predicate is ANDed with the others.
    """
    property_type: Optional[List[str]] = None
    city: Optional[List[str]] = None
    state: Optional[List[str]] = None
    zip: Optional[List[str]] = None
    submarket: Optional[List[str]] = None
    property_subtype: Optional[List[str]] = None

    building_size_min: Optional[float] = None
    building_size_max: Optional[float] = None
    lot_size_acres_min: Optional[float] = None
    lot_size_acres_max: Optional[float] = None
    year_built_min: Optional[int] = None
    year_built_max: Optional[int] = None
    sale_price_min: Optional[float] = None
    sale_price_max: Optional[float] = None
    price_per_sf_min: Optional[float] = None
    price_per_sf_max: Optional[float] = None
    cap_rate_min: Optional[float] = None
    cap_rate_max: Optional[float] = None

    owner_name: Optional[str] = None
    search: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator(
        "property_type", "city", "state", "zip", "submarket", "property_subtype",
        mode="before"
    )
    @classmethod
    def as_list(cls, v):
        # A single value is accepted as a one-element selection
        if isinstance(v, str):
            return [v]
        return v


class PreviewRequest(RequestModel):
    filters: ProspectFilters = Field(default_factory=ProspectFilters)


class ProspectListCreate(RequestModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    filters: ProspectFilters = Field(default_factory=ProspectFilters)


class ProspectListUpdate(RequestModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    filters: Optional[ProspectFilters] = None


class ProspectItemUpdate(RequestModel):
    status: Optional[ProspectItemStatus] = None
    notes: Optional[str] = None


class BulkItemUpdate(RequestModel):
    item_ids: List[UUID] = Field(default_factory=list)
    status: Optional[ProspectItemStatus] = None
    notes: Optional[str] = None
