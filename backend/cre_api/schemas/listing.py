"""Listing site and public lead capture schemas."""

from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from cre_api.schemas import RequestModel, TemplateStyle


class ListingSiteBase(RequestModel):
    is_published: Optional[bool] = None
    custom_headline: Optional[str] = None
    custom_description: Optional[str] = None
    template_style: Optional[TemplateStyle] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    lead_capture_email: Optional[EmailStr] = None
    virtual_tour_url: Optional[str] = None


class ListingSiteCreate(ListingSiteBase):
    master_property_id: UUID


class ListingSiteUpdate(ListingSiteBase):
    regenerate_slug: bool = False


class LeadSubmission(RequestModel):
    """Inquiry posted from a public listing page."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    company: Optional[str] = Field(None, max_length=255)
    message: Optional[str] = Field(None, max_length=5000)

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name is required")
        return v.strip()

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()
