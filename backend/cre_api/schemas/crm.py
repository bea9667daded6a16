"""CRM schemas: companies, contacts, deals and activities."""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field, field_validator

from cre_api.schemas import (
    RequestModel,
    ActivityType, CompanyType, ContactType, DealContactRole, DealStage,
    DealType, Priority, PropertyRelationship,
)


# ============================================================================
# COMPANIES
# ============================================================================

class CompanyBase(RequestModel):
    company_type: Optional[CompanyType] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class CompanyCreate(CompanyBase):
    name: str = Field(..., min_length=1, max_length=300)


class CompanyUpdate(CompanyBase):
    name: Optional[str] = Field(None, min_length=1, max_length=300)


# ============================================================================
# CONTACTS
# ============================================================================

class ContactBase(RequestModel):
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile_phone: Optional[str] = None
    company_id: Optional[UUID] = None
    title: Optional[str] = None
    contact_type: Optional[ContactType] = None
    license_number: Optional[str] = None
    source: Optional[str] = None
    next_follow_up_at: Optional[datetime] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class ContactCreate(ContactBase):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class ContactUpdate(ContactBase):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)


class ContactPropertyLink(RequestModel):
    master_property_id: UUID
    relationship: PropertyRelationship = PropertyRelationship.OTHER
    notes: Optional[str] = None


# ============================================================================
# DEALS
# ============================================================================

class DealBase(RequestModel):
    description: Optional[str] = None
    master_property_id: Optional[UUID] = None
    deal_value: Optional[float] = Field(None, ge=0)
    asking_price: Optional[float] = Field(None, ge=0)
    offer_price: Optional[float] = Field(None, ge=0)
    final_price: Optional[float] = Field(None, ge=0)
    commission_total: Optional[float] = Field(None, ge=0)
    commission_percent: Optional[float] = Field(None, ge=0, le=100)
    commission_split_percent: Optional[float] = Field(None, ge=0, le=100)
    commission_notes: Optional[str] = None
    expected_close_date: Optional[date] = None
    actual_close_date: Optional[date] = None
    listing_date: Optional[date] = None
    expiration_date: Optional[date] = None
    probability_percent: Optional[int] = Field(None, ge=0, le=100)
    priority: Optional[Priority] = None
    assigned_to: Optional[UUID] = None


class DealCreate(DealBase):
    deal_name: str = Field(..., min_length=1, max_length=300)
    deal_type: DealType
    stage: DealStage = DealStage.PROSPECTING


class DealUpdate(DealBase):
    deal_name: Optional[str] = Field(None, min_length=1, max_length=300)
    deal_type: Optional[DealType] = None
    stage: Optional[DealStage] = None
    stage_notes: Optional[str] = None


class StageChangeRequest(RequestModel):
    stage: DealStage
    notes: Optional[str] = None


class DealContactAdd(RequestModel):
    contact_id: UUID
    role: DealContactRole = DealContactRole.OTHER


# ============================================================================
# ACTIVITIES
# ============================================================================

class ActivityBase(RequestModel):
    description: Optional[str] = None
    contact_id: Optional[UUID] = None
    deal_id: Optional[UUID] = None
    company_id: Optional[UUID] = None
    master_property_id: Optional[UUID] = None
    due_date: Optional[datetime] = None
    activity_date: Optional[datetime] = None


class ActivityCreate(ActivityBase):
    activity_type: ActivityType
    subject: str = Field(..., min_length=1, max_length=300)
    is_completed: bool = False


class ActivityUpdate(ActivityBase):
    activity_type: Optional[ActivityType] = None
    subject: Optional[str] = Field(None, min_length=1, max_length=300)
    is_completed: Optional[bool] = None
