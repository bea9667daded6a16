# backend/cre_api/models.py
"""
SQLAlchemy ORM models for the CRE back office.

Conventions:
1. Foreign keys without back_populates; related rows are loaded with explicit queries
2. Generic Uuid / JSON column types so the schema builds on Postgres and SQLite
3. Soft delete via is_deleted where records must never disappear
4. to_dict() on every model for API responses
"""

from sqlalchemy import (
    Column, String, Boolean, Integer, Numeric, Text, DateTime, Date, Float, JSON, Uuid,
    ForeignKey, CheckConstraint, UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from cre_api.database import Base
from datetime import date, datetime, timezone
from decimal import Decimal
import uuid


JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SerializableMixin:
    """Column-based dict conversion for API responses."""

    def to_dict(self, exclude=()):
        data = {}
        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.name)
            if isinstance(value, uuid.UUID):
                value = str(value)
            elif isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif isinstance(value, Decimal):
                value = float(value)
            data[column.name] = value
        return data


# ============================================================================
# USER (PROFILE) MODEL
# ============================================================================

class User(SerializableMixin, Base):
    """Application user profile; identity is issued by the auth provider."""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255))
    role = Column(String(50), nullable=False, default="member")
    is_active = Column(Boolean, nullable=False, default=True)
    phone = Column(String(50))

    # Broker branding shown on public listing sites
    company_name = Column(String(255))
    company_phone = Column(String(50))
    company_email = Column(String(255))
    company_logo_url = Column(Text)

    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "role IN ('admin', 'broker', 'owner', 'investor', 'tenant', 'member')",
            name="chk_user_role"
        ),
    )

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"


# ============================================================================
# MASTER PROPERTY & TRANSACTION MODELS
# ============================================================================

class MasterProperty(SerializableMixin, Base):
    """
    Canonical record of a real-world property.

    address_normalized is the dedup key (scoped by city + state).
    Records are never hard-deleted.
    """
    __tablename__ = "master_properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # Core identification
    address = Column(Text, nullable=False)
    address_normalized = Column(String(80), nullable=False, index=True)
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    zip = Column(String(20))
    county = Column(String(100))
    property_name = Column(Text)
    property_type = Column(String(50), index=True)
    building_park = Column(Text)
    costar_id = Column(String(100))
    crexi_id = Column(String(100))
    apn = Column(String(100))
    unit_suite = Column(String(100))

    # Classification
    property_subtype = Column(String(100))
    building_class = Column(String(50))
    building_status = Column(String(100))
    zoning = Column(String(100))

    # Location
    latitude = Column(Float)
    longitude = Column(Float)
    submarket = Column(String(255))
    market = Column(String(255))
    cross_street = Column(Text)
    opportunity_zone = Column(Boolean)

    # Size
    building_size = Column(Integer)
    land_area_sf = Column(Integer)
    lot_size_acres = Column(Float)
    typical_floor_size = Column(Float)
    number_of_floors = Column(Integer)
    number_of_units = Column(Integer)
    number_of_buildings = Column(Integer)
    number_of_addresses = Column(Integer)

    # Building details
    year_built = Column(Integer)
    month_built = Column(Integer)
    year_renovated = Column(Integer)
    month_renovated = Column(Integer)
    construction_material = Column(String(100))

    # Industrial
    clear_height_ft = Column(Float)
    dock_doors = Column(Integer)
    grade_doors = Column(Integer)
    rail_served = Column(Boolean)
    column_spacing = Column(String(100))
    sprinkler_type = Column(String(100))
    number_of_cranes = Column(Integer)
    power = Column(String(255))
    office_percentage = Column(Float)

    # Office
    office_space = Column(String(100))
    number_of_elevators = Column(Integer)

    # Parking
    parking_spaces = Column(Integer)
    parking_ratio = Column(Float)

    # Leasing
    percent_leased = Column(Float)
    vacancy_percent = Column(Float)
    days_on_market = Column(Integer)

    # Rent
    rent_per_sf = Column(Float)
    avg_weighted_rent = Column(Float)

    # Owner
    owner_name = Column(Text)
    owner_contact = Column(Text)
    owner_phone = Column(String(50))
    owner_address = Column(Text)
    mailing_city = Column(String(100))
    mailing_state = Column(String(50))
    mailing_zip = Column(String(20))
    mailing_care_of = Column(Text)
    parent_company = Column(Text)
    fund_name = Column(Text)

    # Property manager / leasing company
    property_manager_name = Column(Text)
    property_manager_phone = Column(String(50))
    leasing_company_name = Column(Text)
    leasing_company_contact = Column(Text)
    leasing_company_phone = Column(String(50))

    # Developer / architect
    developer_name = Column(Text)
    architect_name = Column(Text)

    # Tax
    improvement_value = Column(Numeric(15, 2))
    land_value = Column(Numeric(15, 2))
    total_parcel_value = Column(Numeric(15, 2))
    parcel_value_type = Column(String(100))
    tax_year = Column(Integer)
    annual_tax_bill = Column(Numeric(15, 2))

    # Utilities
    water = Column(String(100))
    sewer = Column(String(100))
    gas = Column(String(100))

    # Amenities
    amenities = Column(Text)
    features = Column(Text)

    notes = Column(Text)

    # Verification
    verified_at = Column(DateTime(timezone=True))
    verification_reminder_at = Column(DateTime(timezone=True))

    # Meta
    source = Column(String(50), default="manual")
    raw_import_data = Column(JSONType)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_master_properties_dedup", "address_normalized", "state"),
    )

    def __repr__(self):
        return f"<MasterProperty(id={self.id}, address='{self.address}', city='{self.city}')>"


class Transaction(SerializableMixin, Base):
    """Sale, lease or listing event tied to a master property."""
    __tablename__ = "transactions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False, index=True)
    transaction_type = Column(String(50), nullable=False, default="sale")
    transaction_date = Column(Date)

    # Sale
    sale_price = Column(Numeric(15, 2))
    price_per_sf = Column(Numeric(12, 2))
    price_per_acre = Column(Numeric(15, 2))
    cap_rate = Column(Float)
    asking_cap_rate = Column(Float)
    noi = Column(Numeric(15, 2))
    buyer_name = Column(Text)
    seller_name = Column(Text)
    for_sale_status = Column(String(100))

    # Lease
    lease_rate = Column(Numeric(12, 2))
    lease_type = Column(String(50))
    lease_term = Column(String(100))
    lease_expiration_date = Column(Date)
    tenant_name = Column(Text)

    # Financing
    lender = Column(Text)
    loan_amount = Column(Numeric(15, 2))
    loan_type = Column(String(100))
    interest_rate = Column(Float)
    maturity_date = Column(Date)

    notes = Column(Text)
    source = Column(String(50), default="manual")
    raw_import_data = Column(JSONType)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "transaction_type IN ('sale', 'lease', 'listing', 'refinance')",
            name="chk_transaction_type"
        ),
    )

    def __repr__(self):
        return f"<Transaction(id={self.id}, property_id={self.property_id}, type='{self.transaction_type}')>"


class ImportBatch(SerializableMixin, Base):
    """Audit record of one bulk-import invocation."""
    __tablename__ = "import_batches"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    filename = Column(String(255))
    source = Column(String(50), default="other")
    total_rows = Column(Integer, nullable=False, default=0)
    imported_rows = Column(Integer, nullable=False, default=0)
    skipped_rows = Column(Integer, nullable=False, default=0)
    error_rows = Column(Integer, nullable=False, default=0)
    column_mapping = Column(JSONType, default=dict)
    errors = Column(JSONType, default=list)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    completed_at = Column(DateTime(timezone=True))

    def __repr__(self):
        return f"<ImportBatch(id={self.id}, total_rows={self.total_rows})>"


# ============================================================================
# CRM MODELS
# ============================================================================

class Company(SerializableMixin, Base):
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(300), nullable=False)
    company_type = Column(String(50), nullable=False, default="other")
    industry = Column(String(200))
    website = Column(String(500))
    phone = Column(String(50))
    email = Column(String(300))
    address = Column(Text)
    city = Column(String(100))
    state = Column(String(50))
    zip = Column(String(20))
    tags = Column(JSONType, default=list)
    notes = Column(Text)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"


class Contact(SerializableMixin, Base):
    __tablename__ = "contacts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(300), index=True)
    phone = Column(String(50))
    mobile_phone = Column(String(50))
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="SET NULL"))
    title = Column(String(200))
    contact_type = Column(String(50), nullable=False, default="other")
    license_number = Column(String(50))
    source = Column(String(200))
    last_contacted_at = Column(DateTime(timezone=True))
    next_follow_up_at = Column(DateTime(timezone=True))
    tags = Column(JSONType, default=list)
    notes = Column(Text)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self):
        return f"<Contact(id={self.id}, name='{self.full_name}')>"


class ContactProperty(SerializableMixin, Base):
    """Contact <-> master property link."""
    __tablename__ = "contact_properties"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    contact_id = Column(Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False, index=True)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False)
    relationship = Column(String(50), nullable=False, default="other")
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "relationship IN ('owner', 'tenant', 'manager', 'broker', 'buyer', 'seller', 'lender', 'other')",
            name="chk_contact_property_relationship"
        ),
    )


class CrmDeal(SerializableMixin, Base):
    """Pipeline opportunity with an ordered stage."""
    __tablename__ = "crm_deals"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_name = Column(String(300), nullable=False)
    deal_type = Column(String(50), nullable=False)
    stage = Column(String(50), nullable=False, default="prospecting", index=True)
    description = Column(Text)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="SET NULL"))

    deal_value = Column(Numeric(15, 2))
    asking_price = Column(Numeric(15, 2))
    offer_price = Column(Numeric(15, 2))
    final_price = Column(Numeric(15, 2))
    commission_total = Column(Numeric(15, 2))
    commission_percent = Column(Numeric(6, 3))
    commission_split_percent = Column(Numeric(5, 2))
    commission_notes = Column(Text)

    expected_close_date = Column(Date)
    actual_close_date = Column(Date)
    listing_date = Column(Date)
    expiration_date = Column(Date)

    probability_percent = Column(Integer, default=50)
    priority = Column(String(20), default="medium")
    assigned_to = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"))
    stage_entered_at = Column(DateTime(timezone=True), default=utcnow)

    is_deleted = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("probability_percent >= 0 AND probability_percent <= 100", name="chk_deal_probability"),
        CheckConstraint("priority IN ('low', 'medium', 'high', 'urgent')", name="chk_deal_priority"),
    )

    def __repr__(self):
        return f"<CrmDeal(id={self.id}, name='{self.deal_name}', stage='{self.stage}')>"


class DealContact(SerializableMixin, Base):
    """Role-tagged contact on a deal."""
    __tablename__ = "deal_contacts"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id = Column(Uuid, ForeignKey("crm_deals.id", ondelete="CASCADE"), nullable=False, index=True)
    contact_id = Column(Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False)
    role = Column(String(50), nullable=False, default="other")
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("deal_id", "contact_id", "role", name="uq_deal_contact_role"),
    )


class DealStageHistory(SerializableMixin, Base):
    """Append-only audit trail of deal stage transitions."""
    __tablename__ = "deal_stage_history"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    deal_id = Column(Uuid, ForeignKey("crm_deals.id", ondelete="CASCADE"), nullable=False, index=True)
    from_stage = Column(String(50))
    to_stage = Column(String(50), nullable=False)
    changed_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    changed_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    notes = Column(Text)

    def __repr__(self):
        return f"<DealStageHistory(deal_id={self.deal_id}, {self.from_stage} -> {self.to_stage})>"


class Activity(SerializableMixin, Base):
    __tablename__ = "activities"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    activity_type = Column(String(50), nullable=False)
    subject = Column(String(300), nullable=False)
    description = Column(Text)
    contact_id = Column(Uuid, ForeignKey("contacts.id", ondelete="SET NULL"), index=True)
    deal_id = Column(Uuid, ForeignKey("crm_deals.id", ondelete="SET NULL"), index=True)
    company_id = Column(Uuid, ForeignKey("companies.id", ondelete="SET NULL"))
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="SET NULL"))
    due_date = Column(DateTime(timezone=True))
    is_completed = Column(Boolean, nullable=False, default=False)
    activity_date = Column(DateTime(timezone=True), default=utcnow)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


# ============================================================================
# PROSPECTING MODELS
# ============================================================================

class ProspectList(SerializableMixin, Base):
    """Saved filter definition plus a snapshot of matching properties."""
    __tablename__ = "prospect_lists"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    filters = Column(JSONType, nullable=False, default=dict)
    result_count = Column(Integer, nullable=False, default=0)
    last_refreshed_at = Column(DateTime(timezone=True))
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<ProspectList(id={self.id}, name='{self.name}', result_count={self.result_count})>"


class ProspectListItem(SerializableMixin, Base):
    __tablename__ = "prospect_list_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    list_id = Column(Uuid, ForeignKey("prospect_lists.id", ondelete="CASCADE"), nullable=False, index=True)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id"), nullable=False)
    status = Column(String(50), nullable=False, default="pending")
    notes = Column(Text)
    added_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'contacted', 'qualified', 'not_interested')",
            name="chk_prospect_item_status"
        ),
    )


# ============================================================================
# LISTING SITE MODELS
# ============================================================================

class ListingSite(SerializableMixin, Base):
    """Public microsite for a master property."""
    __tablename__ = "listing_sites"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False)
    slug = Column(String(120), nullable=False, unique=True)
    is_published = Column(Boolean, nullable=False, default=False)
    custom_headline = Column(Text)
    custom_description = Column(Text)
    template_style = Column(String(20), default="modern")
    seo_title = Column(Text)
    seo_description = Column(Text)
    lead_capture_email = Column(String(300))
    virtual_tour_url = Column(Text)
    view_count = Column(Integer, nullable=False, default=0)
    lead_count = Column(Integer, nullable=False, default=0)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("template_style IN ('modern', 'classic', 'minimal')", name="chk_listing_template_style"),
    )

    def __repr__(self):
        return f"<ListingSite(id={self.id}, slug='{self.slug}')>"


class ListingLead(SerializableMixin, Base):
    """Inbound inquiry captured on a listing site."""
    __tablename__ = "listing_leads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    listing_site_id = Column(Uuid, ForeignKey("listing_sites.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(300), nullable=False)
    phone = Column(String(50))
    company = Column(String(255))
    message = Column(Text)
    source = Column(String(50), default="listing_site")
    contact_id = Column(Uuid, ForeignKey("contacts.id", ondelete="SET NULL"))
    is_converted = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())


# ============================================================================
# ASSET MANAGEMENT MODELS
# ============================================================================

class Vendor(SerializableMixin, Base):
    __tablename__ = "vendors"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    company_name = Column(String(255))
    trade = Column(String(100))
    email = Column(String(300))
    phone = Column(String(50))
    address = Column(Text)
    city = Column(String(100))
    state = Column(String(50))
    zip = Column(String(20))
    license_number = Column(String(100))
    insurance_expiry = Column(Date)
    w9_on_file = Column(Boolean, default=False)
    rating = Column(Integer)
    is_preferred = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    is_deleted = Column(Boolean, nullable=False, default=False)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("rating IS NULL OR (rating >= 1 AND rating <= 5)", name="chk_vendor_rating"),
    )


class PropertyBudget(SerializableMixin, Base):
    __tablename__ = "property_budgets"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False, index=True)
    fiscal_year = Column(Integer, nullable=False)
    total_budget = Column(Numeric(14, 2), default=0)
    is_approved = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class BudgetLineItem(SerializableMixin, Base):
    __tablename__ = "budget_line_items"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    budget_id = Column(Uuid, ForeignKey("property_budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50))
    budgeted_amount = Column(Numeric(12, 2), default=0)
    actual_amount = Column(Numeric(12, 2), default=0)
    notes = Column(Text)


class OperatingExpense(SerializableMixin, Base):
    __tablename__ = "operating_expenses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False, index=True)
    category = Column(String(50))
    description = Column(Text)
    amount = Column(Numeric(12, 2))
    expense_date = Column(Date)
    vendor_id = Column(Uuid, ForeignKey("vendors.id"))
    is_cam_recoverable = Column(Boolean, nullable=False, default=False)
    notes = Column(Text)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class CapitalProject(SerializableMixin, Base):
    __tablename__ = "capital_projects"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    description = Column(Text)
    status = Column(String(50), nullable=False, default="proposed")
    estimated_cost = Column(Numeric(14, 2))
    actual_cost = Column(Numeric(14, 2))
    start_date = Column(Date)
    target_completion = Column(Date)
    actual_completion = Column(Date)
    vendor_id = Column(Uuid, ForeignKey("vendors.id"))
    notes = Column(Text)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "status IN ('proposed', 'approved', 'in_progress', 'completed', 'cancelled')",
            name="chk_capital_project_status"
        ),
    )


class LeaseTenant(SerializableMixin, Base):
    """Occupant of a managed property (rent roll entry)."""
    __tablename__ = "lease_tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    master_property_id = Column(Uuid, ForeignKey("master_properties.id", ondelete="CASCADE"), nullable=False, index=True)
    contact_id = Column(Uuid, ForeignKey("contacts.id"))
    unit_number = Column(String(50))
    tenant_name = Column(String(300), nullable=False)
    lease_type = Column(String(50))
    lease_start = Column(Date)
    lease_end = Column(Date)
    monthly_base_rent = Column(Numeric(12, 2))
    rent_per_sf = Column(Numeric(8, 2))
    leased_sf = Column(Numeric(10, 2))
    security_deposit = Column(Numeric(12, 2))
    is_active = Column(Boolean, nullable=False, default=True)
    notes = Column(Text)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class RentPayment(SerializableMixin, Base):
    __tablename__ = "rent_payments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("lease_tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    period_start = Column(Date)
    period_end = Column(Date)
    amount_due = Column(Numeric(12, 2))
    amount_paid = Column(Numeric(12, 2), default=0)
    payment_date = Column(Date)
    payment_status = Column(String(20), nullable=False, default="expected")
    payment_method = Column(String(50))
    reference_number = Column(String(100))
    late_fee = Column(Numeric(10, 2), default=0)
    notes = Column(Text)
    created_by = Column(Uuid, ForeignKey("users.id"))
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint(
            "payment_status IN ('expected', 'received', 'late', 'partial', 'waived')",
            name="chk_rent_payment_status"
        ),
    )
