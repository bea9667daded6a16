"""Pydantic schemas for request/response validation."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class PropertyType(str, Enum):
    INDUSTRIAL = "industrial"
    RETAIL = "retail"
    OFFICE = "office"
    MULTIFAMILY = "multifamily"
    RESIDENTIAL = "residential"
    LAND = "land"
    SPECIAL_PURPOSE = "special_purpose"
    MIXED_USE = "mixed_use"


class ImportSource(str, Enum):
    COSTAR = "costar"
    CREXI = "crexi"
    LOOPNET = "loopnet"
    MANUAL = "manual"
    OTHER = "other"


class TransactionType(str, Enum):
    SALE = "sale"
    LEASE = "lease"
    LISTING = "listing"
    REFINANCE = "refinance"


class ProspectItemStatus(str, Enum):
    PENDING = "pending"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    NOT_INTERESTED = "not_interested"


class DealStage(str, Enum):
    """Pipeline stages, in pipeline order."""
    PROSPECTING = "prospecting"
    QUALIFICATION = "qualification"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    UNDER_CONTRACT = "under_contract"
    DUE_DILIGENCE = "due_diligence"
    CLOSING = "closing"
    CLOSED_WON = "closed_won"
    CLOSED_LOST = "closed_lost"


class DealType(str, Enum):
    SALE = "sale"
    LEASE = "lease"
    LISTING = "listing"
    ACQUISITION = "acquisition"
    DISPOSITION = "disposition"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class ContactType(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"
    BROKER = "broker"
    INVESTOR = "investor"
    LENDER = "lender"
    BUYER = "buyer"
    SELLER = "seller"
    VENDOR = "vendor"
    OTHER = "other"


class CompanyType(str, Enum):
    BROKERAGE = "brokerage"
    OWNER = "owner"
    TENANT = "tenant"
    INVESTOR = "investor"
    LENDER = "lender"
    DEVELOPER = "developer"
    PROPERTY_MANAGER = "property_manager"
    VENDOR = "vendor"
    OTHER = "other"


class PropertyRelationship(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"
    MANAGER = "manager"
    BROKER = "broker"
    BUYER = "buyer"
    SELLER = "seller"
    LENDER = "lender"
    OTHER = "other"


class DealContactRole(str, Enum):
    BUYER = "buyer"
    SELLER = "seller"
    LANDLORD = "landlord"
    TENANT = "tenant"
    BUYER_BROKER = "buyer_broker"
    SELLER_BROKER = "seller_broker"
    LENDER = "lender"
    ATTORNEY = "attorney"
    OTHER = "other"


class ActivityType(str, Enum):
    CALL = "call"
    EMAIL = "email"
    MEETING = "meeting"
    NOTE = "note"
    TASK = "task"
    SITE_VISIT = "site_visit"
    DOCUMENT_SENT = "document_sent"
    OFFER_MADE = "offer_made"
    OTHER = "other"


class TemplateStyle(str, Enum):
    MODERN = "modern"
    CLASSIC = "classic"
    MINIMAL = "minimal"


class CapitalProjectStatus(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    EXPECTED = "expected"
    RECEIVED = "received"
    LATE = "late"
    PARTIAL = "partial"
    WAIVED = "waived"


class RequestModel(BaseModel):
    """Base for request bodies; enum fields dump as plain strings."""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)
