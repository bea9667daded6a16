"""Asset management schemas."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from pydantic import EmailStr, Field

from cre_api.schemas import CapitalProjectStatus, PaymentStatus, RequestModel


# ============================================================================
# VENDORS
# ============================================================================

class VendorBase(RequestModel):
    company_name: Optional[str] = None
    trade: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    license_number: Optional[str] = None
    insurance_expiry: Optional[date] = None
    w9_on_file: Optional[bool] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    is_preferred: Optional[bool] = None
    notes: Optional[str] = None


class VendorCreate(VendorBase):
    name: str = Field(..., min_length=1, max_length=255)


class VendorUpdate(VendorBase):
    name: Optional[str] = Field(None, min_length=1, max_length=255)


# ============================================================================
# BUDGETS
# ============================================================================

class BudgetLineItemIn(RequestModel):
    category: Optional[str] = None
    budgeted_amount: float = 0
    actual_amount: float = 0
    notes: Optional[str] = None


class BudgetCreate(RequestModel):
    master_property_id: UUID
    fiscal_year: int = Field(..., ge=1900, le=2200)
    total_budget: Optional[float] = None
    is_approved: bool = False
    notes: Optional[str] = None
    line_items: List[BudgetLineItemIn] = Field(default_factory=list)


class BudgetUpdate(RequestModel):
    fiscal_year: Optional[int] = Field(None, ge=1900, le=2200)
    total_budget: Optional[float] = None
    is_approved: Optional[bool] = None
    notes: Optional[str] = None
    line_items: Optional[List[BudgetLineItemIn]] = None


# ============================================================================
# OPERATING EXPENSES
# ============================================================================

class ExpenseBase(RequestModel):
    category: Optional[str] = None
    description: Optional[str] = None
    amount: Optional[float] = None
    expense_date: Optional[date] = None
    vendor_id: Optional[UUID] = None
    is_cam_recoverable: Optional[bool] = None
    notes: Optional[str] = None


class ExpenseCreate(ExpenseBase):
    master_property_id: UUID


class ExpenseUpdate(ExpenseBase):
    pass


class ExpenseBulkCreate(RequestModel):
    master_property_id: UUID
    expenses: List[ExpenseBase] = Field(..., min_length=1)


# ============================================================================
# CAPITAL PROJECTS
# ============================================================================

class CapitalProjectBase(RequestModel):
    description: Optional[str] = None
    estimated_cost: Optional[float] = None
    actual_cost: Optional[float] = None
    start_date: Optional[date] = None
    target_completion: Optional[date] = None
    actual_completion: Optional[date] = None
    vendor_id: Optional[UUID] = None
    notes: Optional[str] = None


class CapitalProjectCreate(CapitalProjectBase):
    master_property_id: UUID
    title: str = Field(..., min_length=1, max_length=300)
    status: CapitalProjectStatus = CapitalProjectStatus.PROPOSED


class CapitalProjectUpdate(CapitalProjectBase):
    title: Optional[str] = Field(None, min_length=1, max_length=300)
    status: Optional[CapitalProjectStatus] = None


# ============================================================================
# LEASE TENANTS & RENT
# ============================================================================

class LeaseTenantBase(RequestModel):
    contact_id: Optional[UUID] = None
    unit_number: Optional[str] = None
    lease_type: Optional[str] = None
    lease_start: Optional[date] = None
    lease_end: Optional[date] = None
    monthly_base_rent: Optional[float] = Field(None, ge=0)
    rent_per_sf: Optional[float] = None
    leased_sf: Optional[float] = None
    security_deposit: Optional[float] = None
    notes: Optional[str] = None


class LeaseTenantCreate(LeaseTenantBase):
    master_property_id: UUID
    tenant_name: str = Field(..., min_length=1, max_length=300)


class LeaseTenantUpdate(LeaseTenantBase):
    tenant_name: Optional[str] = Field(None, min_length=1, max_length=300)
    is_active: Optional[bool] = None


class RentPaymentBase(RequestModel):
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    amount_due: Optional[float] = None
    amount_paid: Optional[float] = None
    payment_date: Optional[date] = None
    payment_status: Optional[PaymentStatus] = None
    payment_method: Optional[str] = None
    reference_number: Optional[str] = None
    late_fee: Optional[float] = None
    notes: Optional[str] = None


class RentPaymentCreate(RentPaymentBase):
    tenant_id: UUID


class RentPaymentUpdate(RentPaymentBase):
    pass


class RentPaymentBulkCreate(RequestModel):
    """Expected payments for every active tenant of a property."""
    master_property_id: UUID
    period_start: date
    period_end: date
