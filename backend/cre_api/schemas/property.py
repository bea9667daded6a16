"""Master property, transaction and import schemas."""

from datetime import date
from typing import Dict, List, Optional, Union

from pydantic import ConfigDict, Field, field_validator

from cre_api.schemas import ImportSource, RequestModel, TransactionType

CellValue = Union[str, int, float, bool, None]


class ImportRequest(RequestModel):
    """Bulk import payload; rows are source-column -> cell value."""
    source: ImportSource = ImportSource.OTHER
    column_mapping: Dict[str, str] = Field(..., alias="columnMapping")
    rows: List[Dict[str, CellValue]]
    filename: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class MasterPropertyBase(RequestModel):
    property_name: Optional[str] = None
    zip: Optional[str] = None
    county: Optional[str] = None
    property_type: Optional[str] = None
    property_subtype: Optional[str] = None
    building_class: Optional[str] = None
    submarket: Optional[str] = None
    market: Optional[str] = None
    apn: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    building_size: Optional[int] = Field(None, ge=0)
    land_area_sf: Optional[int] = Field(None, ge=0)
    lot_size_acres: Optional[float] = Field(None, ge=0)
    number_of_floors: Optional[int] = Field(None, ge=0)
    number_of_units: Optional[int] = Field(None, ge=0)
    year_built: Optional[int] = None
    year_renovated: Optional[int] = None
    clear_height_ft: Optional[float] = None
    dock_doors: Optional[int] = None
    grade_doors: Optional[int] = None
    parking_spaces: Optional[int] = None
    percent_leased: Optional[float] = None
    owner_name: Optional[str] = None
    owner_contact: Optional[str] = None
    owner_phone: Optional[str] = None
    owner_address: Optional[str] = None
    property_manager_name: Optional[str] = None
    leasing_company_name: Optional[str] = None
    zoning: Optional[str] = None
    notes: Optional[str] = None


class MasterPropertyCreate(MasterPropertyBase):
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)

    @field_validator("address", "city", "state")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class MasterPropertyUpdate(MasterPropertyBase):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None


class TransactionCreate(RequestModel):
    transaction_type: TransactionType = TransactionType.SALE
    transaction_date: Optional[date] = None
    sale_price: Optional[float] = None
    price_per_sf: Optional[float] = None
    price_per_acre: Optional[float] = None
    cap_rate: Optional[float] = None
    asking_cap_rate: Optional[float] = None
    noi: Optional[float] = None
    buyer_name: Optional[str] = None
    seller_name: Optional[str] = None
    lease_rate: Optional[float] = None
    lease_type: Optional[str] = None
    lease_term: Optional[str] = None
    lease_expiration_date: Optional[date] = None
    tenant_name: Optional[str] = None
    lender: Optional[str] = None
    loan_amount: Optional[float] = None
    interest_rate: Optional[float] = None
    notes: Optional[str] = None
