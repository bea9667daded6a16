"""
Property Import Service

Bulk import of third-party property exports into master_properties:
1. Map source columns to canonical fields
2. Coerce values via the field-type registry
3. Dedup on normalized address + city + state (update or insert)
4. Record sale/lease data as a transaction
5. Track the run in an import_batches row

Rows are processed sequentially and committed one at a time, so a later row
in the same batch deduplicates against an earlier one.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from cre_api.config import settings
from cre_api.models import MasterProperty, Transaction, ImportBatch, utcnow
from cre_api.services.normalization import normalization_service as ns

logger = logging.getLogger(__name__)


# ============================================================================
# FIELD REGISTRY
# ============================================================================

INTEGER = "integer"
DECIMAL = "decimal"
BOOLEAN = "boolean"
DATE = "date"
PROPERTY_TYPE = "property_type"
STATE = "state"
TEXT = "text"

FIELD_TYPES: Dict[str, str] = {
    # Property: integers
    "building_size": INTEGER,
    "land_area_sf": INTEGER,
    "number_of_floors": INTEGER,
    "number_of_units": INTEGER,
    "number_of_buildings": INTEGER,
    "number_of_addresses": INTEGER,
    "year_built": INTEGER,
    "month_built": INTEGER,
    "year_renovated": INTEGER,
    "month_renovated": INTEGER,
    "dock_doors": INTEGER,
    "grade_doors": INTEGER,
    "number_of_cranes": INTEGER,
    "number_of_elevators": INTEGER,
    "parking_spaces": INTEGER,
    "days_on_market": INTEGER,
    "tax_year": INTEGER,

    # Property: decimals
    "latitude": DECIMAL,
    "longitude": DECIMAL,
    "lot_size_acres": DECIMAL,
    "typical_floor_size": DECIMAL,
    "clear_height_ft": DECIMAL,
    "office_percentage": DECIMAL,
    "parking_ratio": DECIMAL,
    "percent_leased": DECIMAL,
    "vacancy_percent": DECIMAL,
    "rent_per_sf": DECIMAL,
    "avg_weighted_rent": DECIMAL,
    "improvement_value": DECIMAL,
    "land_value": DECIMAL,
    "total_parcel_value": DECIMAL,
    "annual_tax_bill": DECIMAL,

    # Property: booleans
    "rail_served": BOOLEAN,
    "opportunity_zone": BOOLEAN,

    # Property: normalized enums
    "property_type": PROPERTY_TYPE,
    "state": STATE,

    # Transaction
    "sale_price": DECIMAL,
    "price_per_sf": DECIMAL,
    "price_per_acre": DECIMAL,
    "cap_rate": DECIMAL,
    "asking_cap_rate": DECIMAL,
    "noi": DECIMAL,
    "lease_rate": DECIMAL,
    "loan_amount": DECIMAL,
    "interest_rate": DECIMAL,
    "transaction_date": DATE,
    "lease_expiration_date": DATE,
    "maturity_date": DATE,
}

_COERCERS: Dict[str, Callable[[Any], Any]] = {
    INTEGER: ns.parse_integer,
    DECIMAL: ns.parse_decimal,
    BOOLEAN: ns.parse_boolean,
    DATE: ns.parse_date,
    PROPERTY_TYPE: ns.map_property_type,
    STATE: ns.normalize_state,
    TEXT: ns.clean_text,
}

TRANSACTION_FIELDS = {
    "sale_price", "transaction_date", "price_per_sf", "price_per_acre",
    "cap_rate", "asking_cap_rate", "noi", "buyer_name", "seller_name",
    "for_sale_status", "lease_rate", "lease_type", "lease_term",
    "lease_expiration_date", "tenant_name", "lender", "loan_amount",
    "loan_type", "interest_rate", "maturity_date",
}

# Columns an import may write on master_properties
VALID_PROPERTY_COLUMNS = {
    "address", "city", "state", "zip", "county", "property_name",
    "property_type", "building_park", "costar_id", "crexi_id", "apn",
    "unit_suite", "property_subtype", "building_class", "building_status",
    "zoning", "latitude", "longitude", "submarket", "market", "cross_street",
    "opportunity_zone", "building_size", "land_area_sf", "lot_size_acres",
    "typical_floor_size", "number_of_floors", "number_of_units",
    "number_of_buildings", "number_of_addresses", "year_built", "month_built",
    "year_renovated", "month_renovated", "construction_material",
    "clear_height_ft", "dock_doors", "grade_doors", "rail_served",
    "column_spacing", "sprinkler_type", "number_of_cranes", "power",
    "office_percentage", "office_space", "number_of_elevators",
    "parking_spaces", "parking_ratio", "percent_leased", "vacancy_percent",
    "days_on_market", "rent_per_sf", "avg_weighted_rent", "owner_name",
    "owner_contact", "owner_phone", "owner_address", "mailing_city",
    "mailing_state", "mailing_zip", "mailing_care_of", "parent_company",
    "fund_name", "property_manager_name", "property_manager_phone",
    "leasing_company_name", "leasing_company_contact", "leasing_company_phone",
    "developer_name", "architect_name", "improvement_value", "land_value",
    "total_parcel_value", "parcel_value_type", "tax_year", "annual_tax_bill",
    "water", "sewer", "gas", "amenities", "features", "notes",
} | TRANSACTION_FIELDS

# Property columns an update from import never touches
PROTECTED_ON_UPDATE = {"created_by", "raw_import_data"}


def coerce_value(field_name: str, value: Any) -> Any:
    """Coerce one raw cell to the canonical type of field_name."""
    coercer = _COERCERS[FIELD_TYPES.get(field_name, TEXT)]
    return coercer(value)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class MappedRow:
    """One source row after column mapping and coercion."""
    property_data: Dict[str, Any] = field(default_factory=dict)
    transaction_data: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_transaction(self) -> bool:
        return any(
            self.transaction_data.get(key) is not None
            for key in ("sale_price", "cap_rate", "noi")
        )


@dataclass
class ImportResult:
    batch_id: Optional[UUID] = None
    properties_created: List[UUID] = field(default_factory=list)
    properties_updated: List[UUID] = field(default_factory=list)
    transactions_created: List[UUID] = field(default_factory=list)
    skipped: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return len(self.properties_created) + len(self.properties_updated)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "batch_id": str(self.batch_id) if self.batch_id else None,
            "imported": len(self.properties_created),
            "updated": len(self.properties_updated),
            "skipped": self.skipped,
            "errors": len(self.errors),
            "properties_created": [str(pid) for pid in self.properties_created],
            "properties_updated": [str(pid) for pid in self.properties_updated],
            "transactions_created": [str(tid) for tid in self.transactions_created],
            "error_details": self.errors[:settings.IMPORT_ERROR_SAMPLE_SIZE],
        }


class ImportValidationError(ValueError):
    """Request-level import problem (maps to HTTP 400)."""


class PropertyImportService:
    """Maps, deduplicates and persists imported property rows."""

    @staticmethod
    def filter_mapping(column_mapping: Dict[str, str]) -> Dict[str, str]:
        """Drop mappings whose target is not a known canonical field."""
        valid = {}
        for source_col, db_field in column_mapping.items():
            if db_field in VALID_PROPERTY_COLUMNS:
                valid[source_col] = db_field
            else:
                logger.warning(f"Ignoring mapping {source_col!r} -> {db_field!r}: unknown field")
        return valid

    @staticmethod
    def validate_request(column_mapping: Dict[str, str], rows: List[Dict[str, Any]]):
        if not rows:
            raise ImportValidationError("No data rows provided")
        if "address" not in column_mapping.values():
            raise ImportValidationError("Address field mapping is required")

    @staticmethod
    def map_row(row: Dict[str, Any], column_mapping: Dict[str, str]) -> MappedRow:
        """
        Apply the column mapping and coerce every non-blank value.
        Raises ValueError for unreadable dates before anything is written.
        """
        mapped = MappedRow()
        for source_col, db_field in column_mapping.items():
            raw = row.get(source_col)
            if _is_blank(raw):
                continue
            value = coerce_value(db_field, raw)
            if value is None:
                continue
            target = mapped.transaction_data if db_field in TRANSACTION_FIELDS else mapped.property_data
            target[db_field] = value
        return mapped

    @staticmethod
    def skip_reason(mapped: MappedRow) -> Optional[str]:
        address = mapped.property_data.get("address")
        if not address:
            return "missing address"
        if ns.is_location_type_token(address):
            return f"location type value {address!r} in address column"
        if not mapped.property_data.get("city") or not mapped.property_data.get("state"):
            return "missing city or state"
        return None

    @staticmethod
    async def find_duplicate(
        db: AsyncSession,
        address_normalized: str,
        city: str,
        state: str,
    ) -> Optional[MasterProperty]:
        """Non-deleted property with the same normalized address, city and state."""
        result = await db.execute(
            select(MasterProperty).where(
                MasterProperty.address_normalized == address_normalized,
                func.lower(MasterProperty.city) == city.lower(),
                MasterProperty.state == state,
                MasterProperty.is_deleted.is_(False),
            ).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    def build_transaction(
        property_id: UUID,
        transaction_data: Dict[str, Any],
        source: str,
        user_id: UUID,
        raw_row: Dict[str, Any],
    ) -> Transaction:
        data = dict(transaction_data)
        if data.get("cap_rate") is None and data.get("asking_cap_rate") is not None:
            data["cap_rate"] = data["asking_cap_rate"]
        transaction_type = "lease" if data.get("lease_rate") is not None else "sale"

        return Transaction(
            property_id=property_id,
            transaction_type=transaction_type,
            source=source,
            created_by=user_id,
            raw_import_data=raw_row,
            **data,
        )

    async def import_row(
        self,
        db: AsyncSession,
        row: Dict[str, Any],
        column_mapping: Dict[str, str],
        source: str,
        user_id: UUID,
        result: ImportResult,
    ):
        """Process one row; the caller owns commit/rollback."""
        mapped = self.map_row(row, column_mapping)

        reason = self.skip_reason(mapped)
        if reason:
            result.skipped += 1
            return None

        property_data = mapped.property_data
        property_data["address_normalized"] = ns.normalize_address(property_data["address"])

        existing = await self.find_duplicate(
            db,
            property_data["address_normalized"],
            property_data["city"],
            property_data["state"],
        )

        if existing:
            for key, value in property_data.items():
                if key not in PROTECTED_ON_UPDATE:
                    setattr(existing, key, value)
            existing.updated_at = utcnow()
            prop = existing
            created = False
        else:
            prop = MasterProperty(
                **property_data,
                source=source,
                created_by=user_id,
                raw_import_data=row,
            )
            db.add(prop)
            await db.flush()
            created = True

        property_id = prop.id
        transaction_id = None
        if mapped.has_transaction:
            txn = self.build_transaction(property_id, mapped.transaction_data, source, user_id, row)
            db.add(txn)
            await db.flush()
            transaction_id = txn.id

        await db.commit()

        if created:
            result.properties_created.append(property_id)
        else:
            result.properties_updated.append(property_id)
        if transaction_id is not None:
            result.transactions_created.append(transaction_id)
        return prop

    async def run_import(
        self,
        db: AsyncSession,
        source: str,
        column_mapping: Dict[str, str],
        rows: List[Dict[str, Any]],
        user_id: UUID,
        filename: Optional[str] = None,
    ) -> ImportResult:
        """
        Import a batch of rows.

        Raises ImportValidationError for request-level problems; row-level
        failures are collected and never abort the batch.
        """
        mapping = self.filter_mapping(column_mapping)
        self.validate_request(mapping, rows)

        batch = ImportBatch(
            filename=filename,
            source=source,
            total_rows=len(rows),
            column_mapping=column_mapping,
            created_by=user_id,
        )
        db.add(batch)
        await db.commit()
        batch_id = batch.id

        logger.info(f"Import batch {batch_id} started: {len(rows)} rows from {source}")

        result = ImportResult(batch_id=batch_id)
        for index, row in enumerate(rows):
            try:
                await self.import_row(db, row, mapping, source, user_id, result)
            except Exception as e:
                await db.rollback()
                result.errors.append({"row": index + 1, "error": str(e)})

            if (index + 1) % settings.IMPORT_PROGRESS_INTERVAL == 0:
                logger.info(f"Import batch {batch_id}: {index + 1}/{len(rows)} rows processed")

        batch = await db.get(ImportBatch, batch_id)
        batch.imported_rows = result.imported
        batch.skipped_rows = result.skipped
        batch.error_rows = len(result.errors)
        batch.errors = result.errors
        batch.completed_at = utcnow()
        await db.commit()

        logger.info(
            f"Import batch {batch_id} complete: {len(result.properties_created)} created, "
            f"{len(result.properties_updated)} updated, {result.skipped} skipped, "
            f"{len(result.errors)} errors, {len(result.transactions_created)} transactions"
        )
        return result


# Singleton instance
property_import_service = PropertyImportService()
