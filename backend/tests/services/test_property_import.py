# tests/services/test_property_import.py
"""
Tests for PropertyImportService

Coverage:
- Request validation
- Row mapping / coercion
- Skip rules
- Dedup (insert vs update, within one batch and across batches)
- Transaction creation rules
- Row errors and batch bookkeeping

Run with: pytest tests/services/test_property_import.py -v
"""

import pytest
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import select, func

from cre_api.models import MasterProperty, Transaction, ImportBatch
from cre_api.services.property_import import (
    ImportValidationError,
    MappedRow,
    PropertyImportService,
    coerce_value,
    property_import_service,
)


# ============================================================================
# PURE HELPERS
# ============================================================================

@pytest.mark.unit
class TestMapping:

    def test_filter_mapping_drops_unknown_fields(self):
        mapping = {"Address": "address", "Weird": "not_a_column", "Price": "sale_price"}
        assert PropertyImportService.filter_mapping(mapping) == {
            "Address": "address",
            "Price": "sale_price",
        }

    def test_validate_request_requires_rows(self):
        with pytest.raises(ImportValidationError, match="No data rows provided"):
            PropertyImportService.validate_request({"A": "address"}, [])

    def test_validate_request_requires_address(self):
        with pytest.raises(ImportValidationError, match="Address field mapping is required"):
            PropertyImportService.validate_request({"C": "city"}, [{"C": "Austin"}])

    def test_map_row_splits_and_coerces(self, crexi_rows, crexi_mapping):
        mapped = PropertyImportService.map_row(crexi_rows[0], crexi_mapping)

        assert mapped.property_data == {
            "address": "123 Main Street",
            "city": "Austin",
            "state": "TX",
            "property_type": "industrial",
            "building_size": 45000,
            "year_built": 1999,
        }
        assert mapped.transaction_data["sale_price"] == 4500000.0
        assert mapped.transaction_data["cap_rate"] == 6.25
        assert mapped.has_transaction

    def test_map_row_ignores_blanks(self, crexi_rows, crexi_mapping):
        mapped = PropertyImportService.map_row(crexi_rows[1], crexi_mapping)

        assert "year_built" not in mapped.property_data
        assert mapped.transaction_data == {}
        assert not mapped.has_transaction

    def test_map_row_bad_date_raises(self):
        with pytest.raises(ValueError):
            PropertyImportService.map_row(
                {"Addr": "1 Main", "Date": "not a date"},
                {"Addr": "address", "Date": "transaction_date"},
            )

    def test_coerce_value_defaults_to_text(self):
        assert coerce_value("owner_name", "  Acme LLC ") == "Acme LLC"

    @pytest.mark.parametrize("property_data,reason", [
        ({"city": "Austin", "state": "TX"}, "missing address"),
        ({"address": "Suburban", "city": "Austin", "state": "TX"}, "location type"),
        ({"address": "1 Main St", "state": "TX"}, "missing city or state"),
        ({"address": "1 Main St", "city": "Austin"}, "missing city or state"),
    ])
    def test_skip_reasons(self, property_data, reason):
        skip = PropertyImportService.skip_reason(MappedRow(property_data=property_data))
        assert reason in skip

    def test_no_skip_for_complete_row(self):
        mapped = MappedRow(property_data={"address": "1 Main St", "city": "Austin", "state": "TX"})
        assert PropertyImportService.skip_reason(mapped) is None

    def test_transaction_type_and_cap_rate_fallback(self):
        lease = PropertyImportService.build_transaction(
            uuid4(), {"lease_rate": 18.5, "noi": 100000.0}, "crexi", uuid4(), {}
        )
        assert lease.transaction_type == "lease"

        sale = PropertyImportService.build_transaction(
            uuid4(), {"sale_price": 1000000.0, "asking_cap_rate": 7.0}, "crexi", uuid4(), {}
        )
        assert sale.transaction_type == "sale"
        assert sale.cap_rate == 7.0


# ============================================================================
# DATABASE PIPELINE
# ============================================================================

async def _count(session, model, *criteria):
    result = await session.execute(select(func.count()).select_from(model).where(*criteria))
    return result.scalar()


@pytest.mark.integration
class TestRunImport:

    @pytest.mark.asyncio
    async def test_inserts_properties_and_transactions(
        self, db_session, broker_user, crexi_rows, crexi_mapping
    ):
        result = await property_import_service.run_import(
            db_session, "crexi", crexi_mapping, crexi_rows, broker_user.id, "export.csv"
        )

        assert len(result.properties_created) == 2
        assert result.properties_updated == []
        assert len(result.transactions_created) == 1
        assert result.errors == []

        prop = (await db_session.execute(
            select(MasterProperty).where(MasterProperty.address == "123 Main Street")
        )).scalar_one()
        assert prop.address_normalized == "123main"
        assert prop.state == "TX"
        assert prop.source == "crexi"
        assert prop.created_by == broker_user.id
        assert prop.raw_import_data["Sold Price"] == "$4,500,000"

        txn = (await db_session.execute(
            select(Transaction).where(Transaction.property_id == prop.id)
        )).scalar_one()
        assert txn.transaction_type == "sale"
        assert txn.sale_price == Decimal("4500000.00")

    @pytest.mark.asyncio
    async def test_second_import_updates_instead_of_duplicating(
        self, db_session, broker_user, crexi_rows, crexi_mapping
    ):
        first = await property_import_service.run_import(
            db_session, "crexi", crexi_mapping, crexi_rows, broker_user.id
        )
        second = await property_import_service.run_import(
            db_session, "crexi", crexi_mapping, crexi_rows, broker_user.id
        )

        assert second.properties_created == []
        assert sorted(second.properties_updated) == sorted(first.properties_created)
        assert await _count(db_session, MasterProperty) == 2

    @pytest.mark.asyncio
    async def test_dedup_within_same_batch(self, db_session, broker_user):
        rows = [
            {"Address": "123 Main Street", "City": "Austin", "State": "TX"},
            {"Address": "123 Main St.", "City": "AUSTIN", "State": "Texas", "Owner": "New Owner"},
        ]
        mapping = {"Address": "address", "City": "city", "State": "state", "Owner": "owner_name"}

        result = await property_import_service.run_import(
            db_session, "manual", mapping, rows, broker_user.id
        )

        assert len(result.properties_created) == 1
        assert result.properties_updated == result.properties_created
        prop = (await db_session.execute(select(MasterProperty))).scalar_one()
        assert prop.owner_name == "New Owner"
        # The first row's raw data survives the update
        assert prop.raw_import_data["Address"] == "123 Main Street"

    @pytest.mark.asyncio
    async def test_reimport_reports_same_property_id(self, db_session, broker_user):
        mapping = {"Address": "address", "City": "city", "State": "state", "Price": "sale_price"}

        first = await property_import_service.run_import(
            db_session, "manual", mapping,
            [{"Address": "123 Main Street", "City": "Austin", "State": "TX", "Price": "900000"}],
            broker_user.id,
        )
        second = await property_import_service.run_import(
            db_session, "manual", mapping,
            [{"Address": "123 Main St.", "City": "Austin", "State": "TX"}],
            broker_user.id,
        )

        first_summary = first.to_dict()
        second_summary = second.to_dict()
        assert len(first_summary["properties_created"]) == 1
        assert first_summary["properties_updated"] == []
        assert second_summary["properties_created"] == []
        assert second_summary["properties_updated"] == first_summary["properties_created"]

        prop = (await db_session.execute(select(MasterProperty))).scalar_one()
        assert first_summary["properties_created"] == [str(prop.id)]

        txn = (await db_session.execute(select(Transaction))).scalar_one()
        assert first_summary["transactions_created"] == [str(txn.id)]
        assert second_summary["transactions_created"] == []

    @pytest.mark.asyncio
    async def test_deleted_property_is_not_a_duplicate(self, db_session, broker_user):
        rows = [{"Address": "9 Pine Rd", "City": "Austin", "State": "TX"}]
        mapping = {"Address": "address", "City": "city", "State": "state"}

        await property_import_service.run_import(db_session, "manual", mapping, rows, broker_user.id)
        prop = (await db_session.execute(select(MasterProperty))).scalar_one()
        prop.is_deleted = True
        await db_session.commit()

        result = await property_import_service.run_import(
            db_session, "manual", mapping, rows, broker_user.id
        )
        assert len(result.properties_created) == 1
        assert await _count(db_session, MasterProperty) == 2

    @pytest.mark.asyncio
    async def test_skips_and_errors_do_not_abort_batch(self, db_session, broker_user):
        rows = [
            {"Address": "Suburban", "City": "Austin", "State": "TX"},
            {"Address": "1 Main St", "City": "", "State": "TX"},
            {"Address": "2 Main St", "City": "Austin", "State": "TX", "Date": "31/31/2020"},
            {"Address": "3 Main St", "City": "Austin", "State": "TX"},
        ]
        mapping = {"Address": "address", "City": "city", "State": "state", "Date": "transaction_date"}

        result = await property_import_service.run_import(
            db_session, "manual", mapping, rows, broker_user.id
        )

        assert result.skipped == 2
        assert len(result.properties_created) == 1
        assert len(result.errors) == 1
        assert result.errors[0]["row"] == 3
        assert "Invalid date" in result.errors[0]["error"]

        summary = result.to_dict()
        assert summary["imported"] == 1
        assert summary["errors"] == 1
        assert summary["error_details"] == result.errors

    @pytest.mark.asyncio
    async def test_batch_record_completed(self, db_session, broker_user, crexi_rows, crexi_mapping):
        result = await property_import_service.run_import(
            db_session, "crexi", crexi_mapping, crexi_rows, broker_user.id, "export.csv"
        )

        batch = await db_session.get(ImportBatch, result.batch_id)
        assert batch.filename == "export.csv"
        assert batch.total_rows == 2
        assert batch.imported_rows == 2
        assert batch.skipped_rows == 0
        assert batch.error_rows == 0
        assert batch.completed_at is not None

    @pytest.mark.asyncio
    async def test_validation_error_creates_no_batch(self, db_session, broker_user):
        with pytest.raises(ImportValidationError):
            await property_import_service.run_import(
                db_session, "manual", {"City": "city"}, [{"City": "Austin"}], broker_user.id
            )
        assert await _count(db_session, ImportBatch) == 0
