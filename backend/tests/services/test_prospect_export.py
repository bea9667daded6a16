# tests/services/test_prospect_export.py
"""Tests for prospect list CSV / Excel export and listing slugs."""

import csv
import io
import pytest
from datetime import date
from types import SimpleNamespace

from openpyxl import load_workbook

from cre_api.services.prospect_export import (
    EXPORT_HEADERS,
    build_export_rows,
    export_filename,
    generate_csv,
    generate_excel,
)
from cre_api.services import listing_slugs
from cre_api.services.listing_slugs import generate_unique_slug, to_base36
from cre_api.models import ListingSite
from tests.conftest import create_property


@pytest.fixture
def export_items():
    return [
        {
            "status": "contacted",
            "notes": 'Owner said "call back in May"',
            "property": {
                "address": "100 Industrial Blvd",
                "city": "Austin",
                "state": "TX",
                "zip": "78744",
                "property_type": "industrial",
                "building_size": 50000,
                "owner_name": "Acme Holdings LLC",
                "latest_sale_price": 4500000.0,
                "latest_cap_rate": 6.25,
            },
        },
        {"status": "pending", "notes": None, "property": None},
    ]


@pytest.mark.unit
class TestExport:

    def test_filename(self):
        assert export_filename("Austin Industrial / Q3", "csv", today=date(2024, 7, 1)) == \
            "Austin_Industrial___Q3_2024-07-01.csv"

    def test_build_rows_blanks_missing_values(self, export_items):
        rows = build_export_rows(export_items)

        assert len(rows) == 2
        assert rows[0][:4] == ["contacted", 'Owner said "call back in May"', "100 Industrial Blvd", "Austin"]
        assert rows[0][EXPORT_HEADERS.index("Sale Price")] == 4500000.0
        assert rows[0][EXPORT_HEADERS.index("Year Built")] == ""
        assert rows[1] == ["pending"] + [""] * (len(EXPORT_HEADERS) - 1)

    def test_csv_quotes_every_value(self, export_items):
        content = generate_csv(build_export_rows(export_items))
        lines = content.splitlines()

        assert lines[0].startswith('"Status","Notes","Address","City","State","Zip"')
        assert lines[0].endswith('"Cap Rate","Submarket"')
        assert '"Owner said ""call back in May"""' in lines[1]
        assert lines[2].startswith('"pending",""')

        parsed = list(csv.reader(io.StringIO(content)))
        assert parsed[0] == EXPORT_HEADERS
        assert parsed[1][1] == 'Owner said "call back in May"'

    def test_excel_matches_csv_table(self, export_items):
        output = generate_excel(build_export_rows(export_items))
        ws = load_workbook(output).active

        assert [cell.value for cell in ws[1]] == EXPORT_HEADERS
        assert ws["A2"].value == "contacted"
        assert ws["C2"].value == "100 Industrial Blvd"
        assert ws.freeze_panes == "A2"
        assert ws.max_row == 3


class TestListingSlugs:

    @pytest.mark.unit
    def test_base36(self):
        assert to_base36(0) == "0"
        assert to_base36(35) == "z"
        assert to_base36(36) == "10"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_unique_slug_gets_suffix_on_collision(self, db_session, broker_user):
        prop = await create_property(db_session, broker_user.id, address="123 Main St")

        first = await generate_unique_slug(db_session, prop.address, prop.city, prop.state)
        assert first == "123-main-st-austin-tx"

        site = ListingSite(master_property_id=prop.id, slug=first, created_by=broker_user.id)
        db_session.add(site)
        await db_session.commit()

        second = await generate_unique_slug(db_session, prop.address, prop.city, prop.state)
        assert second.startswith("123-main-st-austin-tx-")
        assert second != first

        # Regenerating for the same site keeps its own slug
        same = await generate_unique_slug(
            db_session, prop.address, prop.city, prop.state, exclude_id=site.id
        )
        assert same == first

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_empty_parts_fall_back(self, db_session):
        assert await generate_unique_slug(db_session, None, "", None) == "listing"

    @pytest.mark.integration
    @pytest.mark.asyncio
    async def test_suffix_bumped_when_also_taken(self, db_session, broker_user, monkeypatch):
        stamp = 1_700_000_000_000
        monkeypatch.setattr(listing_slugs, "time", SimpleNamespace(time=lambda: stamp / 1000))
        prop = await create_property(db_session, broker_user.id, address="123 Main St")

        base = "123-main-st-austin-tx"
        for slug in (base, f"{base}-{to_base36(stamp)}"):
            db_session.add(ListingSite(master_property_id=prop.id, slug=slug, created_by=broker_user.id))
        await db_session.commit()

        slug = await generate_unique_slug(db_session, prop.address, prop.city, prop.state)
        assert slug == f"{base}-{to_base36(stamp + 1)}"
