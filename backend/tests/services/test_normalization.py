# tests/services/test_normalization.py
"""
Tests for NormalizationService

Coverage:
- Address dedup keys
- Property type classification
- State codes
- Numeric / boolean / date coercion
- Contact data (email, phone, names)
- Listing slugs
"""

import pytest
from datetime import date

from cre_api.services.normalization import NormalizationService as ns


pytestmark = pytest.mark.unit


class TestNormalizeAddress:
    """Dedup key generation"""

    def test_street_suffix_variants_collide(self):
        assert ns.normalize_address("123 Main Street") == ns.normalize_address("123 Main St.")

    def test_directions_and_punctuation_dropped(self):
        assert ns.normalize_address("500 N. Lamar Blvd, Suite 200") == "500lamar200"

    def test_idempotent(self):
        once = ns.normalize_address("1200 West Avenue #4")
        assert ns.normalize_address(once) == once

    def test_capped_at_80_characters(self):
        long_address = "1 " + "x" * 200
        assert len(ns.normalize_address(long_address)) == 80

    def test_empty_address(self):
        assert ns.normalize_address(None) == ""
        assert ns.normalize_address("") == ""

    def test_location_type_tokens(self):
        assert ns.is_location_type_token(" Suburban ")
        assert ns.is_location_type_token("CBD")
        assert not ns.is_location_type_token("123 Main St")
        assert not ns.is_location_type_token(None)


class TestMapPropertyType:
    """Keyword classifier"""

    @pytest.mark.parametrize("raw,expected", [
        ("Industrial", "industrial"),
        ("Warehouse/Distribution", "industrial"),
        ("Cold Storage", "industrial"),
        ("Strip Center", "retail"),
        ("Class A Office", "office"),
        ("Garden Apartment", "multifamily"),
        ("Hotel", "special_purpose"),
        ("Self Storage", "special_purpose"),
        ("Mixed Use", "mixed_use"),
        ("Vacant Land", "land"),
    ])
    def test_known_types(self, raw, expected):
        assert ns.map_property_type(raw) == expected

    def test_unknown_is_none(self):
        assert ns.map_property_type("Spaceport") is None
        assert ns.map_property_type("") is None
        assert ns.map_property_type(None) is None

    def test_longest_keyword_wins(self):
        assert ns.map_property_type("Retail Land") == "retail"
        assert ns.map_property_type("Office / Hotel") == "office"


class TestNormalizeState:

    def test_full_name_to_code(self):
        assert ns.normalize_state("Texas") == "TX"
        assert ns.normalize_state("new  york") == "NY"
        assert ns.normalize_state("District of Columbia") == "DC"

    def test_two_letter_uppercased(self):
        assert ns.normalize_state("tx") == "TX"

    def test_unknown_passes_through_uppercased(self):
        assert ns.normalize_state(" Ontario ") == "ONTARIO"

    def test_blank(self):
        assert ns.normalize_state("   ") is None
        assert ns.normalize_state(None) is None


class TestCoercion:

    def test_parse_decimal_strips_formatting(self):
        assert ns.parse_decimal("$1,250,000.50") == 1250000.50
        assert ns.parse_decimal("6.5%") == 6.5
        assert ns.parse_decimal(42) == 42.0

    def test_parse_decimal_unparseable(self):
        assert ns.parse_decimal("n/a") is None
        assert ns.parse_decimal("") is None
        assert ns.parse_decimal(True) is None

    def test_parse_integer_rounds(self):
        assert ns.parse_integer("45,000") == 45000
        assert ns.parse_integer("12.6") == 13
        assert ns.parse_integer("abc") is None

    @pytest.mark.parametrize("raw", ["yes", "TRUE", "1", "Y"])
    def test_parse_boolean_true(self, raw):
        assert ns.parse_boolean(raw) is True

    @pytest.mark.parametrize("raw", ["no", "false", "0", "", None])
    def test_parse_boolean_false(self, raw):
        assert ns.parse_boolean(raw) is False

    def test_parse_date_formats(self):
        assert ns.parse_date("2023-03-15") == date(2023, 3, 15)
        assert ns.parse_date("03/15/2023") == date(2023, 3, 15)
        assert ns.parse_date("3/15/23") == date(2023, 3, 15)
        assert ns.parse_date("2023-03-15T00:00:00Z") == date(2023, 3, 15)

    def test_parse_date_invalid_raises(self):
        with pytest.raises(ValueError):
            ns.parse_date("sometime in spring")

    def test_parse_date_blank(self):
        assert ns.parse_date("  ") is None
        assert ns.parse_date(None) is None


class TestContactData:

    def test_normalize_email(self):
        assert ns.normalize_email("  Jane.Doe@Example.COM ") == "jane.doe@example.com"
        assert ns.normalize_email(None) is None

    def test_normalize_phone_e164(self):
        assert ns.normalize_phone("(512) 555-0142") == "+15125550142"

    def test_normalize_phone_unparseable_returns_original(self):
        assert ns.normalize_phone(" call me ") == "call me"

    def test_split_full_name(self):
        assert ns.split_full_name("Jane Q. Doe") == {"first_name": "Jane", "last_name": "Q. Doe"}
        assert ns.split_full_name("Cher") == {"first_name": "Cher", "last_name": ""}
        assert ns.split_full_name("") == {"first_name": "", "last_name": ""}


class TestGenerateSlug:

    def test_slug_from_address_parts(self):
        assert ns.generate_slug("123 Main St.", "Austin", "TX") == "123-main-st-austin-tx"

    def test_slug_collapses_dashes(self):
        assert ns.generate_slug("A -- B", None, "") == "a-b"

    def test_slug_capped(self):
        assert len(ns.generate_slug("x" * 200)) == 80
