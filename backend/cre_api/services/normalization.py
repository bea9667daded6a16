"""Property and contact data normalization service."""

import math
import re
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple
import phonenumbers
from nameparser import HumanName

logger = logging.getLogger(__name__)


ADDRESS_NORMALIZED_MAX_LENGTH = 80
SLUG_MAX_LENGTH = 80

STREET_SUFFIXES = {
    "street", "st", "avenue", "ave", "boulevard", "blvd", "drive", "dr",
    "road", "rd", "lane", "ln", "court", "ct", "place", "pl", "way",
    "parkway", "pkwy", "highway", "hwy", "circle", "cir", "terrace", "ter",
    "suite", "ste",
}

DIRECTIONS = {
    "north", "south", "east", "west", "n", "s", "e", "w",
    "northeast", "northwest", "southeast", "southwest", "ne", "nw", "se", "sw",
}

# Values that CoStar exports under "Location Type" and that end up mapped to address
LOCATION_TYPE_TOKENS = {"suburban", "urban", "cbd", "rural"}

# (keyword, category) pairs; longest keyword wins on overlap
_PROPERTY_TYPE_KEYWORDS: List[Tuple[str, str]] = [
    ("industrial", "industrial"),
    ("warehouse", "industrial"),
    ("distribution", "industrial"),
    ("manufacturing", "industrial"),
    ("flex", "industrial"),
    ("cold storage", "industrial"),
    ("retail", "retail"),
    ("shopping", "retail"),
    ("strip center", "retail"),
    ("office", "office"),
    ("multifamily", "multifamily"),
    ("multi-family", "multifamily"),
    ("apartment", "multifamily"),
    ("residential", "residential"),
    ("land", "land"),
    ("special purpose", "special_purpose"),
    ("hospitality", "special_purpose"),
    ("hotel", "special_purpose"),
    ("self storage", "special_purpose"),
    ("mixed use", "mixed_use"),
    ("mixed-use", "mixed_use"),
]
PROPERTY_TYPE_KEYWORDS: List[Tuple[str, str]] = sorted(
    _PROPERTY_TYPE_KEYWORDS, key=lambda pair: len(pair[0]), reverse=True
)

PROPERTY_TYPES = [
    "industrial", "retail", "office", "multifamily", "residential",
    "land", "special_purpose", "mixed_use",
]

STATE_CODES = {
    "ALABAMA": "AL", "ALASKA": "AK", "ARIZONA": "AZ", "ARKANSAS": "AR",
    "CALIFORNIA": "CA", "COLORADO": "CO", "CONNECTICUT": "CT", "DELAWARE": "DE",
    "DISTRICT OF COLUMBIA": "DC", "FLORIDA": "FL", "GEORGIA": "GA", "HAWAII": "HI",
    "IDAHO": "ID", "ILLINOIS": "IL", "INDIANA": "IN", "IOWA": "IA",
    "KANSAS": "KS", "KENTUCKY": "KY", "LOUISIANA": "LA", "MAINE": "ME",
    "MARYLAND": "MD", "MASSACHUSETTS": "MA", "MICHIGAN": "MI", "MINNESOTA": "MN",
    "MISSISSIPPI": "MS", "MISSOURI": "MO", "MONTANA": "MT", "NEBRASKA": "NE",
    "NEVADA": "NV", "NEW HAMPSHIRE": "NH", "NEW JERSEY": "NJ", "NEW MEXICO": "NM",
    "NEW YORK": "NY", "NORTH CAROLINA": "NC", "NORTH DAKOTA": "ND", "OHIO": "OH",
    "OKLAHOMA": "OK", "OREGON": "OR", "PENNSYLVANIA": "PA", "RHODE ISLAND": "RI",
    "SOUTH CAROLINA": "SC", "SOUTH DAKOTA": "SD", "TENNESSEE": "TN", "TEXAS": "TX",
    "UTAH": "UT", "VERMONT": "VT", "VIRGINIA": "VA", "WASHINGTON": "WA",
    "WEST VIRGINIA": "WV", "WISCONSIN": "WI", "WYOMING": "WY",
}

TRUE_VALUES = {"yes", "true", "1", "y"}

DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d", "%m-%d-%Y")

_NUMERIC_STRIP = re.compile(r"[$%,\s]")


class NormalizationService:
    """Normalize and standardize property, contact and import data."""

    # ========================================================================
    # ADDRESSES & PROPERTY CLASSIFICATION
    # ========================================================================

    @staticmethod
    def normalize_address(address: Optional[str]) -> str:
        """
        Normalize an address into the dedup key.
        - Lowercase
        - Drop street suffix and direction tokens
        - Strip non-alphanumerics
        - Cap at 80 characters

        "123 Main Street" and "123 Main St." produce the same key.
        """
        if not address:
            return ""

        tokens = re.split(r"[\s.,#]+", str(address).lower())
        kept = [
            token for token in tokens
            if token and token not in STREET_SUFFIXES and token not in DIRECTIONS
        ]
        # An address made only of suffix/direction words keeps its raw tokens
        if not kept:
            kept = [token for token in tokens if token]

        normalized = re.sub(r"[^a-z0-9]", "", "".join(kept))
        return normalized[:ADDRESS_NORMALIZED_MAX_LENGTH]

    @staticmethod
    def is_location_type_token(value: Optional[str]) -> bool:
        """True for CoStar location-type values mis-mapped as an address."""
        if value is None:
            return False
        return str(value).strip().lower() in LOCATION_TYPE_TOKENS

    @staticmethod
    def map_property_type(value: Optional[str]) -> Optional[str]:
        """Classify free-text property type into a category; None if unknown."""
        if not value:
            return None

        normalized = str(value).lower().strip()
        for keyword, category in PROPERTY_TYPE_KEYWORDS:
            if keyword in normalized:
                return category
        return None

    @staticmethod
    def normalize_state(value: Optional[str]) -> Optional[str]:
        """Map a state name to its 2-letter code; pass other values through uppercased."""
        if value is None:
            return None

        trimmed = " ".join(str(value).split()).upper()
        if not trimmed:
            return None
        if len(trimmed) == 2:
            return trimmed
        return STATE_CODES.get(trimmed, trimmed)

    @staticmethod
    def generate_slug(*parts: Optional[str]) -> str:
        """Build a URL-safe slug from address parts."""
        text = " ".join(str(part) for part in parts if part).lower()
        text = re.sub(r"[^a-z0-9\s-]", "", text)
        text = re.sub(r"\s+", "-", text)
        text = re.sub(r"-+", "-", text)
        return text.strip("-")[:SLUG_MAX_LENGTH]

    # ========================================================================
    # TYPE COERCION
    # ========================================================================

    @staticmethod
    def parse_decimal(value: Any) -> Optional[float]:
        """Parse a number after stripping $, %, commas and whitespace."""
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            parsed = float(value)
        else:
            cleaned = _NUMERIC_STRIP.sub("", str(value))
            if not cleaned:
                return None
            try:
                parsed = float(cleaned)
            except ValueError:
                return None
        return parsed if math.isfinite(parsed) else None

    @staticmethod
    def parse_integer(value: Any) -> Optional[int]:
        """Parse a whole number; fractional input is rounded."""
        parsed = NormalizationService.parse_decimal(value)
        if parsed is None:
            return None
        return int(round(parsed))

    @staticmethod
    def parse_boolean(value: Any) -> bool:
        """True iff value is one of yes/true/1/y (case-insensitive)."""
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        return str(value).strip().lower() in TRUE_VALUES

    @staticmethod
    def parse_date(value: Any) -> Optional[date]:
        """
        Parse a date from common export formats.
        Raises ValueError when the value is present but unreadable.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value

        text = str(value).strip()
        if not text:
            return None

        # Timestamps such as 2024-03-01T00:00:00Z
        if "T" in text:
            text = text.split("T", 1)[0]

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue
        raise ValueError(f"Invalid date: {value}")

    @staticmethod
    def clean_text(value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    # ========================================================================
    # CONTACT DATA
    # ========================================================================

    @staticmethod
    def normalize_email(email: Optional[str]) -> Optional[str]:
        """Lowercase and trim an email address."""
        if not email:
            return None
        return email.strip().lower() or None

    @staticmethod
    def normalize_phone(phone: Optional[str], default_region: str = "US") -> Optional[str]:
        """
        Normalize phone number to E.164 format.
        Returns the original value if parsing fails.
        """
        if not phone:
            return None

        try:
            parsed = phonenumbers.parse(phone, default_region)
            if phonenumbers.is_valid_number(parsed):
                return phonenumbers.format_number(
                    parsed,
                    phonenumbers.PhoneNumberFormat.E164
                )
        except phonenumbers.NumberParseException:
            logger.debug(f"Failed to parse phone number: {phone}")

        return phone.strip()

    @staticmethod
    def split_full_name(full_name: Optional[str]) -> Dict[str, str]:
        """Split a single name field into first/last names."""
        if not full_name or not full_name.strip():
            return {"first_name": "", "last_name": ""}

        parsed = HumanName(full_name.strip())
        first = parsed.first or full_name.strip()
        last = " ".join(part for part in [parsed.middle, parsed.last] if part)
        return {"first_name": first, "last_name": last}


# Singleton instance
normalization_service = NormalizationService()
