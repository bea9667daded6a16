"""
Column mappings for third-party property exports (CoStar, Crexi).

Detects the export source from CSV headers and proposes a
source-column -> canonical-field mapping for the import pipeline.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

logger = logging.getLogger(__name__)


COSTAR_DETECTION_FIELDS = [
    "Star Rating", "PropertyID", "Submarket Name", "Market Name",
    "Building Park", "Rentable Building Area", "LEED Certified", "Submarket Cluster",
]

CREXI_DETECTION_FIELDS = [
    "Property Link", "Crexi", "USPS Vacancy", "PFC Recording Date",
    "PFC Indicator", "REO Sale Flag", "Transaction Event Type", "Mailing Address Care Of",
]

# Headers that are never imported
SKIP_FIELDS = [
    "Location Type",
    "Continent",
    "Subcontinent",
    "Country",
    "One Bedroom Asking Rent/Bed",
    "One Bedroom Asking Rent/SF",
    "Two Bedroom Asking Rent/Bed",
    "Two Bedroom Asking Rent/SF",
    "Three Bedroom Asking Rent/Bed",
    "Three Bedroom Asking Rent/SF",
    "Four Bedroom Asking Rent/Bed",
    "Four Bedroom Asking Rent/SF",
    "Studio Asking Rent/Bed",
    "Studio Asking Rent/SF",
]


# ============================================================================
# CREXI
# ============================================================================

CREXI_TO_MASTER_PROPERTIES: Dict[str, List[str]] = {
    "address": ["Address"],
    "city": ["City"],
    "state": ["State"],
    "zip": ["Zip Code", "Zip"],
    "county": ["County"],
    "property_name": ["Property Name"],
    "crexi_id": ["Property Link"],
    "apn": ["APN"],
    "unit_suite": ["Unit"],
    "property_type": ["Property Type"],
    "zoning": ["Zoning Code"],
    "opportunity_zone": ["Opportunity Zone"],
    "latitude": ["Latitude"],
    "longitude": ["Longitude"],
    "building_size": ["Building SqFt"],
    "lot_size_acres": ["Lot Size Acres"],
    "land_area_sf": ["Lot Size SqFt"],
    "number_of_units": ["Number of Units"],
    "number_of_floors": ["Number of Stories"],
    "number_of_buildings": ["Building Count"],
    "number_of_addresses": ["Number of Addresses"],
    "year_built": ["Year Built"],
    "percent_leased": ["Occupancy"],
    "days_on_market": ["Days on Market"],
    "water": ["Water Code"],
    "sewer": ["Sewer Code"],
    "parcel_value_type": ["Parcel Value Type"],
    "improvement_value": ["Improvement Value"],
    "land_value": ["Land Value"],
    "total_parcel_value": ["Total Parcel Value"],
    "tax_year": ["Tax Year"],
    "annual_tax_bill": ["Annual Tax Bill"],
    "owner_name": ["Owner Name"],
    "owner_address": ["Mailing Address"],
    "mailing_city": ["Mailing Address City"],
    "mailing_state": ["Mailing Address State"],
    "mailing_zip": ["Mailing Address Zip Code"],
    "mailing_care_of": ["Mailing Address Care Of"],
}

CREXI_TO_TRANSACTIONS: Dict[str, List[str]] = {
    "sale_price": ["Sold Price"],
    "transaction_date": ["Sale Date"],
    "price_per_sf": ["Sold Price/SqFt"],
    "price_per_acre": ["Sold Price/Acre"],
    "asking_cap_rate": ["Asking Cap Rate"],
    "cap_rate": ["Closing Cap Rate"],
    "noi": ["Closing NOI"],
    "lease_rate": ["Lease Rate"],
    "lease_type": ["Lease Type"],
    "lease_term": ["Lease Term"],
    "lease_expiration_date": ["Lease Expiration Date"],
    "tenant_name": ["Tenant(s)"],
    "lender": ["Lender"],
    "loan_amount": ["Loan Amount"],
    "loan_type": ["Loan Type"],
    "interest_rate": ["Interest Rate"],
    "maturity_date": ["Maturity Date"],
}


# ============================================================================
# COSTAR
# ============================================================================

COSTAR_TO_MASTER_PROPERTIES: Dict[str, List[str]] = {
    "address": ["Property Address", "Address"],
    "city": ["City"],
    "state": ["State"],
    "zip": ["Zip"],
    "county": ["County Name", "County"],
    "property_name": ["Property Name"],
    "costar_id": ["PropertyID", "Property ID"],
    "building_park": ["Building Park"],
    "property_type": ["PropertyType", "Property Type"],
    "property_subtype": ["Secondary Type", "Property Subtype"],
    "building_class": ["Building Class", "Star Rating"],
    "building_status": ["Building Status"],
    "zoning": ["Zoning"],
    "latitude": ["Latitude"],
    "longitude": ["Longitude"],
    "submarket": ["Submarket Name", "Submarket Cluster"],
    "market": ["Market Name", "Market Segment"],
    "cross_street": ["Cross Street"],
    "building_size": ["Rentable Building Area", "Building SF", "Total Available Space (SF)"],
    "land_area_sf": ["Land Area (SF)"],
    "lot_size_acres": ["Land Area (AC)"],
    "typical_floor_size": ["Typical Floor Size"],
    "number_of_floors": ["Number Of Stories", "Number of Floors"],
    "number_of_units": ["Number Of Units"],
    "number_of_buildings": ["Total Buildings"],
    "year_built": ["Year Built"],
    "month_built": ["Month Built"],
    "year_renovated": ["Year Renovated"],
    "month_renovated": ["Month Renovated"],
    "construction_material": ["Construction Material"],
    "clear_height_ft": ["Ceiling Ht", "Ceiling Height", "Clear Height"],
    "dock_doors": ["Number Of Loading Docks", "Loading Docks"],
    "grade_doors": ["Drive Ins", "Grade Level Doors"],
    "rail_served": ["Rail Lines"],
    "column_spacing": ["Column Spacing"],
    "sprinkler_type": ["Sprinklers"],
    "number_of_cranes": ["Number Of Cranes"],
    "power": ["Power"],
    "office_space": ["Office Space"],
    "number_of_elevators": ["Number Of Elevators"],
    "parking_spaces": ["Number Of Parking Spaces"],
    "parking_ratio": ["Parking Ratio"],
    "percent_leased": ["Percent Leased"],
    "vacancy_percent": ["Vacancy %"],
    "days_on_market": ["Days On Market"],
    "rent_per_sf": ["Rent/SF", "Avg Asking/SF", "Avg Effective/SF"],
    "avg_weighted_rent": ["Average Weighted Rent"],
    "tax_year": ["Tax Year"],
    "owner_name": ["Owner Name", "True Owner Name", "Recorded Owner Name"],
    "owner_contact": ["Owner Contact", "True Owner Contact", "Recorded Owner Contact"],
    "owner_phone": ["Owner Phone", "True Owner Phone", "Recorded Owner Phone"],
    "owner_address": ["Owner Address", "True Owner Address", "Recorded Owner Address"],
    "parent_company": ["Parent Company"],
    "fund_name": ["Fund Name"],
    "property_manager_name": ["Property Manager Name"],
    "property_manager_phone": ["Property Manager Phone"],
    "leasing_company_name": ["Leasing Company Name"],
    "leasing_company_contact": ["Leasing Company Contact"],
    "leasing_company_phone": ["Leasing Company Phone"],
    "developer_name": ["Developer Name"],
    "architect_name": ["Architect Name"],
    "sewer": ["Sewer"],
    "water": ["Water"],
    "gas": ["Gas"],
    "amenities": ["Amenities"],
    "features": ["Features"],
}

COSTAR_TO_TRANSACTIONS: Dict[str, List[str]] = {
    "sale_price": ["Last Sale Price", "For Sale Price"],
    "transaction_date": ["Last Sale Date"],
    "price_per_sf": ["For Sale Price Per SF"],
    "cap_rate": ["Cap Rate"],
    "for_sale_status": ["For Sale Status"],
    "buyer_name": ["True Owner Name", "Recorded Owner Name"],
    "seller_name": ["Sale Company Name", "Sales Company"],
}


@dataclass
class AutoMapResult:
    property_mapping: Dict[str, str] = field(default_factory=dict)
    transaction_mapping: Dict[str, str] = field(default_factory=dict)
    unmapped_columns: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    detected_source: str = "manual"

    @property
    def column_mapping(self) -> Dict[str, str]:
        """Combined mapping in the shape the import endpoint accepts."""
        return {**self.property_mapping, **self.transaction_mapping}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "property_mapping": self.property_mapping,
            "transaction_mapping": self.transaction_mapping,
            "column_mapping": self.column_mapping,
            "unmapped_columns": self.unmapped_columns,
            "warnings": self.warnings,
            "detected_source": self.detected_source,
        }


def _key(header: str) -> str:
    return header.lower().strip()


def detect_import_source(headers: List[str]) -> str:
    """Guess the export source ('costar', 'crexi' or 'manual') from CSV headers."""
    header_set = {_key(h) for h in headers}

    costar_matches = sum(1 for f in COSTAR_DETECTION_FIELDS if _key(f) in header_set)
    if costar_matches >= 2:
        return "costar"

    crexi_matches = sum(1 for f in CREXI_DETECTION_FIELDS if _key(f) in header_set)
    if crexi_matches >= 2:
        return "crexi"

    if "property link" in header_set:
        return "crexi"

    return "manual"


def _map_pass(
    headers: List[str],
    alias_table: Dict[str, List[str]],
    mapped_headers: set,
) -> Dict[str, str]:
    mapping = {}
    for db_field, aliases in alias_table.items():
        for alias in aliases:
            matched = next(
                (h for h in headers if _key(h) == _key(alias) and h not in mapped_headers),
                None
            )
            if matched:
                mapping[matched] = db_field
                mapped_headers.add(matched)
                break
    return mapping


def auto_map_columns(headers: List[str]) -> AutoMapResult:
    """Propose a column mapping for the given CSV headers."""
    source = detect_import_source(headers)

    if source == "crexi":
        property_aliases, transaction_aliases = CREXI_TO_MASTER_PROPERTIES, CREXI_TO_TRANSACTIONS
    else:
        # CoStar tables also cover manual exports with CoStar-like headers
        property_aliases, transaction_aliases = COSTAR_TO_MASTER_PROPERTIES, COSTAR_TO_TRANSACTIONS

    mapped_headers: set = set()
    result = AutoMapResult(detected_source=source)
    result.property_mapping = _map_pass(headers, property_aliases, mapped_headers)
    result.transaction_mapping = _map_pass(headers, transaction_aliases, mapped_headers)

    result.unmapped_columns = [
        h for h in headers if h not in mapped_headers and h not in SKIP_FIELDS
    ]

    mapped_fields = set(result.property_mapping.values())
    for required in ("address", "city", "state"):
        if required not in mapped_fields:
            result.warnings.append(
                f"CRITICAL: No {required} column found. Import will fail for all rows."
            )

    if "Location Type" in result.property_mapping:
        result.warnings.append(
            'WARNING: "Location Type" was mapped. This is NOT an address field and has been removed.'
        )
        del result.property_mapping["Location Type"]

    logger.info(
        f"Auto-mapped {len(result.property_mapping)} property and "
        f"{len(result.transaction_mapping)} transaction columns (source: {source})"
    )
    return result


def parse_csv_file(file_content: bytes) -> Tuple[List[str], List[Dict[str, Any]]]:
    """Parse CSV file and return headers and rows."""
    try:
        # Try UTF-8 first (with or without BOM)
        text_content = file_content.decode("utf-8-sig")
    except UnicodeDecodeError:
        # Fallback to latin-1
        text_content = file_content.decode("latin-1")

    csv_reader = csv.DictReader(io.StringIO(text_content))
    headers = csv_reader.fieldnames or []
    rows = list(csv_reader)

    return list(headers), rows
