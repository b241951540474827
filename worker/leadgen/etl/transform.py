"""Utilities for transforming Google Places responses into place records."""

import logging
import re
from typing import Any, Dict, Iterable, Optional

from leadgen.models import PlaceRecord

logger = logging.getLogger(__name__)

_IGNORE_TYPES = {"point_of_interest", "establishment", "political", "premise", "geocode"}

INDUSTRY_BY_TYPE = {
    "restaurant": "Food & Beverage",
    "food": "Food & Beverage",
    "meal_takeaway": "Food & Beverage",
    "cafe": "Food & Beverage",
    "bar": "Food & Beverage",
    "store": "Retail",
    "clothing_store": "Retail - Fashion",
    "electronics_store": "Retail - Electronics",
    "furniture_store": "Retail - Furniture",
    "car_dealer": "Automotive",
    "car_repair": "Automotive Services",
    "gas_station": "Automotive Services",
    "hospital": "Healthcare",
    "doctor": "Healthcare",
    "pharmacy": "Healthcare",
    "dentist": "Healthcare",
    "veterinary_care": "Healthcare - Veterinary",
    "bank": "Financial Services",
    "insurance_agency": "Financial Services",
    "real_estate_agency": "Real Estate",
    "lawyer": "Legal Services",
    "accounting": "Professional Services",
    "beauty_salon": "Beauty & Wellness",
    "spa": "Beauty & Wellness",
    "gym": "Fitness & Recreation",
    "school": "Education",
    "university": "Education",
    "lodging": "Hospitality",
    "travel_agency": "Travel & Tourism",
    "plumber": "Home Services",
    "electrician": "Home Services",
    "contractor": "Construction",
    "general_contractor": "Construction",
    "moving_company": "Transportation & Logistics",
    "storage": "Storage & Warehousing",
}

_COMPANY_TYPES = (
    ("LLC", "LLC"),
    ("L.L.C.", "LLC"),
    ("Inc", "INC"),
    ("Inc.", "INC"),
    ("Incorporated", "INCORPORATED"),
    ("Corp", "CORP"),
    ("Corp.", "CORP"),
    ("Corporation", "CORPORATION"),
    ("Ltd", "LTD"),
    ("Ltd.", "LTD"),
    ("Limited", "LIMITED"),
    ("LLP", "LLP"),
    ("L.L.P.", "LLP"),
    ("Partnership", "PARTNERSHIP"),
    ("Co", "CO"),
    ("Co.", "CO"),
    ("Company", "COMPANY"),
)


def parse_city(address_components: Iterable[Dict[str, Any]]) -> Optional[str]:
    for component in address_components or []:
        types = set(component.get("types", []))
        if "locality" in types or "postal_town" in types:
            return component.get("long_name")
    return None


def city_from_address(formatted_address: Optional[str]) -> Optional[str]:
    parts = [part.strip() for part in (formatted_address or "").split(",")]
    if len(parts) > 1 and parts[-2]:
        return parts[-2]
    return None


def _extract_primary_type(types: Iterable[str]) -> Optional[str]:
    types = list(types or [])
    for type_name in types:
        if type_name not in _IGNORE_TYPES:
            return type_name
    return types[0] if types else None


def extract_company_type(business_name: Optional[str]) -> Optional[str]:
    """Return the legal-form suffix found in a business name, normalised."""
    if not business_name:
        return None
    for needle, normalised in _COMPANY_TYPES:
        pattern = rf"(?<![A-Za-z0-9]){re.escape(needle)}(?![A-Za-z0-9])"
        if re.search(pattern, business_name, re.IGNORECASE):
            return normalised
    return None


def determine_industry(types: Iterable[str], category: Optional[str] = None) -> Optional[str]:
    types = list(types or [])
    if not types and category:
        types = [category.replace(" ", "_").lower()]
    for type_name in types:
        if type_name in INDUSTRY_BY_TYPE:
            return INDUSTRY_BY_TYPE[type_name]
    primary = _extract_primary_type(types)
    if primary:
        return primary.replace("_", " ").title()
    return None


def to_place_record(result: Dict[str, Any]) -> PlaceRecord:
    """Build a basic PlaceRecord from a text-search or details payload."""
    place_id = result.get("place_id")
    if not place_id:
        raise ValueError("place_id is required to build a place record")

    geometry = result.get("geometry", {}).get("location", {})
    address = result.get("formatted_address") or ""
    city = parse_city(result.get("address_components", [])) or city_from_address(address)
    primary_type = _extract_primary_type(result.get("types", []))

    return PlaceRecord(
        external_id=place_id,
        name=result.get("name") or "",
        address=address,
        city=city,
        latitude=geometry.get("lat"),
        longitude=geometry.get("lng"),
        category=primary_type.replace("_", " ") if primary_type else None,
        phone=result.get("formatted_phone_number") or result.get("international_phone_number"),
        website=result.get("website"),
        types=list(result.get("types", [])),
    )
