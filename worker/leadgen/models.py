"""Core data models shared by the search and enrichment pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class WebsiteStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    BROKEN = "broken"
    REDIRECTED = "redirected"
    UNKNOWN = "unknown"
    NO_WEBSITE = "no_website"


class EnrichmentLevel(str, Enum):
    BASIC = "basic"
    FAST = "fast"
    ENHANCED = "enhanced"
    PREMIUM = "premium"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    @classmethod
    def highest(cls, *levels: Optional["EnrichmentLevel"]) -> "EnrichmentLevel":
        present = [level for level in levels if level is not None]
        if not present:
            return cls.BASIC
        return max(present, key=lambda level: level.rank)


_LEVEL_RANK = {
    EnrichmentLevel.BASIC: 0,
    EnrichmentLevel.FAST: 1,
    EnrichmentLevel.ENHANCED: 2,
    EnrichmentLevel.PREMIUM: 3,
}

# Directory attributes refreshed by every provider search.
CORE_FIELDS = (
    "name",
    "address",
    "city",
    "latitude",
    "longitude",
    "category",
    "phone",
    "website",
)


@dataclass(slots=True)
class PlaceRecord:
    """Canonical stored snapshot of one business."""

    external_id: str
    name: str
    address: str
    city: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    category: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None

    industry: Optional[str] = None
    revenue_range: Optional[str] = None
    revenue_exact: Optional[float] = None
    employee_range: Optional[str] = None
    employee_count_exact: Optional[int] = None
    company_type: Optional[str] = None
    year_founded: Optional[int] = None
    company_age_years: Optional[int] = None

    email: Optional[str] = None
    email_verified: Optional[bool] = None
    email_verified_at: Optional[datetime] = None
    phone_verified: Optional[bool] = None
    phone_verified_at: Optional[datetime] = None
    website_status: Optional[WebsiteStatus] = None
    website_verified_at: Optional[datetime] = None
    contact_form_url: Optional[str] = None
    contact_form_working: Optional[bool] = None
    contact_form_verified_at: Optional[datetime] = None

    business_verified: Optional[bool] = None
    tax_id: Optional[str] = None
    registration_state: Optional[str] = None
    business_status: Optional[str] = None

    enrichment_level: EnrichmentLevel = EnrichmentLevel.BASIC
    last_enriched_at: Optional[datetime] = None
    data_sources: Dict[str, Any] = field(default_factory=dict)
    stored_at: Optional[datetime] = None

    # Provider type tags; used for industry mapping, never persisted.
    types: List[str] = field(default_factory=list, repr=False, compare=False)

    def copy(self, **changes: Any) -> "PlaceRecord":
        clone = replace(self, **changes)
        if "data_sources" not in changes:
            clone.data_sources = dict(self.data_sources)
        if "types" not in changes:
            clone.types = list(self.types)
        return clone

    def refreshed_with(self, fresh: "PlaceRecord") -> "PlaceRecord":
        """Overlay directory attributes from a fresh search onto this stored record."""
        changes = {name: getattr(fresh, name) for name in CORE_FIELDS if getattr(fresh, name) is not None}
        return self.copy(types=list(fresh.types), **changes)

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("types", None)
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()
            elif isinstance(value, Enum):
                payload[key] = value.value
        return payload


def field_names() -> List[str]:
    return [f.name for f in fields(PlaceRecord) if f.name != "types"]
