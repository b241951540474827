"""Name-keyword heuristics used by fast mode.

These are coarse, low-confidence guesses with no measured accuracy. They only
fill empty fields and are tagged ``confidence: low`` in ``data_sources`` so
they are never mistaken for provider data.
"""

from typing import Any, Dict, Optional

from leadgen.etl.transform import determine_industry, extract_company_type
from leadgen.models import PlaceRecord

SOURCE_NAME = "name_heuristics"
CONFIDENCE = "low"

_REVENUE_BUCKETS = (
    (("enterprise", "corp", "international"), "$10M-$50M"),
    (("consulting", "services"), "$500K-$5M"),
    (("llc", "inc"), "$1M-$10M"),
)
DEFAULT_REVENUE = "$100K-$1M"

_EMPLOYEE_BUCKETS = (
    (("enterprise", "international"), "100-500"),
    (("corp", "corporation"), "50-200"),
    (("consulting", "services"), "10-50"),
)
DEFAULT_EMPLOYEES = "1-10"


def _bucket(name: Optional[str], buckets, default: str) -> str:
    lowered = (name or "").lower()
    for keywords, label in buckets:
        if any(keyword in lowered for keyword in keywords):
            return label
    return default


def estimate_revenue(name: Optional[str]) -> str:
    return _bucket(name, _REVENUE_BUCKETS, DEFAULT_REVENUE)


def estimate_employees(name: Optional[str]) -> str:
    return _bucket(name, _EMPLOYEE_BUCKETS, DEFAULT_EMPLOYEES)


def estimate_fields(record: PlaceRecord) -> Dict[str, Any]:
    return {
        "company_type": extract_company_type(record.name),
        "revenue_range": estimate_revenue(record.name),
        "employee_range": estimate_employees(record.name),
        "industry": determine_industry(record.types, record.category),
    }
