"""Priority-ordered merge of per-source field contributions into a record."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from leadgen.models import CORE_FIELDS, PlaceRecord, field_names

# Highest priority first.
SOURCE_PRIORITY = (
    "companies_api",
    "clearbit",
    "verifik",
    "website",
    "phone_verification",
    "email_verification",
    "business_name",
    "place_types",
    "name_heuristics",
)

# data_sources key recording which source last wrote each field.
FIELD_SOURCES_KEY = "field_sources"

_PROTECTED = set(CORE_FIELDS) | {"external_id", "enrichment_level", "last_enriched_at", "data_sources", "stored_at"}
MERGEABLE_FIELDS = frozenset(name for name in field_names() if name not in _PROTECTED)


@dataclass(frozen=True)
class SourceResult:
    source: str
    fields: Dict[str, Any] = field(default_factory=dict)


def priority(source: str) -> int:
    try:
        return SOURCE_PRIORITY.index(source)
    except ValueError:
        return len(SOURCE_PRIORITY)


def _may_write(record: PlaceRecord, name: str, source: str, provenance: Dict[str, str], only_missing: bool) -> bool:
    if getattr(record, name) is None:
        return True
    if only_missing:
        return False
    owner = provenance.get(name)
    return owner is None or priority(source) <= priority(owner)


def apply_sources(
    record: PlaceRecord,
    results: Iterable[SourceResult],
    *,
    only_missing: bool = False,
) -> Tuple[PlaceRecord, Dict[str, List[str]]]:
    """Apply source results to a copy of ``record`` in priority order.

    Within one pass the first source to supply a field wins. A value already
    on the record is only replaced by a source of equal or higher priority
    than the one that wrote it, and absent values never clear anything. With
    ``only_missing`` a value is written only into an empty field. Returns the
    merged record and, per source, the field names it actually set.
    """
    merged = record.copy()
    provenance = dict(record.data_sources.get(FIELD_SOURCES_KEY) or {})
    claimed: set = set()
    applied: Dict[str, List[str]] = {}

    for result in sorted(results, key=lambda item: priority(item.source)):
        written: List[str] = []
        for name, value in result.fields.items():
            if name not in MERGEABLE_FIELDS or value is None or name in claimed:
                continue
            if not _may_write(merged, name, result.source, provenance, only_missing):
                continue
            setattr(merged, name, value)
            provenance[name] = result.source
            claimed.add(name)
            written.append(name)
        applied[result.source] = sorted(written)

    merged.data_sources = {**merged.data_sources, FIELD_SOURCES_KEY: provenance}
    return merged, applied
