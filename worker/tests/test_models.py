from datetime import datetime, timezone

from leadgen.models import EnrichmentLevel, PlaceRecord, WebsiteStatus, field_names


def test_to_dict_serialises_enums_and_datetimes():
    stamp = datetime(2024, 5, 1, tzinfo=timezone.utc)
    record = PlaceRecord(
        external_id="p1",
        name="Acme",
        address="Main St",
        website_status=WebsiteStatus.ACTIVE,
        last_enriched_at=stamp,
        types=["store"],
    )

    payload = record.to_dict()

    assert payload["website_status"] == "active"
    assert payload["enrichment_level"] == "basic"
    assert payload["last_enriched_at"] == "2024-05-01T00:00:00+00:00"
    assert "types" not in payload


def test_copy_does_not_share_mutable_state():
    record = PlaceRecord(external_id="p1", name="Acme", address="Main St", data_sources={"google_places": True})

    clone = record.copy()
    clone.data_sources["clearbit"] = False
    clone.types.append("store")

    assert record.data_sources == {"google_places": True}
    assert record.types == []


def test_refreshed_with_overlays_directory_fields_only():
    stored = PlaceRecord(
        external_id="p1",
        name="Old",
        address="Old St",
        phone="(512) 555-0100",
        revenue_range="$1M-$10M",
        enrichment_level=EnrichmentLevel.ENHANCED,
    )
    fresh = PlaceRecord(external_id="p1", name="New", address="New St", types=["dentist"])

    merged = stored.refreshed_with(fresh)

    assert merged.name == "New"
    assert merged.address == "New St"
    assert merged.phone == "(512) 555-0100"
    assert merged.revenue_range == "$1M-$10M"
    assert merged.enrichment_level is EnrichmentLevel.ENHANCED
    assert merged.types == ["dentist"]


def test_field_names_excludes_transient_types():
    names = field_names()
    assert "types" not in names
    assert names[0] == "external_id"
