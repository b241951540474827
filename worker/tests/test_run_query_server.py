import pytest

from leadgen.core.config import EnrichmentMode
from leadgen.core.errors import ConfigurationError, InvalidQueryError, SearchUnavailableError, StoreError
from leadgen.core.search_service import SearchResult
from leadgen.jobs import run_query_server
from leadgen.models import PlaceRecord


class DummySettings:
    def __init__(self):
        self.worker_port = 9000
        self.max_pages = 3


class FakeService:
    mode = EnrichmentMode.FAST

    def __init__(self):
        self.calls = []
        self.error = None
        self.result = SearchResult([PlaceRecord(external_id="p1", name="Acme", address="Main St")])

    async def search(self, query, force_fresh=False, max_results=None):
        self.calls.append(("search", query, force_fresh, max_results))
        if self.error is not None:
            raise self.error
        if not query.strip():
            raise InvalidQueryError("query must not be empty")
        return self.result

    async def enrich(self, place_ids):
        self.calls.append(("enrich", place_ids))
        if self.error is not None:
            raise self.error
        return {
            "results": [{"place_id": place_id, "error": "Place not found"} for place_id in place_ids],
            "summary": {"total": len(place_ids), "enriched": 0, "failed": len(place_ids)},
        }


@pytest.fixture
def service(monkeypatch):
    monkeypatch.setattr(run_query_server, "get_settings", lambda: DummySettings())
    return FakeService()


@pytest.fixture
def client(service):
    return run_query_server.create_app(service).test_client()


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert payload["enrichment_mode"] == "fast"


def test_search_returns_places(client, service):
    response = client.post("/search", json={"query": "dentists Austin", "force_fresh": True, "max_results": "5"})

    assert response.status_code == 200
    data = response.get_json()["data"]
    assert data["places"][0]["external_id"] == "p1"
    assert "warning" not in data
    assert service.calls == [("search", "dentists Austin", True, 5)]


def test_search_includes_fallback_warning(client, service):
    service.result = SearchResult([], warning="Using cached results due to API unavailability")

    data = client.post("/search", json={"query": "dentists"}).get_json()["data"]

    assert data == {"places": [], "warning": "Using cached results due to API unavailability"}


def test_search_validates_payload(client, service):
    assert client.post("/search", json={}).status_code == 400
    assert client.post("/search", json={"query": "x", "max_results": "bad"}).status_code == 400
    assert client.post("/search", json={"query": "x", "max_results": 0}).status_code == 400
    assert service.calls == [("search", "", False, None)]


@pytest.mark.parametrize(
    "error, status",
    [
        (ConfigurationError("GOOGLE_API_KEY is required"), 500),
        (SearchUnavailableError("Search service temporarily unavailable"), 503),
    ],
)
def test_search_maps_errors_to_status_codes(client, service, error, status):
    service.error = error

    response = client.post("/search", json={"query": "dentists"})

    assert response.status_code == status
    assert "error" in response.get_json()


def test_enrich_validates_and_runs(client, service):
    assert client.post("/enrich", json={"place_ids": "p1"}).status_code == 400

    response = client.post("/enrich", json={"place_ids": ["p1"]})

    assert response.status_code == 200
    assert response.get_json()["data"]["summary"] == {"total": 1, "enriched": 0, "failed": 1}


def test_enrich_store_failure_is_500(client, service):
    service.error = StoreError("connection refused")

    assert client.post("/enrich", json={"place_ids": ["p1"]}).status_code == 500
