"""Cache-first search and on-demand enrichment over the place store."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

import httpx

from leadgen.core.config import EnrichmentMode, Settings
from leadgen.core.db import PlaceStore
from leadgen.core.detail_enhancer import DetailEnhancer
from leadgen.core.errors import (
    ConfigurationError,
    InvalidQueryError,
    ProviderError,
    SearchUnavailableError,
    StoreError,
)
from leadgen.core.retry import pause
from leadgen.enrichment.orchestrator import EnrichmentOrchestrator
from leadgen.etl.query import dedupe_places, expand_query
from leadgen.etl.transform import to_place_record
from leadgen.models import PlaceRecord
from leadgen.vendors.google_places import PlacesClient

logger = logging.getLogger(__name__)

VARIANT_DELAY_SECONDS = 0.5
STALE_CACHE_WARNING = "Using cached results due to API unavailability"


@dataclass
class SearchResult:
    places: List[PlaceRecord]
    warning: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"places": [place.to_dict() for place in self.places]}
        if self.warning:
            payload["warning"] = self.warning
        return payload


class SearchService:
    """Entry point composing cache, provider search, enhancement, enrichment and persistence."""

    def __init__(
        self,
        store: PlaceStore,
        settings: Settings,
        *,
        client_factory: Callable[[], httpx.AsyncClient] = httpx.AsyncClient,
        mode: Optional[EnrichmentMode] = None,
        variant_delay: float = VARIANT_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self._settings = settings
        self._client_factory = client_factory
        self.mode = mode or settings.enrichment_mode
        self.variant_delay = variant_delay

    @property
    def freshness(self) -> timedelta:
        return timedelta(hours=self._settings.cache_freshness_hours)

    # ---------- Cache ----------

    async def _read_cache(self, query: str, freshness: Optional[timedelta]) -> List[PlaceRecord]:
        try:
            return await asyncio.to_thread(
                self._store.find_by_query_substring,
                query,
                freshness,
                self._settings.cache_result_limit,
            )
        except StoreError as exc:
            logger.warning("Cache read failed for %r; treating as a miss: %s", query, exc)
            return []

    async def _load_existing(self, external_ids: Sequence[str]) -> Dict[str, PlaceRecord]:
        try:
            return await asyncio.to_thread(self._store.get_by_external_ids, list(external_ids))
        except StoreError as exc:
            logger.warning("Could not load stored records for overlay: %s", exc)
            return {}

    # ---------- Fresh search ----------

    async def _search_variants(
        self, places: PlacesClient, query: str, max_results: Optional[int]
    ) -> List[Dict[str, Any]]:
        variants = expand_query(query)
        logger.info("Searching %d query variants for %r", len(variants), query)

        result_sets: List[List[Dict[str, Any]]] = []
        last_error: Optional[ProviderError] = None
        for index, variant in enumerate(variants):
            if index:
                await pause(self.variant_delay)
            try:
                result_sets.append(await places.search(variant, max_results=max_results))
            except ProviderError as exc:
                logger.warning("Query variant %r failed: %s", variant, exc)
                last_error = exc

        if not result_sets and last_error is not None:
            raise last_error

        unique = dedupe_places(*result_sets)
        if max_results is not None:
            unique = unique[:max_results]
        logger.info("Collected %d unique places for %r", len(unique), query)
        return unique

    def _to_records(self, results: Sequence[Dict[str, Any]]) -> List[PlaceRecord]:
        records: List[PlaceRecord] = []
        for result in results:
            try:
                records.append(to_place_record(result))
            except ValueError as exc:
                logger.debug("Skipping unusable result: %s", exc)
        return records

    async def _fetch_fresh(self, query: str, max_results: Optional[int]) -> List[PlaceRecord]:
        async with self._client_factory() as client:
            places = PlacesClient(client, self._settings.google_api_key, max_pages=self._settings.max_pages)
            stubs = await self._search_variants(places, query, max_results)
            detailed = await DetailEnhancer(places, mode=self.mode).enhance(stubs)
            records = self._to_records(detailed)

            existing = await self._load_existing([record.external_id for record in records])
            records = [
                existing[record.external_id].refreshed_with(record) if record.external_id in existing else record
                for record in records
            ]

            orchestrator = EnrichmentOrchestrator.from_settings(client, self._settings, mode=self.mode)
            enriched = await orchestrator.enrich_many(records)

        return await asyncio.to_thread(self._store.upsert_many, enriched)

    async def search(
        self,
        query: str,
        force_fresh: bool = False,
        max_results: Optional[int] = None,
    ) -> SearchResult:
        """Serve fresh cached matches, or search the provider and persist the results.

        A provider failure falls back to any cached match regardless of age,
        flagged with a warning. Without one, ``SearchUnavailableError`` is raised.
        """
        query = " ".join((query or "").split())
        if not query:
            raise InvalidQueryError("query must not be empty")
        if max_results is not None and max_results <= 0:
            raise InvalidQueryError("max_results must be positive")

        if not force_fresh:
            cached = await self._read_cache(query, self.freshness)
            if cached:
                logger.info("Serving %d cached places for %r", len(cached), query)
                return SearchResult(cached[:max_results] if max_results else cached)

        if not self._settings.google_api_key:
            raise ConfigurationError("GOOGLE_API_KEY is required for fresh searches")

        try:
            places = await self._fetch_fresh(query, max_results)
        except ProviderError as exc:
            logger.error("Fresh search for %r failed: %s", query, exc)
            stale = await self._read_cache(query, None)
            if stale:
                logger.warning("Serving %d stale cached places for %r", len(stale), query)
                return SearchResult(stale[:max_results] if max_results else stale, warning=STALE_CACHE_WARNING)
            raise SearchUnavailableError("Search service temporarily unavailable") from exc

        return SearchResult(places)

    # ---------- Enrichment ----------

    async def enrich(self, place_ids: Sequence[str]) -> Dict[str, Any]:
        """Run a comprehensive enrichment pass over stored records and persist them."""
        ids = list(dict.fromkeys(str(place_id).strip() for place_id in place_ids or [] if place_id))
        ids = [place_id for place_id in ids if place_id]
        if not ids:
            raise InvalidQueryError("place_ids must be a non-empty list")

        stored = await asyncio.to_thread(self._store.get_by_external_ids, ids)
        found = [stored[place_id] for place_id in ids if place_id in stored]

        enriched: List[PlaceRecord] = []
        if found:
            async with self._client_factory() as client:
                orchestrator = EnrichmentOrchestrator.from_settings(
                    client, self._settings, mode=EnrichmentMode.COMPREHENSIVE
                )
                enriched = await orchestrator.enrich_many(found)
            enriched = await asyncio.to_thread(self._store.upsert_many, enriched)
        by_id = {place.external_id: place for place in enriched}

        results: List[Dict[str, Any]] = []
        for place_id in ids:
            place = by_id.get(place_id)
            if place is None:
                results.append({"place_id": place_id, "error": "Place not found"})
            elif place.data_sources.get("error"):
                results.append({"place_id": place_id, "error": "Enrichment failed"})
            else:
                results.append({"place_id": place_id, "status": "enriched", "data": place.to_dict()})

        succeeded = sum(1 for result in results if result.get("status") == "enriched")
        summary = {"total": len(ids), "enriched": succeeded, "failed": len(ids) - succeeded}
        logger.info("Enrichment summary: %s", summary)
        return {"results": results, "summary": summary}
