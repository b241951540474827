"""Multi-source enrichment of place records under a wall-clock budget.

Fast mode touches no network and fills empty firmographic fields from
name-keyword estimates. Comprehensive mode queries every configured source
for each record, in batches, and merges their answers in source-priority
order. When the budget runs out between batches the remaining records are
handled in fast mode instead.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

import httpx

from leadgen.core.config import EnrichmentMode, Settings
from leadgen.core.retry import batch_count, chunked, pause
from leadgen.core.site_prober import SiteProber, WebsiteReport, extract_domain
from leadgen.enrichment import estimates
from leadgen.enrichment.merge import SourceResult, apply_sources
from leadgen.enrichment.verification import verify_email, verify_phone
from leadgen.etl.transform import determine_industry, extract_company_type
from leadgen.models import EnrichmentLevel, PlaceRecord, WebsiteStatus
from leadgen.vendors.business_registry import VerifikProvider
from leadgen.vendors.company_data import ClearbitProvider, CompaniesApiProvider, LookupProvider

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 1.0

# Sources that say something about the business itself rather than
# restating what the search already returned.
_SUBSTANTIVE_SOURCES = {"companies_api", "clearbit", "verifik", "website", "phone_verification", "email_verification"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrichmentOrchestrator:
    def __init__(
        self,
        *,
        mode: EnrichmentMode,
        budget_seconds: float,
        prober: Optional[SiteProber] = None,
        firmographic_providers: Sequence[LookupProvider] = (),
        registry_provider: Optional[LookupProvider] = None,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        phone_region: Optional[str] = "US",
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.mode = mode
        self.budget_seconds = budget_seconds
        self._prober = prober
        self._firmographic_providers = list(firmographic_providers)
        self._registry_provider = registry_provider
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.phone_region = phone_region
        self._clock = clock
        self._now = now

    @classmethod
    def from_settings(
        cls,
        client: httpx.AsyncClient,
        settings: Settings,
        *,
        mode: Optional[EnrichmentMode] = None,
    ) -> "EnrichmentOrchestrator":
        return cls(
            mode=mode or settings.enrichment_mode,
            budget_seconds=settings.enrichment_budget_seconds,
            prober=SiteProber(client),
            firmographic_providers=[
                CompaniesApiProvider(client, settings.companies_api_key),
                ClearbitProvider(client, settings.clearbit_api_key),
            ],
            registry_provider=VerifikProvider(client, settings.verifik_api_key),
            phone_region=settings.default_phone_region,
        )

    # ---------- Fast mode ----------

    def estimate(self, record: PlaceRecord) -> PlaceRecord:
        """Cheap name-only enrichment; never issues a network call."""
        estimated = SourceResult(estimates.SOURCE_NAME, estimates.estimate_fields(record))
        merged, applied = apply_sources(record, [estimated], only_missing=True)

        if merged.website and merged.website_status is None:
            merged.website_status = WebsiteStatus.UNKNOWN

        sources = dict(merged.data_sources)
        sources.pop("error", None)
        sources.setdefault("google_places", True)
        sources[estimates.SOURCE_NAME] = {
            "confidence": estimates.CONFIDENCE,
            "fields": applied.get(estimates.SOURCE_NAME, []),
        }
        merged.data_sources = sources
        merged.enrichment_level = EnrichmentLevel.highest(record.enrichment_level, EnrichmentLevel.FAST)
        merged.last_enriched_at = self._now()
        return merged

    # ---------- Comprehensive mode ----------

    def _website_fields(self, report: WebsiteReport) -> Dict[str, Any]:
        fields: Dict[str, Any] = {"website_status": report.status}
        if report.checked_at is not None:
            fields["website_verified_at"] = report.checked_at
        if report.emails:
            fields["email"] = report.emails[0]
        if report.contact_form_url:
            fields["contact_form_url"] = report.contact_form_url
        if report.contact_form_checked_at is not None:
            fields["contact_form_working"] = bool(report.contact_form_working)
            fields["contact_form_verified_at"] = report.contact_form_checked_at
        return fields

    def _lookups(self, record: PlaceRecord) -> List[Tuple[str, Awaitable[Any]]]:
        domain = extract_domain(record.website)
        lookups: List[Tuple[str, Awaitable[Any]]] = []
        if domain:
            for provider in self._firmographic_providers:
                if provider.configured:
                    lookups.append((provider.name, provider.lookup(domain)))
        if self._registry_provider is not None and self._registry_provider.configured and record.name:
            lookups.append((self._registry_provider.name, self._registry_provider.lookup(record.name)))
        if self._prober is not None and record.website:
            lookups.append(("website", self._prober.analyze(record.website)))
        return lookups

    async def enrich_one(self, record: PlaceRecord) -> PlaceRecord:
        """Query every configured source for one record and merge the answers."""
        now = self._now()
        lookups = self._lookups(record)
        outcomes = await asyncio.gather(*(awaitable for _, awaitable in lookups), return_exceptions=True)

        results: List[SourceResult] = []
        attempted: Dict[str, bool] = {}
        for (source, _), outcome in zip(lookups, outcomes):
            if isinstance(outcome, BaseException):
                logger.warning("Source %s failed for %s: %s", source, record.external_id, outcome)
                attempted[source] = False
                continue
            if isinstance(outcome, WebsiteReport):
                outcome = self._website_fields(outcome)
            attempted[source] = bool(outcome)
            if outcome:
                results.append(SourceResult(source, outcome))

        results.append(SourceResult("business_name", {"company_type": extract_company_type(record.name)}))
        results.append(SourceResult("place_types", {"industry": determine_industry(record.types, record.category)}))

        merged, applied = apply_sources(record, results)
        if not merged.website:
            merged.website_status = WebsiteStatus.NO_WEBSITE

        checks: List[SourceResult] = []
        if merged.phone:
            phone_check = verify_phone(merged.phone, self.phone_region)
            checks.append(
                SourceResult("phone_verification", {"phone_verified": phone_check.verified, "phone_verified_at": now})
            )
        if merged.email:
            checks.append(
                SourceResult(
                    "email_verification", {"email_verified": verify_email(merged.email), "email_verified_at": now}
                )
            )
        merged, verified = apply_sources(merged, checks)
        applied.update(verified)

        if merged.year_founded:
            try:
                merged.company_age_years = now.year - int(merged.year_founded)
            except (TypeError, ValueError):
                logger.warning("Ignoring unparseable year_founded %r for %s", merged.year_founded, record.external_id)

        sources = dict(merged.data_sources)
        sources.pop("error", None)
        sources.setdefault("google_places", True)
        for source, ok in attempted.items():
            if not ok:
                sources[source] = False
        for source, names in applied.items():
            if names:
                sources[source] = {"fields": names}
            elif source in attempted:
                sources[source] = False

        contributed = any(applied.get(source) for source in _SUBSTANTIVE_SOURCES)
        achieved = EnrichmentLevel.ENHANCED if contributed else EnrichmentLevel.BASIC
        merged.enrichment_level = EnrichmentLevel.highest(record.enrichment_level, achieved)
        merged.data_sources = sources
        merged.last_enriched_at = now
        logger.info(
            "Enriched %s (%s) level=%s sources=%s",
            record.name,
            record.external_id,
            merged.enrichment_level.value,
            ", ".join(sorted(source for source, names in applied.items() if names)) or "none",
        )
        return merged

    async def _enrich_isolated(self, record: PlaceRecord) -> PlaceRecord:
        try:
            return await self.enrich_one(record)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to enrich place %s", record.external_id)
            degraded = record.copy()
            degraded.data_sources = {**record.data_sources, "error": "enrichment failed"}
            return degraded

    async def enrich_many(self, records: Sequence[PlaceRecord]) -> List[PlaceRecord]:
        """Enrich records in order; one record's failure never fails the batch."""
        records = list(records)
        if self.mode is EnrichmentMode.FAST:
            return [self.estimate(record) for record in records]

        started = self._clock()
        total_batches = batch_count(len(records), self.batch_size)
        enriched: List[PlaceRecord] = []
        for index, batch in enumerate(chunked(records, self.batch_size), start=1):
            elapsed = self._clock() - started
            if elapsed > self.budget_seconds:
                remaining = records[len(enriched) :]
                logger.warning(
                    "Enrichment budget of %.0fs exceeded after %.1fs; %d places fall back to fast mode",
                    self.budget_seconds,
                    elapsed,
                    len(remaining),
                )
                enriched.extend(self.estimate(record) for record in remaining)
                break

            logger.info("Processing enrichment batch %d/%d (%d places)", index, total_batches, len(batch))
            enriched.extend(await asyncio.gather(*(self._enrich_isolated(record) for record in batch)))
            if index < total_batches:
                await pause(self.batch_delay)
        return enriched
