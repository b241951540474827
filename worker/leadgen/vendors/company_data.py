"""Firmographic lookups keyed by company domain.

Both providers are optional: without an API key the lookup is a no-op that
returns ``None``. A 404 also means "nothing known" rather than a failure.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from leadgen.core.errors import ErrorKind, ProviderError
from leadgen.core.http import get_json
from leadgen.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)

LOOKUP_TIMEOUT = 10.0


def _first(values: Any) -> Any:
    if isinstance(values, list) and values:
        return values[0]
    return None


def _format_revenue(amount: Optional[float]) -> Optional[str]:
    if not amount:
        return None
    return f"${amount / 1_000_000:.1f}M"


class LookupProvider:
    """Base class for a Bearer-authenticated lookup returning record fields."""

    name = "provider"

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        *,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _request(self, key: str) -> Dict[str, Any]:
        raise NotImplementedError

    def _parse(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    async def lookup(self, key: Optional[str]) -> Optional[Dict[str, Any]]:
        """Return non-empty record fields for ``key`` or ``None`` when nothing is known."""
        if not key or not self.configured:
            return None

        request = self._request(key)
        try:
            payload = await retry_with_backoff(
                lambda: get_json(self._client, timeout=LOOKUP_TIMEOUT, **request),
                max_retries=self.max_retries,
                base_delay_ms=self.base_delay_ms,
                label=f"{self.name}({key})",
            )
        except ProviderError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                logger.debug("%s has no data for %s", self.name, key)
                return None
            raise

        fields = {name: value for name, value in self._parse(payload).items() if value not in (None, "")}
        return fields or None


class CompaniesApiProvider(LookupProvider):
    """The Companies API: primary firmographic source."""

    name = "companies_api"
    base_url = "https://api.thecompaniesapi.com/v1/companies"

    def _request(self, key: str) -> Dict[str, Any]:
        return {
            "url": f"{self.base_url}/{key}",
            "headers": {"Authorization": f"Bearer {self._api_key}", "Content-Type": "application/json"},
        }

    def _parse(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        about = payload.get("about") or {}
        finances = payload.get("finances") or {}
        secondaries = payload.get("secondaries") or {}

        email = None
        pattern = _first(secondaries.get("emailPatterns"))
        if isinstance(pattern, str) and "@" in pattern:
            email = pattern.replace("{first}", "info").replace(".{last}", "").replace("{last}", "")

        return {
            "industry": about.get("industry") or _first(about.get("industries")),
            "revenue_range": finances.get("revenue"),
            "revenue_exact": finances.get("revenueExact"),
            "employee_range": about.get("totalEmployees"),
            "employee_count_exact": about.get("totalEmployeesExact"),
            "company_type": about.get("businessType"),
            "year_founded": about.get("yearFounded"),
            "email": email,
        }


class ClearbitProvider(LookupProvider):
    """Clearbit company lookup: secondary firmographic source."""

    name = "clearbit"
    base_url = "https://company.clearbit.com/v2/companies/find"

    def _request(self, key: str) -> Dict[str, Any]:
        return {
            "url": self.base_url,
            "params": {"domain": key},
            "headers": {"Authorization": f"Bearer {self._api_key}"},
        }

    def _parse(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        category = payload.get("category") or {}
        metrics = payload.get("metrics") or {}
        legal_name = payload.get("legalName") or ""

        company_type = None
        if "LLC" in legal_name:
            company_type = "LLC"
        elif "Corp" in legal_name:
            company_type = "CORP"
        elif "Inc" in legal_name:
            company_type = "INC"

        employees = metrics.get("employees")
        return {
            "industry": category.get("industry"),
            "revenue_range": metrics.get("estimatedAnnualRevenue")
            or _format_revenue(metrics.get("annualRevenue")),
            "revenue_exact": metrics.get("annualRevenue"),
            "employee_range": metrics.get("employeesRange") or (str(employees) if employees else None),
            "employee_count_exact": employees,
            "company_type": company_type,
            "year_founded": payload.get("foundedYear"),
            "email": _first((payload.get("site") or {}).get("emailAddresses")),
        }
