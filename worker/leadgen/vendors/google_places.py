"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from leadgen.core.errors import ErrorKind, ProviderError
from leadgen.core.http import USER_AGENT, get_json
from leadgen.core.retry import pause, retry_with_backoff

logger = logging.getLogger(__name__)
_BASE_URL = "https://maps.googleapis.com/maps/api/place"

MAX_PAGES = 3
PAGE_TOKEN_DELAY_SECONDS = 2.0
SEARCH_TIMEOUT = 10.0
DETAILS_TIMEOUT = 15.0
DETAIL_FIELDS = (
    "place_id,name,formatted_address,geometry,types,formatted_phone_number,"
    "international_phone_number,website,rating,user_ratings_total,address_components"
)

_STATUS_KINDS = {
    "REQUEST_DENIED": ErrorKind.UNAUTHORIZED,
    "OVER_QUERY_LIMIT": ErrorKind.RATE_LIMITED,
    "INVALID_REQUEST": ErrorKind.INVALID_REQUEST,
    "NOT_FOUND": ErrorKind.NOT_FOUND,
    "UNKNOWN_ERROR": ErrorKind.UNKNOWN,
}


class GooglePlacesError(ProviderError):
    """Raised when the Places API returns a non-successful response."""

    def __init__(self, status: str, message: Optional[str] = None) -> None:
        super().__init__(_STATUS_KINDS.get(status, ErrorKind.UNKNOWN), message or status)
        self.status = status


def _check_status(payload: Dict[str, Any], operation: str) -> None:
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("%s failed: status=%s, error_message=%s", operation, status, payload.get("error_message"))
        raise GooglePlacesError(status or "UNKNOWN_ERROR", payload.get("error_message"))


class PlacesClient:
    """Text search with pagination plus per-place details lookups."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        *,
        max_pages: int = MAX_PAGES,
        page_delay: float = PAGE_TOKEN_DELAY_SECONDS,
        max_retries: int = 3,
        base_delay_ms: int = 1000,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self.max_pages = max(1, min(max_pages, MAX_PAGES))
        self.page_delay = page_delay
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms

    async def text_search(self, query: str, pagetoken: Optional[str] = None) -> Dict[str, Any]:
        params = {"query": query, "key": self._api_key, "type": "establishment"}
        if pagetoken:
            params["pagetoken"] = pagetoken
        payload = await get_json(
            self._client,
            f"{_BASE_URL}/textsearch/json",
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=SEARCH_TIMEOUT,
        )
        _check_status(payload, "text_search")
        return payload

    async def place_details(self, place_id: str) -> Dict[str, Any]:
        params = {"place_id": place_id, "key": self._api_key, "fields": DETAIL_FIELDS}
        payload = await get_json(
            self._client,
            f"{_BASE_URL}/details/json",
            params=params,
            headers={"User-Agent": USER_AGENT},
            timeout=DETAILS_TIMEOUT,
        )
        _check_status(payload, "place_details")
        return payload.get("result", {})

    async def _fetch_page(self, query: str, pagetoken: Optional[str]) -> Dict[str, Any]:
        return await retry_with_backoff(
            lambda: self.text_search(query, pagetoken),
            max_retries=self.max_retries,
            base_delay_ms=self.base_delay_ms,
            label=f"text_search({query!r})",
        )

    async def search(self, query: str, max_results: Optional[int] = None) -> List[Dict[str, Any]]:
        """Run one query through up to ``max_pages`` pages, unique by place_id."""
        results: List[Dict[str, Any]] = []
        seen: set = set()
        page_token: Optional[str] = None
        pages = 0
        token_retried = False

        while pages < self.max_pages:
            try:
                response = await self._fetch_page(query, page_token)
            except GooglePlacesError as exc:
                if exc.kind is ErrorKind.INVALID_REQUEST and page_token:
                    if token_retried:
                        logger.warning(
                            "Page token for %r never became valid; keeping %d results", query, len(results)
                        )
                        break
                    logger.info("Waiting for next page token to become valid (query=%r)", query)
                    token_retried = True
                    await pause(self.page_delay)
                    continue
                raise

            token_retried = False
            page_results = response.get("results", [])
            pages += 1
            for result in page_results:
                place_id = result.get("place_id")
                if not place_id:
                    logger.debug("Skipping result without place_id: %s", result)
                    continue
                if place_id in seen:
                    continue
                seen.add(place_id)
                results.append(result)
                if max_results is not None and len(results) >= max_results:
                    break
            logger.info("Query %r page %d: %d results, %d unique so far", query, pages, len(page_results), len(results))

            if max_results is not None and len(results) >= max_results:
                break
            page_token = response.get("next_page_token")
            if not page_token or pages >= self.max_pages:
                break
            await pause(self.page_delay)

        return results
