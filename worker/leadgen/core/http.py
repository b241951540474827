"""HTTP boundary: turns transport failures and status codes into ProviderError kinds."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from leadgen.core.errors import ErrorKind, ProviderError

logger = logging.getLogger(__name__)

USER_AGENT = "LeadsGeneratorBot/1.0 (+https://leads-generator.app/contact)"


def kind_for_status(status_code: int) -> ErrorKind:
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code in (408, 504):
        return ErrorKind.TIMEOUT
    if 400 <= status_code < 500:
        return ErrorKind.INVALID_REQUEST
    return ErrorKind.UNKNOWN


def classify_exception(exc: httpx.HTTPError, url: str) -> ProviderError:
    if isinstance(exc, httpx.TimeoutException):
        return ProviderError(ErrorKind.TIMEOUT, f"timed out calling {url}")
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return ProviderError(kind_for_status(status), f"{url} returned HTTP {status}", status_code=status)
    return ProviderError(ErrorKind.UNKNOWN, f"request to {url} failed: {exc}")


async def send(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 10.0,
    follow_redirects: bool = True,
    raise_for_status: bool = True,
) -> httpx.Response:
    """Issue one request; every httpx failure surfaces as a ProviderError."""
    try:
        response = await client.request(
            method,
            url,
            params=params,
            headers=headers,
            timeout=timeout,
            follow_redirects=follow_redirects,
        )
        if raise_for_status:
            response.raise_for_status()
        return response
    except httpx.HTTPError as exc:
        raise classify_exception(exc, url) from exc


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    timeout: float = 10.0,
) -> Dict[str, Any]:
    response = await send(client, "GET", url, params=params, headers=headers, timeout=timeout)
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderError(ErrorKind.UNKNOWN, f"{url} returned a non-JSON body") from exc
    if not isinstance(payload, dict):
        raise ProviderError(ErrorKind.UNKNOWN, f"{url} returned an unexpected JSON payload")
    return payload
