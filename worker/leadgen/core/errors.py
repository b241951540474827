"""Exception types shared across the pipeline."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    NOT_FOUND = "not_found"
    INVALID_REQUEST = "invalid_request"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE_KINDS


_RETRYABLE_KINDS = {ErrorKind.RATE_LIMITED, ErrorKind.TIMEOUT, ErrorKind.UNKNOWN}


class LeadgenError(Exception):
    """Base exception for the leadgen package."""


class ConfigurationError(LeadgenError):
    """Raised when a credential required for a request is missing."""


class InvalidQueryError(LeadgenError, ValueError):
    """Raised when caller input cannot be searched or enriched."""


class SearchUnavailableError(LeadgenError):
    """Raised when fresh search failed and there is no cached fallback."""


class StoreError(LeadgenError):
    """Raised when the record store cannot be read or written."""


class ProviderError(LeadgenError):
    """Failure reported by an external provider, classified by kind."""

    def __init__(self, kind: ErrorKind, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is not None:
            return f"[{self.kind.value} {self.status_code}] {base}"
        return f"[{self.kind.value}] {base}"
