"""Scanner error taxonomy."""

from __future__ import annotations


class ScannerError(Exception):
    """Base class for scanner failures."""


class InvalidInput(ScannerError):
    """A pair record is missing required fields or carries malformed values. Skip, do not retry."""


class NotFound(ScannerError):
    """No market data exists for the requested address."""


class UpstreamUnavailable(ScannerError):
    """Discovery or pair-data fetch failed after retries or was rate limited."""

    def __init__(self, source: str, detail: str = "", status: int = 0) -> None:
        self.source = source
        self.detail = detail
        self.status = status
        super().__init__(f"{source} unavailable: {detail or 'no data'} (status={status})")


class EnrichmentFailure(ScannerError):
    """The LLM summary could not be produced. Recovered locally with the deterministic fallback."""


class PersistenceFailure(ScannerError):
    """A storage write failed. Propagated to the caller."""
