from dataclasses import dataclass, field
from typing import Dict, Optional


class ProbeError(Exception):
    """Base probe failure: transport error, bad status or timeout."""

    def __init__(self, message: str, locator: Optional[str] = None):
        super().__init__(message)
        self.locator = locator


class ProbeHTTPError(ProbeError):
    """Raised on a non-2xx response."""

    def __init__(self, status: int, locator: Optional[str] = None):
        super().__init__(f"HTTP {status}", locator)
        self.status = status


class ProbeTimeoutError(ProbeError):
    """Raised when the probe exceeds its deadline."""
    pass


@dataclass(frozen=True)
class ProbeResponse:
    """
    Raw result of one probe.
    INVARIANT: This object is TRANSIENT. Only the extracted fingerprint is persisted.
    """
    locator: str
    http_status: int
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    fetch_duration_ms: int = 0
