"""Core data models for avatarprobe."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from urllib.parse import quote

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProxyConfig(BaseModel, frozen=True):
    """One entry of the outbound proxy pool."""

    host: str
    port: int = 80
    username: str | None = None
    password: str | None = None
    scheme: str = "http"

    @property
    def url(self) -> str:
        auth = ""
        if self.username:
            auth = quote(self.username, safe="")
            if self.password:
                auth += ":" + quote(self.password, safe="")
            auth += "@"
        return f"{self.scheme}://{auth}{self.host}:{self.port}"

    @property
    def label(self) -> str:
        """Host and port only, safe to log."""
        return f"{self.host}:{self.port}"


class EndpointTemplate(BaseModel, frozen=True):
    """A URL pattern with one ``{identifier}`` placeholder."""

    url_pattern: str
    is_private: bool = False


class ResolvedEndpoint(BaseModel, frozen=True):
    url: str
    endpoint: str
    is_private: bool = False


class FetchOutcome(BaseModel, frozen=True):
    """Uniform result of one fetch, whichever network path produced it."""

    succeeded: bool
    content_type: str | None = None
    byte_size: int | None = None
    via: Literal["proxy", "direct"] | None = None
    observed_at: datetime = Field(default_factory=_utcnow)


class ProbeResult(BaseModel, frozen=True):
    """A successful probe of one resolved endpoint."""

    url: str
    endpoint: str
    is_private: bool
    succeeded: bool = True
    size: int | None = None
    via: Literal["proxy", "direct"] | None = None
    observed_at: datetime = Field(default_factory=_utcnow)


class ScanRecord(BaseModel, frozen=True):
    """Aggregated outcome of probing every endpoint for one identifier."""

    identifier: str
    country_code: str
    probe_results: list[ProbeResult] = Field(default_factory=list)
    private_hits: int = 0
    success_rate: float = 0.0
    scan_duration: float = 0.0
    created_at: datetime = Field(default_factory=_utcnow)


class PhoneQuery(BaseModel, frozen=True):
    """One raw input item for a scan."""

    phone: str
    country_code: str


class BulkItemError(BaseModel, frozen=True):
    """Inline error entry for a bulk item that could not be scanned."""

    phone: str | None = None
    country_code: str | None = None
    error: str
    error_type: str


class ScanStats(BaseModel, frozen=True):
    """Aggregate statistics over every stored scan record."""

    total_scans: int = 0
    total_private_hits: int = 0
    avg_success_rate: float = 0.0
    unique_identifiers: int = 0
