"""Shared fixtures for avatarprobe tests."""

from __future__ import annotations

import pytest

from avatarprobe.endpoints import EndpointSet
from avatarprobe.models import EndpointTemplate, FetchOutcome
from avatarprobe.scanner import ScanOrchestrator
from avatarprobe.store import MemoryScanStore

_ENV_KEYS = (
    "PROXY_HOST",
    "PROXY_PORT",
    "PROXY_USER",
    "PROXY_PASS",
    "AVATARPROBE_PROXIES",
    "AVATARPROBE_PROXY_TIMEOUT",
    "AVATARPROBE_DIRECT_TIMEOUT",
    "AVATARPROBE_STRICT_DIRECT",
    "AVATARPROBE_BULK_LIMIT",
    "AVATARPROBE_BULK_DELAY",
    "AVATARPROBE_HISTORY_LIMIT",
    "AVATARPROBE_DATABASE_URL",
    "AVATARPROBE_ENDPOINTS_FILE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove avatarprobe env vars so tests are isolated."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class FakeFetcher:
    """Returns canned outcomes per URL; anything unknown fails."""

    def __init__(self) -> None:
        self.outcomes: dict[str, FetchOutcome] = {}
        self.calls: list[str] = []

    def hit(self, url: str, size: int = 1024, via: str = "proxy") -> None:
        self.outcomes[url] = FetchOutcome(
            succeeded=True, content_type="image/jpeg", byte_size=size, via=via
        )

    async def fetch(self, url: str) -> FetchOutcome:
        self.calls.append(url)
        return self.outcomes.get(url, FetchOutcome(succeeded=False))


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def three_endpoints() -> EndpointSet:
    return EndpointSet(
        [
            EndpointTemplate(url_pattern="https://img.test/a/{identifier}.jpg", is_private=True),
            EndpointTemplate(url_pattern="https://img.test/b/{identifier}.jpg", is_private=False),
            EndpointTemplate(url_pattern="https://img.test/c/{identifier}.jpg", is_private=True),
        ]
    )


@pytest.fixture
def fetcher() -> FakeFetcher:
    return FakeFetcher()


@pytest.fixture
def store() -> MemoryScanStore:
    return MemoryScanStore()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def orchestrator(
    fetcher: FakeFetcher,
    store: MemoryScanStore,
    three_endpoints: EndpointSet,
    sleep: RecordingSleep,
) -> ScanOrchestrator:
    return ScanOrchestrator(
        fetcher=fetcher,  # type: ignore[arg-type]
        store=store,
        endpoints=three_endpoints,
        sleep=sleep,
    )
