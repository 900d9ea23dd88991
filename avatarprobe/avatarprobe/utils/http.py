"""HTTP fetch strategy: proxied attempt first, direct request as fallback."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from typing import TypeVar

import httpx

from avatarprobe.models import FetchOutcome, ProxyConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

Picker = Callable[[Sequence[T]], T]
ClientFactory = Callable[[str | None, float], httpx.AsyncClient]

USER_AGENTS: tuple[str, ...] = (
    (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    (
        "Mozilla/5.0 (X11; Linux x86_64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
)

_PROBE_HEADERS = {
    "Accept": "image/webp,image/apng,image/*,*/*;q=0.8",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}


def random_pick(pool: Sequence[T]) -> T:
    """Pick one element uniformly at random."""
    return random.choice(pool)


def default_client_factory(proxy_url: str | None, timeout: float) -> httpx.AsyncClient:
    return httpx.AsyncClient(proxy=proxy_url, timeout=timeout, follow_redirects=True)


def _is_image(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return response.status_code == 200 and content_type.lower().startswith("image/")


def _failed() -> FetchOutcome:
    return FetchOutcome(succeeded=False)


class ProbeFetcher:
    """Fetch one URL, trying a random proxy first and a direct request second.

    Every failure mode (network error, timeout, bad status, non-image body,
    unusable proxy entry) collapses into ``FetchOutcome(succeeded=False)``;
    :meth:`fetch` never raises.
    """

    def __init__(
        self,
        proxies: Sequence[ProxyConfig] = (),
        *,
        user_agents: Sequence[str] = USER_AGENTS,
        proxy_timeout: float = 10.0,
        direct_timeout: float = 5.0,
        strict_direct: bool = True,
        pick: Picker = random_pick,
        client_factory: ClientFactory = default_client_factory,
    ) -> None:
        if not user_agents:
            raise ValueError("user_agents must not be empty")
        self._proxies = tuple(proxies)
        self._user_agents = tuple(user_agents)
        self._proxy_timeout = proxy_timeout
        self._direct_timeout = direct_timeout
        self._strict_direct = strict_direct
        self._pick = pick
        self._client_factory = client_factory

    @property
    def proxies(self) -> tuple[ProxyConfig, ...]:
        return self._proxies

    async def fetch(self, url: str) -> FetchOutcome:
        if self._proxies:
            outcome = await self._fetch_via_proxy(url, self._pick(self._proxies))
            if outcome.succeeded:
                return outcome
        return await self._fetch_direct(url)

    def _open_client(self, proxy_url: str | None, timeout: float) -> httpx.AsyncClient | None:
        # httpx rejects unknown proxy schemes with ValueError and missing
        # SOCKS support with ImportError at construction time.
        try:
            return self._client_factory(proxy_url, timeout)
        except (ValueError, ImportError) as exc:
            logger.warning("Cannot open HTTP client (proxy=%s): %r", proxy_url is not None, exc)
            return None

    async def _fetch_via_proxy(self, url: str, proxy: ProxyConfig) -> FetchOutcome:
        headers = {"User-Agent": self._pick(self._user_agents), **_PROBE_HEADERS}
        client = self._open_client(proxy.url, self._proxy_timeout)
        if client is None:
            return _failed()
        try:
            async with client:
                resp = await client.get(url, headers=headers)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Proxy %s failed for %s: %r", proxy.label, url, exc)
            return _failed()

        if not _is_image(resp):
            logger.debug(
                "Proxy %s got non-image response for %s: %s %s",
                proxy.label,
                url,
                resp.status_code,
                resp.headers.get("content-type"),
            )
            return _failed()

        logger.debug("Proxy %s hit for %s", proxy.label, url)
        return FetchOutcome(
            succeeded=True,
            content_type=resp.headers.get("content-type"),
            byte_size=len(resp.content),
            via="proxy",
        )

    async def _fetch_direct(self, url: str) -> FetchOutcome:
        headers = {"User-Agent": self._pick(self._user_agents)}
        client = self._open_client(None, self._direct_timeout)
        if client is None:
            return _failed()
        try:
            async with client:
                resp = await client.get(url, headers=headers)
                resp.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Direct request failed for %s: %r", url, exc)
            return _failed()

        if self._strict_direct and not _is_image(resp):
            logger.debug("Direct request got non-image response for %s", url)
            return _failed()

        return FetchOutcome(
            succeeded=True,
            content_type=resp.headers.get("content-type"),
            byte_size=len(resp.content),
            via="direct",
        )
