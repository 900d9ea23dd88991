"""Scan orchestration: fan out one probe per endpoint, fold the results, persist."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable

from avatarprobe.config import Config
from avatarprobe.endpoints import EndpointSet
from avatarprobe.errors import StorageError
from avatarprobe.identifier import normalize
from avatarprobe.models import (
    BulkItemError,
    FetchOutcome,
    PhoneQuery,
    ProbeResult,
    ResolvedEndpoint,
    ScanRecord,
    ScanStats,
)
from avatarprobe.store import ScanStore, SQLAlchemyScanStore
from avatarprobe.utils.http import ProbeFetcher

logger = logging.getLogger(__name__)

BULK_LIMIT = 25
BULK_DELAY_SECONDS = 3.0


class ScanOrchestrator:
    """Run scans against an endpoint set and keep the results in a store."""

    def __init__(
        self,
        *,
        fetcher: ProbeFetcher,
        store: ScanStore,
        endpoints: EndpointSet | None = None,
        bulk_limit: int = BULK_LIMIT,
        bulk_delay: float = BULK_DELAY_SECONDS,
        history_limit: int = 100,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._fetcher = fetcher
        self._store = store
        self._endpoints = endpoints or EndpointSet()
        self._bulk_limit = bulk_limit
        self._bulk_delay = bulk_delay
        self._history_limit = history_limit
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, config: Config, *, store: ScanStore | None = None) -> ScanOrchestrator:
        """Wire a fetcher, endpoint set and store from runtime configuration."""
        endpoints = (
            EndpointSet.from_file(config.endpoints_file) if config.endpoints_file else EndpointSet()
        )
        fetcher = ProbeFetcher(
            config.proxies,
            proxy_timeout=config.proxy_timeout,
            direct_timeout=config.direct_timeout,
            strict_direct=config.strict_direct,
        )
        if store is None:
            store = SQLAlchemyScanStore.from_url(config.database_url)
        logger.info(
            "Loaded %d proxy(ies) and %d endpoint(s)", len(config.proxies), len(endpoints)
        )
        return cls(
            fetcher=fetcher,
            store=store,
            endpoints=endpoints,
            bulk_limit=config.bulk_limit,
            bulk_delay=config.bulk_delay,
            history_limit=config.history_limit,
        )

    @property
    def endpoints(self) -> EndpointSet:
        return self._endpoints

    async def scan(self, raw_phone: str, country_code: str) -> ScanRecord:
        """Probe every endpoint for one phone number and persist the record.

        Raises :class:`InvalidInputError` for a phone without digits. A store
        failure is logged and does not affect the returned record.
        """
        identifier = normalize(raw_phone, country_code)
        targets = self._endpoints.resolve(identifier)
        logger.info("Scanning %s across %d endpoints", identifier, len(targets))

        started = self._clock()
        outcomes = await asyncio.gather(*(self._fetcher.fetch(t.url) for t in targets))
        duration = self._clock() - started

        record = self._build_record(identifier, country_code, targets, outcomes, duration)
        logger.info(
            "Scan of %s finished: %d/%d hits (%d private) in %.2fs",
            identifier,
            len(record.probe_results),
            len(targets),
            record.private_hits,
            record.scan_duration,
        )

        await self._persist(record)
        return record

    def _build_record(
        self,
        identifier: str,
        country_code: str,
        targets: list[ResolvedEndpoint],
        outcomes: Iterable[FetchOutcome],
        duration: float,
    ) -> ScanRecord:
        results: list[ProbeResult] = []
        private_hits = 0
        # gather() preserves argument order, so results follow declaration order.
        for target, outcome in zip(targets, outcomes):
            if not outcome.succeeded:
                continue
            if target.is_private:
                private_hits += 1
            results.append(
                ProbeResult(
                    url=target.url,
                    endpoint=target.endpoint,
                    is_private=target.is_private,
                    size=outcome.byte_size,
                    via=outcome.via,
                    observed_at=outcome.observed_at,
                )
            )

        return ScanRecord(
            identifier=identifier,
            country_code=country_code,
            probe_results=results,
            private_hits=private_hits,
            success_rate=100.0 * len(results) / len(self._endpoints),
            scan_duration=duration,
        )

    async def _persist(self, record: ScanRecord) -> None:
        try:
            await asyncio.to_thread(self._store.upsert, record)
        except StorageError:
            logger.error("Failed to save scan for %s", record.identifier, exc_info=True)

    async def bulk_scan(
        self,
        items: Iterable[PhoneQuery | tuple[str, str]],
        max_items: int | None = None,
    ) -> list[ScanRecord | BulkItemError]:
        """Scan items one after another with a fixed delay between them.

        Only the first ``max_items`` (default: the configured bulk limit) are
        processed; the rest are dropped. A failing item becomes a
        :class:`BulkItemError` in its slot instead of aborting the batch.
        """
        limit = self._bulk_limit if max_items is None else min(max_items, self._bulk_limit)
        batch = list(items)[: max(0, limit)]
        logger.info("Bulk scanning %d numbers", len(batch))

        results: list[ScanRecord | BulkItemError] = []
        for index, item in enumerate(batch):
            if index:
                await self._sleep(self._bulk_delay)
            try:
                phone, country_code = _unpack(item)
                results.append(await self.scan(phone, country_code))
            except Exception as exc:
                phone, country_code = _describe(item)
                logger.warning(
                    "Bulk item %d (%s %s) failed: %s", index, country_code, phone, exc
                )
                results.append(
                    BulkItemError(
                        phone=phone,
                        country_code=country_code,
                        error=str(exc),
                        error_type=type(exc).__name__,
                    )
                )
        return results

    def get_history(
        self, identifier: str | None = None, limit: int | None = None
    ) -> ScanRecord | None | list[ScanRecord]:
        """Return the record for ``identifier``, or up to ``limit`` recent records."""
        if identifier is not None:
            return self._store.get(identifier)
        return self._store.list_recent(self._history_limit if limit is None else limit)

    def get_stats(self) -> ScanStats:
        return self._store.stats()


def _unpack(item: PhoneQuery | tuple[str, str]) -> tuple[str, str]:
    if isinstance(item, PhoneQuery):
        return item.phone, item.country_code
    phone, country_code = item
    return phone, country_code


def _describe(item: object) -> tuple[str | None, str | None]:
    try:
        phone, country_code = _unpack(item)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None, None
    return (
        None if phone is None else str(phone),
        None if country_code is None else str(country_code),
    )
