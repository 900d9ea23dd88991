"""
In-process scan store.
"""

from __future__ import annotations

import threading

from avatarprobe.models import ScanRecord, ScanStats
from avatarprobe.store.base import ScanStore


class MemoryScanStore(ScanStore):
    """
    Dict-backed store, mainly for tests and one-off runs without a database.
    """

    def __init__(self) -> None:
        self._records: dict[str, ScanRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, record: ScanRecord) -> None:
        with self._lock:
            # Re-insert so dict order tracks write order.
            self._records.pop(record.identifier, None)
            self._records[record.identifier] = record

    def get(self, identifier: str) -> ScanRecord | None:
        with self._lock:
            return self._records.get(identifier)

    def list_recent(self, limit: int = 100) -> list[ScanRecord]:
        with self._lock:
            records = list(self._records.values())
        records.reverse()
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[: max(0, limit)]

    def stats(self) -> ScanStats:
        with self._lock:
            records = list(self._records.values())
        if not records:
            return ScanStats()
        return ScanStats(
            total_scans=len(records),
            total_private_hits=sum(r.private_hits for r in records),
            avg_success_rate=sum(r.success_rate for r in records) / len(records),
            unique_identifiers=len({r.identifier for r in records}),
        )
