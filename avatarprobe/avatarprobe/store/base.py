"""
Storage interface for scan records.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from avatarprobe.models import ScanRecord, ScanStats


class ScanStore(ABC):
    """
    Upsert-keyed persistence of scan records.

    A record is keyed by its identifier; writing a record for an identifier
    that already exists replaces the stored one. Backend failures surface as
    :class:`avatarprobe.errors.StorageError`.
    """

    @abstractmethod
    def upsert(self, record: ScanRecord) -> None:
        """
        Insert the record, or fully replace the one with the same identifier.
        """

    @abstractmethod
    def get(self, identifier: str) -> ScanRecord | None:
        """
        Return the record for ``identifier``, or None when it was never scanned.
        """

    @abstractmethod
    def list_recent(self, limit: int = 100) -> list[ScanRecord]:
        """
        Return up to ``limit`` records, most recently created first.
        """

    @abstractmethod
    def stats(self) -> ScanStats:
        """
        Compute aggregate statistics over every stored record.
        """
