"""Human-readable rendering of scan records and stats."""

from __future__ import annotations

import json
from collections.abc import Sequence

from pydantic import BaseModel

from avatarprobe.models import BulkItemError, ScanRecord, ScanStats


def to_json(value: BaseModel | Sequence[BaseModel] | None) -> str:
    """Serialise one model, a list of models, or None as indented JSON."""
    if value is None:
        return "null"
    if isinstance(value, BaseModel):
        return value.model_dump_json(indent=2)
    return json.dumps([item.model_dump(mode="json") for item in value], indent=2)


def format_record(record: ScanRecord, total_endpoints: int | None = None) -> str:
    hits = len(record.probe_results)
    denominator = f"/{total_endpoints}" if total_endpoints else ""
    lines = [
        f"=== {record.identifier} ===",
        f"Hits: {hits}{denominator}  Private: {record.private_hits}  "
        f"Success rate: {record.success_rate:.1f}%  Time: {record.scan_duration:.2f}s",
    ]
    for result in record.probe_results:
        tag = "private" if result.is_private else "public"
        size = f"{result.size} bytes" if result.size is not None else "size unknown"
        lines.append(f"  [{tag}] {result.url} ({size}, via {result.via or '?'})")
    return "\n".join(lines)


def format_bulk_item(item: ScanRecord | BulkItemError) -> str:
    if isinstance(item, BulkItemError):
        return f"✗ {item.country_code or '?'} {item.phone or '?'}: {item.error_type}: {item.error}"
    return (
        f"✓ {item.identifier}: {len(item.probe_results)} hits, "
        f"{item.private_hits} private, {item.success_rate:.1f}%"
    )


def format_history_row(record: ScanRecord) -> str:
    return (
        f"{record.created_at:%Y-%m-%d %H:%M:%S}  {record.identifier:<16}  "
        f"hits={len(record.probe_results)}  private={record.private_hits}  "
        f"rate={record.success_rate:.1f}%"
    )


def format_stats(stats: ScanStats) -> str:
    return "\n".join(
        [
            f"Total scans:        {stats.total_scans}",
            f"Unique identifiers: {stats.unique_identifiers}",
            f"Private hits:       {stats.total_private_hits}",
            f"Avg success rate:   {stats.avg_success_rate:.1f}%",
        ]
    )
