"""Tests for the CLI entry point."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
from click.testing import CliRunner

from avatarprobe import cli
from avatarprobe.cli import main
from avatarprobe.config import Config
from avatarprobe.scanner import ScanOrchestrator

if TYPE_CHECKING:
    from conftest import FakeFetcher, RecordingSleep

    from avatarprobe.store import MemoryScanStore

_ID = "15551234567"


@pytest.fixture(autouse=True)
def _patch_orchestrator(
    monkeypatch: pytest.MonkeyPatch, orchestrator: ScanOrchestrator
) -> list[Config]:
    seen: list[Config] = []

    def build(config: Config) -> ScanOrchestrator:
        seen.append(config)
        return orchestrator

    monkeypatch.setattr(cli, "_build_orchestrator", build)
    return seen


def test_scan_prints_summary(fetcher: FakeFetcher) -> None:
    fetcher.hit(f"https://img.test/a/{_ID}.jpg", size=2048)
    result = CliRunner().invoke(main, ["scan", "555-123-4567", "-c", "1"])
    assert result.exit_code == 0, result.output
    assert f"=== {_ID} ===" in result.output
    assert "Hits: 1/3" in result.output
    assert "Success rate: 33.3%" in result.output
    assert "[private]" in result.output
    assert "2048 bytes" in result.output


def test_scan_json(fetcher: FakeFetcher) -> None:
    fetcher.hit(f"https://img.test/b/{_ID}.jpg")
    result = CliRunner().invoke(main, ["scan", "5551234567", "--country-code", "1", "--json"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["identifier"] == _ID
    assert payload["private_hits"] == 0
    assert len(payload["probe_results"]) == 1


def test_scan_invalid_phone_is_usage_error() -> None:
    result = CliRunner().invoke(main, ["scan", "no digits", "-c", "1"])
    assert result.exit_code == 2
    assert "no digits" in result.output


def test_bulk_from_stdin(sleep: RecordingSleep, store: MemoryScanStore) -> None:
    lines = "# numbers\n1,5551234567\n\n44,\n1,5550000000\n"
    result = CliRunner().invoke(main, ["bulk"], input=lines)
    assert result.exit_code == 0, result.output
    out = [line for line in result.output.splitlines() if line.startswith(("✓", "✗"))]
    assert out[0].startswith(f"✓ {_ID}")
    assert out[1].startswith("✗ 44")
    assert "InvalidInputError" in out[1]
    assert out[2].startswith("✓ 15550000000")
    assert sleep.delays == [3.0, 3.0]
    assert store.stats().total_scans == 2


def test_bulk_json() -> None:
    result = CliRunner().invoke(main, ["bulk", "--json"], input="1,5551234567\n")
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload[0]["identifier"] == _ID


def test_bulk_json_error_entry() -> None:
    result = CliRunner().invoke(main, ["bulk", "--json"], input="44,--\n")
    assert result.exit_code == 0, result.output
    assert json.loads(result.output) == [
        {
            "phone": "--",
            "country_code": "44",
            "error": "phone '--' contains no digits",
            "error_type": "InvalidInputError",
        }
    ]


def test_bulk_bad_line() -> None:
    result = CliRunner().invoke(main, ["bulk"], input="15551234567\n")
    assert result.exit_code == 2
    assert "country_code,phone" in result.output


def test_bulk_empty_input() -> None:
    result = CliRunner().invoke(main, ["bulk"], input="\n# nothing\n")
    assert result.exit_code == 0
    assert "No numbers to scan" in result.output


def test_history_unknown() -> None:
    result = CliRunner().invoke(main, ["history", "999"])
    assert result.exit_code == 0
    assert "No scan found for 999" in result.output


def test_history_after_scan() -> None:
    runner = CliRunner()
    runner.invoke(main, ["scan", "5551234567", "-c", "1"])
    listing = runner.invoke(main, ["history"])
    assert listing.exit_code == 0
    assert _ID in listing.output

    single = runner.invoke(main, ["history", _ID, "--json"])
    assert json.loads(single.output)["identifier"] == _ID


def test_history_empty() -> None:
    result = CliRunner().invoke(main, ["history"])
    assert "No scans yet." in result.output


def test_history_limit() -> None:
    runner = CliRunner()
    runner.invoke(main, ["scan", "5551234567", "-c", "1"])
    runner.invoke(main, ["scan", "5550000000", "-c", "1"])

    result = runner.invoke(main, ["history", "--limit", "1", "--json"])
    assert result.exit_code == 0
    assert [item["identifier"] for item in json.loads(result.output)] == ["15550000000"]

    everything = runner.invoke(main, ["history", "--json"])
    assert len(json.loads(everything.output)) == 2


def test_history_limit_must_be_positive() -> None:
    result = CliRunner().invoke(main, ["history", "--limit", "0"])
    assert result.exit_code == 2
    assert "--limit" in result.output


def test_stats(fetcher: FakeFetcher) -> None:
    fetcher.hit(f"https://img.test/a/{_ID}.jpg")
    runner = CliRunner()
    runner.invoke(main, ["scan", "5551234567", "-c", "1"])
    result = runner.invoke(main, ["stats", "--json"])
    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["total_scans"] == 1
    assert payload["total_private_hits"] == 1
    assert payload["unique_identifiers"] == 1


def test_database_url_option(_patch_orchestrator: list[Config]) -> None:
    CliRunner().invoke(main, ["--database-url", "sqlite://", "stats"])
    assert _patch_orchestrator[-1].database_url == "sqlite://"


def test_bad_env_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AVATARPROBE_BULK_LIMIT", "lots")
    result = CliRunner().invoke(main, ["stats"])
    assert result.exit_code == 1
    assert "AVATARPROBE_BULK_LIMIT" in result.output
