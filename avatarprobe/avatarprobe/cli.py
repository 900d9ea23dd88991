"""CLI entry point for avatarprobe."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import IO

import click

from avatarprobe.config import Config
from avatarprobe.errors import AvatarProbeError, InvalidInputError
from avatarprobe.models import PhoneQuery, ScanRecord
from avatarprobe.output import (
    format_bulk_item,
    format_history_row,
    format_record,
    format_stats,
    to_json,
)
from avatarprobe.scanner import ScanOrchestrator


def _build_orchestrator(config: Config) -> ScanOrchestrator:
    return ScanOrchestrator.from_config(config)


def _orchestrator(ctx: click.Context) -> ScanOrchestrator:
    config: Config = ctx.obj["config"]
    try:
        return _build_orchestrator(config)
    except AvatarProbeError as e:
        raise click.ClickException(str(e)) from e


def _parse_bulk_lines(stream: IO[str]) -> list[PhoneQuery]:
    """Read ``country_code,phone`` lines, skipping blanks and comments."""
    queries: list[PhoneQuery] = []
    for lineno, line in enumerate(stream, 1):
        text = line.strip()
        if not text or text.startswith("#"):
            continue
        country_code, sep, phone = text.partition(",")
        if not sep:
            raise click.BadParameter(
                f"line {lineno}: expected 'country_code,phone', got {text!r}"
            )
        queries.append(PhoneQuery(phone=phone.strip(), country_code=country_code.strip()))
    return queries


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--database-url", default=None, help="SQLAlchemy URL of the scan store")
@click.pass_context
def main(ctx: click.Context, verbose: bool, database_url: str | None) -> None:
    """avatarprobe — probe image endpoints for a phone number."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = Config.from_env()
    except AvatarProbeError as e:
        raise click.ClickException(str(e)) from e
    if database_url:
        config = replace(config, database_url=database_url)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command()
@click.argument("phone")
@click.option("--country-code", "-c", required=True, help="Country calling code, e.g. 44")
@click.option("--json", "as_json", is_flag=True, help="Print the scan record as JSON")
@click.pass_context
def scan(ctx: click.Context, phone: str, country_code: str, as_json: bool) -> None:
    """Scan one phone number."""
    orchestrator = _orchestrator(ctx)
    try:
        record = asyncio.run(orchestrator.scan(phone, country_code))
    except InvalidInputError as e:
        raise click.UsageError(str(e)) from e

    if as_json:
        click.echo(to_json(record))
    else:
        click.echo(format_record(record, len(orchestrator.endpoints)))


@main.command()
@click.option(
    "--file", "-f", "input_file",
    type=click.File("r"), default="-",
    help="File with 'country_code,phone' lines (default: stdin)",
)
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON")
@click.pass_context
def bulk(ctx: click.Context, input_file: IO[str], as_json: bool) -> None:
    """Scan several numbers sequentially, throttled between items."""
    queries = _parse_bulk_lines(input_file)
    if not queries:
        click.echo("No numbers to scan.")
        return

    orchestrator = _orchestrator(ctx)
    config: Config = ctx.obj["config"]
    if len(queries) > config.bulk_limit:
        click.echo(
            f"Only the first {config.bulk_limit} of {len(queries)} numbers will be scanned.",
            err=True,
        )

    results = asyncio.run(orchestrator.bulk_scan(queries))
    if as_json:
        click.echo(to_json(results))
        return
    for item in results:
        click.echo(format_bulk_item(item))


@main.command()
@click.argument("identifier", required=False)
@click.option(
    "--limit", "-n", type=click.IntRange(min=1), default=None,
    help="Max records when listing (default: AVATARPROBE_HISTORY_LIMIT)",
)
@click.option("--json", "as_json", is_flag=True, help="Print records as JSON")
@click.pass_context
def history(
    ctx: click.Context, identifier: str | None, limit: int | None, as_json: bool
) -> None:
    """Show the stored record for IDENTIFIER, or the most recent scans."""
    orchestrator = _orchestrator(ctx)
    try:
        found = orchestrator.get_history(identifier, limit=limit)
    except AvatarProbeError as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(to_json(found))
        return
    if found is None:
        click.echo(f"No scan found for {identifier}")
    elif isinstance(found, ScanRecord):
        click.echo(format_record(found))
    elif not found:
        click.echo("No scans yet.")
    else:
        for record in found:
            click.echo(format_history_row(record))


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print stats as JSON")
@click.pass_context
def stats(ctx: click.Context, as_json: bool) -> None:
    """Show aggregate statistics over all stored scans."""
    orchestrator = _orchestrator(ctx)
    try:
        summary = orchestrator.get_stats()
    except AvatarProbeError as e:
        raise click.ClickException(str(e)) from e
    click.echo(to_json(summary) if as_json else format_stats(summary))


if __name__ == "__main__":
    main()
