"""Endpoint template set: the fixed, ordered list of URLs probed per scan."""

from __future__ import annotations

import tomllib
from collections.abc import Sequence
from pathlib import Path

from avatarprobe.errors import ConfigError
from avatarprobe.models import EndpointTemplate, ResolvedEndpoint

PLACEHOLDER = "{identifier}"

# Built-in set, used when no endpoints file is configured. Order is the
# declaration order kept in every scan record.
DEFAULT_TEMPLATES: tuple[EndpointTemplate, ...] = (
    EndpointTemplate(url_pattern="https://pps.avatars.example.net/v/t61/{identifier}@contact.jpg", is_private=True),
    EndpointTemplate(url_pattern="https://web.avatars.example.net/pp?s={identifier}@contact&e=wpp", is_private=True),
    EndpointTemplate(url_pattern="https://pps.avatars.example.net/v/l/{identifier}@contact.jpg", is_private=True),
    EndpointTemplate(url_pattern="https://web.avatars.example.net/pp/{identifier}@contact", is_private=True),
    EndpointTemplate(url_pattern="https://web.avatars.example.net/ppthumb/{identifier}@contact", is_private=True),
    EndpointTemplate(url_pattern="https://pps.avatars.example.net/v/t61/{identifier}@public.jpg"),
    EndpointTemplate(url_pattern="https://web.avatars.example.net/pp/{identifier}@public"),
)


class EndpointSet:
    """Immutable ordered collection of endpoint templates."""

    def __init__(self, templates: Sequence[EndpointTemplate] = DEFAULT_TEMPLATES) -> None:
        if not templates:
            raise ConfigError("endpoint set must contain at least one template")
        for template in templates:
            if PLACEHOLDER not in template.url_pattern:
                raise ConfigError(
                    f"endpoint {template.url_pattern!r} has no {PLACEHOLDER} placeholder"
                )
        self._templates = tuple(templates)

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def templates(self) -> tuple[EndpointTemplate, ...]:
        return self._templates

    def resolve(self, identifier: str) -> list[ResolvedEndpoint]:
        """Substitute ``identifier`` into every template, in declaration order."""
        return [
            ResolvedEndpoint(
                url=t.url_pattern.replace(PLACEHOLDER, identifier),
                endpoint=t.url_pattern.split("{", 1)[0],
                is_private=t.is_private,
            )
            for t in self._templates
        ]

    @classmethod
    def from_file(cls, path: str | Path) -> EndpointSet:
        """Load templates from a TOML file of ``[[endpoint]]`` tables."""
        try:
            with Path(path).open("rb") as fh:
                data = tomllib.load(fh)
        except (OSError, tomllib.TOMLDecodeError) as exc:
            raise ConfigError(f"cannot read endpoints file {path}: {exc}") from exc

        entries = data.get("endpoint", [])
        if not isinstance(entries, list):
            raise ConfigError(f"{path}: 'endpoint' must be an array of tables")

        templates: list[EndpointTemplate] = []
        for entry in entries:
            url = entry.get("url") if isinstance(entry, dict) else None
            if not isinstance(url, str):
                raise ConfigError(f"{path}: every endpoint needs a string 'url'")
            templates.append(
                EndpointTemplate(url_pattern=url, is_private=bool(entry.get("private", False)))
            )
        return cls(templates)


def resolve(identifier: str, templates: Sequence[EndpointTemplate] = DEFAULT_TEMPLATES) -> list[ResolvedEndpoint]:
    """Resolve ``identifier`` against ``templates`` (the built-in set by default)."""
    return EndpointSet(templates).resolve(identifier)
