"""Configuration management for avatarprobe."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from urllib.parse import unquote, urlsplit

from avatarprobe.errors import ConfigError
from avatarprobe.models import ProxyConfig

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_PROXY_SCHEMES = {"http", "https"}


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc
    if parsed < 0:
        raise ConfigError(f"{name} must not be negative, got {value!r}")
    return parsed


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        parsed = int(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    if parsed < 1:
        raise ConfigError(f"{name} must be at least 1, got {value!r}")
    return parsed


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def parse_proxy(value: str) -> ProxyConfig:
    """Parse ``[scheme://][user:pass@]host:port`` into a :class:`ProxyConfig`."""
    text = value.strip()
    if "://" not in text:
        text = f"http://{text}"
    try:
        parts = urlsplit(text)
        port = parts.port
    except ValueError as exc:
        raise ConfigError(f"invalid proxy {value!r}: {exc}") from exc
    if not parts.hostname:
        raise ConfigError(f"invalid proxy {value!r}: missing host")
    if parts.scheme not in _PROXY_SCHEMES:
        raise ConfigError(
            f"invalid proxy {value!r}: scheme must be one of {', '.join(sorted(_PROXY_SCHEMES))}"
        )
    return ProxyConfig(
        host=parts.hostname,
        port=port or 80,
        username=unquote(parts.username) if parts.username else None,
        password=unquote(parts.password) if parts.password else None,
        scheme=parts.scheme,
    )


def _proxies_from_env() -> tuple[ProxyConfig, ...]:
    proxies: list[ProxyConfig] = []

    host = os.getenv("PROXY_HOST")
    if host and host.strip():
        proxies.append(
            ProxyConfig(
                host=host.strip(),
                port=_get_int("PROXY_PORT", 80),
                username=os.getenv("PROXY_USER") or None,
                password=os.getenv("PROXY_PASS") or None,
            )
        )

    pool = os.getenv("AVATARPROBE_PROXIES", "")
    proxies.extend(parse_proxy(item) for item in pool.split(",") if item.strip())
    return tuple(proxies)


@dataclass(frozen=True)
class Config:
    """Runtime configuration, populated from environment variables."""

    proxies: tuple[ProxyConfig, ...] = field(default_factory=tuple)
    proxy_timeout: float = 10.0
    direct_timeout: float = 5.0
    strict_direct: bool = True
    bulk_limit: int = 25
    bulk_delay: float = 3.0
    history_limit: int = 100
    database_url: str = "sqlite:///avatarprobe.db"
    endpoints_file: str | None = None

    @classmethod
    def from_env(cls) -> Config:
        return cls(
            proxies=_proxies_from_env(),
            proxy_timeout=_get_float("AVATARPROBE_PROXY_TIMEOUT", cls.proxy_timeout),
            direct_timeout=_get_float("AVATARPROBE_DIRECT_TIMEOUT", cls.direct_timeout),
            strict_direct=_get_bool("AVATARPROBE_STRICT_DIRECT", cls.strict_direct),
            bulk_limit=_get_int("AVATARPROBE_BULK_LIMIT", cls.bulk_limit),
            bulk_delay=_get_float("AVATARPROBE_BULK_DELAY", cls.bulk_delay),
            history_limit=_get_int("AVATARPROBE_HISTORY_LIMIT", cls.history_limit),
            database_url=os.getenv("AVATARPROBE_DATABASE_URL") or cls.database_url,
            endpoints_file=os.getenv("AVATARPROBE_ENDPOINTS_FILE") or None,
        )
