"""Exception types raised by avatarprobe."""

from __future__ import annotations


class AvatarProbeError(Exception):
    """Base class for all avatarprobe errors."""


class InvalidInputError(AvatarProbeError, ValueError):
    """The phone number or country code cannot form an identifier."""


class ConfigError(AvatarProbeError, ValueError):
    """Configuration from the environment or an endpoints file is unusable."""


class StorageError(AvatarProbeError):
    """The scan store backend failed to read or write."""
