"""avatarprobe — concurrent image-endpoint prober keyed by phone number."""

from __future__ import annotations

__version__ = "0.1.0"
