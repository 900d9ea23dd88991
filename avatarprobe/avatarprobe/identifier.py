"""Phone number normalisation into scan identifiers."""

from __future__ import annotations

import re

from avatarprobe.errors import InvalidInputError

_NON_DIGIT_RE = re.compile(r"\D")


def normalize(raw_phone: str, country_code: str) -> str:
    """Return ``country_code`` followed by the digits of ``raw_phone``.

    The country code is used as a literal prefix and is not validated.
    Raises :class:`InvalidInputError` when the phone has no digits.
    """
    if not isinstance(raw_phone, str):
        raise InvalidInputError(f"phone must be a string, got {type(raw_phone).__name__}")
    if not isinstance(country_code, str):
        raise InvalidInputError(
            f"country code must be a string, got {type(country_code).__name__}"
        )

    digits = _NON_DIGIT_RE.sub("", raw_phone)
    if not digits:
        raise InvalidInputError(f"phone {raw_phone!r} contains no digits")
    return f"{country_code}{digits}"
