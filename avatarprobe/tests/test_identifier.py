"""Tests for phone number normalisation."""

from __future__ import annotations

import pytest

from avatarprobe.errors import InvalidInputError
from avatarprobe.identifier import normalize


class TestNormalize:
    def test_strips_formatting(self) -> None:
        assert normalize("(555) 123-4567", "1") == "15551234567"

    def test_plus_and_spaces(self) -> None:
        assert normalize("+7700 900 123", "44") == "447700900123"

    def test_prefix_not_deduplicated(self) -> None:
        assert normalize("+44 7700 900 123", "44") == "44447700900123"

    def test_country_code_is_literal_prefix(self) -> None:
        assert normalize("600111222", "034").startswith("034")

    def test_output_is_digits_only(self) -> None:
        result = normalize("a1b2c3-4.5 6", "7")
        assert result == "7123456"
        assert result.isdigit()

    def test_empty_phone_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            normalize("", "1")

    def test_phone_without_digits_rejected(self) -> None:
        with pytest.raises(InvalidInputError, match="no digits"):
            normalize("call me", "1")

    def test_non_string_phone_rejected(self) -> None:
        with pytest.raises(InvalidInputError):
            normalize(None, "1")  # type: ignore[arg-type]

    def test_invalid_input_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            normalize("---", "1")
