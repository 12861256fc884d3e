"""Tests for port and password generation and validation."""

import string
from unittest.mock import patch

import pytest

from studioremote.credentials import (
    generate_random_password,
    generate_random_port,
    validate_password,
    validate_port,
)
from studioremote.errors import ValidationError


class TestValidatePort:
    def test_rejects_non_numeric(self):
        with pytest.raises(ValidationError, match="must be a number"):
            validate_port("abc")

    @pytest.mark.parametrize("value", ["²", "١٢٣٤", "2³", "-1", "12.5"])
    def test_rejects_non_ascii_digits(self, value):
        with pytest.raises(ValidationError, match="must be a number"):
            validate_port(value)

    def test_rejects_privileged_port(self):
        with pytest.raises(ValidationError, match="must be ≥1024"):
            validate_port("80")

    def test_rejects_port_above_range(self):
        with pytest.raises(ValidationError, match="must be ≤65535"):
            validate_port("70000")

    def test_rejects_bound_port(self):
        with patch("studioremote.credentials.is_port_available", return_value=False):
            with pytest.raises(ValidationError, match="already in use"):
                validate_port("23456")

    def test_accepts_free_port(self):
        with patch("studioremote.credentials.is_port_available", return_value=True):
            assert validate_port(" 23456 ") == 23456
            assert validate_port(1024) == 1024
            assert validate_port("65535") == 65535


class TestValidatePassword:
    def test_rejects_five_characters(self):
        with pytest.raises(ValidationError, match="at least 6 characters"):
            validate_password("abcde")

    def test_accepts_six_characters(self):
        assert validate_password("abcdef") == "abcdef"

    @pytest.mark.parametrize("value", ["abcdef\n", "abc\ndef", "abcdef\rx"])
    def test_rejects_line_breaks(self, value):
        with pytest.raises(ValidationError, match="single line"):
            validate_password(value)

    def test_keeps_surrounding_spaces(self):
        assert validate_password("  pass  ") == "  pass  "


class TestGenerators:
    def test_random_port_in_range(self):
        with patch("studioremote.credentials.is_port_available", return_value=True):
            for _ in range(50):
                assert 10000 <= generate_random_port() < 60000

    def test_random_port_gives_up(self):
        with patch("studioremote.credentials.is_port_available", return_value=False):
            with pytest.raises(RuntimeError, match="No free port"):
                generate_random_port(max_attempts=3)

    def test_random_password(self):
        password = generate_random_password()
        assert len(password) == 16
        assert set(password) <= set(string.ascii_letters + string.digits)
        assert generate_random_password() != password
