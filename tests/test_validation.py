"""Tests for port and email validation."""

from __future__ import annotations

import socket

import pytest

from sidecarctl.errors import InvalidEmail, InvalidPort
from sidecarctl.validation import port_in_use, validate_email, validate_port


class TestValidatePort:
    @pytest.mark.parametrize("value, expected", [(1, 1), (12345, 12345), ("8080", 8080), (" 443 ", 443), (65535, 65535)])
    def test_valid(self, value, expected) -> None:
        assert validate_port(value) == expected

    @pytest.mark.parametrize("value", [0, 65536, -1, "abc", "", None, True, 80.5])
    def test_invalid(self, value) -> None:
        with pytest.raises(InvalidPort):
            validate_port(value)


class TestValidateEmail:
    def test_trims(self) -> None:
        assert validate_email("  me@proton.me ") == "me@proton.me"

    @pytest.mark.parametrize("value", ["", "   ", "invalid.email", "user @ example.com", "a@b", None])
    def test_invalid(self, value) -> None:
        with pytest.raises(InvalidEmail):
            validate_email(value)


class TestPortInUse:
    def test_listening_port_is_in_use(self) -> None:
        with socket.socket() as server:
            server.bind(("127.0.0.1", 0))
            server.listen(1)
            assert port_in_use(server.getsockname()[1]) is True

    def test_free_port(self) -> None:
        with socket.socket() as probe:
            probe.bind(("127.0.0.1", 0))
            port = probe.getsockname()[1]
        assert port_in_use(port) is False
