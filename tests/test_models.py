"""Tests for the status and event models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from sidecarctl.models import (
    DEFAULT_PORT,
    LogEvent,
    LogLevel,
    StatusResponse,
    TerminatedEvent,
    default_status,
)


class TestDefaultStatus:
    def test_stopped_and_logged_out(self) -> None:
        status = default_status()
        assert status.server.running is False
        assert status.server.pid is None
        assert status.server.url is None
        assert status.auth.logged_in is False
        assert status.auth.username is None

    def test_canonical_endpoint(self) -> None:
        webdav = default_status().config.webdav
        assert webdav.host == "localhost"
        assert webdav.port == DEFAULT_PORT == 12345
        assert webdav.https is False
        assert webdav.require_auth is False

    def test_custom_port(self) -> None:
        assert default_status(8080).port == 8080

    def test_fresh_instance_each_call(self) -> None:
        assert default_status() is not default_status()

    def test_wire_names(self) -> None:
        wire = default_status().to_wire()
        assert wire["auth"] == {"loggedIn": False, "username": None}
        assert wire["config"]["webdav"]["requireAuth"] is False
        assert wire["config"]["remotePath"] == ""
        assert wire["config"]["debug"] is False
        assert wire["logFile"] == ""


class TestStatusParsing:
    def test_parse_wire_document(self, make_status) -> None:
        status = StatusResponse.model_validate(make_status(port=8443))
        assert status.server.running is True
        assert status.auth.username == "me@proton.me"
        assert status.config.webdav.password_hash == "x"
        assert status.config.cache.max_size_mb == 100
        assert status.config.auto_start is True
        assert status.port == 8443

    def test_null_cache_and_optionals(self, make_status) -> None:
        payload = make_status()
        payload["config"]["cache"] = None
        payload["config"]["debug"] = None
        payload["config"].pop("autoStart")
        status = StatusResponse.model_validate(payload)
        assert status.config.cache is None
        assert status.config.debug is None
        assert status.config.auto_start is None

    def test_extra_fields_ignored(self, make_status) -> None:
        status = StatusResponse.model_validate(make_status(version="2.0"))
        assert status.server.running is True

    def test_missing_required_field_rejected(self, make_status) -> None:
        payload = make_status()
        del payload["config"]["webdav"]["port"]
        with pytest.raises(ValidationError):
            StatusResponse.model_validate(payload)

    def test_round_trip_through_wire(self, make_status) -> None:
        status = StatusResponse.model_validate(make_status())
        assert StatusResponse.model_validate(status.to_wire()) == status

    def test_frozen(self) -> None:
        status = default_status()
        with pytest.raises(ValidationError):
            status.log_file = "/tmp/x"


class TestEvents:
    def test_log_event_level(self) -> None:
        event = LogEvent(level="error", message="boom")
        assert event.level is LogLevel.ERROR

    def test_terminated_event_defaults(self) -> None:
        event = TerminatedEvent(pid=10, code=0)
        assert event.signal is None
