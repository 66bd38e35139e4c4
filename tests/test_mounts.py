"""Tests for the mount locator."""

from __future__ import annotations

import pytest

from sidecarctl.models import MountLocation, MountRecord
from sidecarctl.mounts import endpoint_uri, find_mount, locate, normalize_uri, target_port

TARGET = "dav://localhost:12345"


class TestHelpers:
    def test_endpoint_uri(self) -> None:
        assert endpoint_uri(12345) == "dav://localhost:12345"
        assert endpoint_uri(8080, host="127.0.0.1") == "dav://127.0.0.1:8080"

    def test_normalize_adds_slash(self) -> None:
        assert normalize_uri("dav://a") == "dav://a/"

    def test_normalize_keeps_slash(self) -> None:
        assert normalize_uri("dav://a/") == "dav://a/"

    @pytest.mark.parametrize(
        "uri, port",
        [
            ("dav://localhost:12345", "12345"),
            ("dav://localhost:12345/", "12345"),
            ("dav://localhost", None),
            ("dav://localhost:12345/path", None),
            ("dav://localhost:abc", None),
        ],
    )
    def test_target_port(self, uri: str, port) -> None:
        assert target_port(uri) == port


class TestLocate:
    """Scenarios for locate()."""

    def test_exact_match_unmountable(self) -> None:
        mounts = [("dav://localhost:12345/", True), ("dav://other:1/", True)]
        assert locate(mounts, TARGET) is MountLocation.UNMOUNTABLE

    def test_exact_match_not_unmountable(self) -> None:
        mounts = [("dav://localhost:12345/", False)]
        assert locate(mounts, TARGET) is MountLocation.NOT_UNMOUNTABLE

    def test_port_fallback(self) -> None:
        mounts = [("http://127.0.0.1:12345/", True)]
        assert locate(mounts, TARGET) is MountLocation.UNMOUNTABLE

    def test_empty_table(self) -> None:
        assert locate([], TARGET) is MountLocation.NOT_FOUND

    def test_no_match(self) -> None:
        mounts = [("dav://other:1/", True), ("smb://nas/share/", True)]
        assert locate(mounts, TARGET) is MountLocation.NOT_FOUND

    @pytest.mark.parametrize(
        "mounts",
        [
            [],
            [("dav://localhost:12345/", True)],
            [("dav://localhost:12345/", False)],
            [("http://127.0.0.1:12345/", False)],
            [("dav://other:1/", True)],
        ],
    )
    def test_trailing_slash_on_target_is_irrelevant(self, mounts) -> None:
        assert locate(mounts, TARGET) is locate(mounts, TARGET + "/")

    def test_exact_match_beats_earlier_port_match(self) -> None:
        mounts = [("http://127.0.0.1:12345/", False), ("dav://localhost:12345/", True)]
        assert locate(mounts, TARGET) is MountLocation.UNMOUNTABLE

    def test_first_exact_match_wins(self) -> None:
        mounts = [("dav://a/", False), ("dav://a/", True)]
        assert locate(mounts, "dav://a") is MountLocation.NOT_UNMOUNTABLE

    def test_first_port_match_wins(self) -> None:
        mounts = [("dav://127.0.0.1:12345/", True), ("dav://[::1]:12345/", False)]
        assert locate(mounts, TARGET) is MountLocation.UNMOUNTABLE

    def test_candidate_without_slash_matches(self) -> None:
        assert locate([("dav://localhost:12345", True)], TARGET) is MountLocation.UNMOUNTABLE

    def test_target_without_port_skips_fallback(self) -> None:
        mounts = [("dav://other:80/", True)]
        assert locate(mounts, "dav://localhost") is MountLocation.NOT_FOUND

    def test_accepts_mount_records(self) -> None:
        mounts = [MountRecord(uri="dav://localhost:12345/", can_unmount=True, name="Bridge")]
        assert locate(mounts, TARGET) is MountLocation.UNMOUNTABLE


class TestFindMount:
    def test_returns_record_with_os_uri(self) -> None:
        mounts = [MountRecord(uri="dav://127.0.0.1:12345/", can_unmount=True, name="Drive")]
        record = find_mount(mounts, TARGET)
        assert record is not None
        assert record.uri == "dav://127.0.0.1:12345/"
        assert record.name == "Drive"

    def test_none_when_missing(self) -> None:
        assert find_mount([("dav://other:1/", True)], TARGET) is None

    def test_accepts_generators(self) -> None:
        mounts = (pair for pair in [("dav://localhost:12345/", True)])
        assert find_mount(mounts, TARGET).can_unmount is True
