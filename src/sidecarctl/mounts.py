"""
Mount locator — is the bridge endpoint in the OS mount table?

Pure functions: callers pass a fresh mount table every time, because
mounts change underneath us.

Matching tolerates the two differences the desktop's volume monitor
introduces: it always reports a trailing slash, and it may name the
host differently (``127.0.0.1`` vs ``localhost``) for the same port.
"""

from __future__ import annotations

from typing import Iterable, Optional, Union

from .models import DEFAULT_HOST, MountLocation, MountRecord

MountEntry = Union[MountRecord, tuple]


def endpoint_uri(port: int, host: str = DEFAULT_HOST) -> str:
    """The ``dav://host:port`` URI used to mount the bridge."""
    return f"dav://{host}:{port}"


def normalize_uri(uri: str) -> str:
    """Append a trailing slash if missing."""
    return uri if uri.endswith("/") else f"{uri}/"


def target_port(uri: str) -> Optional[str]:
    """Digits after the last colon of ``uri`` (trailing slash ignored).

    >>> target_port("dav://localhost:12345/")
    '12345'
    """
    head, sep, tail = uri.rstrip("/").rpartition(":")
    if not sep or not tail.isdigit():
        return None
    return tail


def _as_record(entry: MountEntry) -> MountRecord:
    if isinstance(entry, MountRecord):
        return entry
    uri, can_unmount = entry[0], entry[1]
    return MountRecord(uri=uri, can_unmount=bool(can_unmount))


def find_mount(mounts: Iterable[MountEntry], target: str) -> Optional[MountRecord]:
    """Find the mount table entry standing for ``target``.

    An exact match (after slash normalization) wins; otherwise the first
    entry containing ``:<port>`` of the target. First match wins in both
    passes.

    Args:
        mounts: ``(uri, can_unmount)`` pairs or MountRecords.
        target: Endpoint URI, with or without trailing slash.

    Returns:
        The matching record, or None.
    """
    records = [_as_record(m) for m in mounts]
    wanted = normalize_uri(target)

    for record in records:
        if normalize_uri(record.uri) == wanted:
            return record

    port = target_port(target)
    if port is None:
        return None
    needle = f":{port}"
    for record in records:
        if needle in record.uri:
            return record
    return None


def locate(mounts: Iterable[MountEntry], target: str) -> MountLocation:
    """Classify ``target`` against the mount table.

    Returns:
        UNMOUNTABLE or NOT_UNMOUNTABLE for a match (by its flag),
        NOT_FOUND otherwise.
    """
    record = find_mount(mounts, target)
    if record is None:
        return MountLocation.NOT_FOUND
    if record.can_unmount:
        return MountLocation.UNMOUNTABLE
    return MountLocation.NOT_UNMOUNTABLE
