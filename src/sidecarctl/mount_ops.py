"""
Mount orchestration — put the bridge endpoint on the desktop.

On Linux the desktop's volume API (GIO) is callback-based and needs a
GLib main loop, so every mount runs on its own thread with its own
``GLib.MainContext``. The completion callback hands its result over a
one-shot queue; a watchdog thread quits the loop if the callback never
fires. The caller waits on a second queue with a longer bound, so a
mount thread that never gets scheduled still cannot hang the host.

Timeouts, innermost first:
    mount_callback_timeout (5s): GLib loop waiting for the callback
    mount_timeout (20s): caller waiting for the mount thread

Requires PyGObject on Linux (``pip install sidecarctl[gio]``).
"""

from __future__ import annotations

import asyncio
import logging
import queue
import subprocess
import sys
import threading
from typing import Optional

from .config import BridgeConfig
from .errors import CommandError, GioError, IoError, MountTimeout
from .events import MOUNT_STATUS, EventBus
from .models import MountLocation, MountRecord
from .mounts import endpoint_uri, find_mount, locate
from .status import StatusReconciler

logger = logging.getLogger("sidecarctl.mount")

# (ok, detail): ok is None when the GLib loop gave up waiting.
MountOutcome = tuple[Optional[bool], Optional[str]]


def _load_gio():
    """Import Gio and GLib from PyGObject.

    Raises:
        GioError: PyGObject or the Gio typelib is missing.
    """
    try:
        import gi

        gi.require_version("Gio", "2.0")
        from gi.repository import Gio, GLib
    except (ImportError, ValueError) as exc:
        raise GioError(f"PyGObject is not available: {exc}") from exc
    return Gio, GLib


def _is_already_mounted(message: str) -> bool:
    return "already mounted" in message.lower()


def _run(cmd: list[str], timeout: float) -> subprocess.CompletedProcess:
    """Run a command and capture output."""
    return subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)


def _mount_in_context(uri: str, callback_timeout: float, outer: queue.Queue) -> None:
    """Mount thread body: drive one GIO mount inside a private main loop."""
    try:
        Gio, GLib = _load_gio()
    except GioError as exc:
        outer.put((False, str(exc.detail)))
        return

    context = GLib.MainContext.new()
    context.push_thread_default()
    inner: queue.Queue = queue.Queue(maxsize=1)
    fired = threading.Event()
    try:
        loop = GLib.MainLoop.new(context, False)

        def on_mounted(source, result, *_args) -> None:
            try:
                source.mount_enclosing_volume_finish(result)
                outcome: MountOutcome = (True, None)
            except GLib.Error as exc:
                message = getattr(exc, "message", None) or str(exc)
                if _is_already_mounted(message):
                    logger.info("%s is already mounted", uri)
                    outcome = (True, None)
                else:
                    outcome = (False, message)
            inner.put_nowait(outcome)
            fired.set()
            loop.quit()

        def watchdog() -> None:
            if not fired.wait(callback_timeout):
                logger.warning("No mount callback within %gs, stopping loop", callback_timeout)
                loop.quit()

        operation = Gio.MountOperation.new()
        operation.set_anonymous(True)
        target = Gio.File.new_for_uri(uri)
        target.mount_enclosing_volume(Gio.MountMountFlags.NONE, operation, None, on_mounted)

        threading.Thread(target=watchdog, name="gio-mount-watchdog", daemon=True).start()
        loop.run()
    except Exception as exc:
        logger.error("GIO mount of %s failed to run: %s", uri, exc)
        outer.put((False, str(exc)))
        return
    finally:
        context.pop_thread_default()

    try:
        outer.put(inner.get_nowait())
    except queue.Empty:
        outer.put((None, f"No mount callback within {callback_timeout:g}s."))


def mount_uri_blocking(uri: str, callback_timeout: float, timeout: float) -> None:
    """Mount ``uri`` through GIO, blocking the calling thread.

    Args:
        uri: Location to mount (``dav://localhost:12345``).
        callback_timeout: Bound on the GLib loop waiting for the callback.
        timeout: Bound on this thread waiting for the mount thread.

    Raises:
        MountTimeout: Either bound expired.
        GioError: GIO reported a failure other than "already mounted".
    """
    outer: queue.Queue = queue.Queue(maxsize=1)
    worker = threading.Thread(
        target=_mount_in_context,
        args=(uri, callback_timeout, outer),
        name="gio-mount",
        daemon=True,
    )
    worker.start()

    try:
        ok, detail = outer.get(timeout=timeout)
    except queue.Empty:
        raise MountTimeout(f"No result from the mount thread within {timeout:g}s.") from None

    if ok is None:
        raise MountTimeout(detail)
    if not ok:
        raise GioError(detail)


def list_mounts() -> list[MountRecord]:
    """Read the live GIO mount table.

    Raises:
        GioError: PyGObject is not available.
    """
    Gio, _ = _load_gio()
    records = []
    for mount in Gio.VolumeMonitor.get().get_mounts():
        records.append(
            MountRecord(
                uri=mount.get_root().get_uri(),
                can_unmount=bool(mount.can_unmount()),
                name=mount.get_name(),
            )
        )
    return records


def unmount_uri(uri: str, timeout: float) -> None:
    """Unmount ``uri`` with ``gio mount -u``.

    Raises:
        IoError: The gio tool could not be run.
        MountTimeout: gio did not return in time.
        GioError: gio exited non-zero.
    """
    try:
        result = _run(["gio", "mount", "-u", uri], timeout=timeout)
    except subprocess.TimeoutExpired:
        raise MountTimeout(f"gio mount -u did not return within {timeout:g}s.") from None
    except OSError as exc:
        raise IoError(f"Failed to execute gio: {exc}") from exc

    if result.returncode != 0:
        raise GioError(f"Failed to unmount: {result.stderr.strip() or result.stdout.strip()}")


def open_uri(uri: str, platform: str) -> None:
    """Hand ``uri`` to the platform file manager (macOS / Windows)."""
    opener = "open" if platform == "darwin" else "explorer"
    try:
        subprocess.Popen([opener, uri])
    except OSError as exc:
        raise IoError(f"Failed to run {opener}: {exc}") from exc


class MountOrchestrator:
    """Mounts, unmounts and inspects the bridge endpoint.

    Args:
        config: Host configuration (timeouts).
        reconciler: Status source for the endpoint port.
        events: Bus that receives ``mount:status`` progress lines.
        platform: Override ``sys.platform`` (tests).
    """

    def __init__(
        self,
        config: BridgeConfig,
        reconciler: StatusReconciler,
        events: Optional[EventBus] = None,
        platform: Optional[str] = None,
    ) -> None:
        self.config = config
        self.reconciler = reconciler
        self.events = events or reconciler.events
        self.platform = platform or sys.platform

    @property
    def is_linux(self) -> bool:
        return self.platform.startswith("linux")

    def _emit(self, message: str) -> None:
        logger.info("%s", message)
        self.events.emit(MOUNT_STATUS, message)

    async def mount(self) -> str:
        """Mount the endpoint of the running worker.

        Returns:
            The endpoint URI that was mounted.

        Raises:
            GioError: The worker is not serving, or GIO failed.
            MountTimeout: The mount did not complete in time.
            IoError: The platform opener could not be launched.
        """
        status = await self.reconciler.query()
        if not status.server.running:
            raise GioError("not running")

        uri = endpoint_uri(status.port)
        self._emit(f"Mounting {uri}")
        try:
            if self.is_linux:
                await asyncio.to_thread(
                    mount_uri_blocking,
                    uri,
                    self.config.mount_callback_timeout,
                    self.config.mount_timeout,
                )
            elif self.platform in ("darwin", "win32"):
                await asyncio.to_thread(open_uri, uri, self.platform)
            else:
                raise GioError("platform not supported")
        except CommandError as exc:
            self._emit(f"Mount failed: {exc}")
            raise

        self._emit(f"Mounted {uri}")
        return uri

    async def unmount(self) -> str:
        """Unmount the bridge endpoint if the OS allows it.

        Returns:
            The mount table URI that was unmounted.

        Raises:
            GioError: Not found, not unmountable, gio failed, or
                unsupported platform.
            IoError: gio could not be launched.
        """
        status = await self.reconciler.query()
        target = endpoint_uri(status.port)
        if not self.is_linux:
            raise GioError("platform not supported")

        mounts = await asyncio.to_thread(list_mounts)
        location = locate(mounts, target)
        if location is MountLocation.NOT_FOUND:
            raise GioError(f"mount not found for {target}")
        if location is MountLocation.NOT_UNMOUNTABLE:
            raise GioError(f"mount for {target} cannot be unmounted")

        record = find_mount(mounts, target)
        self._emit(f"Unmounting {record.uri}")
        try:
            await asyncio.to_thread(unmount_uri, record.uri, self.config.mount_timeout)
        except CommandError as exc:
            self._emit(f"Unmount failed: {exc}")
            raise
        self._emit(f"Unmounted {record.uri}")
        return record.uri

    async def mount_status(self) -> Optional[str]:
        """Name (or root URI) of the mount serving the endpoint, if any."""
        status = await self.reconciler.query()
        target = endpoint_uri(status.port)
        if not self.is_linux:
            return None

        mounts = await asyncio.to_thread(list_mounts)
        for record in mounts:
            self.events.emit(MOUNT_STATUS, f"Checking mount: {record.uri}")

        record = find_mount(mounts, target)
        if record is None:
            self.events.emit(MOUNT_STATUS, "No matching mount found")
            return None
        return record.name or record.uri
