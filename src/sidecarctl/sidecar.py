"""
Sidecar supervision — owns the bridge worker process.

Starts the worker in the foreground, streams its stdout/stderr as
``sidecar:log`` events, notices termination, stops it through the
worker's own ``stop`` subcommand, and enforces a single running
instance.

The tracked PID lives behind one lock that is held only while the PID
is read or written, never across a spawn or a wait.

Usage:
    supervisor = SidecarSupervisor(config, events)
    pid = await supervisor.start(port=12345)
    ...
    await supervisor.stop()
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import threading
from dataclasses import dataclass
from typing import Optional

from .config import BridgeConfig
from .errors import (
    CommandError,
    SidecarAlreadyRunning,
    SidecarCommandFailed,
    SidecarNotRunning,
    SidecarSpawnFailed,
    PortInUse,
    ServerInitTimeout,
)
from .events import SIDECAR_LOG, SIDECAR_TERMINATED, EventBus
from .models import LogEvent, LogLevel, StatusResponse, TerminatedEvent
from .validation import port_in_use, validate_port

logger = logging.getLogger("sidecarctl.sidecar")
output_logger = logging.getLogger("sidecarctl.sidecar.output")

# Longest single output line the streamer buffers before giving up on it.
STREAM_LINE_LIMIT = 1024 * 1024

# Seconds the output readers get to drain once the worker has exited.
OUTPUT_DRAIN_TIMEOUT = 1.0

# Exit status is rechecked this often while output pipes stay open.
EXIT_POLL_INTERVAL = 0.2


@dataclass
class SidecarResult:
    """Outcome of a one-shot worker invocation.

    Attributes:
        returncode: Process exit status.
        stdout: Decoded standard output.
        stderr: Decoded standard error.
    """

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def diagnostic(self) -> str:
        """Best text to show on failure: stderr, else stdout."""
        return (self.stderr or self.stdout).strip()


def locate_sidecar(config: BridgeConfig) -> list[str]:
    """Resolve the argv prefix used to invoke the worker.

    Args:
        config: Host configuration.

    Returns:
        Command prefix, e.g. ``["/usr/bin/proton-drive-webdav-bridge"]``.

    Raises:
        SidecarSpawnFailed: The executable cannot be found.
    """
    path = config.sidecar_path
    if isinstance(path, list):
        if not path:
            raise SidecarSpawnFailed("sidecar_path is an empty command.")
        return list(path)

    if path:
        if os.path.exists(path):
            return [path]
        resolved = shutil.which(path)
        if resolved:
            return [resolved]
        raise SidecarSpawnFailed(f"Sidecar executable not found: {path}")

    resolved = shutil.which(config.sidecar_name)
    if resolved is None:
        raise SidecarSpawnFailed(f"'{config.sidecar_name}' not found on PATH.")
    return [resolved]


async def run_sidecar(
    config: BridgeConfig,
    *args: str,
    timeout: Optional[float] = None,
) -> SidecarResult:
    """Run the worker once and collect its output.

    Args:
        config: Host configuration.
        *args: Worker subcommand and flags.
        timeout: Seconds to wait before the process is killed.

    Returns:
        SidecarResult with exit status and decoded output.

    Raises:
        SidecarSpawnFailed: The worker could not be launched.
        asyncio.TimeoutError: The worker did not finish in time.
    """
    argv = locate_sidecar(config) + list(args)
    logger.debug("Running sidecar: %s", " ".join(argv))

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise SidecarSpawnFailed(str(exc)) from exc

    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        if proc.returncode is None:
            proc.kill()
        await proc.wait()
        raise

    return SidecarResult(
        returncode=proc.returncode if proc.returncode is not None else -1,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
    )


def build_start_args(port: Optional[int] = None) -> list[str]:
    """Argv for a foreground, non-interactive ``start``."""
    args = ["start"]
    if port is not None:
        args += ["--port", str(port)]
    args += ["--no-auth", "--no-daemon"]
    return args


class SidecarSupervisor:
    """Lifecycle owner of the bridge worker process.

    Args:
        config: Host configuration.
        events: Bus that receives ``sidecar:log`` and
            ``sidecar:terminated`` events.
    """

    def __init__(self, config: BridgeConfig, events: Optional[EventBus] = None) -> None:
        self.config = config
        self.events = events or EventBus()
        self._lock = threading.Lock()
        self._pid: Optional[int] = None
        self._starting = False
        self._stream_task: Optional[asyncio.Task] = None

    @property
    def pid(self) -> Optional[int]:
        """PID of the last spawned worker not yet seen to stop."""
        with self._lock:
            return self._pid

    @property
    def is_tracking(self) -> bool:
        return self.pid is not None

    async def start(self, port: Optional[int] = None) -> int:
        """Spawn the worker in the foreground.

        Args:
            port: Port to serve on; the worker's configured port if None.

        Returns:
            PID of the spawned worker.

        Raises:
            SidecarAlreadyRunning: A worker is tracked or being started.
            InvalidPort: ``port`` is out of range.
            PortInUse: ``port`` already accepts connections.
            SidecarSpawnFailed: The worker could not be launched.
        """
        if port is not None:
            port = validate_port(port)

        with self._lock:
            if self._pid is not None:
                raise SidecarAlreadyRunning(f"PID {self._pid}.")
            if self._starting:
                raise SidecarAlreadyRunning("A start is already in progress.")
            self._starting = True

        try:
            if port is not None and self.config.check_port:
                if await asyncio.to_thread(port_in_use, port):
                    raise PortInUse(port)

            argv = locate_sidecar(self.config) + build_start_args(port)
            logger.info("Starting sidecar: %s", " ".join(argv))
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                    limit=STREAM_LINE_LIMIT,
                )
            except OSError as exc:
                raise SidecarSpawnFailed(str(exc)) from exc

            with self._lock:
                self._pid = proc.pid
        finally:
            with self._lock:
                self._starting = False

        self._stream_task = asyncio.create_task(
            self._stream_output(proc), name=f"sidecar-output-{proc.pid}"
        )
        logger.info("Sidecar started (PID %d)", proc.pid)
        return proc.pid

    async def stop(self) -> None:
        """Ask the worker to shut down and wait for the answer.

        Raises:
            SidecarCommandFailed: ``stop`` exited non-zero or timed out;
                the tracked PID is kept.
            SidecarSpawnFailed: The worker could not be launched.
        """
        try:
            result = await run_sidecar(self.config, "stop", timeout=self.config.stop_timeout)
        except asyncio.TimeoutError:
            raise SidecarCommandFailed(
                f"stop did not finish within {self.config.stop_timeout:g}s."
            ) from None

        if not result.ok:
            logger.warning("Sidecar stop failed (rc=%d): %s", result.returncode, result.diagnostic)
            raise SidecarCommandFailed(result.diagnostic or f"exit code {result.returncode}")

        with self._lock:
            previous, self._pid = self._pid, None
        logger.info("Sidecar stopped (was PID %s)", previous)

    async def restart_with_port(self, port: int) -> int:
        """Stop whatever runs, then start on ``port``.

        Stop failures are ignored since the previous instance may already be
        gone. Start failures propagate.

        Returns:
            PID of the new worker.
        """
        port = validate_port(port)
        try:
            await self.stop()
        except CommandError as exc:
            logger.info("Ignoring stop failure before restart: %s", exc)

        await self._drain_previous(timeout=self.config.stop_timeout)
        return await self.start(port)

    async def wait_terminated(self) -> Optional[TerminatedEvent]:
        """Wait for the current worker's output stream to finish.

        Returns:
            The termination event, or None if nothing was started.
        """
        task = self._stream_task
        if task is None:
            return None
        return await asyncio.shield(task)

    async def wait_until_serving(
        self,
        reconciler,
        timeout: Optional[float] = None,
        interval: float = 0.5,
    ) -> StatusResponse:
        """Poll status until the worker reports it is serving.

        Args:
            reconciler: Object with an async ``query()`` returning
                StatusResponse (normally a StatusReconciler).
            timeout: Seconds to wait (default: server_init_timeout).
            interval: Seconds between polls.

        Raises:
            ServerInitTimeout: The worker never reported running.
            SidecarNotRunning: The worker exited before serving.
        """
        timeout = timeout if timeout is not None else self.config.server_init_timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            status = await reconciler.query()
            if status.server.running:
                return status
            task = self._stream_task
            if task is not None and task.done():
                raise SidecarNotRunning("The worker exited before it started serving.")
            if loop.time() >= deadline:
                raise ServerInitTimeout(f"Not serving after {timeout:g}s.")
            await asyncio.sleep(interval)

    async def _drain_previous(self, timeout: float) -> None:
        """Give the previous instance's stream a bounded chance to close."""
        task = self._stream_task
        if task is not None and not task.done():
            await asyncio.wait({task}, timeout=timeout)

    async def _stream_output(self, proc: asyncio.subprocess.Process) -> TerminatedEvent:
        """Relay worker output until the worker terminates."""
        pumps = [
            asyncio.create_task(self._pump(proc.stdout, LogLevel.INFO)),
            asyncio.create_task(self._pump(proc.stderr, LogLevel.ERROR)),
        ]
        returncode = await self._wait_exit(proc)

        with self._lock:
            if self._pid == proc.pid:
                self._pid = None

        # A child of the worker may still hold the pipes open.
        _, pending = await asyncio.wait(pumps, timeout=OUTPUT_DRAIN_TIMEOUT)
        for task in pending:
            task.cancel()
        if pending:
            logger.info("Sidecar output still open after exit; stopped reading")
            await asyncio.gather(*pending, return_exceptions=True)

        if returncode < 0:
            event = TerminatedEvent(pid=proc.pid, code=None, signal=-returncode)
        else:
            event = TerminatedEvent(pid=proc.pid, code=returncode, signal=None)

        logger.info("Sidecar PID %d terminated (code=%s signal=%s)", proc.pid, event.code, event.signal)
        self.events.emit(SIDECAR_TERMINATED, event)
        return event

    @staticmethod
    async def _wait_exit(proc: asyncio.subprocess.Process) -> int:
        """Wait for the worker to exit, without waiting on its pipes."""
        waiter = asyncio.ensure_future(proc.wait())
        while not waiter.done():
            if proc.returncode is not None:
                waiter.cancel()
                return proc.returncode
            await asyncio.wait({waiter}, timeout=EXIT_POLL_INTERVAL)
        return waiter.result()

    async def _pump(self, stream: Optional[asyncio.StreamReader], level: LogLevel) -> None:
        """Forward one output stream line by line."""
        if stream is None:
            return
        log = output_logger.info if level is LogLevel.INFO else output_logger.error

        while True:
            try:
                raw = await stream.readline()
            except ValueError as exc:
                logger.warning("Dropped oversized sidecar output line: %s", exc)
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            if not line:
                continue
            log("%s", line)
            self.events.emit(SIDECAR_LOG, LogEvent(level=level, message=line))
