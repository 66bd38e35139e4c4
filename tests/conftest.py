"""Shared test fixtures for sidecarctl."""

from __future__ import annotations

import asyncio
import json
import os
import signal
import sys
import textwrap
from pathlib import Path

import pytest

from sidecarctl.config import BridgeConfig
from sidecarctl.events import EventBus

# A stand-in for the bridge worker. Behaviour is steered by files in its
# own directory so tests can script each subcommand.
FAKE_SIDECAR = textwrap.dedent(
    '''
    import json, os, signal, sys, time
    from pathlib import Path

    here = Path(__file__).parent
    args = sys.argv[1:]

    def read(name, default=None):
        p = here / name
        return p.read_text() if p.exists() else default

    with open(here / "calls.log", "a") as fh:
        fh.write(json.dumps(args) + "\\n")

    cmd = args[0] if args else ""

    if cmd == "start":
        (here / "start_args.json").write_text(json.dumps(args))
        if read("start_exit") is not None:
            print("boot failed")
            sys.exit(int(read("start_exit")))
        if read("start_orphan") is not None:
            import subprocess
            child = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(30)"])
            (here / "orphan.pid").write_text(str(child.pid))
            print("helper started", flush=True)
            sys.exit(0)
        (here / "worker.pid").write_text(str(os.getpid()))
        signal.signal(signal.SIGTERM, lambda *_: sys.exit(0))
        print("Server listening", flush=True)
        print("warning: cache cold", file=sys.stderr, flush=True)
        while True:
            time.sleep(0.05)

    if cmd == "stop":
        rc = int(read("stop_rc", "0"))
        if rc:
            print(read("stop_err", ""), file=sys.stderr)
            sys.exit(rc)
        pid = read("worker.pid")
        if pid:
            try:
                os.kill(int(pid), signal.SIGTERM)
            except ProcessLookupError:
                pass
            (here / "worker.pid").unlink()
        sys.exit(0)

    if cmd == "status":
        if read("status_sleep"):
            time.sleep(float(read("status_sleep")))
        sys.stdout.write(read("status_out", ""))
        sys.exit(int(read("status_rc", "0")))

    if cmd in ("auth", "config"):
        err = read("rc_err")
        if err:
            print(err, file=sys.stderr)
        sys.exit(int(read("rc", "0")))

    sys.exit(2)
    '''
)


def status_payload(running: bool = True, pid=4242, port: int = 12345, **extra) -> dict:
    """A worker ``status --json`` document."""
    payload = {
        "server": {
            "running": running,
            "pid": pid,
            "url": f"http://localhost:{port}" if running else None,
        },
        "auth": {"loggedIn": True, "username": "me@proton.me"},
        "config": {
            "webdav": {
                "host": "localhost",
                "port": port,
                "https": False,
                "requireAuth": True,
                "username": "dav",
                "passwordHash": "x",
            },
            "remotePath": "/",
            "cache": {"enabled": True, "ttlSeconds": 60, "maxSizeMB": 100},
            "debug": False,
            "autoStart": True,
        },
        "logFile": "/tmp/bridge.log",
    }
    payload.update(extra)
    return payload


class FakeSidecar:
    """Handle on the fake worker's control directory."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self.script = root / "fake_sidecar.py"
        self.script.write_text(FAKE_SIDECAR)

    def config(self, **overrides) -> BridgeConfig:
        overrides.setdefault("check_port", False)
        return BridgeConfig(sidecar_path=[sys.executable, str(self.script)], **overrides)

    def set(self, name: str, value) -> None:
        (self.root / name).write_text(str(value))

    def set_status(self, payload, preamble: str = "") -> None:
        body = payload if isinstance(payload, str) else json.dumps(payload)
        self.set("status_out", preamble + body + "\n")

    def calls(self) -> list[list[str]]:
        log = self.root / "calls.log"
        if not log.exists():
            return []
        return [json.loads(line) for line in log.read_text().splitlines()]

    def start_args(self) -> list[str]:
        return json.loads((self.root / "start_args.json").read_text())

    def kill_worker(self) -> None:
        for name in ("worker.pid", "orphan.pid"):
            pid_file = self.root / name
            if pid_file.exists():
                try:
                    os.kill(int(pid_file.read_text()), signal.SIGKILL)
                except (ProcessLookupError, ValueError):
                    pass


@pytest.fixture
def fake_sidecar(tmp_path: Path) -> FakeSidecar:
    """Provide a scriptable fake bridge worker."""
    root = tmp_path / "sidecar"
    root.mkdir()
    sidecar = FakeSidecar(root)
    yield sidecar
    sidecar.kill_worker()


@pytest.fixture
def tmp_home(tmp_path: Path) -> Path:
    """Provide a temporary host home directory."""
    home = tmp_path / ".sidecarctl"
    home.mkdir()
    return home


@pytest.fixture
def events() -> EventBus:
    return EventBus()


async def _wait_for(predicate, timeout: float = 5.0, interval: float = 0.02) -> None:
    """Poll ``predicate`` until true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met in time")
        await asyncio.sleep(interval)


@pytest.fixture
def wait_for():
    """Async poller: ``await wait_for(lambda: cond)``."""
    return _wait_for


@pytest.fixture
def make_status():
    """Factory for worker ``status --json`` documents."""
    return status_payload
