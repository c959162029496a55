"""Backend and frontend development processes and backend compilation."""

from __future__ import annotations

import json
import os
import subprocess
import sys
import threading
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any

from .events import DevServerEvent, DevState

__all__ = [
    "NPM",
    "BACKEND_URL",
    "FRONTEND_URL",
    "parse_cargo_messages",
    "classify_changes",
    "compile_backend",
    "notify_dev_server",
    "BackendServer",
    "FrontendServer",
]

NPM = "npm.cmd" if sys.platform == "win32" else "npm"
BACKEND_URL = "http://localhost:3000/"
FRONTEND_URL = "http://localhost:21012/"

Publish = Callable[[DevServerEvent], None]

_NOTIFY_WARNINGS = {
    "backend-up": "WARNING: Could not inform dev server of presence.",
    "vitejs-up": "WARNING: Could not inform dev server that vitejs is up.",
    "vitejs-down": "WARNING: Could not inform dev server that vitejs is down.",
}
_NOTIFY_TIMEOUT = 5.0


def parse_cargo_messages(lines: Iterable[str]) -> Iterator[dict[str, Any]]:
    """Yield the JSON messages in cargo's ``--message-format=json`` output.

    Lines that are not JSON objects with a ``reason`` are skipped.
    """
    for line in lines:
        text = line.strip()
        if not text:
            continue
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            continue
        if isinstance(message, dict) and "reason" in message:
            yield message


def classify_changes(
    paths: Iterable[str | os.PathLike[str]],
    migrations_dir: str | os.PathLike[str],
    ignored: Iterable[str],
) -> tuple[bool, bool]:
    """Decide what a batch of changed paths calls for.

    Returns ``(recompile, touched_migrations)``. A path triggers a
    recompilation unless it ends with one of the ``ignored`` names. Paths
    are examined in order and examination stops at the first path that
    triggers a recompilation, so migrations touched after it are not seen.
    """
    migrations_prefix = os.fspath(migrations_dir)
    ignored_names = list(ignored)
    touched_migrations = False
    for raw_path in paths:
        path = os.fspath(raw_path)
        if path.startswith(migrations_prefix):
            touched_migrations = True
        if not any(path.endswith(name) for name in ignored_names):
            return True, touched_migrations
    return False, touched_migrations


def _compiler_message(message: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in message.items() if key != "reason"}


def compile_backend(project_dir: str | os.PathLike[str], publish: Publish) -> bool:
    """Run ``cargo build`` in ``project_dir`` and report its diagnostics.

    The accumulated compiler messages are published after each new one
    (starting with an empty list to clear earlier ones). Returns whether
    the build succeeded.
    """
    print("🔨 Compiling backend...")
    started = time.monotonic()
    process = subprocess.Popen(
        ["cargo", "build", "-q", "--message-format=json-diagnostic-rendered-ansi"],
        cwd=os.fspath(project_dir),
        stdout=subprocess.PIPE,
        text=True,
        encoding="utf-8",
        errors="replace",
    )
    messages: list[dict[str, Any]] = []
    publish(DevServerEvent.compile_messages(messages))
    for message in parse_cargo_messages(process.stdout or ()):
        reason = message["reason"]
        if reason == "compiler-message":
            messages.append(_compiler_message(message))
            publish(DevServerEvent.compile_messages(messages))
        elif reason == "build-finished":
            elapsed = f"{time.monotonic() - started:.2f}"
            if message.get("success"):
                print(f"✅ Compiled ({elapsed} seconds)")
            else:
                print(f"❌ Compilation failed: see errors in app ({elapsed} seconds)")
    return process.wait() == 0


def notify_dev_server(endpoint: str, environ: Mapping[str, str] | None = None) -> bool:
    """Ping ``endpoint`` (e.g. ``backend-up``) on the development server.

    Does nothing and returns False when ``DEV_SERVER_PORT`` is unset;
    otherwise returns whether the request reached the server.
    """
    env = os.environ if environ is None else environ
    port = env.get("DEV_SERVER_PORT")
    if port is None:
        return False
    url = f"http://localhost:{port}/{endpoint.lstrip('/')}"
    try:
        with urllib.request.urlopen(url, timeout=_NOTIFY_TIMEOUT):
            pass
    except urllib.error.HTTPError:
        return True
    except (urllib.error.URLError, OSError, ValueError):
        warning = _NOTIFY_WARNINGS.get(
            endpoint.strip("/"), f"WARNING: Could not inform dev server ({endpoint})."
        )
        print(warning)
        return False
    return True


class _ManagedProcess:
    """A child process that belongs to one part of the development server."""

    def __init__(
        self,
        command: Sequence[str],
        cwd: Path,
        dev_port: int,
        state: DevState | None,
        lock: threading.Lock | None,
        on_all_stopped: Callable[[], None] | None,
    ) -> None:
        self.command = list(command)
        self.cwd = cwd
        self.dev_port = dev_port
        self.state = DevState() if state is None else state
        self._lock = threading.Lock() if lock is None else lock
        self.on_all_stopped = on_all_stopped
        self._process: subprocess.Popen[bytes] | None = None

    @property
    def process(self) -> subprocess.Popen[bytes] | None:
        """The current child process, if one was started."""
        return self._process

    def _spawn(self) -> None:
        env = {**os.environ, "DEV_SERVER_PORT": str(self.dev_port)}
        self._process = subprocess.Popen(self.command, cwd=self.cwd, env=env)

    def _kill(self) -> None:
        process = self._process
        if process is not None and process.poll() is None:
            process.kill()
            process.wait()

    def _set_running(self, running: bool) -> None:
        with self._lock:
            self._mark(running)
            stopped = self.state.all_stopped()
        if not running and stopped and self.on_all_stopped is not None:
            self.on_all_stopped()

    def _mark(self, running: bool) -> None:
        raise NotImplementedError


class BackendServer(_ManagedProcess):
    """Runs the backend with ``cargo run`` and restarts it on demand."""

    def __init__(
        self,
        project_dir: str | os.PathLike[str],
        dev_port: int,
        publish: Publish,
        state: DevState | None = None,
        lock: threading.Lock | None = None,
        on_all_stopped: Callable[[], None] | None = None,
        command: Sequence[str] = ("cargo", "run"),
    ) -> None:
        super().__init__(command, Path(project_dir), dev_port, state, lock, on_all_stopped)
        self.publish = publish

    def _mark(self, running: bool) -> None:
        self.state.backend_server_running = running

    def start(self) -> None:
        """Start the backend and ask for a migration check."""
        print(f"Starting backend server @ {BACKEND_URL}")
        self._set_running(True)
        self._spawn()
        self.publish(DevServerEvent.check_migrations())

    def restart(self) -> None:
        """Replace the running backend with a fresh process."""
        print("♻️  Restarting server...")
        self.publish(DevServerEvent.backend_restarting(True))
        self._kill()
        self._spawn()

    def stop(self) -> None:
        """Stop the backend and record that it is no longer running."""
        print("Shutting down backend server...")
        self.publish(DevServerEvent.backend_status(False))
        self._kill()
        self._set_running(False)


class FrontendServer(_ManagedProcess):
    """Runs the frontend dev server with ``npm run start:dev``."""

    def __init__(
        self,
        project_dir: str | os.PathLike[str],
        dev_port: int,
        state: DevState | None = None,
        lock: threading.Lock | None = None,
        on_all_stopped: Callable[[], None] | None = None,
        command: Sequence[str] = (NPM, "run", "start:dev"),
    ) -> None:
        super().__init__(
            command, Path(project_dir) / "frontend", dev_port, state, lock, on_all_stopped
        )

    def _mark(self, running: bool) -> None:
        self.state.frontend_server_running = running

    def start(self) -> None:
        """Start the frontend dev server."""
        print(f"Starting frontend server @ {FRONTEND_URL}")
        self._set_running(True)
        self._spawn()

    def stop(self) -> None:
        """Stop the frontend dev server."""
        print("Shutting down frontend server...")
        self._kill()
        self._set_running(False)
        print("frontend server stopped.")