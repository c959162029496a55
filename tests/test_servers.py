import http.server
import io
import socket
import sys
import threading
import time
from unittest import mock

import pytest

from crakit.dev.events import DevServerEvent, DevState
from crakit.dev.servers import (
    BackendServer,
    FrontendServer,
    classify_changes,
    compile_backend,
    notify_dev_server,
    parse_cargo_messages,
)

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]


# ---------------------------------------------------------------- parsing


def test_parse_cargo_messages_skips_text_and_blank_lines():
    lines = [
        "not json\n",
        "\n",
        '{"reason": "compiler-artifact", "x": 1}\n',
        "[1, 2]\n",
        '{"no_reason": true}\n',
        '{"reason": "build-finished", "success": true}\n',
    ]
    result = list(parse_cargo_messages(lines))
    assert [m["reason"] for m in result] == ["compiler-artifact", "build-finished"]
    assert result[1]["success"] is True


def test_parse_cargo_messages_empty():
    assert list(parse_cargo_messages([])) == []


# ---------------------------------------------------------------- changes


def test_classify_backend_change_recompiles():
    assert classify_changes(["proj/backend/main.rs"], "proj/migrations", []) == (True, False)


def test_classify_ignored_change_does_nothing():
    result = classify_changes(["proj/backend/main.rs"], "proj/migrations", ["main.rs"])
    assert result == (False, False)


def test_classify_migration_change():
    result = classify_changes(["proj/migrations/1/up.sql"], "proj/migrations", [])
    assert result == (True, True)


def test_classify_ignored_migration_still_touches():
    result = classify_changes(["proj/migrations/1/up.sql"], "proj/migrations", ["up.sql"])
    assert result == (False, True)


def test_classify_stops_at_first_recompile():
    paths = ["proj/backend/main.rs", "proj/migrations/1/up.sql"]
    assert classify_changes(paths, "proj/migrations", []) == (True, False)


def test_classify_no_paths():
    assert classify_changes([], "proj/migrations", []) == (False, False)


# ---------------------------------------------------------------- compile


def _fake_process(output, returncode):
    process = mock.MagicMock()
    process.stdout = io.StringIO(output)
    process.wait.return_value = returncode
    return process


def test_compile_backend_publishes_messages(tmp_path):
    output = (
        '{"reason": "compiler-message", "message": {"rendered": "warning"}}\n'
        '{"reason": "build-finished", "success": true}\n'
    )
    events = []
    with mock.patch("subprocess.Popen", return_value=_fake_process(output, 0)) as popen:
        ok = compile_backend(tmp_path, events.append)
    assert ok is True
    args = popen.call_args
    assert args.args[0][:2] == ["cargo", "build"]
    assert args.kwargs["cwd"] == str(tmp_path)
    assert events == [
        DevServerEvent.compile_messages([]),
        DevServerEvent.compile_messages([{"message": {"rendered": "warning"}}]),
    ]


def test_compile_backend_failure(tmp_path, capsys):
    output = '{"reason": "build-finished", "success": false}\n'
    events = []
    with mock.patch("subprocess.Popen", return_value=_fake_process(output, 101)):
        ok = compile_backend(tmp_path, events.append)
    assert ok is False
    assert events == [DevServerEvent.compile_messages([])]
    assert "Compilation failed" in capsys.readouterr().out


# ---------------------------------------------------------------- notify


@pytest.fixture
def http_server():
    paths = []

    class Handler(http.server.BaseHTTPRequestHandler):
        def do_GET(self):
            paths.append(self.path)
            self.send_response(200)
            self.end_headers()

        def log_message(self, *args):
            pass

    server = http.server.HTTPServer(("localhost", 0), Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield server.server_address[1], paths
    finally:
        server.shutdown()
        server.server_close()


def test_notify_dev_server_sends_request(http_server):
    port, paths = http_server
    assert notify_dev_server("backend-up", {"DEV_SERVER_PORT": str(port)}) is True
    assert paths == ["/backend-up"]


def test_notify_dev_server_without_port():
    assert notify_dev_server("backend-up", {}) is False


def test_notify_dev_server_unreachable(capsys):
    with socket.socket() as sock:
        sock.bind(("localhost", 0))
        port = sock.getsockname()[1]
    assert notify_dev_server("vitejs-down", {"DEV_SERVER_PORT": str(port)}) is False
    assert "vitejs is down" in capsys.readouterr().out


# ---------------------------------------------------------------- servers


def test_backend_server_lifecycle(tmp_path):
    events = []
    stopped = []
    state = DevState()
    server = BackendServer(
        tmp_path, 60012, events.append, state=state,
        on_all_stopped=lambda: stopped.append(True), command=SLEEPER,
    )
    server.start()
    first = server.process
    assert state.backend_server_running is True
    assert first.poll() is None
    assert events == [DevServerEvent.check_migrations()]

    server.restart()
    second = server.process
    assert first.poll() is not None
    assert second.pid != first.pid
    assert second.poll() is None
    assert events[-1] == DevServerEvent.backend_restarting(True)

    server.stop()
    assert second.poll() is not None
    assert state.backend_server_running is False
    assert events[-1] == DevServerEvent.backend_status(False)
    assert stopped == [True]


def test_backend_stop_does_not_exit_while_others_run(tmp_path):
    stopped = []
    state = DevState(frontend_server_running=True)
    server = BackendServer(
        tmp_path, 60012, lambda e: None, state=state,
        on_all_stopped=lambda: stopped.append(True), command=SLEEPER,
    )
    server.start()
    server.stop()
    assert stopped == []
    assert state.frontend_server_running is True


def test_frontend_server_passes_port_and_stops(tmp_path):
    frontend = tmp_path / "frontend"
    frontend.mkdir()
    script = (
        "import os, time\n"
        "open('port.txt', 'w').write(os.environ['DEV_SERVER_PORT'])\n"
        "time.sleep(30)\n"
    )
    stopped = []
    state = DevState()
    server = FrontendServer(
        tmp_path, 60013, state=state,
        on_all_stopped=lambda: stopped.append(True),
        command=[sys.executable, "-c", script],
    )
    server.start()
    assert state.frontend_server_running is True
    port_file = frontend / "port.txt"
    deadline = time.monotonic() + 20
    while time.monotonic() < deadline and not (port_file.exists() and port_file.read_text()):
        time.sleep(0.05)
    assert port_file.read_text() == "60013"

    server.stop()
    assert server.process.poll() is not None
    assert state.frontend_server_running is False
    assert stopped == [True]