"""Serving view templates, single page applications and frontend assets."""

from __future__ import annotations

import functools
import mimetypes
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from http import HTTPStatus
from pathlib import Path
from urllib.parse import urlsplit

import jinja2

from .templates import (
    DEFAULT_TEMPLATE,
    DEV_SERVER_PORT,
    create_environment,
    to_template_name,
)
from .workspace import frontend_dir as default_frontend_dir

__all__ = [
    "VITE_PING_PATH",
    "MAX_REFRESH_ATTEMPTS",
    "Response",
    "ViewRenderer",
    "template_response",
    "file_response",
]

VITE_PING_PATH = "/__vite_ping"
MAX_REFRESH_ATTEMPTS = 3


@dataclass
class Response:
    """A minimal HTTP response: status, headers and body."""

    status: int
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def text(self) -> str:
        """The body decoded as UTF-8."""
        return self.body.decode("utf-8")


def _hostname(host: str | None) -> str:
    if not host:
        return "localhost"
    try:
        name = urlsplit(f"//{host}").hostname
    except ValueError:
        return "localhost"
    return name or "localhost"


def _dev_inject(hostname: str) -> str:
    base = f"http://{hostname}:{DEV_SERVER_PORT}"
    indent = " " * 8
    lines = [
        "<!-- development mode -->",
        '<script type="module">',
        f"    import RefreshRuntime from '{base}/@react-refresh'",
        "    RefreshRuntime.injectIntoGlobalHook(window)",
        "    window.$RefreshReg$ = () => {}",
        "    window.$RefreshSig$ = () => (type) => type",
        "    window.__vite_plugin_react_preamble_installed__ = true",
        "</script>",
        f'<script type="module" src="{base}/src/dev.tsx"></script>',
    ]
    return "\n" + "".join(indent + line + "\n" for line in lines) + indent


def template_response(content: str, host: str | None = None, dev: bool = __debug__) -> Response:
    """An HTML response for rendered ``content``.

    In development the react-refresh preamble is injected right after every
    ``<body>`` tag, or before the content when there is none.
    """
    if dev:
        inject = _dev_inject(_hostname(host))
        if "<body>" in content:
            content = content.replace("<body>", f"<body>{inject}")
        else:
            content = inject + content
    return Response(
        status=int(HTTPStatus.OK),
        headers={"Content-Type": "text/html"},
        body=content.encode("utf-8"),
    )


def file_response(path: str | os.PathLike[str]) -> Response:
    """A response carrying the file at ``path``, typed by its extension."""
    body = Path(path).read_bytes()
    content_type, _ = mimetypes.guess_type(os.fspath(path))
    headers = {"Content-Type": content_type} if content_type else {}
    return Response(status=int(HTTPStatus.OK), headers=headers, body=body)


class ViewRenderer:
    """Renders views for request paths, falling back to assets and ``index.html``."""

    def __init__(
        self,
        environment: jinja2.Environment | None = None,
        frontend_dir: str | None = None,
        dev: bool = __debug__,
        on_vite_down: Callable[[], None] | None = None,
        on_vite_up: Callable[[], None] | None = None,
    ) -> None:
        self._environment = environment
        self._frontend_dir = frontend_dir
        self.dev = dev
        self.on_vite_down = on_vite_down
        self.on_vite_up = on_vite_up
        self._refresh_count = 0
        self._lock = threading.Lock()

    @functools.cached_property
    def environment(self) -> jinja2.Environment:
        """The template environment, loaded on first use."""
        if self._environment is not None:
            return self._environment
        return create_environment(None, None, self.dev)

    @property
    def frontend_dir(self) -> str:
        """Directory holding the frontend sources and build output."""
        return self._frontend_dir if self._frontend_dir is not None else default_frontend_dir()

    def _render(self, name: str) -> str:
        return self.environment.get_template(name).render()

    def _handle_vite_ping(self, path: str) -> Response | None:
        if path == VITE_PING_PATH:
            print("The vite dev server seems to be down...")
            if self.on_vite_down is not None:
                self.on_vite_down()
            with self._lock:
                if self._refresh_count < MAX_REFRESH_ATTEMPTS:
                    self._refresh_count += 1
                    count = self._refresh_count
                else:
                    count = None
            if count is not None:
                print(f"The vite dev server seems to be down... refreshing page ({count}).")
                return Response(
                    status=int(HTTPStatus.TEMPORARY_REDIRECT), headers={"Location": "."}
                )
            print("The vite dev server is down.")
            return Response(status=int(HTTPStatus.NOT_FOUND))
        if self.on_vite_up is not None:
            self.on_vite_up()
        with self._lock:
            self._refresh_count = 0
        return None

    def _asset_response(self, path: str) -> Response | None:
        frontend = self.frontend_dir
        if self.dev:
            candidates = [
                ("ASSET_FILE", f"{frontend}{path}"),
                ("PUBLIC_FILE", f"{frontend}/public{path}"),
            ]
        else:
            candidates = [(None, f"{frontend}/dist{path}")]
        for label, candidate in candidates:
            if Path(candidate).is_file():
                if label is not None:
                    print(f"{label} {path} => {candidate}")
                return file_response(candidate)
        return None

    def render_views(self, path: str, host: str | None = None) -> Response:
        """Respond to a request for ``path``.

        The matching view template is rendered if there is one; otherwise a
        frontend asset is served, and failing that ``index.html``.
        """
        if self.dev:
            ping_response = self._handle_vite_ping(path)
            if ping_response is not None:
                return ping_response

        template_name = to_template_name(path)
        try:
            content = self._render(template_name)
        except jinja2.TemplateError:
            asset = self._asset_response(path)
            if asset is not None:
                return asset
            template_name = DEFAULT_TEMPLATE
            try:
                content = self._render(DEFAULT_TEMPLATE)
            except jinja2.TemplateError:
                return Response(status=int(HTTPStatus.NOT_FOUND))

        print(f"TEMPLATE_FILE {path} => {template_name}")
        return template_response(content, host, self.dev)

    def render_single_page_application(self, view_name: str, host: str | None = None) -> Response:
        """Render the template ``view_name`` that hosts a single page application."""
        content = self._render(view_name.removeprefix("/"))
        return template_response(content, host, self.dev)