"""View templates, the vite manifest and the ``bundle()`` template function."""

from __future__ import annotations

import functools
import glob
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jinja2

from .workspace import manifest_path
from .workspace import views_glob as default_views_glob

__all__ = [
    "DEFAULT_TEMPLATE",
    "DEV_SERVER_PORT",
    "SinglePageApplication",
    "ViteManifestEntry",
    "ViteManifest",
    "to_template_name",
    "load_manifest",
    "bundle_markup",
    "create_environment",
]

DEFAULT_TEMPLATE = "index.html"
DEV_SERVER_PORT = 21012

_GLOB_CHARS = frozenset("*?[{")
_MISSING: Any = object()


@dataclass(frozen=True)
class SinglePageApplication:
    """The view (template) that renders a single page application."""

    view_name: str


@dataclass(frozen=True)
class ViteManifestEntry:
    """One entry of a vite ``manifest.json``."""

    file: str
    dynamic_imports: tuple[str, ...] | None = None
    css: tuple[str, ...] | None = None
    is_entry: bool | None = None
    is_dynamic_entry: bool | None = None

    @classmethod
    def from_dict(cls, data: Any) -> ViteManifestEntry:
        """Build an entry from its JSON object; raise ValueError if malformed."""
        if not isinstance(data, dict) or not isinstance(data.get("file"), str):
            raise ValueError("invalid vite manifest entry")
        return cls(
            file=data["file"],
            dynamic_imports=_string_list(data.get("dynamicImports")),
            css=_string_list(data.get("css")),
            is_entry=_optional_bool(data.get("isEntry")),
            is_dynamic_entry=_optional_bool(data.get("isDynamicEntry")),
        )


ViteManifest = Mapping[str, ViteManifestEntry]


def _string_list(value: Any) -> tuple[str, ...] | None:
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError("invalid vite manifest entry")
    return tuple(value)


def _optional_bool(value: Any) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    raise ValueError("invalid vite manifest entry")


def to_template_name(request_path: str) -> str:
    """Map a request path such as ``/foo/bar.html`` to a template name."""
    if not request_path.startswith("/"):
        raise ValueError(f"request path must start with '/': {request_path!r}")
    name = request_path[1:]
    return name or DEFAULT_TEMPLATE


def load_manifest(path: str | os.PathLike[str]) -> dict[str, ViteManifestEntry]:
    """Read and parse a vite ``manifest.json`` file."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("invalid vite manifest: expected a JSON object")
    return {key: ViteManifestEntry.from_dict(value) for key, value in data.items()}


def _dev_bundle(bundle_name: str) -> str:
    indent = " " * 32
    lines = [
        "// Injecting bundle (dev server mode)",
        f"// {{{{ bundle(name={bundle_name}) }}}}",
        ";(() => {",
        "    const script = document.createElement('script');",
        "    script.type = 'module';",
        "    script.src = `http://${window.location.hostname}:"
        f"{DEV_SERVER_PORT}/bundles/{bundle_name}`;",
        "    document.head.appendChild(script);",
        "})();",
        "</script>",
    ]
    return "<script>\n" + "\n".join(indent + line for line in lines)


def _production_bundle(bundle_name: str, manifest: ViteManifest) -> str:
    try:
        entry = manifest[f"bundles/{bundle_name}"]
    except KeyError:
        raise LookupError(f"could not get bundle `{bundle_name}`") from None
    entry_file = f'<script type="module" src="/{entry.file}"></script>'
    css_files = "\n".join(
        f'<link rel="stylesheet" href="/{css_file}" />' for css_file in entry.css or ()
    )
    dyn_entry_files = "\n".join(
        f'<script type="module" src="/{script}"></script>'
        for script in entry.dynamic_imports or ()
    )
    indent = " " * 24
    return (
        f"\n{indent}<!-- production mode -->"
        f"\n{indent}{entry_file}"
        f"\n{indent}{css_files}"
        f"\n{indent}{dyn_entry_files}"
        f"\n{indent}"
    )


def bundle_markup(
    bundle_name: str, manifest: ViteManifest | None = None, dev: bool = __debug__
) -> str:
    """HTML that loads the frontend bundle ``bundle_name``.

    In development the bundle is fetched from the vite dev server; in
    production the manifest decides which script and style files to load.
    """
    if dev:
        return _dev_bundle(bundle_name)
    if manifest is None:
        raise LookupError(f"could not get bundle `{bundle_name}`: no manifest")
    return _production_bundle(bundle_name, manifest)


def _glob_base(pattern: str) -> str:
    parts = pattern.replace("\\", "/").split("/")
    base: list[str] = []
    for part in parts:
        if any(ch in _GLOB_CHARS for ch in part):
            break
        base.append(part)
    joined = "/".join(base)
    if joined == pattern.replace("\\", "/"):
        joined = "/".join(base[:-1])
    return joined or "."


def _load_sources(pattern: str) -> dict[str, str]:
    base = _glob_base(pattern)
    sources: dict[str, str] = {}
    for file_name in sorted(glob.glob(pattern, recursive=True)):
        path = Path(file_name)
        if path.is_file():
            name = Path(os.path.relpath(path, base)).as_posix()
            sources[name] = path.read_text(encoding="utf-8")
    return sources


def create_environment(
    views_glob: str | None = None,
    manifest: ViteManifest | None = None,
    dev: bool = __debug__,
) -> jinja2.Environment:
    """Load every template matching ``views_glob`` into a jinja environment.

    Template names are relative to the non-glob prefix of the pattern.
    The ``bundle(name=...)`` function is available to every template; in
    production without an explicit manifest, the project's manifest is read
    on first use. Autoescaping is off, so its markup is inserted verbatim.
    """
    pattern = default_views_glob() if views_glob is None else views_glob
    environment = jinja2.Environment(
        loader=jinja2.DictLoader(_load_sources(pattern)),
        autoescape=False,
        keep_trailing_newline=True,
    )

    @functools.cache
    def resolved_manifest() -> ViteManifest | None:
        if manifest is not None or dev:
            return manifest
        return load_manifest(manifest_path())

    def bundle(name: Any = _MISSING) -> str:
        if name is _MISSING:
            raise jinja2.TemplateRuntimeError("bundle() requires a `name` argument")
        if not isinstance(name, str):
            raise TypeError(f"No bundle named {name!r}")
        return bundle_markup(name, resolved_manifest(), dev)

    environment.globals["bundle"] = bundle
    for name in environment.list_templates():
        environment.get_template(name)
    return environment