"""Locate the project's frontend, vite manifest and view templates."""

from __future__ import annotations

import functools
import os
import subprocess
from pathlib import Path

__all__ = [
    "fallback",
    "locate_workspace",
    "frontend_dir",
    "manifest_path",
    "views_glob",
]


def fallback(
    cargo_lp_workspace_dir: str | None,
    cargo_lp_dir: str | None,
    comptime_manifest_dir: str,
    special_case: str,
    default_case: str,
) -> str:
    """Choose between the workspace-member path and the default path.

    The special case applies only when both locations are known, they
    differ (we run inside a workspace member), and the manifest directory
    the package was configured with is that member's directory.
    """
    if (
        cargo_lp_workspace_dir is not None
        and cargo_lp_dir is not None
        and cargo_lp_workspace_dir != cargo_lp_dir
        and comptime_manifest_dir == cargo_lp_dir
    ):
        return special_case
    return default_case


@functools.cache
def locate_workspace() -> str | None:
    """Return the workspace root reported by ``cargo locate-project``.

    Returns None when the command cannot be run or its output is unusable.
    """
    cargo = os.environ.get("CARGO", "cargo")
    try:
        completed = subprocess.run(
            [cargo, "locate-project", "--workspace", "--message-format=plain"],
            capture_output=True,
            check=False,
        )
    except OSError:
        return None
    try:
        manifest = completed.stdout.decode("utf-8").strip()
    except UnicodeDecodeError:
        return None
    if not manifest:
        return None
    parent = Path(manifest).parent
    try:
        return str(parent.resolve(strict=True))
    except OSError:
        return str(parent)


def _manifest_dir() -> str:
    return os.environ.get("CARGO_MANIFEST_DIR", os.getcwd())


def _resolve(env_var: str, special_case: str, default_case: str) -> str:
    override = os.environ.get(env_var)
    if override is not None:
        return override
    workspace = locate_workspace()
    # Both lookups run the same command, so the crate directory is the
    # workspace directory as far as this resolution is concerned.
    return fallback(workspace, workspace, _manifest_dir(), special_case, default_case)


@functools.cache
def frontend_dir() -> str:
    """Path to the project's frontend directory."""
    return _resolve("CRA_FRONTEND_DIR", "../frontend", "./frontend")


@functools.cache
def manifest_path() -> str:
    """Path to the frontend's vite ``manifest.json``."""
    return _resolve(
        "CRA_MANIFEST_PATH",
        "../frontend/dist/manifest.json",
        "./frontend/dist/manifest.json",
    )


@functools.cache
def views_glob() -> str:
    """Glob matching the project's view templates."""
    return _resolve("CRA_VIEWS_GLOB", "views/**/*.html", "backend/views/**/*.html")