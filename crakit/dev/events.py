"""Development server events, migration status and project feature lookup."""

from __future__ import annotations

import enum
import json
import os
import tomllib
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

__all__ = [
    "EventKind",
    "DevServerEvent",
    "MigrationStatus",
    "Migration",
    "DevState",
    "merge_migrations",
    "get_features",
]

_DEPENDENCY_NAME = "create-rust-app"


class EventKind(enum.Enum):
    """The kinds of event passed around the development server."""

    # Internal: never meant for the browser client.
    SHUTDOWN = "shutdown"
    CHECK_MIGRATIONS = "check_migrations"
    # External: sent to the browser client.
    PENDING_MIGRATIONS = "pending_migrations"
    MIGRATION_RESPONSE = "migration_response"
    FEATURES_LIST = "features_list"
    VITE_JS_STATUS = "vite_js_status"
    BACKEND_COMPILING = "backend_compiling"
    BACKEND_RESTARTING = "backend_restarting"
    BACKEND_STATUS = "backend_status"
    COMPILE_SUCCESS = "compile_success"
    COMPILE_MESSAGES = "compile_messages"

    @property
    def internal(self) -> bool:
        """Whether the event is only used inside the development server."""
        return self in (EventKind.SHUTDOWN, EventKind.CHECK_MIGRATIONS)


class MigrationStatus(enum.Enum):
    """Where a migration stands relative to the database."""

    APPLIED = "Applied"
    PENDING = "Pending"
    APPLIED_BUT_MISSING_LOCALLY = "AppliedButMissingLocally"
    UNKNOWN = "Unknown"


@dataclass
class Migration:
    """A database migration as shown to the development client."""

    name: str
    version: str
    status: MigrationStatus = MigrationStatus.UNKNOWN

    def to_dict(self) -> dict[str, str]:
        """The migration as a JSON-ready mapping."""
        return {"name": self.name, "version": self.version, "status": self.status.value}


@dataclass(frozen=True)
class DevServerEvent:
    """An event together with the values it carries."""

    kind: EventKind
    args: tuple[Any, ...] = ()

    @classmethod
    def shutdown(cls) -> DevServerEvent:
        return cls(EventKind.SHUTDOWN)

    @classmethod
    def check_migrations(cls) -> DevServerEvent:
        return cls(EventKind.CHECK_MIGRATIONS)

    @classmethod
    def pending_migrations(
        cls, pending: bool, migrations: Sequence[Migration]
    ) -> DevServerEvent:
        return cls(EventKind.PENDING_MIGRATIONS, (pending, tuple(migrations)))

    @classmethod
    def migration_response(cls, success: bool, error: str | None = None) -> DevServerEvent:
        return cls(EventKind.MIGRATION_RESPONSE, (success, error))

    @classmethod
    def features_list(cls, features: Iterable[str]) -> DevServerEvent:
        return cls(EventKind.FEATURES_LIST, (tuple(features),))

    @classmethod
    def vite_status(cls, up: bool) -> DevServerEvent:
        return cls(EventKind.VITE_JS_STATUS, (up,))

    @classmethod
    def backend_compiling(cls, compiling: bool) -> DevServerEvent:
        return cls(EventKind.BACKEND_COMPILING, (compiling,))

    @classmethod
    def backend_restarting(cls, restarting: bool) -> DevServerEvent:
        return cls(EventKind.BACKEND_RESTARTING, (restarting,))

    @classmethod
    def backend_status(cls, up: bool) -> DevServerEvent:
        return cls(EventKind.BACKEND_STATUS, (up,))

    @classmethod
    def compile_success(cls, success: bool) -> DevServerEvent:
        return cls(EventKind.COMPILE_SUCCESS, (success,))

    @classmethod
    def compile_messages(cls, messages: Iterable[Any]) -> DevServerEvent:
        return cls(EventKind.COMPILE_MESSAGES, (tuple(messages),))

    def _payload(self) -> dict[str, Any]:
        kind = self.kind
        match kind:
            case EventKind.CHECK_MIGRATIONS:
                return {"type": "_"}
            case EventKind.PENDING_MIGRATIONS:
                pending, migrations = self.args
                return {
                    "type": "migrationsPending",
                    "status": pending,
                    "migrations": [m.to_dict() for m in migrations],
                }
            case EventKind.MIGRATION_RESPONSE:
                success, error = self.args
                return {"type": "migrateResponse", "status": success, "error": error}
            case EventKind.FEATURES_LIST:
                return {"type": "featuresList", "features": list(self.args[0])}
            case EventKind.VITE_JS_STATUS:
                return {"type": "viteStatus", "status": self.args[0]}
            case EventKind.COMPILE_SUCCESS:
                return {"type": "compileStatus", "compiled": self.args[0]}
            case EventKind.BACKEND_COMPILING:
                return {"type": "backendCompiling", "compiling": self.args[0]}
            case EventKind.BACKEND_STATUS:
                return {"type": "backendStatus", "status": self.args[0]}
            case EventKind.BACKEND_RESTARTING:
                return {"type": "backendRestarting", "status": self.args[0]}
            case EventKind.SHUTDOWN:
                return {"type": "backendStatus", "status": "false"}
            case EventKind.COMPILE_MESSAGES:
                return {"type": "compilerMessages", "messages": list(self.args[0])}
        raise ValueError(f"unknown event kind: {kind!r}")

    def json(self) -> str:
        """The event as the compact JSON text sent to the browser client."""
        return json.dumps(self._payload(), sort_keys=True, separators=(",", ":"))


@dataclass
class DevState:
    """Which parts of the development server are still running."""

    frontend_server_running: bool = False
    backend_server_running: bool = False
    watchexec_running: bool = False

    def all_stopped(self) -> bool:
        """Whether every part has stopped, so the server may exit."""
        return not any(asdict(self).values())


def _version_of(name: str) -> str:
    return name.split("_", 1)[0]


def merge_migrations(
    file_versions: Iterable[str],
    pending_versions: Iterable[str],
    applied_versions: Iterable[str],
) -> list[Migration]:
    """Combine local, pending and applied migrations into one status list.

    ``file_versions`` are the names of the local migration directories
    (``<version>_<description>``); the other two hold bare versions.
    Versions are compared without regard to case.
    """
    migrations = [Migration(name=name, version=_version_of(name)) for name in file_versions]

    def find(version: str) -> Migration | None:
        wanted = version.lower()
        return next((m for m in migrations if m.version.lower() == wanted), None)

    for version in pending_versions:
        existing = find(version)
        if existing is not None:
            existing.status = MigrationStatus.PENDING

    for version in applied_versions:
        existing = find(version)
        if existing is not None:
            existing.status = MigrationStatus.APPLIED
        else:
            migrations.append(
                Migration(
                    name=f"{version}_?",
                    version=version,
                    status=MigrationStatus.APPLIED_BUT_MISSING_LOCALLY,
                )
            )
    return migrations


def get_features(project_dir: str | os.PathLike[str]) -> list[str]:
    """The features the project enables on its framework dependency.

    Dependencies listed in a ``[workspace.dependencies]`` table are read too.
    """
    manifest = Path(project_dir) / "Cargo.toml"
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise FileNotFoundError(f'Could not find "{os.fspath(project_dir)}"') from exc

    dependencies: dict[str, Any] = dict(data.get("dependencies", {}))
    workspace = data.get("workspace")
    if isinstance(workspace, dict):
        dependencies.update(workspace.get("dependencies", {}))

    try:
        dependency = dependencies[_DEPENDENCY_NAME]
    except KeyError:
        raise LookupError(
            f"Expected \"{os.fspath(project_dir)}\" to list '{_DEPENDENCY_NAME}' as a dependency."
        ) from None

    if isinstance(dependency, dict):
        return [str(feature) for feature in dependency.get("features", [])]
    return []