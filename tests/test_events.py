import json

import pytest

from crakit.dev.events import (
    DevServerEvent,
    DevState,
    Migration,
    MigrationStatus,
    get_features,
    merge_migrations,
)


def test_vite_status_json_is_compact_and_sorted():
    assert DevServerEvent.vite_status(True).json() == '{"status":true,"type":"viteStatus"}'


def test_shutdown_reports_status_as_string():
    data = json.loads(DevServerEvent.shutdown().json())
    assert data == {"type": "backendStatus", "status": "false"}


def test_check_migrations_type():
    assert json.loads(DevServerEvent.check_migrations().json()) == {"type": "_"}


@pytest.mark.parametrize(
    "event, type_name, key, value",
    [
        (DevServerEvent.compile_success(False), "compileStatus", "compiled", False),
        (DevServerEvent.backend_compiling(True), "backendCompiling", "compiling", True),
        (DevServerEvent.backend_status(True), "backendStatus", "status", True),
        (DevServerEvent.backend_restarting(True), "backendRestarting", "status", True),
        (DevServerEvent.vite_status(False), "viteStatus", "status", False),
    ],
)
def test_boolean_events(event, type_name, key, value):
    data = json.loads(event.json())
    assert data["type"] == type_name
    assert data[key] is value


def test_migration_response_with_and_without_error():
    ok = json.loads(DevServerEvent.migration_response(True).json())
    assert ok["type"] == "migrateResponse"
    assert ok["error"] is None
    failed = json.loads(DevServerEvent.migration_response(False, "boom").json())
    assert failed["status"] is False
    assert failed["error"] == "boom"


def test_features_list():
    data = json.loads(DevServerEvent.features_list(["plugin_auth", "backend_poem"]).json())
    assert data["type"] == "featuresList"
    assert data["features"] == ["plugin_auth", "backend_poem"]


def test_pending_migrations_serialises_status_names():
    migrations = [
        Migration("v1_init", "v1", MigrationStatus.PENDING),
        Migration("v0_?", "v0", MigrationStatus.APPLIED_BUT_MISSING_LOCALLY),
    ]
    data = json.loads(DevServerEvent.pending_migrations(True, migrations).json())
    assert data["type"] == "migrationsPending"
    assert data["status"] is True
    assert [m["status"] for m in data["migrations"]] == ["Pending", "AppliedButMissingLocally"]
    assert data["migrations"][0]["name"] == "v1_init"


def test_compile_messages_pass_through():
    messages = [{"reason": "compiler-message", "message": {"level": "error"}}]
    data = json.loads(DevServerEvent.compile_messages(messages).json())
    assert data["type"] == "compilerMessages"
    assert data["messages"] == messages


def test_dev_state_all_stopped():
    state = DevState()
    assert state.all_stopped()
    state.backend_server_running = True
    assert not state.all_stopped()
    state.backend_server_running = False
    state.watchexec_running = True
    assert not state.all_stopped()


def test_merge_migrations_statuses():
    names = ["20220101_create_users", "20220202_create_posts", "20220303_add_index"]
    result = merge_migrations(names, ["20220303"], ["20220101", "20211231"])
    by_version = {m.version: m for m in result}
    assert by_version["20220101"].status is MigrationStatus.APPLIED
    assert by_version["20220202"].status is MigrationStatus.UNKNOWN
    assert by_version["20220303"].status is MigrationStatus.PENDING
    missing = by_version["20211231"]
    assert missing.status is MigrationStatus.APPLIED_BUT_MISSING_LOCALLY
    assert missing.name == "20211231_?"
    assert [m.name for m in result[:3]] == names


def test_merge_migrations_ignores_case():
    result = merge_migrations(["ABC_one"], [], ["abc"])
    assert len(result) == 1
    assert result[0].status is MigrationStatus.APPLIED


def test_merge_migrations_pending_unknown_version_is_ignored():
    result = merge_migrations(["v1_a"], ["v9"], [])
    assert [(m.version, m.status) for m in result] == [("v1", MigrationStatus.UNKNOWN)]


def test_get_features_from_dependencies(tmp_path):
    (tmp_path / "Cargo.toml").write_text(
        '[package]\nname = "app"\n\n[dependencies]\n'
        'create-rust-app = { version = "1", features = ["plugin_dev", "backend_poem"] }\n'
    )
    assert get_features(tmp_path) == ["plugin_dev", "backend_poem"]


def test_get_features_from_workspace(tmp_path):
    (tmp_path / "Cargo.toml").write_text(
        "[workspace]\nmembers = []\n\n[workspace.dependencies]\n"
        'create-rust-app = { version = "1", features = ["plugin_auth"] }\n'
    )
    assert get_features(tmp_path) == ["plugin_auth"]


def test_get_features_plain_version(tmp_path):
    (tmp_path / "Cargo.toml").write_text('[dependencies]\ncreate-rust-app = "1"\n')
    assert get_features(tmp_path) == []


def test_get_features_missing_dependency(tmp_path):
    (tmp_path / "Cargo.toml").write_text('[dependencies]\nserde = "1"\n')
    with pytest.raises(LookupError):
        get_features(tmp_path)


def test_get_features_missing_manifest(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_features(tmp_path / "nowhere")