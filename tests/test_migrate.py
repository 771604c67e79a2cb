"""
Tests for the migrate use case — settings, target discovery, run ledger.
"""

from pathlib import Path

from xwalkify.adapters.mock import MockCommandRunner, MockTransport
from xwalkify.core.models.result import Stage
from xwalkify.core.persistence.audit import AuditWriter
from xwalkify.core.use_cases.migrate import run_migration

SDK = Path("/opt/android-sdk")


def _migrate(project: Path, transport: MockTransport, runner: MockCommandRunner, **kwargs):
    return run_migration(project, transport=transport, runner=runner, sdk_root=SDK, **kwargs)


class TestRunMigration:
    def test_success_with_explicit_target(self, cordova_project, transport, runner):
        result = _migrate(cordova_project, transport, runner, target="android-19")

        assert result.ok, result.message
        assert all("list targets" not in cmd for cmd in runner.call_log)
        assert "--target android-19" in runner.call_log[-1]

    def test_discovers_target(self, cordova_project, transport, runner):
        runner.set_response("android list targets", stdout='id: 1 or "android-19"\nid: 2 or "android-21"\n')

        result = _migrate(cordova_project, transport, runner)

        assert result.ok
        assert runner.call_log[0] == "android list targets"
        assert "--target android-21" in runner.call_log[-1]

    def test_discovery_failure_is_configuration_error(self, cordova_project, transport, runner):
        runner.set_response("android list targets", stderr="android: not found", return_code=127)

        result = _migrate(cordova_project, transport, runner)

        assert not result.ok
        assert result.stage == Stage.INIT
        assert result.error.kind == "configuration"
        assert result.stages == []
        assert transport.call_count == 0

    def test_unknown_channel(self, cordova_project, transport, runner):
        result = _migrate(cordova_project, transport, runner, channel="nightly", target="android-19")

        assert result.stage == Stage.INIT
        assert "nightly" in result.message
        assert runner.call_count == 0

    def test_settings_file_supplies_defaults(self, cordova_project, transport, runner):
        (cordova_project / "xwalkify.yml").write_text("channel: canary\ntarget: android-21\n")

        result = _migrate(cordova_project, transport, runner, force_override=True)

        assert result.ok
        assert "canary channel" in result.message
        assert "--target android-21" in runner.call_log[-1]

    def test_flags_override_settings(self, cordova_project, transport, runner):
        (cordova_project / "xwalkify.yml").write_text("channel: canary\ntarget: android-21\n")

        result = _migrate(cordova_project, transport, runner, channel="stable", target="android-19")

        assert result.ok
        assert "stable channel" in result.message

    def test_invalid_settings_file(self, cordova_project, transport, runner):
        (cordova_project / "xwalkify.yml").write_text("channel: [unclosed\n")

        result = _migrate(cordova_project, transport, runner, target="android-19")

        assert result.stage == Stage.INIT
        assert "Invalid YAML" in result.message

    def test_explicit_config_path(self, cordova_project, tmp_path, transport, runner):
        config = tmp_path / "elsewhere.yml"
        config.write_text("arch: arm\n")

        _migrate(cordova_project, transport, runner, config_path=config, target="android-19")

        assert transport.call_count == 1


class TestRunLedger:
    def test_outcome_recorded(self, cordova_project, transport, runner, isolated_cache):
        _migrate(cordova_project, transport, runner, target="android-19")

        entries = AuditWriter(cache_root=isolated_cache).read_all()
        assert len(entries) == 1
        assert entries[0].status == "ok"
        assert entries[0].stage == "done"
        assert entries[0].channel == "stable"
        assert entries[0].project_root == str(cordova_project.resolve())

    def test_failure_recorded(self, cordova_project, transport, runner, isolated_cache):
        _migrate(cordova_project, transport, runner, channel="canary", target="android-19")

        entry = AuditWriter(cache_root=isolated_cache).read_all()[-1]
        assert entry.status == "failed"
        assert entry.stage == "version_check"
        assert entry.errors

    def test_record_disabled(self, cordova_project, transport, runner, isolated_cache):
        _migrate(cordova_project, transport, runner, target="android-19", record=False)
        assert AuditWriter(cache_root=isolated_cache).read_all() == []

    def test_cache_dir_override(self, cordova_project, tmp_path, transport, runner):
        cache = tmp_path / "custom-cache"

        _migrate(cordova_project, transport, runner, target="android-19", cache_dir=cache)

        assert (cache / "audit.ndjson").is_file()
        assert transport.call_log[0][1].parent.parent == cache
