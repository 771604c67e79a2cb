"""
Tests for the migration pipeline — stage order, skips, and failure points.

All runs use the mock transport and mock command runner; the project
tree is real (under tmp_path).
"""

import shutil
import struct
import zipfile
from pathlib import Path

from xwalkify.adapters.mock import MockCommandRunner, MockTransport
from xwalkify.adapters.transport.http import HttpArchiveTransport
from xwalkify.core.data.layout import (
    BUNDLE_VERSION_MARKER,
    LIBRARY_DIR,
    MANIFEST_FILE,
    PLATFORM_MARKER,
)
from xwalkify.core.engine.pipeline import MigrationPipeline
from xwalkify.core.errors import (
    ConfigurationError,
    DocumentError,
    FilesystemError,
    PreconditionError,
    ToolchainError,
    TransportError,
)
from xwalkify.core.models.result import Stage
from xwalkify.core.services.manifest_editor import ANDROID_NAME, parse_manifest
from xwalkify.core.services import toolchain as toolchain_mod
from xwalkify.core.services.toolchain import PosixCommandBuilder, ToolchainInvoker

ALL_STAGES = [
    Stage.INIT,
    Stage.ENVIRONMENT_CHECK,
    Stage.VERSION_CHECK,
    Stage.DOWNLOAD,
    Stage.REPLACE,
    Stage.MANIFEST_PATCH,
    Stage.TOOLCHAIN_BUILD,
    Stage.DONE,
]

OLD_SOURCE = "src/org/apache/cordova/CordovaWebView.java"
NEW_SOURCE = "src/org/xwalk/core/XWalkView.java"


def _run(config, transport: MockTransport, toolchain: ToolchainInvoker, reporter=None):
    return MigrationPipeline(config, transport, toolchain, reporter=reporter).run()


class LocalMirror(HttpArchiveTransport):
    """Serve every requested URL from one archive on disk."""

    def __init__(self, archive: Path):
        super().__init__()
        self._archive = archive

    def fetch(self, url: str, destination: Path):
        return super().fetch(self._archive.as_uri(), destination)


def _corrupt_bundle_zip(path: Path) -> Path:
    """A bundle zip whose framework member has a broken deflate stream."""
    top = "crosswalk-cordova-10.39.235.15-x86"
    member = f"{top}/framework/src/org/xwalk/core/XWalkView.java"
    with zipfile.ZipFile(path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.writestr(f"{top}/VERSION", "10.39.235.15\n")
        zf.writestr(member, "package org.xwalk.core;\n" * 200)
    with zipfile.ZipFile(path) as zf:
        offset = zf.getinfo(member).header_offset
    data = bytearray(path.read_bytes())
    name_len, extra_len = struct.unpack_from("<HH", data, offset + 26)
    data[offset + 30 + name_len + extra_len] = 0xFF
    path.write_bytes(bytes(data))
    return path


def _permissions(project: Path) -> list[str]:
    root = parse_manifest((project / MANIFEST_FILE).read_bytes()).getroot()
    return [c.get(ANDROID_NAME) for c in root if c.tag == "uses-permission"]


# ── Happy Path ───────────────────────────────────────────────────────


class TestSuccessfulMigration:
    def test_reaches_done(self, make_config, transport, toolchain, cordova_project: Path):
        result = _run(make_config(), transport, toolchain)

        assert result.ok, result.message
        assert result.stage == Stage.DONE
        assert result.failed_stage is None
        assert result.stages == ALL_STAGES
        assert result.skipped == []

    def test_message_names_version_and_channel(self, make_config, transport, toolchain):
        result = _run(make_config(), transport, toolchain)
        assert "10.39.235.15" in result.message
        assert "stable channel" in result.message

    def test_project_is_migrated(self, make_config, transport, toolchain, cordova_project: Path):
        _run(make_config(), transport, toolchain)

        lib = cordova_project / LIBRARY_DIR
        assert (lib / NEW_SOURCE).is_file()
        assert not (lib / OLD_SOURCE).exists()
        assert (cordova_project / BUNDLE_VERSION_MARKER).read_text() == "10.39.235.15\n"
        assert _permissions(cordova_project) == [
            "android.permission.INTERNET",
            "android.permission.ACCESS_NETWORK_STATE",
            "android.permission.ACCESS_WIFI_STATE",
        ]

    def test_downloads_both_architectures(self, make_config, transport, toolchain):
        _run(make_config(), transport, toolchain)

        urls = sorted(url for url, _ in transport.call_log)
        assert len(urls) == 2
        assert urls[0].endswith("crosswalk-cordova-10.39.235.15-arm.zip")
        assert urls[1].endswith("crosswalk-cordova-10.39.235.15-x86.zip")

    def test_single_architecture(self, make_config, transport, toolchain):
        _run(make_config(architecture="x86"), transport, toolchain)
        assert transport.call_count == 1

    def test_rebuild_runs_in_library(self, make_config, transport, toolchain, runner: MockCommandRunner, cordova_project: Path):
        result = _run(make_config(), transport, toolchain)

        assert runner.call_count == 1
        command = runner.call_log[0]
        assert f"cd {cordova_project / LIBRARY_DIR}" in command
        assert "--target android-19" in command
        assert result.build_output == "BUILD SUCCESSFUL"

    def test_reporter_receives_progress(self, make_config, transport, toolchain):
        lines: list[str] = []
        _run(make_config(), transport, toolchain, reporter=lines.append)

        assert any("Cordova Android 3.7.1 detected" in line for line in lines)
        assert any("x86: done" in line for line in lines)
        assert "installed into" in lines[-1]

    def test_second_run_is_stable(self, make_config, transport, toolchain, cordova_project: Path):
        _run(make_config(), transport, toolchain)
        manifest = (cordova_project / MANIFEST_FILE).read_text()

        result = _run(make_config(preserve_existing=True), transport, toolchain)

        assert result.ok
        assert (cordova_project / MANIFEST_FILE).read_text() == manifest


# ── Preserve / Force ─────────────────────────────────────────────────


class TestPreserveExisting:
    def test_cached_bundle_skips_download(self, make_config, transport, toolchain, isolated_cache: Path, write_bundle, cordova_project: Path):
        write_bundle(isolated_cache / "stable")

        result = _run(make_config(preserve_existing=True), transport, toolchain)

        assert result.ok
        assert transport.call_count == 0
        assert Stage.DOWNLOAD not in result.stages
        assert result.skipped == [Stage.DOWNLOAD]
        assert (cordova_project / LIBRARY_DIR / NEW_SOURCE).is_file()

    def test_no_cached_bundle_downloads(self, make_config, transport, toolchain):
        result = _run(make_config(preserve_existing=True), transport, toolchain)

        assert result.ok
        assert transport.call_count == 2
        assert result.skipped == []

    def test_without_preserve_always_downloads(self, make_config, transport, toolchain, isolated_cache: Path, write_bundle):
        write_bundle(isolated_cache / "stable")
        _run(make_config(), transport, toolchain)
        assert transport.call_count == 2


class TestVersionMismatch:
    def test_mismatch_mutates_nothing(self, make_config, transport, toolchain, runner, cordova_project: Path):
        manifest = (cordova_project / MANIFEST_FILE).read_bytes()

        result = _run(make_config(channel="canary"), transport, toolchain)

        assert not result.ok
        assert result.stage == Stage.VERSION_CHECK
        assert isinstance(result.error, PreconditionError)
        assert "4.0.0" in result.message
        assert transport.call_count == 0
        assert runner.call_count == 0
        assert (cordova_project / LIBRARY_DIR / OLD_SOURCE).is_file()
        assert (cordova_project / MANIFEST_FILE).read_bytes() == manifest
        assert not (cordova_project / BUNDLE_VERSION_MARKER).exists()

    def test_force_overrides_mismatch(self, make_config, transport, toolchain):
        lines: list[str] = []
        result = _run(make_config(channel="canary", force_override=True), transport, toolchain, reporter=lines.append)

        assert result.ok
        assert "canary channel" in result.message
        assert any("--force" in line for line in lines)

    def test_force_with_preserve_still_skips_download(self, make_config, transport, toolchain, isolated_cache: Path, write_bundle):
        write_bundle(isolated_cache / "canary")

        result = _run(
            make_config(channel="canary", force_override=True, preserve_existing=True),
            transport,
            toolchain,
        )

        assert result.ok
        assert transport.call_count == 0


# ── Failures ─────────────────────────────────────────────────────────


class TestFailures:
    def test_unknown_architecture_fails_at_init(self, make_config, transport, toolchain):
        result = _run(make_config(architecture="mips"), transport, toolchain)

        assert result.stage == Stage.INIT
        assert isinstance(result.error, ConfigurationError)
        assert result.stages == [Stage.INIT]
        assert transport.call_count == 0

    def test_missing_target_fails_at_init(self, make_config, transport, toolchain):
        result = _run(make_config(target_platform_id=None), transport, toolchain)

        assert result.stage == Stage.INIT
        assert isinstance(result.error, ConfigurationError)

    def test_not_a_cordova_project(self, make_config, transport, toolchain, cordova_project: Path):
        (cordova_project / PLATFORM_MARKER).unlink()

        result = _run(make_config(), transport, toolchain)

        assert result.stage == Stage.ENVIRONMENT_CHECK
        assert isinstance(result.error, PreconditionError)
        assert "cordova platform add android" in result.error.guidance
        assert transport.call_count == 0

    def test_unreadable_version_marker(self, make_config, transport, toolchain, cordova_project: Path):
        (cordova_project / "platforms/android/cordova/version").unlink()

        result = _run(make_config(), transport, toolchain)

        assert result.stage == Stage.VERSION_CHECK
        assert isinstance(result.error, PreconditionError)
        assert "Cannot determine" in result.message

    def test_download_failure_leaves_project_intact(self, make_config, transport, toolchain, isolated_cache: Path, cordova_project: Path):
        transport.set_failure("-arm.zip", error="HTTP 404 Not Found")

        result = _run(make_config(), transport, toolchain)

        assert result.stage == Stage.DOWNLOAD
        assert isinstance(result.error, TransportError)
        assert (cordova_project / LIBRARY_DIR / OLD_SOURCE).is_file()
        assert not (isolated_cache / "stable").exists()

    def test_corrupt_archive_fails_at_download(self, make_config, toolchain, runner, tmp_path: Path, isolated_cache: Path, cordova_project: Path):
        mirror = LocalMirror(_corrupt_bundle_zip(tmp_path / "bundle.zip"))

        result = _run(make_config(architecture="x86"), mirror, toolchain)

        assert not result.ok
        assert result.stage == Stage.DOWNLOAD
        assert isinstance(result.error, TransportError)
        assert "Cannot extract" in result.message
        assert (cordova_project / LIBRARY_DIR / OLD_SOURCE).is_file()
        assert not (isolated_cache / "stable").exists()
        assert runner.call_count == 0

    def test_copy_failure_leaves_library_absent(self, make_config, transport, toolchain, runner, monkeypatch, cordova_project: Path):
        def _copytree(src, dst, *args, **kwargs):
            if Path(dst) == cordova_project / LIBRARY_DIR:
                raise OSError(28, "No space left on device")
            return real_copytree(src, dst, *args, **kwargs)

        real_copytree = shutil.copytree
        monkeypatch.setattr(shutil, "copytree", _copytree)

        result = _run(make_config(), transport, toolchain)

        assert result.stage == Stage.REPLACE
        assert isinstance(result.error, FilesystemError)
        assert "No space left" in result.message
        assert "CordovaLib has already been removed" in result.error.guidance
        assert not (cordova_project / LIBRARY_DIR).exists()
        assert runner.call_count == 0

    def test_missing_sdk_stops_before_replace(self, make_config, transport, runner, monkeypatch, cordova_project: Path):
        monkeypatch.setattr(toolchain_mod, "discover_sdk_root", lambda: None)
        no_sdk = ToolchainInvoker(runner, builder=PosixCommandBuilder())

        result = _run(make_config(), transport, no_sdk)

        assert result.stage == Stage.ENVIRONMENT_CHECK
        assert isinstance(result.error, ToolchainError)
        assert "ANDROID_HOME" in result.error.guidance
        assert transport.call_count == 0
        assert runner.call_count == 0
        assert (cordova_project / LIBRARY_DIR / OLD_SOURCE).is_file()

    def test_manifest_failure_is_not_rolled_back(self, make_config, transport, toolchain, runner, cordova_project: Path):
        (cordova_project / MANIFEST_FILE).write_text("<manifest>")

        result = _run(make_config(), transport, toolchain)

        assert result.stage == Stage.MANIFEST_PATCH
        assert isinstance(result.error, DocumentError)
        assert result.stages[-1] == Stage.MANIFEST_PATCH
        assert (cordova_project / LIBRARY_DIR / NEW_SOURCE).is_file()
        assert runner.call_count == 0

    def test_build_failure(self, make_config, transport, toolchain, runner: MockCommandRunner):
        runner.set_response("ant debug", stdout="Buildfile: build.xml", stderr="BUILD FAILED\nTarget not found", return_code=1)

        result = _run(make_config(), transport, toolchain)

        assert result.stage == Stage.TOOLCHAIN_BUILD
        assert isinstance(result.error, ToolchainError)
        assert "code 1" in result.message
        assert "Target not found" in result.message
        assert "--preserve" in result.error.guidance
        assert result.build_output == "Buildfile: build.xml"

    def test_failure_serializes(self, make_config, transport, toolchain):
        data = _run(make_config(channel="canary"), transport, toolchain).to_dict()

        assert data["ok"] is False
        assert data["stage"] == "version_check"
        assert data["error"]["kind"] == "precondition"
        assert data["stages"] == ["init", "environment_check", "version_check"]
