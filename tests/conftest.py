"""
Shared test fixtures — a Cordova Android project on disk and a fake bundle.
"""

import logging
import textwrap
from pathlib import Path

import pytest

from xwalkify.adapters.mock import MockCommandRunner, MockTransport
from xwalkify.core.models.release import ReleaseConfiguration
from xwalkify.core.services.toolchain import PosixCommandBuilder, ToolchainInvoker

MANIFEST_XML = textwrap.dedent("""\
    <?xml version='1.0' encoding='utf-8'?>
    <manifest android:versionCode="1" package="io.cordova.hello" xmlns:android="http://schemas.android.com/apk/res/android">
        <supports-screens android:anyDensity="true" android:largeScreens="true" />
        <uses-permission android:name="android.permission.INTERNET" />
        <application android:hardwareAccelerated="true" android:label="@string/app_name">
            <!-- launcher activity -->
            <activity android:name="HelloCordova" />
        </application>
        <uses-sdk android:minSdkVersion="10" android:targetSdkVersion="19" />
    </manifest>
""")

CORDOVA_VERSION_SCRIPT = textwrap.dedent("""\
    #!/usr/bin/env node

    // Coho updates this line:
    var VERSION = "3.7.1";

    console.log(VERSION);
""")

BUNDLE_FILES = {
    "framework/AndroidManifest.xml": "<manifest package=\"org.xwalk.core\" />\n",
    "framework/project.properties": "android.library=true\n",
    "framework/src/org/xwalk/core/XWalkView.java": "package org.xwalk.core;\n",
    "VERSION": "10.39.235.15\n",
}


@pytest.fixture(autouse=True)
def isolated_cache(tmp_path: Path, monkeypatch) -> Path:
    """Keep every test's cache (and run ledger) under tmp_path."""
    cache = tmp_path / "xwalk-cache"
    monkeypatch.setenv("XWALKIFY_CACHE_DIR", str(cache))
    return cache


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo setup_logging() calls made by the CLI under test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cordova_project(tmp_path: Path) -> Path:
    """A freshly added cordova-android 3.7.1 platform."""
    root = tmp_path / "hello"
    android = root / "platforms" / "android"

    (android / "cordova").mkdir(parents=True)
    (android / "project.properties").write_text("target=android-19\n")
    (android / "cordova" / "version").write_text(CORDOVA_VERSION_SCRIPT)
    (android / "AndroidManifest.xml").write_text(MANIFEST_XML)

    lib = android / "CordovaLib"
    (lib / "src" / "org" / "apache" / "cordova").mkdir(parents=True)
    (lib / "src" / "org" / "apache" / "cordova" / "CordovaWebView.java").write_text(
        "package org.apache.cordova;\n"
    )
    (lib / "project.properties").write_text("android.library=true\n")
    return root


@pytest.fixture
def bundle_files() -> dict[str, str]:
    return dict(BUNDLE_FILES)


@pytest.fixture
def transport(bundle_files: dict[str, str]) -> MockTransport:
    return MockTransport(files=bundle_files)


@pytest.fixture
def runner() -> MockCommandRunner:
    return MockCommandRunner(default_output="BUILD SUCCESSFUL")


@pytest.fixture
def toolchain(runner: MockCommandRunner) -> ToolchainInvoker:
    """POSIX-spelled rebuild against a fixed SDK path, run by the mock."""
    return ToolchainInvoker(runner, builder=PosixCommandBuilder(), sdk_root=Path("/opt/android-sdk"))


@pytest.fixture
def make_config(cordova_project: Path, isolated_cache: Path):
    """Factory for configurations pointing at the test project."""

    def _make(**overrides) -> ReleaseConfiguration:
        values = {
            "project_root": cordova_project,
            "cache_root": isolated_cache,
            "target_platform_id": "android-19",
        }
        values.update(overrides)
        return ReleaseConfiguration(**values)

    return _make


@pytest.fixture
def write_bundle():
    """Lay out an already-extracted bundle in a directory."""

    def _write(directory: Path, files: dict[str, str] = BUNDLE_FILES) -> Path:
        for relative, content in files.items():
            path = directory / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return directory

    return _write
