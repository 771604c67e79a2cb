"""
Cordova Android project layout.

All paths are relative to the project root. These are fixed by Cordova
convention; xwalkify does not support other layouts.
"""

from __future__ import annotations

ANDROID_PLATFORM_DIR = "platforms/android"

# Present once `cordova platform add android` has run.
PLATFORM_MARKER = f"{ANDROID_PLATFORM_DIR}/project.properties"

# Cordova's version script; its text embeds the platform version.
CORDOVA_VERSION_MARKER = f"{ANDROID_PLATFORM_DIR}/cordova/version"

MANIFEST_FILE = f"{ANDROID_PLATFORM_DIR}/AndroidManifest.xml"

# The native library subtree replaced wholesale.
LIBRARY_DIR = f"{ANDROID_PLATFORM_DIR}/CordovaLib"

# Version marker propagated from the bundle.
BUNDLE_VERSION_MARKER = f"{ANDROID_PLATFORM_DIR}/VERSION"

# Inside an extracted bundle (top-level directory already stripped).
BUNDLE_FRAMEWORK_DIR = "framework"
BUNDLE_VERSION_FILE = "VERSION"

# Generated by `ant debug` in the library directory, removed after the build.
BUILD_OUTPUT_DIRS: tuple[str, ...] = ("bin", "gen")

# Permissions the Crosswalk runtime needs declared in the manifest.
REQUIRED_PERMISSIONS: tuple[str, ...] = (
    "android.permission.ACCESS_NETWORK_STATE",
    "android.permission.ACCESS_WIFI_STATE",
)
