"""
Release channel tables.

Each Crosswalk release channel is pinned to one bundle version and to the
Cordova Android version its bundle was built against. A channel must appear
in both tables to be usable.
"""

from __future__ import annotations

# Crosswalk bundle version shipped on each channel.
CHANNEL_VERSIONS: dict[str, str] = {
    "stable": "10.39.235.15",
    "beta": "11.40.277.7",
    "canary": "12.41.296.0",
}

# Cordova Android version the channel's bundle requires.
REQUIRED_CORDOVA_VERSIONS: dict[str, str] = {
    "stable": "3.7.1",
    "beta": "3.7.1",
    "canary": "4.0.0",
}

DEFAULT_CHANNEL = "stable"

# Instruction-set variants published for every bundle, in download order.
SUPPORTED_ARCHITECTURES: tuple[str, ...] = ("x86", "arm")

# Filter value meaning "every supported architecture".
ALL_ARCHITECTURES = "both"

DOWNLOAD_BASE_URL = "https://download.01.org/crosswalk/releases/crosswalk/android"

# {channel}, {version} and {arch} are substituted by the artifact resolver.
ARCHIVE_NAME_TEMPLATE = "crosswalk-cordova-{version}-{arch}.zip"


def known_channels() -> list[str]:
    """Channels present in both tables, in declaration order."""
    return [c for c in CHANNEL_VERSIONS if c in REQUIRED_CORDOVA_VERSIONS]
