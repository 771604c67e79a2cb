"""
Artifact resolver — where a bundle comes from and where it lands.

Pure functions of a ReleaseConfiguration. No I/O except
``has_local_bundle``, which only looks.

URL layout::

    <base>/<channel>/<version>/<arch>/crosswalk-cordova-<version>-<arch>.zip
"""

from __future__ import annotations

from pathlib import Path

from xwalkify.core.data.channels import (
    ALL_ARCHITECTURES,
    ARCHIVE_NAME_TEMPLATE,
    DOWNLOAD_BASE_URL,
    SUPPORTED_ARCHITECTURES,
)
from xwalkify.core.data.layout import BUNDLE_FRAMEWORK_DIR, BUNDLE_VERSION_FILE
from xwalkify.core.errors import ConfigurationError
from xwalkify.core.models.release import DownloadTarget, ReleaseConfiguration


def bundle_dir(config: ReleaseConfiguration) -> Path:
    """Local directory the channel's bundle is extracted into."""
    return config.cache_root / config.channel


def archive_url(
    channel: str,
    version: str,
    architecture: str,
    base_url: str = DOWNLOAD_BASE_URL,
) -> str:
    """Canonical download URL for one architecture."""
    filename = ARCHIVE_NAME_TEMPLATE.format(
        channel=channel,
        version=version,
        arch=architecture,
    )
    return f"{base_url.rstrip('/')}/{channel}/{version}/{architecture}/{filename}"


def selected_architectures(architecture: str | None) -> list[str]:
    """Architectures named by a filter value.

    ``None`` or ``"both"`` selects every supported architecture; a
    supported name selects itself; anything else selects nothing.
    """
    if architecture is None or architecture == ALL_ARCHITECTURES:
        return list(SUPPORTED_ARCHITECTURES)
    if architecture in SUPPORTED_ARCHITECTURES:
        return [architecture]
    return []


def resolve_download_targets(config: ReleaseConfiguration) -> list[DownloadTarget]:
    """Every archive to fetch for ``config``, all sharing one destination.

    An unrecognized architecture yields an empty list; use
    ``plan_downloads`` to turn that into an error.
    """
    destination = bundle_dir(config)
    return [
        DownloadTarget(
            architecture=arch,
            url=archive_url(config.channel, config.artifact_version, arch),
            destination=destination,
        )
        for arch in selected_architectures(config.architecture)
    ]


def plan_downloads(config: ReleaseConfiguration) -> list[DownloadTarget]:
    """Like ``resolve_download_targets`` but never silently empty.

    Raises:
        ConfigurationError: The architecture filter matched nothing.
    """
    targets = resolve_download_targets(config)
    if not targets:
        raise ConfigurationError(
            f"Unknown architecture '{config.architecture}'",
            guidance=f"Use one of: {', '.join(SUPPORTED_ARCHITECTURES)}, {ALL_ARCHITECTURES}.",
        )
    return targets


def has_local_bundle(config: ReleaseConfiguration) -> bool:
    """Whether an extracted bundle is already in the cache."""
    root = bundle_dir(config)
    return (root / BUNDLE_FRAMEWORK_DIR).is_dir() and (root / BUNDLE_VERSION_FILE).is_file()
