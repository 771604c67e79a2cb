"""
Version probe — is the project on the Cordova version the bundle needs?

Cordova ships its platform version inside ``platforms/android/cordova/version``
(a small script whose text embeds e.g. ``"3.7.1"``). Matching is a plain
substring test, not semantic version comparison: any build tag that
embeds the required version string is accepted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from xwalkify.core.data.layout import CORDOVA_VERSION_MARKER
from xwalkify.core.errors import PreconditionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionCheck:
    """Outcome of a probe that could read the marker."""

    matches: bool
    raw_output: str
    required_version: str


def check_version(project_root: Path, required_version: str) -> VersionCheck:
    """Read the version marker and test it against ``required_version``.

    Raises:
        PreconditionError: The marker can't be read. This is "can't tell",
            which callers must not confuse with ``matches=False``.
    """
    marker = project_root / CORDOVA_VERSION_MARKER
    try:
        raw = marker.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise PreconditionError(
            f"Cannot determine the Cordova Android version: {e}",
            guidance=f"Expected a readable {CORDOVA_VERSION_MARKER}. "
                     "Re-add the platform with 'cordova platform add android'.",
        ) from e

    matches = required_version in raw
    logger.debug(
        "Version probe %s: required=%s matches=%s",
        marker, required_version, matches,
    )
    return VersionCheck(matches=matches, raw_output=raw.strip(), required_version=required_version)
