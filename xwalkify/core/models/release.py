"""
Release configuration — the single immutable input of a migration.

Built once at startup (CLI flags > xwalkify.yml > channel defaults) and
handed to every stage. Derived values such as download URLs and the
bundle directory are computed from it by pure functions, never stored
on it.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from xwalkify.core.data.channels import (
    CHANNEL_VERSIONS,
    DEFAULT_CHANNEL,
    REQUIRED_CORDOVA_VERSIONS,
    known_channels,
)
from xwalkify.core.errors import ConfigurationError

_DEFAULT_CACHE_DIR = Path.home() / ".cache" / "xwalkify"


def default_cache_root() -> Path:
    """Cache root for extracted bundles (``XWALKIFY_CACHE_DIR`` overrides)."""
    return Path(os.environ.get("XWALKIFY_CACHE_DIR", str(_DEFAULT_CACHE_DIR)))


class ReleaseConfiguration(BaseModel):
    """What to install, where, and which safety checks to relax.

    An unknown channel raises ``ConfigurationError`` at construction,
    so no stage ever sees one.
    """

    model_config = ConfigDict(frozen=True)

    channel: str = DEFAULT_CHANNEL
    artifact_version: str = ""             # Crosswalk bundle version
    required_platform_version: str = ""    # Cordova Android version
    target_platform_id: str | None = None  # e.g. "android-19"
    architecture: str | None = None        # x86, arm, both / None = all

    preserve_existing: bool = False
    force_override: bool = False

    project_root: Path = Field(default_factory=Path.cwd)
    cache_root: Path = Field(default_factory=default_cache_root)

    @model_validator(mode="before")
    @classmethod
    def _apply_channel_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data

        channel = data.get("channel") or DEFAULT_CHANNEL
        if channel not in CHANNEL_VERSIONS or channel not in REQUIRED_CORDOVA_VERSIONS:
            raise ConfigurationError(
                f"Unknown release channel '{channel}'",
                guidance=f"Use one of: {', '.join(known_channels())}.",
            )

        data = dict(data)
        data["channel"] = channel
        if not data.get("artifact_version"):
            data["artifact_version"] = CHANNEL_VERSIONS[channel]
        if not data.get("required_platform_version"):
            data["required_platform_version"] = REQUIRED_CORDOVA_VERSIONS[channel]
        return data

    def project_path(self, relative: str) -> Path:
        """Resolve a layout path against the project root."""
        return self.project_root / relative

    def summary(self) -> dict[str, Any]:
        """Flat, JSON-safe view for logs and the run ledger."""
        return {
            "channel": self.channel,
            "artifact_version": self.artifact_version,
            "required_platform_version": self.required_platform_version,
            "target_platform_id": self.target_platform_id,
            "architecture": self.architecture or "both",
            "preserve_existing": self.preserve_existing,
            "force_override": self.force_override,
            "project_root": str(self.project_root),
        }


class DownloadTarget(BaseModel):
    """One archive to fetch: an architecture, its URL, and where it lands.

    ``destination`` is shared by every target of a plan; all architectures
    extract into the same tree.
    """

    model_config = ConfigDict(frozen=True)

    architecture: str
    url: str
    destination: Path
