"""
Configuration loader — reads xwalkify.yml and builds the release config.

The settings file is optional. When present it supplies defaults for the
migrate command so a team can pin a channel or target once:

    channel: beta
    target: android-21
    arch: arm
    cache_dir: .xwalkify-cache

Precedence: CLI flag > xwalkify.yml > channel defaults.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

from xwalkify.core.errors import ConfigurationError
from xwalkify.core.models.release import ReleaseConfiguration, default_cache_root

logger = logging.getLogger(__name__)

# Default settings filename
CONFIG_FILE = "xwalkify.yml"


class ProjectSettings(BaseModel):
    """Per-project defaults from xwalkify.yml."""

    model_config = ConfigDict(extra="forbid")

    channel: str | None = None
    xwalk_version: str | None = None
    target: str | None = None
    arch: str | None = None
    cache_dir: str | None = None


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for xwalkify.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to xwalkify.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def load_settings(path: Path | None) -> ProjectSettings:
    """Load and validate project settings.

    Args:
        path: Path to xwalkify.yml, or None for empty settings.

    Raises:
        ConfigurationError: If the file is unreadable or invalid.
    """
    if path is None:
        return ProjectSettings()

    if not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    logger.debug("Loading settings from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return ProjectSettings()

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = ProjectSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings in {path}: {e}") from e

    logger.info("Loaded settings from %s", path)
    return settings


def resolve_cache_root(
    project_root: Path,
    settings: ProjectSettings | None = None,
    cache_dir: Path | None = None,
) -> Path:
    """Cache root: CLI value, then the settings file, then the default.

    A relative ``cache_dir`` in xwalkify.yml is taken from the project root.
    """
    if cache_dir is not None:
        return cache_dir
    if settings and settings.cache_dir:
        configured = Path(settings.cache_dir).expanduser()
        if not configured.is_absolute():
            configured = project_root.resolve() / configured
        return configured
    return default_cache_root()


def build_release_configuration(
    project_root: Path,
    settings: ProjectSettings | None = None,
    *,
    channel: str | None = None,
    xwalk_version: str | None = None,
    target: str | None = None,
    arch: str | None = None,
    preserve_existing: bool = False,
    force_override: bool = False,
    cache_dir: Path | None = None,
) -> ReleaseConfiguration:
    """Merge CLI values over settings into one immutable configuration.

    Raises:
        ConfigurationError: Unknown channel.
    """
    settings = settings or ProjectSettings()
    project_root = project_root.resolve()

    return ReleaseConfiguration(
        channel=channel or settings.channel,
        artifact_version=xwalk_version or settings.xwalk_version or "",
        target_platform_id=target or settings.target,
        architecture=arch or settings.arch,
        preserve_existing=preserve_existing,
        force_override=force_override,
        project_root=project_root,
        cache_root=resolve_cache_root(project_root, settings, cache_dir),
    )
