"""
Migrate use case — one call from user intent to a migrated project.

Loads xwalkify.yml, merges CLI values, discovers the Android target if
none was given, runs the pipeline with real (or injected) adapters, and
records the outcome in the run ledger.
"""

from __future__ import annotations

import logging
from pathlib import Path

from xwalkify.adapters.base import CommandRunner, Transport
from xwalkify.core.config.loader import (
    build_release_configuration,
    find_config_file,
    load_settings,
)
from xwalkify.core.engine.pipeline import MigrationPipeline, Reporter
from xwalkify.core.errors import ConfigurationError
from xwalkify.core.models.result import PipelineResult, Stage
from xwalkify.core.persistence.audit import AuditEntry, AuditWriter
from xwalkify.core.services.toolchain import ToolchainInvoker, discover_target

logger = logging.getLogger(__name__)


def _configuration_failure(error: ConfigurationError) -> PipelineResult:
    logger.error("Configuration error: %s", error.message)
    return PipelineResult(
        ok=False,
        stage=Stage.INIT,
        message=error.message,
        error=error,
    )


def run_migration(
    project_root: Path,
    *,
    config_path: Path | None = None,
    channel: str | None = None,
    xwalk_version: str | None = None,
    target: str | None = None,
    arch: str | None = None,
    preserve_existing: bool = False,
    force_override: bool = False,
    cache_dir: Path | None = None,
    transport: Transport | None = None,
    runner: CommandRunner | None = None,
    sdk_root: Path | None = None,
    reporter: Reporter | None = None,
    record: bool = True,
) -> PipelineResult:
    """Migrate the Cordova project at ``project_root`` to Crosswalk.

    Args:
        project_root: Cordova project directory.
        config_path: Explicit xwalkify.yml; searched upward when None.
        channel, xwalk_version, target, arch: CLI overrides.
        preserve_existing: Reuse a cached bundle instead of downloading.
        force_override: Continue past a Cordova version mismatch.
        cache_dir: Override the bundle cache root.
        transport: Archive transport (default: HTTP).
        runner: Command runner (default: host shell).
        sdk_root: Android SDK root (default: discovered).
        reporter: Sink for progress lines.
        record: Append the outcome to the run ledger.

    Returns:
        PipelineResult. Configuration problems come back as a failure
        at ``Stage.INIT`` with no stage run.
    """
    try:
        settings = load_settings(config_path or find_config_file(project_root))
        config = build_release_configuration(
            project_root,
            settings,
            channel=channel,
            xwalk_version=xwalk_version,
            target=target,
            arch=arch,
            preserve_existing=preserve_existing,
            force_override=force_override,
            cache_dir=cache_dir,
        )
    except ConfigurationError as e:
        return _configuration_failure(e)

    if runner is None:
        from xwalkify.adapters.shell.command import ShellCommandAdapter

        runner = ShellCommandAdapter()

    if not config.target_platform_id:
        if reporter:
            reporter("No --target given, asking the Android SDK")
        discovered = discover_target(runner)
        if discovered is None:
            return _configuration_failure(ConfigurationError(
                "No Android target platform found",
                guidance="Install a platform with the Android SDK Manager, or pass --target.",
            ))
        config = config.model_copy(update={"target_platform_id": discovered})

    if transport is None:
        from xwalkify.adapters.transport.http import HttpArchiveTransport

        transport = HttpArchiveTransport()

    pipeline = MigrationPipeline(
        config=config,
        transport=transport,
        toolchain=ToolchainInvoker(runner, sdk_root=sdk_root),
        reporter=reporter,
    )
    result = pipeline.run()

    if record:
        AuditWriter(cache_root=config.cache_root).write(AuditEntry.from_result(config, result))

    return result
