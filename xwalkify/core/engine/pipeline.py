"""
Migration pipeline — the state machine that runs a migration.

    init → environment_check → version_check → download → replace
         → manifest_patch → toolchain_build → done

Each stage is a handler taking the run context and returning the next
stage, or raising an ``XwalkifyError``. The driver loop executes
handlers one at a time and stops at the first error, which becomes a
failed ``PipelineResult`` naming the stage. Nothing is retried and
nothing completed is rolled back.

Two transitions are conditional:

    version_check → download   on match, or anyway with force_override
    version_check → replace    with preserve_existing and a cached bundle
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from xwalkify.adapters.base import Transport
from xwalkify.core.data.layout import LIBRARY_DIR, MANIFEST_FILE, PLATFORM_MARKER
from xwalkify.core.errors import ConfigurationError, PreconditionError, ToolchainError, XwalkifyError
from xwalkify.core.models.release import DownloadTarget, ReleaseConfiguration
from xwalkify.core.models.result import PipelineResult, Stage
from xwalkify.core.services.artifact_resolver import bundle_dir, has_local_bundle, plan_downloads
from xwalkify.core.services.bundle_fetch import fetch_bundle
from xwalkify.core.services.manifest_editor import patch_manifest_file
from xwalkify.core.services.subtree_replacer import replace_framework
from xwalkify.core.services.toolchain import BuildResult, ToolchainInvoker
from xwalkify.core.services.version_probe import check_version

logger = logging.getLogger(__name__)

Reporter = Callable[[str], None]


@dataclass
class PipelineContext:
    """Everything the stage handlers share during one run."""

    config: ReleaseConfiguration
    transport: Transport
    toolchain: ToolchainInvoker
    reporter: Reporter | None = None

    target_platform_id: str = ""
    sdk_root: Path | None = None
    targets: list[DownloadTarget] = field(default_factory=list)
    bundle: Path | None = None
    build: BuildResult | None = None
    skipped: list[Stage] = field(default_factory=list)

    def report(self, message: str) -> None:
        logger.info(message)
        if self.reporter:
            self.reporter(message)


# ── Stage handlers ──────────────────────────────────────────────


def _init(ctx: PipelineContext) -> Stage:
    ctx.targets = plan_downloads(ctx.config)
    if not ctx.config.target_platform_id:
        raise ConfigurationError(
            "No Android target platform id",
            guidance="Pass --target (e.g. --target android-19).",
        )
    ctx.target_platform_id = ctx.config.target_platform_id
    archs = ", ".join(t.architecture for t in ctx.targets)
    ctx.report(
        f"Crosswalk {ctx.config.artifact_version} ({ctx.config.channel}) "
        f"for {archs}, target {ctx.config.target_platform_id}"
    )
    return Stage.ENVIRONMENT_CHECK


def _environment_check(ctx: PipelineContext) -> Stage:
    marker = ctx.config.project_path(PLATFORM_MARKER)
    if not marker.is_file():
        raise PreconditionError(
            f"No Android platform in {ctx.config.project_root} ({PLATFORM_MARKER} missing)",
            guidance="Run 'cordova platform add android' in the project first.",
        )
    # A missing SDK stops the run while CordovaLib is still intact
    ctx.sdk_root = ctx.toolchain.resolve_sdk_root()
    logger.debug("Android SDK at %s", ctx.sdk_root)
    return Stage.VERSION_CHECK


def _version_check(ctx: PipelineContext) -> Stage:
    config = ctx.config
    probe = check_version(config.project_root, config.required_platform_version)

    if probe.matches:
        ctx.report(f"Cordova Android {config.required_platform_version} detected")
    elif config.force_override:
        ctx.report(
            f"Cordova Android {config.required_platform_version} not detected, "
            "continuing because of --force"
        )
    else:
        raise PreconditionError(
            f"The {config.channel} channel needs Cordova Android "
            f"{config.required_platform_version}",
            guidance=f"Run 'cordova platform update android@{config.required_platform_version}', "
                     "or pass --force to try anyway.",
        )

    if config.preserve_existing and has_local_bundle(config):
        ctx.bundle = bundle_dir(config)
        ctx.skipped.append(Stage.DOWNLOAD)
        ctx.report(f"Reusing bundle in {ctx.bundle}")
        return Stage.REPLACE
    return Stage.DOWNLOAD


def _download(ctx: PipelineContext) -> Stage:
    def _progress(arch: str, status: str) -> None:
        ctx.report(f"  {arch}: {status}")

    ctx.report(f"Downloading {len(ctx.targets)} archive(s)")
    ctx.bundle = fetch_bundle(ctx.targets, ctx.transport, on_progress=_progress)
    return Stage.REPLACE


def _replace(ctx: PipelineContext) -> Stage:
    bundle = ctx.bundle or bundle_dir(ctx.config)
    replace_framework(ctx.config.project_root, bundle)
    ctx.report(f"Replaced {LIBRARY_DIR}")
    return Stage.MANIFEST_PATCH


def _manifest_patch(ctx: PipelineContext) -> Stage:
    added = patch_manifest_file(ctx.config.project_path(MANIFEST_FILE))
    if added:
        ctx.report(f"Added permissions: {', '.join(added)}")
    else:
        ctx.report("Manifest already declares the required permissions")
    return Stage.TOOLCHAIN_BUILD


def _toolchain_build(ctx: PipelineContext) -> Stage:
    result = ctx.toolchain.run_build(ctx.target_platform_id, ctx.config.project_path(LIBRARY_DIR))
    ctx.build = result
    if not result.ok:
        detail = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else ""
        raise ToolchainError(
            f"Rebuild exited with code {result.exit_code}" + (f": {detail}" if detail else ""),
            guidance="The project is migrated but not built. Fix the SDK problem "
                     "and run again with --preserve to skip the download.",
        )
    return Stage.DONE


_HANDLERS: dict[Stage, Callable[[PipelineContext], Stage]] = {
    Stage.INIT: _init,
    Stage.ENVIRONMENT_CHECK: _environment_check,
    Stage.VERSION_CHECK: _version_check,
    Stage.DOWNLOAD: _download,
    Stage.REPLACE: _replace,
    Stage.MANIFEST_PATCH: _manifest_patch,
    Stage.TOOLCHAIN_BUILD: _toolchain_build,
}


# ── Driver ──────────────────────────────────────────────────────


class MigrationPipeline:
    """Run the stages for one configuration.

    Args:
        config: The resolved release configuration.
        transport: Fetches bundle archives.
        toolchain: Rebuilds the library at the end.
        reporter: Optional sink for human-readable progress lines.
    """

    def __init__(
        self,
        config: ReleaseConfiguration,
        transport: Transport,
        toolchain: ToolchainInvoker,
        reporter: Reporter | None = None,
    ):
        self._config = config
        self._transport = transport
        self._toolchain = toolchain
        self._reporter = reporter

    def run(self) -> PipelineResult:
        ctx = PipelineContext(
            config=self._config,
            transport=self._transport,
            toolchain=self._toolchain,
            reporter=self._reporter,
        )
        visited: list[Stage] = []
        stage = Stage.INIT
        start = time.monotonic()

        while stage is not Stage.DONE:
            visited.append(stage)
            logger.debug("Entering stage %s", stage.value)
            try:
                stage = _HANDLERS[stage](ctx)
            except XwalkifyError as e:
                failed = visited[-1]
                logger.error("Stage %s failed: %s", failed.value, e.message)
                return PipelineResult(
                    ok=False,
                    stage=failed,
                    message=e.message,
                    error=e,
                    stages=visited,
                    skipped=ctx.skipped,
                    build_output=ctx.build.stdout if ctx.build else "",
                    duration_ms=int((time.monotonic() - start) * 1000),
                )

        visited.append(Stage.DONE)
        message = (
            f"Crosswalk {self._config.artifact_version} ({self._config.channel} channel) "
            f"installed into {self._config.project_root}"
        )
        ctx.report(message)
        return PipelineResult(
            ok=True,
            stage=Stage.DONE,
            message=message,
            stages=visited,
            skipped=ctx.skipped,
            build_output=ctx.build.stdout if ctx.build else "",
            duration_ms=int((time.monotonic() - start) * 1000),
        )
