"""
Pipeline stages and the terminal result of a migration run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from xwalkify.core.errors import XwalkifyError


class Stage(str, Enum):
    """Pipeline states, in execution order."""

    INIT = "init"
    ENVIRONMENT_CHECK = "environment_check"
    VERSION_CHECK = "version_check"
    DOWNLOAD = "download"
    REPLACE = "replace"
    MANIFEST_PATCH = "manifest_patch"
    TOOLCHAIN_BUILD = "toolchain_build"
    DONE = "done"


@dataclass
class PipelineResult:
    """Outcome of one run.

    On success ``stage`` is ``Stage.DONE``; on failure it is the stage
    that raised, and ``error`` holds the exception. Stages completed
    before a failure are not undone.
    """

    ok: bool
    stage: Stage
    message: str = ""
    error: XwalkifyError | None = None
    stages: list[Stage] = field(default_factory=list)    # visited, in order
    skipped: list[Stage] = field(default_factory=list)
    build_output: str = ""
    duration_ms: int = 0

    @property
    def failed_stage(self) -> Stage | None:
        return None if self.ok else self.stage

    def to_dict(self) -> dict:
        data: dict = {
            "ok": self.ok,
            "stage": self.stage.value,
            "message": self.message,
            "stages": [s.value for s in self.stages],
            "skipped": [s.value for s in self.skipped],
            "duration_ms": self.duration_ms,
        }
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.build_output:
            data["build_output"] = self.build_output
        return data
