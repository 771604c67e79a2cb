"""
Run ledger — one NDJSON line per migration run.

Lives at ``<cache_root>/audit.ndjson``, next to the cached bundles and
outside any project, so a run that stops at a precondition leaves the
project byte-for-byte unchanged. Lines are only ever appended.

    {"timestamp": "...", "operation_id": "op-20260101-120000-1a2b3c",
     "channel": "stable", "status": "failed", "stage": "download", ...}
"""

from __future__ import annotations

import json
import logging
import uuid
from collections import deque
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from xwalkify.core.models.release import ReleaseConfiguration
from xwalkify.core.models.result import PipelineResult

logger = logging.getLogger(__name__)

LEDGER_FILE = "audit.ndjson"


def generate_operation_id() -> str:
    """``op-<utc timestamp>-<6 hex>``; sortable and unique enough per host."""
    stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    return f"op-{stamp}-{uuid.uuid4().hex[:6]}"


class AuditEntry(BaseModel):
    """What one run asked for and how far it got."""

    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    operation_id: str = ""

    project_root: str = ""
    channel: str = ""
    artifact_version: str = ""
    target_platform_id: str | None = None

    status: str = ""   # ok | failed
    stage: str = ""    # done, or the stage that failed
    stages: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    errors: list[str] = Field(default_factory=list)

    context: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_result(
        cls,
        config: ReleaseConfiguration,
        result: PipelineResult,
        operation_id: str = "",
    ) -> AuditEntry:
        return cls(
            operation_id=operation_id or generate_operation_id(),
            project_root=str(config.project_root),
            channel=config.channel,
            artifact_version=config.artifact_version,
            target_platform_id=config.target_platform_id,
            status="ok" if result.ok else "failed",
            stage=result.stage.value,
            stages=[s.value for s in result.stages],
            skipped=[s.value for s in result.skipped],
            duration_ms=result.duration_ms,
            errors=[result.error.message] if result.error else [],
            context=config.summary(),
        )


class AuditWriter:
    """Append to and read back the run ledger.

    Args:
        path: Explicit ledger file.
        cache_root: Directory holding ``audit.ndjson`` (used if no path).
    """

    def __init__(self, path: Path | None = None, cache_root: Path | None = None):
        if path is None:
            path = (cache_root or Path.cwd()) / LEDGER_FILE
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def write(self, entry: AuditEntry) -> None:
        """Append ``entry``. A ledger that can't be written never fails a run."""
        record = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as ledger:
                ledger.write(record + "\n")
        except OSError as e:
            logger.error("Failed to write audit entry to %s: %s", self._path, e)
            return
        logger.debug("Recorded %s (%s) in %s", entry.operation_id, entry.status, self._path)

    def iter_entries(self) -> Iterator[AuditEntry]:
        """Entries oldest first. Lines that don't parse are skipped with a warning."""
        try:
            ledger = self._path.open("r", encoding="utf-8")
        except FileNotFoundError:
            return
        except OSError as e:
            logger.error("Cannot read audit ledger %s: %s", self._path, e)
            return

        with ledger:
            for number, raw in enumerate(ledger, start=1):
                if not raw.strip():
                    continue
                try:
                    yield AuditEntry.model_validate(json.loads(raw))
                except ValueError as e:  # bad JSON or bad schema
                    logger.warning("%s:%d is not a valid entry, skipped (%s)", self._path, number, e)

    def read_all(self) -> list[AuditEntry]:
        return list(self.iter_entries())

    def read_recent(self, n: int = 20) -> list[AuditEntry]:
        """The last ``n`` entries, oldest first."""
        if n <= 0:
            return []
        return list(deque(self.iter_entries(), maxlen=n))
