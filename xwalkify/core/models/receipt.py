"""
Receipt model — the adapter result contract.

Services ask adapters to do something (fetch an archive, run a
command); adapters answer with a Receipt. Never exceptions. The service
layer decides which failed receipts become pipeline errors.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Result of one adapter call.

    ``target`` identifies what the call acted on: a URL for transports,
    the command string for runners.
    """

    adapter: str
    target: str
    status: Literal["ok", "failed"] = "ok"

    started_at: str = Field(default_factory=_now_iso)
    ended_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the call succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the call failed."""
        return self.status == "failed"

    @property
    def return_code(self) -> int | None:
        """Process exit status, for runner receipts."""
        return self.metadata.get("return_code")

    @classmethod
    def success(
        cls,
        adapter: str,
        target: str,
        output: str = "",
        **kwargs: Any,
    ) -> Receipt:
        """Create a success receipt."""
        return cls(
            adapter=adapter,
            target=target,
            status="ok",
            output=output,
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        adapter: str,
        target: str,
        error: str,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            adapter=adapter,
            target=target,
            status="failed",
            error=error,
            **kwargs,
        )
