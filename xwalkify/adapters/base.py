"""
Adapter base — the contract between services and the outside world.

Two kinds of side effects leave the process: fetching remote archives
and running external commands. Services only talk to them through
these interfaces, never through urllib or subprocess directly.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path

from xwalkify.core.models.receipt import Receipt


class Adapter(ABC):
    """Abstract base class for all adapters.

    Adapters perform external side effects and return receipts.
    They NEVER raise exceptions — failures are captured in the Receipt.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The adapter identifier (e.g., 'http', 'shell')."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool is usable. Fast, never raises."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class Transport(Adapter):
    """Fetches an archive and unpacks it."""

    @abstractmethod
    def fetch(self, url: str, destination: Path) -> Receipt:
        """Download ``url`` and extract it into ``destination``.

        The archive's single top-level directory is stripped, so
        ``<top>/framework/x`` lands at ``destination/framework/x``.
        Files already in ``destination`` may be overwritten.

        MUST never raise. Failures come back as a failed Receipt.
        """


class CommandRunner(Adapter):
    """Runs a command string through the host shell."""

    @abstractmethod
    def run(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> Receipt:
        """Run ``command`` and capture its output.

        The receipt carries ``return_code``, ``stdout`` and ``stderr``
        in its metadata. MUST never raise.
        """
