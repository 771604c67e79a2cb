"""
Mock adapters — test doubles for the transport and the command runner.

Used to exercise the pipeline without touching the network or the
Android SDK. Both record every call so tests can assert on what was
(or was not) attempted.
"""

from __future__ import annotations

from pathlib import Path

from xwalkify.adapters.base import CommandRunner, Transport
from xwalkify.core.models.receipt import Receipt


class MockTransport(Transport):
    """Pretend to fetch archives by writing a fixed set of files.

    Args:
        files: Relative path → text content written into the destination
            on every successful fetch.
        available: Value returned by ``is_available``.
    """

    def __init__(
        self,
        files: dict[str, str] | None = None,
        available: bool = True,
    ):
        self._files = dict(files or {})
        self._available = available
        self._failures: dict[str, str] = {}
        self._call_log: list[tuple[str, Path]] = []

    @property
    def name(self) -> str:
        return "mock-transport"

    @property
    def call_log(self) -> list[tuple[str, Path]]:
        """Every ``(url, destination)`` this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_failure(self, url_fragment: str, error: str = "Mock failure") -> None:
        """Fail every fetch whose URL contains ``url_fragment``."""
        self._failures[url_fragment] = error

    def fetch(self, url: str, destination: Path) -> Receipt:
        self._call_log.append((url, destination))

        for fragment, error in self._failures.items():
            if fragment in url:
                return Receipt.failure(adapter=self.name, target=url, error=error)

        for relative, content in self._files.items():
            path = destination / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")

        return Receipt.success(
            adapter=self.name,
            target=url,
            output=f"[mock] extracted {len(self._files)} files",
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call log and configured failures."""
        self._call_log.clear()
        self._failures.clear()


class MockCommandRunner(CommandRunner):
    """Pretend to run commands.

    By default every command exits 0 with ``default_output``. Responses
    can be configured per command fragment.
    """

    def __init__(
        self,
        default_output: str = "[mock] executed",
        available: bool = True,
    ):
        self._default_output = default_output
        self._available = available
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[str] = []

    @property
    def name(self) -> str:
        return "mock-shell"

    @property
    def call_log(self) -> list[str]:
        """Every command string this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    def is_available(self) -> bool:
        return self._available

    def set_response(
        self,
        command_fragment: str,
        stdout: str = "",
        stderr: str = "",
        return_code: int = 0,
    ) -> None:
        """Answer commands containing ``command_fragment`` with this result."""
        metadata = {"return_code": return_code, "stdout": stdout, "stderr": stderr}
        if return_code == 0:
            receipt = Receipt.success(
                adapter=self.name,
                target=command_fragment,
                output=stdout,
                metadata=metadata,
            )
        else:
            receipt = Receipt.failure(
                adapter=self.name,
                target=command_fragment,
                error=stderr or f"Command exited with code {return_code}",
                output=stdout,
                metadata=metadata,
            )
        self._responses[command_fragment] = receipt

    def run(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> Receipt:
        self._call_log.append(command)

        for fragment, receipt in self._responses.items():
            if fragment in command:
                return receipt.model_copy(update={"target": command})

        return Receipt.success(
            adapter=self.name,
            target=command,
            output=self._default_output,
            metadata={"return_code": 0, "stdout": self._default_output, "stderr": "", "mock": True},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
