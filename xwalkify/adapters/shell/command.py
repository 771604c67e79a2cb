"""
Shell command adapter — execute shell command strings.

Used for the Android SDK rebuild and for target discovery. The command
is passed to the host shell as-is, so composite commands (``a && b``)
work on both POSIX sh and cmd.exe.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from pathlib import Path

from xwalkify.adapters.base import CommandRunner
from xwalkify.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class ShellCommandAdapter(CommandRunner):
    """Execute shell commands and capture output."""

    @property
    def name(self) -> str:
        return "shell"

    def is_available(self) -> bool:
        if os.name == "nt":
            return shutil.which("cmd") is not None
        return shutil.which("sh") is not None

    def run(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> Receipt:
        if not command:
            return Receipt.failure(
                adapter=self.name,
                target=command,
                error="Missing command",
            )

        if cwd is not None and not Path(cwd).is_dir():
            return Receipt.failure(
                adapter=self.name,
                target=command,
                error=f"Working directory does not exist: {cwd}",
            )

        logger.debug("Executing: %s (cwd=%s)", command, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                shell=True,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                target=command,
                error=f"Command timed out after {timeout}s",
                metadata={"timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                target=command,
                error=f"Command execution error: {e}",
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = result.stdout.strip()
        stderr = result.stderr.strip()
        metadata = {
            "return_code": result.returncode,
            "stdout": stdout,
            "stderr": stderr,
        }

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                target=command,
                output=stdout,
                duration_ms=elapsed_ms,
                metadata=metadata,
            )

        return Receipt.failure(
            adapter=self.name,
            target=command,
            error=stderr or f"Command exited with code {result.returncode}",
            output=stdout,
            duration_ms=elapsed_ms,
            metadata=metadata,
        )
