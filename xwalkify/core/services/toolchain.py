"""
Toolchain invoker — rebuild the replaced library with the Android SDK.

One composite shell command per run:

    set ANDROID_HOME → cd CordovaLib → android update project → ant debug
    → remove bin/ and gen/

The logical sequence is fixed here; how each step is spelled depends on
the host shell and lives in a ``BuildCommandBuilder`` subclass.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from xwalkify.adapters.base import CommandRunner
from xwalkify.core.data.layout import BUILD_OUTPUT_DIRS
from xwalkify.core.errors import ToolchainError

logger = logging.getLogger(__name__)

SDK_ENV_VAR = "ANDROID_HOME"
_SDK_ENV_FALLBACKS = ("ANDROID_HOME", "ANDROID_SDK_ROOT")

LIST_TARGETS_COMMAND = "android list targets"

# Lines like: id: 3 or "android-19"
_TARGET_LINE = re.compile(r'^id:\s*\d+\s+or\s+"([^"]+)"', re.MULTILINE)
_API_LEVEL = re.compile(r"^android-(\d+)$")


# ── Command builders ────────────────────────────────────────────


class BuildCommandBuilder(ABC):
    """Spell the rebuild sequence for one family of host shells."""

    separator = " && "

    @abstractmethod
    def set_env(self, name: str, value: str) -> str:
        """Command exporting an environment variable."""

    @abstractmethod
    def change_dir(self, path: str) -> str:
        """Command changing the working directory."""

    @abstractmethod
    def invoke(self, program: str, args: list[str]) -> str:
        """Command running an SDK tool."""

    @abstractmethod
    def remove_dir(self, name: str) -> str:
        """Command removing a directory tree, tolerating its absence."""

    def build(self, sdk_root: Path, library_dir: Path, target: str) -> str:
        steps = [
            self.set_env(SDK_ENV_VAR, str(sdk_root)),
            self.change_dir(str(library_dir)),
            self.invoke(
                "android",
                ["update", "project", "--subprojects", "--path", ".", "--target", target],
            ),
            self.invoke("ant", ["debug"]),
            *(self.remove_dir(name) for name in BUILD_OUTPUT_DIRS),
        ]
        return self.separator.join(steps)


class PosixCommandBuilder(BuildCommandBuilder):
    """sh/bash on Linux and macOS."""

    def set_env(self, name: str, value: str) -> str:
        return f"export {name}={shlex.quote(value)}"

    def change_dir(self, path: str) -> str:
        return f"cd {shlex.quote(path)}"

    def invoke(self, program: str, args: list[str]) -> str:
        return shlex.join([program, *args])

    def remove_dir(self, name: str) -> str:
        return f"rm -rf {shlex.quote(name)}"


class WindowsCommandBuilder(BuildCommandBuilder):
    """cmd.exe. SDK tools are batch files, hence ``call``."""

    def set_env(self, name: str, value: str) -> str:
        return f'set "{name}={value}"'

    def change_dir(self, path: str) -> str:
        return f'cd /d "{path}"'

    def invoke(self, program: str, args: list[str]) -> str:
        return "call " + subprocess.list2cmdline([program, *args])

    def remove_dir(self, name: str) -> str:
        return f'if exist "{name}" rmdir /s /q "{name}"'


def command_builder_for(os_name: str | None = None) -> BuildCommandBuilder:
    """Builder for ``os_name`` (defaults to the running host's ``os.name``)."""
    if (os_name or os.name) == "nt":
        return WindowsCommandBuilder()
    return PosixCommandBuilder()


# ── Discovery ───────────────────────────────────────────────────


def discover_sdk_root(
    env: Mapping[str, str] | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> Path | None:
    """Locate the Android SDK.

    ``ANDROID_HOME``, then ``ANDROID_SDK_ROOT``, then two levels up from
    the ``android`` tool on PATH (``<sdk>/tools/android``).
    """
    env = os.environ if env is None else env
    for var in _SDK_ENV_FALLBACKS:
        if env.get(var):
            return Path(env[var])

    tool = which("android")
    if tool:
        return Path(tool).resolve().parent.parent
    return None


def parse_targets(listing: str) -> list[str]:
    """Target ids from ``android list targets`` output, in listed order."""
    return _TARGET_LINE.findall(listing)


def pick_target(targets: list[str]) -> str | None:
    """Highest ``android-N`` target, else the last one listed."""
    if not targets:
        return None
    levels = [
        (int(m.group(1)), t)
        for t in targets
        if (m := _API_LEVEL.match(t))
    ]
    if levels:
        return max(levels)[1]
    return targets[-1]


def discover_target(runner: CommandRunner) -> str | None:
    """Best-effort target discovery through ``android list targets``."""
    receipt = runner.run(LIST_TARGETS_COMMAND)
    if receipt.failed:
        logger.warning("Target discovery failed: %s", receipt.error)
        return None

    target = pick_target(parse_targets(receipt.output))
    if target:
        logger.info("Discovered Android target %s", target)
    else:
        logger.warning("No Android targets listed by '%s'", LIST_TARGETS_COMMAND)
    return target


# ── Invocation ──────────────────────────────────────────────────


@dataclass(frozen=True)
class BuildResult:
    """Exit status and output of the rebuild command."""

    exit_code: int
    stdout: str
    stderr: str
    command: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class ToolchainInvoker:
    """Build and run the rebuild command.

    Args:
        runner: Executes the composite command.
        builder: Command spelling; defaults to the host's.
        sdk_root: Android SDK directory; discovered when omitted.
    """

    def __init__(
        self,
        runner: CommandRunner,
        builder: BuildCommandBuilder | None = None,
        sdk_root: Path | None = None,
    ):
        self._runner = runner
        self._builder = builder or command_builder_for()
        self._sdk_root = sdk_root

    def resolve_sdk_root(self) -> Path:
        """The SDK root to export. Discovery runs once per invoker.

        Raises:
            ToolchainError: No SDK could be found.
        """
        if self._sdk_root is None:
            self._sdk_root = discover_sdk_root()
        if self._sdk_root is None:
            raise ToolchainError(
                "Android SDK not found",
                guidance="Set ANDROID_HOME or put the SDK's tools/ directory on PATH.",
            )
        return self._sdk_root

    def build_command(self, target_platform_id: str, library_dir: Path) -> str:
        return self._builder.build(self.resolve_sdk_root(), library_dir, target_platform_id)

    def run_build(self, target_platform_id: str, library_dir: Path) -> BuildResult:
        """Run the rebuild. A non-zero exit is reported, not raised.

        Raises:
            ToolchainError: The command could not be built (no SDK).
        """
        command = self.build_command(target_platform_id, library_dir)
        logger.info("Rebuilding %s for %s", library_dir, target_platform_id)

        receipt = self._runner.run(command)
        exit_code = receipt.return_code
        if exit_code is None:
            exit_code = 0 if receipt.ok else -1

        return BuildResult(
            exit_code=exit_code,
            stdout=receipt.metadata.get("stdout", receipt.output),
            stderr=receipt.metadata.get("stderr", "") or (receipt.error or ""),
            command=command,
        )
