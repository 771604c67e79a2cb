"""
Error taxonomy for the migration pipeline.

Services raise these; adapters never do (they return receipts). The
pipeline driver is the only place that catches them, and only to turn
the first one into a failed PipelineResult.
"""

from __future__ import annotations


class XwalkifyError(Exception):
    """Base class for every pipeline failure.

    Args:
        message: What went wrong.
        guidance: Optional remediation text shown to the user.
    """

    kind = "error"

    def __init__(self, message: str, guidance: str = ""):
        super().__init__(message)
        self.message = message
        self.guidance = guidance

    def to_dict(self) -> dict:
        data = {"kind": self.kind, "message": self.message}
        if self.guidance:
            data["guidance"] = self.guidance
        return data


class ConfigurationError(XwalkifyError):
    """Unrecognized channel or architecture, unreadable settings, no target."""

    kind = "configuration"


class PreconditionError(XwalkifyError):
    """The project is not in a state the migration can start from."""

    kind = "precondition"


class TransportError(XwalkifyError):
    """Fetching or extracting a bundle archive failed."""

    kind = "transport"


class FilesystemError(XwalkifyError):
    """A delete, copy, read or write inside the project failed."""

    kind = "filesystem"


class DocumentError(XwalkifyError):
    """AndroidManifest.xml could not be parsed or serialized."""

    kind = "document"


class ToolchainError(XwalkifyError):
    """The Android SDK rebuild exited non-zero or could not start."""

    kind = "toolchain"
