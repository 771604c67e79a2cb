"""Adapters — bindings for the network and the host shell.

Public re-exports for convenient access.
"""

from xwalkify.adapters.base import Adapter, CommandRunner, Transport
from xwalkify.adapters.mock import MockCommandRunner, MockTransport

__all__ = [
    "Adapter",
    "CommandRunner",
    "MockCommandRunner",
    "MockTransport",
    "Transport",
]
