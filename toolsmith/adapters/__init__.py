"""Adapters — spawners, sinks and filesystem helpers at the edge of the engine.

Public re-exports for convenient access.
"""

from toolsmith.adapters.base import ExecutionContext, Spawner, StdioSink
from toolsmith.adapters.mock import MockSpawner
from toolsmith.adapters.shell.command import SubprocessSpawner
from toolsmith.adapters.sinks import BufferSink, EchoSink, LoggingSink, TeeSink

__all__ = [
    "BufferSink",
    "EchoSink",
    "ExecutionContext",
    "LoggingSink",
    "MockSpawner",
    "Spawner",
    "StdioSink",
    "SubprocessSpawner",
    "TeeSink",
]
