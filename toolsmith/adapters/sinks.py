"""
Output sinks — where live process output goes.

Every sink implements the two-channel StdioSink protocol. Only one step
runs at a time, but a single process has two reader threads (stdout and
stderr), so sinks that keep state guard it with a lock.
"""

from __future__ import annotations

import logging
import threading
from typing import Literal

import click

from toolsmith.adapters.base import StdioSink

Channel = Literal["stdout", "stderr"]


class BufferSink:
    """Record everything written, in arrival order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[tuple[Channel, str]] = []

    def stdout(self, text: str) -> None:
        with self._lock:
            self._entries.append(("stdout", text))

    def stderr(self, text: str) -> None:
        with self._lock:
            self._entries.append(("stderr", text))

    @property
    def entries(self) -> list[tuple[Channel, str]]:
        with self._lock:
            return list(self._entries)

    @property
    def text(self) -> str:
        """Both channels interleaved in arrival order."""
        return "".join(t for _, t in self.entries)

    @property
    def stdout_text(self) -> str:
        return "".join(t for c, t in self.entries if c == "stdout")

    @property
    def stderr_text(self) -> str:
        return "".join(t for c, t in self.entries if c == "stderr")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


class EchoSink:
    """Live terminal output through click (stderr channel goes to stderr)."""

    def __init__(self, color: bool = True) -> None:
        self._color = color
        self._lock = threading.Lock()

    def stdout(self, text: str) -> None:
        with self._lock:
            click.echo(text, nl=False)

    def stderr(self, text: str) -> None:
        with self._lock:
            if self._color:
                click.secho(text, nl=False, err=True, fg="yellow")
            else:
                click.echo(text, nl=False, err=True)


class LoggingSink:
    """Forward output lines to a logger (stdout → INFO, stderr → WARNING)."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("toolsmith.output")

    def stdout(self, text: str) -> None:
        self._logger.info("%s", text.rstrip("\n"))

    def stderr(self, text: str) -> None:
        self._logger.warning("%s", text.rstrip("\n"))


class TeeSink:
    """Fan every write out to several sinks."""

    def __init__(self, *sinks: StdioSink) -> None:
        self._sinks = sinks

    def stdout(self, text: str) -> None:
        for sink in self._sinks:
            sink.stdout(text)

    def stderr(self, text: str) -> None:
        for sink in self._sinks:
            sink.stderr(text)
