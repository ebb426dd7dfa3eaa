"""
Mock spawner — universal test double for process execution.

Simulates external programs without touching the OS. Every program
succeeds by default; individual programs can be configured to fail
with an exit code, to be missing altogether, or to print scripted
output to the sink before resolving.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Sequence

from toolsmith.adapters.base import Spawner, StdioSink
from toolsmith.core.models.outcome import ProcessOutcome


@dataclass
class SpawnCall:
    """One recorded spawn invocation."""

    program: str
    args: list[str]
    cwd: str

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


@dataclass
class _Script:
    returncode: int = 0
    stdout: list[str] = field(default_factory=list)
    stderr: list[str] = field(default_factory=list)


class MockSpawner(Spawner):
    """Scriptable in-memory spawner.

    Futures are resolved synchronously inside ``spawn`` unless
    ``deferred=True``, in which case they stay pending until
    ``release()`` is called. Deferred mode lets tests observe that a
    combinator has not started its next step before the current one
    resolves.
    """

    def __init__(self, spawner_name: str = "mock", deferred: bool = False):
        self._name = spawner_name
        self._deferred = deferred
        self._scripts: dict[str, _Script] = {}
        self._missing: set[str] = set()
        self._call_log: list[SpawnCall] = []
        self._pending: list[tuple[Future[ProcessOutcome], SpawnCall, StdioSink]] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[SpawnCall]:
        """All spawn calls this mock has received, in order."""
        return self._call_log

    @property
    def call_count(self) -> int:
        return len(self._call_log)

    @property
    def programs(self) -> list[str]:
        """Program names in call order."""
        return [c.program for c in self._call_log]

    @property
    def pending(self) -> int:
        """Number of deferred spawns not yet released."""
        return len(self._pending)

    def calls_to(self, program: str) -> list[SpawnCall]:
        return [c for c in self._call_log if c.program == program]

    def set_output(
        self,
        program: str,
        stdout: Sequence[str] = (),
        stderr: Sequence[str] = (),
    ) -> None:
        """Lines ``program`` writes to the sink when it runs."""
        script = self._scripts.setdefault(program, _Script())
        script.stdout = list(stdout)
        script.stderr = list(stderr)

    def set_failure(self, program: str, returncode: int = 1) -> None:
        """Configure ``program`` to exit with a non-zero code."""
        self._scripts.setdefault(program, _Script()).returncode = returncode

    def set_success(self, program: str) -> None:
        self._scripts.setdefault(program, _Script()).returncode = 0
        self._missing.discard(program)

    def set_missing(self, *programs: str) -> None:
        """Configure programs as not installed."""
        self._missing.update(programs)

    def is_available(self, program: str) -> bool:
        return program not in self._missing

    def spawn(
        self,
        program: str,
        args: Sequence[str],
        cwd: str,
        sink: StdioSink,
    ) -> Future[ProcessOutcome]:
        call = SpawnCall(program=program, args=list(args), cwd=cwd)
        self._call_log.append(call)

        future: Future[ProcessOutcome] = Future()
        future.set_running_or_notify_cancel()
        if self._deferred:
            self._pending.append((future, call, sink))
        else:
            future.set_result(self._outcome(call, sink))
        return future

    def release(self, count: int | None = None) -> int:
        """Resolve up to ``count`` deferred spawns (all if None), oldest first.

        Resolving one spawn may cause a combinator to spawn the next
        step, which is queued and released in the same call when
        ``count`` allows.
        """
        released = 0
        while self._pending and (count is None or released < count):
            future, call, sink = self._pending.pop(0)
            future.set_result(self._outcome(call, sink))
            released += 1
        return released

    def reset(self) -> None:
        """Clear call log and scripted behaviour."""
        self._call_log.clear()
        self._scripts.clear()
        self._missing.clear()
        self._pending.clear()

    def _outcome(self, call: SpawnCall, sink: StdioSink) -> ProcessOutcome:
        if call.program in self._missing:
            error = f"Failed to spawn process cmd={call.program} err=ENOENT"
            sink.stderr(f"{error}\n")
            return ProcessOutcome.failure(
                call.program, call.args, reason="spawn_error", error=error,
                metadata={"mock": True},
            )

        script = self._scripts.get(call.program, _Script())
        for line in script.stdout:
            sink.stdout(line)
        for line in script.stderr:
            sink.stderr(line)

        if script.returncode == 0:
            return ProcessOutcome.success(
                call.program, call.args, metadata={"mock": True}
            )
        outcome = ProcessOutcome.failure(
            call.program,
            call.args,
            returncode=script.returncode,
            error=f"Command failed (exit {script.returncode})",
            metadata={"mock": True},
        )
        sink.stderr(f"{outcome.describe()}\n")
        return outcome
