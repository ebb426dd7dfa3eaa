"""
Adapter base — the contract between the engine and the outside world.

The engine never spawns processes or prints output itself. It talks to
two collaborators defined here:

    Spawner     runs one external program and reports a ProcessOutcome
    StdioSink   append-only two-channel text output (stdout / stderr)

Both are injected through the ExecutionContext, which is created once
per installation and shared (never copied) by every step.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import Protocol, Sequence, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from toolsmith.core.models.outcome import ProcessOutcome
from toolsmith.core.models.platform import Platform


@runtime_checkable
class StdioSink(Protocol):
    """Append-only text output with a standard and an error channel."""

    def stdout(self, text: str) -> None: ...

    def stderr(self, text: str) -> None: ...


class Spawner(ABC):
    """Abstract base class for process spawners.

    Spawners perform the actual OS process invocation. They NEVER raise
    for runtime failures: a missing binary, a non-zero exit or a timeout
    all resolve the returned future with a failed ProcessOutcome.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """The spawner identifier (e.g., 'subprocess', 'mock')."""

    @abstractmethod
    def is_available(self, program: str) -> bool:
        """Check whether ``program`` can be located and executed.

        Should be fast and never raise.
        """

    @abstractmethod
    def spawn(
        self,
        program: str,
        args: Sequence[str],
        cwd: str,
        sink: StdioSink,
    ) -> Future[ProcessOutcome]:
        """Start ``program`` and return immediately.

        Output lines are forwarded to ``sink`` as they are produced.
        The returned future resolves exactly once when the process ends.
        """

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


def _default_spawner() -> Spawner:
    from toolsmith.adapters.shell.command import SubprocessSpawner

    return SubprocessSpawner()


class ExecutionContext(BaseModel):
    """Everything a step needs to run during one installation.

    The context is frozen: steps read it, they never change it. The sink
    is the only shared mutable thing and it is append-only.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    root_dir: str
    sink: StdioSink
    requested_version: str | None = None
    platform: Platform = Field(default_factory=Platform.current)
    spawner: Spawner = Field(default_factory=_default_spawner)
