"""
Process outcome model — the result contract of a single process run.

Spawners never raise for runtime failures. Whatever happens to the
external program (non-zero exit, missing binary, timeout) is captured
in a ProcessOutcome and handed to the engine, which only cares about
the ``ok`` flag but keeps the rest for logs and error messages.
"""

from __future__ import annotations

import shlex
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class ProcessOutcome(BaseModel):
    """Result of running one external program.

    ``reason`` tells how the process ended:

        exited       the program ran and exited (check ``returncode``)
        spawn_error  the program could not be located or executed
        timeout      the program was killed after exceeding its timeout
        invalid      the step was rejected before anything was spawned
    """

    program: str
    args: list[str] = Field(default_factory=list)
    status: Literal["ok", "failed"] = "ok"
    returncode: int | None = None
    reason: Literal["exited", "spawn_error", "timeout", "invalid"] = "exited"
    error: str | None = None

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        """Whether the process succeeded."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        """Whether the process failed."""
        return self.status == "failed"

    @property
    def command_line(self) -> str:
        return " ".join(shlex.quote(a) for a in [self.program, *self.args])

    def describe(self) -> str:
        """One-line human description of how the process ended."""
        if self.ok:
            return f"{self.program} succeeded"
        if self.reason == "exited":
            return f"{self.program} exited with code {self.returncode}"
        if self.reason == "timeout":
            return f"{self.program} timed out"
        return f"{self.program} failed: {self.error or self.reason}"

    @classmethod
    def success(
        cls,
        program: str,
        args: list[str] | None = None,
        **kwargs: Any,
    ) -> ProcessOutcome:
        """Create a success outcome."""
        return cls(
            program=program,
            args=list(args or []),
            status="ok",
            returncode=kwargs.pop("returncode", 0),
            reason="exited",
            **kwargs,
        )

    @classmethod
    def failure(
        cls,
        program: str,
        args: list[str] | None = None,
        *,
        reason: Literal["exited", "spawn_error", "timeout", "invalid"] = "exited",
        returncode: int | None = None,
        error: str | None = None,
        **kwargs: Any,
    ) -> ProcessOutcome:
        """Create a failure outcome."""
        return cls(
            program=program,
            args=list(args or []),
            status="failed",
            returncode=returncode,
            reason=reason,
            error=error,
            **kwargs,
        )
