"""
Process combinators — compose raw process invocations.

    lazy_spawn   describe a process without starting it
    attempt      try candidate processes in order until one succeeds
    chain        run processes in order, aborting at the first failure

All process steps run in the context's root directory and write to the
context's sink; a step cannot pick a different working directory.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Callable, Sequence

from toolsmith.adapters.base import ExecutionContext, Spawner, StdioSink
from toolsmith.core.engine.sequencing import notify, resolved, run_all, run_first, transform
from toolsmith.core.models.outcome import ProcessOutcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LazySpawn:
    """A process that has been described but not started.

    Building one has no side effect. Only ``spawn()`` starts the
    process, so a combinator can prepare several candidates and run
    just the ones its policy selects.
    """

    program: str
    args: tuple[str, ...]
    cwd: str
    sink: StdioSink
    spawner: Spawner

    def spawn(self) -> Future[ProcessOutcome]:
        """Start the process."""
        logger.debug("Starting %s %s", self.program, " ".join(self.args))
        return self.spawner.spawn(self.program, list(self.args), self.cwd, self.sink)

    def run(self) -> Future[bool]:
        """Start the process; resolve to its success flag."""
        return transform(self.spawn(), lambda outcome: outcome.ok)

    def __call__(self) -> Future[bool]:
        return self.run()


def lazy_spawn(
    context: ExecutionContext,
    program: str,
    args: Sequence[str] = (),
) -> LazySpawn:
    """Describe ``program args`` rooted in the context's directory."""
    return LazySpawn(
        program=program,
        args=tuple(args),
        cwd=context.root_dir,
        sink=context.sink,
        spawner=context.spawner,
    )


def spawn(
    context: ExecutionContext,
    program: str,
    args: Sequence[str] = (),
) -> Future[bool]:
    """Start one process in the context; resolve to its success flag."""
    return lazy_spawn(context, program, args).run()


def attempt(
    jobs: Sequence[LazySpawn],
    on_finish: Callable[[bool], None] | None = None,
) -> Future[bool]:
    """Try ``jobs`` one at a time, in order, until one succeeds.

    Candidates are never run concurrently (they usually contend for the
    same output file), and candidates after the first success are never
    started. Resolves True iff some job succeeded; an empty list fails.
    """
    logger.debug("Attempting %d candidate(s): %s", len(jobs), [j.program for j in jobs])
    result = run_first([job.run for job in jobs])
    notify(result, on_finish)
    return result


def _validate_step(program: object, args: object) -> str | None:
    if not isinstance(program, str) or not program.strip():
        return f"invalid program {program!r}"
    if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
        return f"arguments for {program} must be a list of strings, got {args!r}"
    bad = [a for a in args if not isinstance(a, str)]
    if bad:
        return f"non-string arguments for {program}: {bad!r}"
    return None


class ProcessChain:
    """Queue processes, then run them strictly in order.

    Usage::

        c = chain(context)
        c.run("git", ["clone", "--depth", "1", url, "."])
        c.run("git", ["checkout", "FETCH_HEAD"])
        c.spawn(callback)

    Steps that fail validation in ``run`` are recorded; a chain holding
    such an error reports failure at ``spawn`` without starting anything.
    """

    def __init__(self, context: ExecutionContext):
        self._context = context
        self._jobs: list[LazySpawn] = []
        self._errors: list[str] = []
        self._spawned = False

    @property
    def jobs(self) -> list[LazySpawn]:
        return list(self._jobs)

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    def run(self, program: str, args: Sequence[str] = ()) -> ProcessChain:
        """Append a step. Nothing runs until ``spawn``."""
        if self._spawned:
            raise RuntimeError("Cannot add steps to a chain that has already been spawned")

        error = _validate_step(program, args)
        if error:
            step = len(self._jobs) + len(self._errors) + 1
            self._errors.append(f"Chain step #{step}: {error}")
            logger.debug("Rejected chain step #%d: %s", step, error)
        else:
            self._jobs.append(lazy_spawn(self._context, program, args))
        return self

    def spawn(self, on_finish: Callable[[bool], None] | None = None) -> Future[bool]:
        """Run every queued step in order; abort at the first failure."""
        if self._spawned:
            raise RuntimeError("Chain has already been spawned")
        self._spawned = True

        if self._errors:
            for error in self._errors:
                self._context.sink.stderr(f"{error}\n")
            result = resolved(False)
        else:
            result = run_all([job.run for job in self._jobs])

        notify(result, on_finish)
        return result


def chain(context: ExecutionContext) -> ProcessChain:
    """Start a new process chain in ``context``."""
    return ProcessChain(context)
