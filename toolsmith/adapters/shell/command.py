"""
Subprocess spawner — run one external program with live output.

This is the SINGLE PLACE where ``subprocess.Popen`` is called. Each
spawn runs on its own background thread so the caller gets a future
back immediately; stdout and stderr are each drained by a reader thread
and forwarded to the sink line by line as they arrive.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import threading
import time
from concurrent.futures import Future
from typing import IO, Callable, Mapping, Sequence

from toolsmith.adapters.base import Spawner, StdioSink
from toolsmith.core.models.outcome import ProcessOutcome

logger = logging.getLogger(__name__)


def _fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _pump(stream: IO[str], write: Callable[[str], None]) -> None:
    """Forward every line of ``stream`` to ``write`` until EOF."""
    try:
        for line in iter(stream.readline, ""):
            write(line)
    finally:
        stream.close()


class SubprocessSpawner(Spawner):
    """Spawn real OS processes.

    Args:
        env_overrides: Extra env vars merged over ``os.environ``.
        timeout: Seconds before the process is killed (None = no limit).
    """

    def __init__(
        self,
        env_overrides: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ):
        self._env_overrides = dict(env_overrides or {})
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "subprocess"

    def is_available(self, program: str) -> bool:
        if os.sep in program or (os.altsep and os.altsep in program):
            return os.path.isfile(program) and os.access(program, os.X_OK)
        return shutil.which(program) is not None

    def spawn(
        self,
        program: str,
        args: Sequence[str],
        cwd: str,
        sink: StdioSink,
    ) -> Future[ProcessOutcome]:
        future: Future[ProcessOutcome] = Future()
        future.set_running_or_notify_cancel()
        worker = threading.Thread(
            target=self._run,
            args=(program, list(args), cwd, sink, future),
            name=f"spawn-{program}",
            daemon=True,
        )
        worker.start()
        return future

    def _run(
        self,
        program: str,
        args: list[str],
        cwd: str,
        sink: StdioSink,
        future: Future[ProcessOutcome],
    ) -> None:
        try:
            outcome = self._execute(program, args, cwd, sink)
        except Exception as e:
            logger.exception("Spawner error: %s", _fmt_argv([program, *args]))
            outcome = ProcessOutcome.failure(
                program, args, reason="spawn_error", error=str(e)
            )
            sink.stderr(f"{outcome.describe()}\n")
        future.set_result(outcome)

    def _execute(
        self,
        program: str,
        args: list[str],
        cwd: str,
        sink: StdioSink,
    ) -> ProcessOutcome:
        argv = [program, *args]
        logger.debug("Spawning: %s (cwd=%s)", _fmt_argv(argv), cwd)

        env = os.environ.copy()
        for key, value in self._env_overrides.items():
            env[key] = os.path.expandvars(value)

        start = time.monotonic()
        try:
            proc = subprocess.Popen(
                argv,
                cwd=cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                # Undecodable bytes become U+FFFD
                encoding="utf-8",
                errors="replace",
                bufsize=1,
            )
        except OSError as e:
            outcome = ProcessOutcome.failure(
                program,
                args,
                reason="spawn_error",
                error=f"Failed to spawn process cmd={program} err={e.strerror or e}",
            )
            logger.debug("Spawn failed: %s", outcome.error)
            sink.stderr(f"{outcome.error}\n")
            return outcome

        readers = [
            threading.Thread(
                target=_pump, args=(proc.stdout, sink.stdout), daemon=True
            ),
            threading.Thread(
                target=_pump, args=(proc.stderr, sink.stderr), daemon=True
            ),
        ]
        for reader in readers:
            reader.start()

        timed_out = False
        try:
            returncode = proc.wait(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            timed_out = True
            proc.kill()
            returncode = proc.wait()

        # Drain remaining output before resolving so it lands ahead of the next step
        for reader in readers:
            reader.join()

        elapsed_ms = int((time.monotonic() - start) * 1000)

        if timed_out:
            outcome = ProcessOutcome.failure(
                program,
                args,
                reason="timeout",
                returncode=returncode,
                error=f"Command timed out ({self._timeout}s)",
                duration_ms=elapsed_ms,
            )
        elif returncode == 0:
            outcome = ProcessOutcome.success(
                program, args, returncode=0, duration_ms=elapsed_ms
            )
        else:
            outcome = ProcessOutcome.failure(
                program,
                args,
                returncode=returncode,
                error=f"Command failed (exit {returncode})",
                duration_ms=elapsed_ms,
            )

        if outcome.failed:
            sink.stderr(f"{outcome.describe()}\n")
        logger.debug("%s → %s (%dms)", program, outcome.status, elapsed_ms)
        return outcome
