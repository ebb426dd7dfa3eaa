"""
Sequencing primitives shared by every combinator.

Each unit of work is a zero-argument callable that starts something and
returns a ``Future[bool]``. The two policies here never run two units at
once: the next unit is started from the done-callback of the previous
one, so ordering follows from resolution.

    run_all    success iff every unit succeeds, stop at the first failure
    run_first  success at the first unit that succeeds, fail if none does

A future is a single-resolution cell — ``set_result`` on a resolved
future raises ``InvalidStateError`` — so every combinator resolves
exactly once. Exceptions raised while starting a unit (programming
errors such as an unhandled platform) are moved onto the combinator's
future instead of being lost inside a done-callback.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future
from typing import Callable, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

Unit = Callable[[], "Future[bool]"]


def new_future() -> Future:
    """A pending future already marked running (cannot be cancelled)."""
    future: Future = Future()
    future.set_running_or_notify_cancel()
    return future


def resolved(value: T) -> Future[T]:
    """An already-resolved future."""
    future = new_future()
    future.set_result(value)
    return future


def transform(source: Future[T], fn: Callable[[T], U]) -> Future[U]:
    """Future resolving to ``fn(result)`` once ``source`` resolves."""
    target = new_future()

    def _done(f: Future[T]) -> None:
        exc = f.exception()
        if exc is not None:
            target.set_exception(exc)
            return
        try:
            value = fn(f.result())
        except Exception as e:
            target.set_exception(e)
            return
        target.set_result(value)

    source.add_done_callback(_done)
    return target


def notify(future: Future[bool], on_finish: Callable[[bool], None] | None) -> None:
    """Call ``on_finish`` once with the boolean result, if it resolved normally."""
    if on_finish is None:
        return

    def _done(f: Future[bool]) -> None:
        if f.exception() is not None:
            return
        try:
            on_finish(f.result())
        except Exception:
            logger.exception("on_finish callback %r failed", on_finish)

    future.add_done_callback(_done)


def _run_sequence(units: Sequence[Unit], stop_on: bool, empty: bool) -> Future[bool]:
    result = new_future()
    units = list(units)

    if not units:
        result.set_result(empty)
        return result

    def _settle(index: int, f: Future[bool]) -> int | None:
        """Record the outcome of unit ``index``; return the next index to start."""
        exc = f.exception()
        if exc is not None:
            result.set_exception(exc)
            return None
        outcome = bool(f.result())
        if outcome is stop_on:
            logger.debug("Sequence stopped at unit %d/%d (%s)", index + 1, len(units), outcome)
            result.set_result(outcome)
            return None
        if index + 1 < len(units):
            return index + 1
        result.set_result(outcome)
        return None

    def _advance(index: int | None) -> None:
        # Units that resolve synchronously are settled in this loop, so a
        # long sequence never nests done-callbacks
        while index is not None:
            try:
                started = units[index]()
            except Exception as e:
                result.set_exception(e)
                return
            if not started.done():
                started.add_done_callback(lambda f, i=index: _advance(_settle(i, f)))
                return
            index = _settle(index, started)

    _advance(0)
    return result


def run_all(units: Sequence[Unit]) -> Future[bool]:
    """Run units in order; abort and fail at the first failure.

    An empty sequence succeeds.
    """
    return _run_sequence(units, stop_on=False, empty=True)


def run_first(units: Sequence[Unit]) -> Future[bool]:
    """Run units in order until one succeeds.

    An empty sequence fails.
    """
    return _run_sequence(units, stop_on=True, empty=False)
