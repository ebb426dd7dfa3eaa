"""
Installer combinators — compose whole installation steps.

An Installer is any callable ``(context) -> Future[bool]``. Calling it
starts the work and returns at once; the future resolves exactly once
with the step's outcome. Combinators build bigger installers from
smaller ones and decide what their children's outcomes mean:

    pipe               all must succeed, in order
    first_successful   first success wins, in order
    always_succeed     outcome ignored, side effects kept
    when / on          pick one variant by platform

Leaf installers come from process steps (``spawn_step``,
``chain_steps``, ``attempt_steps``) or from plain functions via the
``installer`` decorator.
"""

from __future__ import annotations

import functools
import logging
from concurrent.futures import Future
from typing import Callable, Mapping, Sequence

from toolsmith.adapters.base import ExecutionContext
from toolsmith.core.engine import process
from toolsmith.core.engine.sequencing import (
    new_future,
    notify,
    resolved,
    run_all,
    run_first,
    transform,
)
from toolsmith.core.models.platform import VARIANT_KEYS, Platform

logger = logging.getLogger(__name__)

Installer = Callable[[ExecutionContext], "Future[bool]"]


class UnhandledPlatformError(RuntimeError):
    """An exhaustive platform dispatch met a platform it has no variant for.

    This is a defect in the recipe, not a runtime failure: it propagates
    to the top-level caller instead of resolving the pipeline as failed.
    """

    def __init__(self, platform: Platform, available: Sequence[str]):
        self.platform = platform
        self.available = list(available)
        super().__init__(
            f"Current platform '{platform.value}' is not supported "
            f"(variants: {', '.join(self.available) or 'none'})"
        )


def _label(step: object) -> str:
    return getattr(step, "__name__", None) or repr(step)


# ── Leaf installers ─────────────────────────────────────────────────


def installer(fn: Callable[[ExecutionContext], bool]) -> Installer:
    """Turn a synchronous ``fn(context) -> bool`` into an Installer."""

    @functools.wraps(fn)
    def _run(context: ExecutionContext) -> Future[bool]:
        return resolved(bool(fn(context)))

    return _run


def spawn_step(program: str, args: Sequence[str] = ()) -> Installer:
    """Installer running a single process in the context's root."""
    args = list(args)

    def _run(context: ExecutionContext) -> Future[bool]:
        return process.spawn(context, program, args)

    _run.__name__ = f"spawn({program})"
    return _run


def chain_steps(commands: Sequence[Sequence[str]]) -> Installer:
    """Installer running ``[program, *args]`` commands as a process chain."""
    commands = [list(c) for c in commands]

    def _run(context: ExecutionContext) -> Future[bool]:
        c = process.chain(context)
        for argv in commands:
            c.run(argv[0] if argv else "", argv[1:])
        return c.spawn()

    _run.__name__ = f"chain({len(commands)})"
    return _run


def attempt_steps(commands: Sequence[Sequence[str]]) -> Installer:
    """Installer trying ``[program, *args]`` commands until one succeeds."""
    commands = [list(c) for c in commands]

    def _run(context: ExecutionContext) -> Future[bool]:
        return process.attempt(
            [process.lazy_spawn(context, argv[0], argv[1:]) for argv in commands]
        )

    _run.__name__ = f"attempt({', '.join(c[0] for c in commands)})"
    return _run


# ── Combinators ─────────────────────────────────────────────────────


def _flatten(steps: tuple) -> list[Installer]:
    # pipe(a, b) and pipe([a, b]) are both accepted
    if len(steps) == 1 and isinstance(steps[0], (list, tuple)):
        steps = tuple(steps[0])
    for step in steps:
        if not callable(step):
            raise TypeError(f"Installer steps must be callable, got {step!r}")
    return list(steps)


class Pipe:
    """Run installers in order; abort and fail at the first failure."""

    def __init__(self, steps: Sequence[Installer]):
        self.steps = list(steps)

    def __call__(self, context: ExecutionContext) -> Future[bool]:
        logger.debug("pipe: %d step(s)", len(self.steps))
        return run_all([functools.partial(step, context) for step in self.steps])

    def __repr__(self) -> str:
        return f"pipe({', '.join(_label(s) for s in self.steps)})"


class FirstSuccessful:
    """Run installer variants in order until one succeeds.

    Only the variants actually tried have side effects; once one
    succeeds the rest are never invoked.
    """

    def __init__(self, steps: Sequence[Installer]):
        self.steps = list(steps)

    def __call__(self, context: ExecutionContext) -> Future[bool]:
        logger.debug("first_successful: %d variant(s)", len(self.steps))
        return run_first([functools.partial(step, context) for step in self.steps])

    def __repr__(self) -> str:
        return f"first_successful({', '.join(_label(s) for s in self.steps)})"


class AlwaysSucceed:
    """Run an installer for its side effects and report success regardless."""

    def __init__(self, step: Installer):
        self.step = step

    def __call__(self, context: ExecutionContext) -> Future[bool]:
        def _ignore(ok: bool) -> bool:
            if not ok:
                logger.debug("Ignoring failure of %s", _label(self.step))
            return True

        return transform(self.step(context), _ignore)

    def __repr__(self) -> str:
        return f"always_succeed({_label(self.step)})"


class PlatformSwitch:
    """Dispatch to the variant matching the context's platform.

    Variants are keyed by exact tag (``linux``, ``darwin``, ``win``) or
    family (``unix``); the exact tag wins. With ``exhaustive=True`` a
    platform without a variant raises UnhandledPlatformError, otherwise
    it resolves as success without running anything.
    """

    def __init__(self, variants: Mapping[str, Installer], exhaustive: bool):
        unknown = set(variants) - VARIANT_KEYS
        if unknown:
            raise ValueError(
                f"Unknown platform key(s) {sorted(unknown)}. "
                f"Valid: {', '.join(sorted(VARIANT_KEYS))}"
            )
        for key, step in variants.items():
            if not callable(step):
                raise TypeError(f"Variant '{key}' must be callable, got {step!r}")
        self.variants = dict(variants)
        self.exhaustive = exhaustive

    def select(self, platform: Platform) -> Installer | None:
        for key in platform.lookup_keys():
            if key in self.variants:
                return self.variants[key]
        return None

    def __call__(self, context: ExecutionContext) -> Future[bool]:
        step = self.select(context.platform)
        if step is None:
            if self.exhaustive:
                raise UnhandledPlatformError(context.platform, sorted(self.variants))
            logger.debug("No variant for platform %s, skipping", context.platform.value)
            return resolved(True)
        return step(context)

    def __repr__(self) -> str:
        name = "when" if self.exhaustive else "on"
        inner = ", ".join(f"{k}={_label(v)}" for k, v in self.variants.items())
        return f"{name}({inner})"


def pipe(*steps: Installer) -> Pipe:
    """Sequential composition; success only if every step succeeds.

    An empty pipe succeeds.
    """
    return Pipe(_flatten(steps))


def first_successful(*steps: Installer) -> FirstSuccessful:
    """Ordered fallback over installer variants.

    An empty list fails.
    """
    return FirstSuccessful(_flatten(steps))


def always_succeed(step: Installer) -> AlwaysSucceed:
    """Run ``step`` but never let its failure abort the surrounding pipeline."""
    if not callable(step):
        raise TypeError(f"Installer must be callable, got {step!r}")
    return AlwaysSucceed(step)


def when(variants: Mapping[str, Installer] | None = None, **kwargs: Installer) -> PlatformSwitch:
    """Exhaustive platform dispatch: ``when(unix=a, win=b)``."""
    return PlatformSwitch({**(variants or {}), **kwargs}, exhaustive=True)


def on(variants: Mapping[str, Installer] | None = None, **kwargs: Installer) -> PlatformSwitch:
    """Optional platform dispatch; unmatched platforms succeed as a no-op."""
    return PlatformSwitch({**(variants or {}), **kwargs}, exhaustive=False)


# ── Running ─────────────────────────────────────────────────────────


def start(
    step: Installer,
    context: ExecutionContext,
    on_finish: Callable[[bool], None] | None = None,
) -> Future[bool]:
    """Invoke ``step`` without blocking.

    ``on_finish`` (if given) is called exactly once with the outcome.
    Exceptions raised while starting are carried by the returned future.
    """
    try:
        future = step(context)
    except Exception as e:
        future = new_future()
        future.set_exception(e)
    notify(future, on_finish)
    return future


def run_installer(
    step: Installer,
    context: ExecutionContext,
    timeout: float | None = None,
) -> bool:
    """Run ``step`` to completion and return its outcome.

    Programming errors (e.g. UnhandledPlatformError) are re-raised.
    """
    logger.info("Installing into %s (platform=%s)", context.root_dir, context.platform.value)
    ok = start(step, context).result(timeout=timeout)
    logger.info("Install %s", "succeeded" if ok else "failed")
    return ok
