"""Engine — process and installer combinators.

    from toolsmith.core.engine import pipe, when, on, always_succeed, first_successful
"""

from toolsmith.core.engine.installers import (
    Installer,
    UnhandledPlatformError,
    always_succeed,
    attempt_steps,
    chain_steps,
    first_successful,
    installer,
    on,
    pipe,
    run_installer,
    spawn_step,
    start,
    when,
)
from toolsmith.core.engine.process import LazySpawn, ProcessChain, attempt, chain, lazy_spawn, spawn

__all__ = [
    "Installer",
    "LazySpawn",
    "ProcessChain",
    "UnhandledPlatformError",
    "always_succeed",
    "attempt",
    "attempt_steps",
    "chain",
    "chain_steps",
    "first_successful",
    "installer",
    "lazy_spawn",
    "on",
    "pipe",
    "run_installer",
    "spawn",
    "spawn_step",
    "start",
    "when",
]
