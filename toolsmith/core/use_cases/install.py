"""
Install use case — run a recipe file into a root directory.

The full vertical slice from "install this recipe here" to an outcome:
load and compile the recipe, prepare the root directory, build the
execution context, run the installer tree, and report.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path

from toolsmith.adapters.base import ExecutionContext, Spawner, StdioSink
from toolsmith.adapters.shell import filesystem
from toolsmith.adapters.shell.command import SubprocessSpawner
from toolsmith.adapters.sinks import EchoSink
from toolsmith.core.config.loader import ConfigError, load_recipe
from toolsmith.core.engine.installers import UnhandledPlatformError, run_installer
from toolsmith.core.models.platform import Platform

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of installing a recipe."""

    ok: bool = False
    recipe_name: str = ""
    root_dir: str = ""
    requested_version: str | None = None
    platform: str = ""
    duration_ms: int = 0
    error: str | None = None

    @property
    def status(self) -> str:
        return "ok" if self.ok else "failed"

    def to_dict(self) -> dict:
        result: dict = {
            "status": self.status,
            "recipe": self.recipe_name,
            "root_dir": self.root_dir,
            "requested_version": self.requested_version,
            "platform": self.platform,
            "duration_ms": self.duration_ms,
        }
        if self.error:
            result["error"] = self.error
        return result


def resolve_platform(name: str | None = None) -> Platform:
    """Platform from an explicit name, then TOOLSMITH_PLATFORM, then the host."""
    name = name or os.environ.get("TOOLSMITH_PLATFORM")
    return Platform.parse(name) if name else Platform.current()


def _clean_root(root: Path, recipe_path: Path | None) -> str | None:
    """Remove a previous installation; return an error message on refusal or failure."""
    cwd = Path.cwd().resolve()
    if root == cwd or root in cwd.parents:
        return f"Refusing to clean {root}: it contains the current directory"
    if recipe_path is not None and root in recipe_path.resolve().parents:
        return f"Refusing to clean {root}: it contains the recipe file"
    logger.info("Cleaning %s", root)
    if not filesystem.delete(root):
        return f"Cannot clean root directory {root}"
    return None


def install_from_recipe(
    recipe_path: Path | None,
    root_dir: Path,
    version: str | None = None,
    platform: str | None = None,
    sink: StdioSink | None = None,
    spawner: Spawner | None = None,
    clean: bool = False,
) -> InstallResult:
    """Install a recipe into ``root_dir``.

    Args:
        recipe_path: Recipe file (None = search upward for toolsmith.yml).
        root_dir: Directory every step runs in; created if missing.
        version: Requested version (overrides the recipe's default).
        platform: Platform name override.
        sink: Output sink (default: live terminal output).
        spawner: Process spawner (default: real subprocesses).
        clean: Delete ``root_dir`` before installing.

    Returns:
        InstallResult. Config and recipe errors are reported in
        ``error``, never raised.
    """
    result = InstallResult(root_dir=str(root_dir), requested_version=version)

    try:
        recipe, installer = load_recipe(recipe_path)
        target_platform = resolve_platform(platform)
    except (ConfigError, ValueError) as e:
        result.error = str(e)
        return result

    result.recipe_name = recipe.name
    result.requested_version = version or recipe.version
    result.platform = target_platform.value

    root = root_dir.resolve()
    if clean and root.exists():
        error = _clean_root(root, recipe_path)
        if error:
            result.error = error
            return result

    try:
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        result.error = f"Cannot create root directory {root}: {e}"
        return result
    result.root_dir = str(root)

    context = ExecutionContext(
        root_dir=str(root),
        requested_version=result.requested_version,
        sink=sink or EchoSink(),
        platform=target_platform,
        spawner=spawner or SubprocessSpawner(),
    )

    start = time.monotonic()
    try:
        result.ok = run_installer(installer, context)
    except UnhandledPlatformError as e:
        logger.error("Recipe '%s' has no variant for %s", recipe.name, target_platform.value)
        result.error = str(e)
    result.duration_ms = int((time.monotonic() - start) * 1000)

    if not result.ok and result.error is None:
        result.error = f"Installation of '{recipe.name}' failed"

    logger.info(
        "%s %s → %s (%dms)",
        "✓" if result.ok else "✗",
        recipe.name,
        result.status,
        result.duration_ms,
    )
    return result
