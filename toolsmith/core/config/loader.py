"""
Recipe loader — reads a recipe YAML file into an Installer tree.

A recipe file names the tool and lists its steps. Steps are piped in
order. Each step is a single-key mapping:

    run: [program, arg, ...]              one process
    chain: [[program, ...], ...]          processes in order, abort on failure
    attempt: [[program, ...], ...]        first process that succeeds
    sh|bash|powershell|cmd: "script"      a shell script
    pipe: [step, ...]                     steps in order, abort on failure
    first_successful: [step, ...]         first step that succeeds
    always_succeed: step                  ignore the step's outcome
    when: {unix: step, win: step}         exhaustive platform dispatch
    on: {unix: step}                      optional platform dispatch
    <standard recipe>: {kwargs} | [args] | arg

Example::

    name: lua-language-server
    steps:
      - ensure_executables:
          executables: [[tar, "tar was not found in path."]]
      - untargz_remote: https://example.com/lua-ls.tar.gz
      - chmod: ["+x", [bin/lua-language-server]]
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable

import yaml
from pydantic import BaseModel, Field, ValidationError

from toolsmith.core.engine.installers import (
    Installer,
    always_succeed,
    attempt_steps,
    chain_steps,
    first_successful,
    on,
    pipe,
    spawn_step,
    when,
)
from toolsmith.core.recipes import shell
from toolsmith.core.recipes.std import RECIPES

logger = logging.getLogger(__name__)

# Default recipe filename
RECIPE_FILE = "toolsmith.yml"

_SHELLS: dict[str, Callable[[str], Installer]] = {
    "sh": shell.sh,
    "bash": shell.bash,
    "powershell": shell.powershell,
    "cmd": shell.cmd,
}


class ConfigError(Exception):
    """Raised when a recipe file is invalid or missing."""


class RecipeFile(BaseModel):
    """Top-level schema of a recipe file."""

    name: str
    description: str = ""
    version: str | None = None      # default requested version
    steps: list[Any] = Field(default_factory=list)


def find_recipe_file(start_dir: Path | None = None) -> Path | None:
    """Search for toolsmith.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to toolsmith.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / RECIPE_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def _argv(value: Any, where: str) -> list[str]:
    if not isinstance(value, list) or not value:
        raise ConfigError(f"{where}: expected a non-empty [program, args...] list")
    if not all(isinstance(v, (str, int, float)) for v in value):
        raise ConfigError(f"{where}: command items must be scalars")
    return [str(v) for v in value]


def _node_list(value: Any, where: str) -> list[Installer]:
    if not isinstance(value, list):
        raise ConfigError(f"{where}: expected a list of steps")
    return [build_installer(v, f"{where}[{i}]") for i, v in enumerate(value)]


def _platform_map(value: Any, where: str) -> dict[str, Installer]:
    if not isinstance(value, dict) or not value:
        raise ConfigError(f"{where}: expected a mapping of platform → step")
    return {str(k): build_installer(v, f"{where}.{k}") for k, v in value.items()}


def _recipe(name: str, value: Any, where: str) -> Installer:
    factory = RECIPES[name]
    try:
        if value is None:
            return factory()
        if isinstance(value, dict):
            return factory(**value)
        if isinstance(value, list):
            return factory(*value)
        return factory(value)
    except TypeError as e:
        raise ConfigError(f"{where}: bad arguments for '{name}': {e}") from e


def build_installer(node: Any, where: str = "step") -> Installer:
    """Compile one step node into an Installer.

    Raises:
        ConfigError: If the node is malformed.
    """
    if not isinstance(node, dict) or len(node) != 1:
        raise ConfigError(f"{where}: each step must be a mapping with exactly one key")

    (kind, value), = node.items()
    if kind is True:
        # YAML 1.1 reads a bare `on:` key as boolean true
        kind = "on"
    where = f"{where}.{kind}"

    try:
        if kind == "run":
            argv = _argv(value, where)
            return spawn_step(argv[0], argv[1:])
        if kind in ("chain", "attempt"):
            if not isinstance(value, list) or not value:
                raise ConfigError(f"{where}: expected a non-empty list of commands")
            commands = [_argv(v, f"{where}[{i}]") for i, v in enumerate(value)]
            return chain_steps(commands) if kind == "chain" else attempt_steps(commands)
        if kind in _SHELLS:
            if not isinstance(value, str):
                raise ConfigError(f"{where}: expected a script string")
            return _SHELLS[kind](value)
        if kind == "pipe":
            return pipe(_node_list(value, where))
        if kind == "first_successful":
            return first_successful(_node_list(value, where))
        if kind == "always_succeed":
            return always_succeed(build_installer(value, where))
        if kind == "when":
            return when(_platform_map(value, where))
        if kind == "on":
            return on(_platform_map(value, where))
        if kind in RECIPES:
            return _recipe(kind, value, where)
    except ValueError as e:
        # Unknown platform keys and the like
        raise ConfigError(f"{where}: {e}") from e

    raise ConfigError(f"{where}: unknown step type '{kind}'")


def load_recipe(path: Path | None = None) -> tuple[RecipeFile, Installer]:
    """Load and compile a recipe file.

    Args:
        path: Explicit path to the recipe. If None, searches upward.

    Returns:
        The validated RecipeFile and its steps piped into one Installer.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        path = find_recipe_file()

    if path is None:
        raise ConfigError(f"No {RECIPE_FILE} found. Specify a recipe file.")

    if not path.is_file():
        raise ConfigError(f"Recipe file not found: {path}")

    logger.debug("Loading recipe from %s", path)

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"Recipe file must be a YAML mapping, got {type(raw).__name__}")

    try:
        recipe = RecipeFile.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid recipe in {path}:\n{e}") from e

    try:
        installer = pipe(_node_list(recipe.steps, "steps"))
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e

    logger.debug("Loaded recipe '%s' with %d step(s)", recipe.name, len(recipe.steps))
    return recipe, installer
