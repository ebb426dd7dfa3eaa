"""
toolsmith — CLI entrypoint.

Usage:
    toolsmith --help
    toolsmith install recipe.yml --root ./servers/lua --version 3.6.4
    toolsmith check recipe.yml
    toolsmith recipes
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path

import click

from toolsmith import __version__
from toolsmith.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="toolsmith")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--log-output",
    is_flag=True,
    help="Also relay process output to the log (see TOOLSMITH_LOG_FILE).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool, log_output: bool) -> None:
    """toolsmith — composable installer pipelines."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["log_output"] = log_output

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("TOOLSMITH_LOG_FILE"),
        log_file_level=os.environ.get("TOOLSMITH_LOG_FILE_LEVEL"),
        relay_output=log_output,
    )


@cli.command()
@click.argument("recipe", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option(
    "--root",
    "root_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Directory to install into.",
)
@click.option("--version", "version", default=None, help="Requested version.")
@click.option("--platform", "platform", default=None, help="Override platform (linux, darwin, win).")
@click.option("--clean", is_flag=True, help="Delete --root before installing.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output result as JSON.")
@click.pass_context
def install(
    ctx: click.Context,
    recipe: Path | None,
    root_dir: Path,
    version: str | None,
    platform: str | None,
    clean: bool,
    as_json: bool,
) -> None:
    """Run RECIPE (default: nearest toolsmith.yml) into --root."""
    from toolsmith.adapters.sinks import BufferSink, EchoSink, LoggingSink, TeeSink
    from toolsmith.core.use_cases.install import install_from_recipe

    # JSON mode keeps stdout machine-readable
    buffer = BufferSink() if as_json else None
    sink = buffer if buffer is not None else EchoSink()
    if ctx.obj.get("log_output"):
        sink = TeeSink(sink, LoggingSink())
    result = install_from_recipe(
        recipe,
        root_dir,
        version=version,
        platform=platform,
        sink=sink,
        clean=clean,
    )

    if as_json:
        data = result.to_dict()
        data["output"] = buffer.text
        click.echo(json.dumps(data, indent=2))
        sys.exit(0 if result.ok else 1)

    if result.ok:
        if not ctx.obj.get("quiet"):
            click.secho(f"✅ Installed {result.recipe_name} into {result.root_dir}", fg="green")
        return

    click.secho(f"❌ {result.error}", fg="red", err=True)
    sys.exit(1)


@cli.command()
@click.argument("recipe", required=False, type=click.Path(dir_okay=False, path_type=Path))
def check(recipe: Path | None) -> None:
    """Validate RECIPE without running it."""
    from toolsmith.core.config.loader import ConfigError, load_recipe

    try:
        recipe_file, installer = load_recipe(recipe)
    except ConfigError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    click.secho(f"✅ {recipe_file.name}: {len(recipe_file.steps)} step(s)", fg="green")
    if recipe_file.description:
        click.echo(f"   {recipe_file.description}")
    click.echo(f"   {installer!r}")


@cli.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def recipes(as_json: bool) -> None:
    """List the standard recipes usable in recipe files."""
    import inspect

    from toolsmith.core.recipes.std import RECIPES

    entries = [
        {"name": name, "signature": str(inspect.signature(factory))}
        for name, factory in sorted(RECIPES.items())
    ]

    if as_json:
        click.echo(json.dumps(entries, indent=2))
        return

    click.secho("📦 Standard recipes:", fg="cyan", bold=True)
    for entry in entries:
        click.echo(f"   • {entry['name']}{entry['signature']}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
