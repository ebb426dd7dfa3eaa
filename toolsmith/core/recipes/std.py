"""
Standard recipes — the building blocks most install recipes are made of.

Every function returns an Installer. Paths are relative to the context's
root directory unless a tool insists on absolute ones (peazip, gradlew),
in which case the recipe joins them with the root itself.

    download_file     wget → curl fallback on unix, Invoke-WebRequest on win
    unzip / untar     extract, then delete the archive (a failed delete is ignored)
    *_remote          download + extract in one pipe
    git_clone         shallow clone, optionally pinned to the requested version
    ensure_executables / rename / chmod / delete_file
"""

from __future__ import annotations

import logging
import os
import re
from concurrent.futures import Future
from typing import Sequence

from toolsmith.adapters.base import ExecutionContext
from toolsmith.adapters.shell import filesystem
from toolsmith.core.engine import process
from toolsmith.core.engine.installers import (
    Installer,
    always_succeed,
    first_successful,
    installer,
    on,
    pipe,
    spawn_step,
    when,
)
from toolsmith.core.recipes.shell import powershell

logger = logging.getLogger(__name__)


def _ps_quote(value: str) -> str:
    """Quote a literal for PowerShell (single quotes, '' escapes)."""
    return "'" + value.replace("'", "''") + "'"


def _str_list(value: Sequence[str], what: str) -> list[str]:
    """Validate a list of strings; a bare string is a mistake, not a list of characters."""
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeError(f"{what} must be a list of strings, got {value!r}")
    if not all(isinstance(v, str) for v in value):
        raise TypeError(f"{what} must contain only strings, got {list(value)!r}")
    return list(value)


# ── Download ────────────────────────────────────────────────────────


def download_file(url: str, out_file: str) -> Installer:
    """Download ``url`` to ``out_file`` (relative to the root)."""

    def _unix(context: ExecutionContext) -> Future[bool]:
        context.sink.stdout(f"Downloading file {url!r}...\n")
        return process.attempt(
            [
                process.lazy_spawn(context, "wget", ["-nv", "-O", out_file, url]),
                process.lazy_spawn(context, "curl", ["-fsSL", "-o", out_file, url]),
            ]
        )

    return when(
        unix=_unix,
        win=powershell(
            f"iwr -UseBasicParsing -Uri {_ps_quote(url)} -OutFile {_ps_quote(out_file)}"
        ),
    )


# ── Extraction ──────────────────────────────────────────────────────


def delete_file(file: str) -> Installer:
    return when(
        unix=spawn_step("rm", ["-f", file]),
        win=powershell(f"rm {_ps_quote(file)}"),
    )


def unzip(file: str, dest: str) -> Installer:
    return pipe(
        when(
            unix=spawn_step("unzip", ["-d", dest, file]),
            win=powershell(
                f"Expand-Archive -Path {_ps_quote(file)} -DestinationPath {_ps_quote(dest)}"
            ),
        ),
        always_succeed(delete_file(file)),
    )


def unzip_remote(url: str, dest: str | None = None) -> Installer:
    return pipe(
        download_file(url, "archive.zip"),
        unzip("archive.zip", dest or "."),
    )


def untar(file: str) -> Installer:
    return pipe(
        spawn_step("tar", ["-xvf", file]),
        always_succeed(delete_file(file)),
    )


def _win_extract(file: str) -> Installer:
    """Extract with whichever archiver happens to be installed."""

    def _extract(context: ExecutionContext) -> Future[bool]:
        return process.attempt(
            [
                process.lazy_spawn(context, "7z", ["x", "-y", "-r", file]),
                # peazip only accepts absolute paths
                process.lazy_spawn(
                    context, "peazip", ["-ext2here", os.path.join(context.root_dir, file)]
                ),
                process.lazy_spawn(context, "wzunzip", [file]),
            ]
        )

    return pipe(_extract, always_succeed(delete_file(file)))


def _win_untarxz(file: str) -> Installer:
    return pipe(
        _win_extract(file),
        untar(re.sub(r"\.xz$", "", file)),
    )


def _win_arc_unarchive(file: str) -> Installer:
    def _arc(context: ExecutionContext) -> Future[bool]:
        context.sink.stdout("Attempting to unarchive using arc.\n")
        return process.spawn(context, "arc", ["unarchive", file])

    return pipe(_arc, always_succeed(delete_file(file)))


def untarxz_remote(url: str) -> Installer:
    return pipe(
        download_file(url, "archive.tar.xz"),
        when(
            unix=untar("archive.tar.xz"),
            win=first_successful(
                _win_untarxz("archive.tar.xz"),
                _win_arc_unarchive("archive.tar.xz"),
            ),
        ),
    )


def untargz_remote(url: str) -> Installer:
    return pipe(
        download_file(url, "archive.tar.gz"),
        untar("archive.tar.gz"),
    )


def gunzip(file: str) -> Installer:
    return when(
        unix=spawn_step("gzip", ["-d", file]),
        win=_win_extract(file),
    )


def gunzip_remote(url: str, out_file: str | None = None) -> Installer:
    archive = f"{out_file or 'archive'}.gz"
    return pipe(
        download_file(url, archive),
        gunzip(archive),
        always_succeed(delete_file(archive)),
    )


# ── Source & build ──────────────────────────────────────────────────


def git_clone(repo_url: str) -> Installer:
    """Shallow-clone into the root, pinned to the requested version if any."""

    def _clone(context: ExecutionContext) -> Future[bool]:
        c = process.chain(context)
        c.run("git", ["clone", "--depth", "1", repo_url, "."])
        if context.requested_version:
            c.run("git", ["fetch", "--depth", "1", "origin", context.requested_version])
            c.run("git", ["checkout", "FETCH_HEAD"])
        return c.spawn()

    return _clone


def gradlew(args: Sequence[str]) -> Installer:
    args = _str_list(args, "gradlew args")

    def _gradlew(context: ExecutionContext) -> Future[bool]:
        script = "gradlew.bat" if context.platform.is_win else "gradlew"
        return process.spawn(context, os.path.join(context.root_dir, script), args)

    return _gradlew


# ── Checks & file operations ────────────────────────────────────────


def ensure_executables(executables: Sequence[tuple[str, str]]) -> Installer:
    """Fail with the paired message for the first missing executable.

    Raises:
        TypeError: If an entry is not an ``(executable, message)`` pair.
    """
    if isinstance(executables, (str, bytes)) or not isinstance(executables, Sequence):
        raise TypeError(f"executables must be a list of pairs, got {executables!r}")
    pairs: list[tuple[str, str]] = []
    for entry in executables:
        items = _str_list(entry, "ensure_executables entry")
        if len(items) != 2:
            raise TypeError(f"ensure_executables entry must be [executable, message], got {items!r}")
        pairs.append((items[0], items[1]))

    @installer
    def _ensure(context: ExecutionContext) -> bool:
        for executable, error_msg in pairs:
            if not context.spawner.is_available(executable):
                logger.debug("Required executable missing: %s", executable)
                context.sink.stderr(f"{error_msg}\n")
                return False
        return True

    return _ensure


def rename(old_path: str, new_path: str) -> Installer:
    @installer
    def _rename(context: ExecutionContext) -> bool:
        ok = filesystem.rename(
            os.path.join(context.root_dir, old_path),
            os.path.join(context.root_dir, new_path),
        )
        if not ok:
            context.sink.stderr(f"Failed to rename {old_path!r} to {new_path!r}.\n")
        return ok

    return _rename


def chmod(flags: str, files: Sequence[str]) -> Installer:
    """chmod on unix; a no-op on platforms without an executable bit."""
    if not isinstance(flags, str):
        raise TypeError(f"chmod flags must be a string, got {flags!r}")
    return on(unix=spawn_step("chmod", [flags, *_str_list(files, "chmod files")]))


# Name → factory table for recipe files and the CLI
RECIPES = {
    "download_file": download_file,
    "unzip": unzip,
    "unzip_remote": unzip_remote,
    "untar": untar,
    "untarxz_remote": untarxz_remote,
    "untargz_remote": untargz_remote,
    "gunzip": gunzip,
    "gunzip_remote": gunzip_remote,
    "delete_file": delete_file,
    "git_clone": git_clone,
    "gradlew": gradlew,
    "ensure_executables": ensure_executables,
    "rename": rename,
    "chmod": chmod,
}
