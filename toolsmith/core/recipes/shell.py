"""
Shell recipes — run a script through a shell interpreter.
"""

from __future__ import annotations

from toolsmith.core.engine.installers import Installer, spawn_step

# Progress bars from Invoke-WebRequest & co. are painfully slow when piped
_POWERSHELL_PRELUDE = "$ProgressPreference = 'SilentlyContinue'; "


def bash(script: str) -> Installer:
    return spawn_step("bash", ["-c", script])


def sh(script: str) -> Installer:
    return spawn_step("sh", ["-c", script])


def powershell(script: str) -> Installer:
    return spawn_step(
        "powershell.exe",
        ["-NoProfile", "-NonInteractive", "-Command", _POWERSHELL_PRELUDE + script],
    )


def cmd(script: str) -> Installer:
    return spawn_step("cmd.exe", ["/C", script])
