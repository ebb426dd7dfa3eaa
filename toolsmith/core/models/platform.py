"""
Platform tag — the closed set of platforms installers branch on.

The tag is resolved once per run and carried on the execution context.
Recipes key their platform variants by either an exact tag
(``linux``, ``darwin``, ``win``) or a family (``unix``).
"""

from __future__ import annotations

import sys
from enum import Enum

# Keys accepted by platform dispatch (exact tags + families)
VARIANT_KEYS = frozenset({"linux", "darwin", "unix", "win"})

_ALIASES = {
    "linux": "linux",
    "darwin": "darwin",
    "mac": "darwin",
    "macos": "darwin",
    "osx": "darwin",
    "win": "win",
    "win32": "win",
    "windows": "win",
}


class Platform(str, Enum):
    LINUX = "linux"
    DARWIN = "darwin"
    WIN = "win"

    @property
    def family(self) -> str:
        """``unix`` for linux/darwin, ``win`` for windows."""
        return "win" if self is Platform.WIN else "unix"

    @property
    def is_win(self) -> bool:
        return self is Platform.WIN

    @property
    def is_unix(self) -> bool:
        return self.family == "unix"

    def lookup_keys(self) -> tuple[str, ...]:
        """Variant keys to try for this platform, most specific first."""
        if self.value == self.family:
            return (self.value,)
        return (self.value, self.family)

    @classmethod
    def parse(cls, text: str) -> Platform:
        """Parse a platform name or alias.

        Raises:
            ValueError: If the name is not a known platform.
        """
        key = _ALIASES.get(text.strip().lower())
        if key is None:
            raise ValueError(
                f"Unknown platform '{text}'. Valid: {', '.join(p.value for p in cls)}"
            )
        return cls(key)

    @classmethod
    def current(cls) -> Platform:
        """Platform of the running interpreter."""
        if sys.platform.startswith("win"):
            return cls.WIN
        if sys.platform == "darwin":
            return cls.DARWIN
        return cls.LINUX
