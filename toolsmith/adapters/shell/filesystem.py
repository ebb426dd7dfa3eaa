"""
Filesystem helpers — the synchronous file operations cleanup steps use.

Failures are reported as ``False`` and logged, never raised, so that a
recipe can decide whether a failed rename or delete matters.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def rename(old_path: str | Path, new_path: str | Path) -> bool:
    """Rename ``old_path`` to ``new_path``.

    Returns:
        True on success, False if the OS refused.
    """
    try:
        os.rename(old_path, new_path)
    except OSError as e:
        logger.debug("Rename %s → %s failed: %s", old_path, new_path, e)
        return False
    logger.debug("Renamed %s → %s", old_path, new_path)
    return True


def delete(path: str | Path) -> bool:
    """Delete a file or a directory tree.

    A path that does not exist counts as deleted (``rm -f`` semantics).
    """
    target = Path(path)
    try:
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        else:
            target.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Delete %s failed: %s", target, e)
        return False
    logger.debug("Deleted %s", target)
    return True
