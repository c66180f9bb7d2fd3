"""Locate session log files under the projects root."""
from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger("ccindicator.parser")


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def list_log_files(root: Path, extension: str = ".jsonl") -> list[Path]:
    """Recursively list session log files below ``root``.

    Hidden files and directories are skipped. A missing or unreadable root
    yields an empty list rather than an error so the monitor degrades to
    reporting no sessions.
    """
    if not os.path.isdir(root):
        logger.debug("Sessions root %s is missing or unreadable", root)
        return []

    def _on_error(err: OSError) -> None:
        logger.warning("Could not enumerate %s: %s", err.filename, err)

    files: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        dirnames[:] = sorted(d for d in dirnames if not _is_hidden(d))
        for name in sorted(filenames):
            if _is_hidden(name) or not name.endswith(extension):
                continue
            path = Path(dirpath) / name
            if os.path.isfile(path):
                files.append(path)
    return files
