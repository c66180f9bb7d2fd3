"""File watcher service using watchfiles.

Watches the sessions root and fires a callback whenever a batch of
filesystem changes touches a session log.
"""
from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Optional

from watchfiles import Change, awatch

logger = logging.getLogger("ccindicator.watcher")


class FileWatcher:
    """Background watcher that reports relevant change batches.

    Uses `watchfiles` (Rust-accelerated) for efficient watching.
    """

    def __init__(self, root: Path, on_change: Callable[[], None], extension: str = ".jsonl"):
        self.root = root
        self.extension = extension
        self._on_change = on_change
        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._running = False

    async def start(self) -> bool:
        """Start watching in a background task. Returns False if the root cannot be watched."""
        if self._running:
            logger.warning("File watcher already running")
            return True

        if not os.path.isdir(self.root):
            logger.warning("Sessions root %s is missing or unreadable, file watch disabled", self.root)
            return False

        self._running = True
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._watch_loop())
        logger.info("File watcher started for %s", self.root)
        return True

    async def stop(self) -> None:
        """Stop the file watcher."""
        self._running = False
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("File watcher stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    async def _watch_loop(self) -> None:
        try:
            async for changes in awatch(self.root, stop_event=self._stop_event):
                if not self._running:
                    break
                relevant = self._relevant_changes(changes)
                if relevant:
                    logger.debug("Detected %d session log changes", len(relevant))
                    self._on_change()
        except asyncio.CancelledError:
            logger.info("File watcher task cancelled")
        except Exception as e:
            logger.error(f"File watcher error, continuing on polling only: {e}")
        finally:
            self._running = False

    def _is_hidden(self, path: Path) -> bool:
        try:
            parts = path.relative_to(self.root).parts
        except ValueError:
            parts = (path.name,)
        return any(part.startswith(".") for part in parts)

    def _relevant_changes(self, changes: set[tuple[Change, str]]) -> list[tuple[Change, Path]]:
        """Keep changes to session logs, plus added/removed directories."""
        result = []
        for change_type, path_str in changes:
            path = Path(path_str)
            if self._is_hidden(path):
                continue
            if path.suffix == self.extension:
                result.append((change_type, path))
            elif change_type != Change.modified and not path.suffix:
                result.append((change_type, path))
        return result
