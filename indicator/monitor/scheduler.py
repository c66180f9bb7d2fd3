"""Session monitor: schedules serialized rechecks of every session log.

Filesystem events, a fixed poll interval and manual refreshes all enqueue a
recheck request. A single worker drains the queue in FIFO order and runs each
recheck on a one-thread executor, so two rechecks never overlap. Snapshots are
delivered to listeners back on the event loop.
"""
from __future__ import annotations

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional

from indicator.aggregator import reduce_sessions
from indicator.models import MonitorSnapshot, SessionInfo
from indicator.monitor.file_watcher import FileWatcher
from indicator.observability import record_attention_alert, record_recheck, start_span
from indicator.parsers.registry import scan_sessions
from indicator.parsers.sessions import DEFAULT_QUESTION_TOOL, DEFAULT_TAIL_BYTES

logger = logging.getLogger("ccindicator.monitor")

ChangeListener = Callable[[bool, MonitorSnapshot], None]
AlertListener = Callable[[MonitorSnapshot], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _RecheckRequest:
    trigger: str
    waiter: Optional[asyncio.Future] = None


class SessionMonitor:
    """Watches a sessions root and republishes the aggregated attention state."""

    def __init__(
        self,
        sessions_dir: Path,
        *,
        window_seconds: float = 3600.0,
        poll_interval_seconds: float = 0.5,
        tail_bytes: int = DEFAULT_TAIL_BYTES,
        extension: str = ".jsonl",
        question_tool: str = DEFAULT_QUESTION_TOOL,
        watch_enabled: bool = True,
        collect: Optional[Callable[[], list[SessionInfo]]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.sessions_dir = sessions_dir
        self.window_seconds = window_seconds
        self.poll_interval_seconds = poll_interval_seconds
        self.tail_bytes = tail_bytes
        self.extension = extension
        self.question_tool = question_tool
        self.watch_enabled = watch_enabled
        self._collect = collect or self._scan
        self._clock = clock

        self._listeners: list[ChangeListener] = []
        self._alert_listeners: list[AlertListener] = []
        self._snapshot: Optional[MonitorSnapshot] = None
        self._last_attention = False

        self._watcher = FileWatcher(sessions_dir, lambda: self.request_recheck("watch"), extension)
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._running = False

    # ── listeners ───────────────────────────────────────────────────

    def add_listener(self, listener: ChangeListener) -> None:
        """Called with ``(anyNeedsAttention, snapshot)`` after every recheck."""
        self._listeners.append(listener)

    def add_alert_listener(self, listener: AlertListener) -> None:
        """Called once each time ``anyNeedsAttention`` goes from false to true."""
        self._alert_listeners.append(listener)

    # ── state ───────────────────────────────────────────────────────

    @property
    def snapshot(self) -> Optional[MonitorSnapshot]:
        return self._snapshot

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def is_watching(self) -> bool:
        return self._watcher.is_running

    def set_window(self, window_seconds: float) -> None:
        """Change the recency window; applies from the next recheck."""
        self.window_seconds = window_seconds

    # ── lifecycle ───────────────────────────────────────────────────

    async def start(self) -> None:
        """Run the first recheck, then start the watch and poll triggers."""
        if self._running:
            logger.warning("Session monitor already running")
            return

        self._running = True
        self._queue = asyncio.Queue()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="ccindicator-recheck")
        self._worker = asyncio.create_task(self._worker_loop())

        try:
            await self.check_now("startup")
        except Exception:
            logger.warning("Initial recheck failed, continuing with scheduled rechecks")

        if self.watch_enabled and not await self._watcher.start():
            logger.warning(
                "Falling back to polling every %.2fs for %s",
                self.poll_interval_seconds,
                self.sessions_dir,
            )
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info("Session monitor started for %s", self.sessions_dir)

    async def stop(self) -> None:
        """Stop both triggers. A recheck already running finishes and delivers."""
        if not self._running:
            return
        self._running = False

        if self._poll_task:
            self._poll_task.cancel()
            try:
                await self._poll_task
            except asyncio.CancelledError:
                pass
            self._poll_task = None
        await self._watcher.stop()

        queue = self._queue
        if queue is None:
            return
        dropped = 0
        while True:
            try:
                request = queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if request is not None and request.waiter is not None and not request.waiter.done():
                request.waiter.set_exception(RuntimeError("Session monitor stopped"))
            queue.task_done()
            dropped += 1
        if dropped:
            logger.debug("Dropped %d queued rechecks on shutdown", dropped)

        queue.put_nowait(None)
        if self._worker:
            await self._worker
            self._worker = None
        if self._executor:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Session monitor stopped")

    # ── triggers ────────────────────────────────────────────────────

    def request_recheck(self, trigger: str = "manual") -> bool:
        """Queue a recheck without waiting for it. Returns False once stopped."""
        if not self._running or self._queue is None:
            return False
        self._queue.put_nowait(_RecheckRequest(trigger))
        return True

    async def check_now(self, trigger: str = "manual") -> MonitorSnapshot:
        """Queue a recheck and wait for its snapshot to be delivered."""
        if not self._running or self._queue is None:
            raise RuntimeError("Session monitor is not running")
        waiter = asyncio.get_running_loop().create_future()
        self._queue.put_nowait(_RecheckRequest(trigger, waiter))
        return await waiter

    async def wait_idle(self) -> None:
        """Wait until every queued recheck has been delivered."""
        if self._queue is not None:
            await self._queue.join()

    async def _poll_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self.poll_interval_seconds)
                self.request_recheck("poll")
        except asyncio.CancelledError:
            pass

    # ── recheck unit ────────────────────────────────────────────────

    async def _worker_loop(self) -> None:
        queue = self._queue
        if queue is None:
            return
        loop = asyncio.get_running_loop()
        while True:
            request = await queue.get()
            try:
                if request is None:
                    return
                await self._run_recheck(loop, request)
            finally:
                queue.task_done()

    async def _run_recheck(self, loop: asyncio.AbstractEventLoop, request: _RecheckRequest) -> None:
        window = self.window_seconds
        started = time.perf_counter()
        try:
            snapshot = await loop.run_in_executor(self._executor, self._recheck, request.trigger, window)
        except Exception as exc:
            logger.exception("Recheck failed (trigger=%s)", request.trigger)
            record_recheck(request.trigger, "error", (time.perf_counter() - started) * 1000)
            if request.waiter is not None and not request.waiter.done():
                request.waiter.set_exception(exc)
            return

        record_recheck(
            request.trigger,
            "success",
            (time.perf_counter() - started) * 1000,
            session_count=len(snapshot.sessions),
        )
        self._deliver(snapshot)
        if request.waiter is not None and not request.waiter.done():
            request.waiter.set_result(snapshot)

    def _recheck(self, trigger: str, window_seconds: float) -> MonitorSnapshot:
        # Runs on the recheck thread.
        with start_span("ccindicator.recheck", {"trigger": trigger}):
            sessions = self._collect()
            return reduce_sessions(sessions, self._clock(), window_seconds)

    def _scan(self) -> list[SessionInfo]:
        return scan_sessions(
            self.sessions_dir,
            extension=self.extension,
            tail_bytes=self.tail_bytes,
            question_tool=self.question_tool,
        )

    def _deliver(self, snapshot: MonitorSnapshot) -> None:
        previously = self._last_attention
        self._snapshot = snapshot
        self._last_attention = snapshot.anyNeedsAttention

        for listener in list(self._listeners):
            try:
                listener(snapshot.anyNeedsAttention, snapshot)
            except Exception:
                logger.exception("Session monitor listener failed")

        if snapshot.anyNeedsAttention and not previously:
            record_attention_alert()
            for alert in list(self._alert_listeners):
                try:
                    alert(snapshot)
                except Exception:
                    logger.exception("Attention alert listener failed")
