"""ccindicator FastAPI service: main application entry point."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from indicator import config
from indicator.models import MonitorSnapshot
from indicator.monitor.scheduler import SessionMonitor
from indicator.observability import initialize as initialize_observability, shutdown as shutdown_observability
from indicator.presentation import project_display_name
from indicator.routers.status import status_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("ccindicator")


def build_monitor() -> SessionMonitor:
    return SessionMonitor(
        config.SESSIONS_DIR,
        window_seconds=config.WINDOW_MINUTES * 60,
        poll_interval_seconds=config.POLL_INTERVAL_SECONDS,
        tail_bytes=config.TAIL_BYTES,
        extension=config.LOG_EXTENSION,
        question_tool=config.QUESTION_TOOL,
        watch_enabled=config.WATCH_ENABLED,
    )


def log_state_change(any_needs_attention: bool, snapshot: MonitorSnapshot) -> None:
    logger.debug(
        "Rechecked %d sessions (attention=%s)",
        len(snapshot.sessions),
        any_needs_attention,
    )


def alert_attention(snapshot: MonitorSnapshot) -> None:
    projects = ", ".join(project_display_name(s.projectPath) for s in snapshot.attention_sessions)
    logger.warning("Session waiting for input: %s", projects or "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup / shutdown lifecycle."""
    logger.info("ccindicator starting up (sessions=%s)", config.SESSIONS_DIR)
    initialize_observability(app)

    monitor = build_monitor()
    monitor.add_listener(log_state_change)
    monitor.add_alert_listener(alert_attention)
    app.state.monitor = monitor
    await monitor.start()

    yield

    logger.info("ccindicator shutting down")
    await monitor.stop()
    shutdown_observability(app)


app = FastAPI(
    title="ccindicator API",
    description="Reports Claude Code sessions that are waiting on a human",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(status_router)


@app.get("/api/health")
def health():
    """Health check endpoint."""
    monitor = getattr(app.state, "monitor", None)
    return {
        "status": "ok",
        "monitor": "running" if monitor and monitor.is_running else "stopped",
        "watcher": "running" if monitor and monitor.is_watching else "stopped",
    }


def run() -> None:
    import uvicorn

    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
