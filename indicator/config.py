"""ccindicator configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


# Session logs
SESSIONS_DIR = Path(os.getenv("CCINDICATOR_SESSIONS_DIR", "~/.claude/projects")).expanduser()
LOG_EXTENSION = os.getenv("CCINDICATOR_LOG_EXTENSION", ".jsonl")
QUESTION_TOOL = os.getenv("CCINDICATOR_QUESTION_TOOL", "AskUserQuestion")

# Extraction + scheduling
WINDOW_MINUTES = _env_int("CCINDICATOR_WINDOW_MINUTES", 60)
TAIL_BYTES = _env_int("CCINDICATOR_TAIL_BYTES", 50_000)
POLL_INTERVAL_SECONDS = _env_float("CCINDICATOR_POLL_INTERVAL_SECONDS", 0.5)
WATCH_ENABLED = _env_bool("CCINDICATOR_WATCH_ENABLED", True)

# Observability
OTEL_ENABLED = _env_bool("CCINDICATOR_OTEL_ENABLED", False)
OTEL_ENDPOINT = os.getenv("CCINDICATOR_OTEL_ENDPOINT", "http://localhost:4318")
OTEL_SERVICE_NAME = os.getenv("CCINDICATOR_OTEL_SERVICE_NAME", "ccindicator")
PROM_PORT = _env_int("CCINDICATOR_PROM_PORT", 9465)

# Server settings
HOST = os.getenv("CCINDICATOR_HOST", "127.0.0.1")
PORT = _env_int("CCINDICATOR_PORT", 8765)
