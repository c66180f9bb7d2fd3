"""Observability helpers."""

from indicator.observability.otel import (
    initialize,
    shutdown,
    start_span,
    record_recheck,
    record_extraction_failure,
    record_attention_alert,
)

__all__ = [
    "initialize",
    "shutdown",
    "start_span",
    "record_recheck",
    "record_extraction_failure",
    "record_attention_alert",
]
