"""OpenTelemetry + Prometheus fallback wiring for the session monitor."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from fastapi import FastAPI

from indicator import config

logger = logging.getLogger("ccindicator.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None
_fastapi_instrumentor: Any | None = None

_recheck_counter: Any | None = None
_recheck_latency_hist: Any | None = None
_extraction_failure_counter: Any | None = None
_alert_counter: Any | None = None

_prom_enabled = False
_prom_recheck_counter: Any | None = None
_prom_recheck_latency_hist: Any | None = None
_prom_sessions_gauge: Any | None = None
_prom_extraction_failure_counter: Any | None = None
_prom_alert_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _start_prometheus() -> None:
    global _prom_enabled
    global _prom_recheck_counter, _prom_recheck_latency_hist, _prom_sessions_gauge
    global _prom_extraction_failure_counter, _prom_alert_counter

    try:
        from prometheus_client import Counter, Gauge, Histogram, start_http_server

        start_http_server(config.PROM_PORT, addr=config.HOST)
        _prom_recheck_counter = Counter(
            "ccindicator_rechecks_total",
            "Count of session recheck units",
            ["trigger", "result"],
        )
        _prom_recheck_latency_hist = Histogram(
            "ccindicator_recheck_latency_ms",
            "Latency of one discovery + extraction + aggregation pass",
            ["trigger"],
        )
        _prom_sessions_gauge = Gauge(
            "ccindicator_recent_sessions",
            "Sessions inside the recency window at the last recheck",
        )
        _prom_extraction_failure_counter = Counter(
            "ccindicator_extraction_failures_total",
            "Session logs that could not be read",
            ["reason"],
        )
        _prom_alert_counter = Counter(
            "ccindicator_attention_alerts_total",
            "Edge-triggered attention alerts",
        )
        _prom_enabled = True
        logger.info("Prometheus metrics server listening on port %s", config.PROM_PORT)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus metrics not started: %s", exc)
        _prom_enabled = False


def initialize(app: FastAPI | None = None) -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider, _fastapi_instrumentor
    global _recheck_counter, _recheck_latency_hist, _extraction_failure_counter, _alert_counter

    if _initialized:
        if _enabled and app and _fastapi_instrumentor:
            _fastapi_instrumentor.instrument_app(app)
        return

    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (CCINDICATOR_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "ccindicator"

    resource = Resource.create(
        {
            "service.name": service_name,
            "service.namespace": "ccindicator",
        }
    )

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=metrics_endpoint or None)
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("ccindicator.monitor")

    _recheck_counter = meter.create_counter(
        "ccindicator_rechecks_total",
        unit="1",
        description="Count of session recheck units",
    )
    _recheck_latency_hist = meter.create_histogram(
        "ccindicator_recheck_latency_ms",
        unit="ms",
        description="Latency of one discovery + extraction + aggregation pass",
    )
    _extraction_failure_counter = meter.create_counter(
        "ccindicator_extraction_failures_total",
        unit="1",
        description="Session logs that could not be read",
    )
    _alert_counter = meter.create_counter(
        "ccindicator_attention_alerts_total",
        unit="1",
        description="Edge-triggered attention alerts",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("ccindicator.monitor")
    _fastapi_instrumentor = FastAPIInstrumentor()
    _enabled = True

    if app:
        _fastapi_instrumentor.instrument_app(app)

    if config.PROM_PORT > 0:
        _start_prometheus()

    logger.info(
        "OpenTelemetry initialized (service=%s endpoint=%s)",
        service_name,
        config.OTEL_ENDPOINT,
    )


def shutdown(app: FastAPI | None = None) -> None:
    global _enabled
    if not _initialized:
        return
    try:
        if app and _fastapi_instrumentor:
            _fastapi_instrumentor.uninstrument_app(app)
    except Exception:
        pass
    try:
        if _meter_provider is not None:
            _meter_provider.shutdown()
    except Exception:
        pass
    try:
        if _trace_provider is not None:
            _trace_provider.shutdown()
    except Exception:
        pass
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_recheck(trigger: str, result: str, duration_ms: float, *, session_count: int = 0) -> None:
    trigger = trigger or "unknown"
    result = result or "unknown"
    duration_ms = max(0.0, float(duration_ms))
    if _enabled and _recheck_counter is not None:
        _recheck_counter.add(1, {"trigger": trigger, "result": result})
    if _enabled and _recheck_latency_hist is not None:
        _recheck_latency_hist.record(duration_ms, {"trigger": trigger})
    if _prom_enabled and _prom_recheck_counter is not None:
        _prom_recheck_counter.labels(trigger=trigger, result=result).inc()
    if _prom_enabled and _prom_recheck_latency_hist is not None:
        _prom_recheck_latency_hist.labels(trigger=trigger).observe(duration_ms)
    if _prom_enabled and _prom_sessions_gauge is not None and result == "success":
        _prom_sessions_gauge.set(max(0, int(session_count)))


def record_extraction_failure(reason: str) -> None:
    reason = reason or "unknown"
    if _enabled and _extraction_failure_counter is not None:
        _extraction_failure_counter.add(1, {"reason": reason})
    if _prom_enabled and _prom_extraction_failure_counter is not None:
        _prom_extraction_failure_counter.labels(reason=reason).inc()


def record_attention_alert() -> None:
    if _enabled and _alert_counter is not None:
        _alert_counter.add(1)
    if _prom_enabled and _prom_alert_counter is not None:
        _prom_alert_counter.inc()
