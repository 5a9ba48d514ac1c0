"""OpenTelemetry tracing for the generation pipeline.

Export is switched on by the standard OTLP environment variables
(``OTEL_EXPORTER_OTLP_ENDPOINT`` or ``OTEL_EXPORTER_OTLP_TRACES_ENDPOINT``,
plus ``OTEL_EXPORTER_OTLP_HEADERS`` and ``OTEL_SERVICE_NAME``). With no
endpoint the global tracer provider stays a no-op and every helper here
still works.
"""

import os
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Status, StatusCode

from ..logging import get_logger

logger = get_logger(__name__)

TRACES_PATH = "/v1/traces"

_telemetry_configured = False


def _parse_headers(raw: str | None) -> dict[str, str]:
    """``k=v,k2=v2`` into a dict; entries without ``=`` are skipped."""
    pairs = (item.split("=", 1) for item in (raw or "").split(",") if "=" in item)
    return {key.strip(): value.strip() for key, value in pairs}


def _traces_endpoint() -> str | None:
    endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT") or os.environ.get(
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT"
    )
    if not endpoint:
        return None
    endpoint = endpoint.rstrip("/")
    return endpoint if endpoint.endswith(TRACES_PATH) else endpoint + TRACES_PATH


def configure_telemetry(
    service_name: str,
    service_version: str = "0.1.0",
    environment: str | None = None,
) -> bool:
    """Install an OTLP/HTTP span exporter once per process.

    Args:
        service_name: Resource service name, unless ``OTEL_SERVICE_NAME`` is set.
        service_version: Resource service version.
        environment: Value for ``deployment.environment``.

    Returns:
        Whether spans are being exported.
    """
    global _telemetry_configured
    if _telemetry_configured:
        return True

    service_name = os.environ.get("OTEL_SERVICE_NAME", service_name)
    endpoint = _traces_endpoint()
    if endpoint is None:
        logger.info("Trace export disabled, no OTLP endpoint", service=service_name)
        return False

    exporter_options: dict[str, Any] = {"endpoint": endpoint}
    headers = _parse_headers(os.environ.get("OTEL_EXPORTER_OTLP_HEADERS"))
    if headers:
        exporter_options["headers"] = headers

    provider = TracerProvider(
        resource=Resource.create(
            {
                SERVICE_NAME: service_name,
                SERVICE_VERSION: service_version,
                "deployment.environment": environment or "development",
            }
        )
    )
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(**exporter_options)))
    trace.set_tracer_provider(provider)

    _telemetry_configured = True
    logger.info("Trace export enabled", service=service_name, endpoint=endpoint)
    return True


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)


def _coerce_attributes(attributes: dict | None) -> dict[str, Any] | None:
    """Drop ``None`` values and stringify anything OTel cannot carry."""
    if not attributes:
        return None
    return {
        key: value if isinstance(value, (str, bool, int, float)) else str(value)
        for key, value in attributes.items()
        if value is not None
    }


def add_span_event(span: Span | None, name: str, attributes: dict | None = None) -> None:
    """Attach a pipeline milestone (``quota_checked``, ``record_persisted``...) to a span.

    Tracing failures are logged at debug level and never reach the caller.
    """
    if span is None:
        return
    try:
        span.add_event(name, attributes=_coerce_attributes(attributes))
    except Exception:
        logger.debug("Span event dropped", event_name=name, exc_info=True)


def record_exception_on_span(
    span: Span | None,
    exception: BaseException,
    attributes: dict | None = None,
) -> None:
    """Record a failed pipeline step and mark the span as errored."""
    if span is None:
        return
    try:
        span.record_exception(exception, attributes=_coerce_attributes(attributes))
        span.set_status(Status(StatusCode.ERROR, str(exception)))
    except Exception:
        logger.debug("Span exception dropped", exc_info=True)
