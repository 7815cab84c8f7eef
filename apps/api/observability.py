from __future__ import annotations

import contextlib
import os
import sys
from typing import Any, Dict, Iterator

from packages.core.jobs.scheduler import Processor

try:
    from opentelemetry import trace
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
        OTLPSpanExporter,
    )
except Exception:  # pragma: no cover - optional dependency resolution
    trace = None
    Resource = None
    TracerProvider = None
    BatchSpanProcessor = None
    ConsoleSpanExporter = None
    OTLPSpanExporter = None


def init_observability(service_name: str = "remind-ops") -> None:
    if "pytest" in sys.modules:
        return
    if trace is None or TracerProvider is None:
        return

    if isinstance(trace.get_tracer_provider(), TracerProvider):
        return

    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    otlp_endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if otlp_endpoint and OTLPSpanExporter is not None and BatchSpanProcessor is not None:
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    elif os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)


@contextlib.contextmanager
def job_span(name: str) -> Iterator[Any]:
    """Span around one job run; a no-op when tracing is not installed."""
    if trace is None:
        yield None
        return
    tracer = trace.get_tracer("remind_ops.jobs")
    with tracer.start_as_current_span(f"job {name}") as span:
        span.set_attribute("job.id", name)
        yield span


def traced_processor(job_id: str, processor: Processor) -> Processor:
    def run(data: Dict[str, Any]) -> None:
        with job_span(job_id):
            processor(data)

    return run
