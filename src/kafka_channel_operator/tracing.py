"""OpenTelemetry tracing for KafkaChannel reconciliation and finalization attempts."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Iterator

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, Tracer

from . import __version__
from .logging import CONTROLLER_NAME

if TYPE_CHECKING:
    from .models import KafkaChannel

logger = logging.getLogger(__name__)

_tracer: Tracer | None = None


def initialize_tracing(enabled: bool | None = None) -> None:
    """Install an OTLP span exporter when tracing is enabled.

    Environment Variables:
        OTEL_TRACES_ENABLED: Enable/disable tracing (default: false)
        OTEL_EXPORTER_OTLP_ENDPOINT: OTLP gRPC endpoint (default: http://localhost:4317)
        OTEL_SERVICE_NAME: Service name (default: kafka-channel-operator)
    """
    global _tracer

    if enabled is None:
        enabled = os.getenv("OTEL_TRACES_ENABLED", "false").lower() == "true"
    if not enabled:
        return

    try:
        service_name = os.getenv("OTEL_SERVICE_NAME", CONTROLLER_NAME)
        resource = Resource.create({"service.name": service_name, "service.version": __version__})
        provider = TracerProvider(resource=resource)
        endpoint = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4317")
        provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        trace.set_tracer_provider(provider)
        _tracer = trace.get_tracer(service_name)
    except Exception as e:
        # The operator runs untraced rather than not at all
        logger.warning(f"Failed to initialize tracing: {e}")


def get_tracer() -> Tracer | None:
    return _tracer


def channel_attributes(channel: KafkaChannel) -> dict[str, Any]:
    """Span attributes identifying a channel and its topic."""
    return {
        "kafkachannel.namespace": channel.namespace,
        "kafkachannel.name": channel.name,
        "kafkachannel.generation": channel.generation,
        "kafka.topic": channel.topic_name,
    }


@contextmanager
def trace_span(
    name: str,
    channel: KafkaChannel | None = None,
    attributes: dict[str, Any] | None = None,
) -> Iterator[Span | None]:
    """Open a span for one stage of an attempt.

    Yields None when tracing is disabled. Exceptions escaping the block are
    recorded on the span and mark it as failed.
    """
    tracer = get_tracer()
    if tracer is None:
        yield None
        return

    attrs = channel_attributes(channel) if channel is not None else {}
    attrs.update(attributes or {})
    with tracer.start_as_current_span(name, attributes=attrs) as span:
        yield span
