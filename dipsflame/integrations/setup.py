"""
OpenTelemetry tracing setup with DipsLogExporter.

This module provides functions to configure OpenTelemetry tracing so that a
service writes its spans as a DIPS profiling log.

Example:
    >>> from dipsflame.integrations import setup_tracing, get_tracer
    >>>
    >>> setup_tracing(app_id="42", host="web01", output_path="logs/web01.log")
    >>>
    >>> tracer = get_tracer("my-module")
    >>> with tracer.start_as_current_span("OrderService.PlaceOrder"):
    ...     # Your code here
    ...     pass
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from pathlib import Path
from typing import Optional, Union

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource, SERVICE_NAME
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)

from dipsflame.exporters import DipsLogExporter

logger = logging.getLogger(__name__)

# Global reference to the configured provider
_tracer_provider: Optional[TracerProvider] = None


def setup_tracing(
    app_id: str,
    host: str,
    output_path: Union[str, Path],
    service_name: Optional[str] = None,
    environment: str = "",
    tz: Optional[tzinfo] = None,
    use_batch_processor: bool = True,
    additional_exporters: Optional[list[SpanExporter]] = None,
    set_global: bool = True,
) -> TracerProvider:
    """Setup OpenTelemetry tracing with DipsLogExporter.

    Args:
        app_id: Application id written to every log line.
        host: Host name written to every log line.
        output_path: DIPS profiling log to append spans to.
        service_name: OpenTelemetry service name (defaults to ``App-<app_id>``).
        environment: Environment column value.
        tz: Time zone for log timestamps (None for host local time).
        use_batch_processor: Use BatchSpanProcessor (True) or SimpleSpanProcessor.
        additional_exporters: Additional SpanExporters to use alongside.
        set_global: Install the provider as the global TracerProvider.

    Returns:
        The configured TracerProvider.
    """
    global _tracer_provider

    resource = Resource.create({
        SERVICE_NAME: service_name or f"App-{app_id}",
    })

    provider = TracerProvider(resource=resource)

    exporter = DipsLogExporter(
        app_id=app_id,
        host=host,
        output_path=output_path,
        environment=environment,
        tz=tz,
    )

    processor_cls = BatchSpanProcessor if use_batch_processor else SimpleSpanProcessor
    provider.add_span_processor(processor_cls(exporter))

    for extra in additional_exporters or []:
        provider.add_span_processor(processor_cls(extra))

    if set_global:
        trace.set_tracer_provider(provider)
    _tracer_provider = provider

    logger.info(
        "Tracing configured: app=%s, host=%s, output=%s",
        app_id,
        host,
        output_path,
    )

    return provider


def get_tracer(name: str, version: Optional[str] = None) -> trace.Tracer:
    """Get a tracer from the configured provider.

    Falls back to the global provider when setup_tracing() has not run.

    Args:
        name: Name of the tracer (usually module name).
        version: Optional version of the tracer.

    Returns:
        A Tracer instance for creating spans.
    """
    provider = _tracer_provider or trace.get_tracer_provider()
    return provider.get_tracer(name, version)


def shutdown_tracing() -> None:
    """Shutdown the tracing system.

    Flushes all pending spans and shuts down the TracerProvider.
    """
    global _tracer_provider

    if _tracer_provider:
        logger.info("Shutting down tracing...")
        _tracer_provider.shutdown()
        _tracer_provider = None
        logger.info("Tracing shutdown complete")
