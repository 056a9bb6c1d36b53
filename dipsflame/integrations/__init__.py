"""
dipsflame.integrations - OpenTelemetry setup for services writing DIPS logs.

Example:
    >>> from dipsflame.integrations import setup_tracing, get_tracer
    >>> setup_tracing(app_id="42", host="web01", output_path="web01.log")
    >>> tracer = get_tracer(__name__)
"""

from dipsflame.integrations.setup import setup_tracing, get_tracer, shutdown_tracing

__all__ = [
    "setup_tracing",
    "get_tracer",
    "shutdown_tracing",
]
