"""
DipsLogExporter - OpenTelemetry SpanExporter that writes DIPS profiling logs.

Services instrumented with OpenTelemetry can write their finished spans in
the DIPS profiling log format, one call line per span, so their traces can
be imported by dipsflame next to logs from DIPS-native services.

Span to column mapping:
- timestamp: span start, in the exporter's time zone
- appID / host / environment: exporter configuration
- rootCallID: trace id, so all services of one transaction share it
- callID / parentCallID: span id / parent span id
- elapsed: span duration in whole milliseconds
- context: span name

Example:
    >>> from opentelemetry import trace
    >>> from opentelemetry.sdk.trace import TracerProvider
    >>> from opentelemetry.sdk.trace.export import BatchSpanProcessor
    >>> from dipsflame.exporters import DipsLogExporter
    >>>
    >>> exporter = DipsLogExporter(app_id="42", host="web01", output_path="web01.log")
    >>> provider = TracerProvider()
    >>> provider.add_span_processor(BatchSpanProcessor(exporter))
    >>> trace.set_tracer_provider(provider)
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, tzinfo
from pathlib import Path
from typing import List, Optional, Sequence, Union

from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from dipsflame.core.parser import (
    COL_APP_ID,
    COL_CALL_ID,
    COL_CONTEXT,
    COL_ELAPSED,
    COL_HOST,
    COL_PARENT_CALL_ID,
    COL_ROOT_CALL_ID,
    COL_THREAD_ID,
    COL_TIMESTAMP,
    COLUMN_COUNT,
)

logger = logging.getLogger(__name__)

COL_ENVIRONMENT = 2
COL_CALL_LEVEL = 10
THREAD_ID_ATTRIBUTE = "thread.id"

_NS_PER_SECOND = 1_000_000_000
_NS_PER_MS = 1_000_000


def format_timestamp(time_ns: int, tz: Optional[tzinfo] = None) -> str:
    """Format nanoseconds since the epoch as ``YYYYMMDDHHMMSSmmm``.

    Args:
        time_ns: Nanoseconds since the Unix epoch
        tz: Time zone to write the timestamp in; None means host local time
    """
    seconds, remainder = divmod(time_ns, _NS_PER_SECOND)
    moment = datetime.fromtimestamp(seconds, tz)
    return f"{moment:%Y%m%d%H%M%S}{remainder // _NS_PER_MS:03d}"


def _clean(value: str) -> str:
    return value.replace(";", ",").replace("\r", " ").replace("\n", " ")


class DipsLogExporter(SpanExporter):
    """OpenTelemetry SpanExporter that appends spans to a DIPS profiling log.

    Attributes:
        app_id: Application id written to every line
        host: Host name written to every line
        output_path: Log file lines are appended to
        environment: Environment column value
        tz: Time zone timestamps are written in (None for host local time)
    """

    def __init__(
        self,
        app_id: str,
        host: str,
        output_path: Union[str, Path],
        environment: str = "",
        tz: Optional[tzinfo] = None,
    ) -> None:
        """Initialize the DipsLogExporter.

        Args:
            app_id: Application id written to every line.
            host: Host name written to every line.
            output_path: Log file to append to; parent directories are created.
            environment: Environment column value.
            tz: Time zone for timestamps. Must match the importer's time zone.
        """
        self.app_id = _clean(app_id)
        self.host = _clean(host)
        self.output_path = Path(output_path)
        self.environment = _clean(environment)
        self.tz = tz

        self._lock = threading.Lock()
        self._shutdown = False

        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(
            "DipsLogExporter initialized: app=%s, host=%s, output=%s",
            self.app_id,
            self.host,
            self.output_path,
        )

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        """Append a batch of finished spans to the log.

        Args:
            spans: Sequence of completed spans to export.

        Returns:
            SpanExportResult.SUCCESS if the lines were written,
            SpanExportResult.FAILURE otherwise.
        """
        if self._shutdown:
            logger.warning("DipsLogExporter already shut down, dropping %d spans", len(spans))
            return SpanExportResult.FAILURE

        if not spans:
            return SpanExportResult.SUCCESS

        lines = [self.span_to_line(span) for span in spans]

        try:
            with self._lock:
                with open(self.output_path, "a", encoding="utf-8", newline="") as f:
                    for line in lines:
                        f.write(line + "\r\n")
        except OSError as e:
            logger.error(
                "Failed to write %d spans to %s: %s",
                len(lines),
                self.output_path,
                str(e),
                exc_info=True,
            )
            return SpanExportResult.FAILURE

        logger.debug("Exported %d spans to %s", len(lines), self.output_path)
        return SpanExportResult.SUCCESS

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        """Lines are written synchronously in export(); nothing is buffered."""
        return True

    def shutdown(self) -> None:
        """Shutdown the exporter; later export() calls are rejected."""
        self._shutdown = True
        logger.info("DipsLogExporter shutdown complete")

    def span_to_line(self, span: ReadableSpan) -> str:
        """Convert a finished span to one DIPS profiling call line.

        Args:
            span: The OpenTelemetry ReadableSpan to convert.

        Returns:
            The call line, without line terminator.
        """
        context = span.context
        start = span.start_time or 0
        end = span.end_time or start

        thread_id = 0
        if span.attributes:
            value = span.attributes.get(THREAD_ID_ATTRIBUTE)
            if isinstance(value, int):
                thread_id = value

        cols: List[str] = [""] * COLUMN_COUNT
        cols[0] = "1"
        cols[COL_TIMESTAMP] = format_timestamp(start, self.tz)
        cols[COL_ENVIRONMENT] = self.environment
        cols[COL_APP_ID] = self.app_id
        cols[COL_HOST] = self.host
        cols[COL_THREAD_ID] = str(thread_id)
        cols[COL_ROOT_CALL_ID] = format(context.trace_id, "032x")
        cols[COL_CALL_ID] = format(context.span_id, "016x")
        cols[COL_PARENT_CALL_ID] = format(span.parent.span_id, "016x") if span.parent else ""
        cols[COL_CALL_LEVEL] = "0"
        cols[COL_ELAPSED] = str(max(0, end - start) // _NS_PER_MS)
        cols[COL_CONTEXT] = _clean(span.name)
        return ";".join(cols)
