"""
dipsflame.core.parser - DIPS profiling log parsing module.

This module provides the record types and parser for converting DIPS
profiling logs into internal representations for tree reconstruction.

A DIPS profiling log is line oriented. Every line that starts with the
version marker ``1;`` is one logged method call, split by ``;`` into 21
columns. Lines with other version markers are skipped.

Classes:
    CallRecord: Dataclass representing a single logged method call
    LogSource: Dataclass representing one imported log (file or stream)
    DipsLogParser: Parser for DIPS profiling log text
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Dict, List, Optional

from dipsflame.core.errors import DipsFormatError

logger = logging.getLogger(__name__)

CALL_LINE_PREFIX = "1;"
COLUMN_COUNT = 21

# Column layout of a call line. Columns not listed here (version,
# environment, task id, call level, reserved, session id and the trailing
# reserved block) are carried by the format but unused.
COL_TIMESTAMP = 1
COL_APP_ID = 3
COL_HOST = 4
COL_THREAD_ID = 6
COL_ROOT_CALL_ID = 7
COL_CALL_ID = 8
COL_PARENT_CALL_ID = 9
COL_ELAPSED = 11
COL_CONTEXT = 13

_TIMESTAMP_RE = re.compile(r"\d{17}", re.ASCII)
_INTEGER_RE = re.compile(r"-?\d+", re.ASCII)
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)


@dataclass
class CallRecord:
    """Represents a single logged method call.

    Attributes:
        context: Human-readable call name, used as the frame label
        call_id: Unique identifier of this call
        parent_call_id: Identifier of the calling call ("" for top-level calls)
        root_call_id: Identifier of the outermost call of the transaction
        thread_id: Thread that made the call (informational only)
        start_time: Start of the call in milliseconds since the Unix epoch
            (shifted to the common zero point once clocks are aligned)
        elapsed: Duration of the call in milliseconds
        app_id: Application that produced the call
        host: Host that produced the call
        line_number: 1-based line number of the call in its source
    """
    context: str
    call_id: str
    parent_call_id: str
    root_call_id: str
    thread_id: int
    start_time: int
    elapsed: int
    app_id: str
    host: str
    line_number: int = 0

    def __post_init__(self) -> None:
        """Validate call data after initialization."""
        if not self.call_id:
            raise ValueError("call_id cannot be empty")
        if self.elapsed < 0:
            raise ValueError("elapsed cannot be negative")

    @property
    def end_time(self) -> int:
        """Unclamped end of the call in milliseconds."""
        return self.start_time + self.elapsed

    @property
    def app_label(self) -> str:
        """Service instance label, e.g. ``App-42@host01``."""
        return f"App-{self.app_id}@{self.host}"

    @property
    def frame_key(self) -> str:
        """Key grouping all frames of the same call site of one service."""
        return f"{self.app_label};{self.context}"


@dataclass
class LogSource:
    """Represents one imported DIPS profiling log.

    Attributes:
        name: Name of the source (usually the file name)
        calls: Call records in input order
        calls_to: Number of parent/child links from this source into each
            other source, keyed by the other source's position in the list
            being reconciled
    """
    name: str
    calls: List[CallRecord] = field(default_factory=list)
    calls_to: Dict[int, int] = field(default_factory=dict)

    @property
    def call_count(self) -> int:
        """Get the number of call records in the source."""
        return len(self.calls)


def parse_timestamp(value: str, tz: Optional[tzinfo] = None) -> int:
    """Parse a fixed-width ``YYYYMMDDHHMMSSmmm`` timestamp.

    Args:
        value: The 17 digit timestamp column
        tz: Time zone the timestamp is expressed in; None means host local time

    Returns:
        Milliseconds since the Unix epoch

    Raises:
        ValueError: If the value is not 17 digits or names an invalid date
    """
    if not _TIMESTAMP_RE.fullmatch(value):
        raise ValueError(f"invalid timestamp {value!r}: expected 17 digits")

    moment = datetime(
        int(value[0:4]),
        int(value[4:6]),
        int(value[6:8]),
        int(value[8:10]),
        int(value[10:12]),
        int(value[12:14]),
        int(value[14:17]) * 1000,
        tzinfo=tz,
    )
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return (moment - _EPOCH) // _ONE_MS


def _parse_int(value: str, column: str) -> int:
    if not _INTEGER_RE.fullmatch(value):
        raise ValueError(f"invalid {column} {value!r}: expected a base-10 integer")
    return int(value)


def split_lines(text: str) -> List[str]:
    """Split log text into lines.

    Lines are ``\\r\\n`` terminated; a bare ``\\n`` is accepted as well.
    """
    return [line[:-1] if line.endswith("\r") else line for line in text.split("\n")]


class DipsLogParser:
    """Parser for DIPS profiling logs.

    Example:
        >>> parser = DipsLogParser(tz=timezone.utc)
        >>> source = parser.parse_text(contents, name="service-a.log")
        >>> print(source.calls[0].context)
    """

    def __init__(self, tz: Optional[tzinfo] = None) -> None:
        """Initialize the parser.

        Args:
            tz: Time zone the log timestamps are written in. None interprets
                them in the host's local time zone.
        """
        self.tz = tz

    def parse_line(
        self,
        line: str,
        line_number: int = 0,
        source_name: Optional[str] = None,
    ) -> CallRecord:
        """Parse one call line into a CallRecord.

        Args:
            line: Raw line, already known to start with ``1;``
            line_number: 1-based line number for error reporting
            source_name: Source name for error reporting

        Returns:
            The parsed CallRecord

        Raises:
            DipsFormatError: If the column count or a numeric column is wrong
        """
        cols = line.split(";")
        if len(cols) != COLUMN_COUNT:
            raise DipsFormatError(
                f"expected {COLUMN_COUNT} columns, found {len(cols)}",
                line_number=line_number,
                source_name=source_name,
            )

        try:
            return CallRecord(
                context=cols[COL_CONTEXT],
                call_id=cols[COL_CALL_ID],
                parent_call_id=cols[COL_PARENT_CALL_ID],
                root_call_id=cols[COL_ROOT_CALL_ID],
                thread_id=_parse_int(cols[COL_THREAD_ID], "thread id"),
                start_time=parse_timestamp(cols[COL_TIMESTAMP], self.tz),
                elapsed=_parse_int(cols[COL_ELAPSED], "elapsed"),
                app_id=cols[COL_APP_ID],
                host=cols[COL_HOST],
                line_number=line_number,
            )
        except ValueError as e:
            raise DipsFormatError(
                str(e), line_number=line_number, source_name=source_name
            ) from e

    def parse_text(self, text: str, name: str = "") -> LogSource:
        """Parse a whole log into a LogSource.

        Args:
            text: Log contents
            name: Name of the source, used in errors and as the profile name

        Returns:
            LogSource holding the call records in input order

        Raises:
            DipsFormatError: If any call line is malformed
        """
        calls: List[CallRecord] = []
        skipped = 0

        for line_number, line in enumerate(split_lines(text), start=1):
            if not line.startswith(CALL_LINE_PREFIX):
                if line:
                    skipped += 1
                continue
            calls.append(self.parse_line(line, line_number, name or None))

        if skipped:
            logger.debug("Skipped %d non-call lines in %s", skipped, name or "<text>")
        logger.info("Parsed %d calls from %s", len(calls), name or "<text>")

        return LogSource(name=name, calls=calls)


def is_dips_profiling(contents: str) -> bool:
    """Check whether text looks like a DIPS profiling log.

    The text must be non-empty, start with ``1;``, and its first line must
    have exactly 21 columns. Both CRLF and a bare LF end the first line.

    Args:
        contents: Text to check

    Returns:
        True if the text is recognized as a DIPS profiling log
    """
    if not contents:
        return False

    if not contents.startswith(CALL_LINE_PREFIX):
        return False

    # DIPS writes \r\n, but a bare \n also ends the first line so that logs
    # copied through text-mode tools are still recognized
    first_line = split_lines(contents)[0]
    return len(first_line.split(";")) == COLUMN_COUNT
