"""
dipsflame.core.errors - Exception hierarchy for the DIPS profiling importer.

Every error raised while turning log text into a profile group derives from
DipsflameError, so callers can catch the whole family in one place while the
subclasses keep parse, structure and emission failures apart.
"""

from __future__ import annotations

from typing import Optional


class DipsflameError(Exception):
    """Base class for all dipsflame errors."""


class DipsFormatError(DipsflameError, ValueError):
    """A call line does not match the 21-column DIPS profiling layout.

    Attributes:
        line_number: 1-based line number in the source, if known
        source_name: Name of the log source the line came from, if known
    """

    def __init__(
        self,
        message: str,
        line_number: Optional[int] = None,
        source_name: Optional[str] = None,
    ) -> None:
        self.line_number = line_number
        self.source_name = source_name
        location = ""
        if source_name:
            location = source_name
        if line_number is not None:
            location = f"{location}:{line_number}" if location else f"line {line_number}"
        super().__init__(f"{location}: {message}" if location else message)


class CallGraphError(DipsflameError, ValueError):
    """The parent links of the merged call set do not form a forest."""

    def __init__(self, message: str, call_id: str) -> None:
        self.call_id = call_id
        super().__init__(message)


class ProfileBuildError(DipsflameError, ValueError):
    """A profile builder rejected an enter/leave event."""


class FrameEmissionError(DipsflameError):
    """A profile builder rejected a frame; carries the offending call id."""

    def __init__(self, message: str, call_id: str) -> None:
        self.call_id = call_id
        super().__init__(message)


class UnrecognizedFormatError(DipsFormatError):
    """Input text is not a DIPS profiling log at all."""
