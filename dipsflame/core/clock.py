"""
dipsflame.core.clock - Common time origin for one or more logs.

The earliest call of the primary source defines time zero. Every call of
every source is shifted by the same offset, so calls logged by other
services land on the primary timeline.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from dipsflame.core.parser import CallRecord, LogSource

logger = logging.getLogger(__name__)


def time_of_first_call(calls: Sequence[CallRecord]) -> int:
    """Get the earliest start time among ``calls``.

    Args:
        calls: Non-empty sequence of calls

    Returns:
        Minimum start time in milliseconds

    Raises:
        ValueError: If ``calls`` is empty
    """
    if not calls:
        raise ValueError("cannot find the first call of an empty call list")

    starts = np.fromiter(
        (call.start_time for call in calls), dtype=np.int64, count=len(calls)
    )
    return int(starts.min())


def translate_by_offset(sources: Sequence[LogSource], offset: int) -> None:
    """Add ``offset`` milliseconds to every call start in ``sources``."""
    for source in sources:
        for call in source.calls:
            call.start_time += offset


def align_clocks(primary: LogSource, sources: Sequence[LogSource]) -> int:
    """Shift all sources so the primary source's first call starts at 0.

    Args:
        primary: Source that defines time zero
        sources: All sources to shift, including ``primary``

    Returns:
        The offset that was applied
    """
    offset = -time_of_first_call(primary.calls)
    translate_by_offset(sources, offset)
    logger.debug("Aligned %d sources by %d ms", len(sources), offset)
    return offset
