"""
dipsflame.core.importer - DIPS profiling log import pipeline.

Reads one or more logs, reconciles them into a single set of call trees on a
common time origin, and lays the trees out as a group of non-overlapping
profiles, one per lane.

Example:
    >>> from dipsflame.core.sources import FileDataSource
    >>> group = asyncio.run(import_dips_profiling(FileDataSource("app.log")))
    >>> print(len(group.profiles))
"""

from __future__ import annotations

import itertools
import logging
from typing import Iterable, List, Optional, Tuple

from dipsflame.core.clock import align_clocks
from dipsflame.core.emitter import FrameEmitter
from dipsflame.core.errors import UnrecognizedFormatError
from dipsflame.core.graph import build_call_graph
from dipsflame.core.parser import DipsLogParser, LogSource, is_dips_profiling
from dipsflame.core.profile import ProfileGroup
from dipsflame.core.reconciler import reconcile
from dipsflame.core.scheduler import LaneScheduler
from dipsflame.core.sources import ProfileDataSource, expand, read_all
from dipsflame.utils.tree import get_calls_by_app, get_max_depth

logger = logging.getLogger(__name__)

__all__ = [
    "build_profile_group",
    "import_dips_profiling",
    "import_dips_profiling_texts",
    "is_dips_profiling",
]


def build_profile_group(sources: List[LogSource]) -> Optional[ProfileGroup]:
    """Turn parsed log sources into a profile group.

    Args:
        sources: Parsed sources in input order; call start times are shifted
            and secondary sources are filtered in place

    Returns:
        ProfileGroup with one profile per lane, or None if there are no
        calls to show

    Raises:
        CallGraphError: If the parent links contain a cycle
        FrameEmissionError: If a frame cannot be emitted
    """
    sources = [source for source in sources if source.calls]
    if not sources:
        logger.info("No call records found, no profile produced")
        return None

    primary, _ = reconcile(sources)
    align_clocks(primary, sources)

    graph = build_call_graph(
        itertools.chain.from_iterable(source.calls for source in sources)
    )

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug(
            "Call graph spans %d service instances, max depth %d",
            len(get_calls_by_app(graph)),
            get_max_depth(graph),
        )

    top_calls = graph.top_level(primary.calls)
    if not top_calls:
        logger.warning("Primary source %s has no top-level calls", primary.name or "<source>")
        return None

    width = max(graph.records[i].end_time for i in top_calls)
    scheduler = LaneScheduler(width)
    emitter = FrameEmitter(graph)

    for index in top_calls:
        lane = scheduler.lane_for(graph.records[index])
        emitter.emit(index, lane, width)

    profiles = scheduler.build()
    logger.info(
        "Laid out %d top-level calls in %d lanes over %d ms",
        len(top_calls),
        len(profiles),
        width,
    )

    return ProfileGroup(name=primary.name, index_to_view=0, profiles=profiles)


async def import_dips_profiling(
    data_source: ProfileDataSource,
    parser: Optional[DipsLogParser] = None,
    require_format: bool = False,
) -> Optional[ProfileGroup]:
    """Import one log, or several logs of one distributed transaction set.

    Args:
        data_source: A single source, or a MultiFileDataSource
        parser: Parser to use (defaults to host local time)
        require_format: Reject non-empty sources that do not pass
            is_dips_profiling instead of skipping their non-call lines

    Returns:
        ProfileGroup, or None if the input holds no calls

    Raises:
        UnrecognizedFormatError: If require_format is set and a source is
            not a DIPS profiling log
        DipsFormatError: If any call line is malformed
        CallGraphError: If the parent links contain a cycle
        FrameEmissionError: If a frame cannot be emitted
    """
    parser = parser or DipsLogParser()
    data_sources = expand(data_source)
    texts = await read_all(data_sources)

    if require_format:
        for source, text in zip(data_sources, texts):
            if text and not is_dips_profiling(text):
                raise UnrecognizedFormatError(
                    "not a DIPS profiling log", source_name=source.name()
                )

    sources = [
        parser.parse_text(text, source.name())
        for source, text in zip(data_sources, texts)
    ]
    return build_profile_group(sources)


def import_dips_profiling_texts(
    texts: Iterable[Tuple[str, str]],
    parser: Optional[DipsLogParser] = None,
) -> Optional[ProfileGroup]:
    """Import logs already held in memory.

    Args:
        texts: (name, contents) pairs
        parser: Parser to use (defaults to host local time)
    """
    parser = parser or DipsLogParser()
    sources = [parser.parse_text(text, name) for name, text in texts]
    return build_profile_group(sources)
