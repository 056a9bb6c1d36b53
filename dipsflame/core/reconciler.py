"""
dipsflame.core.reconciler - Primary source selection for multi-log imports.

When one distributed transaction is logged by several services, every
service writes its own log. Only the caller-side log (the primary source)
drives the timelines; the other logs contribute nested frames only.

The primary source is picked with a pairwise dominance heuristic over the
number of parent/child links that cross from one source into another. This
assumes a single dominant caller; it is not a topological sort.

Functions:
    tally_cross_source_calls: Count parent/child links between sources
    guess_primary_source: Pick the caller-side source
    filter_by_root_ids: Keep only calls belonging to given transactions
    reconcile: Pick the primary source and filter the others against it
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set, Tuple

from dipsflame.core.parser import LogSource

logger = logging.getLogger(__name__)


def tally_cross_source_calls(sources: Sequence[LogSource]) -> None:
    """Fill in ``calls_to`` on every source.

    For each call whose parent call id resolves to a call in a different
    source, the parent's source gets one more call into the child's source.

    Args:
        sources: Sources to tally; ``calls_to`` is reset on each
    """
    owner: Dict[str, int] = {}
    for position, source in enumerate(sources):
        source.calls_to = {}
        for call in source.calls:
            owner[call.call_id] = position

    for position, source in enumerate(sources):
        for call in source.calls:
            parent_position = owner.get(call.parent_call_id)
            if parent_position is None or parent_position == position:
                continue
            calls_to = sources[parent_position].calls_to
            calls_to[position] = calls_to.get(position, 0) + 1


def guess_primary_source(sources: Sequence[LogSource]) -> int:
    """Pick the source that calls into the others.

    Starting with the first source as candidate, each source replaces the
    candidate if it calls into the candidate strictly more often than the
    candidate calls into it. Ties keep the current candidate.

    Args:
        sources: Non-empty list of sources

    Returns:
        Position of the primary source in ``sources``

    Raises:
        ValueError: If ``sources`` is empty
    """
    if not sources:
        raise ValueError("cannot pick a primary source from an empty list")

    if len(sources) == 1:
        return 0

    tally_cross_source_calls(sources)

    primary = 0
    for position, source in enumerate(sources):
        calls_into_primary = source.calls_to.get(primary, 0)
        calls_from_primary = sources[primary].calls_to.get(position, 0)
        if calls_into_primary > calls_from_primary:
            primary = position

    return primary


def filter_by_root_ids(sources: Sequence[LogSource], root_ids: Set[str]) -> None:
    """Drop every call whose root call id is not in ``root_ids``.

    Args:
        sources: Sources to filter in place
        root_ids: Root call ids to keep
    """
    for source in sources:
        before = len(source.calls)
        source.calls = [call for call in source.calls if call.root_call_id in root_ids]
        dropped = before - len(source.calls)
        if dropped:
            logger.debug(
                "Dropped %d calls from %s outside the primary transactions",
                dropped,
                source.name or "<source>",
            )


def reconcile(sources: Sequence[LogSource]) -> Tuple[LogSource, List[LogSource]]:
    """Pick the primary source and filter the others to its transactions.

    Args:
        sources: Non-empty list of sources

    Returns:
        Tuple of (primary source, secondary sources in input order)
    """
    position = guess_primary_source(sources)
    primary = sources[position]
    secondaries = [source for i, source in enumerate(sources) if i != position]

    if secondaries:
        logger.info(
            "Primary source: %s (%d calls), %d secondary sources",
            primary.name or "<source>",
            primary.call_count,
            len(secondaries),
        )
        root_ids = {call.root_call_id for call in primary.calls}
        filter_by_root_ids(secondaries, root_ids)

    return primary, secondaries
