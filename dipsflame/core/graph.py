"""
dipsflame.core.graph - Call graph construction from flat call records.

Records are linked through their parent call ids into a forest. Links are
kept as indices into an arena of records rather than as references on the
records themselves, so one record list can be linked more than once and
parent cycles can be detected without walking object references.

Classes:
    CallGraph: Index-based forest over a list of CallRecords

Functions:
    build_call_graph: Link records by parent call id
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from dipsflame.core.errors import CallGraphError
from dipsflame.core.parser import CallRecord

logger = logging.getLogger(__name__)

_UNVISITED = 0
_ON_PATH = 1
_DONE = 2


class CallGraph:
    """Forest of call records linked by parent call id.

    Attributes:
        records: Call records in input order; positions are the node indices
        parents: Parent index of each record, None for top-level records
        children: Child indices of each record, in input order
    """

    def __init__(self, records: Sequence[CallRecord]) -> None:
        self.records: List[CallRecord] = list(records)
        self.parents: List[Optional[int]] = [None] * len(self.records)
        self.children: List[List[int]] = [[] for _ in self.records]
        self._positions: Dict[int, int] = {
            id(record): i for i, record in enumerate(self.records)
        }

    def __len__(self) -> int:
        return len(self.records)

    def index_of(self, record: CallRecord) -> int:
        """Get the node index of a record that belongs to this graph.

        Raises:
            KeyError: If the record is not part of the graph
        """
        return self._positions[id(record)]

    def parent_of(self, index: int) -> Optional[CallRecord]:
        """Get the parent record of a node, or None for top-level nodes."""
        parent = self.parents[index]
        return None if parent is None else self.records[parent]

    def children_of(self, index: int) -> List[CallRecord]:
        """Get the child records of a node in input order."""
        return [self.records[child] for child in self.children[index]]

    def is_top_level(self, index: int) -> bool:
        """Check whether a node has no resolvable parent."""
        return self.parents[index] is None

    def top_level(self, among: Optional[Iterable[CallRecord]] = None) -> List[int]:
        """Get the indices of top-level nodes in input order.

        Args:
            among: Restrict the result to these records (e.g. the calls of
                the primary source). Defaults to all records.
        """
        if among is None:
            return [i for i, parent in enumerate(self.parents) if parent is None]
        indices = (self.index_of(record) for record in among)
        return [i for i in indices if self.parents[i] is None]

    def link(self) -> None:
        """Resolve every record's parent call id and link parent and children.

        Duplicate call ids resolve to the last record carrying the id. Parent
        ids that resolve to nothing leave the record top-level.

        Raises:
            CallGraphError: If a record is its own ancestor
        """
        by_call_id: Dict[str, int] = {}
        for i, record in enumerate(self.records):
            by_call_id[record.call_id] = i

        orphans = 0
        for i, record in enumerate(self.records):
            if not record.parent_call_id:
                continue
            parent = by_call_id.get(record.parent_call_id)
            if parent is None:
                orphans += 1
                continue
            self.parents[i] = parent
            self.children[parent].append(i)

        if orphans:
            logger.debug("%d calls have unresolvable parent ids and are top-level", orphans)

        self._check_acyclic()

    def _check_acyclic(self) -> None:
        state = [_UNVISITED] * len(self.records)

        for start in range(len(self.records)):
            path: List[int] = []
            node: Optional[int] = start
            while node is not None and state[node] == _UNVISITED:
                state[node] = _ON_PATH
                path.append(node)
                node = self.parents[node]

            if node is not None and state[node] == _ON_PATH:
                call_id = self.records[node].call_id
                raise CallGraphError(
                    f"Call {call_id} is its own ancestor", call_id=call_id
                )

            for visited in path:
                state[visited] = _DONE


def build_call_graph(records: Iterable[CallRecord]) -> CallGraph:
    """Link call records into a forest.

    Args:
        records: Call records, merged across all sources

    Returns:
        The linked CallGraph

    Raises:
        CallGraphError: If the parent links contain a cycle
    """
    graph = CallGraph(list(records))
    graph.link()
    logger.info(
        "Built call graph: %d calls, %d top-level",
        len(graph),
        len(graph.top_level()),
    )
    return graph
