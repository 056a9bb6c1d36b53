"""
dipsflame.utils.tree - Traversal helpers for call graphs.

This module provides helper functions for traversing and summarising the
index-based call forests built by dipsflame.core.graph. Nodes are addressed
by their index in ``graph.records``.

Functions:
    flatten_tree: Flatten a call subtree into a list of indices
    get_depth: Get the depth of a call in the forest
    get_ancestors: Get all ancestor calls of a given call
    get_descendants: Get all descendant calls of a given call
    get_max_depth: Get the maximum depth in a graph
    get_calls_by_app: Group calls by their service instance
"""

from __future__ import annotations

from typing import Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    from dipsflame.core.graph import CallGraph


def flatten_tree(graph: "CallGraph", index: int) -> List[int]:
    """Flatten a call subtree into a list using pre-order traversal.

    Args:
        graph: The linked call graph
        index: Index of the subtree's root call

    Returns:
        Indices of all calls in the subtree, starting with ``index``
    """
    result: List[int] = []
    stack = [index]
    while stack:
        node = stack.pop()
        result.append(node)
        stack.extend(reversed(graph.children[node]))
    return result


def get_depth(graph: "CallGraph", index: int) -> int:
    """Get the number of edges between a call and its top-level ancestor.

    Top-level calls have depth 0.
    """
    return len(get_ancestors(graph, index))


def get_ancestors(graph: "CallGraph", index: int) -> List[int]:
    """Get all ancestor calls, ordered from immediate parent to top-level call.

    Args:
        graph: The linked call graph
        index: Index of the call

    Returns:
        Ancestor indices; empty for top-level calls
    """
    ancestors: List[int] = []
    parent = graph.parents[index]
    while parent is not None:
        ancestors.append(parent)
        parent = graph.parents[parent]
    return ancestors


def get_descendants(graph: "CallGraph", index: int) -> List[int]:
    """Get all descendants of a call in depth-first order, excluding the call."""
    return flatten_tree(graph, index)[1:]


def get_max_depth(graph: "CallGraph") -> int:
    """Get the maximum depth of any call in the graph.

    Returns:
        Maximum depth, 0 for an empty graph or one with only top-level calls
    """
    max_depth = 0
    frontier = graph.top_level()
    depth = 0
    while frontier:
        max_depth = depth
        frontier = [child for parent in frontier for child in graph.children[parent]]
        depth += 1
    return max_depth


def get_calls_by_app(graph: "CallGraph") -> Dict[str, List[int]]:
    """Group call indices by their service instance label (``App-<id>@<host>``)."""
    by_app: Dict[str, List[int]] = {}
    for index, record in enumerate(graph.records):
        by_app.setdefault(record.app_label, []).append(index)
    return by_app
