"""
dipsflame.utils - Utility functions for call graph traversal.

This subpackage contains utility functions:
- tree: Functions for traversing and summarising call forests
"""

from dipsflame.utils.tree import (
    flatten_tree,
    get_depth,
    get_ancestors,
    get_descendants,
    get_max_depth,
    get_calls_by_app,
)

__all__ = [
    "flatten_tree",
    "get_depth",
    "get_ancestors",
    "get_descendants",
    "get_max_depth",
    "get_calls_by_app",
]
