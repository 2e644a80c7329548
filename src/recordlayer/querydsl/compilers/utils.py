"""Compiler utility functions.

Provides helpers for normalizing filter input and building regex predicates.
"""

import re
from typing import Any

from ...schema import FilterGroup, FilterLeaf, FilterNode, parse_filter_node


def normalize_where_input(where: Any) -> FilterNode:
    """Normalize Q object, filter model or dict to a `FilterLeaf`/`FilterGroup`.

    Args:
        where: Q object (with .to_dict() method), FilterNode or dict

    Returns:
        Typed filter tree ready for compilation

    Raises:
        TypeError: If input is neither Q object, FilterNode nor dict
        FilterCompileError: If the dict is not a valid filter node
    """
    if isinstance(where, (FilterLeaf, FilterGroup)):
        return where
    if hasattr(where, "to_dict") and callable(where.to_dict):
        # Q object - convert to the language-neutral tree first
        return parse_filter_node(where.to_dict())
    if isinstance(where, dict):
        return parse_filter_node(where)
    raise TypeError(f"where parameter must be a Q object, filter node or dict, got {type(where).__name__}")


def contains_pattern(value: Any) -> "re.Pattern[str]":
    """Case-insensitive substring pattern; pymongo encodes it as a BSON regex."""
    return re.compile(re.escape(str(value)), re.IGNORECASE)
