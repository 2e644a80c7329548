"""MongoDB where compiler.

Transforms language-neutral filter trees (leaves and AND/OR groups) into
MongoDB query documents that drivers can pass to `find()` untouched.

Leaf operators:
- Comparison: =, <>, <, >, <=, >=  -> equality, $ne, $lt, $gt, $lte, $gte
- Text: contains / does not contain -> case-insensitive regex / $not regex
- Emptiness: is empty / is not empty -> "" or [] or missing / none of those

Macros:
- `$today`, dateOperator `today` / `days from now` / `days ago` -> ISO dates
- `$userId` -> $in / $nin against the caller's ACL identity set

Timestamp fields (createdAt, updatedAt) hold full ISO-8601 timestamps but are
filtered by calendar date: `=` and `<>` compile to a half-open day range.
"""

import re
from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

from ...abc import AclContext, Clock
from ...constants import (
    EMPTY_OPERATORS,
    FILTER_OPERATORS,
    RANGE_OPERATOR_MAP,
    FilterOperator,
    GroupOperator,
    Macro,
)
from ...context import CompileContext, SystemClock
from ...exceptions import FilterCompileError
from ...schema import FilterGroup, FilterLeaf, FilterNode, parse_filter_node
from ...settings import settings
from ...types import QueryDoc
from ..macros import calendar_date, day_range, resolve_date_value, resolve_identity_set
from .base import BaseWhere
from .utils import contains_pattern, normalize_where_input

__all__ = (
    "MongoWhereCompiler",
    "compile_filter",
    "compile_leaf",
    "compile_group",
)

_GROUP_OPERATORS = {GroupOperator.AND, GroupOperator.OR}


def _describe(node: Any) -> Any:
    if isinstance(node, (FilterLeaf, FilterGroup)):
        return node.model_dump(by_alias=True)
    return node


def _empty_predicate(field: str, operator: str) -> QueryDoc:
    if operator == FilterOperator.IS_EMPTY:
        return {"$or": [{field: ""}, {field: []}, {field: {"$exists": False}}]}
    return {"$and": [{field: {"$ne": ""}}, {field: {"$ne": []}}, {field: {"$exists": True}}]}


def _leaf_predicate(leaf: FilterLeaf, ctx: CompileContext, timestamp_fields: FrozenSet[str]) -> QueryDoc:
    field = leaf.field_id
    operator = leaf.operator

    if operator not in FILTER_OPERATORS:
        raise FilterCompileError(f"Unknown filter operator '{operator}'", node=_describe(leaf))

    if operator in EMPTY_OPERATORS:
        return _empty_predicate(field, operator)

    if not leaf.has_value and not leaf.date_operator:
        raise FilterCompileError(f"Operator '{operator}' requires a value", node=_describe(leaf))

    value = resolve_date_value(leaf, ctx.clock)

    if (
        field in timestamp_fields
        and leaf.field_type in (None, "date")
        and operator in (FilterOperator.EQ, FilterOperator.NE)
        and value is not None
    ):
        day = day_range(field, calendar_date(leaf, value))
        return day.to_query() if operator == FilterOperator.EQ else day.to_negated_query()

    if isinstance(value, str) and value == Macro.USER_ID:
        ids = resolve_identity_set(leaf, ctx.acl)
        if operator in (FilterOperator.EQ, FilterOperator.CONTAINS):
            return {field: {"$in": ids}}
        if operator in (FilterOperator.NE, FilterOperator.NOT_CONTAINS):
            return {field: {"$nin": ids}}
        raise FilterCompileError(f"Operator '{operator}' cannot be used with $userId", node=_describe(leaf))

    if operator == FilterOperator.EQ:
        # A mapping operand would be read as operators by MongoDB
        if isinstance(value, dict):
            return {field: {"$eq": value}}
        return {field: value}

    if operator in RANGE_OPERATOR_MAP:
        return {field: {RANGE_OPERATOR_MAP[operator]: value}}

    if value is None:
        raise FilterCompileError(f"Operator '{operator}' requires a value", node=_describe(leaf))
    if operator == FilterOperator.CONTAINS:
        return {field: contains_pattern(value)}
    return {field: {"$not": contains_pattern(value)}}


def _compile_node(node: FilterNode, ctx: CompileContext, timestamp_fields: FrozenSet[str]) -> QueryDoc:
    """Recursively compile a filter tree. Each node is visited exactly once."""
    if isinstance(node, FilterGroup):
        operator = (node.operator or "").strip().lower()
        if operator not in _GROUP_OPERATORS:
            raise FilterCompileError(
                f"Unknown filter group operator '{node.operator}'. Supported: and, or", node=_describe(node)
            )
        children = [child for child in node.filters if child is not None]
        if not children:
            raise FilterCompileError("Filter group has no filters", node=_describe(node))
        return {f"${operator}": [_compile_node(child, ctx, timestamp_fields) for child in children]}
    if isinstance(node, FilterLeaf):
        return _leaf_predicate(node, ctx, timestamp_fields)
    raise FilterCompileError("Unsupported filter node", node=node)


def _timestamp_fields(fields: Optional[Iterable[str]]) -> FrozenSet[str]:
    return frozenset(settings.TIMESTAMP_FIELDS if fields is None else fields)


def compile_filter(
    tree: Any, ctx: Optional[CompileContext] = None, timestamp_fields: Optional[Iterable[str]] = None
) -> QueryDoc:
    """Compile a filter tree (Q, FilterNode or raw dict) into a MongoDB query document.

    Raises:
        FilterCompileError: On malformed nodes or unknown operators
        MacroResolutionError: If `$userId` is used without an ACL context
    """
    return _compile_node(normalize_where_input(tree), ctx or CompileContext(), _timestamp_fields(timestamp_fields))


def compile_leaf(
    leaf: Union[FilterLeaf, Dict[str, Any]],
    ctx: Optional[CompileContext] = None,
    timestamp_fields: Optional[Iterable[str]] = None,
) -> QueryDoc:
    """Compile a single leaf predicate."""
    node = parse_filter_node(leaf)
    if not isinstance(node, FilterLeaf):
        raise FilterCompileError("Expected a filter leaf, got a group", node=_describe(node))
    return _leaf_predicate(node, ctx or CompileContext(), _timestamp_fields(timestamp_fields))


def compile_group(
    node: Union[FilterNode, Dict[str, Any]],
    ctx: Optional[CompileContext] = None,
    timestamp_fields: Optional[Iterable[str]] = None,
) -> QueryDoc:
    """Compile a group (or, for convenience, a bare leaf) recursively."""
    return _compile_node(parse_filter_node(node), ctx or CompileContext(), _timestamp_fields(timestamp_fields))


def _format_expr(value: Any) -> str:
    if isinstance(value, re.Pattern):
        return f"/{value.pattern}/{'i' if value.flags & re.IGNORECASE else ''}"
    if isinstance(value, dict):
        return "{" + ", ".join(f"{k!r}: {_format_expr(v)}" for k, v in value.items()) + "}"
    if isinstance(value, list):
        return "[" + ", ".join(_format_expr(v) for v in value) + "]"
    return repr(value)


class MongoWhereCompiler(BaseWhere):
    """Compile filter trees into MongoDB query documents.

    The compiler is a plain value built from its collaborators: a `Clock`
    for date macros and an optional `AclContext` for `$userId`. It keeps no
    other state, so one instance may serve concurrent callers.

    Examples:
        >>> compiler = MongoWhereCompiler()
        >>> compiler.to_where({"fieldId": "age", "operator": ">", "value": 30})
        {'age': {'$gt': 30}}
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        acl: Optional[AclContext] = None,
        timestamp_fields: Optional[Iterable[str]] = None,
    ) -> None:
        self.context = CompileContext(clock=clock or SystemClock(), acl=acl)
        self.timestamp_fields = _timestamp_fields(timestamp_fields)

    @property
    def clock(self) -> Clock:
        return self.context.clock

    @property
    def acl(self) -> Optional[AclContext]:
        return self.context.acl

    def with_acl(self, acl: Optional[AclContext]) -> "MongoWhereCompiler":
        """Return a compiler sharing this clock but resolving `$userId` for `acl`."""
        return MongoWhereCompiler(clock=self.clock, acl=acl, timestamp_fields=self.timestamp_fields)

    def compile_filter(self, tree: Any) -> QueryDoc:
        return compile_filter(tree, self.context, self.timestamp_fields)

    def compile_leaf(self, leaf: Union[FilterLeaf, Dict[str, Any]]) -> QueryDoc:
        return compile_leaf(leaf, self.context, self.timestamp_fields)

    def compile_group(self, node: Union[FilterNode, Dict[str, Any]]) -> QueryDoc:
        return compile_group(node, self.context, self.timestamp_fields)

    def to_where(self, node: Any) -> QueryDoc:
        """Convert Q object, filter node or raw dict to a MongoDB query document.

        Args:
            node: Q object, FilterLeaf/FilterGroup or language-neutral dict

        Returns:
            MongoDB filter document
        """
        return self.compile_filter(node)

    def to_expr(self, node: Any) -> str:
        """Render the compiled query in shell-like notation for debugging."""
        return _format_expr(self.compile_filter(node))

