"""Query DSL core utilities.

This module defines the `Q` class used to compose filter trees in code
instead of writing the language-neutral dict form by hand. A `Q` node turns
into that dict form (the same shape the UI sends) and can then be compiled
into a MongoDB query document.

Typical usage:

- Build filters: `Q(age__gte=18) & Q(age__lte=30)`
- Full operators: `Q.leaf("name", "does not contain", "test")`
- Macros: `Q(owner="$userId")`, `Q.leaf("dueDate", "<", 7, date_operator="days from now")`
- Compile: `q.to_where(MongoWhereCompiler(acl=acl))`
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional

from ..constants import FilterOperator, GroupOperator

if TYPE_CHECKING:
    from .compilers.base import BaseWhere

_MISSING = object()


class Q:
    """Composable filter tree node.

    A `Q` instance holds leaf-level filters (e.g., `field__op=value`) or
    boolean combinations of child `Q` nodes using `and` / `or` groups.

    - Use `&` to combine with logical AND.
    - Use `|` to combine with logical OR.

    Filter keys follow the `field__lookup` convention where lookup is one
    of: `eq`, `ne`, `gt`, `gte`, `lt`, `lte`, `contains`, `not_contains`,
    `empty`. `empty=True` means "is empty", `empty=False` "is not empty".
    A key without a known lookup is an equality on the whole key.
    """

    _OP_MAP = {
        "eq": FilterOperator.EQ,
        "ne": FilterOperator.NE,
        "gt": FilterOperator.GT,
        "gte": FilterOperator.GTE,
        "lt": FilterOperator.LT,
        "lte": FilterOperator.LTE,
        "contains": FilterOperator.CONTAINS,
        "not_contains": FilterOperator.NOT_CONTAINS,
        "empty": None,  # resolved from the boolean value
    }

    def __init__(self, **filters: Any):
        """Initialize a `Q` node.

        - filters: leaf-level filters using `field__lookup=value` pairs.
        """
        self.filters: Dict[str, Any] = filters
        self.leaves: List[Dict[str, Any]] = []
        self.children: List["Q"] = []
        self.connector = GroupOperator.AND

    @classmethod
    def leaf(
        cls,
        field_id: str,
        operator: str,
        value: Any = _MISSING,
        *,
        field_type: Optional[str] = None,
        date_operator: Optional[str] = None,
    ) -> "Q":
        """Build a node from an explicit operator string.

        `value` is left out of the node when not given, so empty operators
        and `dateOperator: "today"` leaves compile without one.
        """
        node: Dict[str, Any] = {"type": "filter", "fieldId": field_id, "operator": operator}
        if value is not _MISSING:
            node["value"] = value
        if field_type is not None:
            node["fieldType"] = field_type
        if date_operator is not None:
            node["dateOperator"] = date_operator
        q = cls()
        q.leaves.append(node)
        return q

    def _combine(self, other: "Q", connector: str) -> "Q":
        if not isinstance(other, Q):
            return NotImplemented
        node = Q()
        node.connector = connector
        node.children = [self, other]
        return node

    def __and__(self, other: "Q") -> "Q":
        """Return a new node representing logical AND of two nodes."""
        return self._combine(other, GroupOperator.AND)

    def __or__(self, other: "Q") -> "Q":
        """Return a new node representing logical OR of two nodes."""
        return self._combine(other, GroupOperator.OR)

    def __str__(self) -> str:
        """Human-friendly string form of the filter tree dict."""
        return str(self.to_dict())

    def __repr__(self) -> str:
        return f"<Q: {self.to_dict()}>"

    # -------------------
    # Language-neutral dict representation
    # -------------------
    def _lookup_to_leaf(self, key: str, value: Any) -> Dict[str, Any]:
        field, operator = key, FilterOperator.EQ
        if "__" in key:
            # Split from the right to get the lookup operator
            # e.g., "info__lang__eq" -> field="info__lang", lookup="eq"
            head, lookup = key.rsplit("__", 1)
            if lookup in self._OP_MAP:
                field = head
                operator = self._OP_MAP[lookup]
                if lookup == "empty":
                    operator = FilterOperator.IS_EMPTY if value else FilterOperator.IS_NOT_EMPTY
                    return {"type": "filter", "fieldId": field.replace("__", "."), "operator": operator}
        return {"type": "filter", "fieldId": field.replace("__", "."), "operator": operator, "value": value}

    def _leaves_to_dicts(self) -> List[Dict[str, Any]]:
        nodes = [dict(node) for node in self.leaves]
        nodes.extend(self._lookup_to_leaf(key, value) for key, value in self.filters.items())
        return nodes

    def to_dict(self) -> Dict[str, Any]:
        """Return the language-neutral filter tree of this node.

        - A single predicate becomes a leaf `{type: "filter", fieldId, operator, value}`.
        - Several predicates or combined nodes become
          `{type: "group", operator: "and"|"or", filters: [...]}`.
        """
        if self.children:
            return {
                "type": "group",
                "operator": self.connector,
                "filters": [child.to_dict() for child in self.children],
            }
        nodes = self._leaves_to_dicts()
        if len(nodes) == 1:
            return nodes[0]
        return {"type": "group", "operator": GroupOperator.AND, "filters": nodes}

    # -------------------
    # Backend-specific query document
    # -------------------
    def to_where(self, compiler: Optional[BaseWhere] = None) -> Any:
        """Compile to a MongoDB query document.

        Pass a compiler carrying the caller's clock/ACL; without one, a
        compiler with the system clock and no identity context is used.
        """
        if compiler is None:
            from .compilers.mongo import MongoWhereCompiler

            compiler = MongoWhereCompiler()
        return compiler.to_where(self.to_dict())

    def to_expr(self, compiler: Optional[BaseWhere] = None) -> str:
        """Compile to a shell-like string expression for debugging."""
        if compiler is None:
            from .compilers.mongo import MongoWhereCompiler

            compiler = MongoWhereCompiler()
        return compiler.to_expr(self.to_dict())
