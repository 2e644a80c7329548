"""Pydantic schemas for filter trees, write operations and transaction outcomes."""

from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import FilterCompileError, TransactionError

# ---------------------------------------------------------------------------
# Filter tree
# ---------------------------------------------------------------------------


class FilterLeaf(BaseModel):
    """A single field/operator/value predicate.

    `value` may be omitted for the empty/not-empty operators only; an explicit
    `None` is a real value (equality with null).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    type: Literal["filter"] = "filter"
    field_id: str = Field(..., alias="fieldId", min_length=1, description="Target field id.")
    operator: str = Field(..., description="Comparison operator, e.g. '=', 'contains', 'is empty'.")
    value: Any = Field(None, description="Operand, or a macro such as '$today' / '$userId'.")
    field_type: Optional[str] = Field(None, alias="fieldType", description="Field type, e.g. 'date'.")
    date_operator: Optional[str] = Field(None, alias="dateOperator", description="Relative date operator.")

    @property
    def has_value(self) -> bool:
        return "value" in self.model_fields_set


class FilterGroup(BaseModel):
    """Boolean AND/OR combination of leaves and nested groups."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    type: Literal["group"] = "group"
    operator: Optional[str] = Field(None, description="'and' or 'or'.")
    filters: List[Optional[Union[FilterLeaf, "FilterGroup"]]] = Field(default_factory=list)

    @field_validator("filters", mode="before")
    @classmethod
    def parse_children(cls, value: Any) -> Any:
        if not isinstance(value, (list, tuple)):
            raise FilterCompileError("Filter group 'filters' must be a list", filters=value)
        return [parse_filter_node(child) if child is not None else None for child in value]


FilterNode = Union[FilterLeaf, FilterGroup]


def parse_filter_node(data: Union[FilterNode, Mapping[str, Any]]) -> FilterNode:
    """Turn a raw filter dict into a `FilterLeaf` or `FilterGroup`.

    Nodes with `type == "group"` are groups; anything else is a leaf.

    Raises:
        FilterCompileError: If the node is not a mapping or misses required keys
    """
    if isinstance(data, (FilterLeaf, FilterGroup)):
        return data
    if not isinstance(data, Mapping):
        raise FilterCompileError("Filter node must be a mapping", node=data)
    model = FilterGroup if data.get("type") == "group" else FilterLeaf
    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        problems = "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())
        raise FilterCompileError(f"Malformed filter node: {problems}", node=dict(data)) from e


# ---------------------------------------------------------------------------
# Write operations
# ---------------------------------------------------------------------------


class Operation(BaseModel):
    """One record's set of field updates within a transaction."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    action: Literal["update"] = "update"
    model_id: str = Field(..., alias="modelId", min_length=1)
    record_id: str = Field(..., alias="recordId", min_length=1)
    updates: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("updates", mode="after")
    @classmethod
    def copy_updates(cls, value: Dict[str, Any]) -> Dict[str, Any]:
        # Detach from the caller's dict so later mutations cannot leak in
        return dict(value)

    @classmethod
    def from_any(cls, operation: Union["Operation", Mapping[str, Any]]) -> "Operation":
        if isinstance(operation, Operation):
            return operation
        if not isinstance(operation, Mapping):
            raise TransactionError("Operation must be a mapping or Operation", operation=operation)
        try:
            return cls.model_validate(dict(operation))
        except ValidationError as e:
            raise TransactionError(f"Invalid operation: {e.errors()[0]['msg']}", operation=dict(operation)) from e


class FlatOperation(BaseModel):
    """Merged updates for a single `(model_id, record_id)`, ready for storage."""

    model_config = ConfigDict(populate_by_name=True)

    model_id: str = Field(..., alias="modelId")
    record_id: str = Field(..., alias="recordId")
    updates: Dict[str, Any] = Field(default_factory=dict)

    @property
    def key(self) -> tuple:
        return (self.model_id, self.record_id)

    def to_dict(self) -> Dict[str, Any]:
        """Return the wire form `{modelId, recordId, updates}`."""
        return self.model_dump(by_alias=True)


# Name used by callers reasoning about the merge result
MergedRecordUpdate = FlatOperation


# ---------------------------------------------------------------------------
# Transaction outcome
# ---------------------------------------------------------------------------


class TransactionState(str, Enum):
    EMPTY = "empty"
    GROUPING = "grouping"
    FLATTENED = "flattened"
    DISPATCHED = "dispatched"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


class TransactionResult(BaseModel):
    """Outcome of `Transaction.process()`.

    `operations` is what actually changed. The state tells apart a committed
    no-op (nothing to do) from a rolled back failure; both carry no operations.
    """

    transaction_id: str
    state: TransactionState
    operations: List[FlatOperation] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.state == TransactionState.COMMITTED

    @property
    def rolled_back(self) -> bool:
        return self.state == TransactionState.ROLLED_BACK

    @property
    def is_noop(self) -> bool:
        return self.committed and not self.operations
