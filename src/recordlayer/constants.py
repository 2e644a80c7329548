"""
Common operator and field constants shared by the compilers, sanitizer and coalescer.
"""

from pymongo import ASCENDING, DESCENDING


class FilterOperator:
    EQ = "="
    NE = "<>"
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="
    CONTAINS = "contains"
    NOT_CONTAINS = "does not contain"
    IS_EMPTY = "is empty"
    IS_NOT_EMPTY = "is not empty"


class GroupOperator:
    AND = "and"
    OR = "or"


class DateOperator:
    TODAY = "today"
    DAYS_FROM_NOW = "days from now"
    DAYS_AGO = "days ago"


class Macro:
    TODAY = "$today"
    USER_ID = "$userId"


# Inequality operators mapped to their MongoDB counterpart
RANGE_OPERATOR_MAP = {
    FilterOperator.NE: "$ne",
    FilterOperator.LT: "$lt",
    FilterOperator.GT: "$gt",
    FilterOperator.LTE: "$lte",
    FilterOperator.GTE: "$gte",
}

EMPTY_OPERATORS = {FilterOperator.IS_EMPTY, FilterOperator.IS_NOT_EMPTY}

FILTER_OPERATORS = {
    FilterOperator.EQ,
    FilterOperator.CONTAINS,
    FilterOperator.NOT_CONTAINS,
    *RANGE_OPERATOR_MAP,
    *EMPTY_OPERATORS,
}

SORT_DIRECTION_MAP = {
    "asc": ASCENDING,
    "desc": DESCENDING,
}

# Fields every static model accepts on top of its declared fields
DEFAULT_ACCEPTED_FIELDS = (
    "id",
    "accessRead",
    "accessUpdate",
    "accessDelete",
    "accessManage",
    "createdAt",
    "createdBy",
    "updatedAt",
    "updatedBy",
    "deletedAt",
    "deletedBy",
)
