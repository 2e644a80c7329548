"""Macro and date resolution for filter leaves.

Macros are sentinel values resolved at compile time against the runtime
context: `$today` and the relative date operators read the clock, `$userId`
reads the caller's ACL identity set.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from ..abc import AclContext, Clock
from ..constants import DateOperator, Macro
from ..exceptions import FilterCompileError, MacroResolutionError
from ..schema import FilterLeaf
from ..utils import adjust_days, coerce_date, iso_date

__all__ = (
    "DateRange",
    "resolve_date_value",
    "resolve_identity_set",
    "day_range",
    "calendar_date",
)


class DateRange(BaseModel):
    """Half-open calendar range `gte <= field < lt` on ISO date strings.

    Timestamp fields hold full ISO-8601 strings ("2024-01-05T10:30:00.000Z"),
    which sort lexicographically, so comparing them against bare dates
    selects exactly the records of those days.
    """

    model_config = ConfigDict(frozen=True)

    field: str
    gte: str
    lt: str

    def to_query(self) -> Dict[str, Any]:
        return {self.field: {"$gte": self.gte, "$lt": self.lt}}

    def to_negated_query(self) -> Dict[str, Any]:
        return {"$or": [{self.field: {"$lt": self.gte}}, {self.field: {"$gte": self.lt}}]}


def day_range(field: str, day: date) -> DateRange:
    """Return the range covering the single calendar `day`."""
    return DateRange(field=field, gte=iso_date(day), lt=iso_date(adjust_days(day, 1)))


def _day_count(leaf: FilterLeaf) -> int:
    value = leaf.value
    if isinstance(value, bool):
        raise FilterCompileError("Relative date operators need a number of days", node=leaf.model_dump(by_alias=True))
    try:
        days = int(value)
    except (TypeError, ValueError):
        raise FilterCompileError(
            "Relative date operators need a number of days", node=leaf.model_dump(by_alias=True)
        ) from None
    if isinstance(value, float) and value != days:
        raise FilterCompileError("Number of days must be a whole number", node=leaf.model_dump(by_alias=True))
    return days


def resolve_date_value(leaf: FilterLeaf, clock: Clock) -> Any:
    """Return the leaf value with date macros substituted.

    - `value == "$today"` or `dateOperator == "today"`: today's ISO date
    - `dateOperator == "days from now"`: today + value days
    - `dateOperator == "days ago"`: today - value days

    Raises:
        FilterCompileError: If the date operator is unknown or the day count is not a number
    """
    date_operator = leaf.date_operator
    if date_operator:
        if date_operator == DateOperator.TODAY:
            return iso_date(clock.today())
        if date_operator == DateOperator.DAYS_FROM_NOW:
            return iso_date(adjust_days(clock.today(), _day_count(leaf)))
        if date_operator == DateOperator.DAYS_AGO:
            return iso_date(adjust_days(clock.today(), -_day_count(leaf)))
        raise FilterCompileError(f"Unknown date operator '{date_operator}'", node=leaf.model_dump(by_alias=True))
    if leaf.value == Macro.TODAY:
        return iso_date(clock.today())
    return leaf.value


def resolve_identity_set(leaf: FilterLeaf, acl: Optional[AclContext]) -> List[str]:
    """Return the caller's identity set for a `$userId` leaf.

    Raises:
        MacroResolutionError: If no ACL context was supplied
    """
    if acl is None:
        raise MacroResolutionError("No identity context to resolve $userId", field=leaf.field_id)
    return list(acl.effective_identity_set())


def calendar_date(leaf: FilterLeaf, value: Any) -> date:
    """Read the calendar date a timestamp-field leaf compares against."""
    try:
        return coerce_date(value)
    except ValueError:
        raise FilterCompileError(
            "Timestamp field filters need a date value", node=leaf.model_dump(by_alias=True)
        ) from None
