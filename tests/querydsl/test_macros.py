"""Tests for macro and date resolution helpers."""

from datetime import date

import pytest

from recordlayer.exceptions import FilterCompileError, MacroResolutionError
from recordlayer.querydsl.macros import (
    DateRange,
    calendar_date,
    day_range,
    resolve_date_value,
    resolve_identity_set,
)
from recordlayer.schema import FilterLeaf


def make_leaf(**kwargs):
    return FilterLeaf(field_id=kwargs.pop("field_id", "dueDate"), operator=kwargs.pop("operator", "="), **kwargs)


class TestDateRange:
    def test_day_range_crosses_month_and_year(self):
        assert day_range("createdAt", date(2023, 12, 31)) == DateRange(
            field="createdAt", gte="2023-12-31", lt="2024-01-01"
        )

    def test_leap_day(self):
        assert day_range("createdAt", date(2024, 2, 28)).lt == "2024-02-29"

    def test_queries(self):
        rng = day_range("createdAt", date(2024, 1, 5))
        assert rng.to_query() == {"createdAt": {"$gte": "2024-01-05", "$lt": "2024-01-06"}}
        assert rng.to_negated_query() == {
            "$or": [{"createdAt": {"$lt": "2024-01-05"}}, {"createdAt": {"$gte": "2024-01-06"}}]
        }


class TestResolveDateValue:
    def test_plain_value_is_untouched(self, clock):
        assert resolve_date_value(make_leaf(value="2020-01-01"), clock) == "2020-01-01"

    def test_today_macro(self, clock):
        assert resolve_date_value(make_leaf(value="$today"), clock) == "2024-01-05"

    def test_today_operator_ignores_value(self, clock):
        assert resolve_date_value(make_leaf(value="whatever", date_operator="today"), clock) == "2024-01-05"

    def test_days_from_now_accepts_whole_floats(self, clock):
        assert resolve_date_value(make_leaf(value=2.0, date_operator="days from now"), clock) == "2024-01-07"

    @pytest.mark.parametrize("value", [1.5, True, None, "two"])
    def test_days_rejects_non_integers(self, clock, value):
        with pytest.raises(FilterCompileError):
            resolve_date_value(make_leaf(value=value, date_operator="days ago"), clock)


class TestResolveIdentitySet:
    def test_returns_identity_set(self, acl):
        assert resolve_identity_set(make_leaf(field_id="owner", value="$userId"), acl) == [
            "john@example.com",
            "team-a",
            "*",
        ]

    def test_requires_acl(self):
        with pytest.raises(MacroResolutionError) as exc:
            resolve_identity_set(make_leaf(field_id="owner", value="$userId"), None)
        assert exc.value.details["field"] == "owner"


class TestCalendarDate:
    def test_reads_date_portion(self):
        assert calendar_date(make_leaf(), "2024-01-05T23:00:00.000Z") == date(2024, 1, 5)

    def test_rejects_garbage(self):
        with pytest.raises(FilterCompileError):
            calendar_date(make_leaf(), 12)
