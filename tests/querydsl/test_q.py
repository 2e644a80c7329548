"""Tests for the Q filter builder."""

import pytest

from recordlayer.exceptions import FilterCompileError
from recordlayer.querydsl.compilers.mongo import MongoWhereCompiler
from recordlayer.querydsl.q import Q


class TestQToDict:
    """Test the language-neutral tree form."""

    def test_simple_equality(self):
        assert Q(name="test").to_dict() == {"type": "filter", "fieldId": "name", "operator": "=", "value": "test"}

    @pytest.mark.parametrize(
        "lookup,operator",
        [
            ("eq", "="),
            ("ne", "<>"),
            ("gt", ">"),
            ("gte", ">="),
            ("lt", "<"),
            ("lte", "<="),
            ("contains", "contains"),
            ("not_contains", "does not contain"),
        ],
    )
    def test_lookups(self, lookup, operator):
        node = Q(**{f"age__{lookup}": 3}).to_dict()
        assert node["fieldId"] == "age"
        assert node["operator"] == operator
        assert node["value"] == 3

    def test_empty_lookup(self):
        assert Q(email__empty=True).to_dict() == {"type": "filter", "fieldId": "email", "operator": "is empty"}
        assert Q(email__empty=False).to_dict()["operator"] == "is not empty"

    def test_nested_field_path(self):
        assert Q(info__lang__eq="en").to_dict()["fieldId"] == "info.lang"

    def test_unknown_lookup_is_equality_on_path(self):
        node = Q(info__lang="en").to_dict()
        assert node["fieldId"] == "info.lang"
        assert node["operator"] == "="

    def test_multiple_filters_are_anded(self):
        node = Q(category="tech", year__gte=2024).to_dict()
        assert node["type"] == "group"
        assert node["operator"] == "and"
        assert [f["fieldId"] for f in node["filters"]] == ["category", "year"]

    def test_and_or_combination(self):
        q = Q(category="tech") & (Q(year=2023) | Q(year=2024))
        node = q.to_dict()
        assert node["operator"] == "and"
        assert node["filters"][1]["operator"] == "or"
        assert len(node["filters"][1]["filters"]) == 2

    def test_combine_with_non_q_is_unsupported(self):
        with pytest.raises(TypeError):
            Q(a=1) & {"a": 1}

    def test_leaf_with_full_operator(self):
        node = Q.leaf("dueDate", "<", 7, date_operator="days from now").to_dict()
        assert node == {
            "type": "filter",
            "fieldId": "dueDate",
            "operator": "<",
            "value": 7,
            "dateOperator": "days from now",
        }

    def test_leaf_without_value(self):
        node = Q.leaf("dueDate", "=", date_operator="today").to_dict()
        assert "value" not in node

    def test_leaf_with_none_value(self):
        assert Q.leaf("manager", "=", None).to_dict()["value"] is None


class TestQStringRepresentations:
    def test_str(self):
        assert "name" in str(Q(name="test"))

    def test_repr(self):
        result = repr(Q(status="active") | Q(status="pending"))
        assert result.startswith("<Q:")
        assert "'or'" in result


class TestQCompile:
    def test_to_where_default_compiler(self):
        assert (Q(age__gte=18) & Q(age__lte=30)).to_where() == {
            "$and": [{"age": {"$gte": 18}}, {"age": {"$lte": 30}}]
        }

    def test_to_where_with_compiler(self, compiler):
        assert Q(owner="$userId").to_where(compiler) == {"owner": {"$in": ["john@example.com", "team-a", "*"]}}

    def test_to_where_full_operator(self, compiler):
        assert Q.leaf("dueDate", "=", "$today").to_where(compiler) == {"dueDate": "2024-01-05"}

    def test_to_expr(self):
        assert Q(name__contains="jo").to_expr(MongoWhereCompiler()) == "{'name': /jo/i}"

    def test_empty_q_does_not_compile(self):
        with pytest.raises(FilterCompileError):
            Q().to_where()
