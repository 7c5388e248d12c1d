"""
Unit tests for the filter operator catalog.
Tests type categories, allowed operators per type, and filter compilation.
"""

import pytest

from app.query.operators import (
    OPERATOR_LABELS,
    get_operators_for_type,
    get_type_category,
    operator_requires_value,
    parse_in_list,
    to_predicate,
)
from app.query.schemas import Filter, FilterOperator, Predicate


class TestTypeCategories:
    """Test mapping of declared column types to operator categories"""

    @pytest.mark.parametrize(
        "data_type,category",
        [
            ("integer", "number"),
            ("bigint", "number"),
            ("numeric", "number"),
            ("double precision", "number"),
            ("real", "number"),
            ("timestamp with time zone", "date"),
            ("date", "date"),
            ("boolean", "boolean"),
            ("bool", "boolean"),
            ("uuid", "uuid"),
            ("text", "text"),
            ("character varying", "text"),
            ("varchar(80)", "text"),
            ("jsonb", "default"),
            ("", "default"),
        ],
    )
    def test_type_category(self, data_type, category):
        assert get_type_category(data_type) == category

    def test_category_is_case_insensitive(self):
        assert get_type_category("TIMESTAMP") == "date"
        assert get_type_category("BOOLEAN") == "boolean"

    def test_text_operators(self):
        operators = get_operators_for_type("text")
        assert operators == [
            FilterOperator.EQ,
            FilterOperator.NEQ,
            FilterOperator.LIKE,
            FilterOperator.ILIKE,
            FilterOperator.IS_NULL,
            FilterOperator.IS_NOT_NULL,
            FilterOperator.IN,
        ]

    def test_number_and_date_share_ordered_operators(self):
        assert get_operators_for_type("integer") == get_operators_for_type("timestamp")
        assert FilterOperator.GT in get_operators_for_type("numeric")
        assert FilterOperator.LIKE not in get_operators_for_type("numeric")

    def test_boolean_operators(self):
        assert get_operators_for_type("boolean") == [
            FilterOperator.EQ,
            FilterOperator.IS_NULL,
            FilterOperator.IS_NOT_NULL,
        ]

    def test_uuid_operators(self):
        assert get_operators_for_type("uuid") == [
            FilterOperator.EQ,
            FilterOperator.NEQ,
            FilterOperator.IS_NULL,
            FilterOperator.IS_NOT_NULL,
        ]

    def test_unknown_type_has_no_in_operator(self):
        operators = get_operators_for_type("jsonb")
        assert FilterOperator.IN not in operators
        assert FilterOperator.ILIKE in operators

    def test_every_operator_has_a_label(self):
        assert set(OPERATOR_LABELS) == set(FilterOperator)


class TestFilterCompilation:
    """Test compilation of single filters into predicates"""

    def test_null_tests_take_no_value(self):
        assert not operator_requires_value(FilterOperator.IS_NULL)
        assert not operator_requires_value(FilterOperator.IS_NOT_NULL)
        assert operator_requires_value(FilterOperator.EQ)

    @pytest.mark.parametrize("operator", ["eq", "neq", "gt", "gte", "lt", "lte"])
    def test_comparisons_pass_value_through(self, operator):
        predicate = to_predicate(Filter(column="valor", operator=operator, value="100"))
        assert predicate == Predicate("valor", operator, "100")

    def test_like_wraps_value_in_wildcards(self):
        assert to_predicate(Filter(column="nome", operator="like", value="acme")) == Predicate(
            "nome", "like", "%acme%"
        )
        assert to_predicate(Filter(column="nome", operator="ilike", value="")) == Predicate(
            "nome", "ilike", "%%"
        )

    def test_null_tests_ignore_value(self):
        assert to_predicate(Filter(column="email", operator="is_null", value="ignored")) == Predicate(
            "email", "is", None
        )
        assert to_predicate(Filter(column="email", operator="is_not_null")) == Predicate(
            "email", "not_is", None
        )

    def test_in_list_is_split_and_trimmed(self):
        predicate = to_predicate(Filter(column="nome", operator="in", value=" a , b,c "))
        assert predicate == Predicate("nome", "in", ("a", "b", "c"))

    def test_in_list_keeps_empty_members(self):
        assert parse_in_list("a,b,") == ("a", "b", "")
        assert parse_in_list("") == ("",)

    def test_incomplete_filter_compiles_to_nothing(self):
        assert to_predicate(Filter(column="", operator="eq", value="x")) is None
        assert to_predicate(Filter(column="nome", operator="", value="x")) is None
        assert to_predicate(Filter(column="nome")) is None
