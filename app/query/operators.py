# app/query/operators.py
"""Filter operator catalog: which operators a column type allows and what each one compiles to."""

from typing import Dict, List, Optional

from .schemas import Filter, FilterOperator, Predicate

OPERATOR_LABELS: Dict[FilterOperator, str] = {
    FilterOperator.EQ: "=",
    FilterOperator.NEQ: "!=",
    FilterOperator.GT: ">",
    FilterOperator.GTE: ">=",
    FilterOperator.LT: "<",
    FilterOperator.LTE: "<=",
    FilterOperator.LIKE: "Contains",
    FilterOperator.ILIKE: "Contains (ignore case)",
    FilterOperator.IS_NULL: "Is empty",
    FilterOperator.IS_NOT_NULL: "Is not empty",
    FilterOperator.IN: "In list",
}

_NULL_TESTS = (FilterOperator.IS_NULL, FilterOperator.IS_NOT_NULL)
_ORDERED = [
    FilterOperator.EQ,
    FilterOperator.NEQ,
    FilterOperator.GT,
    FilterOperator.GTE,
    FilterOperator.LT,
    FilterOperator.LTE,
    *_NULL_TESTS,
]

OPERATORS_BY_TYPE: Dict[str, List[FilterOperator]] = {
    "text": [
        FilterOperator.EQ,
        FilterOperator.NEQ,
        FilterOperator.LIKE,
        FilterOperator.ILIKE,
        *_NULL_TESTS,
        FilterOperator.IN,
    ],
    "number": list(_ORDERED),
    "date": list(_ORDERED),
    "boolean": [FilterOperator.EQ, *_NULL_TESTS],
    "uuid": [FilterOperator.EQ, FilterOperator.NEQ, *_NULL_TESTS],
    "default": [
        FilterOperator.EQ,
        FilterOperator.NEQ,
        FilterOperator.LIKE,
        FilterOperator.ILIKE,
        *_NULL_TESTS,
    ],
}

# Operators that map one-to-one onto a binary comparison
_COMPARISONS = {
    FilterOperator.EQ: "eq",
    FilterOperator.NEQ: "neq",
    FilterOperator.GT: "gt",
    FilterOperator.GTE: "gte",
    FilterOperator.LT: "lt",
    FilterOperator.LTE: "lte",
}


def get_type_category(data_type: str) -> str:
    """Map a declared column type (e.g. `timestamp with time zone`) to an operator category."""
    data_type = (data_type or "").lower()
    if any(token in data_type for token in ("int", "numeric", "float", "decimal", "double", "real")):
        return "number"
    if "timestamp" in data_type or "date" in data_type:
        return "date"
    if data_type in ("boolean", "bool"):
        return "boolean"
    if data_type == "uuid":
        return "uuid"
    if data_type == "text" or "char" in data_type:
        return "text"
    return "default"


def get_operators_for_type(data_type: str) -> List[FilterOperator]:
    """Get the legal operators for a column type."""
    return OPERATORS_BY_TYPE[get_type_category(data_type)]


def operator_requires_value(operator: FilterOperator) -> bool:
    """Null tests take no value."""
    return operator not in _NULL_TESTS


def parse_in_list(value: str) -> tuple:
    """Split a comma separated list, trimming each member.

    Empty members are kept: "a,b," gives ("a", "b", "").
    """
    return tuple(token.strip() for token in value.split(","))


def to_predicate(filter_: Filter) -> Optional[Predicate]:
    """Compile one filter. Filters without a column or operator compile to None."""
    if not filter_.column or not filter_.operator:
        return None

    operator = filter_.operator
    if operator in _COMPARISONS:
        return Predicate(filter_.column, _COMPARISONS[operator], filter_.value)
    if operator in (FilterOperator.LIKE, FilterOperator.ILIKE):
        return Predicate(filter_.column, operator.value, f"%{filter_.value}%")
    if operator == FilterOperator.IS_NULL:
        return Predicate(filter_.column, "is", None)
    if operator == FilterOperator.IS_NOT_NULL:
        return Predicate(filter_.column, "not_is", None)
    return Predicate(filter_.column, "in", parse_in_list(filter_.value))
