"""
Unit tests for the QueryBuilder.
Tests projection, predicate order, mandatory filters, ordering and paging.
"""

import pytest

from app.query.builder import QueryBuilder
from app.query.schemas import (
    Filter,
    JoinConfig,
    NestedProjection,
    Ordering,
    OrderDirection,
    Predicate,
    QueryState,
    RowRange,
)


class TestProjection:
    """Test select list construction"""

    @pytest.fixture
    def builder(self):
        return QueryBuilder(mandatory_filters={})

    def test_no_columns_selects_everything(self, builder):
        projection = builder.build_projection(QueryState(table="vendedores"))
        assert projection.all_columns
        assert projection.render() == "*"

    def test_selected_columns_keep_their_order(self, builder):
        state = QueryState(table="vendedores", selected_columns=["nome", "id"])
        assert builder.build_projection(state).render() == "nome,id"

    def test_join_adds_nested_block(self, builder):
        state = QueryState(
            table="leads",
            joins=[
                JoinConfig(
                    from_table="leads",
                    from_column="vendedorResponsavel",
                    to_table="vendedores",
                    selected_columns=["nome"],
                )
            ],
        )
        projection = builder.build_projection(state)
        assert projection.nested == (
            NestedProjection("vendedores", "vendedorResponsavel", ("nome",)),
        )
        assert projection.render() == "*,vendedores!vendedorResponsavel(nome)"

    def test_join_without_columns_embeds_all(self, builder):
        state = QueryState(
            table="etapa",
            selected_columns=["nome"],
            joins=[JoinConfig(from_table="etapa", from_column="funil", to_table="funil")],
        )
        assert builder.build_projection(state).render() == "nome,funil!funil(*)"


class TestPredicates:
    """Test predicate order and mandatory filters"""

    def test_mandatory_filter_comes_first(self):
        builder = QueryBuilder()
        state = QueryState(
            table="leads",
            filters=[Filter(column="nome", operator="ilike", value="acme")],
        )
        assert builder.build_predicates(state) == (
            Predicate("novo_crm", "eq", True),
            Predicate("nome", "ilike", "%acme%"),
        )

    def test_mandatory_filter_only_on_its_table(self):
        builder = QueryBuilder()
        assert builder.build_predicates(QueryState(table="vendedores")) == ()

    def test_custom_mandatory_filters(self):
        builder = QueryBuilder(mandatory_filters={"vendedores": [("ativo", True)]})
        assert builder.build_predicates(QueryState(table="vendedores")) == (
            Predicate("ativo", "eq", True),
        )
        assert builder.build_predicates(QueryState(table="leads")) == ()

    def test_incomplete_filters_are_skipped(self):
        builder = QueryBuilder(mandatory_filters={})
        state = QueryState(
            table="vendedores",
            filters=[
                Filter(column="nome", operator="eq", value="Ana"),
                Filter(column="email"),
                Filter(column="", operator="is_null"),
                Filter(column="email", operator="is_not_null"),
            ],
        )
        assert builder.build_predicates(state) == (
            Predicate("nome", "eq", "Ana"),
            Predicate("email", "not_is", None),
        )

    def test_two_filters_on_one_column(self):
        builder = QueryBuilder(mandatory_filters={})
        state = QueryState(
            table="leads",
            filters=[
                Filter(column="valor", operator="gte", value="100"),
                Filter(column="valor", operator="lt", value="1000"),
            ],
        )
        assert [p.operator for p in builder.build_predicates(state)] == ["gte", "lt"]


class TestOrderingAndRange:
    """Test ordering and row range"""

    def test_no_order(self):
        assert QueryBuilder().build_ordering(QueryState(table="leads")) is None

    def test_descending_order(self):
        state = QueryState(table="leads", order_by="valor", order_direction=OrderDirection.DESC)
        assert QueryBuilder().build_ordering(state) == Ordering("valor", ascending=False)

    @pytest.mark.parametrize(
        "page,size,expected",
        [(0, 50, RowRange(0, 49)), (2, 50, RowRange(100, 149)), (3, 10, RowRange(30, 39))],
    )
    def test_page_range(self, page, size, expected):
        assert QueryBuilder.build_range(page, size) == expected
        assert expected.limit == size

    def test_interactive_request_counts(self):
        request = QueryBuilder().build_request(QueryState(table="leads", page=1, page_size=25))
        assert request.count_exact
        assert request.row_range == RowRange(25, 49)

    def test_export_request_ignores_page(self):
        state = QueryState(table="leads", page=7, page_size=25, order_by="nome")
        request = QueryBuilder().build_export_request(state, offset=500, limit=250)
        assert not request.count_exact
        assert request.row_range == RowRange(500, 749)
        assert request.ordering == Ordering("nome", ascending=True)
        assert request.predicates[0] == Predicate("novo_crm", "eq", True)

    def test_preview(self):
        state = QueryState(
            table="leads",
            selected_columns=["nome"],
            filters=[Filter(column="nome", operator="in", value="a,b")],
            order_by="nome",
        )
        preview = QueryBuilder().build_preview(state)
        assert preview == {
            "table": "leads",
            "select": "nome",
            "predicates": [
                {"column": "novo_crm", "operator": "eq", "value": True},
                {"column": "nome", "operator": "in", "value": ["a", "b"]},
            ],
            "order": {"column": "nome", "ascending": True},
            "range": [0, 49],
        }


class TestQueryState:
    """Test query state transitions"""

    def test_defaults(self):
        state = QueryState()
        assert state.table == ""
        assert state.page == 0
        assert state.page_size == 50
        assert state.order_direction == OrderDirection.ASC

    def test_switching_table_resets_state(self):
        state = QueryState(
            table="leads",
            selected_columns=["nome"],
            filters=[Filter(column="nome", operator="eq", value="x")],
            order_by="nome",
            page=3,
            page_size=100,
        )
        switched = state.for_table("vendedores")
        assert switched.table == "vendedores"
        assert switched.selected_columns == []
        assert switched.filters == []
        assert switched.order_by == ""
        assert switched.page == 0
        assert switched.page_size == 100

    def test_camel_case_payload(self):
        state = QueryState.model_validate(
            {
                "table": "leads",
                "selectedColumns": ["nome"],
                "orderBy": "nome",
                "orderDirection": "desc",
                "pageSize": 10,
                "filters": [{"id": "f1", "column": "nome", "operator": "", "value": None}],
            }
        )
        assert state.selected_columns == ["nome"]
        assert state.page_size == 10
        assert state.filters[0].operator is None
        assert state.filters[0].value == ""

    def test_filters_get_distinct_ids(self):
        first, second = Filter(column="a"), Filter(column="a")
        assert first.id != second.id
