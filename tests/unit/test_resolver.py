"""
Unit tests for the FK label resolver.
Uses a mocked data source so lookup traffic can be counted.
"""

import pytest
from unittest.mock import Mock

from app.datawarehouse.registry import LookupSource
from app.query.cache import LookupCache
from app.query.datasource import DataSourceError
from app.query.resolver import ForeignKeyResolver

SELLER = LookupSource("vendedores", "nome")
LOOKUPS = {"leads": {"vendedorResponsavel": SELLER, "funil": LookupSource("funil", "nome")}}


def _lookup_rows(table, id_field, label_field, ids=None, order_by_label=False):
    labels = {
        "vendedores": {"v1": "Ana", "v2": "Bruno"},
        "funil": {"f1": "Inbound"},
    }[table]
    return [{id_field: i, label_field: labels[i]} for i in ids if i in labels]


class TestForeignKeyResolver:
    """Test label substitution and caching"""

    @pytest.fixture
    def data_source(self):
        source = Mock()
        source.lookup_table = Mock(side_effect=_lookup_rows)
        return source

    @pytest.fixture
    def resolver(self, data_source):
        return ForeignKeyResolver(data_source, LookupCache(), LOOKUPS)

    @pytest.mark.asyncio
    async def test_substitutes_labels(self, resolver):
        rows = [
            {"lead_id": "L1", "vendedorResponsavel": "v1", "funil": "f1"},
            {"lead_id": "L2", "vendedorResponsavel": "v2", "funil": "f1"},
        ]
        resolved = await resolver.resolve(rows, "leads")
        assert resolved == [
            {"lead_id": "L1", "vendedorResponsavel": "Ana", "funil": "Inbound"},
            {"lead_id": "L2", "vendedorResponsavel": "Bruno", "funil": "Inbound"},
        ]

    @pytest.mark.asyncio
    async def test_preserves_unknown_and_null_values(self, resolver):
        rows = [
            {"vendedorResponsavel": "v-gone"},
            {"vendedorResponsavel": None},
            {"vendedorResponsavel": ""},
            {"vendedorResponsavel": 42},
        ]
        resolved = await resolver.resolve(rows, "leads")
        assert resolved == rows

    @pytest.mark.asyncio
    async def test_only_distinct_missing_ids_are_fetched(self, resolver, data_source):
        rows = [{"vendedorResponsavel": "v1"}, {"vendedorResponsavel": "v1"}, {"vendedorResponsavel": "v2"}]
        await resolver.resolve(rows, "leads")
        data_source.lookup_table.assert_called_once_with("vendedores", "id", "nome", ["v1", "v2"])

        data_source.lookup_table.reset_mock()
        await resolver.resolve([{"vendedorResponsavel": "v2"}], "leads")
        data_source.lookup_table.assert_not_called()

    @pytest.mark.asyncio
    async def test_unmapped_table_is_identity(self, resolver, data_source):
        rows = [{"vendedorResponsavel": "v1"}]
        assert await resolver.resolve(rows, "vendedores") is rows
        assert await resolver.resolve([], "leads") == []
        data_source.lookup_table.assert_not_called()

    @pytest.mark.asyncio
    async def test_columns_absent_from_rows_are_skipped(self, resolver, data_source):
        rows = [{"lead_id": "L1", "funil": "f1"}]
        assert await resolver.resolve(rows, "leads") == [{"lead_id": "L1", "funil": "Inbound"}]
        data_source.lookup_table.assert_called_once_with("funil", "id", "nome", ["f1"])

    @pytest.mark.asyncio
    async def test_resolving_twice_changes_nothing(self, resolver):
        rows = [{"vendedorResponsavel": "v1", "funil": "f1"}]
        once = await resolver.resolve(rows, "leads")
        twice = await resolver.resolve(once, "leads")
        assert twice == once

    @pytest.mark.asyncio
    async def test_lookup_failure_keeps_values(self, data_source):
        data_source.lookup_table.side_effect = DataSourceError("relation does not exist")
        resolver = ForeignKeyResolver(data_source, LookupCache(), LOOKUPS)
        rows = [{"vendedorResponsavel": "v1"}]
        assert await resolver.resolve(rows, "leads") == rows

    @pytest.mark.asyncio
    async def test_input_rows_are_not_mutated(self, resolver):
        rows = [{"vendedorResponsavel": "v1"}]
        await resolver.resolve(rows, "leads")
        assert rows == [{"vendedorResponsavel": "v1"}]

    @pytest.mark.asyncio
    async def test_default_lookups_come_from_registry(self, data_source):
        resolver = ForeignKeyResolver(data_source, LookupCache())
        rows = [{"vendedorResponsavel": "v2", "funil": "f1", "nome": "v1"}]
        assert await resolver.resolve(rows, "leads") == [
            {"vendedorResponsavel": "Bruno", "funil": "Inbound", "nome": "v1"}
        ]
        assert await resolver.resolve(rows, "nothing") == rows
