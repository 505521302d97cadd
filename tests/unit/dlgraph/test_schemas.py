"""
Unit tests for dlgraph/schemas.py and dlgraph/ontology.py
"""
import msgspec
import pytest

from dlgraph.ontology import END_NODE_KEY, START_NODE_KEY, UniquenessMode
from dlgraph.schemas import EdgeRecord, GraphOptions, NodeRecord


class TestUniquenessMode:

    def test_values(self):
        assert UniquenessMode("globally_unique") is UniquenessMode.GLOBALLY_UNIQUE
        assert UniquenessMode("locally_unique") is UniquenessMode.LOCALLY_UNIQUE

    def test_end_node_support(self):
        assert UniquenessMode.GLOBALLY_UNIQUE.supports_end_node
        assert not UniquenessMode.LOCALLY_UNIQUE.supports_end_node

    def test_sentinels(self):
        assert (START_NODE_KEY, END_NODE_KEY) == ("START", "END")


class TestGraphOptions:

    def test_default_is_global(self):
        assert GraphOptions().mode is UniquenessMode.GLOBALLY_UNIQUE

    def test_locally_unique_flag(self):
        options = GraphOptions(treat_keys_as_locally_unique=True)
        assert options.mode is UniquenessMode.LOCALLY_UNIQUE

    @pytest.mark.parametrize("mode", list(UniquenessMode))
    def test_for_mode(self, mode):
        assert GraphOptions.for_mode(mode).mode is mode

    def test_frozen(self):
        options = GraphOptions()
        with pytest.raises(AttributeError):
            options.treat_keys_as_locally_unique = True

    def test_keyword_only(self):
        with pytest.raises(TypeError):
            GraphOptions(True)

    def test_replace(self):
        options = msgspec.structs.replace(GraphOptions(), treat_keys_as_locally_unique=True)
        assert options.mode is UniquenessMode.LOCALLY_UNIQUE


class TestRecords:

    def test_node_record_maps_are_not_shared(self):
        first = NodeRecord(key="a")
        second = NodeRecord(key="b")

        first.outgoing["a->b"] = 0

        assert second.outgoing == {}
        assert first.incoming == {}

    def test_node_record_dangling(self):
        record = NodeRecord(key="a")
        assert record.is_dangling

        record.outgoing["a->b"] = 0
        assert not record.is_dangling

    def test_edge_record_defaults(self):
        record = EdgeRecord(key="a->b")

        assert record.description == ""
        assert record.payload is None

    def test_edge_record_is_mutable(self):
        record = EdgeRecord(key="a->b", description="old")
        record.description = "new"
        assert record.description == "new"
