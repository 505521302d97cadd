"""
Unit tests for LOCALLY_UNIQUE mode in dlgraph/graph_db.py

In this mode a key only names a node among the children of one parent:
- The same key under different parents gives different nodes
- The same key under the same parent gives the same node
- There is no END sentinel; "END" is an ordinary child key
- Bare-key operations are rejected because a key is ambiguous
"""
import pytest

from dlgraph.graph_db import (
    DoubleLinkedGraph,
    GraphLockedError,
    ModeViolationError,
)
from dlgraph.ontology import END_NODE_KEY, UniquenessMode
from dlgraph.schemas import GraphOptions


def test_same_key_under_same_parent_is_shared(local_graph):
    """
    Validate sibling-scoped uniqueness.

    Verifies:
    - Inserting "a" twice after START returns one node
    - Inserting "b" twice after that node returns one node
    """
    first = local_graph.insert_from_start("a")
    again = local_graph.insert_from_start("a")
    assert first == again

    assert first.insert("b") == again.insert("b")
    assert local_graph.node_count == 3  # START, a, b
    assert local_graph.edge_count == 2


def test_same_key_under_different_parents_is_distinct(local_graph):
    """
    Validate that key equality alone does not merge nodes.

    Verifies:
    - "x" inserted after "a" and after "b" are different nodes
    - Each "x" has exactly one parent
    """
    x_after_a = local_graph.insert_from_start("a").insert("x")
    x_after_b = local_graph.insert_from_start("b").insert("x")

    assert x_after_a.key == x_after_b.key == "x"
    assert x_after_a != x_after_b
    assert [n.key for n in x_after_a.predecessors] == ["a"]
    assert [n.key for n in x_after_b.predecessors] == ["b"]


def test_child_may_repeat_parent_key(local_graph):
    a = local_graph.insert_from_start("a")
    child = a.insert("a")

    assert child != a
    assert a.walk_edge("a") == child
    assert a.edge_exists("a->a")


def test_insert_by_node_is_allowed(local_graph):
    a = local_graph.insert_from_start("a")

    b = local_graph.insert(a, "b", "a to b", node_data="B", edge_data=1)
    again = local_graph.insert(a, "b", "again", edge_data=2)

    assert b == again
    assert b.payload is None
    assert a.outgoing["a->b"].description == "again"
    assert a.walk_edge_with_data("b") == (b, 2)


def test_mixed_insertion_order_resolves_by_parent(local_graph):
    """
    Validate resolution when the parent gains children in between.

    Verifies:
    - A key resolved before its sibling exists creates a new node
    - Later inserts of that key under the same parent reuse it
    - An unrelated parent still gets its own node
    """
    root = local_graph.insert_from_start("root")
    left = root.insert("left")
    root.insert("right")
    other_left = local_graph.insert_from_start("other").insert("left")

    assert root.insert("left") == left
    assert local_graph.insert(root, "l e f t") == left
    assert other_left != left
    assert [n.key for n in root.successors] == ["left", "right"]


def test_insert_end_creates_child_named_end(local_graph):
    """
    Validate that END is not a sentinel in this mode.

    Verifies:
    - insert_end() returns the graph
    - Each chain gets its own END child
    """
    returned = local_graph.insert_from_start("a").insert_end()
    local_graph.insert_from_start("b").insert_end()

    assert returned is local_graph
    a_end = local_graph.start[0].walk_edge(END_NODE_KEY)
    b_end = local_graph.start[1].walk_edge(END_NODE_KEY)
    assert a_end.key == b_end.key == END_NODE_KEY
    assert a_end != b_end


def test_start_is_shared_but_not_registered(local_graph):
    local_graph.insert_from_start("a")
    local_graph.insert_from_start("b")

    assert local_graph.node_keys == []
    assert [n.key for n in local_graph.start] == ["a", "b"]


class TestModeViolations:
    """Operations that need a global key space fail in LOCALLY_UNIQUE mode."""

    def setup_method(self):
        self.graph = DoubleLinkedGraph(GraphOptions(treat_keys_as_locally_unique=True))
        self.graph.insert_from_start("a")

    def test_end(self):
        with pytest.raises(ModeViolationError) as exc_info:
            self.graph.end
        assert exc_info.value.mode is UniquenessMode.LOCALLY_UNIQUE

    def test_end_node(self):
        with pytest.raises(ModeViolationError):
            self.graph.end_node

    def test_insert_by_key(self):
        nodes = self.graph.node_count
        with pytest.raises(ModeViolationError):
            self.graph.insert("a", "b")
        assert self.graph.node_count == nodes

    def test_get_node(self):
        with pytest.raises(ModeViolationError):
            self.graph.get_node("a")

    def test_has_node(self):
        with pytest.raises(ModeViolationError):
            self.graph.has_node("a")


def test_finish_graph_only_locks(local_graph):
    """
    Validate finishing without an END sentinel.

    Verifies:
    - No edges are added
    - The graph is locked
    - Lock is checked before mode for bare-key inserts
    """
    local_graph.insert_from_start("a").insert("b")
    edges = local_graph.edge_count

    local_graph.finish_graph()

    assert local_graph.is_locked
    assert local_graph.edge_count == edges
    with pytest.raises(GraphLockedError):
        local_graph.insert("a", "c")
