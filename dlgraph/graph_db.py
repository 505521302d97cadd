"""
DLGRAPH GRAPH DATABASE - The Double-Linked Directed Graph

A builder for directed graphs that can be crawled in both directions.
Callers insert nodes and edges through fluent chains; the graph keeps the
reverse edges, a synthetic START node every chain hangs off, and (in
GLOBALLY_UNIQUE mode) a synthetic END node that collects dangling nodes
when the graph is finished.

Architecture (The Arena Pattern):
  Python Layer (Caller)
  - Uses string keys: "omo", "moma"
  - Calls: graph.insert_from_start("omo").insert("moma").insert_end()

  Handle Layer (This File)
  - Node / Edge: lightweight (graph, index) handles returned to the caller
  - _node_map: Dict[str, int]  (key -> index, GLOBALLY_UNIQUE mode only)

  Arena Layer (rustworkx.PyDiGraph)
  - Node weights: NodeRecord (key, payload, keyed in/out edge indices)
  - Edge weights: EdgeRecord (key, description, payload)

Lifecycle:
  building --finish_graph() / end--> locked
  Finishing attaches every dangling node to END (GLOBALLY_UNIQUE only)
  and then refuses any further structural mutation.

Performance Characteristics:
- Key resolution: O(1) via _node_map (global) or the parent's edge map (local)
- walk_edge / walk_back: O(1) dict lookup on the node record
- finish_graph: O(V) single pass over registered nodes
"""
import rustworkx as rx
import logging
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union
from pathlib import Path

from dlgraph.keys import make_edge_key, normalize_key
from dlgraph.ontology import END_NODE_KEY, START_NODE_KEY, UniquenessMode
from dlgraph.schemas import EdgeRecord, GraphOptions, NodeRecord

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================

class GraphError(Exception):
    """Base exception for graph operations."""
    pass


class GraphLockedError(GraphError):
    """Raised when a structural mutation is attempted on a finished graph."""
    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(
            f"Cannot {operation}: graph is finished either by a call to "
            f"finish_graph() or implicitly by using end"
        )


class ModeViolationError(GraphError):
    """Raised when an operation is not valid in the graph's uniqueness mode."""
    def __init__(self, operation: str, mode: UniquenessMode):
        self.operation = operation
        self.mode = mode
        super().__init__(f"{operation} is not valid in {mode.value} mode")


class EdgeNotFoundError(GraphError):
    """Raised when walking an edge that does not exist."""
    def __init__(self, edge_key: str, node_key: Optional[str] = None):
        self.edge_key = edge_key
        self.node_key = node_key
        super().__init__(f"Cannot walk edge {edge_key} because it does not exist")


class NodeNotFoundError(GraphError):
    """Raised when a node key is not in the graph."""
    def __init__(self, node_key: str):
        self.node_key = node_key
        super().__init__(f"Node not found: {node_key}")


# =============================================================================
# HANDLES (What the caller holds)
# =============================================================================

class Edge:
    """
    Handle to an edge in the arena.

    Endpoints are fixed for the lifetime of the edge; description and
    payload are overwritten whenever the same (from, to) pair is inserted
    again.
    """

    __slots__ = ("_db", "_index")

    def __init__(self, db: "DoubleLinkedGraph", index: int):
        self._db = db
        self._index = index

    @property
    def _record(self) -> EdgeRecord:
        return self._db._graph.get_edge_data_by_index(self._index)

    @property
    def index(self) -> int:
        return self._index

    @property
    def key(self) -> str:
        return self._record.key

    @property
    def description(self) -> str:
        return self._record.description

    @property
    def payload(self) -> Any:
        return self._record.payload

    @property
    def from_node(self) -> "Node":
        source, _ = self._db._graph.get_edge_endpoints_by_index(self._index)
        return Node(self._db, source)

    @property
    def to_node(self) -> "Node":
        _, target = self._db._graph.get_edge_endpoints_by_index(self._index)
        return Node(self._db, target)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Edge):
            return NotImplemented
        return self._db is other._db and self._index == other._index

    def __hash__(self) -> int:
        return hash((id(self._db), "edge", self._index))

    def __repr__(self) -> str:
        return f"Edge({self.key!r}, description={self.description!r})"


class Node:
    """
    Handle to a node in the arena.

    Every insert returns the node that was inserted, so calls chain one hop
    at a time:

        graph.insert_from_start("i").insert("n").insert("t")
    """

    __slots__ = ("_db", "_index")

    def __init__(self, db: "DoubleLinkedGraph", index: int):
        self._db = db
        self._index = index

    @property
    def _record(self) -> NodeRecord:
        return self._db._graph[self._index]

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def graph(self) -> "DoubleLinkedGraph":
        """The graph this node belongs to."""
        return self._db

    @property
    def index(self) -> int:
        """The rustworkx index of this node."""
        return self._index

    @property
    def key(self) -> str:
        return self._record.key

    @property
    def payload(self) -> Any:
        return self._record.payload

    @property
    def outgoing(self) -> Mapping[str, Edge]:
        """Edges going with the direction, by edge key, in insertion order."""
        return MappingProxyType({
            edge_key: Edge(self._db, edge_idx)
            for edge_key, edge_idx in self._record.outgoing.items()
        })

    @property
    def incoming(self) -> Mapping[str, Edge]:
        """Edges going against the direction, by edge key, in insertion order."""
        return MappingProxyType({
            edge_key: Edge(self._db, edge_idx)
            for edge_key, edge_idx in self._record.incoming.items()
        })

    @property
    def successors(self) -> List["Node"]:
        """Nodes reached by the outgoing edges."""
        return [edge.to_node for edge in self.outgoing.values()]

    @property
    def predecessors(self) -> List["Node"]:
        """Nodes reached by walking the incoming edges backwards."""
        return [edge.from_node for edge in self.incoming.values()]

    # =========================================================================
    # INSERTION
    # =========================================================================

    def insert(
        self,
        new_key: Optional[str],
        edge_description: str = "",
        node_data: Any = None,
        edge_data: Any = None,
    ) -> "Node":
        """
        Insert a node after this one and return it.

        If the target node already exists (same key globally, or same key
        among this node's children in LOCALLY_UNIQUE mode) it is reused and
        its payload replaced with node_data. If the edge already exists its
        description and payload are replaced.

        Raises:
            GraphLockedError: If the graph is finished
        """
        target_idx = self._db._insert(
            self._index, new_key, edge_description, node_data, edge_data
        )
        return Node(self._db, target_idx)

    def insert_end(self) -> "DoubleLinkedGraph":
        """
        Connect this node to END and return the graph, so a new chain can
        be started with insert_from_start().
        """
        self.insert(END_NODE_KEY)
        return self._db

    def finish_graph(self) -> None:
        """Finish the graph this node belongs to and lock it."""
        self._db.finish_graph()

    # =========================================================================
    # TRAVERSAL
    # =========================================================================

    def edge_to(self, next_key: str) -> Edge:
        """
        Get the outgoing edge towards the child with next_key.

        Raises:
            EdgeNotFoundError: If there is no such edge
        """
        record = self._record
        edge_key = make_edge_key(record.key, normalize_key(next_key))
        edge_idx = record.outgoing.get(edge_key)
        if edge_idx is None:
            raise EdgeNotFoundError(edge_key, record.key)
        return Edge(self._db, edge_idx)

    def walk_edge(self, next_key: str) -> "Node":
        """
        Walk the outgoing edge towards next_key and return the node at the end.

        Raises:
            EdgeNotFoundError: If there is no such edge
        """
        return self.edge_to(next_key).to_node

    def walk_edge_with_data(self, next_key: str) -> Tuple["Node", Any]:
        """
        Walk the outgoing edge towards next_key.

        Returns:
            (node at the end of the edge, payload stored on the edge)

        Raises:
            EdgeNotFoundError: If there is no such edge
        """
        edge = self.edge_to(next_key)
        return edge.to_node, edge.payload

    def walk_back(self, previous_key: str) -> "Node":
        """
        Walk the incoming edge from previous_key against its direction.

        Raises:
            EdgeNotFoundError: If there is no such edge
        """
        record = self._record
        edge_key = make_edge_key(normalize_key(previous_key), record.key)
        edge_idx = record.incoming.get(edge_key)
        if edge_idx is None:
            raise EdgeNotFoundError(edge_key, record.key)
        return Edge(self._db, edge_idx).from_node

    def edge_exists(self, edge_key: str) -> bool:
        """Check if an outgoing edge with this edge key exists."""
        return edge_key in self._record.outgoing

    # =========================================================================
    # IDENTITY
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Node):
            return NotImplemented
        return self._db is other._db and self._index == other._index

    def __hash__(self) -> int:
        return hash((id(self._db), "node", self._index))

    def __repr__(self) -> str:
        return f"Node({self.key!r}, index={self._index})"


# =============================================================================
# DOUBLE LINKED DIRECTED GRAPH (The Store)
# =============================================================================

class DoubleLinkedGraph:
    """
    Directed graph builder that can be crawled in both directions.

    Usage:
        graph = DoubleLinkedGraph()

        graph.insert_from_start("omo").insert("moma").insert_end()
        graph.insert("omo", "mama").insert("merm")
        graph.finish_graph()

        [n.key for n in graph.start]  # ["omo"]
        [n.key for n in graph.end]    # ["moma", "merm"]

    Uniqueness:
        GLOBALLY_UNIQUE (default): one node per normalized key. Separate
            chains inserting the same key meet at the same node.
        LOCALLY_UNIQUE: a key only identifies a node among the children of
            one parent. There is no END sentinel in this mode.

    Thread Safety:
        NOT thread-safe. Use external locking if needed for concurrent access.
    """

    START_NODE_KEY = START_NODE_KEY
    END_NODE_KEY = END_NODE_KEY

    def __init__(
        self,
        options: Optional[GraphOptions] = None,
        *,
        mode: Optional[Union[UniquenessMode, str]] = None,
    ):
        """
        Initialize an empty graph.

        Args:
            options: GraphOptions for the graph. Defaults to GraphOptions().
            mode: Shortcut for GraphOptions.for_mode(mode). Cannot be combined
                  with options.
        """
        if options is not None and mode is not None:
            raise ValueError("Pass either options or mode, not both")
        if mode is not None:
            options = GraphOptions.for_mode(UniquenessMode(mode))

        self._options: GraphOptions = options or GraphOptions()
        self._mode: UniquenessMode = self._options.mode

        # Core storage: the arena
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=False)

        # key -> index, only populated in GLOBALLY_UNIQUE mode
        self._node_map: Dict[str, int] = {}

        # Sentinels are created on first access
        self._start_idx: Optional[int] = None
        self._end_idx: Optional[int] = None

        self._locked = False

    @classmethod
    def from_config(cls, path: Optional[Path] = None) -> "DoubleLinkedGraph":
        """Create a graph with options loaded from a TOML file (see dlgraph.config)."""
        from dlgraph.config import load_options

        return cls(load_options(path))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def options(self) -> GraphOptions:
        return self._options

    @property
    def mode(self) -> UniquenessMode:
        return self._mode

    @property
    def is_locked(self) -> bool:
        """True once the graph is finished."""
        return self._locked

    @property
    def node_count(self) -> int:
        """Number of nodes in the graph, sentinels included."""
        return self._graph.num_nodes()

    @property
    def edge_count(self) -> int:
        """Number of edges in the graph."""
        return self._graph.num_edges()

    @property
    def is_empty(self) -> bool:
        """True if graph has no nodes."""
        return self.node_count == 0

    @property
    def node_keys(self) -> List[str]:
        """Keys already added to the graph. Always empty in LOCALLY_UNIQUE mode."""
        return list(self._node_map)

    @property
    def start_node(self) -> Node:
        """
        The START sentinel.

        Raises:
            GraphLockedError: If the graph is finished before START was ever created
        """
        if self._start_idx is None:
            self._check_unlocked("create the start node")
        return Node(self, self._resolve_index(START_NODE_KEY))

    @property
    def end_node(self) -> Node:
        """
        The END sentinel.

        Raises:
            ModeViolationError: In LOCALLY_UNIQUE mode
        """
        if not self._mode.supports_end_node:
            raise ModeViolationError("end node", self._mode)
        return Node(self, self._resolve_index(END_NODE_KEY))

    @property
    def start(self) -> List[Node]:
        """All nodes inserted directly after START, in insertion order."""
        if self._start_idx is None:
            return []
        return self.start_node.successors

    @property
    def end(self) -> List[Node]:
        """
        All nodes connected to END.

        Finishes (and locks) the graph first if it is not finished yet.

        Raises:
            ModeViolationError: In LOCALLY_UNIQUE mode
        """
        if not self._mode.supports_end_node:
            raise ModeViolationError("end", self._mode)
        if not self._locked:
            self.finalize()
        return self.end_node.predecessors

    # =========================================================================
    # NODE LOOKUP
    # =========================================================================

    def has_node(self, key: str) -> bool:
        """
        Check if a node with this key exists. Never creates nodes.

        Raises:
            ModeViolationError: In LOCALLY_UNIQUE mode
        """
        if not self._mode.is_global:
            raise ModeViolationError("Lookup by bare key", self._mode)
        return normalize_key(key) in self._node_map

    def get_node(self, key: str) -> Node:
        """
        Retrieve a node by key. Never creates nodes.

        Raises:
            ModeViolationError: In LOCALLY_UNIQUE mode
            NodeNotFoundError: If no node has this key
        """
        if not self._mode.is_global:
            raise ModeViolationError("Lookup by bare key", self._mode)
        normalized = normalize_key(key)
        if normalized not in self._node_map:
            raise NodeNotFoundError(normalized)
        return Node(self, self._node_map[normalized])

    def iter_nodes(self) -> Iterator[Node]:
        """Iterate over all nodes in creation order."""
        for idx in self._graph.node_indices():
            yield Node(self, idx)

    def resolve(self, key: Optional[str], previous: Optional[Node] = None) -> Node:
        """
        Get the node a key denotes, creating it if it does not exist.

        Args:
            key: Raw node key (normalized here)
            previous: The node the key is inserted after. Only consulted in
                      LOCALLY_UNIQUE mode, where it scopes the key.

        Raises:
            GraphLockedError: If the graph is finished
        """
        self._check_unlocked("resolve a node")
        previous_idx = self._own_index(previous) if previous is not None else None
        return Node(self, self._resolve_index(key, previous_idx))

    # =========================================================================
    # INSERTION
    # =========================================================================

    def insert_from_start(self, key: Optional[str], node_data: Any = None) -> Node:
        """
        Insert a node directly after START and return it.

        Raises:
            GraphLockedError: If the graph is finished
        """
        self._check_unlocked("insert from start")
        return self.start_node.insert(key, "", node_data)

    def insert(
        self,
        from_node: Union[str, Node],
        new_key: Optional[str],
        edge_description: str = "",
        node_data: Any = None,
        edge_data: Any = None,
    ) -> Node:
        """
        Insert a node after from_node and return it.

        Node keys are unique in the graph and an edge key is unique in the
        scope of its from node.

        Args:
            from_node: A Node handle, or a key. Keys only identify a node in
                       GLOBALLY_UNIQUE mode; an unknown key creates the node.
            new_key: Key of the node to insert
            edge_description: Description stored on the edge
            node_data: Payload for the inserted node (replaces any existing)
            edge_data: Payload for the edge (replaces any existing)

        Raises:
            GraphLockedError: If the graph is finished
            ModeViolationError: If from_node is a key in LOCALLY_UNIQUE mode
        """
        self._check_unlocked("insert")
        if isinstance(from_node, Node):
            from_idx = self._own_index(from_node)
        else:
            if not self._mode.is_global:
                raise ModeViolationError("insert(from_key, ...)", self._mode)
            from_idx = self._resolve_index(from_node)

        target_idx = self._insert(from_idx, new_key, edge_description, node_data, edge_data)
        return Node(self, target_idx)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def finalize(self) -> None:
        """
        Attach every dangling node to END and lock the graph.

        Idempotent. In LOCALLY_UNIQUE mode there is no END node, so this
        only locks.
        """
        if self._locked:
            return

        if self._mode.supports_end_node:
            end_idx = self._resolve_index(END_NODE_KEY)
            dangling = [
                idx for idx in self._node_map.values()
                if idx not in (self._start_idx, end_idx) and self._graph[idx].is_dangling
            ]
            for idx in dangling:
                self._insert(idx, END_NODE_KEY, "", None, None)
            logger.info(
                f"Graph finished: {len(dangling)} implicit end edge(s), "
                f"{self.node_count} nodes, {self.edge_count} edges"
            )
        else:
            logger.info(f"Graph finished ({self._mode.value}): {self.node_count} nodes")

        self._locked = True

    def finish_graph(self) -> None:
        """Finish the graph and lock it."""
        self.finalize()

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _check_unlocked(self, operation: str) -> None:
        if self._locked:
            raise GraphLockedError(operation)

    def _own_index(self, node: Node) -> int:
        if node.graph is not self:
            raise GraphError(f"{node!r} belongs to a different graph")
        return node.index

    def _create_node(self, key: str, register: bool) -> int:
        idx = self._graph.add_node(NodeRecord(key=key))
        if register:
            self._node_map[key] = idx
        logger.debug(f"Created node {key!r} at index {idx} ({self._mode.value})")
        return idx

    def _resolve_index(self, raw_key: Optional[str], previous_idx: Optional[int] = None) -> int:
        """
        Resolution order:
        1. START sentinel (shared in both modes)
        2. END sentinel (GLOBALLY_UNIQUE only)
        3. Existing node with this key (GLOBALLY_UNIQUE)
        4. Existing child of previous with this key (LOCALLY_UNIQUE)
        5. New node
        """
        key = normalize_key(raw_key)
        is_global = self._mode.is_global

        if key == START_NODE_KEY:
            if self._start_idx is None:
                self._start_idx = self._create_node(key, register=is_global)
            return self._start_idx

        if key == END_NODE_KEY and is_global:
            if self._end_idx is None:
                self._end_idx = self._create_node(key, register=True)
            return self._end_idx

        if is_global:
            existing = self._node_map.get(key)
            if existing is not None:
                return existing
        elif previous_idx is not None:
            # Siblings have distinct keys, so the edge key names the child
            previous = self._graph[previous_idx]
            edge_idx = previous.outgoing.get(make_edge_key(previous.key, key))
            if edge_idx is not None:
                return self._graph.get_edge_endpoints_by_index(edge_idx)[1]

        return self._create_node(key, register=is_global)

    def _insert(
        self,
        from_idx: int,
        new_key: Optional[str],
        edge_description: str,
        node_data: Any,
        edge_data: Any,
    ) -> int:
        self._check_unlocked("insert")
        target_idx = self._resolve_index(new_key, from_idx)
        self._graph[target_idx].payload = node_data
        self._upsert_edge(from_idx, target_idx, edge_description or "", edge_data)
        return target_idx

    def _upsert_edge(self, from_idx: int, to_idx: int, description: str, payload: Any) -> int:
        source = self._graph[from_idx]
        target = self._graph[to_idx]
        edge_key = make_edge_key(source.key, target.key)

        edge_idx = source.outgoing.get(edge_key)
        if edge_idx is not None:
            record = self._graph.get_edge_data_by_index(edge_idx)
            record.description = description
            record.payload = payload
            logger.debug(f"Updated edge {edge_key!r}")
            return edge_idx

        edge_idx = self._graph.add_edge(
            from_idx, to_idx, EdgeRecord(key=edge_key, description=description, payload=payload)
        )
        source.outgoing[edge_key] = edge_idx
        target.incoming[edge_key] = edge_idx
        logger.debug(f"Created edge {edge_key!r} at index {edge_idx}")
        return edge_idx

    def __repr__(self) -> str:
        state = "locked" if self._locked else "building"
        return (
            f"DoubleLinkedGraph(mode={self._mode.value}, nodes={self.node_count}, "
            f"edges={self.edge_count}, {state})"
        )
