"""
DLGRAPH SCHEMAS - The Records Stored in the Arena

If ontology.py is the Dictionary, schemas.py is the Grammar: the shapes of
the objects that live inside the rustworkx arena.

- NodeRecord: The weight of every arena node
- EdgeRecord: The weight of every arena edge
- GraphOptions: Construction-time options for a graph

Design Principles:
1. ARENA OWNS EVERYTHING: Records are stored in rx.PyDiGraph and referenced
   by integer index. Node/Edge handles given to callers hold indices only.
2. KEYED ADJACENCY: Each NodeRecord keeps edge key -> edge index maps for
   both directions, so walking an edge by key is O(1) either way.
3. KW_ONLY: Enforce keyword arguments to prevent positional mix-ups.
"""
import msgspec
from typing import Any, Dict

from dlgraph.ontology import UniquenessMode


# =============================================================================
# NODE RECORD
# =============================================================================

class NodeRecord(msgspec.Struct, kw_only=True):
    """
    The payload attached to every node in the rustworkx arena.

    `outgoing` and `incoming` map edge keys to rustworkx edge indices. Dicts
    keep insertion order, which gives deterministic enumeration of edges.
    """
    key: str
    payload: Any = None

    outgoing: Dict[str, int] = msgspec.field(default_factory=dict)
    incoming: Dict[str, int] = msgspec.field(default_factory=dict)

    @property
    def is_dangling(self) -> bool:
        """True if the node has no outgoing edges."""
        return not self.outgoing


# =============================================================================
# EDGE RECORD
# =============================================================================

class EdgeRecord(msgspec.Struct, kw_only=True):
    """
    The payload attached to every edge in the rustworkx arena.

    The endpoints are not stored here; the arena already knows them
    (rx.PyDiGraph.get_edge_endpoints_by_index).
    """
    key: str
    description: str = ""
    payload: Any = None


# =============================================================================
# GRAPH OPTIONS
# =============================================================================

class GraphOptions(msgspec.Struct, kw_only=True, frozen=True):
    """
    Options fixed at graph construction.

    Attributes:
        treat_keys_as_locally_unique: Moves node keys from globally unique to
            only unique among the children of one node.
    """
    treat_keys_as_locally_unique: bool = False

    @property
    def mode(self) -> UniquenessMode:
        if self.treat_keys_as_locally_unique:
            return UniquenessMode.LOCALLY_UNIQUE
        return UniquenessMode.GLOBALLY_UNIQUE

    @classmethod
    def for_mode(cls, mode: UniquenessMode) -> "GraphOptions":
        """Create options for a UniquenessMode."""
        return cls(treat_keys_as_locally_unique=mode is UniquenessMode.LOCALLY_UNIQUE)
