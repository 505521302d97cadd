"""
DLGRAPH - Double-linked directed graph builder.

This package provides:
- DoubleLinkedGraph: the builder/store (START/END sentinels, lock lifecycle)
- Node / Edge: handles returned by the builder
- GraphOptions / UniquenessMode: construction options
- load_options: options from a TOML file
"""

from dlgraph.ontology import (
    START_NODE_KEY,
    END_NODE_KEY,
    UniquenessMode,
)
from dlgraph.keys import normalize_key, generate_key, make_edge_key
from dlgraph.schemas import GraphOptions
from dlgraph.graph_db import (
    DoubleLinkedGraph,
    Node,
    Edge,
    GraphError,
    GraphLockedError,
    ModeViolationError,
    EdgeNotFoundError,
    NodeNotFoundError,
)
from dlgraph.config import ConfigError, load_options

__all__ = [
    # Graph
    "DoubleLinkedGraph",
    "Node",
    "Edge",
    # Options
    "GraphOptions",
    "UniquenessMode",
    "load_options",
    # Keys
    "START_NODE_KEY",
    "END_NODE_KEY",
    "normalize_key",
    "generate_key",
    "make_edge_key",
    # Errors
    "GraphError",
    "GraphLockedError",
    "ModeViolationError",
    "EdgeNotFoundError",
    "NodeNotFoundError",
    "ConfigError",
]
