"""
DLGRAPH ONTOLOGY - The Vocabulary of the Graph

This module defines the words the graph builder speaks:
- UniquenessMode: How node keys identify nodes (globally vs. per parent)
- Sentinel keys: The synthetic START and END aggregation points
- Edge key grammar: "<from>-><to>"

Key Principle: A key means different things in different modes.
In GLOBALLY_UNIQUE mode a key IS the node. In LOCALLY_UNIQUE mode a key
only names a node among its siblings, so the same key may appear under
many parents as distinct nodes.
"""
from enum import Enum


# =============================================================================
# SENTINELS
# =============================================================================

START_NODE_KEY = "START"
END_NODE_KEY = "END"

EDGE_KEY_SEPARATOR = "->"


# =============================================================================
# ENUMS
# =============================================================================

class UniquenessMode(str, Enum):
    """Scope in which a node key is unique."""
    GLOBALLY_UNIQUE = "globally_unique"  # One node per key across the graph
    LOCALLY_UNIQUE = "locally_unique"    # One node per key among siblings

    @property
    def is_global(self) -> bool:
        return self is UniquenessMode.GLOBALLY_UNIQUE

    @property
    def supports_end_node(self) -> bool:
        """END aggregation needs a canonical END node, which only exists globally."""
        return self.is_global
