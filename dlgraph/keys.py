"""
DLGRAPH KEYS - Key Normalization

Every key a caller hands to the graph passes through normalize_key() before
it is compared with anything. Normalization is what makes "a b", "a-b",
"a_b" and "ab" the same node.

Rules:
1. Missing, empty or whitespace-only keys get a freshly minted unique key.
   Two such inserts therefore never collide.
2. Otherwise spaces, hyphens and underscores are removed and the result is
   trimmed.
"""
import uuid
from typing import Optional

from dlgraph.ontology import EDGE_KEY_SEPARATOR


_STRIPPED_CHARACTERS = (" ", "-", "_")


def generate_key() -> str:
    """Generate a new unique node key (UUID4 hex string)."""
    return uuid.uuid4().hex


def normalize_key(raw_key: Optional[str]) -> str:
    """
    Canonicalize a caller-supplied node key.

    Args:
        raw_key: The key as given by the caller. None, "" and whitespace-only
                 strings are treated as "no key".

    Returns:
        The normalized key, or a newly generated unique key if none was given.

    Example:
        normalize_key("a b")   # "ab"
        normalize_key("a_b")   # "ab"
        normalize_key("   ")   # "3f1c..." (32 hex chars, different each call)
    """
    if raw_key is None or not raw_key.strip():
        return generate_key()

    key = raw_key
    for char in _STRIPPED_CHARACTERS:
        key = key.replace(char, "")
    return key.strip()


def make_edge_key(from_key: str, to_key: str) -> str:
    """Build the edge key for an edge between two (already normalized) node keys."""
    return f"{from_key}{EDGE_KEY_SEPARATOR}{to_key}"
