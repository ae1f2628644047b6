"""
Relationship Graph Module

Node/link types and the builder that assembles them from ingested chats.
"""

from .builder import (
    BuiltGraph,
    GraphBuilder,
    direct_link_weight,
    group_size_weight,
    person_size_weight,
)
from .types import GraphPayload, GroupNode, Link, LinkKind, PersonDraft, PersonNode

__all__ = [
    "BuiltGraph",
    "GraphBuilder",
    "GraphPayload",
    "GroupNode",
    "Link",
    "LinkKind",
    "PersonDraft",
    "PersonNode",
    "direct_link_weight",
    "group_size_weight",
    "person_size_weight",
]
