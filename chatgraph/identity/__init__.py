"""
Identity Normalization Module

Canonicalizes the heterogeneous account, participant and group identifiers
returned by the messaging gateway into one stable key space.
"""

from .normalizer import (
    DEFAULT_NAMESPACE_ALIASES,
    GROUP_DOMAIN,
    PRIMARY_DOMAIN,
    extract_raw_id,
    identity_user,
    is_group_identity,
    is_numeric_name,
    is_person_identity,
    normalize_identity,
)

__all__ = [
    "DEFAULT_NAMESPACE_ALIASES",
    "GROUP_DOMAIN",
    "PRIMARY_DOMAIN",
    "extract_raw_id",
    "identity_user",
    "is_group_identity",
    "is_numeric_name",
    "is_person_identity",
    "normalize_identity",
]
