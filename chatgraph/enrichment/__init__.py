"""
Name Resolution & Enrichment Module

Best-effort display names for person nodes that only carry a phone number.
"""

from .names import NameResolver, is_numeric_name

__all__ = ["NameResolver", "is_numeric_name"]
