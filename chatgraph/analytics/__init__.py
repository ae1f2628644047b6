"""
Insight Engine

Ranked social-structure insights over a finished relationship graph.
"""

from .insights import (
    Insights,
    InsightEngine,
    SimilarityCache,
    jaccard_similarity,
)

__all__ = [
    "Insights",
    "InsightEngine",
    "SimilarityCache",
    "jaccard_similarity",
]
