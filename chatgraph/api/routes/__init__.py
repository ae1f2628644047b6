from . import graph, health

__all__ = ["graph", "health"]
