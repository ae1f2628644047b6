"""chatgraph: relationship graph and social-structure insights from chat history."""

__version__ = "0.1.0"
