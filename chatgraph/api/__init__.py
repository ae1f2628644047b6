"""Read-only HTTP surface over the latest published snapshot."""
