"""Shared primitives: typed errors and time helpers."""
