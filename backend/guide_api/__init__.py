"""Semantic search over the structured Z3 owner's guide."""

__version__ = "0.1.0"
