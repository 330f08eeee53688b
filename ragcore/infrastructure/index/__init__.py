"""
Similarity index backends.

The PostgreSQL backend is imported explicitly by the container so that the
in-memory backend works without a database driver configured.
"""

from .in_memory import InMemoryCollectionCatalog, InMemorySimilarityIndex

__all__ = ["InMemoryCollectionCatalog", "InMemorySimilarityIndex"]
