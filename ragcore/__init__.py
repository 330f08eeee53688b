"""Embedding-based retrieval, ranking and answer generation engine"""

__version__ = "0.1.0"
