"""Application layer: embedder, ranker, context builder and use cases"""

from .context_builder import ContextBuilder
from .embedder import Embedder
from .ranker import rank

__all__ = ["ContextBuilder", "Embedder", "rank"]
