"""Versioned prompt templates"""

from .loader import PromptLoader

__all__ = ["PromptLoader"]
