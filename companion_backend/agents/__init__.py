"""
Background agents
"""

from .category_agent import CategorizationAgent

__all__ = ["CategorizationAgent"]
