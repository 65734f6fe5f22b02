"""
LLM integration
Generation client, prompt construction, response parsing and evaluation
"""

from .client import OllamaClient, RateLimiter
from .focus_evaluator import FocusEvaluator
from .manager import LLMManager, get_llm_manager, reset_llm_manager
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser

__all__ = [
    "FocusEvaluator",
    "LLMManager",
    "OllamaClient",
    "PromptBuilder",
    "RateLimiter",
    "ResponseParser",
    "get_llm_manager",
    "reset_llm_manager",
]
