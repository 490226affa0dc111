"""
LLM layer - Client factory and response utilities
"""

from src.llm.client import create_llm, resolve_provider, MissingAPIKeyError
from src.llm.response_utils import extract_text_from_response

__all__ = [
    "create_llm",
    "resolve_provider",
    "MissingAPIKeyError",
    "extract_text_from_response",
]
