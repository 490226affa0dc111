"""
Application constants

Centralized constants used across the application.
"""

from typing import Dict, List

# ============================================================================
# Models
# ============================================================================

# Models offered by the model picker, in display order
MODEL_OPTIONS: List[Dict[str, str]] = [
    {"id": "gemini-2.5-flash", "name": "Gemini 2.5 Flash", "provider": "Google"},
    {"id": "gemini-2.5-pro", "name": "Gemini 2.5 Pro", "provider": "Google"},
    {"id": "gpt-4o-mini", "name": "GPT-4o Mini", "provider": "OpenAI"},
    {"id": "gpt-4o", "name": "GPT-4o", "provider": "OpenAI"},
]

MODEL_IDS = {option["id"] for option in MODEL_OPTIONS}

# Upstream model names used when talking to each provider
PROVIDER_MODEL_NAMES: Dict[str, str] = {
    "gemini-2.5-flash": "gemini-2.0-flash-exp",
    "gemini-2.5-pro": "gemini-1.5-pro",
    "gpt-4o-mini": "gpt-4o-mini",
    "gpt-4o": "gpt-4o",
}


# ============================================================================
# Welcome screen
# ============================================================================

SUGGESTED_QUESTIONS: List[str] = [
    "How does AI work?",
    "Are black holes real?",
    "How many Rs are in the word 'strawberry'?",
    "What is the meaning of life?",
]


# ============================================================================
# Message ids
# ============================================================================

STREAM_MESSAGE_PREFIX = "stream-"  # stream-{conversation_id}
RETIRED_STREAM_PREFIX = "assistant-"  # assistant-{stream_id}
USER_MESSAGE_PREFIX = "user-"
ERROR_MESSAGE_PREFIX = "error-"
