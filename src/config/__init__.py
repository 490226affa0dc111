"""
Configuration layer - Settings and constants
"""

from src.config.settings import settings, Settings, PROJECT_ROOT
from src.config.constants import MODEL_OPTIONS, MODEL_IDS, SUGGESTED_QUESTIONS, STREAM_MESSAGE_PREFIX

__all__ = [
    "settings",
    "Settings",
    "PROJECT_ROOT",
    "MODEL_OPTIONS",
    "MODEL_IDS",
    "SUGGESTED_QUESTIONS",
    "STREAM_MESSAGE_PREFIX",
]
