"""
Session layer - Chat session orchestration
"""

from src.session.chat_session import ChatSession

__all__ = ["ChatSession"]
