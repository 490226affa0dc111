"""
Chat data models.

`Message` is the in-memory record rendered by the UI layer. The other models
mirror what the external conversation service hands back.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Message(BaseModel):
    """A single chat message held in the MessageStore."""
    id: str
    text: str
    is_user: bool
    timestamp: datetime = Field(default_factory=utc_now)
    is_streaming: Optional[bool] = None
    model: Optional[str] = None


class DurableMessage(BaseModel):
    """
    Authoritative message record loaded from durable storage.

    Numeric timestamps are accepted as unix seconds or milliseconds.
    """
    id: str
    text: str
    is_user: bool
    timestamp: datetime
    model: Optional[str] = None

    def to_message(self) -> Message:
        """Convert to a finalized in-memory Message."""
        return Message(
            id=self.id,
            text=self.text,
            is_user=self.is_user,
            timestamp=self.timestamp,
            is_streaming=False,
            model=self.model,
        )


class ConversationHandle(BaseModel):
    """Result of creating or continuing a conversation"""
    conversation_id: str
    stream_id: str
    thread_id: Optional[str] = None


class ConversationSummary(BaseModel):
    """Entry in the chat history list"""
    id: str
    title: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class ConversationInfo(ConversationSummary):
    """Full conversation record, including its current stream"""
    prompt: Optional[str] = None
    stream_id: Optional[str] = None
    thread_id: Optional[str] = None


class ModelOption(BaseModel):
    """Selectable LLM in the model picker"""
    id: str
    name: str
    provider: str
