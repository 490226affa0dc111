"""
Chat API models

Request/response contract of the development chat server.
"""

from pydantic import BaseModel, Field
from typing import Optional, Literal, List

from src.models.chat import Message


class SendMessageRequest(BaseModel):
    """User input to send on the current conversation"""
    text: str = Field(..., max_length=8000, description="The user's message")
    model: Optional[str] = Field(default=None, description="Model id; defaults to the selected model")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {"text": "How does AI work?", "model": "gemini-2.5-flash"}
            ]
        }
    }


class SelectModelRequest(BaseModel):
    model: str = Field(..., description="Model id from /api/chat/models")


class SessionState(BaseModel):
    """Snapshot of the chat session as rendered by a client"""
    conversation_id: Optional[str] = None
    selected_model: str
    is_sending: bool = False
    messages: List[Message] = Field(default_factory=list)


class SendMessageResponse(BaseModel):
    accepted: bool
    state: SessionState


class StreamEvent(BaseModel):
    """
    Event pushed over the SSE channel

    Event types:
    - state: The visible message list changed
    - scroll: The client should scroll the list into view
    """
    event: Literal["state", "scroll"]
    state: Optional[SessionState] = None


class HealthResponse(BaseModel):
    """
    Health check response

    Attributes:
        status: Service health status
        service: Service name
        version: API version
    """
    status: str = Field(..., description="Health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
