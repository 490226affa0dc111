"""
API schemas for request/response models
"""

from src.api.schemas.chat import (
    SendMessageRequest,
    SelectModelRequest,
    SessionState,
    SendMessageResponse,
    StreamEvent,
    HealthResponse,
)

__all__ = [
    "SendMessageRequest",
    "SelectModelRequest",
    "SessionState",
    "SendMessageResponse",
    "StreamEvent",
    "HealthResponse",
]
