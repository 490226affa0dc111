"""
Contracts the chat session needs from its external collaborators.

The hosted conversation backend, its stream subscription and its durable
message query are all provided from outside; these protocols are the only
surface the session depends on.
"""

from typing import Any, AsyncIterator, Callable, List, Optional, Protocol

from src.models.chat import ConversationHandle, ConversationInfo, ConversationSummary, DurableMessage

NotifyCallback = Callable[[], None]


class ConversationService(Protocol):
    """Create, continue, delete and list conversations"""

    async def create_conversation(self, prompt: str, model: str) -> ConversationHandle:
        ...

    async def continue_conversation(
        self, conversation_id: str, prompt: str, model: str
    ) -> ConversationHandle:
        ...

    async def delete_conversation(self, conversation_id: str) -> None:
        ...

    async def list_conversations(self) -> List[ConversationSummary]:
        ...

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationInfo]:
        ...


class StreamSource(Protocol):
    """Pushes snapshots of a stream's accumulated text until the stream ends"""

    def subscribe(self, stream_id: str) -> AsyncIterator[Any]:
        ...


class MessageLoader(Protocol):
    """Loads the authoritative messages of a conversation"""

    async def load_messages(self, conversation_id: str) -> List[DurableMessage]:
        ...
