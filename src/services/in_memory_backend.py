"""
In-memory conversation backend.

Implements ConversationService, StreamSource and MessageLoader in a single
process: conversations, their message threads and append-only text streams.
Used by the development API server and the test suite.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Tuple
from uuid import uuid4

from loguru import logger

from src.config.settings import settings
from src.models.chat import (
    ConversationHandle,
    ConversationInfo,
    ConversationSummary,
    DurableMessage,
    utc_now,
)
from src.utils.errors import ConversationNotFoundError

# (conversation_id, stream_id, prompt, model)
StreamCreatedHook = Callable[[str, str, str, str], None]


@dataclass
class _Stream:
    """Append-only text buffer for one assistant turn"""
    conversation_id: str
    text: str = ""
    done: bool = False
    condition: asyncio.Condition = field(default_factory=asyncio.Condition)


@dataclass
class _StoredMessage:
    id: str
    role: str
    content: str
    created_at: datetime
    model: Optional[str] = None
    stream_id: Optional[str] = None


class InMemoryChatBackend:
    """Conversation service, stream source and message loader backed by dicts"""

    def __init__(self, title_max_chars: Optional[int] = None, list_limit: Optional[int] = None):
        self.title_max_chars = title_max_chars or settings.conversation_title_max_chars
        self.list_limit = list_limit or settings.conversation_list_limit
        self._conversations: Dict[str, ConversationInfo] = {}
        self._threads: Dict[str, List[_StoredMessage]] = {}
        self._streams: Dict[str, _Stream] = {}
        self._stream_hooks: List[StreamCreatedHook] = []

    # ------------------------------------------------------------------
    # Hooks
    # ------------------------------------------------------------------

    def on_stream_created(self, hook: StreamCreatedHook) -> None:
        """Register a callback run whenever a new stream is allocated."""
        self._stream_hooks.append(hook)

    # ------------------------------------------------------------------
    # ConversationService
    # ------------------------------------------------------------------

    async def create_conversation(self, prompt: str, model: str) -> ConversationHandle:
        now = utc_now()
        conversation_id = uuid4().hex
        thread_id = uuid4().hex
        stream_id = self._new_stream(conversation_id)

        self._threads[thread_id] = []
        self._conversations[conversation_id] = ConversationInfo(
            id=conversation_id,
            title=self._title(prompt),
            created_at=now,
            updated_at=now,
            prompt=prompt,
            stream_id=stream_id,
            thread_id=thread_id,
        )
        self._save(thread_id, "user", prompt)
        logger.debug(f"Created conversation {conversation_id} (stream={stream_id}, model={model})")

        self._run_hooks(conversation_id, stream_id, prompt, model)
        return ConversationHandle(conversation_id=conversation_id, stream_id=stream_id, thread_id=thread_id)

    async def continue_conversation(
        self, conversation_id: str, prompt: str, model: str
    ) -> ConversationHandle:
        conversation = self._get(conversation_id)
        stream_id = self._new_stream(conversation_id)

        conversation.stream_id = stream_id
        conversation.prompt = prompt
        conversation.updated_at = utc_now()
        if conversation.thread_id is not None:
            self._save(conversation.thread_id, "user", prompt)
        else:
            logger.error(f"No thread found for conversation {conversation_id}")

        self._run_hooks(conversation_id, stream_id, prompt, model)
        return ConversationHandle(
            conversation_id=conversation_id,
            stream_id=stream_id,
            thread_id=conversation.thread_id,
        )

    async def delete_conversation(self, conversation_id: str) -> None:
        conversation = self._get(conversation_id)
        del self._conversations[conversation_id]
        if conversation.thread_id is not None:
            self._threads.pop(conversation.thread_id, None)
        logger.debug(f"Deleted conversation {conversation_id}")

    async def list_conversations(self) -> List[ConversationSummary]:
        ordered = sorted(self._conversations.values(), key=lambda c: c.created_at, reverse=True)
        return [
            ConversationSummary(id=c.id, title=c.title, created_at=c.created_at, updated_at=c.updated_at)
            for c in ordered[: self.list_limit]
        ]

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationInfo]:
        return self._conversations.get(conversation_id)

    # ------------------------------------------------------------------
    # MessageLoader
    # ------------------------------------------------------------------

    async def load_messages(self, conversation_id: str) -> List[DurableMessage]:
        conversation = self._get(conversation_id)
        if conversation.thread_id is None:
            return []
        return [
            DurableMessage(
                id=m.id,
                text=m.content,
                is_user=m.role == "user",
                timestamp=m.created_at,
                model=m.model,
            )
            for m in self._threads.get(conversation.thread_id, [])
        ]

    def history(self, conversation_id: str) -> List[Tuple[str, str]]:
        """Return (role, content) pairs of a conversation's thread, oldest first."""
        conversation = self._conversations.get(conversation_id)
        if conversation is None or conversation.thread_id is None:
            return []
        return [(m.role, m.content) for m in self._threads.get(conversation.thread_id, [])]

    # ------------------------------------------------------------------
    # Streams
    # ------------------------------------------------------------------

    async def append_to_stream(self, stream_id: str, chunk: str) -> None:
        """Append a chunk to a stream and wake its subscribers."""
        stream = self._streams.get(stream_id)
        if stream is None or stream.done:
            logger.warning(f"Ignoring chunk for unknown or closed stream {stream_id}")
            return
        async with stream.condition:
            stream.text += chunk
            stream.condition.notify_all()

    async def complete_stream(self, stream_id: str, model: Optional[str] = None) -> None:
        """
        Close a stream and persist its text as the assistant reply.

        If a reply for this stream was already saved it is only replaced by
        longer content.
        """
        stream = self._streams.get(stream_id)
        if stream is None or stream.done:
            return
        async with stream.condition:
            stream.done = True
            stream.condition.notify_all()
        if stream.conversation_id not in self._conversations:
            logger.debug(f"Stream {stream_id} completed after its conversation was deleted")
            return
        if stream.text:
            self.save_assistant_response(stream.conversation_id, stream.text, stream_id, model)

    def save_assistant_response(
        self,
        conversation_id: str,
        content: str,
        stream_id: str,
        model: Optional[str] = None,
    ) -> str:
        """Persist an assistant reply, tracking the stream it came from."""
        conversation = self._get(conversation_id)
        if conversation.thread_id is None:
            raise ConversationNotFoundError(conversation_id)

        thread = self._threads.setdefault(conversation.thread_id, [])
        existing = next(
            (m for m in thread if m.role == "assistant" and m.stream_id == stream_id), None
        )
        if existing is not None:
            if len(content) > len(existing.content):
                existing.content = content
                existing.model = model
            return existing.id

        return self._save(conversation.thread_id, "assistant", content, model=model, stream_id=stream_id)

    def stream_text(self, stream_id: str) -> str:
        stream = self._streams.get(stream_id)
        return stream.text if stream is not None else ""

    async def subscribe(self, stream_id: str) -> AsyncIterator[Any]:
        """Yield the stream body each time it changes, until the stream is done."""
        stream = self._streams.get(stream_id)
        if stream is None:
            logger.warning(f"Subscription to unknown stream {stream_id}")
            return

        last = ""
        while True:
            async with stream.condition:
                await stream.condition.wait_for(lambda: stream.text != last or stream.done)
                text, done = stream.text, stream.done

            if text != last:
                last = text
                yield {"text": text, "status": "done" if done else "streaming"}
            elif done:
                return

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, conversation_id: str) -> ConversationInfo:
        conversation = self._conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def _title(self, prompt: str) -> str:
        if len(prompt) > self.title_max_chars:
            return prompt[: self.title_max_chars] + "..."
        return prompt

    def _new_stream(self, conversation_id: str) -> str:
        stream_id = uuid4().hex
        self._streams[stream_id] = _Stream(conversation_id=conversation_id)
        return stream_id

    def _save(
        self,
        thread_id: str,
        role: str,
        content: str,
        model: Optional[str] = None,
        stream_id: Optional[str] = None,
    ) -> str:
        message = _StoredMessage(
            id=uuid4().hex,
            role=role,
            content=content,
            created_at=utc_now(),
            model=model,
            stream_id=stream_id,
        )
        self._threads[thread_id].append(message)
        return message.id

    def _run_hooks(self, conversation_id: str, stream_id: str, prompt: str, model: str) -> None:
        for hook in self._stream_hooks:
            try:
                hook(conversation_id, stream_id, prompt, model)
            except Exception as e:
                logger.error(f"Stream hook failed for stream {stream_id}: {e}")
