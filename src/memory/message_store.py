"""
In-memory message store for the active conversation.

Messages are kept in insertion order and keyed by id. Display order is
timestamp ascending, ties broken by insertion order. The store has no
internal locking; it must only be mutated from the event loop thread.
"""

from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from src.config.constants import STREAM_MESSAGE_PREFIX
from src.models.chat import Message, utc_now


def stream_message_id(conversation_id: str) -> str:
    """Id of the streaming slot message for a conversation."""
    return f"{STREAM_MESSAGE_PREFIX}{conversation_id}"


class MessageStore:
    """Ordered collection of chat messages keyed by id"""

    def __init__(self, messages: Optional[Iterable[Message]] = None):
        self._messages: List[Message] = []
        self._by_id: Dict[str, Message] = {}
        # Number of state-changing operations applied so far
        self.mutation_count = 0
        if messages:
            self.replace_all(messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __contains__(self, message_id: str) -> bool:
        return message_id in self._by_id

    @property
    def messages(self) -> List[Message]:
        """Messages in display order (timestamp ascending, stable)."""
        return sorted(self._messages, key=lambda m: m.timestamp)

    def get(self, message_id: str) -> Optional[Message]:
        return self._by_id.get(message_id)

    def find(self, predicate: Callable[[Message], bool]) -> List[Message]:
        """Return messages matching predicate, in insertion order."""
        return [m for m in self._messages if predicate(m)]

    def streaming_message(self, conversation_id: str) -> Optional[Message]:
        """Return the streaming slot message for a conversation, if present."""
        return self._by_id.get(stream_message_id(conversation_id))

    def append(self, message: Message) -> bool:
        """
        Add a message unless one with the same id already exists.

        Returns:
            True if the message was added
        """
        if message.id in self._by_id:
            return False
        self._messages.append(message)
        self._by_id[message.id] = message
        self.mutation_count += 1
        return True

    def upsert_streaming(self, conversation_id: str, text: str) -> bool:
        """
        Create or update the streaming message for a conversation.

        The text is replaced only when it differs from the current value.
        A finalized message is never shortened.

        Returns:
            True if the store changed
        """
        message_id = stream_message_id(conversation_id)
        existing = self._by_id.get(message_id)

        if existing is None:
            self.append(
                Message(
                    id=message_id,
                    text=text,
                    is_user=False,
                    timestamp=utc_now(),
                    is_streaming=True,
                )
            )
            return True

        if existing.text == text:
            return False

        if existing.is_streaming is False and len(text) < len(existing.text):
            logger.debug(f"Ignoring shorter snapshot for finalized message {message_id}")
            return False

        existing.text = text
        existing.is_streaming = True
        self.mutation_count += 1
        return True

    def finalize(self, conversation_id: str) -> bool:
        """
        Mark the streaming message of a conversation as final.

        Returns:
            True if a streaming message was finalized
        """
        existing = self._by_id.get(stream_message_id(conversation_id))
        if existing is None or not existing.is_streaming:
            return False
        existing.is_streaming = False
        self.mutation_count += 1
        return True

    def retire_streaming(self, conversation_id: str, new_id: str) -> bool:
        """
        Finalize the streaming slot message and move it to a permanent id.

        Frees the slot so the next turn's stream starts a new message.

        Returns:
            True if a slot message was retired
        """
        slot_id = stream_message_id(conversation_id)
        existing = self._by_id.get(slot_id)
        if existing is None or new_id in self._by_id:
            return False
        del self._by_id[slot_id]
        existing.id = new_id
        existing.is_streaming = False
        self._by_id[new_id] = existing
        self.mutation_count += 1
        return True

    def replace_all(self, messages: Iterable[Message]) -> None:
        """Overwrite the store contents. Later duplicates of an id are dropped."""
        self._messages = []
        self._by_id = {}
        for message in messages:
            if message.id in self._by_id:
                continue
            self._messages.append(message)
            self._by_id[message.id] = message
        self.mutation_count += 1

    def clear(self) -> None:
        """Remove every message."""
        if not self._messages:
            return
        self._messages = []
        self._by_id = {}
        self.mutation_count += 1

    def has_recent_user_text(
        self,
        text: str,
        within_seconds: float,
        now: Optional[datetime] = None,
    ) -> bool:
        """True if a user message with exactly this text was added within the window."""
        now = now or utc_now()
        window = timedelta(seconds=within_seconds)
        return any(
            m.is_user and m.text == text and abs(now - m.timestamp) < window
            for m in self._messages
        )
