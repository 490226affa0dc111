"""
Reconciles the in-memory message list with messages loaded from durable storage.

Durable storage is authoritative, except for stream copies held in memory:
storage may lag behind the stream, so a stream copy wins when its text
extends a durable assistant reply. Stream copies are the conversation's
streaming slot message and the retired copies of earlier turns.
"""

from typing import Iterable, List, Optional, Set, Union

from loguru import logger

from src.config.constants import RETIRED_STREAM_PREFIX
from src.memory.message_store import MessageStore, stream_message_id
from src.models.chat import DurableMessage, Message

DurableRecord = Union[DurableMessage, Message]


def _extends(text: str, prefix: str) -> bool:
    """True if text starts with prefix and is at least as long."""
    return text.startswith(prefix)


class PersistenceMerger:
    """Deterministic merge of durable messages with in-memory stream copies"""

    def merge(
        self,
        current: Iterable[Message],
        durable: Iterable[DurableRecord],
        conversation_id: str,
    ) -> List[Message]:
        """
        Merge durable records with the current in-memory messages.

        The streaming slot message is compared against the latest durable
        assistant reply. A retired stream copy is kept unless storage holds a
        reply equal to or extending it, and replaces a durable reply it
        extends. Assistant texts are never duplicated in the result.

        Args:
            current: Messages currently in the store
            durable: Authoritative records for the conversation
            conversation_id: Conversation owning the streaming slot

        Returns:
            New message list ordered by timestamp ascending
        """
        current = list(current)
        durable_messages = [
            record.to_message() if isinstance(record, DurableMessage) else record
            for record in durable
        ]

        slot_id = stream_message_id(conversation_id)
        durable_ids = {m.id for m in durable_messages}
        streaming: Optional[Message] = next((m for m in current if m.id == slot_id), None)
        retired = [
            m for m in current
            if m.id.startswith(RETIRED_STREAM_PREFIX) and not m.is_user and m.id not in durable_ids
        ]

        if streaming is None and not retired:
            return self._ordered(durable_messages)

        kept = list(durable_messages)
        candidates: List[Message] = []

        if streaming is not None:
            last_durable = self._last_assistant(kept)
            if last_durable is not None and _extends(streaming.text, last_durable.text):
                logger.debug(
                    f"Stream for {conversation_id} is ahead of storage "
                    f"({len(streaming.text)} >= {len(last_durable.text)} chars); keeping stream copy"
                )
                kept.remove(last_durable)
                candidates.append(streaming)
            elif last_durable is not None and _extends(last_durable.text, streaming.text):
                logger.debug(f"Storage caught up with stream for {conversation_id}; dropping stream copy")
            else:
                candidates.append(streaming)

        for message in self._ordered(retired):
            replies = [m for m in kept if not m.is_user]
            if any(_extends(m.text, message.text) for m in replies):
                continue
            shorter = [m for m in replies if _extends(message.text, m.text)]
            if shorter:
                closest = min(shorter, key=lambda m: abs((m.timestamp - message.timestamp).total_seconds()))
                kept.remove(closest)
                logger.debug(f"Keeping {message.id} over shorter stored reply {closest.id}")
            candidates.append(message)

        return self._ordered(self._unique_replies(kept, candidates))

    def apply(
        self,
        store: MessageStore,
        durable: Iterable[DurableRecord],
        conversation_id: str,
    ) -> List[Message]:
        """Merge and write the result into the store."""
        merged = self.merge(store.messages, durable, conversation_id)
        store.replace_all(merged)
        return merged

    @staticmethod
    def _unique_replies(kept: List[Message], candidates: List[Message]) -> List[Message]:
        # Earliest copy of an assistant text wins; durable copies before stream copies
        result: List[Message] = []
        seen: Set[str] = set()
        for message in PersistenceMerger._ordered(kept) + PersistenceMerger._ordered(candidates):
            if not message.is_user:
                if message.text in seen:
                    logger.debug(f"Dropping duplicate assistant text from {message.id}")
                    continue
                seen.add(message.text)
            result.append(message)
        return result

    @staticmethod
    def _last_assistant(messages: List[Message]) -> Optional[Message]:
        last = None
        for message in messages:
            if message.is_user:
                continue
            if last is None or message.timestamp >= last.timestamp:
                last = message
        return last

    @staticmethod
    def _ordered(messages: List[Message]) -> List[Message]:
        return sorted(messages, key=lambda m: m.timestamp)
