"""
Fan-out of session events to SSE clients.
"""

import asyncio
from typing import Optional, Set

from loguru import logger

from src.api.schemas.chat import SessionState, StreamEvent
from src.session.chat_session import ChatSession


def session_state(session: ChatSession) -> SessionState:
    return SessionState(
        conversation_id=session.conversation_id,
        selected_model=session.selected_model,
        is_sending=session.is_sending,
        messages=[m.model_copy() for m in session.messages],
    )


class EventBroadcaster:
    """Pushes StreamEvents to every connected SSE client queue"""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._queues: Set[asyncio.Queue] = set()
        self.session: Optional[ChatSession] = None

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.max_queue_size)
        self._queues.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._queues.discard(queue)

    @property
    def client_count(self) -> int:
        return len(self._queues)

    def publish(self, event: StreamEvent) -> None:
        for queue in list(self._queues):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning("SSE client queue full; dropping event")

    def on_change(self) -> None:
        """ChatSession on_change hook."""
        if self.session is None or not self._queues:
            return
        self.publish(StreamEvent(event="state", state=session_state(self.session)))

    def on_scroll(self) -> None:
        """ChatSession notify hook."""
        self.publish(StreamEvent(event="scroll"))
