"""
Per-conversation inactivity timer.

A streaming message is considered complete once no snapshot has arrived for
the quiet window. Timers are scheduled callbacks on the running event loop.
"""

import asyncio
from typing import Callable, Dict, Optional

from loguru import logger

from src.config.settings import settings
from src.memory.message_store import MessageStore


class CompletionTimer:
    """Finalizes a conversation's streaming message after a quiet period"""

    def __init__(
        self,
        store: MessageStore,
        quiet_seconds: Optional[float] = None,
        is_current: Optional[Callable[[str], bool]] = None,
        on_finalize: Optional[Callable[[str], None]] = None,
    ):
        """
        Args:
            store: Store holding the streaming message
            quiet_seconds: Quiet window (defaults to settings.completion_quiet_seconds)
            is_current: Returns False for conversations of a superseded epoch
            on_finalize: Called with the conversation id after a finalize changed the store
        """
        self.store = store
        self.quiet_seconds = (
            quiet_seconds if quiet_seconds is not None else settings.completion_quiet_seconds
        )
        self._is_current = is_current
        self._on_finalize = on_finalize
        self._handles: Dict[str, asyncio.TimerHandle] = {}

    def restart(self, conversation_id: str) -> None:
        """(Re)start the quiet window for a conversation. Must run on the event loop."""
        self.cancel(conversation_id)
        loop = asyncio.get_running_loop()
        self._handles[conversation_id] = loop.call_later(
            self.quiet_seconds, self._fire, conversation_id
        )

    def cancel(self, conversation_id: str) -> bool:
        """Cancel the pending timer of a conversation, if any."""
        handle = self._handles.pop(conversation_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def is_pending(self, conversation_id: str) -> bool:
        return conversation_id in self._handles

    def _fire(self, conversation_id: str) -> None:
        self._handles.pop(conversation_id, None)

        if self._is_current is not None and not self._is_current(conversation_id):
            logger.debug(f"Dropping stale completion timer for conversation {conversation_id}")
            return

        if self.store.finalize(conversation_id):
            logger.debug(f"Stream for conversation {conversation_id} finalized after {self.quiet_seconds}s quiet")
            if self._on_finalize is not None:
                self._on_finalize(conversation_id)
