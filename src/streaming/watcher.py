"""
Stream watcher: turns raw buffer snapshots into MessageStore mutations.
"""

import asyncio
from typing import Any, Callable, Optional

from loguru import logger

from src.config.settings import settings
from src.memory.message_store import MessageStore
from src.streaming.completion_timer import CompletionTimer
from src.streaming.snapshot import extract_snapshot_text


class StreamWatcher:
    """
    Applies stream snapshots for the active conversation.

    Identical repeated snapshots are no-ops. Every accepted snapshot restarts
    the completion timer; a snapshot that changed the store schedules the
    notify callback after a short delay. Pending notifications are coalesced.
    """

    def __init__(
        self,
        store: MessageStore,
        timer: Optional[CompletionTimer] = None,
        notify: Optional[Callable[[], None]] = None,
        notify_delay: Optional[float] = None,
        is_current: Optional[Callable[[str], bool]] = None,
        on_change: Optional[Callable[[], None]] = None,
    ):
        self.store = store
        self.timer = timer
        self.notify = notify
        self.notify_delay = (
            notify_delay if notify_delay is not None else settings.scroll_notify_delay_seconds
        )
        self._is_current = is_current
        self._on_change = on_change
        self._notify_handle: Optional[asyncio.TimerHandle] = None

    def on_snapshot(self, conversation_id: str, raw: Any) -> bool:
        """
        Apply one snapshot.

        With a timer or notify callback attached this must run on the event
        loop; otherwise RuntimeError is raised before the store is touched.

        Args:
            conversation_id: Conversation the snapshot belongs to
            raw: String or object carrying the accumulated text

        Returns:
            True if the store changed
        """
        if self._is_current is not None and not self._is_current(conversation_id):
            logger.debug(f"Dropping stale snapshot for conversation {conversation_id}")
            return False

        text = extract_snapshot_text(raw)
        if not text.strip():
            return False

        if self.timer is not None or self.notify is not None:
            asyncio.get_running_loop()

        if self.timer is not None:
            self.timer.restart(conversation_id)

        changed = self.store.upsert_streaming(conversation_id, text)
        if changed:
            if self._on_change is not None:
                self._on_change()
            self._schedule_notify()
        return changed

    def cancel_notify(self) -> None:
        if self._notify_handle is not None:
            self._notify_handle.cancel()
            self._notify_handle = None

    def _schedule_notify(self) -> None:
        if self.notify is None or self._notify_handle is not None:
            return
        loop = asyncio.get_running_loop()
        self._notify_handle = loop.call_later(self.notify_delay, self._run_notify)

    def _run_notify(self) -> None:
        self._notify_handle = None
        if self.notify is not None:
            self.notify()
