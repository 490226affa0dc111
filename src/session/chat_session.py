"""
Chat session orchestration.

A ChatSession owns the message store of the conversation on screen and wires
the stream watcher, the completion timer and the persistence merger to the
external conversation service. It is driven from a single asyncio event loop:
every store mutation happens on that loop, and external calls are the only
suspension points.

Switching conversations (`select_conversation`, `start_new`) opens a new
epoch. Snapshots, durable loads and timer fires tagged with a conversation
that is no longer current are dropped, and send completions that resolve
after an epoch change do not touch session state.
"""

import asyncio
import itertools
from typing import Any, Callable, Dict, Iterable, List, Optional
from uuid import uuid4

from loguru import logger

from src.config.constants import (
    ERROR_MESSAGE_PREFIX,
    MODEL_IDS,
    RETIRED_STREAM_PREFIX,
    USER_MESSAGE_PREFIX,
)
from src.config.settings import settings
from src.memory.message_store import MessageStore
from src.memory.persistence_merger import DurableRecord, PersistenceMerger
from src.models.chat import ConversationHandle, ConversationSummary, Message
from src.services.protocols import ConversationService, MessageLoader, NotifyCallback, StreamSource
from src.streaming.completion_timer import CompletionTimer
from src.streaming.watcher import StreamWatcher
from src.utils.errors import TransportError, UnknownModelError


class ChatSession:
    """State and operations behind one chat screen"""

    def __init__(
        self,
        service: ConversationService,
        stream_source: Optional[StreamSource] = None,
        loader: Optional[MessageLoader] = None,
        notify: Optional[NotifyCallback] = None,
        on_change: Optional[Callable[[], None]] = None,
        store: Optional[MessageStore] = None,
        model: Optional[str] = None,
        quiet_seconds: Optional[float] = None,
        notify_delay: Optional[float] = None,
        debounce_seconds: Optional[float] = None,
    ):
        """
        Args:
            service: External conversation service
            stream_source: Subscription to stream snapshots
            loader: Durable message loader
            notify: UI callback run (delayed) when the list should scroll into view
            on_change: Called synchronously after every store change
            store: Message store (a new one by default)
            model: Initially selected model (defaults to settings.default_model)
            quiet_seconds: Completion timer quiet window
            notify_delay: Delay before the notify callback runs
            debounce_seconds: Window in which identical user text is a double submit
        """
        self.service = service
        self.stream_source = stream_source
        self.loader = loader
        self.store = store if store is not None else MessageStore()
        self.merger = PersistenceMerger()
        self._on_change = on_change

        self.conversation_id: Optional[str] = None
        self.thread_id: Optional[str] = None
        self.stream_id: Optional[str] = None
        self.selected_model = settings.default_model
        if model is not None:
            self.select_model(model)

        self.debounce_seconds = (
            debounce_seconds if debounce_seconds is not None else settings.user_message_debounce_seconds
        )
        self.error_text = settings.error_message_text

        self._epoch = 0
        # conversation id (None for a not yet created one) -> token of the send in flight
        self._in_flight: Dict[Optional[str], int] = {}
        self._send_tokens = itertools.count(1)
        self._subscription: Optional[asyncio.Task] = None

        self.timer = CompletionTimer(
            self.store,
            quiet_seconds=quiet_seconds,
            is_current=self._is_current,
            on_finalize=lambda _conversation_id: self._changed(),
        )
        self.watcher = StreamWatcher(
            self.store,
            timer=self.timer,
            notify=notify,
            notify_delay=notify_delay,
            is_current=self._is_current,
            on_change=self._changed,
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def messages(self) -> List[Message]:
        """Visible messages in display order."""
        return self.store.messages

    @property
    def is_sending(self) -> bool:
        return bool(self._in_flight)

    @property
    def epoch(self) -> int:
        return self._epoch

    def select_model(self, model_id: str) -> None:
        if model_id not in MODEL_IDS:
            raise UnknownModelError(f"Unknown model: {model_id}")
        self.selected_model = model_id

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    async def send_message(self, text: str, model: Optional[str] = None) -> bool:
        """
        Send user input on the current conversation, creating one if needed.

        The user message is shown immediately. On failure an assistant error
        message is appended and the user message is kept.

        Returns:
            True if the conversation service accepted the prompt
        """
        prompt = (text or "").strip()
        if not prompt:
            return False

        key = self.conversation_id
        if key in self._in_flight:
            logger.debug(f"Dropping send while another is in flight for conversation {key}")
            return False
        if self.store.has_recent_user_text(prompt, self.debounce_seconds):
            logger.debug("Dropping duplicate submit of the same text")
            return False

        model = model or self.selected_model
        epoch = self._epoch
        token = next(self._send_tokens)
        self._in_flight[key] = token
        self._append(Message(id=f"{USER_MESSAGE_PREFIX}{uuid4().hex}", text=prompt, is_user=True))

        try:
            if key is not None:
                handle = await self.service.continue_conversation(key, prompt, model)
            else:
                handle = await self.service.create_conversation(prompt, model)
        except Exception as e:
            error = TransportError("continue_conversation" if key is not None else "create_conversation", e)
            if epoch != self._epoch:
                logger.debug(f"Ignoring failure from a previous conversation: {error}")
                return False
            logger.exception(f"Error with chat: {error}")
            self._append(Message(id=f"{ERROR_MESSAGE_PREFIX}{uuid4().hex}", text=self.error_text, is_user=False))
            return False
        finally:
            if self._in_flight.get(key) == token:
                del self._in_flight[key]

        if epoch != self._epoch:
            logger.debug(f"Ignoring send result for conversation {handle.conversation_id}; conversation switched")
            return False

        self._track(handle)
        return True

    async def send_suggested_question(self, question: str) -> bool:
        """Start a new conversation with a suggested question."""
        self.start_new()
        return await self.send_message(question)

    def _track(self, handle: ConversationHandle) -> None:
        conversation_id = handle.conversation_id
        if (
            self.conversation_id == conversation_id
            and self.stream_id is not None
            and self.stream_id != handle.stream_id
        ):
            self.timer.cancel(conversation_id)
            if self.store.retire_streaming(conversation_id, f"{RETIRED_STREAM_PREFIX}{self.stream_id}"):
                self._changed()

        self.conversation_id = conversation_id
        self.stream_id = handle.stream_id
        if handle.thread_id is not None:
            self.thread_id = handle.thread_id
        self._subscribe(conversation_id, handle.stream_id)

    # ------------------------------------------------------------------
    # Conversation switching
    # ------------------------------------------------------------------

    def select_conversation(self, conversation_id: str) -> None:
        """Show another conversation. The store starts empty until a durable load."""
        self._new_epoch()
        self.store.clear()
        self.conversation_id = conversation_id
        self.thread_id = None
        self.stream_id = None
        self._changed()
        logger.debug(f"Selected conversation {conversation_id} (epoch {self._epoch})")

    async def load_conversation(self, conversation_id: str) -> bool:
        """
        Select a conversation and populate it from durable storage.

        If its latest prompt has no stored reply yet, the conversation's
        stream is subscribed to as well.
        """
        self.select_conversation(conversation_id)
        epoch = self._epoch

        try:
            info = await self.service.get_conversation(conversation_id)
        except Exception as e:
            logger.error(f"Failed to fetch conversation {conversation_id}: {e}")
            info = None
        if epoch != self._epoch:
            return False

        if info is not None:
            self.thread_id = info.thread_id
            self.stream_id = info.stream_id

        loaded = await self.refresh()
        if epoch != self._epoch:
            return False

        if self.stream_id is not None and self._reply_pending():
            self._subscribe(conversation_id, self.stream_id)
        return loaded

    def start_new(self) -> None:
        """Reset to an empty, not yet created conversation."""
        self._new_epoch()
        self.store.clear()
        self.conversation_id = None
        self.thread_id = None
        self.stream_id = None
        self._in_flight.clear()
        self._changed()

    async def delete_conversation(self, conversation_id: str) -> bool:
        """Delete a conversation; deleting the current one starts a new conversation."""
        try:
            await self.service.delete_conversation(conversation_id)
        except Exception as e:
            logger.exception(f"Error deleting chat: {TransportError('delete_conversation', e)}")
            self._append(Message(id=f"{ERROR_MESSAGE_PREFIX}{uuid4().hex}", text=self.error_text, is_user=False))
            return False

        if conversation_id == self.conversation_id:
            self.start_new()
        return True

    async def list_conversations(self) -> List[ConversationSummary]:
        try:
            return await self.service.list_conversations()
        except Exception as e:
            logger.error(f"Failed to list conversations: {e}")
            return []

    # ------------------------------------------------------------------
    # Inbound callbacks
    # ------------------------------------------------------------------

    def on_snapshot(self, conversation_id: str, raw: Any) -> bool:
        """Apply a stream snapshot for a conversation."""
        return self.watcher.on_snapshot(conversation_id, raw)

    async def refresh(self) -> bool:
        """Reload durable messages of the current conversation and merge them."""
        conversation_id = self.conversation_id
        if conversation_id is None or self.loader is None:
            return False
        try:
            records = await self.loader.load_messages(conversation_id)
        except Exception as e:
            logger.error(f"Failed to load messages for conversation {conversation_id}: {e}")
            return False
        return self.apply_durable_messages(conversation_id, records)

    def apply_durable_messages(self, conversation_id: str, records: Iterable[DurableRecord]) -> bool:
        """Merge a durable load result into the store unless it is stale."""
        if not self._is_current(conversation_id):
            logger.debug(f"Dropping stale durable load for conversation {conversation_id}")
            return False
        self.merger.apply(self.store, records, conversation_id)
        self._changed()
        return True

    async def close(self) -> None:
        """Cancel timers and the stream subscription."""
        task = self._subscription
        self._new_epoch()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _is_current(self, conversation_id: Optional[str]) -> bool:
        return conversation_id is not None and conversation_id == self.conversation_id

    def _reply_pending(self) -> bool:
        messages = self.store.messages
        return bool(messages) and messages[-1].is_user

    def _new_epoch(self) -> None:
        self._epoch += 1
        self.timer.cancel_all()
        self.watcher.cancel_notify()
        self._cancel_subscription()

    def _append(self, message: Message) -> None:
        if self.store.append(message):
            self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def _subscribe(self, conversation_id: str, stream_id: str) -> None:
        self._cancel_subscription()
        if self.stream_source is None:
            return
        self._subscription = asyncio.create_task(self._consume(conversation_id, stream_id))

    def _cancel_subscription(self) -> None:
        if self._subscription is not None and not self._subscription.done():
            self._subscription.cancel()
        self._subscription = None

    async def _consume(self, conversation_id: str, stream_id: str) -> None:
        try:
            async for raw in self.stream_source.subscribe(stream_id):
                self.on_snapshot(conversation_id, raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Stream subscription {stream_id} failed: {e}")
