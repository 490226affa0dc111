"""
Shared fixtures: fake collaborators for the chat session.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest

from src.memory.message_store import MessageStore
from src.models.chat import (
    ConversationHandle,
    ConversationInfo,
    ConversationSummary,
    DurableMessage,
)

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def at(seconds: float) -> datetime:
    """Timestamp `seconds` after BASE_TIME."""
    return BASE_TIME + timedelta(seconds=seconds)


def durable(message_id: str, text: str, is_user: bool, seconds: float) -> DurableMessage:
    return DurableMessage(id=message_id, text=text, is_user=is_user, timestamp=at(seconds))


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> None:
    """Wait until predicate() is true or fail after timeout."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


class FakeConversationService:
    """Scriptable conversation service recording every call"""

    def __init__(self):
        self.calls: List[tuple] = []
        self.fail_with: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.infos: Dict[str, ConversationInfo] = {}
        self.summaries: List[ConversationSummary] = []
        self._counter = 0

    async def _respond(self) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with

    async def create_conversation(self, prompt: str, model: str) -> ConversationHandle:
        self.calls.append(("create", prompt, model))
        await self._respond()
        self._counter += 1
        return ConversationHandle(
            conversation_id=f"c{self._counter}",
            stream_id=f"s{self._counter}",
            thread_id=f"t{self._counter}",
        )

    async def continue_conversation(self, conversation_id: str, prompt: str, model: str) -> ConversationHandle:
        self.calls.append(("continue", conversation_id, prompt, model))
        await self._respond()
        self._counter += 1
        return ConversationHandle(conversation_id=conversation_id, stream_id=f"s{self._counter}")

    async def delete_conversation(self, conversation_id: str) -> None:
        self.calls.append(("delete", conversation_id))
        await self._respond()

    async def list_conversations(self) -> List[ConversationSummary]:
        self.calls.append(("list",))
        await self._respond()
        return list(self.summaries)

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationInfo]:
        self.calls.append(("get", conversation_id))
        return self.infos.get(conversation_id)


class FakeMessageLoader:
    """Returns canned durable messages per conversation"""

    def __init__(self):
        self.records: Dict[str, List[DurableMessage]] = {}
        self.calls: List[str] = []

    async def load_messages(self, conversation_id: str) -> List[DurableMessage]:
        self.calls.append(conversation_id)
        return list(self.records.get(conversation_id, []))


class FakeStreamSource:
    """Stream source fed by the test through per-stream queues"""

    def __init__(self):
        self.queues: Dict[str, asyncio.Queue] = {}
        self.subscribed: List[str] = []

    def queue(self, stream_id: str) -> asyncio.Queue:
        return self.queues.setdefault(stream_id, asyncio.Queue())

    async def push(self, stream_id: str, raw: Any) -> None:
        await self.queue(stream_id).put(raw)

    async def end(self, stream_id: str) -> None:
        await self.queue(stream_id).put(None)

    async def subscribe(self, stream_id: str):
        self.subscribed.append(stream_id)
        queue = self.queue(stream_id)
        while True:
            raw = await queue.get()
            if raw is None:
                return
            yield raw


class FakeLLM:
    """Chat model stand-in whose astream yields fixed chunks"""

    def __init__(self, chunks: List[Any], error: Optional[Exception] = None):
        self.chunks = chunks
        self.error = error
        self.received: Optional[list] = None

    async def astream(self, messages):
        self.received = list(messages)
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield SimpleNamespace(content=chunk)
        if self.error is not None:
            raise self.error


class NotifyRecorder:
    def __init__(self):
        self.count = 0

    def __call__(self) -> None:
        self.count += 1


@pytest.fixture
def store():
    return MessageStore()


@pytest.fixture
def service():
    return FakeConversationService()


@pytest.fixture
def loader():
    return FakeMessageLoader()


@pytest.fixture
def stream_source():
    return FakeStreamSource()


@pytest.fixture
def notify():
    return NotifyRecorder()
