"""
Tests for the in-memory conversation backend
"""

import asyncio

import pytest

from src.services.in_memory_backend import InMemoryChatBackend
from src.utils.errors import ConversationNotFoundError


@pytest.mark.asyncio
async def test_create_saves_prompt_and_truncates_title():
    backend = InMemoryChatBackend()
    prompt = "x" * 60

    handle = await backend.create_conversation(prompt, "gpt-4o")

    info = await backend.get_conversation(handle.conversation_id)
    assert info.title == "x" * 50 + "..."
    assert info.stream_id == handle.stream_id
    assert info.thread_id == handle.thread_id

    messages = await backend.load_messages(handle.conversation_id)
    assert [(m.text, m.is_user) for m in messages] == [(prompt, True)]


@pytest.mark.asyncio
async def test_short_title_is_kept():
    backend = InMemoryChatBackend()
    handle = await backend.create_conversation("Hello", "gpt-4o")

    summaries = await backend.list_conversations()
    assert [(s.id, s.title) for s in summaries] == [(handle.conversation_id, "Hello")]


@pytest.mark.asyncio
async def test_continue_allocates_new_stream():
    backend = InMemoryChatBackend()
    first = await backend.create_conversation("Hello", "gpt-4o")

    second = await backend.continue_conversation(first.conversation_id, "More", "gpt-4o")

    assert second.conversation_id == first.conversation_id
    assert second.stream_id != first.stream_id
    info = await backend.get_conversation(first.conversation_id)
    assert info.stream_id == second.stream_id
    assert info.prompt == "More"
    assert [m.text for m in await backend.load_messages(first.conversation_id)] == ["Hello", "More"]


@pytest.mark.asyncio
async def test_unknown_conversation_raises():
    backend = InMemoryChatBackend()

    with pytest.raises(ConversationNotFoundError):
        await backend.continue_conversation("nope", "Hello", "gpt-4o")
    with pytest.raises(ConversationNotFoundError):
        await backend.delete_conversation("nope")
    with pytest.raises(ConversationNotFoundError):
        await backend.load_messages("nope")


@pytest.mark.asyncio
async def test_delete_removes_conversation():
    backend = InMemoryChatBackend()
    handle = await backend.create_conversation("Hello", "gpt-4o")

    await backend.delete_conversation(handle.conversation_id)

    assert await backend.get_conversation(handle.conversation_id) is None
    assert await backend.list_conversations() == []


@pytest.mark.asyncio
async def test_list_is_newest_first_and_limited():
    backend = InMemoryChatBackend(list_limit=2)
    ids = []
    for prompt in ["one", "two", "three"]:
        ids.append((await backend.create_conversation(prompt, "gpt-4o")).conversation_id)
        await asyncio.sleep(0.001)

    summaries = await backend.list_conversations()

    assert [s.id for s in summaries] == [ids[2], ids[1]]


@pytest.mark.asyncio
async def test_subscribe_yields_accumulated_body_until_done():
    backend = InMemoryChatBackend()
    handle = await backend.create_conversation("Hello", "gpt-4o")
    received = []

    async def consume():
        async for body in backend.subscribe(handle.stream_id):
            received.append(body["text"])

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    await backend.append_to_stream(handle.stream_id, "Hi ")
    await asyncio.sleep(0.01)
    await backend.append_to_stream(handle.stream_id, "there!")
    await asyncio.sleep(0.01)
    await backend.complete_stream(handle.stream_id, "gpt-4o")
    await asyncio.wait_for(consumer, timeout=1.0)

    assert received == ["Hi ", "Hi there!"]


@pytest.mark.asyncio
async def test_complete_persists_reply():
    backend = InMemoryChatBackend()
    handle = await backend.create_conversation("Hello", "gpt-4o")

    await backend.append_to_stream(handle.stream_id, "Hi there!")
    await backend.complete_stream(handle.stream_id, "gpt-4o")
    await backend.append_to_stream(handle.stream_id, " ignored")

    messages = await backend.load_messages(handle.conversation_id)
    assert [(m.text, m.is_user, m.model) for m in messages] == [
        ("Hello", True, None),
        ("Hi there!", False, "gpt-4o"),
    ]
    assert backend.stream_text(handle.stream_id) == "Hi there!"


@pytest.mark.asyncio
async def test_saved_reply_only_grows():
    backend = InMemoryChatBackend()
    handle = await backend.create_conversation("Hello", "gpt-4o")

    first = backend.save_assistant_response(handle.conversation_id, "Hi the", handle.stream_id)
    second = backend.save_assistant_response(handle.conversation_id, "Hi there!", handle.stream_id)
    third = backend.save_assistant_response(handle.conversation_id, "Hi", handle.stream_id)

    assert first == second == third
    replies = [m.text for m in await backend.load_messages(handle.conversation_id) if not m.is_user]
    assert replies == ["Hi there!"]


@pytest.mark.asyncio
async def test_stream_hooks_receive_new_streams():
    backend = InMemoryChatBackend()
    seen = []
    backend.on_stream_created(lambda cid, sid, prompt, model: seen.append((cid, sid, prompt, model)))

    handle = await backend.create_conversation("Hello", "gpt-4o-mini")

    assert seen == [(handle.conversation_id, handle.stream_id, "Hello", "gpt-4o-mini")]


@pytest.mark.asyncio
async def test_subscribe_to_unknown_stream_ends():
    backend = InMemoryChatBackend()
    assert [body async for body in backend.subscribe("missing")] == []
