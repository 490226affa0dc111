"""
Chat endpoints

Drive the server-side ChatSession and stream its state to the client over
Server-Sent Events (SSE).
"""

import asyncio
from typing import AsyncGenerator, List

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from loguru import logger

from src.api.events import EventBroadcaster, session_state
from src.api.schemas.chat import (
    SelectModelRequest,
    SendMessageRequest,
    SendMessageResponse,
    SessionState,
    StreamEvent,
)
from src.config.constants import MODEL_IDS, MODEL_OPTIONS, SUGGESTED_QUESTIONS
from src.models.chat import ConversationSummary, ModelOption
from src.session.chat_session import ChatSession
from src.utils.errors import UnknownModelError


router = APIRouter(prefix="/api/chat", tags=["chat"])

KEEP_ALIVE_SECONDS = 15.0


def _session(request: Request) -> ChatSession:
    return request.app.state.session


@router.get("/models", response_model=List[ModelOption])
async def list_models():
    """Models offered by the model picker"""
    return [ModelOption(**option) for option in MODEL_OPTIONS]


@router.put("/model", response_model=SessionState)
async def select_model(body: SelectModelRequest, request: Request):
    session = _session(request)
    try:
        session.select_model(body.model)
    except UnknownModelError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return session_state(session)


@router.get("/suggestions", response_model=List[str])
async def list_suggestions():
    """Suggested questions for the welcome screen"""
    return SUGGESTED_QUESTIONS


@router.get("/messages", response_model=SessionState)
async def get_messages(request: Request):
    return session_state(_session(request))


@router.post("/messages", response_model=SendMessageResponse)
async def send_message(body: SendMessageRequest, request: Request):
    """
    Send a message on the current conversation

    Creates a conversation when none is selected. The assistant reply arrives
    through the `/api/chat/events` stream.
    """
    session = _session(request)
    if body.model is not None and body.model not in MODEL_IDS:
        raise HTTPException(status_code=422, detail=f"Unknown model: {body.model}")
    accepted = await session.send_message(body.text, model=body.model)
    return SendMessageResponse(accepted=accepted, state=session_state(session))


@router.post("/suggestions", response_model=SendMessageResponse)
async def send_suggestion(body: SendMessageRequest, request: Request):
    """Start a new conversation with a suggested question"""
    session = _session(request)
    accepted = await session.send_suggested_question(body.text)
    return SendMessageResponse(accepted=accepted, state=session_state(session))


@router.post("/new", response_model=SessionState)
async def start_new(request: Request):
    session = _session(request)
    session.start_new()
    return session_state(session)


@router.get("/conversations", response_model=List[ConversationSummary])
async def list_conversations(request: Request):
    return await _session(request).list_conversations()


@router.post("/conversations/{conversation_id}/select", response_model=SessionState)
async def select_conversation(conversation_id: str, request: Request):
    session = _session(request)
    await session.load_conversation(conversation_id)
    return session_state(session)


@router.post("/refresh", response_model=SessionState)
async def refresh(request: Request):
    """Reload the current conversation from durable storage"""
    session = _session(request)
    await session.refresh()
    return session_state(session)


@router.delete("/conversations/{conversation_id}", response_model=SessionState)
async def delete_conversation(conversation_id: str, request: Request):
    session = _session(request)
    await session.delete_conversation(conversation_id)
    return session_state(session)


async def stream_session_events(request: Request, broadcaster: EventBroadcaster) -> AsyncGenerator[str, None]:
    """
    Yield SSE-formatted session events until the client disconnects

    The current state is sent first, then every state/scroll event.
    """
    queue = broadcaster.subscribe()
    logger.info(f"SSE client connected ({broadcaster.client_count} total)")
    try:
        initial = StreamEvent(event="state", state=session_state(_session(request)))
        yield f"data: {initial.model_dump_json()}\n\n"
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=KEEP_ALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue
            yield f"data: {event.model_dump_json()}\n\n"
    finally:
        broadcaster.unsubscribe(queue)
        logger.info("SSE client disconnected")


@router.get("/events")
async def events(request: Request):
    """
    SSE stream of session events

    **Event Types:**

    1. **state** - Visible message list changed
    ```json
    {"event": "state", "state": {"conversation_id": "...", "messages": [...]}}
    ```

    2. **scroll** - Scroll the message list into view
    ```json
    {"event": "scroll"}
    ```
    """
    return StreamingResponse(
        stream_session_events(request, request.app.state.broadcaster),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
