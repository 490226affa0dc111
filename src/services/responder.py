"""
Stream responder

Fills a freshly created stream with an LLM reply: the conversation's thread
history is sent to the selected model and every streamed chunk is appended
to the stream buffer. The stream is always completed, so the reply is
persisted even when generation fails part way.
"""

import asyncio
from typing import Any, Callable, List, Optional, Set, Tuple

from loguru import logger

from src.llm.client import MissingAPIKeyError, create_llm
from src.llm.response_utils import extract_text_from_response
from src.services.in_memory_backend import InMemoryChatBackend


class StreamResponder:
    """Streams LLM output into backend streams"""

    def __init__(
        self,
        backend: InMemoryChatBackend,
        llm_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.backend = backend
        self.llm_factory = llm_factory or create_llm
        self._tasks: Set[asyncio.Task] = set()

    def attach(self) -> "StreamResponder":
        """Respond to every stream the backend creates from now on."""
        self.backend.on_stream_created(self._on_stream_created)
        return self

    def _on_stream_created(self, conversation_id: str, stream_id: str, prompt: str, model: str) -> None:
        task = asyncio.create_task(self.respond(conversation_id, stream_id, prompt, model))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def build_messages(self, conversation_id: str, prompt: str) -> List[Tuple[str, str]]:
        """Conversation history as (role, content) pairs, ending with the prompt."""
        history = self.backend.history(conversation_id)
        if not history or history[-1] != ("user", prompt):
            history.append(("user", prompt))
        return history

    async def respond(self, conversation_id: str, stream_id: str, prompt: str, model: str) -> None:
        """Generate a reply for one stream."""
        logger.info(f"Stream started - conversation={conversation_id}, stream={stream_id}, model={model}")
        try:
            try:
                llm = self.llm_factory(model)
            except MissingAPIKeyError as e:
                logger.error(f"❌ {e}")
                await self.backend.append_to_stream(stream_id, f"Error: {e}")
                return

            chunks = 0
            try:
                async for chunk in llm.astream(self.build_messages(conversation_id, prompt)):
                    text = extract_text_from_response(chunk)
                    if text:
                        chunks += 1
                        await self.backend.append_to_stream(stream_id, text)
            except Exception as e:
                logger.exception("Stream generation failed")
                await self.backend.append_to_stream(stream_id, f"\n\nError: {e}")
            else:
                logger.info(f"Stream completed - stream={stream_id}, chunks={chunks}")
        finally:
            await self.backend.complete_stream(stream_id, model)

    async def wait_idle(self) -> None:
        """Wait until every in-flight reply has finished."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.wait_idle()
