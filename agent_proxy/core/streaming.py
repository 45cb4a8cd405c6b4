"""Simulated incremental delivery over a reply-at-once gateway

The pipeline has two phases:

1. acquire: obtain the complete reply (one gateway round trip)
2. segment: lazily cut the reply into fixed-size fragments and emit them

Every stream ends with exactly one finish event followed by exactly one
end event. A gateway failure in phase 1 becomes a single error fragment
so the client still sees a well-formed stream. Framers turn the
protocol-neutral events into wire text for each family.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, Iterator, List, Optional

from ..utils import logger
from .errors import GatewayError, InternalFault
from .formatter import (
    FINISH_STOP,
    estimate_tokens,
    iso_timestamp,
    ollama_chunk,
    openai_chunk,
)
from ..models import ollama
from ..models.openai import AssistantMessage

FRAGMENT = "fragment"
FINISH = "finish"
END = "end"

SSE_DONE = "data: [DONE]\n\n"


@dataclass(frozen=True)
class StreamEvent:
    kind: str
    text: str = ""
    error: bool = False


def segment_reply(reply: str, chunk_size: int) -> Iterator[str]:
    """Yield consecutive chunk_size slices of reply, left to right"""
    for start in range(0, len(reply), chunk_size):
        yield reply[start:start + chunk_size]


class StreamEmitter:
    """Turn one acquired reply into an ordered event stream"""

    def __init__(
        self,
        acquire: Callable[[], Awaitable[str]],
        chunk_size: int,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
    ):
        """
        Args:
            acquire: Coroutine factory returning the complete reply
            chunk_size: Characters per fragment
            is_disconnected: Optional probe reporting a gone client
        """
        self.acquire = acquire
        self.chunk_size = chunk_size
        self.is_disconnected = is_disconnected
        self.reply: Optional[str] = None
        self.stopped = False

    async def _client_gone(self) -> bool:
        if self.is_disconnected is None:
            return False
        return await self.is_disconnected()

    async def _fragments(self) -> Iterator[StreamEvent]:
        try:
            self.reply = await self.acquire()
        except GatewayError as e:
            return iter([StreamEvent(FRAGMENT, f"Error: {e.message}", error=True)])
        except Exception:
            logger.exception("Unexpected failure while acquiring streamed reply")
            return iter([StreamEvent(FRAGMENT, f"Error: {InternalFault().message}", error=True)])
        return (StreamEvent(FRAGMENT, text) for text in segment_reply(self.reply, self.chunk_size))

    async def events(self) -> AsyncIterator[StreamEvent]:
        fragments = await self._fragments()
        for fragment in fragments:
            if await self._client_gone():
                self.stopped = True
                logger.info("Client disconnected, stream stopped", event_type="stream_cancelled")
                return
            yield fragment
        yield StreamEvent(FINISH)
        yield StreamEvent(END)


def sse_data(payload: dict) -> str:
    """Format a dict as a Server-Sent Events data line"""
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


class SSEFramer:
    """OpenAI chat.completion.chunk events over text/event-stream"""

    media_type = "text/event-stream"

    def __init__(self, completion_id: str, created: int, model: str):
        self.completion_id = completion_id
        self.created = created
        self.model = model
        self._first = True

    def _chunk(self, delta: dict, finish_reason: Optional[str] = None) -> str:
        return sse_data(openai_chunk(
            self.completion_id, self.created, self.model, delta, finish_reason
        ))

    def render(self, event: StreamEvent) -> str:
        if event.kind == FRAGMENT:
            delta = {"content": event.text}
            if self._first:
                delta = {"role": "assistant", "content": event.text}
                self._first = False
            return self._chunk(delta)
        if event.kind == FINISH:
            return self._chunk({}, FINISH_STOP)
        return SSE_DONE


class OllamaFramer:
    """Ollama /api/chat records carried as Server-Sent Events

    Fragments are done=false records and the done=true record is the finish
    signal. The stream then ends with the same data: [DONE] line as the
    OpenAI stream.
    """

    media_type = "text/event-stream"

    def __init__(self, prompt: str, created: int, model: str):
        self.prompt = prompt
        self.created = created
        self.model = model
        self._emitted: List[str] = []

    def render(self, event: StreamEvent) -> str:
        if event.kind == FRAGMENT:
            if not event.error:
                self._emitted.append(event.text)
            return sse_data(ollama_chunk(self.model, self.created, event.text))
        if event.kind == FINISH:
            record = ollama.ChatResponse(
                model=self.model,
                created_at=iso_timestamp(self.created),
                message=AssistantMessage(content=""),
                done_reason=FINISH_STOP,
                prompt_eval_count=estimate_tokens(self.prompt),
                eval_count=estimate_tokens("".join(self._emitted)),
            )
            return sse_data(record.model_dump())
        return SSE_DONE


async def frame_stream(emitter: StreamEmitter, framer) -> AsyncIterator[str]:
    """Render emitter events through a framer, skipping empty output"""
    try:
        async for event in emitter.events():
            text = framer.render(event)
            if text:
                yield text
    except asyncio.CancelledError:
        logger.info("Stream cancelled by server", event_type="stream_cancelled")
        raise
