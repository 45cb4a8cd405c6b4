"""Success envelopes for both protocol families"""

import math
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..models.config import ModelConfig
from ..models.openai import (
    AssistantMessage,
    ChatCompletionResponse,
    ChatCompletionStreamResponse,
    Choice,
    ModelInfo,
    ModelListResponse,
    StreamChoice,
    Usage,
)
from ..models import ollama

# Usage counts are an estimate: characters / CHARS_PER_TOKEN, rounded up.
# They are never exact tokenization.
CHARS_PER_TOKEN = 4

FINISH_STOP = "stop"

# Fixed creation time advertised for the agent model
MODEL_CREATED = 1700000000


def estimate_tokens(text: str) -> int:
    """Approximate token count from character length"""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def new_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex[:29]}"


def iso_timestamp(created: int) -> str:
    return datetime.fromtimestamp(created, timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class CompletionEnvelope:
    """Protocol-neutral completion, rendered per family at the edge"""
    id: str
    created: int
    model: str
    content: str
    finish_reason: str
    usage: Usage


def estimate_usage(prompt: str, reply: str) -> Usage:
    """Length-based usage estimate"""
    return Usage(
        prompt_tokens=estimate_tokens(prompt),
        completion_tokens=estimate_tokens(reply),
        total_tokens=estimate_tokens(prompt + reply),
    )


def build_envelope(
    prompt: str,
    reply: str,
    model: str,
    completion_id: Optional[str] = None,
    created: Optional[int] = None,
) -> CompletionEnvelope:
    """Wrap a gateway reply into a completion envelope"""
    return CompletionEnvelope(
        id=completion_id or new_completion_id(),
        created=created if created is not None else int(time.time()),
        model=model,
        content=reply,
        finish_reason=FINISH_STOP,
        usage=estimate_usage(prompt, reply),
    )


def openai_completion(envelope: CompletionEnvelope) -> Dict[str, Any]:
    """OpenAI chat.completion object"""
    return ChatCompletionResponse(
        id=envelope.id,
        created=envelope.created,
        model=envelope.model,
        choices=[
            Choice(
                index=0,
                message=AssistantMessage(content=envelope.content),
                finish_reason=envelope.finish_reason,
            )
        ],
        usage=envelope.usage,
    ).model_dump()


def openai_chunk(
    completion_id: str,
    created: int,
    model: str,
    delta: Dict[str, Any],
    finish_reason: Optional[str] = None,
) -> Dict[str, Any]:
    """OpenAI chat.completion.chunk object"""
    return ChatCompletionStreamResponse(
        id=completion_id,
        created=created,
        model=model,
        choices=[StreamChoice(index=0, delta=delta, finish_reason=finish_reason)],
    ).model_dump()


def ollama_completion(envelope: CompletionEnvelope) -> Dict[str, Any]:
    """Ollama /api/chat reply object"""
    return ollama.ChatResponse(
        model=envelope.model,
        created_at=iso_timestamp(envelope.created),
        message=AssistantMessage(content=envelope.content),
        done_reason=envelope.finish_reason,
        prompt_eval_count=envelope.usage.prompt_tokens,
        eval_count=envelope.usage.completion_tokens,
    ).model_dump()


def ollama_chunk(model: str, created: int, content: str) -> Dict[str, Any]:
    """Intermediate Ollama stream record"""
    return ollama.ChatStreamRecord(
        model=model,
        created_at=iso_timestamp(created),
        message=AssistantMessage(content=content),
    ).model_dump()


def model_list(config: ModelConfig) -> Dict[str, Any]:
    """Payload for GET /v1/models"""
    return ModelListResponse(
        data=[
            ModelInfo(
                id=config.name,
                created=MODEL_CREATED,
                owned_by=config.owned_by,
            )
        ]
    ).model_dump()


def model_tags(config: ModelConfig) -> Dict[str, Any]:
    """Payload for GET /api/tags"""
    return ollama.TagsResponse(
        models=[
            ollama.TagModel(
                name=config.name,
                model=config.name,
                modified_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                digest=config.owned_by,
                details=ollama.ModelDetails(family=config.owned_by),
            )
        ]
    ).model_dump()
