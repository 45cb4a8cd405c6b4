"""Request normalization into a single canonical prompt

Both protocol families reduce to the same pipeline:

    payload -> ChatRequest (MessagesRequest | PromptRequest)
            -> List[Message]
            -> canonical prompt text

Rendering is lossy and one-directional. Non-text content parts (images,
audio, ...) are dropped without error because the agent gateway only
accepts text.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as SchemaError

from ..models.openai import (
    ChatRequest,
    ContentPart,
    Message,
    MessagesRequest,
    PromptRequest,
)
from .errors import OLLAMA, ValidationError

SYSTEM_TAG = "[System]"
ASSISTANT_TAG = "[Assistant]"
MESSAGE_SEPARATOR = "\n\n"
PART_SEPARATOR = "\n"

MESSAGES_REQUIRED = "messages is required and must be a non-empty array"


def _schema_message(exc: SchemaError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(p) for p in first.get("loc", ()))
    if location:
        return f"Invalid request: {location}: {first.get('msg')}"
    return f"Invalid request: {first.get('msg')}"


def parse_chat_request(payload: Dict[str, Any], family: str) -> ChatRequest:
    """
    Classify a decoded JSON body into one of the known request shapes

    Args:
        payload: Decoded JSON object
        family: Protocol family the request arrived on

    Returns:
        MessagesRequest or PromptRequest

    Raises:
        ValidationError: If the body matches no accepted shape
    """
    messages = payload.get("messages")
    prompt = payload.get("prompt")

    try:
        if family == OLLAMA:
            has_messages = isinstance(messages, list) and len(messages) > 0
            has_prompt = isinstance(prompt, str) and prompt != ""
            if has_messages and has_prompt:
                # /api/chat callers may send history plus a trailing prompt
                merged = dict(payload)
                merged["messages"] = list(messages) + [{"role": "user", "content": prompt}]
                return MessagesRequest.model_validate(merged)
            if has_messages:
                return MessagesRequest.model_validate(payload)
            if has_prompt:
                return PromptRequest.model_validate(payload)
            raise ValidationError("messages or prompt is required")

        if not isinstance(messages, list) or not messages:
            raise ValidationError(MESSAGES_REQUIRED)
        return MessagesRequest.model_validate(payload)
    except SchemaError as e:
        raise ValidationError(_schema_message(e))


def to_messages(request: ChatRequest) -> List[Message]:
    """Reduce any request shape to its ordered message list"""
    if isinstance(request, PromptRequest):
        return [Message(role="user", content=request.prompt)]
    return list(request.messages)


def _part_text(part: Any) -> Optional[str]:
    """Text of a text-typed part, None for anything else"""
    if isinstance(part, ContentPart):
        part = part.model_dump()
    if not isinstance(part, dict) or part.get("type") != "text":
        return None
    text = part.get("text")
    return text if isinstance(text, str) else ""


def content_text(content: Union[str, List[Any], None]) -> str:
    """Flatten message content to text, keeping only text-typed parts"""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    texts = (_part_text(part) for part in content)
    return PART_SEPARATOR.join(text for text in texts if text is not None)


def render_message(message: Message) -> str:
    """Render one message as a prompt line according to its role"""
    text = content_text(message.content)
    role = (message.role or "user").lower()
    if role == "system":
        return f"{SYSTEM_TAG} {text}"
    if role == "assistant":
        return f"{ASSISTANT_TAG} {text}"
    return text


def render_prompt(messages: List[Message]) -> str:
    """Join rendered messages, in order, into the canonical prompt"""
    return MESSAGE_SEPARATOR.join(render_message(m) for m in messages)


def normalize(payload: Dict[str, Any], family: str) -> tuple:
    """
    Parse and render a request body

    Returns:
        Tuple of (ChatRequest, messages, canonical prompt)
    """
    request = parse_chat_request(payload, family)
    messages = to_messages(request)
    return request, messages, render_prompt(messages)
