"""Data models for the proxy"""

from .openai import (
    ContentPart,
    Message,
    MessagesRequest,
    PromptRequest,
    ChatRequest,
    Usage,
    AssistantMessage,
    Choice,
    ChatCompletionResponse,
    StreamChoice,
    ChatCompletionStreamResponse,
    ModelInfo,
    ModelListResponse,
    ErrorDetail,
    ErrorResponse,
)

from . import ollama

from .config import (
    ServerConfig,
    GatewayConfig,
    ModelConfig,
    StreamingConfig,
    AppConfig,
)

__all__ = [
    # OpenAI models
    "ContentPart",
    "Message",
    "MessagesRequest",
    "PromptRequest",
    "ChatRequest",
    "Usage",
    "AssistantMessage",
    "Choice",
    "ChatCompletionResponse",
    "StreamChoice",
    "ChatCompletionStreamResponse",
    "ModelInfo",
    "ModelListResponse",
    "ErrorDetail",
    "ErrorResponse",
    # Ollama models
    "ollama",
    # Config models
    "ServerConfig",
    "GatewayConfig",
    "ModelConfig",
    "StreamingConfig",
    "AppConfig",
]
