"""Core gateway components"""

from .config_loader import ConfigLoader, load_config
from .config_validator import ConfigValidator, validate_config
from .errors import (
    GatewayError,
    ValidationError,
    UpstreamUnavailable,
    UpstreamRejected,
    InternalFault,
)
from .normalizer import normalize, parse_chat_request, render_prompt, to_messages
from .gateway_client import GatewayClient, extract_reply
from .streaming import StreamEmitter, StreamEvent, SSEFramer, OllamaFramer

__all__ = [
    "ConfigLoader",
    "load_config",
    "ConfigValidator",
    "validate_config",
    "GatewayError",
    "ValidationError",
    "UpstreamUnavailable",
    "UpstreamRejected",
    "InternalFault",
    "normalize",
    "parse_chat_request",
    "render_prompt",
    "to_messages",
    "GatewayClient",
    "extract_reply",
    "StreamEmitter",
    "StreamEvent",
    "SSEFramer",
    "OllamaFramer",
]
