"""Ollama API compatible data models"""

from typing import List
from pydantic import BaseModel, Field

from .openai import AssistantMessage


class ChatResponse(BaseModel):
    """Final (or only) record of an /api/chat reply"""
    model: str
    created_at: str
    message: AssistantMessage
    done: bool = True
    done_reason: str = "stop"
    prompt_eval_count: int = 0
    eval_count: int = 0


class ChatStreamRecord(BaseModel):
    """Intermediate record of a streamed /api/chat reply"""
    model: str
    created_at: str
    message: AssistantMessage
    done: bool = False


class ModelDetails(BaseModel):
    """Model metadata block"""
    parent_model: str = ""
    format: str = "agent"
    family: str
    parameter_size: str = "cloud"
    quantization_level: str = "none"


class TagModel(BaseModel):
    """Single entry of the tags listing"""
    name: str
    model: str
    modified_at: str
    size: int = 0
    digest: str
    details: ModelDetails


class TagsResponse(BaseModel):
    """Response for /api/tags"""
    models: List[TagModel] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Ollama error body"""
    error: str
