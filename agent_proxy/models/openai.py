"""OpenAI API compatible data models"""

from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, Field


class ContentPart(BaseModel):
    """Typed content part of a multimodal message"""
    type: Optional[str] = None
    text: Optional[str] = None

    class Config:
        extra = "allow"


class Message(BaseModel):
    """Chat message model"""
    role: Optional[str] = "user"
    # Parts stay raw; only text-typed ones are read, anything else is ignored
    content: Union[str, List[Any], None] = None
    name: Optional[str] = None

    class Config:
        extra = "allow"


class MessagesRequest(BaseModel):
    """Request carrying a role/content message array"""
    messages: List[Message] = Field(min_length=1)
    model: Optional[str] = None
    stream: Optional[bool] = False
    user: Optional[str] = None

    class Config:
        extra = "allow"
        protected_namespaces = ()


class PromptRequest(BaseModel):
    """Request carrying a single flat prompt"""
    prompt: str = Field(min_length=1)
    model: Optional[str] = None
    stream: Optional[bool] = False
    user: Optional[str] = None

    class Config:
        extra = "allow"
        protected_namespaces = ()


ChatRequest = Union[MessagesRequest, PromptRequest]


class Usage(BaseModel):
    """Approximate token usage information"""
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class AssistantMessage(BaseModel):
    """Assistant reply message"""
    role: str = "assistant"
    content: str


class Choice(BaseModel):
    """Single completion choice"""
    index: int
    message: AssistantMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """Response model for chat completions endpoint"""
    id: str
    object: str = "chat.completion"
    created: int
    model: str
    choices: List[Choice]
    usage: Usage


class StreamChoice(BaseModel):
    """Single streaming choice"""
    index: int
    delta: Dict[str, Any]
    finish_reason: Optional[str] = None


class ChatCompletionStreamResponse(BaseModel):
    """Streaming response chunk"""
    id: str
    object: str = "chat.completion.chunk"
    created: int
    model: str
    choices: List[StreamChoice]


class ModelInfo(BaseModel):
    """Model information"""
    id: str
    object: str = "model"
    created: int
    owned_by: str
    permission: List[Any] = Field(default_factory=list)


class ModelListResponse(BaseModel):
    """Response for models list endpoint"""
    object: str = "list"
    data: List[ModelInfo]


class ErrorDetail(BaseModel):
    """Error detail information"""
    message: str
    type: str
    param: Optional[str] = None
    code: Optional[str] = None


class ErrorResponse(BaseModel):
    """Error response model"""
    error: ErrorDetail
