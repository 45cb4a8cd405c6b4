"""API endpoints"""

import time
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from .. import __version__
from ..core import GatewayClient, normalize
from ..core.errors import OLLAMA, OPENAI
from ..core.formatter import (
    build_envelope,
    estimate_usage,
    model_list,
    model_tags,
    ollama_completion,
    openai_completion,
)
from ..core.streaming import OllamaFramer, SSEFramer, StreamEmitter, frame_stream
from ..models.config import AppConfig
from ..models.openai import ChatRequest
from ..utils import logger
from .dispatcher import decode_json, guarded, read_body

router = APIRouter()

SESSION_LABEL_HEADER = "X-Session-Label"


def get_config(request: Request) -> AppConfig:
    """Get application configuration"""
    return request.app.state.config


def get_gateway(request: Request) -> GatewayClient:
    """Get gateway client"""
    return request.app.state.gateway


def resolve_session_label(request: Request, chat_request: ChatRequest, model: str) -> str:
    """Pick the session label: user field, then header, then per-model default"""
    if chat_request.user:
        return chat_request.user
    header = request.headers.get(SESSION_LABEL_HEADER)
    if header:
        return header
    return f"proxy-{model}"


async def handle_chat(request: Request, family: str):
    """
    Shared chat pipeline for both protocol families

    read body -> normalize -> gateway -> format (or stream)
    """
    config = get_config(request)
    gateway = get_gateway(request)
    completion_id = logger.generate_request_id()

    raw = await read_body(request, config.server.max_body_bytes)
    payload = decode_json(raw)
    chat_request, messages, prompt = normalize(payload, family)

    model = chat_request.model or config.model.name
    session_label = resolve_session_label(request, chat_request, model)
    created = int(time.time())

    logger.log_api_call(
        family=family,
        session_label=session_label,
        model=model,
        message_count=len(messages),
        stream=bool(chat_request.stream),
    )

    if chat_request.stream:
        emitter = StreamEmitter(
            lambda: gateway.send(prompt, session_label),
            chunk_size=config.streaming.chunk_size,
            is_disconnected=request.is_disconnected,
        )
        if family == OLLAMA:
            framer = OllamaFramer(prompt, created, model)
        else:
            framer = SSEFramer(completion_id, created, model)

        async def body() -> AsyncIterator[str]:
            async for text in frame_stream(emitter, framer):
                yield text
            if emitter.reply is not None and not emitter.stopped:
                usage = estimate_usage(prompt, emitter.reply)
                logger.log_completion(
                    session_label=session_label,
                    model=model,
                    prompt_tokens=usage.prompt_tokens,
                    completion_tokens=usage.completion_tokens,
                    total_tokens=usage.total_tokens,
                    stream=True,
                )

        return StreamingResponse(
            body(),
            media_type=framer.media_type,
            headers={
                "Cache-Control": "no-cache",
                "X-Accel-Buffering": "no",
            },
        )

    reply = await gateway.send(prompt, session_label)
    envelope = build_envelope(prompt, reply, model, completion_id=completion_id, created=created)

    logger.log_completion(
        session_label=session_label,
        model=model,
        prompt_tokens=envelope.usage.prompt_tokens,
        completion_tokens=envelope.usage.completion_tokens,
        total_tokens=envelope.usage.total_tokens,
        stream=False,
    )

    if family == OLLAMA:
        return JSONResponse(ollama_completion(envelope))
    return JSONResponse(openai_completion(envelope))


@router.post("/v1/chat/completions")
@guarded(OPENAI)
async def chat_completions(request: Request):
    """
    Create chat completion

    OpenAI-compatible endpoint. The model field is echoed but never used
    for routing; every request goes to the same agent.
    """
    return await handle_chat(request, OPENAI)


@router.get("/v1/models")
@guarded(OPENAI)
async def list_models(request: Request):
    """
    List available models

    OpenAI-compatible endpoint for listing models
    """
    return JSONResponse(model_list(get_config(request).model))


@router.post("/api/chat")
@guarded(OLLAMA)
async def ollama_chat(request: Request):
    """Ollama-compatible chat endpoint, accepting messages or a flat prompt"""
    return await handle_chat(request, OLLAMA)


@router.get("/api/tags")
@guarded(OLLAMA)
async def ollama_tags(request: Request):
    """Ollama-compatible model listing"""
    return JSONResponse(model_tags(get_config(request).model))


@router.get("/")
@router.get("/health")
@router.get("/v1")
@guarded(OPENAI)
async def health_check(request: Request):
    """Health check endpoint"""
    config = get_config(request)
    return JSONResponse({
        "status": "ok",
        "version": __version__,
        "gateway": config.gateway.address,
        "model": config.model.name,
        "uptime": round(time.monotonic() - request.app.state.started_at, 3),
    })
