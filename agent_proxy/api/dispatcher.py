"""Request dispatch helpers: body limits, preflight, error boundary"""

import functools
import json
from typing import Any, Awaitable, Callable, Dict

from fastapi import Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..core.errors import (
    GatewayError,
    InternalFault,
    ValidationError,
    error_response,
    family_for_path,
)
from ..utils import logger


CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}


class PreflightMiddleware:
    """Answer every OPTIONS request with 204 before routing or body reads"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] == "http" and scope["method"] == "OPTIONS":
            response = Response(status_code=204, headers=CORS_HEADERS)
            await response(scope, receive, send)
            return
        await self.app(scope, receive, send)


async def read_body(request: Request, max_bytes: int) -> bytes:
    """
    Read the request body, refusing anything over max_bytes

    A declared Content-Length over the limit is refused without reading.
    Otherwise the stream is read until it ends or crosses the limit.

    Raises:
        ValidationError: If the body is too large or the length header is bad
    """
    declared = request.headers.get("content-length")
    if declared is not None:
        try:
            declared_size = int(declared)
        except ValueError:
            raise ValidationError("Invalid Content-Length header")
        if declared_size > max_bytes:
            raise ValidationError("Request body too large", status_code=413)

    chunks = []
    size = 0
    async for chunk in request.stream():
        size += len(chunk)
        if size > max_bytes:
            raise ValidationError("Request body too large", status_code=413)
        chunks.append(chunk)
    return b"".join(chunks)


def decode_json(raw: bytes) -> Dict[str, Any]:
    """
    Decode a JSON object body

    Raises:
        ValidationError: If the body is not valid JSON or not an object
    """
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise ValidationError("Request body is not valid JSON")
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def guarded(family: str):
    """
    Wrap a route handler so every failure becomes a protocol-shaped error

    GatewayError subclasses render as-is. Anything else is logged with its
    traceback and rendered as InternalFault.
    """
    def decorator(handler: Callable[[Request], Awaitable[Response]]):
        @functools.wraps(handler)
        async def wrapper(request: Request):
            try:
                return await handler(request)
            except GatewayError as e:
                logger.warning(
                    "Request failed",
                    path=request.url.path,
                    **e.log_fields()
                )
                return error_response(e, family)
            except Exception:
                logger.exception(
                    "Unhandled error",
                    path=request.url.path,
                    method=request.method,
                )
                return error_response(InternalFault(), family)
        return wrapper
    return decorator


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Render router-level failures (unknown route, wrong method) per family"""
    family = family_for_path(request.url.path)
    if exc.status_code in (404, 405):
        error = ValidationError(
            f"Unknown endpoint: {request.method} {request.url.path}",
            status_code=404,
        )
    else:
        error = ValidationError(str(exc.detail), status_code=exc.status_code)
    return error_response(error, family)
