"""Error taxonomy and protocol-specific error rendering"""

from typing import Any, Dict, Optional

from fastapi.responses import JSONResponse

from ..models.openai import ErrorDetail, ErrorResponse
from ..models import ollama

OPENAI = "openai"
OLLAMA = "ollama"


class GatewayError(Exception):
    """Base exception for every failure surfaced to a client."""

    kind = "internal_fault"
    openai_type = "server_error"
    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def log_fields(self) -> Dict[str, Any]:
        """Operator-only detail attached to the log record"""
        return {"error_kind": self.kind, "status_code": self.status_code}


class ValidationError(GatewayError):
    """Malformed, oversized or missing client input."""

    kind = "validation_error"
    openai_type = "invalid_request_error"
    status_code = 400


class UpstreamUnavailable(GatewayError):
    """The agent gateway could not be reached or timed out."""

    kind = "upstream_unavailable"
    openai_type = "upstream_unavailable"
    status_code = 503

    def __init__(self, message: str, status_code: Optional[int] = None, detail: str = ""):
        super().__init__(message, status_code)
        self.detail = detail

    def log_fields(self) -> Dict[str, Any]:
        fields = super().log_fields()
        fields["detail"] = self.detail
        return fields


class UpstreamRejected(GatewayError):
    """The agent gateway answered with a failure status."""

    kind = "upstream_rejected"
    openai_type = "api_error"
    status_code = 502

    def __init__(self, upstream_status: int, excerpt: str, raw_excerpt: str = ""):
        super().__init__(f"Gateway returned {upstream_status}: {excerpt}")
        self.upstream_status = upstream_status
        self.excerpt = excerpt
        self.raw_excerpt = raw_excerpt or excerpt

    def log_fields(self) -> Dict[str, Any]:
        fields = super().log_fields()
        fields["upstream_status"] = self.upstream_status
        fields["upstream_body"] = self.raw_excerpt
        return fields


class InternalFault(GatewayError):
    """Unexpected failure caught at the dispatcher boundary."""

    kind = "internal_fault"
    openai_type = "server_error"
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


def truncate(text: str, limit: int) -> str:
    """Cut text to at most limit characters, marking the cut"""
    if len(text) <= limit:
        return text
    return text[:limit] + "..."


def family_for_path(path: str) -> str:
    """Protocol family implied by the request path prefix"""
    if path == "/api" or path.startswith("/api/"):
        return OLLAMA
    return OPENAI


def error_body(exc: GatewayError, family: str) -> Dict[str, Any]:
    """Render an error in the native shape of the protocol family"""
    if family == OLLAMA:
        return ollama.ErrorResponse(error=exc.message).model_dump()
    return ErrorResponse(
        error=ErrorDetail(message=exc.message, type=exc.openai_type)
    ).model_dump()


def error_response(exc: GatewayError, family: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    """Build the JSON error response for a gateway error"""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc, family),
        headers=headers,
    )
