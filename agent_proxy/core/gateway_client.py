"""Agent gateway client"""

import asyncio
import json
import httpx
from typing import Any, Dict, Optional

from ..models.config import GatewayConfig
from ..utils import logger
from .errors import UpstreamRejected, UpstreamUnavailable, truncate

# Reply fields seen across gateway versions, in order of preference.
# The gateway has no published response schema; this list is a
# compatibility shim and should shrink to one field once it does.
REPLY_FIELDS = ("reply", "message", "text")

# Extra seconds the HTTP call waits beyond the gateway's own timeout
TRANSPORT_GRACE_SECONDS = 5.0

# Body excerpt kept for operator logs
LOG_EXCERPT_CHARS = 2000


def extract_reply(data: Any) -> str:
    """
    Pull the reply text out of a gateway response document

    Returns the first non-empty string among REPLY_FIELDS, otherwise the
    whole document serialized, so the result is never empty.
    """
    if isinstance(data, dict):
        for field in REPLY_FIELDS:
            value = data.get(field)
            if isinstance(value, str) and value:
                return value
    return json.dumps(data, ensure_ascii=False)


class GatewayClient:
    """Send canonical prompts to the agent gateway"""

    def __init__(
        self,
        config: GatewayConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize gateway client

        Args:
            config: Gateway configuration
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.transport = transport
        # Whole-call bound; httpx timeouts only limit each connect/read/write step
        self.deadline = config.timeout_seconds + TRANSPORT_GRACE_SECONDS
        self.http_client: Optional[httpx.AsyncClient] = None

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self.http_client is None:
            self.http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.deadline),
                transport=self.transport,
            )
        return self.http_client

    async def close(self):
        """Close HTTP client"""
        if self.http_client:
            await self.http_client.aclose()
            self.http_client = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.config.token:
            headers["Authorization"] = f"Bearer {self.config.token}"
        return headers

    async def send(self, prompt: str, session_label: str) -> str:
        """
        Send a prompt to the gateway and wait for the complete reply

        Args:
            prompt: Canonical prompt text
            session_label: Label the gateway uses to find or create the session

        Returns:
            Non-empty reply text

        Raises:
            UpstreamUnavailable: If the gateway cannot be reached or times out
            UpstreamRejected: If the gateway answers with a failure status
        """
        client = await self._get_http_client()
        payload = {
            "message": prompt,
            "label": session_label,
            "timeoutSeconds": self.config.timeout_seconds,
        }

        try:
            response = await asyncio.wait_for(
                client.post(
                    self.config.send_url,
                    json=payload,
                    headers=self._headers(),
                ),
                self.deadline,
            )
        except (httpx.TimeoutException, asyncio.TimeoutError) as e:
            logger.log_gateway_error(
                gateway=self.config.address,
                error_type="timeout",
                error_message=str(e) or type(e).__name__,
            )
            raise UpstreamUnavailable(
                f"Gateway did not reply within {self.config.timeout_seconds} seconds",
                status_code=504,
                detail=repr(e),
            )
        except httpx.RequestError as e:
            logger.log_gateway_error(
                gateway=self.config.address,
                error_type="connection_error",
                error_message=str(e) or type(e).__name__,
            )
            raise UpstreamUnavailable("Gateway is unavailable", detail=repr(e))

        body = response.text
        if not response.is_success:
            rejected = UpstreamRejected(
                response.status_code,
                truncate(body, self.config.error_excerpt_chars),
                raw_excerpt=truncate(body, LOG_EXCERPT_CHARS),
            )
            logger.log_gateway_error(
                gateway=self.config.address,
                error_type="rejected",
                error_message=rejected.message,
                **rejected.log_fields()
            )
            raise rejected

        try:
            data = response.json()
        except ValueError:
            rejected = UpstreamRejected(
                response.status_code,
                "invalid JSON in gateway reply: " + truncate(body, self.config.error_excerpt_chars),
                raw_excerpt=truncate(body, LOG_EXCERPT_CHARS),
            )
            logger.log_gateway_error(
                gateway=self.config.address,
                error_type="invalid_json",
                error_message=rejected.message,
                **rejected.log_fields()
            )
            raise rejected

        return extract_reply(data)
