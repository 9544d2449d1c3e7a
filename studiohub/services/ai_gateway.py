"""
AI Gateway Service
Calls an OpenAI-compatible chat completions endpoint for short natural-language answers
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..config import (
    AI_GATEWAY_API_KEY,
    AI_GATEWAY_MODEL,
    AI_GATEWAY_TIMEOUT_SECONDS,
    AI_GATEWAY_URL,
)
from ..exceptions import OracleError, OracleUnavailable

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a concise, professional studio booking assistant."


class AiGatewayClient:
    """Thin client for the completion gateway.

    Every failure surfaces as OracleUnavailable (not configured, timed out,
    unreachable) or OracleError (bad status, unusable body) so callers can
    fall back without inspecting httpx internals.
    """

    def __init__(
        self,
        api_key: Optional[str] = AI_GATEWAY_API_KEY,
        url: str = AI_GATEWAY_URL,
        model: str = AI_GATEWAY_MODEL,
        timeout: float = AI_GATEWAY_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def complete(
        self,
        prompt: str,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        max_tokens: int = 150,
    ) -> str:
        if not self.configured:
            raise OracleUnavailable("AI gateway API key is not configured")

        try:
            # Overall deadline on top of httpx's per-phase timeouts
            response = await asyncio.wait_for(
                self._post(prompt, system_prompt, max_tokens), timeout=self.timeout
            )
        except asyncio.TimeoutError as e:
            raise OracleUnavailable(f"AI gateway timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise OracleUnavailable(f"AI gateway request failed: {e}") from e

        if not response.is_success:
            raise OracleError(f"AI gateway returned HTTP {response.status_code}")

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise OracleError("AI gateway returned an unexpected payload") from e

        if not isinstance(content, str) or not content.strip():
            raise OracleError("AI gateway returned an empty completion")

        return content.strip()

    async def _post(self, prompt: str, system_prompt: str, max_tokens: int) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            return await client.post(
                self.url,
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": prompt},
                    ],
                    "max_tokens": max_tokens,
                },
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )


def get_ai_gateway() -> AiGatewayClient:
    """Dependency injection for the AI gateway client"""
    return AiGatewayClient()
