"""Minimal client for the OpenAI-compatible LLM gateway."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Optional

import httpx

from shared.config.settings import LLMGatewaySettings
from shared.utils.exceptions import (
    ConfigurationError,
    LLMGatewayError,
    UpstreamPaymentRequiredError,
    UpstreamRateLimitError,
)

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```json\s*([\s\S]*?)\s*```")
_FENCED_ANY = re.compile(r"```\s*([\s\S]*?)\s*```")


class LLMGatewayClient:
    """Chat-completions client used for intention analysis."""

    def __init__(
        self,
        settings: LLMGatewaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    async def complete(
        self,
        *,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
    ) -> str:
        """
        Run a chat completion and return the first choice's content.

        Raises:
            ConfigurationError: If no API key is configured
            UpstreamRateLimitError: On HTTP 429
            UpstreamPaymentRequiredError: On HTTP 402
            LLMGatewayError: On any other transport or response failure
        """
        if not self.settings.api_key:
            raise ConfigurationError("LLM gateway API key is not configured")

        payload = {
            "model": self.settings.model,
            "messages": messages,
            "temperature": self.settings.temperature if temperature is None else temperature,
        }
        try:
            async with httpx.AsyncClient(timeout=self.settings.timeout, transport=self._transport) as client:
                response = await client.post(
                    f"{self.settings.base_url.rstrip('/')}/chat/completions",
                    headers={"Authorization": f"Bearer {self.settings.api_key}"},
                    json=payload,
                )
        except httpx.HTTPError as e:
            logger.error(f"HTTP error calling LLM gateway: {str(e)}")
            raise LLMGatewayError(f"LLM gateway request failed: {str(e)}") from e

        if response.status_code == 429:
            raise UpstreamRateLimitError()
        if response.status_code == 402:
            raise UpstreamPaymentRequiredError()
        if response.is_error:
            logger.error(f"LLM gateway error: {response.status_code} {response.text[:500]}")
            raise LLMGatewayError(
                f"LLM gateway error: {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMGatewayError("Malformed LLM gateway response") from e
        if not content:
            raise LLMGatewayError("No content in LLM gateway response")
        return content

    @staticmethod
    def extract_json(text: str) -> Any:
        """Parse JSON from LLM output, tolerating Markdown code fences.

        Raises:
            ValueError: If no valid JSON can be parsed
        """
        match = _FENCED_JSON.search(text) or _FENCED_ANY.search(text)
        candidate = match.group(1) if match else text
        return json.loads(candidate.strip())
