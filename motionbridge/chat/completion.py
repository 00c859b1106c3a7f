"""
OpenAI-compatible chat completion client (LM Studio by default).
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from motionbridge.core.config import CompletionConfig
from motionbridge.core.errors import CompletionServiceError

logger = logging.getLogger("Motionbridge.chat.completion")


class CompletionClient:
    def __init__(self, config: CompletionConfig, *, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()

    @property
    def model(self) -> str:
        return self.config.model

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """
        Send one chat completion request and return ``choices[0].message``.

        Raises CompletionServiceError carrying the upstream status code on any
        failure: 504 for timeouts, 502 for unreachable or malformed responses.
        """
        body: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"

        url = f"{self.config.base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        try:
            response = await self._client.post(url, json=body, headers=headers, timeout=self.config.timeout_seconds)
        except httpx.TimeoutException as e:
            raise CompletionServiceError(
                f"Completion service timed out after {self.config.timeout_seconds}s", status_code=504
            ) from e
        except httpx.HTTPError as e:
            raise CompletionServiceError(f"Completion service unreachable: {e}", status_code=502) from e

        if not response.is_success:
            raise CompletionServiceError(
                f"Completion service returned HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
            )

        try:
            message = response.json()["choices"][0]["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionServiceError(f"Malformed completion response: {e}", status_code=502) from e
        if not isinstance(message, dict):
            raise CompletionServiceError("Malformed completion response: message is not an object", status_code=502)
        return message
