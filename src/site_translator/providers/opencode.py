# SPDX-License-Identifier: Apache-2.0
"""OpenCode Zen gateway provider (multi-model, free and paid)."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from site_translator.providers.base import (
    ProviderRequest,
    TranslatorError,
    extract_any_text,
)

if TYPE_CHECKING:
    from site_translator.llm.client import LLMClient

logger = logging.getLogger(__name__)


class OpenCodeProvider:
    """OpenCode Zen gateway.

    The gateway exposes each model family through its native wire format,
    so the request shape is chosen from the model id prefix:

    - ``gemini-*``: Google generateContent format
    - ``claude-*``: Anthropic messages format
    - ``gpt-*``: OpenAI responses format
    - anything else: OpenAI chat-completions format

    Attributes:
        id: Provider identifier ("opencode").
    """

    API_BASE = "https://opencode.ai/zen/v1"
    MODELS_ENDPOINT = f"{API_BASE}/models"

    @property
    def id(self) -> str:
        return "opencode"

    @property
    def display_name(self) -> str:
        return "OpenCode"

    @property
    def default_model(self) -> str:
        return "big-pickle"

    @property
    def requires_api_key(self) -> bool:
        return False

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        """Build a request in the format the model family expects."""
        headers = {"Content-Type": "application/json"}

        if model.startswith("gemini-"):
            endpoint = f"{self.API_BASE}/models/{model}"
            payload: dict[str, Any] = {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.3},
            }
            if api_key:
                headers["x-goog-api-key"] = api_key
        elif model.startswith("claude-"):
            endpoint = f"{self.API_BASE}/messages"
            payload = {
                "model": model,
                "max_tokens": 8192,
                "messages": [{"role": "user", "content": prompt}],
            }
            if api_key:
                headers["x-api-key"] = api_key
            headers["anthropic-version"] = "2023-06-01"
        elif model.startswith("gpt-"):
            endpoint = f"{self.API_BASE}/responses"
            payload = {"model": model, "input": prompt}
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
        else:
            endpoint = f"{self.API_BASE}/chat/completions"
            payload = {
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "temperature": 0.3,
            }
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"

        return ProviderRequest(endpoint=endpoint, headers=headers, body=json.dumps(payload))

    def extract_response_text(self, response: Any) -> str:
        """Extract text from any of the four gateway response formats."""
        return extract_any_text(response)

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """List gateway model ids (no key needed); [] on failure."""
        try:
            data = await client.get_json(self.MODELS_ENDPOINT, headers={}, proxy_url=proxy_url)
            return sorted(str(m["id"]) for m in data.get("data", []))
        except (TranslatorError, AttributeError, KeyError, TypeError) as e:
            logger.debug("OpenCode model listing failed: %s", e)
            return []
