# SPDX-License-Identifier: Apache-2.0
"""Providers speaking the OpenAI chat-completions wire format.

Covers Groq, any user-supplied OpenAI-compatible endpoint, and a local
Ollama server.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from site_translator.providers.base import (
    ProviderRequest,
    TranslatorError,
    chat_completion_text,
)

if TYPE_CHECKING:
    from site_translator.llm.client import LLMClient

logger = logging.getLogger(__name__)


class OpenAICompatibleProvider:
    """Generic chat-completions backend.

    The endpoint must be supplied by the user; the Authorization header is
    only sent when an API key is present.
    """

    ID = "custom-openai"
    DISPLAY_NAME = "Custom (OpenAI API)"
    DEFAULT_MODEL = "gpt-4o"
    DEFAULT_ENDPOINT = ""
    REQUIRES_API_KEY = False

    def __init__(self, endpoint: str | None = None) -> None:
        """Initialize provider.

        Args:
            endpoint: Chat-completions URL (overrides the default).
        """
        self._endpoint = endpoint or self.DEFAULT_ENDPOINT

    @property
    def id(self) -> str:
        return self.ID

    @property
    def display_name(self) -> str:
        return self.DISPLAY_NAME

    @property
    def default_model(self) -> str:
        return self.DEFAULT_MODEL

    @property
    def requires_api_key(self) -> bool:
        return self.REQUIRES_API_KEY

    @property
    def endpoint(self) -> str:
        """Resolved chat-completions endpoint."""
        return self._endpoint

    def _payload(self, prompt: str, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.3,
        }

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        """Build a chat-completions request."""
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        return ProviderRequest(
            endpoint=self._endpoint,
            headers=headers,
            body=json.dumps(self._payload(prompt, model)),
        )

    def extract_response_text(self, response: Any) -> str:
        """Extract ``choices[0].message.content``."""
        return chat_completion_text(response)


class GroqProvider(OpenAICompatibleProvider):
    """Groq backend (fast Llama models)."""

    ID = "groq"
    DISPLAY_NAME = "Groq"
    DEFAULT_MODEL = "llama-3.3-70b-versatile"
    DEFAULT_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"
    MODELS_ENDPOINT = "https://api.groq.com/openai/v1/models"
    REQUIRES_API_KEY = True

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """List model ids from ``/models``; [] without a key or on failure."""
        if not api_key:
            return []
        try:
            data = await client.get_json(
                self.MODELS_ENDPOINT,
                headers={"Authorization": f"Bearer {api_key}"},
                proxy_url=proxy_url,
            )
            return sorted(str(m["id"]) for m in data.get("data", []))
        except (TranslatorError, AttributeError, KeyError, TypeError) as e:
            logger.debug("Groq model listing failed: %s", e)
            return []


class OllamaProvider(OpenAICompatibleProvider):
    """Local Ollama server through its OpenAI-compatible endpoint."""

    ID = "ollama"
    DISPLAY_NAME = "Ollama (Local)"
    DEFAULT_MODEL = "llama3.2"
    DEFAULT_ENDPOINT = "http://localhost:11434/v1/chat/completions"
    TAGS_ENDPOINT = "http://localhost:11434/api/tags"

    def _payload(self, prompt: str, model: str) -> dict[str, Any]:
        payload = super()._payload(prompt, model)
        payload["stream"] = False
        return payload

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """List locally pulled models; [] if Ollama is not running.

        The local server is queried directly, never through the proxy.
        """
        try:
            data = await client.get_json(self.TAGS_ENDPOINT)
            return sorted(str(m["name"]) for m in data.get("models", []))
        except (TranslatorError, AttributeError, KeyError, TypeError) as e:
            logger.debug("Ollama not running or not accessible: %s", e)
            return []
