# SPDX-License-Identifier: Apache-2.0
"""Google AI (Gemini) generateContent provider."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from site_translator.providers.base import (
    ProviderRequest,
    TranslatorError,
    generate_content_text,
)

if TYPE_CHECKING:
    from site_translator.llm.client import LLMClient

logger = logging.getLogger(__name__)


class GoogleProvider:
    """Google AI Studio backend (Gemini models).

    Requests go to the v1beta generateContent endpoint with the key in the
    ``x-goog-api-key`` header. Outside US/EU a proxy is usually required.

    Attributes:
        id: Provider identifier ("google").
    """

    API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"
    FALLBACK_MODELS = ["gemini-2.5-flash", "gemini-2.5-pro"]

    @property
    def id(self) -> str:
        """Return provider id."""
        return "google"

    @property
    def display_name(self) -> str:
        return "Google AI"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def requires_api_key(self) -> bool:
        return True

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        """Build a generateContent request."""
        return ProviderRequest(
            endpoint=f"{self.API_BASE}/{model}:generateContent",
            headers={
                "Content-Type": "application/json",
                "x-goog-api-key": api_key,
            },
            body=json.dumps({
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": 0.3},
            }),
        )

    def extract_response_text(self, response: Any) -> str:
        """Extract ``candidates[0].content.parts[0].text``."""
        return generate_content_text(response)

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """List Gemini models that support generateContent.

        Newer (2.5) models sort first. Falls back to a fixed list when the
        listing is empty or fails; returns [] without an API key.
        """
        if not api_key:
            return []
        try:
            data = await client.get_json(
                self.API_BASE,
                headers={"x-goog-api-key": api_key},
                proxy_url=proxy_url,
            )
        except TranslatorError as e:
            logger.debug("Google model listing failed: %s", e)
            return list(self.FALLBACK_MODELS)

        names: list[str] = []
        for entry in data.get("models", []) if isinstance(data, dict) else []:
            if not isinstance(entry, dict):
                continue
            name = str(entry.get("name", ""))
            methods = entry.get("supportedGenerationMethods") or []
            if "gemini" not in name or "generateContent" not in methods:
                continue
            name = name.replace("models/", "")
            if any(tag in name for tag in ("2.5", "2.0", "flash", "pro")):
                names.append(name)

        names.sort(key=lambda n: ("2.5" not in n, n))
        return names or list(self.FALLBACK_MODELS)
