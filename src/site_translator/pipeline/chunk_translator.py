# SPDX-License-Identifier: Apache-2.0
"""Translate one chunk of keys with one provider call."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from site_translator.llm.client import LLMClient
from site_translator.llm.relay import RelayResponse
from site_translator.pipeline.config import RunConfig
from site_translator.pipeline.parsing import extract_json_object
from site_translator.pipeline.prompts import DEFAULT_TRANSLATION_PROMPT, render_prompt
from site_translator.providers.base import (
    EmptyResponseError,
    MalformedResponseError,
    Provider,
    RateLimitError,
    TranslationError,
)

logger = logging.getLogger(__name__)

# Wait used when a 429 carries no retry hint
DEFAULT_RATE_LIMIT_DELAY = 60.0
# Safety margin added on top of a server-provided hint
RATE_LIMIT_MARGIN = 5.0

GATEWAY_GEMINI_BUG_MESSAGE = (
    "Gemini models have a known bug with the OpenCode API. "
    "Please use Google AI Studio directly or choose a different model."
)

_DIGITS = re.compile(r"(\d+(?:\.\d+)?)")

Sleep = Callable[[float], Awaitable[Any]]


@dataclass
class ChunkResult:
    """Parsed reply for one chunk.

    Attributes:
        translations: JSON object returned by the model. May contain keys
            that were never asked for; callers merge only known keys.
        retries: Number of rate-limit retries spent.
    """

    translations: dict[str, Any] = field(default_factory=dict)
    retries: int = 0


def parse_retry_delay(response: RelayResponse) -> float | None:
    """Read the server's retry hint from a 429 response.

    Looks for an ``error.details[]`` entry whose ``@type`` mentions
    ``RetryInfo`` (``retryDelay`` like ``"7s"``), then a ``Retry-After``
    header.

    Returns:
        Hint in seconds, or None if the response carries none.
    """
    try:
        data = response.json()
    except ValueError:
        data = None
    error = data.get("error") if isinstance(data, dict) else None
    details = error.get("details") if isinstance(error, dict) else None
    if isinstance(details, list):
        for detail in details:
            if not isinstance(detail, dict):
                continue
            if "RetryInfo" not in str(detail.get("@type", "")):
                continue
            match = _DIGITS.search(str(detail.get("retryDelay", "")))
            if match:
                return float(match.group(1))

    for name, value in response.headers.items():
        if name.lower() == "retry-after":
            try:
                return float(value)
            except ValueError:
                return None
    return None


def rate_limit_wait(hint: float | None) -> float:
    """Seconds to wait before retrying a rate-limited request."""
    if hint is None:
        return DEFAULT_RATE_LIMIT_DELAY
    return hint + RATE_LIMIT_MARGIN


def _error_detail(response: RelayResponse) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict):
        return str(error.get("message") or "")
    if error:
        return str(error)
    return ""


class ChunkTranslator:
    """Translates key/value chunks through one provider.

    Handles prompt rendering, dispatch, rate-limit backoff and reply
    parsing. Merging results into a language map is left to the caller.
    """

    def __init__(
        self,
        config: RunConfig,
        client: LLMClient,
        provider: Provider | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        """Initialize ChunkTranslator.

        Args:
            config: Run configuration.
            client: Dispatch client (HTTP relay or CLI runner).
            provider: Provider override. Defaults to ``config.create_provider()``.
            sleep: Coroutine used for rate-limit waits.
        """
        self._config = config
        self._client = client
        self._provider = provider or config.create_provider()
        self._model = config.model or self._provider.default_model
        self._sleep = sleep

    @property
    def config(self) -> RunConfig:
        return self._config

    @property
    def provider(self) -> Provider:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        prompt: str,
        key_count: int = 0,
        max_retries: int | None = None,
    ) -> tuple[str, int]:
        """Send a prompt and return the assistant text.

        Args:
            prompt: Fully rendered prompt.
            key_count: Number of keys in the prompt (for diagnostics).
            max_retries: Rate-limit retries (default: ``config.max_retries``).

        Returns:
            Tuple of (assistant text, rate-limit retries used).

        Raises:
            RateLimitError: If 429 persists after all retries.
            EmptyResponseError: If the provider returned no text.
            TranslationError: On any other provider error.
            TransportError: On network failure or timeout.
        """
        limit = self._config.max_retries if max_retries is None else max_retries
        retries = 0
        hint: float | None = None

        for attempt in range(limit + 1):
            response = await self._client.send(
                self._provider,
                prompt,
                api_key=self._config.api_key,
                model=self._model,
                proxy_url=self._config.proxy_url,
                timeout=self._config.timeout_sec,
            )

            if response.status == 429:
                hint = parse_retry_delay(response)
                if attempt >= limit:
                    break
                wait = rate_limit_wait(hint)
                logger.warning(
                    "Rate limited by %s, waiting %.0fs before retry %d/%d",
                    self._provider.id,
                    wait,
                    attempt + 1,
                    limit,
                )
                await self._sleep(wait)
                retries += 1
                continue

            if not response.ok:
                logger.error(
                    "API error from %s: status %d, body: %s",
                    self._provider.id,
                    response.status,
                    response.text[:500],
                )
                if "promptTokenCount" in response.text:
                    raise TranslationError(GATEWAY_GEMINI_BUG_MESSAGE)
                detail = _error_detail(response)
                message = f"API error {response.status}"
                raise TranslationError(f"{message}: {detail}" if detail else message)

            try:
                data = response.json()
            except ValueError as e:
                raise MalformedResponseError(
                    f"{self._provider.display_name} returned a non-JSON body"
                ) from e
            if isinstance(data, dict) and data.get("error"):
                error = data["error"]
                message = error.get("message") if isinstance(error, dict) else str(error)
                raise TranslationError(message or "API returned an error")

            text = self._provider.extract_response_text(data)
            if not text or not text.strip():
                logger.error(
                    "Empty AI response (%d keys). Raw body: %s",
                    key_count,
                    response.text[:500],
                )
                raise EmptyResponseError(key_count)
            logger.debug("AI response (first 500 chars): %s", text[:500])
            return text, retries

        raise RateLimitError(
            f"Rate limit exceeded after {limit} retries", retry_after=hint
        )

    async def translate_chunk(
        self,
        keys_to_translate: Mapping[str, str],
        target_language_name: str,
        max_retries: int | None = None,
        template: str | None = None,
    ) -> ChunkResult:
        """Translate one chunk of key/value pairs.

        Args:
            keys_to_translate: Keys mapped to their source-language text.
            target_language_name: Display name of the target language.
            max_retries: Rate-limit retries (default: ``config.max_retries``).
            template: Prompt template (default: configured or built-in prompt).

        Returns:
            Parsed reply and the number of retries spent.

        Raises:
            MalformedResponseError: If the reply holds no JSON object.
            TranslationError: See ``complete``.
        """
        prompt_template = template or self._config.prompt_template or DEFAULT_TRANSLATION_PROMPT
        prompt = render_prompt(prompt_template, target_language_name, keys_to_translate)
        text, retries = await self.complete(
            prompt, key_count=len(keys_to_translate), max_retries=max_retries
        )
        translations = extract_json_object(text)
        return ChunkResult(translations=translations, retries=retries)
