# SPDX-License-Identifier: Apache-2.0
"""Base classes, protocols and errors for AI translation providers."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from site_translator.llm.client import LLMClient


class TranslatorError(Exception):
    """Base exception for translator module."""

    pass


class TranslationError(TranslatorError):
    """Error during translation (API call failure, rate limit, etc.).

    This error type is potentially retryable.
    """

    pass


class ConfigurationError(TranslatorError):
    """Configuration error (missing API key, endpoint, project id, etc.).

    This error type is NOT retryable - fix the configuration first.
    """

    pass


class RateLimitError(TranslationError):
    """Provider answered HTTP 429 and all retries are used up."""

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class TransportError(TranslationError):
    """Network failure, subprocess spawn failure or request timeout."""

    pass


class MalformedResponseError(TranslationError):
    """Provider response could not be turned into a JSON object."""

    pass


class EmptyResponseError(MalformedResponseError):
    """Provider returned no assistant text at all."""

    def __init__(self, key_count: int) -> None:
        super().__init__(
            f"AI returned empty response. Request may be too large "
            f"({key_count} keys). Try reducing batch size to 50 or less."
        )
        self.key_count = key_count


@dataclass(frozen=True)
class ProviderRequest:
    """Wire-level request produced by a provider.

    Attributes:
        endpoint: Resolved endpoint URL.
        headers: HTTP headers.
        body: Serialized JSON body.
    """

    endpoint: str
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    def payload(self) -> dict[str, Any]:
        """Return the decoded request body."""
        return json.loads(self.body) if self.body else {}


@dataclass(frozen=True)
class CliCommand:
    """A command line plus its stdin and environment for CLI providers."""

    argv: tuple[str, ...]
    stdin: str | None = None
    env: Mapping[str, str] | None = None


@runtime_checkable
class Provider(Protocol):
    """Protocol definition for translation providers.

    All provider implementations must conform to this protocol.
    """

    @property
    def id(self) -> str:
        """Provider identifier ("google", "groq", "opencode", ...)."""
        ...

    @property
    def display_name(self) -> str:
        """Human readable provider name."""
        ...

    @property
    def default_model(self) -> str:
        """Model used when none is configured."""
        ...

    @property
    def requires_api_key(self) -> bool:
        """Whether requests without an API key are rejected."""
        ...

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        """Build the wire-level request for one prompt.

        Args:
            prompt: Fully rendered prompt.
            api_key: API key (may be empty for keyless providers).
            model: Model identifier.

        Returns:
            Request with endpoint, headers and serialized body.
        """
        ...

    def extract_response_text(self, response: Any) -> str:
        """Extract assistant text from a parsed response body.

        Returns:
            Assistant text, or "" if the response shape is not recognized.
        """
        ...


@runtime_checkable
class ModelListingProvider(Provider, Protocol):
    """Provider that can list its available models."""

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """Fetch available model ids. Returns [] on any failure."""
        ...


def chat_completion_text(response: Any) -> str:
    """Extract ``choices[0].message.content``."""
    try:
        content = response["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def generate_content_text(response: Any) -> str:
    """Extract ``candidates[0].content.parts[0].text``."""
    try:
        text = response["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""


def messages_text(response: Any) -> str:
    """Extract the first ``content[]`` block whose type is ``text``."""
    if not isinstance(response, dict) or not isinstance(response.get("content"), list):
        return ""
    for block in response["content"]:
        if isinstance(block, dict) and block.get("type") == "text":
            text = block.get("text")
            return text if isinstance(text, str) else ""
    return ""


def responses_text(response: Any) -> str:
    """Extract ``output[]`` message text (``output_text`` content item)."""
    if not isinstance(response, dict) or not isinstance(response.get("output"), list):
        return ""
    message = next(
        (
            item for item in response["output"]
            if isinstance(item, dict) and item.get("type") == "message"
        ),
        None,
    )
    if message is None or not isinstance(message.get("content"), list):
        return ""
    for part in message["content"]:
        if isinstance(part, dict) and part.get("type") in ("output_text", "text"):
            text = part.get("text")
            return text if isinstance(text, str) else ""
    return ""


def extract_any_text(response: Any) -> str:
    """Try every known response envelope in turn.

    The first envelope whose top-level container is present decides the
    result, so a chat-completions body with empty content yields "".
    """
    if not isinstance(response, dict):
        return ""
    if isinstance(response.get("choices"), list):
        return chat_completion_text(response)
    if isinstance(response.get("candidates"), list):
        return generate_content_text(response)
    if isinstance(response.get("content"), list):
        return messages_text(response)
    if isinstance(response.get("output"), list):
        return responses_text(response)
    return ""
