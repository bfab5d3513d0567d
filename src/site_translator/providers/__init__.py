# SPDX-License-Identifier: Apache-2.0
"""AI translation providers.

Seven interchangeable backends share the ``Provider`` protocol:

- ``google``: Google AI Studio (Gemini), API key required
- ``groq``: Groq chat-completions, API key required
- ``opencode``: OpenCode Zen gateway (routes by model family)
- ``opencode-local``: locally installed ``opencode`` CLI
- ``gemini-cli``: locally installed ``gemini`` CLI (needs a GCP project id)
- ``custom-openai``: any OpenAI-compatible endpoint
- ``ollama``: local Ollama server

Usage:
    from site_translator.providers import create_provider
    provider = create_provider("groq")
    request = provider.build_request(prompt, api_key, provider.default_model)
"""

from site_translator.providers.base import (
    CliCommand,
    ConfigurationError,
    EmptyResponseError,
    MalformedResponseError,
    ModelListingProvider,
    Provider,
    ProviderRequest,
    RateLimitError,
    TranslationError,
    TranslatorError,
    TransportError,
)
from site_translator.providers.google import GoogleProvider
from site_translator.providers.local_cli import GeminiCliProvider, OpenCodeLocalProvider
from site_translator.providers.opencode import OpenCodeProvider
from site_translator.providers.openai_compatible import (
    GroqProvider,
    OllamaProvider,
    OpenAICompatibleProvider,
)

__all__ = [
    # Protocol, request types and exceptions
    "Provider",
    "ModelListingProvider",
    "ProviderRequest",
    "CliCommand",
    "TranslatorError",
    "TranslationError",
    "ConfigurationError",
    "RateLimitError",
    "TransportError",
    "MalformedResponseError",
    "EmptyResponseError",
    # Implementations
    "GoogleProvider",
    "GroqProvider",
    "OpenCodeProvider",
    "OpenCodeLocalProvider",
    "OpenAICompatibleProvider",
    "OllamaProvider",
    "GeminiCliProvider",
    # Registry
    "PROVIDER_IDS",
    "create_provider",
]

PROVIDER_IDS: tuple[str, ...] = (
    "google",
    "groq",
    "opencode",
    "opencode-local",
    "custom-openai",
    "ollama",
    "gemini-cli",
)


def create_provider(
    provider_id: str,
    endpoint: str | None = None,
    project_id: str | None = None,
) -> Provider:
    """Resolve a provider id to an implementation.

    Args:
        provider_id: One of ``PROVIDER_IDS``.
        endpoint: Endpoint override (``custom-openai`` and ``ollama`` only).
        project_id: Google Cloud project id (``gemini-cli`` only).

    Returns:
        Provider instance.

    Raises:
        ConfigurationError: If the provider id is unknown.
    """
    if provider_id == "google":
        return GoogleProvider()
    elif provider_id == "groq":
        return GroqProvider()
    elif provider_id == "opencode":
        return OpenCodeProvider()
    elif provider_id == "opencode-local":
        return OpenCodeLocalProvider()
    elif provider_id == "custom-openai":
        return OpenAICompatibleProvider(endpoint=endpoint)
    elif provider_id == "ollama":
        return OllamaProvider(endpoint=endpoint)
    elif provider_id == "gemini-cli":
        return GeminiCliProvider(project_id=project_id)
    raise ConfigurationError(
        f"Unknown provider '{provider_id}'. Choose one of: {', '.join(PROVIDER_IDS)}"
    )
