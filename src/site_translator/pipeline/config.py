# SPDX-License-Identifier: Apache-2.0
"""Run configuration for translation jobs."""

from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar

from site_translator.providers import PROVIDER_IDS, Provider, create_provider
from site_translator.providers.base import ConfigurationError

logger = logging.getLogger(__name__)


class ParallelMode(str, Enum):
    """How chunk jobs of different languages interleave."""

    SEQUENTIAL = "sequential"  # One language at a time, one chunk at a time
    PARALLEL_LANGUAGES = "parallel-languages"  # Languages in parallel, chunks sequential
    PARALLEL_CHUNKS = "parallel-chunks"  # Languages sequential, chunks in parallel
    FULL_PARALLEL = "full-parallel"  # Every (language, chunk) pair in one pool

    @classmethod
    def parse(cls, value: str | ParallelMode) -> ParallelMode:
        """Parse a mode name (``parallel-langs`` is accepted as an alias).

        Raises:
            ConfigurationError: If the name is unknown.
        """
        if isinstance(value, ParallelMode):
            return value
        normalized = value.strip().lower()
        if normalized == "parallel-langs":
            normalized = cls.PARALLEL_LANGUAGES.value
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(mode.value for mode in cls)
            raise ConfigurationError(
                f"Unknown parallel mode '{value}'. Choose one of: {choices}"
            ) from None


@dataclass(frozen=True)
class RunConfig:
    """Immutable configuration for one translation run.

    Built once when a run starts and passed explicitly to the planner,
    scheduler and chunk translator, so changing settings mid-run never
    affects work already in flight.

    Attributes:
        provider: Provider id (see ``PROVIDER_IDS``).
        model: Model id. If None, uses the provider's default model.
        api_key: API key for the provider (may be empty for keyless providers).
        proxy_url: Optional outbound HTTP proxy.
        chunk_size: Keys per request; 0 sends all keys in one request.
        timeout_sec: Per-request timeout in seconds.
        parallel_mode: How chunks of different languages interleave.
        max_concurrent: Global limit of in-flight tasks.
        delay_ms: Delay before admitting each task after the first.
        endpoint: Endpoint override (custom-openai, ollama).
        project_id: Google Cloud project id (gemini-cli).
        max_retries: Rate-limit retries per request.
        prompt_template: Localization prompt with a ``{{targetLang}}`` slot.
    """

    provider: str = "opencode"
    model: str | None = None  # None = use the provider's default model
    api_key: str = ""
    proxy_url: str | None = None
    chunk_size: int = 0
    timeout_sec: float = 300.0
    parallel_mode: ParallelMode = ParallelMode.SEQUENTIAL
    max_concurrent: int = 3
    delay_ms: int = 200
    endpoint: str | None = None
    project_id: str | None = None
    max_retries: int = 3
    prompt_template: str | None = None

    # Environment variable names for API keys
    API_KEY_ENV_VARS: ClassVar[dict[str, str]] = {
        "google": "GOOGLE_API_KEY",
        "groq": "GROQ_API_KEY",
        "opencode": "OPENCODE_API_KEY",
        "custom-openai": "OPENAI_API_KEY",
    }
    PROXY_ENV_VAR: ClassVar[str] = "TRANSLATE_PROXY_URL"
    PROJECT_ENV_VAR: ClassVar[str] = "GOOGLE_CLOUD_PROJECT"

    def create_provider(self) -> Provider:
        """Instantiate the configured provider."""
        return create_provider(
            self.provider,
            endpoint=self.endpoint,
            project_id=self.project_id,
        )

    @property
    def effective_model(self) -> str:
        """Get effective model name (resolves None to provider default)."""
        if self.model:
            return self.model
        return self.create_provider().default_model

    def get_api_key_env_var(self) -> str:
        """Get environment variable name for API key."""
        return self.API_KEY_ENV_VARS.get(
            self.provider, f"{self.provider.upper().replace('-', '_')}_API_KEY"
        )

    def validate(self) -> None:
        """Check the configuration before any request is made.

        Raises:
            ConfigurationError: On missing API key, endpoint or project id,
                or out-of-range numeric options.
        """
        if self.provider not in PROVIDER_IDS:
            raise ConfigurationError(
                f"Unknown provider '{self.provider}'. "
                f"Choose one of: {', '.join(PROVIDER_IDS)}"
            )
        provider = self.create_provider()
        if provider.requires_api_key and not self.api_key:
            raise ConfigurationError(
                f"API key is required for provider '{self.provider}'. "
                f"Set --api-key or {self.get_api_key_env_var()}."
            )
        if self.provider == "custom-openai" and not self.endpoint:
            raise ConfigurationError("Custom endpoint is required for Custom OpenAI provider")
        if self.provider == "gemini-cli" and not self.project_id:
            raise ConfigurationError(
                f"{self.PROJECT_ENV_VAR} is required for the gemini-cli provider"
            )
        if self.chunk_size < 0:
            raise ConfigurationError("chunk_size must be >= 0 (0 = no chunking)")
        if self.max_concurrent < 1:
            raise ConfigurationError("max_concurrent must be >= 1")
        if self.delay_ms < 0:
            raise ConfigurationError("delay_ms must be >= 0")
        if self.timeout_sec <= 0:
            raise ConfigurationError("timeout_sec must be > 0")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be >= 0")

    def with_overrides(self, **overrides: Any) -> RunConfig:
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        if "parallel_mode" in changes:
            changes["parallel_mode"] = ParallelMode.parse(changes["parallel_mode"])
        return dataclasses.replace(self, **changes)

    def with_environment(self, environ: Mapping[str, str] | None = None) -> RunConfig:
        """Override API key, proxy and project id with the environment variables that are set."""
        env = os.environ if environ is None else environ
        return self.with_overrides(
            api_key=env.get(self.get_api_key_env_var()) or None,
            proxy_url=env.get(self.PROXY_ENV_VAR) or None,
            project_id=env.get(self.PROJECT_ENV_VAR) or None,
        )

    @classmethod
    def from_settings(
        cls,
        settings: Mapping[str, str],
        provider: str | None = None,
    ) -> RunConfig:
        """Build a config from flat key-value settings.

        Per-provider entries (``ai-api-key-<provider>``, ``ai-model-<provider>``,
        ``ai-endpoint-<provider>``) are looked up for the selected provider.

        Args:
            settings: Stored settings.
            provider: Provider id (default: ``ai-provider`` setting).
        """
        provider_id = provider or settings.get("ai-provider") or cls.provider
        return cls(
            provider=provider_id,
            model=settings.get(f"ai-model-{provider_id}") or None,
            api_key=settings.get(f"ai-api-key-{provider_id}", ""),
            proxy_url=settings.get("ai-proxy-url") or None,
            chunk_size=_int_setting(settings, "ai-chunk-size", cls.chunk_size),
            timeout_sec=float(_int_setting(settings, "ai-request-timeout", int(cls.timeout_sec))),
            parallel_mode=ParallelMode.parse(
                settings.get("ai-parallel-mode") or cls.parallel_mode.value
            ),
            max_concurrent=_int_setting(settings, "ai-max-concurrent", cls.max_concurrent),
            delay_ms=_int_setting(settings, "ai-request-delay", cls.delay_ms),
            endpoint=settings.get(f"ai-endpoint-{provider_id}") or None,
            project_id=settings.get("ai-google-project-id") or None,
        )


def _int_setting(settings: Mapping[str, str], key: str, default: int) -> int:
    raw = settings.get(key)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring invalid setting %s=%r (using %s)", key, raw, default)
        return default
