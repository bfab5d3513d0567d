# SPDX-License-Identifier: Apache-2.0
"""Providers backed by locally installed LLM command-line tools."""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from site_translator.providers.base import (
    CliCommand,
    ProviderRequest,
    TranslatorError,
    chat_completion_text,
)

if TYPE_CHECKING:
    from site_translator.llm.client import LLMClient

logger = logging.getLogger(__name__)


def _chat_envelope(text: str) -> dict[str, Any]:
    return {"choices": [{"message": {"content": text, "role": "assistant"}}]}


def _proxy_env(proxy_url: str | None) -> dict[str, str]:
    env = dict(os.environ)
    if proxy_url:
        env["HTTPS_PROXY"] = proxy_url
        env["HTTP_PROXY"] = proxy_url
    return env


class OpenCodeLocalProvider:
    """Runs ``opencode run --format json`` with the prompt on stdin.

    The CLI prints one JSON event per line; text events are concatenated
    into the assistant reply.
    """

    PROGRAM = "opencode"

    @property
    def id(self) -> str:
        return "opencode-local"

    @property
    def display_name(self) -> str:
        return "OpenCode (Local)"

    @property
    def default_model(self) -> str:
        return "opencode/big-pickle"

    @property
    def requires_api_key(self) -> bool:
        return False

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        """Describe the local invocation as a request (prompt and model only)."""
        return ProviderRequest(
            endpoint=f"cli:{self.PROGRAM}",
            headers={"Content-Type": "application/json"},
            body=json.dumps({"prompt": prompt, "model": model}),
        )

    def build_command(
        self,
        prompt: str,
        model: str,
        proxy_url: str | None = None,
    ) -> CliCommand:
        argv = [self.PROGRAM, "run", "--format", "json"]
        if model:
            argv += ["-m", model]
        return CliCommand(argv=tuple(argv), stdin=prompt, env=_proxy_env(proxy_url))

    def parse_output(self, stdout: str) -> dict[str, Any]:
        """Concatenate ``{"type": "text", "part": {"text": ...}}`` events."""
        parts: list[str] = []
        for line in stdout.strip().splitlines():
            if not line.strip():
                continue
            try:
                event = json.loads(line)
            except ValueError:
                continue  # non-JSON log line
            if not isinstance(event, dict) or event.get("type") != "text":
                continue
            part = event.get("part")
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return _chat_envelope("".join(parts))

    def extract_response_text(self, response: Any) -> str:
        return chat_completion_text(response)

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """Run ``opencode models`` (one model per line); [] on failure."""
        try:
            result = await client.run_command([self.PROGRAM, "models"])
        except TranslatorError as e:
            logger.debug("opencode not found: %s", e)
            return []
        if result.returncode != 0:
            logger.debug("opencode models failed: %s", result.stderr[:200])
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]


class GeminiCliProvider:
    """Runs the ``gemini`` CLI in JSON output mode.

    Requires a Google Cloud project id, passed as ``GOOGLE_CLOUD_PROJECT``.
    """

    PROGRAM = "gemini"
    MODELS = [
        "gemini-2.5-pro",
        "gemini-2.5-flash",
        "gemini-2.5-flash-lite",
        "gemini-2.0-flash",
        "gemini-2.0-flash-lite",
    ]

    def __init__(self, project_id: str | None = None) -> None:
        self._project_id = project_id

    @property
    def id(self) -> str:
        return "gemini-cli"

    @property
    def display_name(self) -> str:
        return "Gemini CLI"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def requires_api_key(self) -> bool:
        return False

    @property
    def project_id(self) -> str | None:
        return self._project_id

    def build_request(self, prompt: str, api_key: str, model: str) -> ProviderRequest:
        return ProviderRequest(
            endpoint=f"cli:{self.PROGRAM}",
            headers={"Content-Type": "application/json"},
            body=json.dumps({"prompt": prompt, "model": model}),
        )

    def build_command(
        self,
        prompt: str,
        model: str,
        proxy_url: str | None = None,
    ) -> CliCommand:
        argv = [self.PROGRAM, "-y", "-o", "json"]
        if model:
            argv += ["-m", model]
        argv.append(prompt)
        env = _proxy_env(proxy_url)
        if self._project_id:
            env["GOOGLE_CLOUD_PROJECT"] = self._project_id
        return CliCommand(argv=tuple(argv), stdin=None, env=env)

    def parse_output(self, stdout: str) -> dict[str, Any]:
        """Parse ``{"response": ...}`` from the CLI's JSON mode.

        Raises:
            ValueError: If stdout is not a JSON object.
        """
        result = json.loads(stdout)
        if not isinstance(result, dict):
            raise ValueError("gemini output is not a JSON object")
        text = result.get("response") or ""
        envelope = _chat_envelope(text)
        envelope["response"] = text
        return envelope

    def extract_response_text(self, response: Any) -> str:
        """Return the reply text as is; fences are handled by the reply parser."""
        text = ""
        if isinstance(response, dict) and isinstance(response.get("response"), str):
            text = response["response"]
        if not text:
            text = chat_completion_text(response)
        return text

    async def fetch_models(
        self,
        api_key: str,
        proxy_url: str | None,
        client: LLMClient,
    ) -> list[str]:
        """The CLI has no listing command; return the known models."""
        return list(self.MODELS)
