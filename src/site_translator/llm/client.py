# SPDX-License-Identifier: Apache-2.0
"""LLM client that dispatches provider requests over HTTP or a local CLI."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Protocol, runtime_checkable

from site_translator.llm.process import ProcessResult, run_cli
from site_translator.llm.relay import HttpRelay, RelayResponse
from site_translator.providers.base import CliCommand, Provider, TransportError

logger = logging.getLogger(__name__)

CliRunner = Callable[..., Awaitable[ProcessResult]]

# Timeout for model listing requests
MODELS_TIMEOUT = 15.0


@runtime_checkable
class CommandProvider(Protocol):
    """Provider backed by a locally installed CLI instead of an HTTP API."""

    @property
    def id(self) -> str: ...

    def build_command(
        self,
        prompt: str,
        model: str,
        proxy_url: str | None = None,
    ) -> CliCommand:
        """Build the CLI invocation for one prompt."""
        ...

    def parse_output(self, stdout: str) -> dict[str, Any]:
        """Turn CLI stdout into a chat-completions style envelope.

        Raises:
            ValueError: If stdout cannot be parsed.
        """
        ...


class LLMClient:
    """Unified dispatch for all providers.

    HTTP providers go through the relay (which handles proxy and timeout);
    CLI providers are run as subprocesses and their output is normalized to
    a chat-completions envelope so callers see one response shape.
    """

    def __init__(
        self,
        relay: HttpRelay | None = None,
        runner: CliRunner = run_cli,
    ) -> None:
        """Initialize LLMClient.

        Args:
            relay: HTTP relay to use. Created lazily when None.
            runner: Coroutine that runs a CLI command.
        """
        self._relay = relay
        self._runner = runner

    def _ensure_relay(self) -> HttpRelay:
        if self._relay is None:
            self._relay = HttpRelay()
        return self._relay

    async def send(
        self,
        provider: Provider,
        prompt: str,
        *,
        api_key: str,
        model: str,
        proxy_url: str | None = None,
        timeout: float = 300.0,
    ) -> RelayResponse:
        """Send one prompt to a provider.

        Args:
            provider: Provider to use.
            prompt: Rendered prompt.
            api_key: API key (may be empty).
            model: Model identifier.
            proxy_url: Optional outbound proxy.
            timeout: Per-request timeout in seconds.

        Returns:
            Response status and body.

        Raises:
            TransportError: On network failure, spawn failure or timeout.
        """
        if isinstance(provider, CommandProvider):
            return await self._send_command(provider, prompt, model, proxy_url, timeout)

        request = provider.build_request(prompt, api_key, model)
        logger.debug("Endpoint: %s", request.endpoint)
        logger.debug("Prompt (first 300 chars): %s", prompt[:300])
        return await self._ensure_relay().post(
            request.endpoint,
            request.headers,
            request.body,
            proxy_url=proxy_url,
            timeout=timeout,
        )

    async def _send_command(
        self,
        provider: CommandProvider,
        prompt: str,
        model: str,
        proxy_url: str | None,
        timeout: float,
    ) -> RelayResponse:
        command = provider.build_command(prompt, model, proxy_url)
        result = await self._runner(
            command.argv,
            stdin=command.stdin,
            env=command.env,
            timeout=timeout,
        )
        program = command.argv[0]
        if result.returncode != 0:
            logger.warning("%s stderr: %s", program, result.stderr[:500])
            return RelayResponse(
                status=500,
                text=json.dumps({
                    "error": f"{program} exited with code {result.returncode}",
                    "stderr": result.stderr,
                }),
            )
        try:
            envelope = provider.parse_output(result.stdout)
        except ValueError:
            logger.warning("%s raw stdout: %s", program, result.stdout[:500])
            return RelayResponse(
                status=500,
                text=json.dumps({"error": f"Failed to parse {program} output"}),
            )
        return RelayResponse(status=200, text=json.dumps(envelope))

    async def get_json(
        self,
        endpoint: str,
        headers: dict[str, str] | None = None,
        proxy_url: str | None = None,
        timeout: float = MODELS_TIMEOUT,
    ) -> Any:
        """GET an endpoint and decode its JSON body.

        Raises:
            TransportError: On network failure, non-2xx status or bad JSON.
        """
        response = await self._ensure_relay().get(
            endpoint, headers, proxy_url=proxy_url, timeout=timeout
        )
        if not response.ok:
            raise TransportError(f"GET {endpoint} returned status {response.status}")
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"GET {endpoint} returned invalid JSON") from e

    async def run_command(
        self,
        argv: Sequence[str],
        env: Mapping[str, str] | None = None,
        timeout: float = MODELS_TIMEOUT,
    ) -> ProcessResult:
        """Run a CLI command without a prompt (e.g. model listing)."""
        return await self._runner(tuple(argv), stdin=None, env=env, timeout=timeout)

    async def close(self) -> None:
        """Close the underlying relay."""
        if self._relay is not None:
            await self._relay.close()
            self._relay = None
