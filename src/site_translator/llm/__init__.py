# SPDX-License-Identifier: Apache-2.0
"""Request dispatch for AI providers.

HTTP providers are relayed through aiohttp (optional outbound proxy,
per-request timeout); CLI providers run as local subprocesses that are
killed on timeout.
"""

from site_translator.llm.client import CommandProvider, LLMClient
from site_translator.llm.process import ProcessResult, run_cli
from site_translator.llm.relay import HttpRelay, RelayResponse

__all__ = [
    "CommandProvider",
    "HttpRelay",
    "LLMClient",
    "ProcessResult",
    "RelayResponse",
    "run_cli",
]
