# SPDX-License-Identifier: Apache-2.0
"""Turn free-form model replies into JSON objects.

The chain is a sequence of independent strategies tried in order:

1. Strip a fenced block, but only when the trimmed reply *starts* with the
   fence. A fence preceded by prose is left alone.
2. Parse the remaining text directly.
3. Parse the span from the first ``{`` to the last ``}``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from typing import Any

from site_translator.providers.base import MalformedResponseError

FENCE = "```"

_LEADING_FENCE = re.compile(r"^```(?:json)?\s*([\s\S]*?)\s*```")
_BRACED_SPAN = re.compile(r"\{[\s\S]*\}")

ParseStrategy = Callable[[str], "dict[str, Any] | None"]


def strip_leading_fence(text: str) -> str:
    """Remove a ```` ```json ```` wrapper if the reply starts with it."""
    stripped = text.strip()
    if not stripped.startswith(FENCE):
        return stripped
    match = _LEADING_FENCE.match(stripped)
    return match.group(1).strip() if match else stripped


def parse_direct(text: str) -> dict[str, Any] | None:
    """Parse the whole text; None unless it is a JSON object."""
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def parse_braced_span(text: str) -> dict[str, Any] | None:
    """Parse the greedy first-``{``-to-last-``}`` span."""
    match = _BRACED_SPAN.search(text)
    if match is None:
        return None
    return parse_direct(match.group(0))


STRATEGIES: tuple[ParseStrategy, ...] = (parse_direct, parse_braced_span)


def extract_json_object(text: str) -> dict[str, Any]:
    """Extract a JSON object from a model reply.

    Args:
        text: Raw assistant text.

    Returns:
        Parsed JSON object.

    Raises:
        MalformedResponseError: If no strategy yields a JSON object.
    """
    candidate = strip_leading_fence(text)
    for strategy in STRATEGIES:
        result = strategy(candidate)
        if result is not None:
            return result
    if candidate.startswith("{") and not candidate.endswith("}"):
        raise MalformedResponseError(
            "AI response does not contain valid JSON (the reply looks truncated)"
        )
    raise MalformedResponseError("AI response does not contain valid JSON")
