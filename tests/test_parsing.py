# SPDX-License-Identifier: Apache-2.0
"""Tests for the reply parser chain and prompt rendering."""

import json

import pytest

from site_translator.pipeline.parsing import (
    extract_json_object,
    parse_braced_span,
    parse_direct,
    strip_leading_fence,
)
from site_translator.pipeline.prompts import (
    DEFAULT_TRANSLATION_PROMPT,
    render_language_info_prompt,
    render_prompt,
)
from site_translator.providers import MalformedResponseError


class TestStripLeadingFence:
    """Test leading fence removal."""

    def test_json_fence(self) -> None:
        assert strip_leading_fence('```json\n{"a":"x"}\n```') == '{"a":"x"}'

    def test_bare_fence(self) -> None:
        assert strip_leading_fence('```\n{"a":"x"}\n```') == '{"a":"x"}'

    def test_fence_not_at_start_is_kept(self) -> None:
        """A fence after prose must not be stripped."""
        text = 'Here\'s the answer:\n```json\n{"a":"x"}\n```'
        assert strip_leading_fence(text) == text

    def test_whitespace_before_fence(self) -> None:
        assert strip_leading_fence('  \n```json\n{"a":"x"}\n```  ') == '{"a":"x"}'


class TestStrategies:
    """Test individual parse strategies."""

    def test_direct_object(self) -> None:
        assert parse_direct('{"a": "x"}') == {"a": "x"}

    def test_direct_rejects_non_objects(self) -> None:
        assert parse_direct('["a"]') is None
        assert parse_direct("nope") is None

    def test_braced_span(self) -> None:
        assert parse_braced_span('Sure! {"a": "x"} Hope this helps.') == {"a": "x"}

    def test_braced_span_without_braces(self) -> None:
        assert parse_braced_span("no json here") is None


class TestExtractJsonObject:
    """Test the full chain."""

    def test_fenced_reply(self) -> None:
        assert extract_json_object('```json\n{"a":"x"}\n```') == {"a": "x"}

    def test_prefixed_fence_uses_brace_fallback(self) -> None:
        """Fence stripping is skipped and the brace fallback recovers the object."""
        text = 'Here\'s the answer:\n```json\n{"a":"x"}\n```'
        assert extract_json_object(text) == {"a": "x"}

    def test_content_with_inner_fence_is_preserved(self) -> None:
        """A translated value containing a code fence survives intact."""
        payload = {"content": "Run:\n```bash\nls\n```\nDone"}
        assert extract_json_object(json.dumps(payload)) == payload

    def test_no_json(self) -> None:
        with pytest.raises(MalformedResponseError, match="valid JSON"):
            extract_json_object("I cannot translate this.")

    def test_truncated_reply(self) -> None:
        with pytest.raises(MalformedResponseError, match="truncated"):
            extract_json_object('{"a": "x", "b": "unfinish')


class TestPrompts:
    """Test prompt rendering."""

    def test_target_language_substituted(self) -> None:
        prompt = render_prompt(DEFAULT_TRANSLATION_PROMPT, "Deutsch", {"Hello": "Hello"})

        assert "{{targetLang}}" not in prompt
        assert "from English to Deutsch" in prompt

    def test_payload_is_pretty_json_after_blank_line(self) -> None:
        prompt = render_prompt("Translate to {{targetLang}}", "Polski", {"a": "Zażółć", "b": "B"})

        instructions, body = prompt.split("\n\n", 1)
        assert instructions == "Translate to Polski"
        assert json.loads(body) == {"a": "Zażółć", "b": "B"}
        assert "Zażółć" in body
        assert '\n  "a"' in body

    def test_language_info_prompt(self) -> None:
        prompt = render_language_info_prompt("pl", "Polish")

        assert 'ISO code "pl"' in prompt
        assert 'Current name provided: "Polish"' in prompt
