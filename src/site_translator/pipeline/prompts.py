# SPDX-License-Identifier: Apache-2.0
"""Prompt templates.

Templates use a ``{{targetLang}}`` placeholder that is replaced with the
target language's display name; the JSON payload is appended after a blank
line.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

TARGET_LANG_PLACEHOLDER = "{{targetLang}}"

DEFAULT_TRANSLATION_PROMPT = """\
You are a professional translator. Translate the following JSON object values from English to {{targetLang}}.
Keep the JSON structure and keys exactly the same. Only translate the values.
Preserve any HTML tags and attributes unchanged (e.g., <a href="...">link</a>, <strong>, <p>, etc.).
Preserve any Markdown formatting unchanged (e.g., **bold**, *italic*, [links](...), # headers, - lists, etc.).
Keep brand and product names unchanged.
Keep language names in their native form (e.g., 'Deutsch' not 'German').
Return ONLY the JSON object, no explanations or markdown code blocks."""

BLOG_TRANSLATION_PROMPT = """\
You are a professional translator. Translate the following JSON object from English to {{targetLang}}.
Keep the JSON structure exactly the same. Translate the values of "title", "excerpt", and "content" fields.
Preserve any Markdown formatting unchanged (e.g., **bold**, *italic*, [links](...), # headers, - lists, code blocks, etc.).
Preserve any HTML tags unchanged.
Keep brand and product names unchanged.
Return ONLY the JSON object, no explanations or markdown code blocks."""

LANGUAGE_INFO_PROMPT = """\
For the language with ISO code "{{code}}":
1. What is its native name? (e.g., "en" -> "English", "de" -> "Deutsch", "pl" -> "Polski", "zh-CN" -> "简体中文")
2. What is its flag emoji? (e.g., "de" -> "🇩🇪", "pl" -> "🇵🇱", "zh-CN" -> "🇨🇳")

Current name provided: "{{currentName}}"

Return ONLY a JSON object like this, nothing else:
{"name": "Native Name", "flag": "🇽🇽"}"""


def render_prompt(
    template: str,
    target_language: str,
    payload: Mapping[str, Any],
) -> str:
    """Substitute the target language and append the payload as JSON.

    Args:
        template: Prompt template with ``{{targetLang}}`` placeholders.
        target_language: Display name of the target language.
        payload: Key/value pairs to translate.

    Returns:
        The complete prompt.
    """
    instructions = template.replace(TARGET_LANG_PLACEHOLDER, target_language)
    body = json.dumps(dict(payload), indent=2, ensure_ascii=False)
    return f"{instructions}\n\n{body}"


def render_language_info_prompt(code: str, current_name: str = "") -> str:
    return LANGUAGE_INFO_PROMPT.replace("{{code}}", code).replace(
        "{{currentName}}", current_name
    )
