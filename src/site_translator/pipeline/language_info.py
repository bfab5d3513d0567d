# SPDX-License-Identifier: Apache-2.0
"""Ask the model for a language's native name and flag."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from site_translator.pipeline.chunk_translator import ChunkTranslator
from site_translator.pipeline.parsing import extract_json_object
from site_translator.pipeline.prompts import render_language_info_prompt
from site_translator.providers.base import MalformedResponseError


class LanguageInfo(BaseModel):
    """Native name and flag emoji of a language."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=49)
    flag: str = ""


async def describe_language(
    translator: ChunkTranslator,
    code: str,
    current_name: str = "",
) -> LanguageInfo:
    """Look up the native name and flag for a language code.

    Args:
        translator: Chunk translator bound to the configured provider.
        code: ISO language code (e.g. ``"pl"``).
        current_name: Name the user typed so far, as a hint.

    Returns:
        Validated language info.

    Raises:
        MalformedResponseError: If the reply lacks a usable name.
        TranslationError: On provider errors.
    """
    text, _ = await translator.complete(render_language_info_prompt(code, current_name))
    data = extract_json_object(text)
    try:
        return LanguageInfo.model_validate(data)
    except ValidationError as e:
        raise MalformedResponseError(f"Invalid language info for '{code}': {e}") from e
