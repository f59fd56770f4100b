"""Batch translation of subtitle entries through an LLM."""

from __future__ import annotations

import json
import re
import logging
from typing import List, Dict, Sequence

from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from .errors import MalformedResponse
from .llm_client import call_llm_async
from .models import SubtitleEntry

logger = logging.getLogger(__name__)

DEFAULT_STYLE = "Professional, natural, and accurate."


class TranslatedLine(BaseModel):
    """One item of the model's JSON reply."""

    model_config = ConfigDict(strict=True)

    id: int
    translated_text: str = Field(alias="translatedText")


_RESPONSE_ADAPTER = TypeAdapter(List[TranslatedLine])


def build_translation_prompt(
    entries: Sequence[SubtitleEntry],
    style_hint: str,
    target_language: str,
) -> tuple[str, str]:
    """Build system and user prompts. Only ids and text are sent."""
    style = style_hint.strip() or DEFAULT_STYLE

    system_prompt = f"""You are a professional subtitle translator.
Translate the text to {target_language}.
- Style: {style}
- Rules: NO extra text, ONLY the JSON array.
- Input: JSON array with 'id' and 'text'.
- Output: JSON array with 'id' and 'translatedText', e.g. [{{"id": 1, "translatedText": "..."}}]"""

    items = [{"id": e.id, "text": e.text} for e in entries]
    user_prompt = json.dumps(items, ensure_ascii=False)

    return system_prompt, user_prompt


def parse_translation_response(json_str: str) -> Dict[int, str]:
    """
    Validate the model's reply and index it by entry id.

    Raises:
        MalformedResponse: empty reply, invalid JSON or wrong shape
    """
    if not json_str or not json_str.strip():
        raise MalformedResponse("Model returned an empty response")

    # 清理可能的 markdown 格式
    clean = json_str.strip()
    clean = re.sub(r'^```(?:json)?\s*', '', clean)
    clean = re.sub(r'\s*```$', '', clean)

    try:
        lines = _RESPONSE_ADAPTER.validate_json(clean)
    except ValidationError as e:
        logger.debug(f"Raw response: {json_str[:200]}...")
        raise MalformedResponse() from e

    return {line.id: line.translated_text for line in lines}


async def translate_batch(
    entries: Sequence[SubtitleEntry],
    style_hint: str,
    *,
    client: AsyncOpenAI,
    model: str,
    target_language: str,
    temperature: float = 0.3,
) -> Dict[int, str]:
    """
    Translate one batch of entries with a single API call.

    The result may omit ids; callers keep the original text for those.

    Raises:
        TranslationError: rate limit, auth, malformed reply or other failure
    """
    system_prompt, user_prompt = build_translation_prompt(
        entries, style_hint, target_language
    )

    json_str = await call_llm_async(
        client, model,
        [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt}
        ],
        temperature=temperature,
    )

    translated = parse_translation_response(json_str)
    if entries and not translated:
        raise MalformedResponse("Model returned an empty translation array")
    missing = len({e.id for e in entries} - translated.keys())
    if missing:
        logger.warning(f"{missing}/{len(entries)} entries missing from response")
    return translated
