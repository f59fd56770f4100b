"""LLM API client utilities."""

from __future__ import annotations

import logging
from typing import List, Dict

from openai import (
    AsyncOpenAI,
    APIStatusError,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)

from .errors import (
    TranslationError,
    RateLimited,
    Unauthorized,
    UnknownTranslationError,
)

logger = logging.getLogger(__name__)


def classify_error(error: Exception) -> TranslationError:
    """
    Map a transport failure onto a semantic translation error.

    Returns:
        The TranslationError to raise in place of ``error``
    """
    if isinstance(error, TranslationError):
        return error
    if isinstance(error, RateLimitError):
        return RateLimited()
    if isinstance(error, (AuthenticationError, PermissionDeniedError)):
        return Unauthorized()
    if isinstance(error, APIStatusError):
        status = getattr(error, 'status_code', None)
        if status == 429:
            return RateLimited()
        if status in (401, 403):
            return Unauthorized()

    message = str(error)
    # 某些代理只在消息里带状态码
    if "429" in message:
        return RateLimited()
    if "401" in message or "403" in message:
        return Unauthorized()
    return UnknownTranslationError(message or "Connection to the translation API failed")


async def call_llm_async(
    client: AsyncOpenAI,
    model: str,
    messages: List[Dict[str, str]],
    temperature: float = 0.3,
) -> str:
    """
    Make exactly one async call to the LLM API.

    Args:
        client: AsyncOpenAI client instance
        model: Model name to use
        messages: List of message dictionaries
        temperature: Sampling temperature

    Returns:
        Response content as string (may be empty)

    Raises:
        TranslationError: classified transport failure
    """
    try:
        response = await client.chat.completions.create(
            model=model,
            messages=messages,
            temperature=temperature,
        )
    except Exception as e:
        error = classify_error(e)
        logger.error(f"LLM request failed ({error.kind.value}): {e}")
        raise error from e

    if not response.choices:
        return ""
    content = response.choices[0].message.content
    return content.strip() if content else ""


def create_client(
    api_key: str,
    base_url: str,
    timeout: float = 60.0
) -> AsyncOpenAI:
    """
    Create an AsyncOpenAI client.

    SDK-level retries are disabled; a failed request is reported as-is.

    Args:
        api_key: API key for authentication
        base_url: API base URL
        timeout: Default timeout for requests

    Returns:
        Configured AsyncOpenAI client
    """
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=0,
    )
