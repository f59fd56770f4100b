"""Configuration and constants."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load environment variables once
load_dotenv()

API_KEY_ENV_VARS = ("SUBTITLE_API_KEY", "OPENAI_API_KEY")
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TARGET_LANGUAGE = "Vietnamese"
OUTPUT_PREFIX = "translated_"


def api_key_from_env() -> Optional[str]:
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass
class TranslatorConfig:
    """Configuration for the subtitle translator."""

    # API settings
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model_name: str = DEFAULT_MODEL
    timeout: float = 60.0

    # Translation settings
    target_language: str = DEFAULT_TARGET_LANGUAGE
    temperature: float = 0.3

    # Output settings
    output_prefix: str = OUTPUT_PREFIX

    def __post_init__(self):
        """Load API key from environment if not provided."""
        if self.api_key is None:
            self.api_key = api_key_from_env()

    @classmethod
    def from_args(cls, args) -> "TranslatorConfig":
        """Create config from argparse namespace."""
        return cls(
            api_key=getattr(args, 'api_key', None) or api_key_from_env(),
            base_url=getattr(args, 'base_url', DEFAULT_BASE_URL),
            model_name=getattr(args, 'model_name', DEFAULT_MODEL),
            target_language=getattr(args, 'target_language', DEFAULT_TARGET_LANGUAGE),
            timeout=getattr(args, 'timeout', 60.0),
        )

    def validate(self) -> Optional[str]:
        """
        Validate configuration.

        Returns:
            Error message if invalid, None if valid
        """
        if not self.api_key:
            return "API key is required. Set SUBTITLE_API_KEY or use --api-key"

        if not self.target_language.strip():
            return "Target language must not be empty"

        if self.timeout <= 0:
            return f"Timeout must be positive, got {self.timeout}"

        if not 0.0 <= self.temperature <= 2.0:
            return f"Temperature must be 0-2, got {self.temperature}"

        return None
