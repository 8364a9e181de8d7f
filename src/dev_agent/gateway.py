"""Gateway to the generative model backend and its configuration helpers."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_KEY_FILE = Path(".api_keys/Gemini.md")
DEFAULT_MODEL_NAME = "gemini-3-flash-preview"
DEFAULT_MAX_TOKENS = 4000

MODEL_ENV_VAR = "DEV_AGENT_MODEL"
MAX_TOKENS_ENV_VAR = "DEV_AGENT_MAX_TOKENS"


class ConfigurationError(RuntimeError):
    """Raised when required configuration (credentials, limits) is missing or invalid."""


class GatewayError(RuntimeError):
    """Uniform error for any failure while calling the model service."""


class ModelGateway(Protocol):
    def ask(self, prompt: str, *, model: str | None = None, max_tokens: int | None = None) -> str:
        ...


def resolve_gemini_api_key(key_file: Path = DEFAULT_GEMINI_KEY_FILE) -> str | None:
    """Resolve the Gemini API key from environment or fallback file.

    Resolution order:
    1. ``GEMINI_API_KEY`` environment variable.
    2. ``key_file`` plaintext contents.

    Args:
        key_file: Optional fallback file containing only the API key.

    Returns:
        The non-empty API key when found, otherwise ``None``.
    """
    api_key = (os.getenv("GEMINI_API_KEY") or "").strip()
    if api_key:
        return api_key

    if key_file.exists():
        fallback_key = key_file.read_text(encoding="utf-8").strip()
        if fallback_key:
            return fallback_key

    return None


def resolve_model_name() -> str:
    """Return the model override from ``DEV_AGENT_MODEL`` or the default."""
    return (os.getenv(MODEL_ENV_VAR) or "").strip() or DEFAULT_MODEL_NAME


def configured_max_tokens() -> int | None:
    """Return the token budget set through ``DEV_AGENT_MAX_TOKENS``, or ``None`` when unset.

    Raises:
        ConfigurationError: If the override is not a positive integer.
    """
    raw = (os.getenv(MAX_TOKENS_ENV_VAR) or "").strip()
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{MAX_TOKENS_ENV_VAR} must be an integer, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{MAX_TOKENS_ENV_VAR} must be positive, got {value}")
    return value


def resolve_max_tokens() -> int:
    """Return the configured token budget or ``DEFAULT_MAX_TOKENS``."""
    return configured_max_tokens() or DEFAULT_MAX_TOKENS


class GeminiGateway:
    """Thin adapter around Google GenAI content generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        max_tokens: int | None = None,
    ):
        """Bind the gateway to credentials and defaults.

        Raises:
            ConfigurationError: If no API key was passed and none can be resolved.
        """
        key = (api_key or "").strip() or resolve_gemini_api_key()
        if not key:
            raise ConfigurationError(
                "Missing GEMINI_API_KEY (set env var, .api_keys/Gemini.md, or pass --api-key)"
            )
        self.api_key = key
        self.model_name = model_name or resolve_model_name()
        self.max_tokens = max_tokens or resolve_max_tokens()

    def ask(self, prompt: str, *, model: str | None = None, max_tokens: int | None = None) -> str:
        """Send one prompt and return the text completion.

        Args:
            prompt: Full prompt text.
            model: Optional per-call model override.
            max_tokens: Optional per-call output token budget.

        Returns:
            Trimmed response text.

        Raises:
            ValueError: If the prompt is blank.
            GatewayError: If the SDK call fails or returns no text.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("Prompt must be a non-empty string.")

        model_name = model or self.model_name
        budget = max_tokens or self.max_tokens
        logger.debug("calling model %s (max_tokens=%d, prompt_chars=%d)", model_name, budget, len(prompt))

        from google import genai
        from google.genai import types

        try:
            client = genai.Client(api_key=self.api_key)
            response = client.models.generate_content(
                model=model_name,
                contents=prompt,
                config=types.GenerateContentConfig(max_output_tokens=budget),
            )
        except Exception as exc:
            raise GatewayError(f"Gemini API error: {exc}") from exc

        text = (response.text or "").strip()
        if not text:
            raise GatewayError("Gemini API error: empty response")
        return text
