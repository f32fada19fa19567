# text_generators/__init__.py
import os

from .base import CompletionError, TextGeneratorAPI
from .openai_compat import LM_STUDIO_BASE_URL, OpenAICompatibleTextGenerator
from .anthropic import AnthropicTextGenerator

__all__ = [
    "CompletionError",
    "LM_STUDIO_BASE_URL",
    "TextGeneratorAPI",
    "OpenAICompatibleTextGenerator",
    "AnthropicTextGenerator",
    "get_text_generator",
]

OPENAI_BASE_URL = "https://api.openai.com/v1"


def get_text_generator(api: str, model: str, **kwargs) -> TextGeneratorAPI:
    """Return an appropriate completion backend for the given API name."""
    if api in ("lmstudio", "local"):
        return OpenAICompatibleTextGenerator(model, **kwargs)
    if api in ("openai", "chatgpt"):
        kwargs.setdefault("base_url", OPENAI_BASE_URL)
        kwargs.setdefault("api_key", os.getenv("OPENAI_API_KEY"))
        return OpenAICompatibleTextGenerator(model, **kwargs)
    if api == "anthropic":
        return AnthropicTextGenerator(model)
    raise ValueError(f"Unknown API: {api}")
