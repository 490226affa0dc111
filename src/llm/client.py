"""
LLM client factory

Creates a streaming chat model for a model-picker id. Gemini models are
reached through Google's OpenAI-compatible endpoint, GPT models through
OpenAI directly.
"""

from typing import Optional, Tuple
from loguru import logger

from src.config.constants import MODEL_IDS, PROVIDER_MODEL_NAMES
from src.config.settings import settings


class MissingAPIKeyError(ValueError):
    """The provider for the requested model has no API key configured"""

    def __init__(self, provider: str):
        super().__init__(f"{provider} API key not configured")
        self.provider = provider


def resolve_provider(model: str) -> Tuple[str, str, str, str]:
    """
    Map a model id to its provider connection details.

    Args:
        model: Model-picker id, e.g. "gemini-2.5-flash"

    Returns:
        (provider label, upstream model name, base URL, API key)
    """
    if model not in MODEL_IDS:
        logger.warning(f"⚠️  Unknown model '{model}', falling back to {settings.default_model}")
        model = settings.default_model

    upstream = PROVIDER_MODEL_NAMES[model]
    if model.startswith("gemini"):
        return "Google Gemini", upstream, settings.gemini_base_url, settings.google_generative_ai_api_key
    return "OpenAI", upstream, settings.openai_base_url, settings.openai_api_key


def create_llm(model: str, temperature: Optional[float] = None):
    """
    Factory function to create a streaming chat model.

    Args:
        model: Model-picker id
        temperature: Generation temperature (defaults to settings.llm_temperature)

    Returns:
        LangChain ChatOpenAI instance

    Raises:
        MissingAPIKeyError: If the provider's API key is not set
    """
    provider, upstream, base_url, api_key = resolve_provider(model)
    if not api_key:
        raise MissingAPIKeyError(provider)

    from langchain_openai import ChatOpenAI

    logger.debug(f"Creating LLM | provider={provider} | model={upstream} | base_url={base_url}")
    return ChatOpenAI(
        model=upstream,
        api_key=api_key,
        base_url=base_url,
        temperature=temperature if temperature is not None else settings.llm_temperature,
        streaming=True,
    )
