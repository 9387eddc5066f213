"""LLM model factory shared by the critic and coaching-notes stages."""

import os

from pydantic_ai.models.openai import OpenAIChatModel

from app.config.settings import settings

SUPPORTED_PROVIDERS = ("openai",)


def get_model(provider: str, model_name: str) -> OpenAIChatModel:
    """Build a pydantic-ai model for the given provider.

    Args:
        provider: Provider name (only "openai" is supported)
        model_name: Provider-specific model identifier

    Returns:
        Model instance usable by ``pydantic_ai.Agent``

    Raises:
        ValueError: If the provider is not supported
    """
    if provider == "openai":
        # pydantic-ai reads the key from the environment
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return OpenAIChatModel(model_name)

    raise ValueError(f"Unsupported LLM provider: {provider}. Supported: {', '.join(SUPPORTED_PROVIDERS)}")
