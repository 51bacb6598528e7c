"""Centralized AI model factory for all LLM operations.

This module is the single source of truth for creating pydantic-ai models,
supporting Gemini, Azure OpenAI and a self-hosted Ollama endpoint (through its
OpenAI-compatible API) based on configuration.

Usage:
    from services.ai.model_factory import get_chat_model, get_extraction_model

    oracle = get_extraction_model()  # task extraction oracle
    model = get_chat_model()  # realtime conversational model
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, cast

from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from core.config import get_settings


# OpenAI reasoning models that support reasoning_effort parameter
REASONING_MODELS = {
    "gpt-5-mini",
    "gpt-5-nano",
    "o1-mini",
    "o1",
    "o3-mini",
}


if TYPE_CHECKING:
    from httpx import AsyncClient

logger = logging.getLogger(__name__)


def _normalize_azure_endpoint(endpoint: str) -> str:
    """Normalize Azure OpenAI endpoint.

    Trailing slashes lead to `//openai/...` URLs, which Azure treats as a
    different path and answers with 404.
    """
    return endpoint.rstrip("/")


def _validate_azure_credentials() -> bool:
    """Validate that Azure OpenAI credentials are properly configured."""
    settings = get_settings()
    if (
        not settings.AZURE_OPENAI_ENDPOINT
        or not settings.AZURE_OPENAI_API_KEY
        or not settings.AZURE_OPENAI_API_VERSION
    ):
        logger.warning(
            "LLM_PROVIDER=azure_openai but credentials missing, falling back to Gemini"
        )
        return False
    return True


def _validate_gemini_credentials() -> bool:
    """Validate that Gemini API key is configured."""
    settings = get_settings()
    if not settings.GEMINI_API_KEY:
        logger.warning("Gemini API key not configured")
        return False
    return True


def _create_azure_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    """Create an Azure OpenAI model with the specified deployment name.

    For reasoning models (o1, o3, gpt-5 series), applies low reasoning effort
    for faster responses.
    """
    settings = get_settings()

    from openai import AsyncAzureOpenAI

    azure_client = AsyncAzureOpenAI(
        azure_endpoint=_normalize_azure_endpoint(settings.AZURE_OPENAI_ENDPOINT or ""),
        api_key=settings.AZURE_OPENAI_API_KEY,
        api_version=settings.AZURE_OPENAI_API_VERSION,
        http_client=http_client,
    )
    provider = OpenAIProvider(openai_client=azure_client)

    if model_name in REASONING_MODELS:
        logger.info("Applying low reasoning effort for reasoning model: %s", model_name)
        return OpenAIChatModel(
            model_name,
            provider=provider,
            settings={"openai_reasoning_effort": "low"},
        )

    return OpenAIChatModel(model_name, provider=provider)


def _create_ollama_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    """Create a model served by Ollama's OpenAI-compatible endpoint."""
    settings = get_settings()
    provider = OpenAIProvider(
        base_url=settings.OLLAMA_BASE_URL,
        api_key="ollama",
        http_client=http_client,
    )
    return OpenAIChatModel(model_name, provider=provider)


def _create_gemini_model(
    model_name: str,
    http_client: AsyncClient | None = None,
) -> Model:
    """Create a Google Gemini model with the specified model name."""
    settings = get_settings()
    provider = GoogleProvider(
        api_key=settings.GEMINI_API_KEY,
        http_client=http_client,
    )
    return cast(Model, GoogleModel(model_name, provider=provider))


def _create_model(model_name: str, http_client: AsyncClient | None) -> Model:
    settings = get_settings()

    if settings.LLM_PROVIDER == "ollama":
        logger.info("Using Ollama model: %s", model_name)
        return _create_ollama_model(model_name, http_client)

    if settings.LLM_PROVIDER == "azure_openai" and _validate_azure_credentials():
        logger.info("Using Azure OpenAI model: %s", model_name)
        return _create_azure_model(model_name, http_client)

    # Fallback to Gemini - validate credentials
    if not _validate_gemini_credentials():
        raise ValueError(
            "No valid LLM provider configured. Either set Azure OpenAI "
            "credentials (AZURE_OPENAI_ENDPOINT + AZURE_OPENAI_API_KEY), "
            "LLM_PROVIDER=ollama, or Gemini credentials (GEMINI_API_KEY)."
        )

    logger.info("Using Gemini model: %s", model_name)
    return _create_gemini_model(model_name, http_client)


def get_extraction_model(http_client: AsyncClient | None = None) -> Model:
    """Get the text model used as the task extraction oracle.

    Args:
        http_client: Optional HTTP client for custom retry logic.

    Returns:
        A pydantic-ai Model configured for the selected provider.
    """
    return _create_model(get_settings().EXTRACTION_MODEL, http_client)


def get_chat_model(http_client: AsyncClient | None = None) -> Model:
    """Get the conversational model driving realtime voice sessions.

    Args:
        http_client: Optional HTTP client for custom retry logic.

    Returns:
        A pydantic-ai Model configured for the selected provider.
    """
    return _create_model(get_settings().CHAT_MODEL, http_client)
