import logging
from typing import Optional

from makeitsimple.adapters.base import BaseModelAdapter
from makeitsimple.config import Settings

logger = logging.getLogger("adapter_factory")


def build_adapter(settings: Settings) -> Optional[BaseModelAdapter]:
    """
    Build the adapter for the configured provider.
    Returns None when the provider has no credential.
    """
    api_key = settings.provider_api_key
    if api_key is None:
        logger.warning(
            f"{settings.AI_PROVIDER.upper()}_API_KEY is not set. AI requests will fail."
        )
        return None

    if settings.AI_PROVIDER == "groq":
        from makeitsimple.adapters.groq import GroqAdapter

        return GroqAdapter(
            api_key=api_key,
            default_model=settings.DEFAULT_MODEL_GROQ,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
        )

    from makeitsimple.adapters.gemini import GeminiAdapter

    return GeminiAdapter(
        api_key=api_key,
        default_model=settings.GEMINI_MODEL,
        base_url=settings.GEMINI_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )
