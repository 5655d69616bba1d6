"""
Provider Handle (v1.0.0)
Tagged availability of the generation provider.

Call sites check `isinstance(provider, ProviderAvailable)` and must handle
the unavailable branch (placeholder output) explicitly.
"""
import logging
from dataclasses import dataclass
from typing import Union

from cotton_cloud.config.settings import Settings
from cotton_cloud.llm.gemini_client import GeminiClient, create_gemini_client

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderUnavailable:
    """No provider could be constructed; serve placeholders."""
    reason: str

    @property
    def name(self) -> str:
        return "placeholder"


@dataclass(frozen=True)
class ProviderAvailable:
    """A configured Gemini client."""
    client: GeminiClient

    @property
    def name(self) -> str:
        return "gemini"


Provider = Union[ProviderUnavailable, ProviderAvailable]


def create_provider(settings: Settings) -> Provider:
    """
    Build the provider handle at startup.

    Missing credentials or SDK initialization errors are not fatal: the
    service keeps running in placeholder (demo) mode.
    """
    if not settings.has_gemini():
        logger.warning("GEMINI_API_KEY not set - AI routes will return placeholders")
        return ProviderUnavailable(reason="GEMINI_API_KEY not set")

    try:
        client = create_gemini_client(settings)
    except Exception as e:
        logger.warning(f"Failed to initialize Gemini (placeholders enabled): {e}")
        return ProviderUnavailable(reason=f"Gemini initialization failed: {e}")

    return ProviderAvailable(client=client)


def get_provider_status(provider: Provider, settings: Settings) -> dict:
    """Provider status for the health endpoint."""
    status = {
        "active_provider": provider.name,
        "available": isinstance(provider, ProviderAvailable),
        "analysis_model": settings.analysis_model,
        "image_model": settings.image_model,
        "timeouts_seconds": settings.timeouts.to_dict(),
        "strict_refine_analysis": settings.strict_refine_analysis,
    }
    if isinstance(provider, ProviderUnavailable):
        status["reason"] = provider.reason
    return status
