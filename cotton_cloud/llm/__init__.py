# LLM module
from cotton_cloud.llm.gemini_client import (
    GeminiClient, create_gemini_client,
    ClothingAnalysis, WardrobeMatch, AvatarMetrics,
    ProviderError, ProviderTimeoutError, ProviderResponseError, AnalysisParseError,
)
from cotton_cloud.llm.provider import (
    Provider, ProviderAvailable, ProviderUnavailable,
    create_provider, get_provider_status,
)
