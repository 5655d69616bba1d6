"""
Settings Module (v1.2.0)
Centralized configuration from environment variables.
"""
import os
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


@dataclass
class OperationTimeouts:
    """Per-operation deadline budgets (seconds) for provider calls."""

    analyze: float = 30.0
    refine_analysis: float = 30.0
    cutout: float = 60.0
    refine_cutout: float = 60.0
    avatar: float = 90.0
    collage: float = 60.0
    tryon: float = 90.0
    match: float = 30.0

    @classmethod
    def from_env(cls) -> "OperationTimeouts":
        """Load budgets from COTTON_TIMEOUT_<OPERATION>_SECONDS."""
        defaults = cls()
        return cls(**{
            name: _env_float(f"COTTON_TIMEOUT_{name.upper()}_SECONDS", value)
            for name, value in defaults.to_dict().items()
        })

    def for_operation(self, operation: str) -> float:
        """Budget for an operation name (e.g. "refine_cutout")."""
        try:
            return getattr(self, operation)
        except AttributeError:
            raise KeyError(f"Unknown provider operation: {operation}")

    def to_dict(self) -> Dict[str, float]:
        return {
            "analyze": self.analyze,
            "refine_analysis": self.refine_analysis,
            "cutout": self.cutout,
            "refine_cutout": self.refine_cutout,
            "avatar": self.avatar,
            "collage": self.collage,
            "tryon": self.tryon,
            "match": self.match,
        }


@dataclass
class Settings:
    """Application settings from environment variables."""

    # API Keys
    gemini_api_key: Optional[str] = None

    # Gemini models
    analysis_model: str = "gemini-3-flash-preview"
    image_model: str = "gemini-3-pro-image-preview"
    analysis_temperature: float = 0.3
    timeouts: OperationTimeouts = field(default_factory=OperationTimeouts)

    # Refine cache
    cache_ttl_minutes: float = 30.0
    cache_sweep_minutes: float = 5.0

    # Behaviour
    strict_refine_analysis: bool = False
    max_image_mb: float = 10.0
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        origins = os.getenv("COTTON_CORS_ORIGINS", "*")
        return cls(
            # API Keys
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,

            # Gemini models
            analysis_model=os.getenv("COTTON_ANALYSIS_MODEL", "gemini-3-flash-preview"),
            image_model=os.getenv("COTTON_IMAGE_MODEL", "gemini-3-pro-image-preview"),
            analysis_temperature=_env_float("COTTON_ANALYSIS_TEMPERATURE", 0.3),
            timeouts=OperationTimeouts.from_env(),

            # Refine cache
            cache_ttl_minutes=_env_float("COTTON_CACHE_TTL_MINUTES", 30),
            cache_sweep_minutes=_env_float("COTTON_CACHE_SWEEP_MINUTES", 5),

            # Behaviour
            strict_refine_analysis=_env_bool("COTTON_STRICT_REFINE_ANALYSIS", "false"),
            max_image_mb=_env_float("COTTON_MAX_IMAGE_MB", 10),
            cors_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )

    def has_gemini(self) -> bool:
        """Check if Gemini API key is configured."""
        return bool(self.gemini_api_key)

    @property
    def max_image_bytes(self) -> int:
        return int(self.max_image_mb * 1024 * 1024)

    def to_dict(self) -> dict:
        """Export settings as dict (without sensitive keys)."""
        return {
            "gemini_configured": self.has_gemini(),
            "analysis_model": self.analysis_model,
            "image_model": self.image_model,
            "analysis_temperature": self.analysis_temperature,
            "timeouts_seconds": self.timeouts.to_dict(),
            "cache_ttl_minutes": self.cache_ttl_minutes,
            "cache_sweep_minutes": self.cache_sweep_minutes,
            "strict_refine_analysis": self.strict_refine_analysis,
            "max_image_mb": self.max_image_mb,
        }


def get_settings() -> Settings:
    """Get application settings (cached singleton)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
        logger.info(f"Settings loaded: {_settings.to_dict()}")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings.from_env()
    logger.info(f"Settings reloaded: {_settings.to_dict()}")
    return _settings


# Singleton instance
_settings: Optional[Settings] = None
