"""
Cotton Cloud AI Service v1.3.0
Gemini proxy for the Cotton Cloud wardrobe app.

API ROUTES:
-----------
- /api/v1/ai/analyze           - Clothing analysis (taxonomy JSON)
- /api/v1/ai/analyze/refine    - Analysis refined by user feedback
- /api/v1/ai/match             - Wardrobe duplicate matching
- /api/v1/ai/cutout            - Cutout generation, opens a refine session
- /api/v1/ai/cutout/refine     - Refine round against the cached original
- /api/v1/ai/cutout/clear      - Close a refine session
- /api/v1/ai/avatar            - Full-body avatar from a face photo
- /api/v1/ai/collage           - Outfit flat-lay collage
- /api/v1/ai/tryon             - Virtual try-on
- /health, /metrics            - Health and monitoring

Without GEMINI_API_KEY every AI route answers with labeled placeholders.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cotton_cloud.app.routes import router, VERSION
from cotton_cloud.cache.image_cache import ImageCache
from cotton_cloud.config.settings import Settings, get_settings
from cotton_cloud.core.auth import CredentialService
from cotton_cloud.core.orchestrator import AIOrchestrator
from cotton_cloud.llm.provider import Provider, create_provider, get_provider_status
from cotton_cloud.observability import is_logging_enabled

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[Provider] = None,
    cache: Optional[ImageCache] = None,
    credential_service: Optional[CredentialService] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Collaborators not passed in are constructed at startup: the provider from
    settings and a fresh ImageCache whose sweeper runs until shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or get_settings()

        logger.info("=" * 50)
        logger.info(f"Cotton Cloud AI Service v{VERSION} Starting...")
        logger.info("=" * 50)

        app_provider = provider if provider is not None else create_provider(app_settings)
        app_cache = cache if cache is not None else ImageCache(
            ttl_minutes=app_settings.cache_ttl_minutes,
            sweep_interval_minutes=app_settings.cache_sweep_minutes,
        )

        app.state.settings = app_settings
        app.state.cache = app_cache
        app.state.credential_service = credential_service
        app.state.orchestrator = AIOrchestrator(app_provider, app_cache, app_settings)

        provider_status = get_provider_status(app_provider, app_settings)
        logger.info(f"AI provider: {provider_status['active_provider']}")
        logger.info(
            f"Refine cache: ttl={app_settings.cache_ttl_minutes:g}min, "
            f"sweep={app_settings.cache_sweep_minutes:g}min"
        )
        logger.info(f"Logging: {'enabled' if is_logging_enabled() else 'disabled'}")
        logger.info("✓ Service ready!")
        logger.info("=" * 50)

        yield

        logger.info("Service shutting down...")
        app_cache.stop()

    app = FastAPI(
        title="Cotton Cloud AI Service",
        description="Gemini proxy with cutout refine sessions and placeholder demo mode",
        version=VERSION,
        lifespan=lifespan,
    )

    origins = (settings or get_settings()).cors_origins
    app.add_middleware(CORSMiddleware, allow_origins=origins, allow_methods=["*"], allow_headers=["*"])
    app.include_router(router)

    @app.get("/")
    async def root():
        return {"message": "Cotton Cloud AI Service", "version": VERSION}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
