"""
API Routes for Cotton Cloud AI Service v1.3.0
Gemini proxy: analysis, cutout refine sessions, avatars, collages, try-on.
"""
import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from cotton_cloud.app.schemas import (
    AnalyzeClothingRequest,
    RefineAnalysisRequest,
    MatchWardrobeRequest,
    GenerateCutoutRequest,
    RefineCutoutRequest,
    ClearCacheRequest,
    GenerateAvatarRequest,
    GenerateCollageRequest,
    VirtualTryOnRequest,
)
from cotton_cloud.core.auth import User, get_current_user
from cotton_cloud.core.orchestrator import AIOrchestrator, SessionExpiredError
from cotton_cloud.core.validation import ValidationError
from cotton_cloud.llm.gemini_client import AvatarMetrics, ProviderError
from cotton_cloud.llm.provider import get_provider_status
from cotton_cloud.observability import get_metrics, is_logging_enabled

logger = logging.getLogger(__name__)

VERSION = "1.3.0"

router = APIRouter()
ai_router = APIRouter(prefix="/api/v1/ai", tags=["ai"])

# Classified failures; each carries status_code and a client-safe message
AI_ERRORS = (ValidationError, SessionExpiredError, ProviderError)


def get_orchestrator(request: Request) -> AIOrchestrator:
    """FastAPI dependency returning the orchestrator built at startup."""
    return request.app.state.orchestrator


def _internal_error(operation: str, e: Exception) -> HTTPException:
    logger.exception(f"[{operation}] Unexpected error: {e}")
    return HTTPException(status_code=500, detail="Internal server error")


# ==================== PUBLIC ENDPOINTS ====================

@router.get("/health")
async def health_check(request: Request):
    """Health check with provider and cache status."""
    orchestrator: AIOrchestrator = request.app.state.orchestrator
    metrics = get_metrics()

    return {
        "status": "ok",
        "version": VERSION,
        "provider": get_provider_status(orchestrator.provider, orchestrator.settings),
        "cache": orchestrator.cache.get_stats(),
        "observability": {
            "logging_enabled": is_logging_enabled(),
            "total_requests": metrics["total_requests"],
            "placeholder_ratio": metrics["placeholder_ratio"],
        },
    }


@router.get("/metrics")
async def get_metrics_endpoint(request: Request):
    """Get detailed metrics for monitoring."""
    metrics = get_metrics()
    metrics["cache_entries"] = request.app.state.orchestrator.cache.count()
    return JSONResponse(content=metrics)


# ==================== ANALYSIS ====================

@ai_router.post("/analyze")
async def analyze_clothing(
    body: AnalyzeClothingRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Analyze a clothing photo into category/color/material/tags/style/season."""
    logger.info(f"[analyze] user={user.user_id} mime={body.mime_type}")
    try:
        return await orchestrator.analyze_clothing(body.image_base64, body.mime_type)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("analyze", e)


@ai_router.post("/analyze/refine")
async def refine_analysis(
    body: RefineAnalysisRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Refine a clothing analysis using the owner's feedback."""
    logger.info(f"[refine_analysis] user={user.user_id}")
    try:
        return await orchestrator.refine_analysis(body.image_base64, body.user_feedback, body.mime_type)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("refine_analysis", e)


@ai_router.post("/match")
async def match_wardrobe(
    body: MatchWardrobeRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Check whether a photographed item already exists in the wardrobe."""
    logger.info(f"[match] user={user.user_id} items={len(body.existing_items)}")
    items = [item.model_dump() for item in body.existing_items]
    try:
        return await orchestrator.match_wardrobe(body.image_base64, items, body.mime_type)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("match", e)


# ==================== CUTOUT REFINE SESSION ====================

@ai_router.post("/cutout")
async def generate_cutout(
    body: GenerateCutoutRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """
    Generate a product cutout and open a refine session.

    The returned cacheId must be sent back with every refine round.
    """
    logger.info(f"[cutout] user={user.user_id} mime={body.mime_type}")
    try:
        return await orchestrator.generate_cutout(body.image_base64, body.mime_type)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("cutout", e)


@ai_router.post("/cutout/refine")
async def refine_cutout(
    body: RefineCutoutRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Refine the current cutout from the cached original (410 if the session expired)."""
    logger.info(f"[refine_cutout] user={user.user_id} cache={body.cache_id[:8]}...")
    try:
        return await orchestrator.refine_cutout(
            body.cache_id, body.current_image_base64, body.user_feedback, body.mime_type
        )
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("refine_cutout", e)


@ai_router.post("/cutout/clear")
async def clear_cutout_cache(
    body: ClearCacheRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Close a refine session and free the cached original."""
    logger.info(f"[clear_cache] user={user.user_id} cache={body.cache_id[:8]}...")
    return orchestrator.clear_cache(body.cache_id)


# ==================== GENERATION ====================

@ai_router.post("/avatar")
async def generate_avatar(
    body: GenerateAvatarRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Generate a full-body avatar from a face photo and body metrics."""
    logger.info(f"[avatar] user={user.user_id} gender={body.gender}")
    metrics = AvatarMetrics(
        gender=body.gender,
        height=body.height,
        weight=body.weight,
        bust=body.bust,
        waist=body.waist,
        hips=body.hips,
        thigh=body.thigh,
        calf=body.calf,
        features=body.features,
    )
    try:
        return await orchestrator.generate_avatar(body.face_image_base64, metrics, body.mime_type)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("avatar", e)


@ai_router.post("/collage")
async def generate_collage(
    body: GenerateCollageRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Generate an editorial flat-lay collage from item photos."""
    logger.info(f"[collage] user={user.user_id} images={len(body.item_images)}")
    try:
        return await orchestrator.generate_collage(body.item_images)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("collage", e)


@ai_router.post("/tryon")
async def virtual_try_on(
    body: VirtualTryOnRequest,
    user: User = Depends(get_current_user),
    orchestrator: AIOrchestrator = Depends(get_orchestrator),
):
    """Dress an avatar in one or more clothing items."""
    logger.info(f"[tryon] user={user.user_id} items={len(body.item_images)}")
    try:
        return await orchestrator.virtual_try_on(body.avatar_image_base64, body.item_images)
    except AI_ERRORS as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        raise _internal_error("tryon", e)


router.include_router(ai_router)
