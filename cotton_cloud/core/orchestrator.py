"""
AI Orchestrator (v1.3.0)
Composes Gemini calls with the refine image cache for the HTTP layer.

Cutout refine protocol, per session:

    no-session --generate_cutout--> staged (cacheId issued)
    staged     --refine_cutout----> staged (same cacheId, new image)
    staged     --clear_cache / ttl-> no-session

The original photo is staged once so refine rounds always work from the
pristine original instead of the previous cutout. A failed generation
never leaves its staged entry behind.
"""
import time
import asyncio
import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from cotton_cloud.cache.image_cache import ImageCache
from cotton_cloud.config.settings import Settings
from cotton_cloud.core import placeholders
from cotton_cloud.core.validation import (
    ImagePayload,
    decode_image_batch,
    decode_image_payload,
)
from cotton_cloud.llm.gemini_client import AvatarMetrics
from cotton_cloud.llm.provider import Provider, ProviderAvailable
from cotton_cloud.observability import increment_request, log_request, record_cache_event

logger = logging.getLogger(__name__)


class SessionExpiredError(Exception):
    """Refine requested for a cache id that is unknown or expired."""
    def __init__(self, cache_id: Optional[str], status_code: int = 410):
        self.cache_id = cache_id
        self.message = (
            "Refine session expired or not found. "
            "Please generate the cutout again to start a new session."
        )
        self.status_code = status_code
        super().__init__(self.message)


class AIOrchestrator:
    """
    Facade consumed by the AI routes.

    Usage:
        orchestrator = AIOrchestrator(provider, cache, settings)
        result = await orchestrator.generate_cutout(image_b64, "image/jpeg")
        result = await orchestrator.refine_cutout(result["cacheId"], result["imageBase64"], "brighter")
        orchestrator.clear_cache(result["cacheId"])
    """

    def __init__(self, provider: Provider, cache: ImageCache, settings: Optional[Settings] = None):
        self.provider = provider
        self.cache = cache
        self.settings = settings or Settings()

    @property
    def available(self) -> bool:
        return isinstance(self.provider, ProviderAvailable)

    # ==================== HELPERS ====================

    async def _decode(self, payload: str, mime_type: Optional[str] = None) -> ImagePayload:
        # Pillow decoding runs in a worker thread so the event loop stays free
        return await asyncio.to_thread(
            decode_image_payload, payload, mime_type, max_bytes=self.settings.max_image_bytes
        )

    async def _decode_batch(self, payloads: List[str]) -> List[ImagePayload]:
        return await asyncio.to_thread(decode_image_batch, payloads, max_bytes=self.settings.max_image_bytes)

    async def _placeholder(self, label: str) -> str:
        return await asyncio.to_thread(placeholders.placeholder_base64, label)

    @contextmanager
    def _tracked(self, operation: str):
        """Record metrics and a request log line for one operation."""
        record: Dict[str, Any] = {"placeholder": False, "cache_id": None}
        start = time.time()
        try:
            yield record
        except Exception as e:
            self._finish(operation, start, record, error=getattr(e, "message", None) or str(e))
            raise
        self._finish(operation, start, record)

    def _finish(self, operation: str, start: float, record: Dict[str, Any], error: Optional[str] = None):
        latency_ms = int((time.time() - start) * 1000)
        increment_request(operation, placeholder=record["placeholder"], error=error is not None)
        log_request(
            operation=operation,
            status="fail" if error else "success",
            latency_ms=latency_ms,
            placeholder=record["placeholder"],
            cache_id=record["cache_id"],
            error=error,
        )

    # ==================== ANALYSIS ====================

    async def analyze_clothing(self, image_base64: str, mime_type: Optional[str] = None) -> dict:
        """Analyze a clothing photo into the wardrobe taxonomy."""
        with self._tracked("analyze") as record:
            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return placeholders.analysis()

            image = await self._decode(image_base64, mime_type)
            analysis = await self.provider.client.analyze_clothing(image)
            return analysis.to_dict()

    async def refine_analysis(self, image_base64: str, feedback: str, mime_type: Optional[str] = None) -> dict:
        """Re-analyze with owner feedback; lenient unless configured strict."""
        with self._tracked("refine_analysis") as record:
            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return placeholders.refined_analysis()

            image = await self._decode(image_base64, mime_type)
            analysis = await self.provider.client.refine_analysis(
                image, feedback, strict=self.settings.strict_refine_analysis
            )
            return analysis.to_dict()

    async def match_wardrobe(
        self,
        image_base64: str,
        existing_items: List[Dict[str, str]],
        mime_type: Optional[str] = None
    ) -> dict:
        """Find whether the photographed item is already in the wardrobe."""
        with self._tracked("match") as record:
            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return placeholders.wardrobe_match()

            image = await self._decode(image_base64, mime_type)
            match = await self.provider.client.match_wardrobe(image, existing_items)
            return match.to_dict()

    # ==================== CUTOUT REFINE PROTOCOL ====================

    async def generate_cutout(self, image_base64: str, mime_type: Optional[str] = None) -> dict:
        """
        Stage the original photo and generate its cutout.

        The payload is decoded even without a provider, so a malformed image
        is a 400 in demo mode too; the staged original backs offline refines.

        Returns:
            {"imageBase64", "cacheId", "message"}; keep cacheId for refine rounds
        """
        with self._tracked("cutout") as record:
            original = await self._decode(image_base64, mime_type)

            cache_id = self.cache.store(original.data, original.mime_type)
            record["cache_id"] = cache_id
            record_cache_event("started")

            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return {
                    "imageBase64": await self._placeholder("cutout"),
                    "cacheId": cache_id,
                    "message": "Cutout generation - Gemini not configured (placeholder image)",
                }

            succeeded = False
            try:
                cutout = await self.provider.client.generate_cutout(original)
                succeeded = True
            finally:
                if not succeeded:
                    self.cache.delete(cache_id)
                    logger.warning(f"Cutout failed, rolled back cache entry {cache_id[:8]}...")

            return {
                "imageBase64": cutout.to_base64(),
                "cacheId": cache_id,
                "message": "Cutout generated successfully",
            }

    async def refine_cutout(
        self,
        cache_id: str,
        current_image_base64: str,
        feedback: str,
        mime_type: Optional[str] = None
    ) -> dict:
        """
        Regenerate the cutout from the staged original using feedback.

        Raises:
            SessionExpiredError: If cache_id is unknown or expired
        """
        with self._tracked("refine_cutout") as record:
            record["cache_id"] = cache_id
            entry = self.cache.get(cache_id) if cache_id else None
            if entry is None:
                record_cache_event("expired")
                raise SessionExpiredError(cache_id)

            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return {
                    "imageBase64": await self._placeholder("refined cutout"),
                    "cacheId": cache_id,
                    "message": "Cutout refinement - Gemini not configured (placeholder image)",
                }

            current = await self._decode(current_image_base64, mime_type)
            original = ImagePayload(data=entry.data, mime_type=entry.mime_type)

            refined = await self.provider.client.refine_cutout(original, current, feedback)
            return {
                "imageBase64": refined.to_base64(),
                "cacheId": cache_id,
                "message": "Cutout refined successfully",
            }

    def clear_cache(self, cache_id: str) -> dict:
        """End a refine session. Safe to call after expiry."""
        with self._tracked("clear_cache") as record:
            record["cache_id"] = cache_id
            removed = self.cache.delete(cache_id) if cache_id else False
            if removed:
                record_cache_event("cleared")
                return {"success": True, "message": "Cache cleared"}
            return {"success": False, "message": "Cache entry not found or already expired"}

    # ==================== GENERATION ====================

    async def generate_avatar(self, face_image_base64: str, metrics: AvatarMetrics, mime_type: Optional[str] = None) -> dict:
        """Generate a full-body avatar from a face photo and body metrics."""
        with self._tracked("avatar") as record:
            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return {
                    "imageBase64": await self._placeholder("avatar"),
                    "message": "Avatar generation - Gemini not configured (placeholder image)",
                }

            face = await self._decode(face_image_base64, mime_type)
            avatar = await self.provider.client.generate_avatar(face, metrics)
            return {
                "imageBase64": avatar.to_base64(),
                "message": "Avatar generated successfully",
            }

    async def generate_collage(self, item_images: List[str]) -> dict:
        """Compose item photos into a flat-lay collage."""
        with self._tracked("collage") as record:
            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return {
                    "imageBase64": await self._placeholder("collage"),
                    "message": "Collage generation - Gemini not configured (placeholder image)",
                }

            images = await self._decode_batch(item_images)
            collage = await self.provider.client.generate_collage(images)
            return {
                "imageBase64": collage.to_base64(),
                "message": "Collage generated successfully",
            }

    async def virtual_try_on(self, avatar_image_base64: str, item_images: List[str]) -> dict:
        """Dress an avatar in the given clothing photos."""
        with self._tracked("tryon") as record:
            if not isinstance(self.provider, ProviderAvailable):
                record["placeholder"] = True
                return {
                    "imageBase64": await self._placeholder("virtual try-on"),
                    "message": "Virtual try-on - Gemini not configured (placeholder image)",
                }

            avatar = await self._decode(avatar_image_base64)
            garments = await self._decode_batch(item_images)
            result = await self.provider.client.virtual_try_on(avatar, garments)
            return {
                "imageBase64": result.to_base64(),
                "message": "Virtual try-on generated successfully",
            }
