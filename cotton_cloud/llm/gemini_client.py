"""
Gemini Client (v1.4.0)
Clothing analysis, cutouts, avatars, collages and try-on via Google Gemini.

Every call runs under its operation's deadline budget and failures are
classified before they leave this module:

    ProviderTimeoutError   deadline elapsed (504)
    ProviderResponseError  no candidate / no image / empty text (502)
    AnalysisParseError     structured output not valid or off-taxonomy (502)
    ProviderError          anything else from the transport (502)

Nothing here retries; refine-analysis and wardrobe matching are the only
best-effort operations.
"""
import json
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from google.api_core import exceptions as google_exceptions

from cotton_cloud.config.settings import OperationTimeouts, Settings
from cotton_cloud.core.validation import ImagePayload, ValidationError
from cotton_cloud.llm import prompts
from cotton_cloud.observability import record_provider_call, record_refine_fallback

logger = logging.getLogger(__name__)


# ==================== ERRORS ====================

class ProviderError(Exception):
    """Generation provider call failed."""
    def __init__(self, message: str, status_code: int = 502):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ProviderTimeoutError(ProviderError):
    """Provider call exceeded its deadline."""
    def __init__(self, message: str):
        super().__init__(message, status_code=504)


class ProviderResponseError(ProviderError):
    """Provider answered without usable content."""


class AnalysisParseError(ProviderError):
    """Provider returned non-conforming structured data."""


# ==================== RESULT TYPES ====================

@dataclass
class ClothingAnalysis:
    """Structured clothing analysis in the wardrobe taxonomy."""
    category: str
    color: str
    material: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    style: List[str] = field(default_factory=list)
    season: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClothingAnalysis":
        """
        Build from provider JSON, enforcing the closed vocabularies.

        Raises:
            AnalysisParseError: If category/color/material are off-taxonomy
        """
        return cls(
            category=_match_option(data.get("category"), prompts.CATEGORY_OPTIONS, "category"),
            color=_match_option(data.get("color"), prompts.COLOR_OPTIONS, "color"),
            material=_match_option(data.get("material"), prompts.MATERIAL_OPTIONS, "material"),
            description=str(data.get("description") or "").strip(),
            tags=_string_list(data.get("tags")),
            style=_filter_options(data.get("style"), prompts.STYLE_OPTIONS),
            season=_filter_options(data.get("season"), prompts.SEASON_OPTIONS),
        )

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "color": self.color,
            "material": self.material,
            "description": self.description,
            "tags": list(self.tags),
            "style": list(self.style),
            "season": list(self.season),
        }


@dataclass
class WardrobeMatch:
    """Result of matching an item against the existing wardrobe."""
    best_match_id: str = ""
    candidate_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "bestMatchId": self.best_match_id,
            "candidateIds": list(self.candidate_ids),
        }


@dataclass
class AvatarMetrics:
    """Body metrics for avatar generation (free-form strings from the app)."""
    gender: str
    height: str
    weight: str
    bust: str = ""
    waist: str = ""
    hips: str = ""
    thigh: str = ""
    calf: str = ""
    features: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "gender": self.gender,
            "height": self.height,
            "weight": self.weight,
            "bust": self.bust,
            "waist": self.waist,
            "hips": self.hips,
            "thigh": self.thigh,
            "calf": self.calf,
            "features": self.features,
        }


# ==================== RESPONSE HELPERS ====================

def _match_option(value: Any, options: List[str], field_name: str) -> str:
    if isinstance(value, str):
        lookup = {option.lower(): option for option in options}
        match = lookup.get(value.strip().lower())
        if match:
            return match
    raise AnalysisParseError(f"AI returned an invalid {field_name}: {value!r}")


def _string_list(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [str(v).strip() for v in value if str(v).strip()]


def _filter_options(value: Any, options: List[str]) -> List[str]:
    lookup = {option.lower(): option for option in options}
    result = []
    for item in _string_list(value):
        match = lookup.get(item.lower())
        if match and match not in result:
            result.append(match)
    return result


def clean_json_response(text: str) -> str:
    """Strip markdown code fences around a JSON payload."""
    text = text.strip()
    if text.startswith("```json"):
        text = text[len("```json"):]
    elif text.startswith("```"):
        text = text[len("```"):]
    if text.endswith("```"):
        text = text[:-len("```")]
    return text.strip()


def parse_json_object(text: str) -> Dict[str, Any]:
    """
    Parse a provider text response as a JSON object.

    Raises:
        AnalysisParseError: If the text is not a JSON object
    """
    try:
        data = json.loads(clean_json_response(text))
    except json.JSONDecodeError as e:
        raise AnalysisParseError(f"Failed to parse AI response: {e.msg}")
    if not isinstance(data, dict):
        raise AnalysisParseError("Failed to parse AI response: expected a JSON object")
    return data


def _candidate_parts(response: Any) -> list:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        raise ProviderResponseError("No response from AI")
    content = getattr(candidates[0], "content", None)
    parts = list(getattr(content, "parts", None) or [])
    if not parts:
        raise ProviderResponseError("No response from AI")
    return parts


def extract_text(response: Any) -> str:
    """Concatenate the text parts of the first candidate."""
    parts = _candidate_parts(response)
    text = "".join(getattr(part, "text", "") or "" for part in parts)
    if not text.strip():
        raise ProviderResponseError("AI returned an empty response")
    return text


def extract_image(response: Any) -> ImagePayload:
    """Return the first inline image of the first candidate."""
    for part in _candidate_parts(response):
        blob = getattr(part, "inline_data", None)
        data = getattr(blob, "data", None) if blob is not None else None
        if data:
            return ImagePayload(data=bytes(data), mime_type=getattr(blob, "mime_type", "") or "image/png")
    raise ProviderResponseError("No image generated")


def _image_part(image: ImagePayload) -> Dict[str, Any]:
    return {"mime_type": image.mime_type, "data": image.data}


# ==================== CLIENT ====================

class GeminiClient:
    """
    Operation-level wrapper around two Gemini models.

    Usage:
        client = create_gemini_client(settings)
        analysis = await client.analyze_clothing(image)
        cutout = await client.generate_cutout(image)
    """

    def __init__(self, analysis_model: Any, image_model: Any, timeouts: Optional[OperationTimeouts] = None):
        """
        Args:
            analysis_model: Model used for JSON analysis (generate_content_async)
            image_model: Model used for image generation (generate_content_async)
            timeouts: Per-operation deadline budgets
        """
        self.analysis_model = analysis_model
        self.image_model = image_model
        self.timeouts = timeouts or OperationTimeouts()

    async def _generate(
        self,
        model: Any,
        contents: list,
        operation: str,
        label: str,
        budget: Optional[float] = None
    ) -> Any:
        """Issue one provider call under the operation's deadline (or the given remaining budget)."""
        if budget is None:
            budget = self.timeouts.for_operation(operation)
        logger.info(f"[AI] {label} ({len(contents) - 1} image part(s), budget {budget:g}s)")

        try:
            response = await asyncio.wait_for(
                model.generate_content_async(contents, request_options={"timeout": budget}),
                timeout=budget,
            )
        except (asyncio.TimeoutError, google_exceptions.DeadlineExceeded):
            record_provider_call(error=True, timeout=True)
            logger.error(f"[AI ERROR] {label} timed out after {budget:g}s")
            raise ProviderTimeoutError(f"AI request timed out while trying to {label}")
        except Exception as e:
            record_provider_call(error=True)
            logger.error(f"[AI ERROR] {label} failed: {e}")
            raise ProviderError(f"Failed to {label}")

        record_provider_call()
        return response

    def _parse_analysis(self, response: Any) -> ClothingAnalysis:
        return ClothingAnalysis.from_dict(parse_json_object(extract_text(response)))

    # ==================== ANALYSIS ====================

    async def analyze_clothing(self, image: ImagePayload, budget: Optional[float] = None) -> ClothingAnalysis:
        """Analyze a clothing photo into the wardrobe taxonomy."""
        response = await self._generate(
            self.analysis_model,
            [_image_part(image), prompts.build_analysis_prompt()],
            "analyze",
            "analyze clothing",
            budget=budget,
        )
        analysis = self._parse_analysis(response)
        logger.info(f"[AI] Analysis: {analysis.category}/{analysis.color}/{analysis.material}")
        return analysis

    async def refine_analysis(self, image: ImagePayload, feedback: str, strict: bool = False) -> ClothingAnalysis:
        """
        Re-analyze a clothing photo using the owner's feedback.

        Unless strict, any provider or parse failure falls back to a plain
        analysis of the same image. The fallback shares the refine deadline;
        if none of it is left the request times out.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.timeouts.for_operation("refine_analysis")

        try:
            response = await self._generate(
                self.analysis_model,
                [_image_part(image), prompts.build_refine_analysis_prompt(feedback)],
                "refine_analysis",
                "refine clothing analysis",
            )
            return self._parse_analysis(response)
        except ProviderError as e:
            if strict:
                raise
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.error("[AI ERROR] refine clothing analysis used its whole budget, no time to fall back")
                raise ProviderTimeoutError("AI request timed out while trying to refine clothing analysis")
            logger.warning(f"Refine analysis failed ({e.message}), falling back to plain analysis")
            record_refine_fallback()

        return await self.analyze_clothing(image, budget=min(remaining, self.timeouts.analyze))

    async def match_wardrobe(self, image: ImagePayload, existing_items: List[Dict[str, str]]) -> WardrobeMatch:
        """Find the same or similar items in the wardrobe (best effort)."""
        if not existing_items:
            return WardrobeMatch()

        known_ids = {str(item.get("id")) for item in existing_items if item.get("id")}

        try:
            response = await self._generate(
                self.analysis_model,
                [_image_part(image), prompts.build_match_prompt(existing_items)],
                "match",
                "match wardrobe item",
            )
            data = parse_json_object(extract_text(response))
        except ProviderError as e:
            logger.warning(f"Wardrobe match failed (non-fatal): {e.message}")
            return WardrobeMatch()

        best = str(data.get("bestMatchId") or "")
        candidates = [c for c in _string_list(data.get("candidateIds")) if c in known_ids]
        return WardrobeMatch(
            best_match_id=best if best in known_ids else "",
            candidate_ids=candidates,
        )

    # ==================== IMAGE GENERATION ====================

    async def generate_cutout(self, image: ImagePayload) -> ImagePayload:
        """Isolate the clothing item on a white background."""
        response = await self._generate(
            self.image_model,
            [_image_part(image), prompts.CUTOUT_PROMPT],
            "cutout",
            "generate cutout",
        )
        return extract_image(response)

    async def refine_cutout(self, original: ImagePayload, current: ImagePayload, feedback: str) -> ImagePayload:
        """Regenerate a cutout from the original photo using feedback on the current one."""
        response = await self._generate(
            self.image_model,
            [_image_part(original), _image_part(current), prompts.build_refine_cutout_prompt(feedback)],
            "refine_cutout",
            "refine cutout",
        )
        return extract_image(response)

    async def generate_avatar(self, face: ImagePayload, metrics: AvatarMetrics) -> ImagePayload:
        """Generate a full-body avatar from a face photo and body metrics."""
        response = await self._generate(
            self.image_model,
            [_image_part(face), prompts.build_avatar_prompt(metrics.to_dict())],
            "avatar",
            "generate avatar",
        )
        return extract_image(response)

    async def generate_collage(self, images: List[ImagePayload]) -> ImagePayload:
        """Compose clothing items into an editorial flat-lay."""
        if not images:
            raise ValidationError("No valid images provided", status_code=400)

        response = await self._generate(
            self.image_model,
            [_image_part(img) for img in images] + [prompts.COLLAGE_PROMPT],
            "collage",
            "generate collage",
        )
        return extract_image(response)

    async def virtual_try_on(self, avatar: ImagePayload, garments: List[ImagePayload]) -> ImagePayload:
        """Dress the avatar in the given garments."""
        if not garments:
            raise ValidationError("No valid clothing images provided", status_code=400)

        response = await self._generate(
            self.image_model,
            [_image_part(avatar)] + [_image_part(img) for img in garments] + [prompts.TRYON_PROMPT],
            "tryon",
            "generate try-on",
        )
        return extract_image(response)


def create_gemini_client(settings: Settings) -> GeminiClient:
    """
    Configure the SDK and build both models.

    Raises:
        ValueError: If GEMINI_API_KEY is not configured
    """
    if not settings.has_gemini():
        raise ValueError("GEMINI_API_KEY not set")

    import google.generativeai as genai

    genai.configure(api_key=settings.gemini_api_key)

    analysis_model = genai.GenerativeModel(
        settings.analysis_model,
        generation_config=genai.GenerationConfig(
            temperature=settings.analysis_temperature,
            response_mime_type="application/json",
        ),
    )
    image_model = genai.GenerativeModel(settings.image_model)

    logger.info(f"AI models initialized: analysis={settings.analysis_model}, image={settings.image_model}")
    return GeminiClient(analysis_model, image_model, settings.timeouts)
