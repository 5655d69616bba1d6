"""
Request Schemas (v1.1.0)
JSON bodies for the AI proxy routes, camelCase on the wire.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    # Body metrics arrive as numbers or strings depending on the client build
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, coerce_numbers_to_str=True)


class AnalyzeClothingRequest(CamelModel):
    image_base64: str = Field(..., min_length=1)
    mime_type: Optional[str] = None


class RefineAnalysisRequest(CamelModel):
    image_base64: str = Field(..., min_length=1)
    mime_type: Optional[str] = None
    user_feedback: str = Field(..., min_length=1)


class WardrobeItem(CamelModel):
    id: str
    category: str = ""
    color: str = ""
    description: str = ""


class MatchWardrobeRequest(CamelModel):
    image_base64: str = Field(..., min_length=1)
    mime_type: Optional[str] = None
    existing_items: List[WardrobeItem] = Field(default_factory=list)


class GenerateCutoutRequest(CamelModel):
    image_base64: str = Field(..., min_length=1)
    mime_type: Optional[str] = None


class RefineCutoutRequest(CamelModel):
    cache_id: str = Field(..., min_length=1)
    current_image_base64: str = Field(..., min_length=1)
    user_feedback: str = Field(..., min_length=1)
    mime_type: Optional[str] = None


class ClearCacheRequest(CamelModel):
    cache_id: str = Field(..., min_length=1)


class GenerateAvatarRequest(CamelModel):
    face_image_base64: str = Field(..., min_length=1)
    mime_type: Optional[str] = None
    gender: str
    height: str
    weight: str
    bust: str = ""
    waist: str = ""
    hips: str = ""
    thigh: str = ""
    calf: str = ""
    features: str = ""


class GenerateCollageRequest(CamelModel):
    item_images: List[str] = Field(..., min_length=1)


class VirtualTryOnRequest(CamelModel):
    avatar_image_base64: str = Field(..., min_length=1)
    item_images: List[str] = Field(..., min_length=1)
