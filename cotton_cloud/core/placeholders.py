"""
Placeholder Results (v1.0.0)
Deterministic stand-ins served when Gemini is not configured (demo mode).
"""
import io
import copy
from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from cotton_cloud.core.validation import ImagePayload

PLACEHOLDER_SIZE = (600, 800)  # 3:4, same framing as generated images
PLACEHOLDER_BACKGROUND = "#FDFBF7"
PLACEHOLDER_INK = "#8A8178"

PLACEHOLDER_ANALYSIS = {
    "category": "Tops",
    "color": "White",
    "material": "Cotton",
    "description": "A soft, cloudlike piece perfect for everyday elegance.",
    "tags": ["casual", "everyday", "basic"],
    "style": ["Casual", "Minimalist"],
    "season": ["Spring", "Summer", "All Season"],
}

PLACEHOLDER_REFINED_ANALYSIS = {
    "category": "Tops",
    "color": "White",
    "material": "Cotton",
    "description": "A refined piece based on your feedback.",
    "tags": ["refined", "custom"],
    "style": ["Casual"],
    "season": ["All Season"],
}

PLACEHOLDER_MATCH = {"bestMatchId": "", "candidateIds": []}


def analysis() -> dict:
    return copy.deepcopy(PLACEHOLDER_ANALYSIS)


def refined_analysis() -> dict:
    return copy.deepcopy(PLACEHOLDER_REFINED_ANALYSIS)


def wardrobe_match() -> dict:
    return copy.deepcopy(PLACEHOLDER_MATCH)


@lru_cache(maxsize=16)
def placeholder_image(label: str) -> ImagePayload:
    """
    Render a labeled placeholder PNG.

    The same label always yields byte-identical output.
    """
    image = Image.new("RGB", PLACEHOLDER_SIZE, PLACEHOLDER_BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    width, height = PLACEHOLDER_SIZE
    draw.rectangle([20, 20, width - 20, height - 20], outline=PLACEHOLDER_INK, width=3)
    draw.text((40, height // 2 - 20), "PLACEHOLDER", fill=PLACEHOLDER_INK, font=font)
    draw.text((40, height // 2), label, fill=PLACEHOLDER_INK, font=font)
    draw.text((40, height // 2 + 20), "Gemini not configured", fill=PLACEHOLDER_INK, font=font)

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return ImagePayload(data=buffer.getvalue(), mime_type="image/png")


def placeholder_base64(label: str) -> str:
    return placeholder_image(label).to_base64()
