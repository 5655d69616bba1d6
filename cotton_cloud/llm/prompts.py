"""
Prompt Templates (v1.3.0)
Wardrobe taxonomy and the instruction templates sent to Gemini.

The taxonomy lists are shared with the mobile app and must stay in sync.
"""
import json
from typing import Dict, List

# ==================== TAXONOMY ====================

CATEGORY_OPTIONS = ["Tops", "Bottoms", "Outerwear", "Dresses", "Shoes", "Accessories", "Bags", "Other"]
COLOR_OPTIONS = [
    "White", "Black", "Gray", "Beige", "Brown", "Navy", "Blue",
    "Green", "Red", "Pink", "Purple", "Yellow", "Orange", "Multi",
]
MATERIAL_OPTIONS = [
    "Cotton", "Denim", "Silk", "Wool", "Leather", "Linen",
    "Polyester", "Cashmere", "Velvet", "Knit", "Chiffon", "Satin",
]
STYLE_OPTIONS = [
    "Casual", "Formal", "Sporty", "Streetwear", "Vintage",
    "Minimalist", "Bohemian", "Preppy", "Romantic", "Edgy",
]
SEASON_OPTIONS = ["Spring", "Summer", "Fall", "Winter", "All Season"]


def _taxonomy_block() -> str:
    return (
        f"Categories: {', '.join(CATEGORY_OPTIONS)}\n"
        f"Colors: {', '.join(COLOR_OPTIONS)}\n"
        f"Materials: {', '.join(MATERIAL_OPTIONS)}\n"
        f"Styles: {', '.join(STYLE_OPTIONS)}\n"
        f"Seasons: {', '.join(SEASON_OPTIONS)}"
    )


ANALYSIS_JSON_SHAPE = """{
  "category": "one value from Categories",
  "color": "one value from Colors",
  "material": "one value from Materials",
  "description": "1-2 editorial sentences describing the piece",
  "tags": ["3-5 short descriptive tags"],
  "style": ["1-3 values from Styles"],
  "season": ["1-3 values from Seasons"]
}"""


# ==================== ANALYSIS ====================

def build_analysis_prompt() -> str:
    return f"""You are cataloguing a clothing item for the Cotton Cloud digital wardrobe.
Use ONLY values from these lists:
{_taxonomy_block()}

Return ONLY this JSON object:
{ANALYSIS_JSON_SHAPE}"""


def build_refine_analysis_prompt(feedback: str) -> str:
    return f"""You previously catalogued this clothing item. The owner says: "{feedback}"
Correct the analysis using that feedback. Keep every value inside the Cotton Cloud taxonomy:
{_taxonomy_block()}

Return ONLY this JSON object:
{ANALYSIS_JSON_SHAPE}"""


def build_match_prompt(existing_items: List[Dict[str, str]]) -> str:
    return f"""Does this clothing item already exist in the wardrobe below?
Wardrobe items (JSON): {json.dumps(existing_items, ensure_ascii=False)}

Return ONLY this JSON object:
{{"bestMatchId": "id of the same item, or empty string", "candidateIds": ["ids of similar items"]}}"""


# ==================== IMAGE GENERATION ====================

CUTOUT_PROMPT = """Isolate the clothing item in this photo on a pure white background (#FFFFFF).
- Remove any background, person, mannequin or hanger
- Smooth the fabric as if freshly pressed
- Keep the exact colors, print and texture
- Center the item, product-photography framing, 3:4 aspect ratio

Output only the image of the clothing item."""


def build_refine_cutout_prompt(feedback: str) -> str:
    return f"""The FIRST image is the original photo of a clothing item.
The SECOND image is the current cutout generated from it.
Produce an improved cutout from the ORIGINAL photo, applying this feedback: "{feedback}"
Keep the pure white background (#FFFFFF), the exact colors and a 3:4 aspect ratio.

Output only the improved image."""


def build_avatar_prompt(metrics: Dict[str, str]) -> str:
    def value(key: str) -> str:
        return metrics.get(key) or "unspecified"

    return f"""Create a photorealistic full-body portrait of a {value("gender")} person using the face in the reference image.
Body measurements:
Height: {value("height")} cm, Weight: {value("weight")} kg,
Bust: {value("bust")} cm, Waist: {value("waist")} cm, Hips: {value("hips")} cm,
Thigh: {value("thigh")} cm, Calf: {value("calf")} cm.
Distinctive features: {metrics.get("features") or "none"}.

Pose: standing A-pose facing the camera, arms relaxed slightly away from the body, hands open.
Attire: close-fitting warm beige seamless bodysuit so the body shape is visible.
Lighting: soft studio light, warm tone, plain warm off-white background (#FDFBF7).
Avoid: loose clothing, crossed arms, hair over the shoulders, busy backgrounds."""


COLLAGE_PROMPT = """Arrange these clothing items into one editorial flat-lay collage.
- Warm beige linen background (#F5F0EB)
- Items slightly overlapping with soft natural shadows
- Balanced, magazine-quality composition, 3:4 aspect ratio

Output a single collage image."""


TRYON_PROMPT = """Dress the person in the FIRST image in the clothing items from the following images.
- Keep the face, body proportions, pose and background unchanged
- Garments must follow the body with realistic drape, folds and shadows
- Fashion photography quality, 3:4 aspect ratio

Output a single photorealistic image of the person wearing all the items."""
