"""
Input Validation Module (v1.1.0)
Decodes and validates base64 image payloads before any provider call.
"""
import io
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple
from PIL import Image

logger = logging.getLogger(__name__)

# Configuration
MAX_FILE_SIZE_MB = 10
MAX_FILE_SIZE_BYTES = MAX_FILE_SIZE_MB * 1024 * 1024
ALLOWED_MIME_TYPES = {"image/jpeg", "image/png", "image/webp", "image/heic", "image/heif"}
# Pillow cannot open these without a plugin; they are forwarded as declared
UNVERIFIED_MIME_TYPES = {"image/heic", "image/heif"}
DEFAULT_MIME_TYPE = "image/jpeg"

MIME_ALIASES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "heic": "image/heic",
    "heif": "image/heif",
}


class ValidationError(Exception):
    """Custom exception for validation errors."""
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


@dataclass(frozen=True)
class ImagePayload:
    """Decoded image bytes with their media type."""
    data: bytes
    mime_type: str

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def __len__(self) -> int:
        return len(self.data)


def normalize_mime_type(mime_type: Optional[str]) -> Optional[str]:
    """
    Normalize a declared media type.

    Accepts full types ("image/png"), bare subtypes ("png") and
    parameters ("image/jpeg; q=1").

    Raises:
        ValidationError: If the type is not an allowed image type
    """
    if not mime_type:
        return None

    mime = mime_type.split(";")[0].strip().lower()
    mime = MIME_ALIASES.get(mime, mime)
    if mime == "image/jpg":
        mime = "image/jpeg"

    if mime not in ALLOWED_MIME_TYPES:
        raise ValidationError(
            f"Unsupported image type: {mime}. Allowed: {', '.join(sorted(ALLOWED_MIME_TYPES))}",
            status_code=415
        )
    return mime


def split_data_uri(payload: str) -> Tuple[Optional[str], str]:
    """
    Strip an optional data-URI header.

    "data:image/png;base64,AAAA" -> ("image/png", "AAAA")
    "AAAA"                        -> (None, "AAAA")
    """
    header, sep, body = payload.partition(",")
    if not sep:
        return None, payload

    mime = None
    if header.startswith("data:"):
        mime = header[len("data:"):].split(";")[0].strip() or None
    return mime, body


def decode_base64(payload: str) -> bytes:
    """
    Decode base64 text into bytes.

    Raises:
        ValidationError: If the payload is empty or not valid base64
    """
    cleaned = "".join(payload.split())
    if not cleaned:
        raise ValidationError("Image payload is empty", status_code=400)

    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Failed to decode base64 image: {e}", status_code=400)


def validate_file_size(content: bytes, max_bytes: int = MAX_FILE_SIZE_BYTES) -> None:
    """
    Check if image size is within limits.

    Raises:
        ValidationError: If content exceeds max_bytes
    """
    if len(content) > max_bytes:
        size_mb = len(content) / (1024 * 1024)
        raise ValidationError(
            f"Image too large: {size_mb:.1f}MB (max {max_bytes / (1024 * 1024):.0f}MB)",
            status_code=413
        )


def sniff_mime_type(content: bytes) -> str:
    """
    Open image bytes with Pillow and return their media type.

    Raises:
        ValidationError: If the image cannot be decoded
    """
    try:
        image = Image.open(io.BytesIO(content))
        image.load()  # Force load to catch truncated images
    except Exception as e:
        raise ValidationError(f"Cannot decode image: {e}", status_code=400)

    return Image.MIME.get(image.format or "", DEFAULT_MIME_TYPE)


def decode_image_payload(
    payload: str,
    mime_type: Optional[str] = None,
    max_bytes: int = MAX_FILE_SIZE_BYTES
) -> ImagePayload:
    """
    Complete validation pipeline for a base64 image field.

    Args:
        payload: Base64 text, optionally prefixed with a data-URI header
        mime_type: Declared media type or subtype (optional)
        max_bytes: Size limit for the decoded image

    Returns:
        ImagePayload with the detected media type

    Raises:
        ValidationError: If any validation fails
    """
    if not isinstance(payload, str):
        raise ValidationError("Image payload must be a base64 string", status_code=400)

    uri_mime, body = split_data_uri(payload.strip())
    declared = normalize_mime_type(mime_type) or normalize_mime_type(uri_mime)

    content = decode_base64(body)
    validate_file_size(content, max_bytes)

    if declared in UNVERIFIED_MIME_TYPES:
        detected = declared
    else:
        detected = sniff_mime_type(content)

    if declared and detected != declared:
        logger.debug(f"Declared {declared} but content is {detected}; using {detected}")

    return ImagePayload(data=content, mime_type=detected)


def decode_image_batch(
    payloads: Iterable[str],
    max_bytes: int = MAX_FILE_SIZE_BYTES
) -> List[ImagePayload]:
    """
    Decode a list of images, skipping the ones that fail validation.

    Returns:
        Decoded images in input order (may be empty)
    """
    images = []
    for index, payload in enumerate(payloads):
        try:
            images.append(decode_image_payload(payload, max_bytes=max_bytes))
        except ValidationError as ve:
            logger.warning(f"Skipping image #{index}: {ve.message}")
    return images
