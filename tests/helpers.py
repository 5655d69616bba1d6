"""
Test helpers: Pillow image factories and a fake Gemini model.
"""
import io
import json
import base64
import asyncio
from types import SimpleNamespace
from typing import Any, List

from PIL import Image


VALID_ANALYSIS = {
    "category": "tops",
    "color": "Navy",
    "material": "cotton",
    "description": "A crisp navy shirt for the office.",
    "tags": ["shirt", "office", "button-down"],
    "style": ["Formal", "Futuristic"],
    "season": ["Spring", "Fall"],
}


def make_image_bytes(color: str = "blue", fmt: str = "PNG", size=(64, 64)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


def to_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def text_response(text: str) -> SimpleNamespace:
    part = SimpleNamespace(text=text, inline_data=None)
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


def json_response(data: dict, fenced: bool = False) -> SimpleNamespace:
    text = json.dumps(data)
    if fenced:
        text = f"```json\n{text}\n```"
    return text_response(text)


def image_response(data: bytes, mime_type: str = "image/png", with_text: bool = True) -> SimpleNamespace:
    parts = []
    if with_text:
        parts.append(SimpleNamespace(text="Here is your image.", inline_data=None))
    parts.append(SimpleNamespace(text="", inline_data=SimpleNamespace(mime_type=mime_type, data=data)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def empty_response() -> SimpleNamespace:
    return SimpleNamespace(candidates=[])


class FakeModel:
    """
    Stand-in for genai.GenerativeModel.

    Results are consumed in order; the last one repeats. Exceptions in the
    result list are raised instead of returned.
    """

    def __init__(self, *results: Any, delay: float = 0.0):
        self.results: List[Any] = list(results)
        self.delay = delay
        self.calls: List[dict] = []

    async def generate_content_async(self, contents, request_options=None):
        self.calls.append({"contents": contents, "request_options": request_options})
        if self.delay:
            await asyncio.sleep(self.delay)

        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0):
        self.now += minutes * 60 + seconds
