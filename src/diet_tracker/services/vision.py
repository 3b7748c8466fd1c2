"""Photo recognition service."""

import base64
import binascii
import logging
import re
from dataclasses import dataclass
from typing import Protocol

import pydantic

from diet_tracker.domain.vision import VisionExtract
from diet_tracker.errors import UpstreamUnavailableError, ValidationError

SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "image/gif")
MAX_IMAGE_BYTES = 10 * 1024 * 1024

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")

_NULLABLE_STRING = {"anyOf": [{"type": "string"}, {"type": "null"}]}
_NON_NEGATIVE = {"type": "number", "minimum": 0}

VISION_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "items": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "confidence": {"type": "number", "minimum": 0.0, "maximum": 1.0},
                    "quantity": {"type": "number", "exclusiveMinimum": 0},
                    "unit": _NULLABLE_STRING,
                    "estimated_calories": _NON_NEGATIVE,
                    "estimated_protein_g": _NON_NEGATIVE,
                    "estimated_carbs_g": _NON_NEGATIVE,
                    "estimated_fat_g": _NON_NEGATIVE,
                },
                "required": [
                    "name",
                    "confidence",
                    "quantity",
                    "unit",
                    "estimated_calories",
                    "estimated_protein_g",
                    "estimated_carbs_g",
                    "estimated_fat_g",
                ],
                "additionalProperties": False,
            },
        }
    },
    "required": ["items"],
    "additionalProperties": False,
}

PROMPT = (
    "Identify every food item in the image. For each item return a short name, "
    "your confidence (0-1), the visible quantity with its unit, and estimated "
    "calories, protein, carbs and fat in grams for that quantity."
)

_logger = logging.getLogger(__name__)


class VisionClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


@dataclass
class VisionService:
    """Service that validates photos and returns food candidates."""

    client: VisionClient | None
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(self, image: str, mime_type: str = "image/jpeg") -> VisionExtract:
        """Recognize foods in a base64-encoded image."""
        data_url = build_data_url(image, mime_type)
        if self.client is None:
            raise UpstreamUnavailableError("AI service not configured")
        raw = await self.client.extract(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=data_url,
            schema=VISION_SCHEMA,
            prompt=PROMPT,
        )
        try:
            result = VisionExtract.model_validate(raw)
        except pydantic.ValidationError as exc:
            _logger.warning("Vision output rejected: %s", exc)
            raise UpstreamUnavailableError("Photo analysis returned bad data") from exc
        _logger.info(
            "Photo analyzed: items=%s confidence=%.2f",
            len(result.items),
            result.confidence,
        )
        return result


def build_data_url(image: str, mime_type: str) -> str:
    """Validate a base64 image and return it as a data URL."""
    mime_type = mime_type or "image/jpeg"
    if mime_type not in SUPPORTED_MIME_TYPES:
        raise ValidationError("Invalid image type. Supported: JPEG, PNG, WebP, GIF")
    encoded = _DATA_URL_PREFIX.sub("", image.strip())
    try:
        decoded = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError("Invalid base64 image data") from exc
    if not decoded:
        raise ValidationError("Image is required")
    if len(decoded) > MAX_IMAGE_BYTES:
        raise ValidationError("Image too large. Maximum size is 10MB")
    return f"data:{mime_type};base64,{encoded}"
