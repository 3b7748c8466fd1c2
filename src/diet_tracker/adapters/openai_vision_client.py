"""OpenAI Responses API client for photo recognition."""

import json
import logging
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from diet_tracker.errors import UpstreamUnavailableError
from diet_tracker.services.vision import VisionClient

_logger = logging.getLogger(__name__)


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(cls, api_key: str) -> "OpenAIVisionClient":
        """Create an OpenAI vision client."""
        return cls(client=AsyncOpenAI(api_key=api_key))

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
        """Request structured food candidates for one image."""
        request_payload: dict[str, object] = {
            "model": model,
            "input": [
                {
                    "role": "user",
                    "content": [
                        {"type": "input_text", "text": prompt},
                        {"type": "input_image", "image_url": image_data_url},
                    ],
                }
            ],
            "text": {
                "format": {
                    "type": "json_schema",
                    "name": "food_photo_candidates",
                    "strict": True,
                    "schema": schema,
                }
            },
            "store": store,
        }
        if reasoning_effort:
            request_payload["reasoning"] = {"effort": reasoning_effort}

        try:
            response = await self.client.responses.create(**request_payload)
        except OpenAIError as exc:
            _logger.warning("OpenAI request failed: %s", exc)
            raise UpstreamUnavailableError("Photo analysis unavailable") from exc
        output_text = response.output_text
        if not output_text:
            raise UpstreamUnavailableError("Photo analysis returned no output")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise UpstreamUnavailableError("Photo analysis returned bad data") from exc

    async def close(self) -> None:
        """Close the underlying OpenAI HTTP client."""
        await self.client.close()
