"""OpenAI Responses API client for remote vision analysis."""

import json
from dataclasses import dataclass

from openai import APIConnectionError, APIStatusError, AsyncOpenAI, BadRequestError

from food_recognizer.domain.errors import InvalidImageError, NetworkError, ParseError
from food_recognizer.services.vision import VisionClient


@dataclass
class OpenAIVisionClient(VisionClient):
    """Vision client backed by OpenAI Responses API."""

    client: AsyncOpenAI

    @classmethod
    def create(
        cls, api_key: str, timeout_seconds: float = 30.0
    ) -> "OpenAIVisionClient":
        """Create an OpenAI vision client."""
        return cls(
            client=AsyncOpenAI(api_key=api_key, timeout=timeout_seconds, max_retries=0)
        )

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
        """Call OpenAI Responses API with structured outputs."""
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
                    "name": "food_recognition",
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
        except BadRequestError as exc:
            raise InvalidImageError(str(exc)) from exc
        except (APIConnectionError, APIStatusError) as exc:
            raise NetworkError(str(exc)) from exc

        output_text = response.output_text
        if not output_text:
            raise ParseError("OpenAI returned an empty response")
        try:
            return json.loads(output_text)
        except json.JSONDecodeError as exc:
            raise ParseError("OpenAI returned malformed JSON") from exc
