"""Client wrapper for the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

import asyncio
import json
import logging
from textwrap import dedent
from typing import Any, Awaitable, Callable

import httpx
from pydantic import ValidationError

from travel_pilot.core.config import GeminiSettings
from travel_pilot.schemas import ParsedOutput, parsed_output_adapter
from travel_pilot.utils.http import RetryPolicy, request_with_retry

# The image part is always labelled PNG; Gemini sniffs the actual format.
INLINE_IMAGE_MIME_TYPE = "image/png"

logger = logging.getLogger(__name__)


class GeminiModelError(RuntimeError):
    """Raised when Gemini cannot fulfill a request."""


class ResponseShapeError(GeminiModelError):
    """Raised when a Gemini response does not have the structure we expect."""


class GeminiClient:
    """Send scan images to Gemini and parse the structured answer."""

    def __init__(
        self,
        settings: GeminiSettings,
        retry_policy: RetryPolicy | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._retry_policy = retry_policy or RetryPolicy()
        self._transport = transport
        self._sleep = sleep

    @property
    def endpoint(self) -> str:
        return f"{self._settings.base_url}/models/{self._settings.model_name}:generateContent"

    def build_request(self, *, image_base64: str, prompt: str | None = None) -> dict[str, Any]:
        """Construct the ``generateContent`` body for a single image."""
        return {
            "contents": [
                {
                    "parts": [
                        {"text": prompt or build_scan_prompt(self._settings.target_language)},
                        {
                            "inlineData": {
                                "mimeType": INLINE_IMAGE_MIME_TYPE,
                                "data": image_base64,
                            }
                        },
                    ]
                }
            ],
            "generationConfig": {"responseMimeType": "application/json"},
        }

    async def generate_content(self, body: dict[str, Any]) -> dict[str, Any]:
        """POST ``body`` with retry/backoff and return the decoded response body."""
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await request_with_retry(
                client.post,
                self.endpoint,
                headers={"x-goog-api-key": self._settings.api_key},
                json=body,
                retry_policy=self._retry_policy,
                sleep=self._sleep,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise ResponseShapeError("Gemini response body is not valid JSON.") from exc

    async def analyze_image(self, image_base64: str) -> ParsedOutput:
        """Classify a menu or product photo and return the parsed result."""
        envelope = await self.generate_content(self.build_request(image_base64=image_base64))
        output = parse_scan_output(extract_candidate_text(envelope))
        logger.info("Gemini classified the image as '%s'.", output.kind)
        return output


def build_scan_prompt(target_language: str) -> str:
    """Return the instruction sent alongside every scanned image."""
    return dedent(
        f"""\
        Analyse this photo.
        If it shows a menu, translate it literally into {target_language} and respond
        with JSON: {{"kind": "menu", "title": string, "sections": [{{"category":
        string, "items": [{{"name": string, "price": string}}]}}]}}.
        Keep prices exactly as printed, including the currency.
        If it shows a product, identify it and respond with JSON: {{"kind":
        "product", "name": string, "brand": string, "priceRange": string,
        "marketReview": string, "userFeedback": {{"pros": [string], "cons":
        [string]}}}} summarising its market reputation and community reviews in
        {target_language}. Give at least one pro and one con.
        Respond with the JSON object only.
        """
    )


def extract_candidate_text(envelope: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` from a Gemini response."""
    if not isinstance(envelope, dict):
        raise ResponseShapeError("Gemini response is not a JSON object.")

    candidates = envelope.get("candidates")
    if not candidates:
        feedback = envelope.get("promptFeedback")
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block_reason:
            raise ResponseShapeError(f"Gemini blocked the request: {block_reason}.")
        raise ResponseShapeError("Gemini returned no candidates.")

    try:
        text = candidates[0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise ResponseShapeError(
            "Gemini response is missing candidates[0].content.parts[0].text."
        ) from exc

    if not isinstance(text, str):
        raise ResponseShapeError("Gemini candidate text is not a string.")
    return text


def parse_scan_output(text: str) -> ParsedOutput:
    """Decode the JSON-encoded candidate text into a menu or product result."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ResponseShapeError(f"Candidate text is not valid JSON: {exc.msg}.") from exc

    if not isinstance(payload, dict) or "kind" not in payload:
        raise ResponseShapeError("Candidate JSON has no 'kind' discriminator.")

    try:
        return parsed_output_adapter.validate_python(payload)
    except ValidationError as exc:
        raise ResponseShapeError(
            f"Candidate JSON does not match the '{payload['kind']}' shape: "
            f"{exc.error_count()} error(s)."
        ) from exc


__all__ = [
    "GeminiClient",
    "GeminiModelError",
    "ResponseShapeError",
    "build_scan_prompt",
    "extract_candidate_text",
    "parse_scan_output",
]
