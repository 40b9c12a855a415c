"""
Gemini document generation provider.

Calls ``streamGenerateContent`` with ``alt=sse`` and reassembles the text
fragments of the event stream. A malformed event is logged and skipped; only
a transport failure or a non-success initial response fails the call.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

from medscribe.core.config import Settings, get_settings
from medscribe.core.exceptions import ConfigurationError, ServiceConnectionError, ServiceError
from medscribe.services.generation.base import BaseDocumentGenerator
from medscribe.services.generation.prompts import SOAP_SYSTEM_INSTRUCTION, build_request_body
from medscribe.services.generation.sse import iter_sse_data

logger = logging.getLogger(__name__)

SERVICE_NAME = "Gemini"


def extract_text(chunk: Any) -> str | None:
    """Return ``candidates[0].content.parts[0].text`` if present, else None."""
    try:
        text = chunk["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return None
    return text if isinstance(text, str) else None


class GeminiDocumentGenerator(BaseDocumentGenerator):
    """Clinical note generator backed by the Gemini REST API.

    Args:
        settings: Settings instance (defaults to ``get_settings()``).
        client: Optional pre-built ``httpx.AsyncClient``.
        api_key: Overrides ``settings.gemini_api_key``.
        model: Overrides ``settings.gemini_model``.
        system_instruction: Overrides the default SOAP-note instruction.

    Raises:
        ConfigurationError: If no API key is available.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
        model: str | None = None,
        system_instruction: str = SOAP_SYSTEM_INSTRUCTION,
    ) -> None:
        self._settings = settings or get_settings()
        self._api_key = api_key or self._settings.gemini_api_key
        if not self._api_key:
            logger.error("Gemini API key is missing")
            raise ConfigurationError("gemini_api_key", SERVICE_NAME)
        self._model = model or self._settings.gemini_model
        self._system_instruction = system_instruction
        base_url = self._settings.gemini_base_url.rstrip("/")
        self._url = f"{base_url}/v1beta/models/{self._model}:streamGenerateContent"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.http_timeout)

    def _body(self, transcript: str) -> dict:
        return build_request_body(
            transcript,
            system_instruction=self._system_instruction,
            temperature=self._settings.gemini_temperature,
            max_output_tokens=self._settings.gemini_max_output_tokens,
            enable_search=self._settings.gemini_enable_search,
        )

    async def stream(self, transcript: str) -> AsyncIterator[str]:
        """Yield text fragments as the event stream delivers them.

        Raises:
            ServiceError: If the initial response is not 2xx.
            ServiceConnectionError: On transport failure (before or mid-stream).
        """
        logger.info("Calling Gemini API (%s)...", self._model)
        try:
            async with self._client.stream(
                "POST",
                self._url,
                params={"alt": "sse"},
                headers={"x-goog-api-key": self._api_key},
                json=self._body(transcript),
            ) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    logger.error("Gemini API request failed with status %d: %s", response.status_code, body)
                    raise ServiceError(SERVICE_NAME, response.status_code, body)

                async for data in iter_sse_data(response.aiter_bytes()):
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError as exc:
                        logger.warning("Skipping invalid JSON line in stream: %r (%s)", data, exc)
                        continue
                    text = extract_text(chunk)
                    if text:
                        yield text
        except httpx.HTTPError as exc:
            logger.warning("Gemini connection error: %s", exc)
            raise ServiceConnectionError(SERVICE_NAME, str(exc)) from exc

    async def generate(self, transcript: str) -> str:
        text = await super().generate(transcript)
        logger.info("Generated text length: %d", len(text))
        return text

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
