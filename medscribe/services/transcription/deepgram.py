"""Deepgram pre-recorded transcription over httpx.

Uploads the artifact bytes in a single request and normalizes the nested
``results.channels[0].alternatives[0]`` payload into a TranscriptionResult.
"""

import logging
from typing import Any

import httpx

from medscribe.core.config import Settings, get_settings
from medscribe.core.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ServiceConnectionError,
    ServiceError,
)
from medscribe.core.models import RecordedArtifact, TranscriptionResult, WordTiming
from medscribe.services.transcription.base import BaseTranscriber

logger = logging.getLogger(__name__)

SERVICE_NAME = "Deepgram"


def _clamp_confidence(value: Any) -> float:
    try:
        return max(0.0, min(1.0, float(value or 0.0)))
    except (TypeError, ValueError):
        return 0.0


def parse_deepgram_response(payload: Any) -> TranscriptionResult:
    """Normalize a Deepgram ``/v1/listen`` response body.

    Raises:
        MalformedResponseError: If the transcript/alternatives path is absent
            or a word carries a non-numeric offset.
    """
    try:
        alternative = payload["results"]["channels"][0]["alternatives"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise MalformedResponseError(SERVICE_NAME, "Unexpected response structure") from exc
    if not isinstance(alternative, dict):
        raise MalformedResponseError(SERVICE_NAME, "Alternative is not an object")

    try:
        words = tuple(
            WordTiming(
                word=str(item.get("word") or ""),
                start_offset=float(item.get("start") or 0.0),
                end_offset=float(item.get("end") or 0.0),
                confidence=_clamp_confidence(item.get("confidence")),
            )
            for item in alternative.get("words") or []
            if isinstance(item, dict)
        )
    except (TypeError, ValueError) as exc:
        raise MalformedResponseError(SERVICE_NAME, "Invalid word timing") from exc
    return TranscriptionResult(
        transcript=alternative.get("transcript") or "",
        confidence=_clamp_confidence(alternative.get("confidence")),
        words=words,
    )


class DeepgramTranscriber(BaseTranscriber):
    """Speech-to-text provider using the Deepgram REST API.

    Args:
        settings: Settings instance (defaults to ``get_settings()``).
        client: Optional pre-built ``httpx.AsyncClient`` (tests, shared pools).
        api_key: Overrides ``settings.deepgram_api_key``.
        model: Overrides ``settings.deepgram_model``.

    Raises:
        ConfigurationError: If no API key is available. No request is made.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._api_key = api_key or self._settings.deepgram_api_key
        if not self._api_key:
            logger.error("Deepgram API key is missing")
            raise ConfigurationError("deepgram_api_key", SERVICE_NAME)
        self._model = model or self._settings.deepgram_model
        self._url = f"{self._settings.deepgram_base_url.rstrip('/')}/v1/listen"
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=self._settings.http_timeout)

    def _params(self) -> dict[str, str]:
        return {
            "model": self._model,
            "smart_format": "true" if self._settings.deepgram_smart_format else "false",
        }

    async def transcribe(self, artifact: RecordedArtifact) -> TranscriptionResult:
        """Upload ``artifact`` and return the normalized transcription.

        Raises:
            ServiceError: On a non-2xx status (carries status and body text).
            ServiceConnectionError: On transport failure.
            MalformedResponseError: If the body is not the expected JSON shape.
        """
        logger.info(
            "Transcribing audio with size: %d bytes, type: %s using %s",
            artifact.size,
            artifact.mime_type,
            self._model,
        )
        try:
            response = await self._client.post(
                self._url,
                params=self._params(),
                headers={
                    "Authorization": f"Token {self._api_key}",
                    "Content-Type": artifact.mime_type,
                },
                content=artifact.data,
            )
        except httpx.HTTPError as exc:
            logger.warning("Deepgram connection error: %s", exc)
            raise ServiceConnectionError(SERVICE_NAME, str(exc)) from exc

        if not response.is_success:
            body = response.text
            logger.error("Deepgram API error %d: %s", response.status_code, body)
            raise ServiceError(SERVICE_NAME, response.status_code, body)

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponseError(SERVICE_NAME, "Response body is not JSON") from exc

        result = parse_deepgram_response(payload)
        logger.info(
            "Transcription complete: %d chars, confidence %.2f",
            len(result.transcript),
            result.confidence,
        )
        return result

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
