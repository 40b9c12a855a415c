"""Unit tests for DeepgramTranscriber.

HTTP traffic goes through ``httpx.MockTransport`` so request shape, error
mapping and response normalization are verified without the network.
"""

import json

import httpx
import pytest

from medscribe.core.exceptions import (
    ConfigurationError,
    MalformedResponseError,
    ServiceConnectionError,
    ServiceError,
)
from medscribe.services.transcription import create_transcriber, prepare_audio_file
from medscribe.services.transcription.deepgram import DeepgramTranscriber, parse_deepgram_response

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _deepgram_payload(alternative: dict) -> dict:
    return {"metadata": {"request_id": "req-1"}, "results": {"channels": [{"alternatives": [alternative]}]}}


def _transcriber(settings, handler) -> DeepgramTranscriber:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return DeepgramTranscriber(settings=settings, client=client)


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class TestRequest:
    """Shape of the single upload request."""

    async def test_posts_artifact_bytes(self, settings, wav_artifact):
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json=_deepgram_payload({"transcript": "hello", "confidence": 0.9}))

        await _transcriber(settings, handler).transcribe(wav_artifact)

        assert len(captured) == 1
        request = captured[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/listen"
        assert request.url.params["model"] == "nova-2"
        assert request.url.params["smart_format"] == "true"
        assert request.headers["authorization"] == "Token dg-test-key"
        assert request.headers["content-type"] == "audio/wav"
        assert request.content == wav_artifact.data

    async def test_model_override(self, settings, wav_artifact):
        seen = {}

        def handler(request):
            seen["model"] = request.url.params["model"]
            return httpx.Response(200, json=_deepgram_payload({"transcript": ""}))

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        await DeepgramTranscriber(settings=settings, client=client, model="nova-3").transcribe(wav_artifact)

        assert seen["model"] == "nova-3"


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TestResponses:
    """Normalization and error mapping."""

    async def test_success_is_normalized(self, settings, wav_artifact):
        payload = _deepgram_payload(
            {
                "transcript": "patient reports headache",
                "confidence": 0.97,
                "words": [
                    {"word": "patient", "start": 0.1, "end": 0.5, "confidence": 0.99},
                    {"word": "reports", "start": 0.5, "end": 0.9, "confidence": 0.95},
                ],
            }
        )
        result = await _transcriber(settings, lambda r: httpx.Response(200, json=payload)).transcribe(
            wav_artifact
        )

        assert result.transcript == "patient reports headache"
        assert result.confidence == 0.97
        assert [w.word for w in result.words] == ["patient", "reports"]
        assert result.words[0].start_offset == 0.1
        assert result.words[1].end_offset == 0.9

    async def test_missing_fields_get_defaults(self, settings, wav_artifact):
        result = await _transcriber(
            settings, lambda r: httpx.Response(200, json=_deepgram_payload({}))
        ).transcribe(wav_artifact)

        assert result.transcript == ""
        assert result.confidence == 0.0
        assert result.words == ()

    async def test_server_error_carries_status_and_body(self, settings, wav_artifact):
        transcriber = _transcriber(settings, lambda r: httpx.Response(500, text="overloaded"))

        with pytest.raises(ServiceError) as exc_info:
            await transcriber.transcribe(wav_artifact)

        assert exc_info.value.status == 500
        assert exc_info.value.body == "overloaded"

    async def test_missing_results_path_is_malformed(self, settings, wav_artifact):
        transcriber = _transcriber(settings, lambda r: httpx.Response(200, json={"results": {"channels": []}}))
        with pytest.raises(MalformedResponseError):
            await transcriber.transcribe(wav_artifact)

    async def test_non_json_body_is_malformed(self, settings, wav_artifact):
        transcriber = _transcriber(settings, lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(MalformedResponseError):
            await transcriber.transcribe(wav_artifact)

    async def test_transport_failure(self, settings, wav_artifact):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ServiceConnectionError):
            await _transcriber(settings, handler).transcribe(wav_artifact)

    async def test_one_request_per_call(self, settings, wav_artifact):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503, text="unavailable")

        with pytest.raises(ServiceError):
            await _transcriber(settings, handler).transcribe(wav_artifact)
        assert len(calls) == 1


class TestParseDeepgramResponse:
    """Direct payload parsing."""

    def test_confidence_is_clamped(self):
        result = parse_deepgram_response(_deepgram_payload({"transcript": "x", "confidence": 1.7}))
        assert result.confidence == 1.0

    def test_null_words_become_empty(self):
        result = parse_deepgram_response(_deepgram_payload({"transcript": "x", "words": None}))
        assert result.words == ()

    def test_non_object_payload(self):
        with pytest.raises(MalformedResponseError):
            parse_deepgram_response(json.loads('["results"]'))

    def test_non_numeric_word_offset(self):
        payload = _deepgram_payload({"transcript": "x", "words": [{"word": "x", "start": "x", "end": 0.4}]})
        with pytest.raises(MalformedResponseError, match="Invalid word timing"):
            parse_deepgram_response(payload)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfiguration:
    """Missing credentials fail before any request is issued."""

    def test_missing_key_raises_without_request(self, settings_factory):
        calls = []
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: calls.append(r)))

        with pytest.raises(ConfigurationError):
            DeepgramTranscriber(settings=settings_factory(deepgram_api_key=""), client=client)
        assert calls == []

    def test_factory_builds_deepgram(self, settings):
        assert isinstance(create_transcriber("deepgram", settings=settings), DeepgramTranscriber)

    def test_factory_rejects_unknown_provider(self):
        with pytest.raises(ValueError, match="Unknown STT provider"):
            create_transcriber("whisper")


class TestPrepareAudioFile:
    """Loading existing recordings from disk."""

    def test_reads_wav_file(self, wav_artifact, tmp_path):
        path = tmp_path / "visit.wav"
        path.write_bytes(wav_artifact.data)

        artifact = prepare_audio_file(path)

        assert artifact.data == wav_artifact.data
        assert "wav" in artifact.mime_type
        assert abs(artifact.duration_seconds - 1.0) < 1e-6
