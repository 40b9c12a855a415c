"""Audio encoding negotiation and artifact assembly.

Maps MIME identifiers to libsndfile container/subtype pairs, picks the first
supported one from a preference-ordered list, and encodes captured int16 PCM
chunks into the final recorded artifact.
"""

import io
import logging
from collections.abc import Callable, Sequence

import numpy as np
import soundfile as sf

from medscribe.core.exceptions import EncodingError
from medscribe.core.models import RecordedArtifact

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "audio/wav"

# MIME identifier -> (libsndfile container, subtype)
SOUNDFILE_FORMATS: dict[str, tuple[str, str]] = {
    "audio/ogg;codecs=opus": ("OGG", "OPUS"),
    "audio/ogg;codecs=vorbis": ("OGG", "VORBIS"),
    "audio/ogg": ("OGG", "VORBIS"),
    "audio/flac": ("FLAC", "PCM_16"),
    "audio/wav": ("WAV", "PCM_16"),
    "audio/x-wav": ("WAV", "PCM_16"),
}

# Subtypes that only accept a fixed set of sample rates
SUBTYPE_SAMPLE_RATES: dict[str, frozenset[int]] = {
    "OPUS": frozenset({8000, 12000, 16000, 24000, 48000}),
}

# Sample width of the captured PCM (int16)
SAMPLE_WIDTH = 2


def _normalize(mime_type: str) -> str:
    return mime_type.replace(" ", "").lower()


def is_mime_type_supported(mime_type: str, sample_rate: int | None = None) -> bool:
    """Return True if libsndfile can encode the given MIME identifier.

    Args:
        mime_type: MIME identifier, e.g. ``audio/ogg;codecs=opus``.
        sample_rate: Capture rate the encoder must accept; unchecked when None.
    """
    fmt = SOUNDFILE_FORMATS.get(_normalize(mime_type))
    if fmt is None:
        return False
    container, subtype = fmt
    allowed_rates = SUBTYPE_SAMPLE_RATES.get(subtype)
    if sample_rate is not None and allowed_rates is not None and sample_rate not in allowed_rates:
        return False
    try:
        return sf.check_format(container, subtype)
    except (TypeError, ValueError):
        return False


def negotiate_mime_type(
    candidates: Sequence[str],
    sample_rate: int | None = None,
    is_supported: Callable[[str, int | None], bool] = is_mime_type_supported,
) -> str:
    """Pick the first supported MIME type, falling back to the platform default.

    A fallback is not an error: every libsndfile build can write WAV at any
    sample rate.

    Args:
        candidates: Preference-ordered MIME identifiers.
        sample_rate: Capture sample rate every candidate is checked against.
        is_supported: Check applied to each candidate.

    Returns:
        The selected MIME type.
    """
    for candidate in candidates:
        if is_supported(candidate, sample_rate):
            logger.info("Using mimeType: %s", candidate)
            return candidate
    logger.info("No preferred encoding supported at %s Hz; using %s", sample_rate, DEFAULT_MIME_TYPE)
    return DEFAULT_MIME_TYPE


def pcm_duration(pcm_bytes: int, sample_rate: int, channels: int) -> float:
    """Duration in seconds of ``pcm_bytes`` bytes of int16 PCM."""
    frame_size = SAMPLE_WIDTH * channels
    return (pcm_bytes // frame_size) / sample_rate


def encode_artifact(
    chunks: Sequence[bytes],
    mime_type: str,
    sample_rate: int,
    channels: int,
) -> RecordedArtifact:
    """Assemble captured PCM chunks into an encoded, immutable artifact.

    Args:
        chunks: Ordered int16 PCM fragments.
        mime_type: Negotiated encoding; unknown identifiers encode as WAV.
        sample_rate: Capture sample rate in Hz.
        channels: Number of interleaved channels.

    Returns:
        RecordedArtifact holding the encoded bytes.

    Raises:
        EncodingError: If libsndfile rejects the data or format.
    """
    pcm = b"".join(chunks)
    frame_size = SAMPLE_WIDTH * channels
    usable = len(pcm) - (len(pcm) % frame_size)
    samples = np.frombuffer(pcm[:usable], dtype=np.int16)
    if channels > 1:
        samples = samples.reshape(-1, channels)

    container, subtype = SOUNDFILE_FORMATS.get(_normalize(mime_type), SOUNDFILE_FORMATS[DEFAULT_MIME_TYPE])
    buffer = io.BytesIO()
    try:
        sf.write(buffer, samples, sample_rate, format=container, subtype=subtype)
    except (sf.LibsndfileError, RuntimeError, TypeError, ValueError) as exc:
        logger.error("Failed to encode %d bytes as %s: %s", usable, mime_type, exc)
        raise EncodingError(f"Could not encode the recording as {mime_type}: {exc}") from exc

    return RecordedArtifact(
        data=buffer.getvalue(),
        mime_type=mime_type,
        sample_rate=sample_rate,
        channels=channels,
        duration_seconds=pcm_duration(usable, sample_rate, channels),
    )
