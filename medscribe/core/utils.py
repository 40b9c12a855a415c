"""Shared utility functions for MedScribe."""

# Deepgram Nova-2 pay-as-you-go rate, USD per audio minute
NOVA2_COST_PER_MINUTE = 0.0042


def format_elapsed(seconds: int) -> str:
    """Format a recording duration as ``mm:ss`` (minutes are not wrapped)."""
    seconds = max(int(seconds), 0)
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def estimate_transcription_cost(
    duration_seconds: float, cost_per_minute: float = NOVA2_COST_PER_MINUTE
) -> float:
    """Estimate the transcription cost of an audio duration, billed per second."""
    return (max(duration_seconds, 0.0) / 60) * cost_per_minute
