"""
Transcription module - Speech-to-text abstraction layer.

Factory function for creating STT instances based on provider configuration.
"""

from .base import BaseTranscriber, prepare_audio_file

__all__ = ["BaseTranscriber", "create_transcriber", "prepare_audio_file"]


def create_transcriber(provider: str = "deepgram", **kwargs) -> BaseTranscriber:
    """
    Factory function to create STT instance based on provider.

    Args:
        provider: STT provider name ("deepgram")
        **kwargs: Provider-specific configuration

    Returns:
        BaseTranscriber implementation instance

    Raises:
        ValueError: If provider is unknown
        ConfigurationError: If the provider's credential is missing
    """
    if provider == "deepgram":
        from .deepgram import DeepgramTranscriber

        return DeepgramTranscriber(**kwargs)
    else:
        raise ValueError(f"Unknown STT provider: {provider}")
