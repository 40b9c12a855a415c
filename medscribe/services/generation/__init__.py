"""
Generation module - Clinical document generation abstraction layer.

Factory function for creating generator instances based on provider configuration.
"""

from .base import BaseDocumentGenerator

__all__ = ["BaseDocumentGenerator", "create_generator"]


def create_generator(provider: str = "gemini", **kwargs) -> BaseDocumentGenerator:
    """
    Factory function to create a document generator based on provider.

    Args:
        provider: Generator provider name ("gemini")
        **kwargs: Provider-specific configuration

    Returns:
        BaseDocumentGenerator implementation instance

    Raises:
        ValueError: If provider is unknown
        ConfigurationError: If the provider's credential is missing
    """
    if provider == "gemini":
        from .gemini import GeminiDocumentGenerator

        return GeminiDocumentGenerator(**kwargs)
    else:
        raise ValueError(f"Unknown generation provider: {provider}")
