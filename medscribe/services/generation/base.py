"""
Abstract base class for document generation providers.

All LLM implementations must implement this interface, enabling
provider-agnostic note generation in the dictation session.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class BaseDocumentGenerator(ABC):
    """Interface that every document generation provider must implement."""

    @abstractmethod
    def stream(self, transcript: str) -> AsyncIterator[str]:
        """Stream generated text fragments in arrival order.

        Args:
            transcript: Dictation text to turn into clinical notes.

        Yields:
            Text fragments; their concatenation is the full document.
        """

    async def generate(self, transcript: str) -> str:
        """Generate the full document text for ``transcript``."""
        parts = [fragment async for fragment in self.stream(transcript)]
        return "".join(parts)

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
