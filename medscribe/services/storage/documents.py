"""
Text document library on top of the storage gateway.

Documents are UTF-8 ``.txt`` objects at the bucket root. Saving never
creates, saving-as never overwrites, and renaming goes through the
gateway's copy-then-remove sequence.
"""

import logging
from datetime import UTC, datetime

from medscribe.core.exceptions import InvalidDocumentNameError
from medscribe.core.models import RenameResult, StorageEntry
from medscribe.services.storage.gateway import StorageGateway

logger = logging.getLogger(__name__)

TEXT_CONTENT_TYPE = "text/plain;charset=UTF-8"
DOCUMENT_SUFFIX = ".txt"


def normalize_document_name(name: str | None) -> str:
    """Trim ``name`` and ensure it ends in ``.txt``.

    Raises:
        InvalidDocumentNameError: If the name is empty after trimming.
    """
    name = (name or "").strip()
    if not name:
        raise InvalidDocumentNameError("Filename cannot be empty.")
    return name if name.endswith(DOCUMENT_SUFFIX) else f"{name}{DOCUMENT_SUFFIX}"


def suggest_copy_name(original: str) -> str:
    """Default name offered for "save as": ``<base>_copy.txt``."""
    return f"{original.removesuffix(DOCUMENT_SUFFIX)}_copy{DOCUMENT_SUFFIX}"


def default_document_name(now: datetime | None = None) -> str:
    """Timestamped name for a freshly generated document."""
    now = now or datetime.now(UTC)
    return f"scribe_{now:%Y%m%d_%H%M%S}{DOCUMENT_SUFFIX}"


class DocumentLibrary:
    """CRUD for generated clinical documents.

    Args:
        gateway: Storage gateway bound to the documents bucket.
    """

    def __init__(self, gateway: StorageGateway) -> None:
        self._gateway = gateway

    async def list_documents(self, limit: int = 100) -> list[StorageEntry]:
        """Return ``.txt`` documents, newest first."""
        entries = await self._gateway.list("", limit=limit, offset=0, sort_by=("created_at", "desc"))
        return [entry for entry in entries if entry.name.endswith(DOCUMENT_SUFFIX)]

    async def read(self, name: str) -> str:
        data = await self._gateway.download(name)
        return data.decode("utf-8")

    async def create(self, name: str, text: str) -> str:
        """Store a new document; refuses to overwrite. Returns the stored name."""
        name = normalize_document_name(name)
        await self._gateway.upload(name, text.encode("utf-8"), TEXT_CONTENT_TYPE, upsert=False)
        return name

    async def save(self, name: str, text: str) -> None:
        """Overwrite an existing document (update only, never create)."""
        await self._gateway.update(name, text.encode("utf-8"), TEXT_CONTENT_TYPE)

    async def save_as(self, original: str, new_name: str, text: str) -> str:
        """Store ``text`` under a new name, leaving ``original`` untouched.

        Raises:
            InvalidDocumentNameError: If the new name is empty or equals ``original``.
            ObjectExistsError: If a document with the new name already exists.
        """
        name = normalize_document_name(new_name)
        if name == original:
            raise InvalidDocumentNameError("New filename cannot be the same as the original.")
        return await self.create(name, text)

    async def rename(self, original: str, new_name: str) -> RenameResult:
        """Rename a document; a leftover original is reported, not raised."""
        name = normalize_document_name(new_name)
        if name == original:
            raise InvalidDocumentNameError("Filename unchanged.")
        return await self._gateway.rename(original, name)
