"""
Storage module - Object storage gateway and document library.
"""

from medscribe.services.storage.documents import (
    DocumentLibrary,
    default_document_name,
    normalize_document_name,
    suggest_copy_name,
)
from medscribe.services.storage.gateway import StorageGateway

__all__ = [
    "DocumentLibrary",
    "StorageGateway",
    "default_document_name",
    "normalize_document_name",
    "suggest_copy_name",
]
