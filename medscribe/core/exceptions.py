"""
MedScribe exception hierarchy.

All application-specific exceptions inherit from MedScribeError so the
dictation session can catch them at its boundary and turn them into
user-visible notifications.
"""

from datetime import UTC, datetime


class MedScribeError(Exception):
    """Base exception for all MedScribe errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "MEDSCRIBE_ERROR",
    ) -> None:
        self.detail = detail
        self.code = code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Device
# ---------------------------------------------------------------------------


class PermissionDeniedError(MedScribeError):
    """Raised when the operating system refuses microphone access."""

    def __init__(self, detail: str = "Microphone access was denied") -> None:
        super().__init__(detail=detail, code="PERMISSION_DENIED")


class DeviceUnavailableError(MedScribeError):
    """Raised when no usable input device can be opened."""

    def __init__(self, detail: str = "No microphone is available") -> None:
        super().__init__(detail=detail, code="DEVICE_UNAVAILABLE")


# ---------------------------------------------------------------------------
# Recording lifecycle
# ---------------------------------------------------------------------------


class RecordingAlreadyActiveError(MedScribeError):
    """Raised when trying to start a recording while one is already active."""

    def __init__(self) -> None:
        super().__init__(
            detail="A recording is already active",
            code="RECORDING_ALREADY_ACTIVE",
        )


class InvalidTransitionError(MedScribeError):
    """Raised when a lifecycle operation is not valid in the current state."""

    def __init__(self, action: str, state: str) -> None:
        self.action = action
        self.state = state
        super().__init__(
            detail=f"Cannot {action} while {state}",
            code="INVALID_TRANSITION",
        )


class ResourceLeakError(MedScribeError):
    """Internal invariant violation: a held resource would be leaked.

    Never expected at runtime; hitting it indicates a programming error.
    """

    def __init__(self, detail: str) -> None:
        super().__init__(detail=detail, code="RESOURCE_LEAK")


class EncodingError(MedScribeError):
    """Raised when captured audio cannot be encoded into the negotiated format."""

    def __init__(self, detail: str = "Could not encode the recording") -> None:
        super().__init__(detail=detail, code="ENCODING_ERROR")


# ---------------------------------------------------------------------------
# Playback
# ---------------------------------------------------------------------------


class NoArtifactError(MedScribeError):
    """Raised when playback or transcription is requested without a recording."""

    def __init__(self, detail: str = "No recording available") -> None:
        super().__init__(detail=detail, code="NO_ARTIFACT")


class PlaybackError(MedScribeError):
    """Raised when the audio sink fails to play a recording."""

    def __init__(self, detail: str = "Playback failed") -> None:
        super().__init__(detail=detail, code="PLAYBACK_ERROR")


# ---------------------------------------------------------------------------
# Remote services
# ---------------------------------------------------------------------------


class ConfigurationError(MedScribeError):
    """Raised when a client is built without its required configuration."""

    def __init__(self, setting: str, service: str) -> None:
        self.setting = setting
        self.service = service
        super().__init__(
            detail=f"{service} is not configured: set {setting.upper()}",
            code="CONFIGURATION_ERROR",
        )


class ServiceError(MedScribeError):
    """Raised when a remote service answers with a non-success status."""

    def __init__(self, service: str, status: int, body: str) -> None:
        self.service = service
        self.status = status
        self.body = body
        super().__init__(
            detail=f"{service} API error: {status} - {body}",
            code="SERVICE_ERROR",
        )


class ServiceConnectionError(MedScribeError):
    """Raised when a remote service cannot be reached (transport failure)."""

    def __init__(self, service: str, detail: str) -> None:
        self.service = service
        super().__init__(
            detail=f"Failed to reach {service}: {detail}",
            code="SERVICE_UNREACHABLE",
        )


class MalformedResponseError(MedScribeError):
    """Raised when a 2xx response does not have the expected structure."""

    def __init__(self, service: str, detail: str = "Unexpected response structure") -> None:
        self.service = service
        super().__init__(detail=f"{service}: {detail}", code="MALFORMED_RESPONSE")


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


class StorageError(MedScribeError):
    """Raised when an object storage request fails."""

    def __init__(self, detail: str, status: int = 0, body: str = "", code: str = "STORAGE_ERROR") -> None:
        self.status = status
        self.body = body
        super().__init__(detail=detail, code=code)


class ObjectExistsError(StorageError):
    """Raised when writing to a key that already exists without upsert."""

    def __init__(self, key: str, status: int = 409, body: str = "") -> None:
        self.key = key
        super().__init__(
            detail=f"Object already exists: {key}",
            status=status,
            body=body,
            code="OBJECT_EXISTS",
        )


class ObjectNotFoundError(StorageError):
    """Raised when reading or updating a key that does not exist."""

    def __init__(self, key: str, status: int = 404, body: str = "") -> None:
        self.key = key
        super().__init__(
            detail=f"Object not found: {key}",
            status=status,
            body=body,
            code="OBJECT_NOT_FOUND",
        )


class InvalidDocumentNameError(MedScribeError):
    """Raised when a document name is empty or unchanged."""

    def __init__(self, detail: str) -> None:
        super().__init__(detail=detail, code="INVALID_DOCUMENT_NAME")
