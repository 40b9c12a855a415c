"""
Application configuration via pydantic-settings.

Loads values from the environment or a ``.env`` file with sensible defaults
for local development. Use ``get_settings()`` once at process start and pass
the resulting object explicitly to each client (``settings=`` keyword).
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """MedScribe settings loaded from environment / .env file.

    Field names map directly to env var names (case-insensitive). Credentials
    default to empty strings: a missing key only fails the client that needs
    it, never the whole process.

    Attributes:
        deepgram_api_key: Speech-to-text credential (required by the transcriber).
        gemini_api_key: Document generation credential (required by the generator).
        supabase_url: Storage project URL (required by the storage gateway).
        supabase_key: Storage anon/service key (required by the storage gateway).
        mime_type_candidates: Preference-ordered encodings tried at capture start.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Speech-to-text (Deepgram) ---
    deepgram_api_key: str = ""
    deepgram_base_url: str = "https://api.deepgram.com"
    deepgram_model: str = "nova-2"
    deepgram_smart_format: bool = True

    # --- Document generation (Gemini) ---
    gemini_api_key: str = ""
    gemini_base_url: str = "https://generativelanguage.googleapis.com"
    gemini_model: str = "gemini-2.5-pro-preview-03-25"
    gemini_temperature: float | None = None  # None = provider default
    gemini_max_output_tokens: int | None = None
    gemini_enable_search: bool = True  # Attach the googleSearch tool

    # --- Object storage (Supabase Storage) ---
    supabase_url: str = ""
    supabase_key: str = ""
    storage_bucket: str = "scribes"

    # --- Audio capture ---
    sample_rate: int = 16000
    channels: int = 1
    chunk_interval: float = 1.0  # Seconds between emitted audio chunks
    mime_type_candidates: list[str] = [
        "audio/ogg;codecs=opus",
        "audio/ogg;codecs=vorbis",
        "audio/flac",
        "audio/wav",
    ]

    # --- Application ---
    http_timeout: float = 60.0
    log_level: str = "INFO"  # Python logging level


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The process-wide configuration object.
    """
    return Settings()
