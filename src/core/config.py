"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Dataset recorder settings loaded from environment / .env file.

    One settings class serves both sides of the system: the operator device
    (capture, offline queue, upload) and the ingestion server. Field names
    map directly to env var names (case-insensitive).

    Attributes:
        api_url: Base URL of the ingestion server the device talks to.
        capture_backend: Which capture variant to use ("native" or "browser").
        local_database_url: SQLite file holding the device's persisted state.
        database_url: Async SQLAlchemy connection string for the server.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Ingestion server (device side) ---
    api_url: str = "http://localhost:3001"
    sentence_limit: int = 50  # Prompts requested per session
    upload_timeout: float = 30.0  # Seconds; a timeout is an ordinary per-item failure

    # --- Capture ---
    # "native" records through ffmpeg into recordings_dir, "browser" buffers in memory
    capture_backend: str = "native"
    recordings_dir: str = "data/recordings"
    capture_temp_dir: str = ""  # Empty = system temp dir
    ffmpeg_bin: str = "ffmpeg"
    ffmpeg_input_args: str = "-f v4l2 -i /dev/video0 -f alsa -i default"
    max_clip_duration: int = 60  # Seconds

    # Padding around the visible recording indicator, in seconds
    lead_in_delay: float = 0.2
    trail_delay: float = 0.2
    timer_interval: float = 1.0

    # --- Device storage ---
    local_database_url: str = "sqlite+aiosqlite:///data/device.db"

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 3001
    log_level: str = "INFO"  # Python logging level
    cors_origins: list[str] = ["*"]

    # --- Server storage ---
    database_url: str = "sqlite+aiosqlite:///data/dataset.db"
    uploads_dir: str = "data/uploads"
    default_sentence_limit: int = 5


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
