import os
from pathlib import Path
from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_data_dir() -> Path:
    """Defaults to ``~/.syncwave``; ``SYNCWAVE_DATA_DIR`` overrides it."""
    return Path(os.getenv("SYNCWAVE_DATA_DIR", str(Path.home() / ".syncwave")))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Project Paths
    DATA_DIR: Path = Field(default_factory=default_data_dir)

    VERSION: str = "1.0.0"

    # Library
    MUSIC_DIRECTORIES: List[Path] = [Path.home() / "Music"]
    SUPPORTED_EXTENSIONS: List[str] = [
        ".mp3",
        ".m4a",
        ".flac",
        ".wav",
        ".ogg",
        ".aac",
        ".opus",
    ]
    # Directory names never descended into (hidden dirs are always skipped)
    EXCLUDED_DIRS: List[str] = ["node_modules", "__pycache__", "@eaDir", "$RECYCLE.BIN"]
    SCAN_ON_STARTUP: bool = True
    WATCH_ENABLED: bool = True
    # Quiet period before a file being written is indexed
    WATCH_DEBOUNCE_DELAY: float = 0.5  # Seconds

    # Streaming
    STREAM_CHUNK_SIZE: int = 64 * 1024

    # Server
    HOST: str = "127.0.0.1"
    PORT: int = 3456
    CORS_ORIGINS: List[str] = [
        "http://localhost:3456",
        "http://127.0.0.1:3456",
    ]
    CORS_ORIGIN_REGEX: str = r"^http://(localhost|127\.0\.0\.1):\d+$"
    SLOW_REQUEST_THRESHOLD: float = 1.0  # Seconds

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_RETENTION: str = "10 days"
    LOG_ROTATION: str = "10 MB"

    @property
    def LOG_PATH(self) -> Path:
        return self.DATA_DIR / "logs" / "syncwave.log"


settings = Settings()

# Ensure data directory exists
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
