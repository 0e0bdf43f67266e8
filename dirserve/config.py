"""Configuration management for dirserve."""

from functools import lru_cache
from typing import Literal, Optional
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="DIRSERVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # API Settings
    api_title: str = "dirserve"
    api_version: str = "1.0.0"
    api_description: str = "Browse, download and stream archives of a directory tree"
    debug: bool = False

    # Data root served to clients
    # Override with environment variable: DIRSERVE_DATA_DIR
    data_dir: str = "."

    # Network Settings
    host: str = "0.0.0.0"
    port: int = Field(3779, ge=0, le=65535)

    # Public URL of the service, used to build aria2 download links.
    # Derived from the incoming request when unset.
    base_url: Optional[str] = None

    # Archive streaming
    archive_chunk_size: int = Field(64 * 1024, ge=1024)
    archive_queue_depth: int = Field(8, ge=1)
    archive_compression: Literal["stored", "deflated"] = "stored"

    # Single-file downloads
    download_chunk_size: int = Field(64 * 1024, ge=1024)

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    def get_data_root(self) -> Path:
        """
        Get the canonical data root.

        Returns:
            Absolute, symlink-free path of the served directory

        Raises:
            ValueError: If the data directory is missing or not a directory
        """
        path = Path(self.data_dir).expanduser()
        if not path.exists():
            raise ValueError(f"DIRSERVE_DATA_DIR doesn't exist: {self.data_dir}")
        if not path.is_dir():
            raise ValueError(f"DIRSERVE_DATA_DIR is not a directory: {self.data_dir}")
        return path.resolve()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
