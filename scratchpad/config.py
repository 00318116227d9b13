"""Session configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from .env file or SCRATCHPAD_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="SCRATCHPAD_", env_file=".env", env_file_encoding="utf-8"
    )

    # Storage
    data_dir: Path = Path.home() / ".scratchpad"
    backend: str = "file"  # "file" or "mcp"
    storage_server_url: str = "http://localhost:8001"

    # Timers (seconds)
    autosave_delay: float = 2.0
    autosave_interval: float = 5.0
    search_delay: float = 0.3
    status_revert_delay: float = 2.0

    # Editor
    title_max_length: int = 50
    open_first_note: bool = True

    @property
    def notes_dir(self) -> Path:
        """Directory holding one markdown file per note."""
        return self.data_dir / "notes"

    @property
    def folders_file(self) -> Path:
        """JSON file holding the full folder list."""
        return self.data_dir / "folders.json"


settings = Settings()
