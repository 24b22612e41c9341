"""Configuration from environment (no hardcoded credentials)."""

from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Service settings from env."""

    model_config = SettingsConfigDict(env_prefix="SNIPBIN_", extra="ignore")

    # Storage: relation files live in root_path, content files in root_path / content_dir_name
    root_path: Path = Path(".")
    content_dir_name: str = "data"
    index_file_name: str = "index.txt"
    owners_file_name: str = "owners.txt"
    passwords_file_name: str = "passwords.txt"
    # Remove content files of deleted snippets on a background thread
    async_content_removal: bool = True

    # Auth: empty = ~/.netrc
    netrc_path: str = ""

    # Highlighting assets (highlight.js, css, fonts) served under /static
    static_dir: Path = Path("static")

    # Rate limiting for create/update/delete
    rate_limit_enabled: bool = True
    write_rate_limit: str = "120/minute"

    # CORS: comma-separated string so pydantic-settings does not JSON-decode it
    cors_origins: str = "*"

    @property
    def cors_origins_list(self) -> List[str]:
        """CORS origins as a list (split on comma)."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()] or ["*"]

    # Server
    host: str = "0.0.0.0"
    port: int = 8080

    # Logging (empty log_file = stderr only; level DEBUG|INFO|WARNING|ERROR)
    log_level: str = "INFO"
    log_file: str = ""


def get_settings() -> Settings:
    """Return application settings."""
    return Settings()
