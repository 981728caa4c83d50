"""
Backend settings.

Read from FLOWSYNC_* environment variables (or a .env file), e.g.
FLOWSYNC_PORT=9000 or FLOWSYNC_CORS_ORIGINS=http://a:1,http://b:2.

Dependencies: pydantic_settings
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_TEXT = """flowchart TD
    A((Start)) --> B[Edit the text]
    B --> C{Looks right?}
    C -->|yes| D([Done])
    C -->|no| B
"""


class Settings(BaseSettings):
    """Backend configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FLOWSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "127.0.0.1"
    port: int = 8765
    debounce_ms: int = Field(
        default=300,
        ge=0,
        description="Quiet period before graph edits are written to the text",
    )
    export_url: str = Field(
        default="http://127.0.0.1:3001/api/export",
        description="Endpoint of the external export service",
    )
    export_timeout: float = 30.0
    cors_origins: str = Field(
        default="http://localhost:5173,http://localhost:3000,http://127.0.0.1:5173",
        description="Comma-separated list of allowed origins",
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    initial_text: str = DEFAULT_TEXT

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


def get_settings() -> Settings:
    """Build settings from the current environment."""
    return Settings()
