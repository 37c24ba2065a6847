"""Configuration management via environment variables.

Reads from .env file (via pydantic-settings) with sensible defaults.
All values can be overridden via environment variables.

Optional:
    DEFAULT_CURRENCY     : Currency tag for parsed amounts (default USD)
    MAX_DOCUMENT_CHARS   : Ceiling applied to a document before extraction
    BATCH_MAX_WORKERS    : Thread pool size for batch analysis
    LOG_LEVEL            : Logging level for the server entry point
    PORT                 : Server port for SSE transport
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Currency attached to every parsed MonetaryValue
    default_currency: str = "USD"

    # Resource bounds (characters)
    max_document_chars: int = 25_000_000
    context_window_chars: int = 100
    raw_section_chars: int = 2_000
    section_max_chars: int = 15_000

    # Batch analysis
    batch_max_workers: int = 4

    log_level: str = "INFO"

    # Server port for SSE transport
    port: int = 8878

    # Strip whitespace and stray quotes: .env values are often pasted
    # with trailing spaces or wrapped in quotes
    @field_validator("default_currency", "log_level", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip().strip('"').strip("'").strip()
        return v

    @field_validator("default_currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


_config: Settings | None = None


def get_config() -> Settings:
    """Get or create the shared Settings singleton."""
    global _config
    if _config is None:
        _config = Settings()
    return _config
