"""Application configuration helpers."""

import logging
import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_SUGGESTIONS_URL = "https://oapaiqtgkr6wfbum252tswprwa0ausnb.lambda-url.eu-central-1.on.aws"


class ConfigError(RuntimeError):
    """Raised when a configuration value cannot be parsed."""


@dataclass(frozen=True)
class Settings:
    suggestions_url: str
    suggestions_timeout_seconds: float = 10.0
    debounce_ms: int = 300
    min_query_length: int = 3
    cache_size: int = 128
    server_port: int = 8080
    max_open_forms: int = 256

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0


def _get_number(name: str, default: str, cast, minimum=0):
    raw = os.getenv(name, default)
    try:
        value = cast(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be numeric, got {raw!r}") from exc
    if value < minimum:
        raise ConfigError(f"{name} must be at least {minimum}, got {raw!r}")
    return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from environment variables with sensible defaults."""
    load_dotenv()

    suggestions_url = os.getenv("SUGGESTIONS_URL", DEFAULT_SUGGESTIONS_URL).strip()
    timeout = _get_number("SUGGESTIONS_TIMEOUT_SECONDS", "10", float)
    debounce_ms = _get_number("AUTOCOMPLETE_DEBOUNCE_MS", "300", int)
    min_query_length = _get_number("AUTOCOMPLETE_MIN_QUERY_LENGTH", "3", int, minimum=1)
    cache_size = _get_number("SUGGESTIONS_CACHE_SIZE", "128", int, minimum=1)
    server_port = _get_number("FORM_SERVER_PORT", os.getenv("PORT") or "8080", int)
    max_open_forms = _get_number("FORM_SERVER_MAX_FORMS", "256", int, minimum=1)

    if not suggestions_url:
        logger.warning("SUGGESTIONS_URL is empty; every location lookup will fail as an invalid query.")

    return Settings(
        suggestions_url=suggestions_url,
        suggestions_timeout_seconds=timeout,
        debounce_ms=debounce_ms,
        min_query_length=min_query_length,
        cache_size=cache_size,
        server_port=server_port,
        max_open_forms=max_open_forms,
    )
