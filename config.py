"""
config.py — Central configuration for the deck pipeline.
Loads settings from environment variables / .env file.
"""

from datetime import date
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field

# ── Date Awareness ────────────────────────────────────────────
# Computed once at import time so every stage shares the same date context.
CURRENT_DATE_STR = date.today().strftime("%B %d, %Y")


# ── Project Paths ──────────────────────────────────────────────
ROOT_DIR = Path(__file__).resolve().parent
DATA_DIR = ROOT_DIR / "data"
OUTPUT_DIR = DATA_DIR / "output"
LOG_DIR = DATA_DIR / "logs"

for _dir in (OUTPUT_DIR, LOG_DIR):
    _dir.mkdir(parents=True, exist_ok=True)


# ── Pipeline Bounds ───────────────────────────────────────────
SLIDE_COUNT_MIN = 3
SLIDE_COUNT_MAX = 15
DEFAULT_SLIDE_COUNT = 10


# ── Application Settings ──────────────────────────────────────
class Settings(BaseSettings):
    """Typed application settings — loaded from env vars / .env file."""

    # --- Model provider (direct path) ---
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Google Gemini API key. Without it every model call returns None.",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for every pipeline stage",
    )

    # --- Accelerated proxy (primary path) ---
    portkey_api_key: Optional[str] = Field(
        default=None,
        description="Portkey gateway key; enables caching + retries when format-valid",
    )
    portkey_base_url: str = Field(default="https://api.portkey.ai/v1")
    portkey_provider: str = Field(
        default="google",
        description="Provider slug the proxy forwards to",
    )
    portkey_retry_attempts: int = Field(
        default=3, ge=0, le=5,
        description="Retry count the proxy applies on its side",
    )

    # --- LLM Behaviour ---
    llm_temperature: float = Field(
        default=0.7, ge=0.0, le=2.0,
        description="Default sampling temperature",
    )
    llm_timeout_seconds: float = Field(
        default=70.0, gt=0,
        description="Transport timeout for a single model call",
    )
    llm_max_retries: int = Field(
        default=2, ge=1,
        description="Attempts on transient proxy transport failures",
    )
    llm_retry_wait_seconds: float = Field(
        default=1.0, ge=0,
        description="Base wait between proxy retries (exponential backoff)",
    )

    # --- Stage behaviour ---
    chat_history_window: int = Field(
        default=20, ge=1,
        description="Chat messages forwarded to the blueprint refiner",
    )
    content_concurrency: int = Field(
        default=4, ge=1,
        description="Max concurrent per-slide content calls",
    )

    # --- Request layer ---
    rate_limit_requests: int = Field(default=10, ge=1, description="Requests per window per client")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    hypertune_api_key: Optional[str] = Field(
        default=None,
        description="Remote flag service token; the local variant selector is used regardless",
    )

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Console sink level; the file sink always takes DEBUG")
    log_to_file: bool = Field(default=True, description="Write the rotating log file under LOG_DIR")

    model_config = {
        "env_file": str(ROOT_DIR / ".env"),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    @property
    def has_provider(self) -> bool:
        return bool(self.gemini_api_key)


def get_settings() -> Settings:
    """Factory that loads and returns validated settings."""
    return Settings()


def clamp_slide_count(value: object) -> int:
    """Clamp a caller-supplied slide count into [3, 15]; junk becomes the default."""
    try:
        count = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        count = DEFAULT_SLIDE_COUNT
    except OverflowError:
        # float("inf") and friends
        count = SLIDE_COUNT_MAX if value > 0 else SLIDE_COUNT_MIN  # type: ignore[operator]
    return max(SLIDE_COUNT_MIN, min(SLIDE_COUNT_MAX, count))
