"""
KenyaTrade Insights — Central Configuration

All environment variables and LLM settings live here.
Import `settings`, `LLM_CONFIG`, `log`, and `generate_error_code` from this module.
Do not read `os.environ` anywhere else.
"""

import uuid
from datetime import datetime, timezone

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All environment variables. Loaded from .env or the host's env vars."""

    # LLM Provider
    gemini_api_key: str
    gemini_model: str = "gemini/gemini-3-flash-preview"

    # Analysis defaults
    default_country: str = "Kenya"

    # App
    environment: str = "development"  # "development" | "production"
    cors_origins: str = "http://localhost:8000"  # Comma-separated for multiple origins

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


# Singleton, import this everywhere
settings = Settings()


# ──────────────────────────────────────────────────────
# Logging Utilities (structured print)
# ──────────────────────────────────────────────────────

def generate_error_code() -> str:
    """Generate a short, user-friendly error reference code.

    Format: 'KT-' followed by 6 uppercase hex characters.
    Example: 'KT-3F8A2C'

    The same code is logged on the backend AND returned to the browser in the
    failed view state, so a user can quote it and it can be grepped in logs.
    """
    return f"KT-{uuid.uuid4().hex[:6].upper()}"


def log(level: str, message: str, **context) -> None:
    """Structured print-based logger.

    Every log line follows the format:
        [ISO_TIMESTAMP] [LEVEL] message | key1=value1 key2=value2

    Args:
        level: One of "INFO", "WARN", "ERROR".
        message: Human-readable description of what happened.
        **context: Arbitrary key-value pairs. Include request_id when available.

    Usage:
        log("INFO", "analysis started", operation="market_insights", country="Kenya")
        log("ERROR", "llm call failed", model="gemini/gemini-3-flash-preview",
            error_code="KT-3F8A2C", error=str(e))
    """
    ts = datetime.now(timezone.utc).isoformat()
    ctx = " ".join(f"{k}={v}" for k, v in context.items())
    print(f"[{ts}] [{level}] {message} | {ctx}", flush=True)


# ──────────────────────────────────────────────────────
# LLM Configuration
# ──────────────────────────────────────────────────────

# Only the search tool is enabled. No response_format: the answer must carry a
# narrative as well as the fenced JSON block.
LLM_CONFIG = {
    "model": settings.gemini_model,
    "search_tool": {"googleSearch": {}},
}
