"""
KenyaTrade Insights — LLM Evaluation Test Fixtures

These fixtures are for prompt evaluation tests that make REAL grounded Gemini
calls. Used to check that the prompts still produce parseable answers, not for
regression testing.
"""

import os
import sys
from typing import Any

import pytest

# Ensure kenyatrade module is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))


# -----------------------------------------------------------------------------
# Environment Setup
# -----------------------------------------------------------------------------

# These tests require a real API key
# They will be skipped if GEMINI_API_KEY is not set to a real value


def is_real_api_key(key: str | None) -> bool:
    """Check if API key looks like a real key (not a test placeholder)."""
    if not key:
        return False
    if key.startswith("test-"):
        return False
    if len(key) < 20:
        return False
    return True


@pytest.fixture(scope="session")
def check_api_keys():
    """Skip eval tests if a real API key is not available."""
    if not is_real_api_key(os.environ.get("GEMINI_API_KEY", "")):
        pytest.skip("Real GEMINI_API_KEY required for evaluation tests")


# -----------------------------------------------------------------------------
# Result Caching (to avoid repeated LLM calls)
# -----------------------------------------------------------------------------


_eval_cache: dict[str, Any] = {}


def get_cached_result(cache_key: str) -> Any | None:
    """Get cached evaluation result."""
    return _eval_cache.get(cache_key)


def set_cached_result(cache_key: str, result: Any) -> None:
    """Cache evaluation result."""
    _eval_cache[cache_key] = result
