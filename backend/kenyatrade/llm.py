"""
KenyaTrade Insights — LLM Interactions

One grounded Gemini call via litellm: prompt in, generated text plus Google
Search grounding chunks out. Single attempt, no fallback chain, no retries.
"""

import time
import warnings
from dataclasses import dataclass, field

import litellm

from kenyatrade.config import LLM_CONFIG, generate_error_code, log, settings

# ── Suppress noisy litellm warnings ──────────────────────────────────────────
# litellm internally creates VertexLLM coroutines that sometimes go un-awaited
# when the gemini/ prefix routes through a code path that raises before awaiting.
warnings.filterwarnings(
    "ignore",
    message="coroutine 'VertexLLM.async_completion' was never awaited",
)
litellm.suppress_debug_info = True


# ─────────────────────────────────────────────────────────────────────────────
# Types & Exceptions
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class GroundedResponse:
    text: str
    grounding_chunks: list[dict] = field(default_factory=list)


class LLMError(Exception):
    """The grounded generation call failed."""

    def __init__(self, message: str, error_code: str | None = None):
        self.error_code = error_code
        super().__init__(message)


# ─────────────────────────────────────────────────────────────────────────────
# Core Functions
# ─────────────────────────────────────────────────────────────────────────────


async def generate_grounded_content(
    prompt: str,
    *,
    use_search: bool = True,
    request_id: str | None = None,
) -> GroundedResponse:
    """
    Call Gemini once with the prompt and (optionally) Google Search grounding.

    No generation options are set beyond the search tool. In particular the
    response is not constrained to JSON, since a narrative is required too.

    Args:
        prompt: The full prompt string (sent as a single user message).
        use_search: Enable the googleSearch tool.
        request_id: Optional ID for logging correlation.

    Returns:
        GroundedResponse with the raw text ("" if the model returned none)
        and the first candidate's grounding chunks ([] if absent).

    Raises:
        LLMError: On any failure of the underlying call.
    """
    model = LLM_CONFIG["model"]
    completion_kwargs = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "api_key": settings.gemini_api_key,
    }
    if use_search:
        completion_kwargs["tools"] = [LLM_CONFIG["search_tool"]]

    log(
        "INFO",
        "llm call started",
        request_id=request_id,
        model=model,
        use_search=use_search,
        prompt_length=len(prompt),
    )
    start = time.perf_counter()

    try:
        response = await litellm.acompletion(**completion_kwargs)
        text = _extract_text(response)
        chunks = _extract_grounding_chunks(response)
    except Exception as e:
        code = generate_error_code()
        log(
            "ERROR",
            "llm call failed",
            request_id=request_id,
            model=model,
            error=str(e),
            error_code=code,
        )
        raise LLMError(f"Grounded generation failed: {e}", error_code=code) from e

    duration_ms = int((time.perf_counter() - start) * 1000)
    tokens_used = None
    if hasattr(response, "usage") and response.usage:
        tokens_used = getattr(response.usage, "total_tokens", None)

    log(
        "INFO",
        "llm call succeeded",
        request_id=request_id,
        model=model,
        duration_ms=duration_ms,
        tokens_used=tokens_used,
        output_length=len(text),
        grounding_chunks=len(chunks),
    )
    return GroundedResponse(text=text, grounding_chunks=chunks)


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────


def _extract_text(response) -> str:
    """Return the first choice's content, or "" when there is none."""
    if not getattr(response, "choices", None):
        return ""
    msg = response.choices[0].message
    return getattr(msg, "content", None) or ""


def _extract_grounding_chunks(response) -> list[dict]:
    """
    Return groundingChunks from the first candidate's grounding metadata.

    litellm exposes Gemini grounding metadata as a list (one entry per
    candidate), either as `vertex_ai_grounding_metadata` on the response or
    under the same key in `_hidden_params`, depending on the version.
    """
    metadata = getattr(response, "vertex_ai_grounding_metadata", None)
    if not metadata:
        hidden = getattr(response, "_hidden_params", None) or {}
        metadata = hidden.get("vertex_ai_grounding_metadata")
    if not metadata:
        return []

    first = metadata[0] if isinstance(metadata, list) else metadata
    if not isinstance(first, dict):
        return []
    chunks = first.get("groundingChunks") or []
    return [c for c in chunks if isinstance(c, dict)]
