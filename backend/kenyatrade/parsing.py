"""
KenyaTrade Insights — LLM Response Parsing

Best-effort extraction of a JSON payload embedded in free-text model output.
The model is asked for a narrative followed by a ```json fenced block, but it
may emit bare JSON or none at all, so extraction walks an ordered chain of
strategies and returns the first value that parses:

    fenced    ```json ... ``` block
    braces    first '{' to last '}'
    brackets  first '[' to last ']'

Nothing beyond these three strategies is attempted; unparsable output is
"no structured data", never an error.
"""

import json
import re
from typing import Any, Callable

from kenyatrade.config import log

_FENCED_JSON_RE = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL)
_FENCED_BLOCK_RE = re.compile(r"```json.*?```", re.DOTALL)


def _fenced(text: str) -> str | None:
    match = _FENCED_JSON_RE.search(text)
    return match.group(1) if match else None


def _span(open_char: str, close_char: str) -> Callable[[str], str | None]:
    def locate(text: str) -> str | None:
        start = text.find(open_char)
        end = text.rfind(close_char)
        if start == -1 or end == -1 or end < start:
            return None
        return text[start : end + 1]

    return locate


def _reject_constant(token: str) -> Any:
    # NaN and Infinity are not JSON; treat them as unparsable.
    raise ValueError(f"non-JSON constant {token}")


# Ordered: each strategy runs only if the previous ones found nothing parsable.
STRATEGIES: tuple[tuple[str, Callable[[str], str | None]], ...] = (
    ("fenced", _fenced),
    ("braces", _span("{", "}")),
    ("brackets", _span("[", "]")),
)


def extract_json_tagged(raw_text: str | None) -> tuple[str | None, Any]:
    """
    Run the extraction chain and report which strategy succeeded.

    Returns:
        (strategy_tag, value) on success, (None, None) if nothing parsed.
    """
    if not raw_text or not isinstance(raw_text, str):
        return None, None

    for tag, locate in STRATEGIES:
        candidate = locate(raw_text)
        if candidate is None:
            continue
        try:
            return tag, json.loads(candidate, parse_constant=_reject_constant)
        except ValueError as e:
            log("WARN", "json extraction strategy failed", strategy=tag, error=str(e)[:200])

    return None, None


def extract_json(raw_text: str | None) -> Any:
    """
    Extract the JSON value embedded in LLM output.

    Returns the parsed value (object, array or scalar), or None when no
    strategy yields valid JSON. Never raises.
    """
    _, value = extract_json_tagged(raw_text)
    return value


def strip_json_fence(text: str) -> str:
    """
    Remove ```json ... ``` blocks from narrative text for display.

    Only fenced blocks are removed; braces or brackets in plain prose are left
    alone. Text without a fence comes back unchanged apart from trimming.
    """
    if not text or not isinstance(text, str):
        return text
    return _FENCED_BLOCK_RE.sub("", text).strip()


def as_list(value: Any) -> list:
    """A parsed value that is not an array counts as no data."""
    return value if isinstance(value, list) else []


def as_object(value: Any) -> dict | None:
    """A parsed value that is not an object counts as no data."""
    return value if isinstance(value, dict) else None
