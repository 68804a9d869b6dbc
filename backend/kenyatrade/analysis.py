"""
KenyaTrade Insights — Analysis Client

The three operations the dashboard calls. Each one builds a prompt, makes one
grounded LLM call, parses the hybrid text + JSON answer and returns a typed
result. Any failure is re-raised as AnalysisFetchError with a fixed,
operation-specific message; there are no partial results.
"""

import time

from pydantic import ValidationError

from kenyatrade import llm, prompts
from kenyatrade.config import generate_error_code, log, settings
from kenyatrade.models import (
    AnalysisResult,
    ChartPoint,
    LogisticsDetails,
    RecommendationItem,
    RequestKind,
    Source,
)
from kenyatrade.parsing import as_list, as_object, extract_json_tagged, strip_json_fence

NO_INSIGHTS_TEXT = "No response generated."
NO_RECOMMENDATIONS_TEXT = "No recommendations generated."
NO_LOGISTICS_TEXT = "No logistics data generated."

MARKET_INSIGHTS_FAILED = "Failed to fetch market insights."
RECOMMENDATIONS_FAILED = "Failed to fetch recommendations."
LOGISTICS_FAILED = "Failed to fetch logistics details."
LOGISTICS_MISSING = "No structured logistics data returned."


# ─────────────────────────────────────────────────────────────────────────────
# Custom Exceptions
# ─────────────────────────────────────────────────────────────────────────────


class AnalysisFetchError(Exception):
    """An analysis operation failed. The message is safe to show to users."""

    def __init__(self, message: str, error_code: str | None = None):
        self.message = message
        self.error_code = error_code or generate_error_code()
        super().__init__(message)


class LogisticsDataError(AnalysisFetchError):
    """The logistics answer contained no JSON object."""


# ─────────────────────────────────────────────────────────────────────────────
# Operations
# ─────────────────────────────────────────────────────────────────────────────


async def get_market_insights(country: str | None = None, request_id: str | None = None) -> AnalysisResult:
    """
    Market overview: narrative summary + top-category market share chart.

    Raises:
        AnalysisFetchError: On any failure of the underlying call.
    """
    country = country or settings.default_country
    kind = RequestKind.MARKET_INSIGHTS
    start = time.perf_counter()
    log("INFO", "analysis started", operation=kind.value, country=country, request_id=request_id)

    try:
        prompt = prompts.build_market_insights_prompt(country)
        response = await llm.generate_grounded_content(prompt, use_search=True, request_id=request_id)
        text = response.text or NO_INSIGHTS_TEXT

        tag, parsed = extract_json_tagged(text)
        chart_points = _coerce_items(as_list(parsed), ChartPoint, kind)
        result = AnalysisResult(
            narrative=strip_json_fence(text),
            chart_points=chart_points,
            sources=map_grounding_sources(response.grounding_chunks),
        )
    except Exception as e:
        raise _fetch_failed(e, kind, MARKET_INSIGHTS_FAILED, request_id) from e

    log(
        "INFO",
        "analysis completed",
        operation=kind.value,
        request_id=request_id,
        strategy=tag,
        chart_points=len(result.chart_points),
        sources=len(result.sources),
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return result


async def get_import_recommendations(
    topic: str | None = None,
    country: str | None = None,
    request_id: str | None = None,
) -> AnalysisResult:
    """
    Import opportunities for a destination country.

    With no topic this is a general survey; with a topic it is a deep-dive on
    that category. The output schema is the same either way.

    Raises:
        AnalysisFetchError: On any failure of the underlying call.
    """
    country = country or settings.default_country
    kind = RequestKind.IMPORT_RECOMMENDATIONS
    start = time.perf_counter()
    log(
        "INFO",
        "analysis started",
        operation=kind.value,
        country=country,
        topic=(topic or "")[:50],
        request_id=request_id,
    )

    try:
        prompt = prompts.build_recommendations_prompt(topic, country)
        response = await llm.generate_grounded_content(prompt, use_search=True, request_id=request_id)
        text = response.text or NO_RECOMMENDATIONS_TEXT

        tag, parsed = extract_json_tagged(text)
        raw_items = as_list(parsed)
        # Cards are keyed by id; fall back to the item's position when the model omits it.
        for position, item in enumerate(raw_items, start=1):
            if isinstance(item, dict) and item.get("id") in (None, ""):
                item["id"] = str(position)
        recommendations = _coerce_items(raw_items, RecommendationItem, kind)

        result = AnalysisResult(
            narrative=strip_json_fence(text),
            chart_points=[],
            sources=map_grounding_sources(response.grounding_chunks),
            recommendations=recommendations,
        )
    except Exception as e:
        raise _fetch_failed(e, kind, RECOMMENDATIONS_FAILED, request_id) from e

    log(
        "INFO",
        "analysis completed",
        operation=kind.value,
        request_id=request_id,
        strategy=tag,
        recommendations=len(recommendations),
        sources=len(result.sources),
        duration_ms=int((time.perf_counter() - start) * 1000),
    )
    return result


async def get_logistics_details(
    product_name: str,
    category: str,
    country: str,
    request_id: str | None = None,
) -> LogisticsDetails:
    """
    Duty, VAT, freight rates, forwarders and landed cost for one product.

    Unlike the other operations a narrative-only answer is not acceptable:
    if no JSON object can be extracted this raises LogisticsDataError.
    Individual missing fields get placeholder defaults instead.

    Raises:
        LogisticsDataError: The answer contained no JSON object.
        AnalysisFetchError: On any other failure.
    """
    kind = RequestKind.LOGISTICS_DETAIL
    log(
        "INFO",
        "analysis started",
        operation=kind.value,
        product=product_name[:50],
        country=country,
        request_id=request_id,
    )

    try:
        prompt = prompts.build_logistics_prompt(product_name, category, country)
        response = await llm.generate_grounded_content(prompt, use_search=True, request_id=request_id)
        text = response.text or NO_LOGISTICS_TEXT

        tag, parsed = extract_json_tagged(text)
        data = as_object(parsed)
        if data is None:
            code = generate_error_code()
            log(
                "ERROR",
                "logistics answer had no json object",
                request_id=request_id,
                product=product_name[:50],
                strategy=tag,
                raw_output=text[:300],
                error_code=code,
            )
            raise LogisticsDataError(LOGISTICS_MISSING, error_code=code)
        details = LogisticsDetails.model_validate(data)
    except LogisticsDataError:
        raise
    except Exception as e:
        raise _fetch_failed(e, kind, LOGISTICS_FAILED, request_id) from e

    log("INFO", "analysis completed", operation=kind.value, request_id=request_id, strategy=tag)
    return details


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions
# ─────────────────────────────────────────────────────────────────────────────


def map_grounding_sources(chunks: list[dict] | None) -> list[Source]:
    """
    Map grounding chunks to (title, uri) sources.

    Chunks without a web reference are dropped. A web reference missing its
    uri is kept with an empty uri. Order is preserved and no de-duplication
    is done.
    """
    sources: list[Source] = []
    for chunk in chunks or []:
        web = chunk.get("web") if isinstance(chunk, dict) else None
        if not isinstance(web, dict):
            continue
        uri = web.get("uri") or ""
        sources.append(Source(title=web.get("title") or uri, uri=uri))
    return sources


def _coerce_items(items: list, model: type, kind: RequestKind) -> list:
    """Validate each array element, dropping the ones that do not fit."""
    coerced = []
    for item in items:
        try:
            coerced.append(model.model_validate(item))
        except ValidationError as e:
            log(
                "WARN",
                "dropping malformed item",
                operation=kind.value,
                schema=model.__name__,
                validation_error=str(e)[:200],
            )
    return coerced


def _fetch_failed(error: Exception, kind: RequestKind, message: str, request_id: str | None) -> AnalysisFetchError:
    code = getattr(error, "error_code", None) or generate_error_code()
    log(
        "ERROR",
        "analysis failed",
        operation=kind.value,
        request_id=request_id,
        error=str(error),
        error_code=code,
    )
    return AnalysisFetchError(message, error_code=code)
