"""
Single source of truth for all Pydantic models (analysis results, requests, view state).
JSON keys are camelCase on the wire (what the LLM is asked to emit and what the
dashboard page reads); Python attributes are snake_case.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _coerce_text_fields(data: object, fields: tuple[str, ...]) -> object:
    """Turn scalar LLM values into strings and drop anything else so defaults apply.

    Accepts both camelCase (LLM output) and snake_case keys.
    """
    if not isinstance(data, dict):
        return data
    cleaned = dict(data)
    for name in fields:
        for key in (name, to_camel(name)):
            if key not in cleaned:
                continue
            value = cleaned[key]
            if isinstance(value, (int, float, bool)):
                cleaned[key] = str(value)
            elif not isinstance(value, str):
                cleaned.pop(key)
    return cleaned


# -----------------------------------------------------------------------------
# Request Models
# -----------------------------------------------------------------------------


class RequestKind(str, Enum):
    MARKET_INSIGHTS = "market_insights"
    IMPORT_RECOMMENDATIONS = "import_recommendations"
    LOGISTICS_DETAIL = "logistics_detail"


class ImportSearchRequest(CamelModel):
    topic: Optional[str] = Field(None, max_length=200, description="Category to deep-dive; empty for a general survey")
    country: Optional[str] = Field(None, max_length=80, description="Destination country; defaults to settings.default_country")


# -----------------------------------------------------------------------------
# Analysis Models (parsed from LLM output)
# -----------------------------------------------------------------------------


class ChartPoint(CamelModel):
    name: str
    value: float = Field(allow_inf_nan=False)

    @model_validator(mode="before")
    @classmethod
    def strip_percent_sign(cls, data: object) -> object:
        """Accept "25%" as well as 25 for the value."""
        if isinstance(data, dict) and isinstance(data.get("value"), str):
            data = {**data, "value": data["value"].strip().rstrip("%").strip()}
        return data


class Source(CamelModel):
    title: str
    uri: str


class RecommendationItem(CamelModel):
    id: str = ""
    product_name: str = ""
    category: str = ""
    estimated_margin: str = ""
    demand_level: str = ""  # "High" | "Medium" | "Low", not enforced
    reasoning: str = ""

    @model_validator(mode="before")
    @classmethod
    def coerce_scalars(cls, data: object) -> object:
        return _coerce_text_fields(
            data,
            ("id", "product_name", "category", "estimated_margin", "demand_level", "reasoning"),
        )

    @computed_field(alias="isHighDemand")
    @property
    def is_high_demand(self) -> bool:
        return self.demand_level == "High"


UNKNOWN = "Unknown"
NO_LANDED_COST = "No calculation available"


class LogisticsDetails(CamelModel):
    customs_duty: str = UNKNOWN
    vat: str = UNKNOWN
    air_freight_cost: str = UNKNOWN
    sea_freight_cost: str = UNKNOWN
    top_forwarders: list[str] = []
    estimated_landed_cost_text: str = NO_LANDED_COST

    @model_validator(mode="before")
    @classmethod
    def coerce_fields(cls, data: object) -> object:
        data = _coerce_text_fields(
            data,
            ("customs_duty", "vat", "air_freight_cost", "sea_freight_cost", "estimated_landed_cost_text"),
        )
        if isinstance(data, dict):
            data = dict(data)
            for key in ("topForwarders", "top_forwarders"):
                if key not in data:
                    continue
                forwarders = data[key]
                if isinstance(forwarders, list):
                    data[key] = [str(f) for f in forwarders if f is not None]
                else:
                    data.pop(key)
        return data


class AnalysisResult(CamelModel):
    narrative: str
    chart_points: list[ChartPoint] = []
    sources: list[Source] = []
    recommendations: Optional[list[RecommendationItem]] = None


# -----------------------------------------------------------------------------
# View State Models
# -----------------------------------------------------------------------------


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class LogisticsStatus(str, Enum):
    NOT_FETCHED = "not_fetched"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


class ViewState(CamelModel):
    status: ViewStatus
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


class ImportsViewState(ViewState):
    topic: Optional[str] = None
    country: str


class LogisticsPanelState(CamelModel):
    item_id: str
    status: LogisticsStatus
    details: Optional[LogisticsDetails] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
