"""
KenyaTrade Insights — Shared Test Fixtures

Provides mocked versions of the grounded LLM call for deterministic, fast
unit tests. No test in this directory (outside evals/) makes a real request.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from typing import Optional
from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient, ASGITransport

# Ensure kenyatrade module is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# -----------------------------------------------------------------------------
# Environment Setup (before importing kenyatrade modules)
# -----------------------------------------------------------------------------

os.environ.setdefault("GEMINI_API_KEY", "test-gemini-key")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CORS_ORIGINS", "http://localhost:8000")


# -----------------------------------------------------------------------------
# Mock Response Classes
# -----------------------------------------------------------------------------


@dataclass
class MockLLMMessage:
    """Mock message from LLM response."""
    content: Optional[str]


@dataclass
class MockLLMChoice:
    """Mock choice from LLM response."""
    message: MockLLMMessage


@dataclass
class MockLLMUsage:
    """Mock usage stats from LLM response."""
    total_tokens: int = 100
    prompt_tokens: int = 50
    completion_tokens: int = 50


@dataclass
class MockLLMResponse:
    """Mock litellm completion response, grounding metadata in _hidden_params."""
    choices: list[MockLLMChoice]
    usage: MockLLMUsage = None
    _hidden_params: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.usage is None:
            self.usage = MockLLMUsage()


def create_mock_llm_response(content: Optional[str], grounding_chunks: Optional[list[dict]] = None) -> MockLLMResponse:
    """Create a mock LLM response with given content and grounding chunks."""
    hidden = {}
    if grounding_chunks is not None:
        hidden["vertex_ai_grounding_metadata"] = [{"groundingChunks": grounding_chunks}]
    return MockLLMResponse(
        choices=[MockLLMChoice(message=MockLLMMessage(content=content))],
        _hidden_params=hidden,
    )


def fenced(value) -> str:
    """Wrap a value in a ```json fence, the way the prompts ask for it."""
    return "```json\n" + json.dumps(value, indent=2) + "\n```"


# -----------------------------------------------------------------------------
# Mock Data Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def sample_chart_points() -> list[dict]:
    return [
        {"name": "Electronics", "value": 40},
        {"name": "Fashion", "value": 25},
        {"name": "Home & Kitchen", "value": 15},
    ]


@pytest.fixture
def sample_recommendations() -> list[dict]:
    return [
        {
            "id": "1",
            "productName": "Solar Power Banks",
            "category": "Electronics",
            "estimatedMargin": "50-70%",
            "demandLevel": "High",
            "reasoning": "Frequent outages and off-grid households keep demand steady.",
        },
        {
            "id": "2",
            "productName": "Silicone Baby Bibs",
            "category": "Baby Products",
            "estimatedMargin": "40-60%",
            "demandLevel": "Medium",
            "reasoning": "Cheap to ship and popular on Jumia.",
        },
    ]


@pytest.fixture
def sample_logistics() -> dict:
    return {
        "customsDuty": "25% of CIF value",
        "vat": "16%",
        "airFreightCost": "$8-10 per kg",
        "seaFreightCost": "$150-200 per CBM",
        "topForwarders": ["Nairobi Cargo Link", "Mombasa Freight"],
        "estimatedLandedCostText": "A $1,000 order lands at roughly $1,600.",
    }


@pytest.fixture
def sample_grounding_chunks() -> list[dict]:
    return [
        {"web": {"uri": "https://example.com/kenya-ecommerce", "title": "Kenya e-commerce report"}},
        {"retrievedContext": {"uri": "gs://bucket/doc"}},
        {"web": {"uri": "https://example.com/jumia", "title": "Jumia results"}},
    ]


# -----------------------------------------------------------------------------
# LLM Mocking Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
def mock_llm_with_text(monkeypatch):
    """
    Factory fixture to mock litellm.acompletion with one fixed answer.

    Usage:
        def test_example(mock_llm_with_text):
            mock = mock_llm_with_text("Intro " + fenced([...]), grounding_chunks=[...])
    """
    def _create_mock(text: Optional[str], grounding_chunks: Optional[list[dict]] = None):
        async def mock_acompletion(*args, **kwargs) -> MockLLMResponse:
            return create_mock_llm_response(text, grounding_chunks)

        mock = AsyncMock(side_effect=mock_acompletion)
        monkeypatch.setattr("litellm.acompletion", mock)
        return mock

    return _create_mock


@pytest.fixture
def mock_llm_sequence(monkeypatch):
    """Factory fixture: litellm.acompletion returns the given texts in order."""
    def _create_mock(*texts: str):
        responses = [create_mock_llm_response(t, []) for t in texts]
        mock = AsyncMock(side_effect=responses)
        monkeypatch.setattr("litellm.acompletion", mock)
        return mock

    return _create_mock


@pytest.fixture
def mock_llm_failure(monkeypatch):
    """Mock the grounded call to fail outright."""
    async def mock_acompletion(*args, **kwargs):
        raise Exception("429 RESOURCE_EXHAUSTED: quota exceeded")

    mock = AsyncMock(side_effect=mock_acompletion)
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


# -----------------------------------------------------------------------------
# HTTP Client Fixtures
# -----------------------------------------------------------------------------


@pytest.fixture
async def client():
    """Async HTTP client for testing FastAPI endpoints."""
    from kenyatrade.main import app
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# -----------------------------------------------------------------------------
# Dashboard State Reset Fixture
# -----------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_sessions():
    """Drop every in-memory dashboard session before and after each test."""
    from kenyatrade.dashboard import sessions
    sessions.clear()
    yield
    sessions.clear()
