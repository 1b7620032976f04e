from __future__ import annotations

import json
from datetime import date

from fastapi.testclient import TestClient

from lodging_search.api.app import create_app
from lodging_search.config.settings import Settings
from lodging_search.pipeline.orchestrator import SearchOrchestrator
from lodging_search.ranking.evaluator import Evaluator
from lodging_search.sources.demo import DemoSource
from lodging_search.utils.throttling import NoPacing


def _settings() -> Settings:
    return Settings(openai_api_key=None, anthropic_api_key=None, use_real_search=False, _env_file=None)


def _demo_orchestrator(settings: Settings) -> SearchOrchestrator:
    return SearchOrchestrator(
        settings,
        sources=[DemoSource(pacer=NoPacing())],
        evaluator=Evaluator(settings, pacer=NoPacing()),
        today=lambda: date(2025, 5, 1),
    )


def _client() -> TestClient:
    return TestClient(create_app(_settings(), orchestrator_factory=_demo_orchestrator))


def _events(body: str) -> list[dict]:
    frames = [frame for frame in body.split("\n\n") if frame.strip()]
    assert all(frame.startswith("data: ") for frame in frames)
    return [json.loads(frame[len("data: "):]) for frame in frames]


def test_search_streams_progress_results_and_complete() -> None:
    response = _client().post(
        "/api/search-accommodations",
        json={"destination": "Paris", "budget": {"max": 200}, "guests": 2, "checkIn": "2025-06-01"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    events = _events(response.text)
    types = [event["type"] for event in events]
    assert types[0] == "progress"
    assert types[-2:] == ["results", "complete"]
    assert types.count("complete") == 1
    results = events[-2]
    assert [item["name"] for item in results["accommodations"]] == [
        "Modern Apartment near Louvre",
        "Le Marais Boutique Stay",
    ]
    assert results["accommodations"][0]["id"] == "property-1"
    assert results["searchCriteria"]["checkIn"] == "2025-06-01"
    assert results["searchCriteria"]["checkOut"] == "2025-06-04"


def test_search_rejects_invalid_criteria_before_streaming() -> None:
    response = _client().post("/api/search-accommodations", json={"destination": "  "})

    assert response.status_code == 422


def test_health_reports_mode() -> None:
    response = _client().get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "mode": "demo", "llm": False}
