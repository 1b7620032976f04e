from __future__ import annotations

from datetime import date

import httpx
import pytest

from lodging_search.config.settings import Settings
from lodging_search.properties.models import Budget, ResolvedCriteria
from lodging_search.sources.google_hotels import GoogleHotelsSource, build_query_params, mentions


def _settings(**overrides: object) -> Settings:
    base: dict[str, object] = {"serpapi_key": "serp-key", "_env_file": None}
    base.update(overrides)
    return Settings(**base)


def _criteria(**overrides: object) -> ResolvedCriteria:
    base: dict[str, object] = {
        "destination": "Lisbon",
        "check_in": date(2025, 9, 10),
        "check_out": date(2025, 9, 14),
        "guests": 2,
    }
    base.update(overrides)
    return ResolvedCriteria(**base)


async def _no_sleep(_seconds: float) -> None:
    return None


def test_query_params_for_plain_hotel_search() -> None:
    params = build_query_params(_criteria(), _settings())

    assert params == {
        "engine": "google_hotels",
        "q": "Lisbon hotels",
        "check_in_date": "2025-09-10",
        "check_out_date": "2025-09-14",
        "adults": "2",
        "currency": "USD",
        "gl": "us",
        "hl": "en",
    }


def test_query_params_push_down_budget_and_rating_tiers() -> None:
    business = build_query_params(
        _criteria(budget=Budget(min=80, max=199.5), trip_purpose="Business trip"), _settings()
    )
    assert business["min_price"] == "80"
    assert business["max_price"] == "200"
    assert business["rating"] == "8"

    romantic = build_query_params(_criteria(additional_requests=("honeymoon suite",)), _settings())
    assert romantic["rating"] == "9"

    assert "rating" not in build_query_params(_criteria(trip_purpose="family holiday"), _settings())


def test_query_params_for_vacation_rentals() -> None:
    params = build_query_params(
        _criteria(guests=5, property_type="Apartment", flexible_cancellation=True), _settings()
    )

    assert params["q"] == "Lisbon vacation rentals"
    assert params["vacation_rentals"] == "true"
    assert params["bedrooms"] == "3"
    assert params["property_types"] == "1"
    assert params["free_cancellation"] == "true"


def test_query_params_for_hotel_styles() -> None:
    params = build_query_params(_criteria(property_type="boutique hotel"), _settings())

    assert "vacation_rentals" not in params
    assert params["property_types"] == "13"


@pytest.mark.asyncio
async def test_search_sends_key_and_maps_properties() -> None:
    seen: list[httpx.Request] = []
    payload = {
        "properties": [
            {
                "name": "Memmo Alfama",
                "rate_per_night": {"extracted_lowest": 210},
                "overall_rating": 4.7,
                "thumbnail": "https://img/memmo.jpg",
            },
            {"name": "No Rate Hostel"},
            "garbage",
        ]
    }

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=payload)

    source = GoogleHotelsSource(_settings(), transport=httpx.MockTransport(handler), sleep=_no_sleep)

    properties = await source.search(_criteria())

    assert [prop.name for prop in properties] == ["Memmo Alfama"]
    assert properties[0].image_url == "https://img/memmo.jpg"
    assert properties[0].source == "google_hotels"
    assert seen[0].url.params["api_key"] == "serp-key"
    assert seen[0].url.params["engine"] == "google_hotels"


@pytest.mark.asyncio
async def test_search_error_payload_degrades() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": "Invalid API key"})

    source = GoogleHotelsSource(_settings(), transport=httpx.MockTransport(handler), sleep=_no_sleep)
    messages: list[str] = []

    assert await source.search(_criteria(), messages.append) == []
    assert messages[-1].startswith("Google Hotels search encountered issues")


@pytest.mark.parametrize(
    ("text", "keyword", "expected"),
    [
        ("network access needed", "work", False),
        ("quiet space to relax", "spa", False),
        ("cozy guesthouse", "house", False),
        ("work trip", "work", True),
        ("two villas", "villa", True),
        ("a b&b near the port", "b&b", True),
    ],
)
def test_mentions_matches_whole_words(text: str, keyword: str, expected: bool) -> None:
    assert mentions(text, keyword) is expected


def test_keywords_inside_other_words_do_not_change_the_query() -> None:
    params = build_query_params(
        _criteria(
            property_type="guesthouse",
            additional_requests=("good network coverage", "open space"),
        ),
        _settings(),
    )

    assert "rating" not in params
    assert "vacation_rentals" not in params
    assert "property_types" not in params
    assert params["q"] == "Lisbon hotels"
