from __future__ import annotations

import asyncio
from datetime import date

import pytest

from lodging_search.config.settings import Settings
from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria
from lodging_search.sources import (
    DemoSource,
    PropertySource,
    SourceUnavailableError,
    build_sources,
    degradation_message,
)
from lodging_search.sources.demo import DEMO_CATALOG, listings_for
from lodging_search.sources.scraping.booking import BookingComScraper
from lodging_search.utils.throttling import NoPacing


def _criteria(destination: str = "Paris") -> ResolvedCriteria:
    return ResolvedCriteria(
        destination=destination,
        check_in=date(2025, 6, 1),
        check_out=date(2025, 6, 4),
        guests=2,
    )


def _settings(**overrides: object) -> Settings:
    base: dict[str, object] = {
        "use_real_search": True,
        "scrape_booking_enabled": False,
        "scrape_airbnb_enabled": False,
        "rapidapi_key": None,
        "serpapi_key": None,
        "_env_file": None,
    }
    base.update(overrides)
    return Settings(**base)


@pytest.mark.parametrize(
    ("destination", "first_name"),
    [
        ("Paris", "Hotel de Crillon"),
        ("paris, france", "Hotel de Crillon"),
        ("New York", "The Plaza Hotel"),
        ("york", "The Plaza Hotel"),
        ("Reykjavik", "Grand Central Hotel"),
        ("", "Grand Central Hotel"),
    ],
)
def test_listings_for_matches_by_containment(destination: str, first_name: str) -> None:
    assert listings_for(destination)[0].name == first_name


def test_demo_catalog_entries_are_valid() -> None:
    for listings in DEMO_CATALOG.values():
        assert all(prop.is_valid and prop.source == "demo" for prop in listings)


@pytest.mark.asyncio
async def test_demo_source_reports_progress() -> None:
    messages: list[str] = []

    results = await DemoSource(pacer=NoPacing()).search(_criteria("Tokyo"), messages.append)

    assert [prop.name for prop in results] == ["Park Hyatt Tokyo", "Traditional Ryokan Experience"]
    assert messages == [
        "Starting accommodation search (demo mode)...",
        "Searching Booking.com...",
        "Searching Airbnb...",
        "Searching Hotels.com...",
    ]


def test_build_sources_demo_when_real_search_disabled() -> None:
    sources = build_sources(_settings(use_real_search=False, serpapi_key="abc"))

    assert [source.name for source in sources] == ["demo"]


def test_build_sources_falls_back_to_demo_without_configured_sources() -> None:
    sources = build_sources(_settings())

    assert [source.name for source in sources] == ["demo"]


def test_build_sources_orders_scrapers_before_apis() -> None:
    sources = build_sources(
        _settings(scrape_booking_enabled=True, scrape_airbnb_enabled=True, rapidapi_key="r", serpapi_key="s"),
        pacer=NoPacing(),
    )

    assert [source.label for source in sources] == [
        "Booking.com",
        "Airbnb",
        "Booking.com API",
        "Google Hotels",
    ]


class _ScriptedSource(PropertySource):
    name = "scripted"
    label = "Scripted"
    timeout_s = 0.05

    def __init__(self, outcome: object) -> None:
        self.outcome = outcome

    async def fetch(self, criteria, report):
        if self.outcome == "hang":
            await asyncio.sleep(1)
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return self.outcome


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "outcome",
    ["hang", SourceUnavailableError("503"), KeyError("price")],
)
async def test_search_turns_failures_into_one_degradation_notice(outcome: object) -> None:
    messages: list[str] = []

    results = await _ScriptedSource(outcome).search(_criteria(), messages.append)

    assert results == []
    assert messages == [degradation_message("Scripted")]
    assert messages[0] == "Scripted search encountered issues, continuing with available results..."


@pytest.mark.asyncio
async def test_search_drops_invalid_records() -> None:
    records = [
        NormalizedProperty(name="Kept", price=100, source="scripted"),
        NormalizedProperty(name="  ", price=100, source="scripted"),
        NormalizedProperty(name="Free", price=0, source="scripted"),
    ]

    results = await _ScriptedSource(records).search(_criteria())

    assert [prop.name for prop in results] == ["Kept"]


class _BrokenSession:
    async def __aenter__(self):
        raise RuntimeError("chromium missing")

    async def __aexit__(self, *_exc: object) -> None:
        return None


@pytest.mark.asyncio
async def test_scraper_failure_degrades_instead_of_raising() -> None:
    scraper = BookingComScraper(_settings(), session_factory=_BrokenSession)
    messages: list[str] = []

    results = await scraper.search(_criteria(), messages.append)

    assert results == []
    assert messages == ["Navigating to Booking.com...", degradation_message("Booking.com")]
