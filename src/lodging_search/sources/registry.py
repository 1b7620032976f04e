"""Select property sources from configuration."""
from __future__ import annotations

import logging
from typing import Optional

from lodging_search.config.settings import Settings
from lodging_search.sources.base import PropertySource
from lodging_search.sources.demo import DemoSource
from lodging_search.utils.throttling import HumanPacer, Pacer

logger = logging.getLogger(__name__)


def build_sources(settings: Settings, *, pacer: Optional[Pacer] = None) -> list[PropertySource]:
    """Sources in the order their results are concatenated.

    Scrapers come first, then the HTTP APIs whose keys are configured. With real search
    disabled, or nothing usable configured, the demo catalog answers instead.
    """
    if not settings.use_real_search:
        return [DemoSource(pacer=pacer or HumanPacer(scale=0.5))]

    sources: list[PropertySource] = []
    if settings.scrape_booking_enabled:
        from lodging_search.sources.scraping.booking import BookingComScraper

        sources.append(BookingComScraper(settings, pacer=pacer))
    if settings.scrape_airbnb_enabled:
        from lodging_search.sources.scraping.airbnb import AirbnbScraper

        sources.append(AirbnbScraper(settings, pacer=pacer))
    if settings.rapidapi_key:
        from lodging_search.sources.booking_api import BookingApiSource

        sources.append(BookingApiSource(settings))
    if settings.serpapi_key:
        from lodging_search.sources.google_hotels import GoogleHotelsSource

        sources.append(GoogleHotelsSource(settings))

    if not sources:
        logger.warning("Real search enabled but no source is configured; using the demo catalog")
        return [DemoSource(pacer=pacer)]
    logger.info("Configured sources: %s", ", ".join(source.label for source in sources))
    return sources
