"""Airbnb search through the public web UI."""
from __future__ import annotations

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from lodging_search.core.browser import BrowserSession
from lodging_search.properties.models import ResolvedCriteria
from lodging_search.properties.normalizer import ScrapedCard
from lodging_search.selectors.airbnb_page import AirbnbSelectors as S
from lodging_search.sources.base import Reporter, SourceUnavailableError
from lodging_search.sources.scraping.base import (
    BrowserScrapeSource,
    attr_of,
    click_if_present,
    dismiss_banners,
    text_of,
    texts_of,
)

logger = logging.getLogger(__name__)


def with_price_band(url: str, criteria: ResolvedCriteria) -> str:
    parts = urlsplit(url)
    query = [
        (key, value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
        if key not in {"price_min", "price_max"}
    ]
    if criteria.budget_min is not None:
        query.append(("price_min", str(int(criteria.budget_min))))
    if criteria.budget_max is not None:
        query.append(("price_max", str(int(criteria.budget_max))))
    return urlunsplit(parts._replace(query=urlencode(query)))


class AirbnbScraper(BrowserScrapeSource):
    """Scrapes Airbnb listing cards, following next-page links when needed."""

    name = "airbnb.com"
    label = "Airbnb"
    home_url = S.home_url
    result_cards = S.result_cards
    next_page_selector = S.next_page

    async def run_search(
        self, page: Page, session: BrowserSession, criteria: ResolvedCriteria, report: Reporter
    ) -> None:
        await dismiss_banners(page, session, S.cookie_buttons)

        report(f"Filling search form on {self.label}...")
        await self.fill_destination(page, session, S.destination_input, S.autocomplete_option, criteria.destination)

        day_selectors = [
            S.calendar_day.format(us_date=criteria.check_in.strftime("%m/%d/%Y")),
            S.calendar_day.format(us_date=criteria.check_out.strftime("%m/%d/%Y")),
        ]
        if not await page.locator(day_selectors[0]).first.is_visible():
            await click_if_present(page, S.date_field)
            await session.random_delay(0.8, 1.5)
        if not await self.pick_dates(page, session, day_selectors, S.calendar_next):
            logger.info("Airbnb date picker did not accept %s-%s", criteria.check_in, criteria.check_out)

        if await click_if_present(page, S.guests_toggle):
            await session.random_delay(0.5, 1.0)
            reached = await self.set_stepper(
                page,
                session,
                value_selector=S.adults_value,
                increase_selector=S.adults_increase,
                decrease_selector=S.adults_decrease,
                target=criteria.guests,
            )
            if not reached:
                logger.info("Airbnb guest stepper did not reach %s adults", criteria.guests)

        report(f"Submitting search on {self.label}...")
        if not await click_if_present(page, S.submit_button, timeout_ms=5000):
            raise SourceUnavailableError("Airbnb search button not found")
        try:
            await page.wait_for_load_state("networkidle")
        except PlaywrightError:
            logger.debug("Airbnb results never reached network idle; continuing")
        await session.random_delay(3.0, 5.0)

        if criteria.budget_min is not None or criteria.budget_max is not None:
            target = with_price_band(page.url, criteria)
            if target != page.url:
                await page.goto(target, wait_until="domcontentloaded")
                await session.random_delay(2.0, 3.5)

    async def extract_card(self, card: Locator, criteria: ResolvedCriteria) -> ScrapedCard:
        subtitles = await texts_of(card, S.card_description, limit=3)
        return ScrapedCard(
            source=self.name,
            base_url=self.home_url,
            name=await text_of(card, S.card_title),
            price_text=await text_of(card, S.card_price),
            rating_text=await text_of(card, S.card_rating),
            description=" · ".join(subtitles),
            location=await text_of(card, S.card_location),
            image_url=await attr_of(card, S.card_image, "src"),
            href=await attr_of(card, S.card_link, "href"),
            nights=criteria.nights,
        )
