"""Booking.com search through the public web UI."""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from lodging_search.core.browser import BrowserSession
from lodging_search.properties.models import ResolvedCriteria
from lodging_search.properties.normalizer import ScrapedCard
from lodging_search.selectors.booking_page import BookingSelectors as S
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

# Booking review scores are out of 10; 60 keeps everything rated 3.0/5 and above.
MIN_REVIEW_SCORE = 60


def price_filter_token(criteria: ResolvedCriteria) -> Optional[str]:
    """``nflt`` price token (nightly, per-room) for the requested budget band."""
    if criteria.budget_min is None and criteria.budget_max is None:
        return None
    low = int(criteria.budget_min or 0)
    high = "max" if criteria.budget_max is None else str(int(criteria.budget_max))
    return f"price={criteria.currency}-{low}-{high}-1"


def with_filters(url: str, tokens: list[str]) -> str:
    """Merge ``nflt`` filter tokens into a results URL, keeping existing ones."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    existing = [value for key, value in query if key == "nflt"]
    merged: list[str] = []
    for chunk in existing + tokens:
        for token in chunk.split(";"):
            if token and token not in merged:
                merged.append(token)
    query = [(key, value) for key, value in query if key != "nflt"]
    if merged:
        query.append(("nflt", ";".join(merged)))
    return urlunsplit(parts._replace(query=urlencode(query)))


class BookingComScraper(BrowserScrapeSource):
    """Scrapes Booking.com result cards; prices are quoted for the whole stay."""

    name = "booking.com"
    label = "Booking.com"
    home_url = S.home_url
    result_cards = S.result_cards
    load_more_selector = S.load_more

    async def run_search(
        self, page: Page, session: BrowserSession, criteria: ResolvedCriteria, report: Reporter
    ) -> None:
        await dismiss_banners(page, session, S.cookie_buttons)
        await click_if_present(page, S.dismiss_signin, timeout_ms=1000)

        report(f"Filling search form on {self.label}...")
        await self.fill_destination(page, session, S.destination_input, S.autocomplete_option, criteria.destination)
        await self._fill_dates(page, session, criteria)
        await self._fill_guests(page, session, criteria.guests)

        report(f"Submitting search on {self.label}...")
        if not await click_if_present(page, S.submit_button, timeout_ms=5000):
            raise SourceUnavailableError("Booking.com search button not found")
        try:
            await page.wait_for_load_state("networkidle")
        except PlaywrightError:
            logger.debug("Booking.com results never reached network idle; continuing")
        await session.random_delay(3.0, 5.0)
        await self.apply_upstream_filters(page, session, criteria)

    async def _fill_dates(self, page: Page, session: BrowserSession, criteria: ResolvedCriteria) -> None:
        day_selectors = [
            S.calendar_day.format(iso=criteria.check_in.isoformat()),
            S.calendar_day.format(iso=criteria.check_out.isoformat()),
        ]
        if not await page.locator(day_selectors[0]).first.is_visible():
            await click_if_present(page, S.date_field)
            await session.random_delay(1.0, 2.0)
        if not await self.pick_dates(page, session, day_selectors, S.calendar_next):
            logger.info("Booking.com date picker did not accept %s-%s", criteria.check_in, criteria.check_out)

    async def _fill_guests(self, page: Page, session: BrowserSession, guests: int) -> None:
        if not await click_if_present(page, S.occupancy_toggle):
            logger.info("Booking.com occupancy control missing; keeping default guests")
            return
        await session.random_delay(0.8, 1.5)
        value_selector = S.adults_input if await page.locator(S.adults_input).count() else S.adults_value
        updated = await self.set_stepper(
            page,
            session,
            value_selector=value_selector,
            increase_selector=S.adults_increase,
            decrease_selector=S.adults_decrease,
            target=guests,
        )
        if not updated:
            logger.info("Booking.com guest stepper did not reach %s adults", guests)
        await click_if_present(page, S.occupancy_done, timeout_ms=1000)

    async def apply_upstream_filters(
        self, page: Page, session: BrowserSession, criteria: ResolvedCriteria
    ) -> None:
        """Narrow the result list with the review-score checkbox and the budget band."""
        tokens: list[str] = []
        review_checkbox = S.review_filter.format(score=MIN_REVIEW_SCORE)
        if await click_if_present(page, review_checkbox, timeout_ms=1500):
            await session.random_delay(1.5, 3.0)
        else:
            tokens.append(f"review_score={MIN_REVIEW_SCORE}")
        price_token = price_filter_token(criteria)
        if price_token:
            tokens.append(price_token)
        if not tokens:
            return
        target = with_filters(page.url, tokens)
        if target == page.url:
            return
        logger.debug("Applying Booking.com filters %s", tokens)
        await page.goto(target, wait_until="domcontentloaded")
        await session.random_delay(2.0, 3.5)

    async def extract_card(self, card: Locator, criteria: ResolvedCriteria) -> ScrapedCard:
        return ScrapedCard(
            source=self.name,
            base_url=self.home_url,
            name=await text_of(card, S.card_title),
            price_text=await text_of(card, S.card_price),
            rating_text=await text_of(card, S.card_rating),
            rating_scale=10.0,
            description=await text_of(card, S.card_description),
            location=await text_of(card, S.card_location),
            amenities=await texts_of(card, S.card_amenities, limit=5),
            image_url=await attr_of(card, S.card_image, "src"),
            href=await attr_of(card, S.card_link, "href"),
            price_per_stay=True,
            nights=criteria.nights,
        )
