"""Shared browser-automation flow for site-specific scrapers."""
from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Callable, Optional, Sequence

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Locator, Page

from lodging_search.config.settings import Settings
from lodging_search.core.browser import BrowserSession
from lodging_search.properties.models import NormalizedProperty, ResolvedCriteria
from lodging_search.properties.normalizer import ScrapedCard, clean_text, from_scraped_card
from lodging_search.sources.base import PropertySource, Reporter, SourceUnavailableError
from lodging_search.utils.throttling import Pacer

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], BrowserSession]

FIELD_TIMEOUT_MS = 1500


async def text_of(scope: Locator | Page, selector: str) -> str:
    """Text of the first match, or ``""`` when the element is missing."""
    try:
        target = scope.locator(selector).first
        if await target.count() == 0:
            return ""
        return clean_text(await target.text_content(timeout=FIELD_TIMEOUT_MS))
    except PlaywrightError:
        return ""


async def texts_of(scope: Locator | Page, selector: str, *, limit: int = 8) -> list[str]:
    try:
        items = scope.locator(selector)
        count = min(await items.count(), limit)
        texts = []
        for index in range(count):
            text = clean_text(await items.nth(index).text_content(timeout=FIELD_TIMEOUT_MS))
            if text:
                texts.append(text)
        return texts
    except PlaywrightError:
        return []


async def attr_of(scope: Locator | Page, selector: str, attribute: str) -> Optional[str]:
    try:
        target = scope.locator(selector).first
        if await target.count() == 0:
            return None
        return await target.get_attribute(attribute, timeout=FIELD_TIMEOUT_MS)
    except PlaywrightError:
        return None


class BrowserScrapeSource(PropertySource):
    """Drives a site's search UI in a dedicated browser session.

    Subclasses supply the site flow (:meth:`run_search`) and the per-card field
    extraction (:meth:`extract_card`); this class owns the session lifecycle, result
    loading (load-more buttons, infinite scroll, next-page links) and the mapping into
    :class:`NormalizedProperty`.
    """

    home_url: str = ""
    result_cards: str = ""
    load_more_selector: Optional[str] = None
    next_page_selector: Optional[str] = None
    max_pages: int = 3
    max_scrolls: int = 6

    def __init__(
        self,
        settings: Settings,
        *,
        session_factory: Optional[SessionFactory] = None,
        pacer: Optional[Pacer] = None,
    ) -> None:
        self.settings = settings
        self.timeout_s = settings.scrape_timeout_s
        self.max_results = settings.max_properties_per_source
        self._session_factory = session_factory or (lambda: BrowserSession(settings, pacer=pacer))

    async def fetch(self, criteria: ResolvedCriteria, report: Reporter) -> list[NormalizedProperty]:
        report(f"Navigating to {self.label}...")
        async with self._session_factory() as session:
            async with session.page() as page:
                await page.goto(self.home_url, wait_until="domcontentloaded")
                await session.random_delay()
                await self.run_search(page, session, criteria, report)
                report(f"Extracting property data from {self.label}...")
                cards = await self.collect_cards(page, session, criteria)
        properties = [prop for prop in (from_scraped_card(card) for card in cards) if prop]
        report(f"Found {len(properties)} properties on {self.label}")
        return properties

    @abstractmethod
    async def run_search(
        self, page: Page, session: BrowserSession, criteria: ResolvedCriteria, report: Reporter
    ) -> None:
        """Fill and submit the search form, leaving ``page`` on the results list."""

    @abstractmethod
    async def extract_card(self, card: Locator, criteria: ResolvedCriteria) -> ScrapedCard:
        """Lift raw strings out of one result card."""

    async def collect_cards(
        self, page: Page, session: BrowserSession, criteria: ResolvedCriteria
    ) -> list[ScrapedCard]:
        try:
            await page.wait_for_selector(self.result_cards, timeout=10000)
        except PlaywrightError as exc:
            raise SourceUnavailableError(f"no result cards on {page.url}") from exc

        cards: list[ScrapedCard] = []
        for _ in range(self.max_pages):
            locator = await self.load_results(page, session)
            count = await locator.count()
            for index in range(count):
                if len(cards) >= self.max_results:
                    return cards
                try:
                    cards.append(await self.extract_card(locator.nth(index), criteria))
                except PlaywrightError:
                    logger.debug("Skipping %s card %s after extraction error", self.label, index)
                await session.random_delay(0.2, 0.6)
            if len(cards) >= self.max_results or not await self.goto_next_page(page, session):
                break
        return cards

    async def load_results(self, page: Page, session: BrowserSession) -> Locator:
        """Scroll and press load-more until enough cards exist or the list stops growing."""
        locator = page.locator(self.result_cards)
        previous = -1
        for _ in range(self.max_scrolls):
            count = await locator.count()
            if count >= self.max_results or count == previous:
                break
            previous = count
            await page.mouse.wheel(0, 4000)
            await session.random_delay(0.8, 1.6)
            if self.load_more_selector:
                await click_if_present(page, self.load_more_selector, timeout_ms=1000)
        return locator

    async def goto_next_page(self, page: Page, session: BrowserSession) -> bool:
        if not self.next_page_selector:
            return False
        if not await click_if_present(page, self.next_page_selector, timeout_ms=2000):
            return False
        try:
            await page.wait_for_load_state("domcontentloaded")
            await page.wait_for_selector(self.result_cards, timeout=10000)
        except PlaywrightError:
            return False
        await session.random_delay()
        return True

    async def fill_destination(
        self,
        page: Page,
        session: BrowserSession,
        input_selector: str,
        option_selector: str,
        destination: str,
    ) -> None:
        field = page.locator(input_selector).first
        try:
            await field.click(timeout=5000)
        except PlaywrightError as exc:
            raise SourceUnavailableError(f"{self.label} destination input not found") from exc
        await session.random_delay(0.5, 1.0)
        await field.fill(destination)
        await session.random_delay(1.0, 2.0)
        try:
            await page.wait_for_selector(option_selector, timeout=5000)
            await page.locator(option_selector).first.click()
        except PlaywrightError:
            logger.info("No %s autocomplete suggestion for %r; keeping typed text", self.label, destination)
        await session.random_delay(1.0, 2.0)

    async def pick_dates(
        self,
        page: Page,
        session: BrowserSession,
        day_selectors: Sequence[str],
        next_month_selector: str,
        *,
        max_months: int = 12,
    ) -> bool:
        """Click each calendar day in turn, paging the calendar forward as needed."""
        for selector in day_selectors:
            for _ in range(max_months + 1):
                day = page.locator(selector).first
                if await day.count() and await day.is_visible():
                    await day.click()
                    await session.random_delay(0.4, 0.9)
                    break
                if not await click_if_present(page, next_month_selector, timeout_ms=1000):
                    return False
                await session.random_delay(0.3, 0.7)
            else:
                return False
        return True

    async def set_stepper(
        self,
        page: Page,
        session: BrowserSession,
        *,
        value_selector: str,
        increase_selector: str,
        decrease_selector: str,
        target: int,
        max_clicks: int = 16,
    ) -> bool:
        current = await read_int(page, value_selector)
        if current is None:
            return False
        for _ in range(max_clicks):
            if current == target:
                return True
            selector = increase_selector if current < target else decrease_selector
            if not await click_if_present(page, selector, timeout_ms=1000):
                return False
            await session.random_delay(0.2, 0.5)
            updated = await read_int(page, value_selector)
            if updated is None or updated == current:
                return False
            current = updated
        return current == target


async def click_if_present(page: Page, selector: str, *, timeout_ms: int = 2000) -> bool:
    target = page.locator(selector).first
    try:
        if not await target.is_visible(timeout=timeout_ms):
            return False
        await target.click(timeout=timeout_ms)
    except PlaywrightError:
        return False
    return True


async def dismiss_banners(page: Page, session: BrowserSession, selectors: Sequence[str]) -> None:
    for selector in selectors:
        if await click_if_present(page, selector):
            await session.random_delay(0.5, 1.0)
            return


async def read_int(page: Page, selector: str) -> Optional[int]:
    target = page.locator(selector).first
    try:
        if await target.count() == 0:
            return None
        tag = await target.evaluate("el => el.tagName")
        raw = await target.input_value() if tag == "INPUT" else await target.text_content()
    except PlaywrightError:
        return None
    digits = "".join(ch for ch in raw or "" if ch.isdigit())
    return int(digits) if digits else None
