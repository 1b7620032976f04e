"""Playwright lifecycle for the scraping sources."""
from __future__ import annotations

import logging
import os
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from types import TracebackType
from typing import AsyncIterator, Optional, Type

from hyperbrowser import AsyncHyperbrowser
from hyperbrowser.models import CreateSessionParams
from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from lodging_search.config.settings import Settings
from lodging_search.core.fingerprint import apply_fingerprint_overrides
from lodging_search.core.stealth import StealthManager
from lodging_search.utils.throttling import HumanPacer, NoPacing, Pacer

logger = logging.getLogger(__name__)


@dataclass
class BrowserSession:
    """Async context manager that owns one Playwright browser for a single search.

    A session launches Chromium (or attaches to a remote Hyperbrowser session), opens a
    single browsing context with the configured viewport, user agent, locale and
    timezone, and hands out pages from that context. Leaving the ``async with`` block
    always releases every page, the context, the browser and Playwright itself.
    """

    settings: Settings
    pacer: Optional[Pacer] = None
    _playwright_cm: Optional[AbstractAsyncContextManager] = None
    _playwright: Optional[Playwright] = None
    _browser: Optional[Browser] = None
    _context: Optional[BrowserContext] = None
    _stealth: Optional[StealthManager] = None
    _hyper_client: Optional[AsyncHyperbrowser] = None
    _hyper_session: Optional[object] = None
    _idle_pages: list[Page] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.pacer is None:
            self.pacer = HumanPacer() if self.settings.human_delay_enabled else NoPacing()

    @property
    def remote(self) -> bool:
        return self.settings.hyperbrowser_enabled

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self._open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        await self.close()

    async def _open(self) -> None:
        if self.remote:
            self._playwright_cm = async_playwright()
        else:
            self._stealth = StealthManager(self.settings.stealth_enabled, **self.settings.stealth_kwargs())
            logger.debug("Stealth: %s", self._stealth.describe())
            self._playwright_cm = self._stealth.wrap_playwright()
        self._playwright = await self._playwright_cm.__aenter__()
        if self.remote:
            await self._attach_remote()
        else:
            await self._launch_local()

    async def _launch_local(self) -> None:
        options = self.settings.chromium_launch_args()
        logger.info("Starting Chromium (headless=%s)", options["headless"])
        logger.debug("Chromium launch options: %s", options)
        self._browser = await self._playwright.chromium.launch(**options)
        context = await self._browser.new_context(**self.settings.context_options())
        self._context = await self._prepare_context(context)

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("BrowserSession used outside 'async with'")
        return self._context

    async def _prepare_context(self, context: BrowserContext) -> BrowserContext:
        if self._stealth is not None:
            await self._stealth.apply(context)
        if not self.remote:
            await apply_fingerprint_overrides(context, self.settings)
        context.set_default_timeout(self.settings.default_timeout_ms)
        context.set_default_navigation_timeout(self.settings.navigation_timeout_ms)
        return context

    async def new_page(self) -> Page:
        """Open an isolated page in the session's browsing context."""
        return await self.context.new_page()

    @asynccontextmanager
    async def page(self) -> AsyncIterator[Page]:
        """Borrow a pooled page; it is reset or closed when the block exits."""
        page = self._idle_pages.pop() if self._idle_pages else await self.new_page()
        try:
            yield page
        finally:
            await self._release_page(page)

    async def _release_page(self, page: Page) -> None:
        if page.is_closed():
            return
        if len(self._idle_pages) < self.settings.page_pool_size:
            try:
                await page.goto("about:blank")
            except Exception:
                logger.debug("Could not reset pooled page; closing it instead")
            else:
                self._idle_pages.append(page)
                return
        await ensure_close_page(page)

    async def random_delay(
        self, min_seconds: Optional[float] = None, max_seconds: Optional[float] = None
    ) -> None:
        """Pause for a uniform random duration between the given (or configured) bounds."""
        if not self.settings.human_delay_enabled:
            return
        low, high = self.settings.human_delay_bounds()
        await self.pacer.pause(
            low if min_seconds is None else min_seconds,
            high if max_seconds is None else max_seconds,
        )

    async def close(self) -> None:
        """Release every resource owned by the session; safe to call more than once."""
        while self._idle_pages:
            await ensure_close_page(self._idle_pages.pop())
        context, self._context = self._context, None
        if context is not None:
            await ensure_close_context(context)
        browser, self._browser = self._browser, None
        if browser is not None:
            try:
                await browser.close()
            except Exception:  # pragma: no cover - best effort cleanup
                logger.exception("Failed to close browser")
        await self._release_remote()
        playwright_cm, self._playwright_cm = self._playwright_cm, None
        self._playwright = None
        if playwright_cm is not None:
            try:
                await playwright_cm.__aexit__(None, None, None)
            except Exception:  # pragma: no cover - best effort cleanup
                logger.exception("Failed to stop Playwright")

    async def _attach_remote(self) -> None:
        api_key = self.settings.hyperbrowser_api_key or os.getenv("HYPERBROWSER_API_KEY")
        if not api_key:
            raise RuntimeError("hyperbrowser_enabled is set but HYPERBROWSER_API_KEY is missing")
        self._hyper_client = AsyncHyperbrowser(api_key=api_key)
        options = CreateSessionParams(
            use_stealth=self.settings.hyperbrowser_use_stealth,
            accept_cookies=self.settings.hyperbrowser_accept_cookies,
            **({"region": self.settings.hyperbrowser_region} if self.settings.hyperbrowser_region else {}),
        )
        self._hyper_session = await self._hyper_client.sessions.create(params=options)
        session_id = self._hyper_session.id
        logger.info("Attached to remote browser %s", session_id)
        self._browser = await self._playwright.chromium.connect_over_cdp(self._hyper_session.ws_endpoint)
        existing = self._browser.contexts
        context = existing[0] if existing else await self._browser.new_context(**self.settings.context_options())
        self._context = await self._prepare_context(context)

    async def _release_remote(self) -> None:
        session, self._hyper_session = self._hyper_session, None
        client, self._hyper_client = self._hyper_client, None
        if client is None or session is None:
            return
        try:
            await client.sessions.stop(session.id)
        except Exception:
            logger.warning("Remote browser %s was not stopped cleanly", session.id)


async def ensure_close_page(page: Page) -> None:
    try:
        await page.close()
    except Exception:  # pragma: no cover - best effort cleanup
        logger.exception("Failed to close page")


async def ensure_close_context(context: BrowserContext) -> None:
    try:
        await context.close()
    except Exception:  # pragma: no cover - best effort cleanup
        logger.exception("Failed to close browsing context")
