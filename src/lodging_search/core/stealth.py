"""playwright-stealth integration for locally launched browsers."""
from __future__ import annotations

from contextlib import AbstractAsyncContextManager

from playwright.async_api import BrowserContext, async_playwright
from playwright_stealth import ALL_EVASIONS_DISABLED_KWARGS, Stealth


class StealthManager:
    """Evasion scripts for one scraping session; a no-op when ``enabled`` is false."""

    def __init__(self, enabled: bool, **overrides: object) -> None:
        self.enabled = enabled
        self._overrides = overrides
        options = dict(overrides) if enabled else {**ALL_EVASIONS_DISABLED_KWARGS, **overrides}
        self._stealth = Stealth(**options)

    def wrap_playwright(self) -> AbstractAsyncContextManager:
        manager = async_playwright()
        return self._stealth.use_async(manager) if self.enabled else manager

    async def apply(self, context: BrowserContext) -> None:
        if self.enabled:
            await self._stealth.apply_stealth_async(context)

    def describe(self) -> dict[str, object]:
        summary: dict[str, object] = {"enabled": self.enabled}
        if self.enabled:
            summary["overridden"] = sorted(self._overrides)
        return summary
