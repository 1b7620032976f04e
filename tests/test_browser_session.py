from __future__ import annotations

import pytest

from lodging_search.config.settings import Settings
from lodging_search.core import browser as browser_module
from lodging_search.core.browser import BrowserSession


class _DummyPage:
    def __init__(self) -> None:
        self.closed = False
        self.visited: list[str] = []

    def is_closed(self) -> bool:
        return self.closed

    async def goto(self, url: str, **_kwargs) -> None:
        self.visited.append(url)

    async def close(self) -> None:
        self.closed = True


class _DummyContext:
    def __init__(self, *, fail_close: bool = False) -> None:
        self.pages: list[_DummyPage] = []
        self.init_scripts: list[str] = []
        self.closed = False
        self.fail_close = fail_close
        self.timeouts: dict[str, int] = {}

    async def add_init_script(self, script: str) -> None:
        self.init_scripts.append(script)

    def set_default_timeout(self, value: int) -> None:
        self.timeouts["default"] = value

    def set_default_navigation_timeout(self, value: int) -> None:
        self.timeouts["navigation"] = value

    async def new_page(self) -> _DummyPage:
        page = _DummyPage()
        self.pages.append(page)
        return page

    async def close(self) -> None:
        if self.fail_close:
            raise RuntimeError("context already gone")
        self.closed = True


class _DummyBrowser:
    def __init__(self, context: _DummyContext, *, fail_new_context: bool = False) -> None:
        self.context = context
        self.fail_new_context = fail_new_context
        self.closed = False
        self.context_options: dict[str, object] = {}

    async def new_context(self, **options: object) -> _DummyContext:
        if self.fail_new_context:
            raise RuntimeError("context creation failed")
        self.context_options = options
        return self.context

    async def close(self) -> None:
        self.closed = True


class _DummyChromium:
    def __init__(self, browser: _DummyBrowser) -> None:
        self.browser = browser
        self.launch_args: dict[str, object] = {}

    async def launch(self, **kwargs: object) -> _DummyBrowser:
        self.launch_args = kwargs
        return self.browser


class _DummyPlaywrightManager:
    def __init__(self, browser: _DummyBrowser) -> None:
        self.chromium = _DummyChromium(browser)
        self.stopped = False

    async def __aenter__(self) -> "_DummyPlaywrightManager":
        return self

    async def __aexit__(self, *_exc: object) -> None:
        self.stopped = True


class _RecordingPacer:
    def __init__(self) -> None:
        self.pauses: list[tuple[float, float]] = []

    async def pause(self, min_seconds: float, max_seconds: float) -> None:
        self.pauses.append((min_seconds, max_seconds))

    async def wait_turn(self) -> None:
        return None


def _install(monkeypatch: pytest.MonkeyPatch, browser: _DummyBrowser) -> _DummyPlaywrightManager:
    manager = _DummyPlaywrightManager(browser)

    class _DummyStealth:
        def __init__(self, enabled: bool, **_overrides: object) -> None:
            self.enabled = enabled

        def wrap_playwright(self) -> _DummyPlaywrightManager:
            return manager

        async def apply(self, _context: object) -> None:
            return None

        def describe(self) -> dict[str, object]:
            return {"enabled": self.enabled}

    monkeypatch.setattr(browser_module, "StealthManager", _DummyStealth)
    return manager


def _settings(**overrides: object) -> Settings:
    base: dict[str, object] = {"page_pool_size": 1, "hyperbrowser_enabled": False, "_env_file": None}
    base.update(overrides)
    return Settings(**base)


@pytest.mark.asyncio
async def test_session_launches_with_configured_options_and_cleans_up(monkeypatch: pytest.MonkeyPatch) -> None:
    context = _DummyContext()
    browser = _DummyBrowser(context)
    manager = _install(monkeypatch, browser)

    async with BrowserSession(_settings(), pacer=_RecordingPacer()) as session:
        async with session.page() as first:
            pass
        async with session.page() as second:
            assert second is first
        extra = await session.new_page()

    assert "--disable-blink-features=AutomationControlled" in manager.chromium.launch_args["args"]
    assert browser.context_options["viewport"] == {"width": 1920, "height": 1080}
    assert browser.context_options["user_agent"] == session.settings.user_agent
    assert context.init_scripts, "fingerprint overrides were not injected"
    assert first.visited == ["about:blank", "about:blank"]
    assert first.closed
    assert not extra.closed
    assert context.closed and browser.closed and manager.stopped


@pytest.mark.asyncio
async def test_pool_overflow_pages_are_closed(monkeypatch: pytest.MonkeyPatch) -> None:
    context = _DummyContext()
    _install(monkeypatch, _DummyBrowser(context))

    async with BrowserSession(_settings(page_pool_size=0), pacer=_RecordingPacer()) as session:
        async with session.page() as page:
            pass
        assert page.closed


@pytest.mark.asyncio
async def test_failure_during_start_releases_browser_and_playwright(monkeypatch: pytest.MonkeyPatch) -> None:
    browser = _DummyBrowser(_DummyContext(), fail_new_context=True)
    manager = _install(monkeypatch, browser)

    with pytest.raises(RuntimeError, match="context creation failed"):
        async with BrowserSession(_settings(), pacer=_RecordingPacer()):
            pass

    assert browser.closed
    assert manager.stopped


@pytest.mark.asyncio
async def test_failure_inside_block_still_releases_everything(monkeypatch: pytest.MonkeyPatch) -> None:
    context = _DummyContext(fail_close=True)
    browser = _DummyBrowser(context)
    manager = _install(monkeypatch, browser)

    with pytest.raises(ValueError):
        async with BrowserSession(_settings(), pacer=_RecordingPacer()) as session:
            async with session.page():
                raise ValueError("selector exploded")

    assert browser.closed
    assert manager.stopped


@pytest.mark.asyncio
async def test_random_delay_goes_through_pacer(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _DummyBrowser(_DummyContext()))
    pacer = _RecordingPacer()

    async with BrowserSession(_settings(human_delay_min_s=0.5, human_delay_max_s=1.5), pacer=pacer) as session:
        await session.random_delay()
        await session.random_delay(0.1, 0.2)

    assert pacer.pauses == [(0.5, 1.5), (0.1, 0.2)]


@pytest.mark.asyncio
async def test_random_delay_disabled(monkeypatch: pytest.MonkeyPatch) -> None:
    _install(monkeypatch, _DummyBrowser(_DummyContext()))
    pacer = _RecordingPacer()

    async with BrowserSession(_settings(human_delay_enabled=False), pacer=pacer) as session:
        await session.random_delay()

    assert pacer.pauses == []
