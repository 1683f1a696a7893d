"""
Unit tests for PlaywrightBrowserSession acquisition and primitive mapping.

Playwright, the debugging endpoint probe and stealth are all replaced with
mocks; no browser is started.
"""
from unittest.mock import Mock

import pytest
import requests

import browser_provider
from browser_provider import BLANK_PAGE_URL, BrowserConfig, PlaywrightBrowserSession
from error_handling import SessionAcquisitionError
from utils.event_logger import EventType


@pytest.fixture
def page(mock_page):
    return mock_page


@pytest.fixture
def context(page):
    context = Mock()
    context.pages = [Mock(), page]
    return context


@pytest.fixture
def browser(context):
    browser = Mock()
    browser.contexts = [context]
    return browser


@pytest.fixture
def playwright(monkeypatch, browser):
    playwright = Mock()
    playwright.chromium.launch.return_value = browser
    playwright.chromium.connect_over_cdp.return_value = browser
    starter = Mock()
    starter.start.return_value = playwright
    monkeypatch.setattr(browser_provider, "sync_playwright", lambda: starter)
    return playwright


@pytest.fixture
def stealth(monkeypatch):
    stealth_cls = Mock()
    monkeypatch.setattr(browser_provider, "Stealth", stealth_cls)
    return stealth_cls


@pytest.fixture
def no_debugger(monkeypatch):
    def refuse(url, timeout):
        raise requests.ConnectionError("connection refused")
    monkeypatch.setattr(browser_provider.requests, "get", refuse)


@pytest.fixture
def running_debugger(monkeypatch):
    probed = []

    def answer(url, timeout):
        probed.append(url)
        response = Mock(ok=True)
        response.json.return_value = {"webSocketDebuggerUrl": "ws://localhost:9222/devtools/browser/abc"}
        return response

    monkeypatch.setattr(browser_provider.requests, "get", answer)
    return probed


def make_session(**overrides):
    overrides.setdefault("connect_backoff_seconds", 0)
    return PlaywrightBrowserSession(BrowserConfig(**overrides))


class TestAcquire:

    def test_launches_with_debugging_port_when_nothing_is_running(self, playwright, stealth, no_debugger, page):
        session = make_session(headless=True)
        session.acquire()

        playwright.chromium.launch.assert_called_once_with(
            headless=True, args=["--remote-debugging-port=9222"]
        )
        playwright.chromium.connect_over_cdp.assert_not_called()
        assert session.page is page
        page.set_viewport_size.assert_called_with({"width": 1440, "height": 900})
        stealth.return_value.apply_stealth_sync.assert_called_once_with(page)

    def test_attaches_to_running_browser(self, playwright, stealth, running_debugger):
        session = make_session()
        session.acquire()

        assert running_debugger == ["http://localhost:9222/json/version"]
        playwright.chromium.connect_over_cdp.assert_called_once_with("ws://localhost:9222/devtools/browser/abc")
        playwright.chromium.launch.assert_not_called()

    def test_creates_context_and_page_when_browser_has_none(self, playwright, stealth, no_debugger, browser):
        browser.contexts = []
        new_context = browser.new_context.return_value
        new_context.pages = []
        new_page = new_context.new_page.return_value
        new_page.is_closed.return_value = False

        session = make_session()
        session.acquire()

        browser.new_context.assert_called_once_with(viewport={"width": 1440, "height": 900})
        assert session.page is new_page

    def test_stealth_can_be_disabled(self, playwright, stealth, no_debugger):
        make_session(apply_stealth=False).acquire()

        stealth.assert_not_called()

    def test_acquire_is_idempotent(self, playwright, stealth, no_debugger):
        session = make_session()
        session.acquire()
        session.acquire()

        playwright.chromium.launch.assert_called_once()

    def test_retries_until_browser_is_available(self, playwright, stealth, no_debugger, browser, event_logger):
        playwright.chromium.launch.side_effect = [RuntimeError("boom"), RuntimeError("boom"), browser]

        session = make_session(connect_attempts=5)
        session.acquire()

        assert playwright.chromium.launch.call_count == 3
        assert len(event_logger.events_of(EventType.SESSION_RETRY)) == 2
        assert session.is_ready()

    def test_gives_up_after_all_attempts(self, playwright, stealth, no_debugger):
        last_error = RuntimeError("still broken")
        playwright.chromium.launch.side_effect = [RuntimeError("broken"), RuntimeError("broken"), last_error]

        with pytest.raises(SessionAcquisitionError, match="after 3 attempts") as exc_info:
            make_session(connect_attempts=3).acquire()

        assert exc_info.value.__cause__ is last_error

    def test_closed_page_is_replaced_without_relaunching(self, playwright, stealth, no_debugger, page, context):
        session = make_session()
        session.acquire()

        replacement = Mock()
        replacement.is_closed.return_value = False
        page.is_closed.return_value = True
        context.pages = [replacement]

        assert session.page is replacement
        playwright.chromium.launch.assert_called_once()

    @pytest.fixture
    def fresh_browser(self):
        fresh_page = Mock()
        fresh_page.is_closed.return_value = False
        fresh_context = Mock()
        fresh_context.pages = [fresh_page]
        fresh_browser = Mock()
        fresh_browser.contexts = [fresh_context]
        fresh_browser.page = fresh_page
        return fresh_browser

    def test_disconnected_browser_is_relaunched(self, playwright, stealth, no_debugger, browser, fresh_browser):
        session = make_session()
        session.acquire()

        browser.is_connected.return_value = False
        assert not session.is_ready()
        playwright.chromium.launch.return_value = fresh_browser

        session.acquire()

        assert playwright.chromium.launch.call_count == 2
        assert session.page is fresh_browser.page

    def test_browser_lost_during_attempt_is_reopened(self, playwright, stealth, no_debugger, browser, page,
                                                      fresh_browser, event_logger):
        def lose_browser(viewport):
            browser.is_connected.return_value = False
            raise RuntimeError("Target page, context or browser has been closed")

        page.set_viewport_size.side_effect = lose_browser
        playwright.chromium.launch.side_effect = [browser, fresh_browser]

        session = make_session(connect_attempts=3)
        session.acquire()

        assert playwright.chromium.launch.call_count == 2
        assert len(event_logger.events_of(EventType.SESSION_RETRY)) == 1
        assert session.page is fresh_browser.page

    def test_reattaches_to_debugging_port_after_disconnect(self, playwright, stealth, running_debugger, browser,
                                                           fresh_browser):
        session = make_session()
        session.acquire()

        browser.is_connected.return_value = False
        playwright.chromium.connect_over_cdp.return_value = fresh_browser
        session.acquire()

        assert len(running_debugger) == 2
        assert playwright.chromium.connect_over_cdp.call_count == 2
        playwright.chromium.launch.assert_not_called()
        assert session.page is fresh_browser.page


class TestPrimitives:

    @pytest.fixture
    def session(self, playwright, stealth, no_debugger):
        session = make_session()
        session.acquire()
        return session

    def test_screenshot_is_jpeg(self, session, page):
        assert session.screenshot() == b"fake_screenshot"
        page.screenshot.assert_called_once_with(type="jpeg", quality=80)

    def test_current_url(self, session):
        assert session.current_url() == "https://example.com"

    def test_viewport_size_comes_from_config(self):
        assert make_session(viewport_width=1280, viewport_height=720).viewport_size == (1280, 720)

    def test_pointer_and_keyboard(self, session, page):
        session.pointer_move(10, 20, steps=20)
        session.pointer_click(10, 20, button="right", click_count=2)
        session.pointer_down()
        session.pointer_up()
        session.keyboard_type("hello")
        session.keyboard_press("Control+A")
        session.wheel_scroll(0, 800)

        page.mouse.move.assert_called_once_with(10, 20, steps=20)
        page.mouse.click.assert_called_once_with(10, 20, button="right", click_count=2)
        page.mouse.down.assert_called_once()
        page.mouse.up.assert_called_once()
        page.keyboard.type.assert_called_once_with("hello")
        page.keyboard.press.assert_called_once_with("Control+A")
        page.mouse.wheel.assert_called_once_with(0, 800)

    def test_navigation(self, session, page):
        session.navigate("https://example.org")
        session.go_back()
        session.go_forward()
        session.wait_ms(500)

        page.goto.assert_called_once_with("https://example.org", wait_until="domcontentloaded")
        page.go_back.assert_called_once()
        page.go_forward.assert_called_once()
        page.wait_for_timeout.assert_called_once_with(500)

    def test_reset_opens_blank_page(self, session, page):
        session.reset()

        page.goto.assert_called_once_with(BLANK_PAGE_URL, wait_until="domcontentloaded")

    def test_close_releases_everything(self, session, playwright, browser):
        session.close()

        browser.close.assert_called_once()
        playwright.stop.assert_called_once()
        assert not session.is_ready()
