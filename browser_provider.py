"""
Browser session layer for the browser task agent.

This module separates the agent loop from the concrete browser. The loop only
talks to the BrowserSession interface (screenshots, pointer, keyboard, wheel,
navigation); PlaywrightBrowserSession implements it on top of a Chromium
instance that is attached over CDP when one is already running, or launched
otherwise.

Example:
    >>> from browser_provider import BrowserConfig, PlaywrightBrowserSession
    >>> session = PlaywrightBrowserSession(BrowserConfig(headless=True))
    >>> session.acquire()
    >>> session.navigate("https://example.com")
"""
from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import requests
from playwright.sync_api import Browser, BrowserContext, Page, Playwright, sync_playwright
from playwright_stealth import Stealth
from pydantic import BaseModel, Field

from error_handling import SessionAcquisitionError
from utils.event_logger import get_event_logger

BLANK_PAGE_URL = "about:blank"


class BrowserConfig(BaseModel):
    """Configuration for the browser session."""

    viewport_width: int = Field(
        default=1440,
        ge=100,
        description="Browser viewport width"
    )
    viewport_height: int = Field(
        default=900,
        ge=100,
        description="Browser viewport height"
    )
    headless: bool = Field(
        default=False,
        description="Run a launched browser in headless mode"
    )

    # Remote debugging endpoint used to attach to an already-running browser
    cdp_host: str = Field(
        default="localhost",
        description="Host of the Chrome DevTools Protocol endpoint"
    )
    remote_debugging_port: int = Field(
        default=9222,
        ge=1,
        le=65535,
        description="Remote debugging port probed before launching a new browser"
    )
    probe_timeout_seconds: float = Field(
        default=2.0,
        gt=0,
        description="Timeout for the remote debugging endpoint probe"
    )

    # Acquisition retry policy
    connect_attempts: int = Field(
        default=10,
        ge=1,
        description="Attempts to attach to or launch a browser"
    )
    connect_backoff_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Fixed delay between acquisition attempts"
    )

    screenshot_quality: int = Field(
        default=80,
        ge=1,
        le=100,
        description="JPEG quality for screenshots sent to the model"
    )
    apply_stealth: bool = Field(
        default=True,
        description="Apply stealth patches to newly opened pages"
    )
    extra_args: list[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments"
    )

    @property
    def cdp_version_url(self) -> str:
        return f"http://{self.cdp_host}:{self.remote_debugging_port}/json/version"


class BrowserSession(ABC):
    """
    Abstract browser session.

    The agent loop borrows a session for the duration of a task; it never
    creates or tears one down. All coordinates are viewport pixels.
    """

    @property
    @abstractmethod
    def viewport_size(self) -> Tuple[int, int]:
        """(width, height) of the fixed viewport."""

    @abstractmethod
    def screenshot(self) -> bytes:
        pass

    @abstractmethod
    def current_url(self) -> str:
        pass

    @abstractmethod
    def pointer_move(self, x: int, y: int, steps: int = 1) -> None:
        pass

    @abstractmethod
    def pointer_click(self, x: int, y: int, button: str = "left", click_count: int = 1) -> None:
        pass

    @abstractmethod
    def pointer_down(self) -> None:
        pass

    @abstractmethod
    def pointer_up(self) -> None:
        pass

    @abstractmethod
    def keyboard_type(self, text: str) -> None:
        pass

    @abstractmethod
    def keyboard_press(self, keys: str) -> None:
        pass

    @abstractmethod
    def wheel_scroll(self, delta_x: float, delta_y: float) -> None:
        pass

    @abstractmethod
    def navigate(self, url: str) -> None:
        """Load url and wait for DOMContentLoaded."""

    @abstractmethod
    def go_back(self) -> None:
        pass

    @abstractmethod
    def go_forward(self) -> None:
        pass

    @abstractmethod
    def wait_ms(self, milliseconds: float) -> None:
        pass

    def _forget_disconnected_browser(self) -> None:
        if self._browser is None or self._browser.is_connected():
            return
        self.logger.system_warning("Browser disconnected, reconnecting")
        self._browser = None
        self._context = None
        self._page = None

    def acquire(self) -> None:
        """Make the session usable. No-op for sessions that are always ready."""

    def reset(self) -> None:
        """Bring the page back to a blank state between tasks."""
        self.navigate(BLANK_PAGE_URL)

    def close(self) -> None:
        """Release browser resources."""


class PlaywrightBrowserSession(BrowserSession):
    """
    Browser session backed by Playwright's sync API.

    The browser, context and page are acquired lazily on first use and kept for
    the lifetime of the object. If the page goes away, the next acquire() opens
    a new one on the same browser. A browser that disconnected is reattached
    or relaunched.
    """

    def __init__(self, config: Optional[BrowserConfig] = None):
        self.config = config or BrowserConfig()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self.logger = get_event_logger()

    # ==================== Acquisition ====================

    def is_ready(self) -> bool:
        return (
            self._browser is not None
            and self._browser.is_connected()
            and self._context is not None
            and self._page is not None
            and not self._page.is_closed()
        )

    @property
    def page(self) -> Page:
        """Current page, acquiring the session first if needed."""
        self.acquire()
        return self._page

    def _probe_debugging_endpoint(self) -> Optional[str]:
        """Return the websocket URL of a browser already listening on the debugging port."""
        try:
            response = requests.get(self.config.cdp_version_url, timeout=self.config.probe_timeout_seconds)
            if response.ok:
                return response.json().get("webSocketDebuggerUrl") or None
        except (requests.RequestException, ValueError):
            # Browser not running
            return None
        return None

    def _open_browser(self) -> Browser:
        ws_endpoint = self._probe_debugging_endpoint()
        if ws_endpoint:
            self.logger.system_info(f"Connecting to existing browser at {self.config.cdp_host}:{self.config.remote_debugging_port}...")
            browser = self._playwright.chromium.connect_over_cdp(ws_endpoint)
            self.logger.session_connect("attached", endpoint=ws_endpoint)
            return browser

        args = [f"--remote-debugging-port={self.config.remote_debugging_port}"]
        args.extend(self.config.extra_args)
        browser = self._playwright.chromium.launch(headless=self.config.headless, args=args)
        self.logger.session_connect("launched")
        return browser

    def _viewport(self) -> dict:
        return {"width": self.config.viewport_width, "height": self.config.viewport_height}

    def acquire(self) -> None:
        """
        Attach to or launch a browser and pick the page to drive.

        A connected browser is reused across attempts. After a failure the page
        and context are picked again, and a disconnected browser is dropped so
        the next attempt probes the debugging port or launches a new one.

        Raises:
            SessionAcquisitionError: every attempt failed
        """
        if self.is_ready():
            return

        attempts = self.config.connect_attempts
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                self._forget_disconnected_browser()

                if self._playwright is None:
                    self._playwright = sync_playwright().start()

                if self._browser is None:
                    self._browser = self._open_browser()

                if self._context is None:
                    contexts = self._browser.contexts
                    self._context = contexts[0] if contexts else self._browser.new_context(viewport=self._viewport())

                if self._page is None or self._page.is_closed():
                    pages = self._context.pages
                    self._page = pages[-1] if pages else self._context.new_page()
                    if self.config.apply_stealth:
                        Stealth().apply_stealth_sync(self._page)

                self._page.set_viewport_size(self._viewport())
                return

            except Exception as exc:
                last_error = exc
                self.logger.session_retry(attempt, attempts, error=exc)
                self._page = None
                self._context = None
                if attempt < attempts:
                    time.sleep(self.config.connect_backoff_seconds)

        raise SessionAcquisitionError(
            f"Could not acquire a browser session after {attempts} attempts: {last_error}"
        ) from last_error

    def close(self) -> None:
        """Close browser and stop Playwright."""
        if self._browser:
            try:
                self._browser.close()
            except Exception as exc:
                self.logger.system_warning(f"Error closing browser: {exc}")
            self._browser = None

        if self._playwright:
            try:
                self._playwright.stop()
            except Exception as exc:
                self.logger.system_warning(f"Error stopping Playwright: {exc}")
            self._playwright = None

        self._context = None
        self._page = None

    # ==================== Observation ====================

    @property
    def viewport_size(self) -> Tuple[int, int]:
        return self.config.viewport_width, self.config.viewport_height

    def screenshot(self) -> bytes:
        return self.page.screenshot(type="jpeg", quality=self.config.screenshot_quality)

    def current_url(self) -> str:
        return self.page.url

    # ==================== Input ====================

    def pointer_move(self, x: int, y: int, steps: int = 1) -> None:
        self.page.mouse.move(x, y, steps=steps)

    def pointer_click(self, x: int, y: int, button: str = "left", click_count: int = 1) -> None:
        self.page.mouse.click(x, y, button=button, click_count=click_count)

    def pointer_down(self) -> None:
        self.page.mouse.down()

    def pointer_up(self) -> None:
        self.page.mouse.up()

    def keyboard_type(self, text: str) -> None:
        self.page.keyboard.type(text)

    def keyboard_press(self, keys: str) -> None:
        self.page.keyboard.press(keys)

    def wheel_scroll(self, delta_x: float, delta_y: float) -> None:
        self.page.mouse.wheel(delta_x, delta_y)

    # ==================== Navigation ====================

    def navigate(self, url: str) -> None:
        self.page.goto(url, wait_until="domcontentloaded")

    def go_back(self) -> None:
        self.page.go_back()

    def go_forward(self) -> None:
        self.page.go_forward()

    def wait_ms(self, milliseconds: float) -> None:
        self.page.wait_for_timeout(milliseconds)
