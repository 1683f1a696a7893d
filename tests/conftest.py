"""
Shared pytest fixtures for all tests.
"""
from typing import Any, Callable, List, Sequence, Tuple, Union
from unittest.mock import Mock

import pytest

from ai_utils import ModelClient
from browser_provider import BLANK_PAGE_URL, BrowserSession
from models.conversation import ConversationTurn, ModelResponse
from utils.event_logger import EventLogger, get_event_logger, set_event_logger

# Calls that observe the page rather than act on it
OBSERVATION_CALLS = ("screenshot", "current_url")


class FakeSession(BrowserSession):
    """Browser session that records every primitive instead of driving a browser."""

    def __init__(self, width: int = 1440, height: int = 900, url: str = "https://example.com"):
        self.width = width
        self.height = height
        self.url = url
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_on: dict = {}
        self.on_call: dict = {}
        self.screenshots_taken = 0

    def _record(self, name: str, *args) -> None:
        self.calls.append((name,) + args)
        hook = self.on_call.get(name)
        if hook:
            hook()
        error = self.fail_on.get(name)
        if error:
            raise error

    @property
    def viewport_size(self) -> Tuple[int, int]:
        return self.width, self.height

    def screenshot(self) -> bytes:
        self._record("screenshot")
        self.screenshots_taken += 1
        return b"jpeg-%d" % self.screenshots_taken

    def current_url(self) -> str:
        self._record("current_url")
        return self.url

    def pointer_move(self, x: int, y: int, steps: int = 1) -> None:
        self._record("pointer_move", x, y, steps)

    def pointer_click(self, x: int, y: int, button: str = "left", click_count: int = 1) -> None:
        self._record("pointer_click", x, y, button, click_count)

    def pointer_down(self) -> None:
        self._record("pointer_down")

    def pointer_up(self) -> None:
        self._record("pointer_up")

    def keyboard_type(self, text: str) -> None:
        self._record("keyboard_type", text)

    def keyboard_press(self, keys: str) -> None:
        self._record("keyboard_press", keys)

    def wheel_scroll(self, delta_x: float, delta_y: float) -> None:
        self._record("wheel_scroll", delta_x, delta_y)

    def navigate(self, url: str) -> None:
        self._record("navigate", url)
        self.url = url

    def go_back(self) -> None:
        self._record("go_back")

    def go_forward(self) -> None:
        self._record("go_forward")

    def wait_ms(self, milliseconds: float) -> None:
        self._record("wait_ms", milliseconds)

    def acquire(self) -> None:
        self._record("acquire")

    def reset(self) -> None:
        self._record("reset")
        self.url = BLANK_PAGE_URL

    def close(self) -> None:
        self._record("close")

    @property
    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    @property
    def action_calls(self) -> List[Tuple[Any, ...]]:
        """Recorded primitives that change the page (no screenshots, URL reads or waits)."""
        return [call for call in self.calls if call[0] not in OBSERVATION_CALLS + ("wait_ms",)]


ScriptedStep = Union[ModelResponse, Exception, Callable[[Sequence[ConversationTurn]], ModelResponse]]


class ScriptedModelClient(ModelClient):
    """Replays canned responses and records every conversation it was sent."""

    def __init__(self, responses: Sequence[ScriptedStep] = ()):
        self.responses = list(responses)
        self.requests: List[List[ConversationTurn]] = []

    def generate(self, conversation: Sequence[ConversationTurn]) -> ModelResponse:
        self.requests.append(list(conversation))
        if not self.responses:
            raise AssertionError("ScriptedModelClient ran out of responses")
        step = self.responses.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(conversation)
        return step


@pytest.fixture(autouse=True)
def event_logger():
    """Quiet, isolated event logger for every test"""
    previous = get_event_logger()
    logger = EventLogger(debug_mode=False)
    set_event_logger(logger)
    yield logger
    set_event_logger(previous)


@pytest.fixture
def fake_session():
    return FakeSession()


@pytest.fixture
def scripted_model():
    """Factory for ScriptedModelClient instances"""
    def _create(*responses: ScriptedStep) -> ScriptedModelClient:
        return ScriptedModelClient(responses)
    return _create


@pytest.fixture
def mock_page():
    """Mock Playwright Page object"""
    page = Mock()
    page.url = "https://example.com"
    page.is_closed.return_value = False
    page.screenshot.return_value = b"fake_screenshot"
    return page
