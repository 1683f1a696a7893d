"""
Task runner - entry point for running browser tasks.

Holds a single shared browser session, runs one task at a time on it and
resets the page between tasks.

Example:
    >>> runner = TaskRunner(AgentConfig.from_env())
    >>> print(runner.run_task("Find the weather in London"))
    >>> runner.close()
"""
import threading
import time
from typing import Optional

from agent.agent_controller import AgentController
from ai_utils import GeminiModelClient, ModelClient
from bot_config import AgentConfig
from browser_provider import BrowserSession, PlaywrightBrowserSession
from error_handling import BrowserSessionError
from utils.cancellation import CancellationToken
from utils.event_logger import get_event_logger


class TaskRunner:
    """
    Serializes task invocations over one shared browser session.

    The session and the model client are created on first use unless passed
    in, so building a runner never opens a browser.
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        session: Optional[BrowserSession] = None,
        model_client: Optional[ModelClient] = None,
    ):
        self.config = config or AgentConfig()
        self._session = session
        self._model_client = model_client
        self._lock = threading.Lock()

        self.logger = get_event_logger()

    @property
    def session(self) -> BrowserSession:
        if self._session is None:
            self._session = PlaywrightBrowserSession(self.config.browser)
        return self._session

    @property
    def model_client(self) -> ModelClient:
        if self._model_client is None:
            self._model_client = GeminiModelClient(self.config.model)
        return self._model_client

    def run_task(self, description: str, cancel_token: Optional[CancellationToken] = None) -> str:
        """
        Run one browser task and return the model's final answer.

        Concurrent callers wait for the running task to finish. Errors from the
        agent loop propagate unchanged.

        Raises:
            SessionAcquisitionError: no browser could be attached or launched
            BrowserSessionError: the page could not be reset or observed
            ConfigurationError: no API key is configured
            TaskCancelledError: cancel_token was cancelled
            LLMError / IterationLimitExceededError: the task failed
        """
        token = cancel_token or CancellationToken()

        with self._lock:
            start = time.time()
            try:
                model_client = self.model_client
                session = self.session

                token.raise_if_cancelled()
                session.acquire()
                token.raise_if_cancelled()
                try:
                    session.reset()
                except Exception as exc:
                    raise BrowserSessionError(f"Could not reset the browser page: {exc}") from exc

                controller = AgentController.from_config(session, model_client, self.config)
                return controller.run_task(description, token)
            finally:
                self.logger.task_timing(time.time() - start)

    def close(self) -> None:
        """Release the browser session if one was created."""
        with self._lock:
            if self._session is not None:
                self._session.close()
