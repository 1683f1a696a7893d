"""
Unit tests for the launcher's task wrapper. The spinner and console output are
replaced with mocks.
"""
import signal
from unittest.mock import MagicMock, Mock

import pytest

import main
from error_handling import BrowserSessionError, TaskCancelledError


@pytest.fixture
def printed(monkeypatch):
    lines = []
    monkeypatch.setattr(main, "rprint", lambda text: lines.append(text))
    monkeypatch.setattr(main, "yaspin", MagicMock())
    return lines


@pytest.fixture
def runner(event_logger):
    runner = Mock()
    runner.logger = event_logger
    return runner


def test_returns_the_answer(runner, printed):
    runner.run_task.return_value = "42"

    assert main.run_with_spinner(runner, "task") == "42"
    assert printed == []


def test_browser_failure_is_reported_as_task_failure(runner, printed):
    runner.run_task.side_effect = BrowserSessionError("Could not observe the page: target closed")

    assert main.run_with_spinner(runner, "task") is None
    assert printed == ["[red]Task failed:[/red] Could not observe the page: target closed"]


def test_unexpected_error_does_not_escape(runner, printed):
    runner.run_task.side_effect = RuntimeError("boom")

    assert main.run_with_spinner(runner, "task") is None
    assert printed == ["[red]Unexpected error:[/red] boom"]


def test_cancellation_is_reported(runner, printed):
    runner.run_task.side_effect = TaskCancelledError("Interrupted by user")

    assert main.run_with_spinner(runner, "task") is None
    assert "Interrupted by user" in printed[0]


def test_interrupt_handler_is_restored(runner, printed):
    before = signal.getsignal(signal.SIGINT)
    runner.run_task.side_effect = RuntimeError("boom")

    main.run_with_spinner(runner, "task")

    assert signal.getsignal(signal.SIGINT) is before


def test_progress_callback_is_removed_afterwards(runner, printed, event_logger):
    runner.run_task.return_value = "done"

    main.run_with_spinner(runner, "task")

    assert event_logger._callbacks == []
