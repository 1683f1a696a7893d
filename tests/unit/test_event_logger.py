from utils.event_logger import EventLogger, EventType


def test_events_are_kept_in_history():
    logger = EventLogger(debug_mode=False)
    logger.agent_start("task")
    logger.action_success("click_at", "Clicked")

    assert [e.event_type for e in logger.history] == [EventType.AGENT_START, EventType.ACTION_SUCCESS]
    assert logger.events_of(EventType.ACTION_SUCCESS)[0].details["action"] == "click_at"


def test_history_is_bounded():
    logger = EventLogger(debug_mode=False, max_history=3)
    for i in range(5):
        logger.system_info(f"message {i}")

    assert [e.message for e in logger.history] == ["message 2", "message 3", "message 4"]


def test_failing_callback_does_not_break_logging():
    logger = EventLogger(debug_mode=False)
    received = []

    def broken(event):
        raise RuntimeError("callback bug")

    logger.register_callback(broken)
    logger.register_callback(received.append)
    logger.agent_iteration(1, 10, url="https://example.com")

    assert received[0].message == "Iteration 1/10 - https://example.com"


def test_unregistered_callback_stops_receiving():
    logger = EventLogger(debug_mode=False)
    received = []
    logger.register_callback(received.append)
    logger.unregister_callback(received.append)
    logger.system_debug("quiet")

    assert received == []


def test_debug_mode_prints(capsys):
    logger = EventLogger(debug_mode=True)
    logger.agent_cancelled("user pressed stop")

    assert "Task cancelled: user pressed stop" in capsys.readouterr().out
