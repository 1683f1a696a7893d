"""
Simple, robust event-driven logging system for the browser task agent.

Design principles:
- Non-blocking: logging errors never break the agent loop
- Simple: minimal API surface
- Flexible: easy to customize output via callbacks
"""
from enum import Enum
from typing import Any, Dict, List, Optional, Callable
from dataclasses import dataclass, field
from datetime import datetime
import time


class EventType(str, Enum):
    """All event types that can be logged"""
    # Agent events
    AGENT_START = "agent_start"
    AGENT_ITERATION = "agent_iteration"
    AGENT_COMPLETE = "agent_complete"
    AGENT_ERROR = "agent_error"
    AGENT_CANCELLED = "agent_cancelled"
    CONFIRMATION_REQUIRED = "confirmation_required"

    # Model events
    MODEL_REQUEST = "model_request"
    MODEL_TEXT = "model_text"

    # Action events
    ACTION_START = "action_start"
    ACTION_SUCCESS = "action_success"
    ACTION_SKIPPED = "action_skipped"
    ACTION_FAILURE = "action_failure"

    # Session events
    SESSION_CONNECT = "session_connect"
    SESSION_RETRY = "session_retry"

    # Task timing
    TASK_TIMING = "task_timing"

    # System events
    SYSTEM_INFO = "system_info"
    SYSTEM_WARNING = "system_warning"
    SYSTEM_ERROR = "system_error"
    SYSTEM_DEBUG = "system_debug"


@dataclass
class BotEvent:
    """Structured event data"""
    event_type: EventType
    message: str
    timestamp: float = field(default_factory=time.time)
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, SUCCESS
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "event_type": self.event_type.value,
            "message": self.message,
            "timestamp": self.timestamp,
            "timestamp_iso": datetime.fromtimestamp(self.timestamp).isoformat(),
            "level": self.level,
            "details": self.details
        }


class EventLogger:
    """
    Simple, robust event logger.

    In debug mode: prints directly to console
    In normal mode: only calls callbacks (no prints)
    """

    def __init__(self, debug_mode: bool = True, max_history: int = 1000):
        self.debug_mode = debug_mode
        self._callbacks: List[Callable[[BotEvent], None]] = []
        self._event_history: List[BotEvent] = []
        self._max_history = max_history

    def register_callback(self, callback: Callable[[BotEvent], None]) -> None:
        """Register a callback for all events"""
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def unregister_callback(self, callback: Callable[[BotEvent], None]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    @property
    def history(self) -> List[BotEvent]:
        return list(self._event_history)

    def events_of(self, event_type: EventType) -> List[BotEvent]:
        return [event for event in self._event_history if event.event_type == event_type]

    def _safe_emit(self, event: BotEvent) -> None:
        """Safely emit an event - never raises exceptions"""
        try:
            self._event_history.append(event)
            if len(self._event_history) > self._max_history:
                self._event_history.pop(0)
        except Exception:
            pass  # Ignore history errors

        if self.debug_mode:
            try:
                self._print_event(event)
            except Exception:
                pass  # Ignore print errors

        for callback in list(self._callbacks):
            try:
                callback(event)
            except Exception:
                pass  # Ignore callback errors

    def _print_event(self, event: BotEvent) -> None:
        """Print event in debug mode"""
        level_emoji = {
            "DEBUG": "🔍",
            "INFO": "ℹ️",
            "WARNING": "⚠️",
            "ERROR": "❌",
            "SUCCESS": "✅"
        }
        emoji = level_emoji.get(event.level, "•")
        print(f"{emoji} {event.message}")

        if event.details:
            for key, value in event.details.items():
                if value is not None and key not in ['timestamp', 'timestamp_iso']:
                    if isinstance(value, (str, int, float, bool)):
                        print(f"   {key}: {value}")

    def emit(self, event_type: EventType, message: str, level: str = "INFO", **details) -> None:
        """Emit an event - safe wrapper that never raises"""
        try:
            event = BotEvent(
                event_type=event_type,
                message=message,
                level=level,
                details=details
            )
            self._safe_emit(event)
        except Exception:
            if self.debug_mode:
                try:
                    print(f"⚠️ Event logger error: {message}")
                except Exception:
                    pass

    # Convenience methods - all wrapped in try/except for safety
    def agent_start(self, task: str, **details):
        try:
            self.emit(EventType.AGENT_START, f"Starting browser task: {task}", "INFO", task=task, **details)
        except Exception:
            pass

    def agent_iteration(self, iteration: int, max_iterations: int, url: str = None, **details):
        try:
            msg = f"Iteration {iteration}/{max_iterations}"
            if url:
                msg += f" - {url}"
            self.emit(EventType.AGENT_ITERATION, msg, "INFO",
                      iteration=iteration, max_iterations=max_iterations, url=url, **details)
        except Exception:
            pass

    def agent_complete(self, result: str = None, iterations: int = None, **details):
        try:
            msg = "Task completed"
            if iterations is not None:
                msg += f" after {iterations} iteration(s)"
            self.emit(EventType.AGENT_COMPLETE, msg, "SUCCESS", result=result, iterations=iterations, **details)
        except Exception:
            pass

    def agent_error(self, message: str, error: Exception = None, **details):
        try:
            msg = message
            if error:
                msg += f" - {error}"
            self.emit(EventType.AGENT_ERROR, msg, "ERROR",
                      error=str(error) if error else None,
                      error_type=type(error).__name__ if error else None,
                      **details)
        except Exception:
            pass

    def agent_cancelled(self, reason: str = None, **details):
        try:
            msg = "Task cancelled"
            if reason:
                msg += f": {reason}"
            self.emit(EventType.AGENT_CANCELLED, msg, "WARNING", reason=reason, **details)
        except Exception:
            pass

    def confirmation_required(self, action: str, explanation: str = None, skipped_calls: int = 0, **details):
        try:
            msg = f"Action '{action}' requires confirmation; halting remaining actions in this turn"
            if explanation:
                msg += f"\n   Reason: {explanation}"
            self.emit(EventType.CONFIRMATION_REQUIRED, msg, "WARNING",
                      action=action, explanation=explanation, skipped_calls=skipped_calls, **details)
        except Exception:
            pass

    def model_request(self, turns: int, **details):
        try:
            self.emit(EventType.MODEL_REQUEST, f"Sending {turns} turn(s) to model", "DEBUG", turns=turns, **details)
        except Exception:
            pass

    def model_text(self, text: str, **details):
        try:
            self.emit(EventType.MODEL_TEXT, f"Model: {text}", "INFO", text=text, **details)
        except Exception:
            pass

    def action_start(self, action: str, args: dict = None, **details):
        try:
            msg = f"Executing action: {action}"
            if args:
                msg += f" {args}"
            self.emit(EventType.ACTION_START, msg, "INFO", action=action, **details)
        except Exception:
            pass

    def action_success(self, action: str, message: str = None, **details):
        try:
            msg = f"{action}: {message}" if message else action
            self.emit(EventType.ACTION_SUCCESS, msg, "SUCCESS", action=action, **details)
        except Exception:
            pass

    def action_skipped(self, action: str, message: str = None, **details):
        try:
            msg = f"Skipped {action}"
            if message:
                msg += f": {message}"
            self.emit(EventType.ACTION_SKIPPED, msg, "WARNING", action=action, **details)
        except Exception:
            pass

    def action_failure(self, action: str, error: str = None, **details):
        try:
            msg = f"Error executing action {action}"
            if error:
                msg += f": {error}"
            self.emit(EventType.ACTION_FAILURE, msg, "ERROR", action=action, error=error, **details)
        except Exception:
            pass

    def session_connect(self, mode: str, endpoint: str = None, **details):
        try:
            msg = f"Browser session ready ({mode})"
            if endpoint:
                msg += f" at {endpoint}"
            self.emit(EventType.SESSION_CONNECT, msg, "INFO", mode=mode, endpoint=endpoint, **details)
        except Exception:
            pass

    def session_retry(self, attempt: int, max_attempts: int, error: Exception = None, **details):
        try:
            msg = f"Error getting browser (attempt {attempt}/{max_attempts})"
            if error:
                msg += f": {error}"
            self.emit(EventType.SESSION_RETRY, msg, "ERROR",
                      attempt=attempt, max_attempts=max_attempts,
                      error=str(error) if error else None, **details)
        except Exception:
            pass

    def task_timing(self, seconds: float, **details):
        try:
            self.emit(EventType.TASK_TIMING, f"Task finished in {seconds:.1f} seconds.", "INFO", seconds=seconds, **details)
        except Exception:
            pass

    def system_info(self, message: str, **details):
        try:
            self.emit(EventType.SYSTEM_INFO, message, "INFO", **details)
        except Exception:
            pass

    def system_warning(self, message: str, **details):
        try:
            self.emit(EventType.SYSTEM_WARNING, message, "WARNING", **details)
        except Exception:
            pass

    def system_error(self, message: str, error: Exception = None, **details):
        try:
            msg = message
            if error:
                msg += f" - {str(error)}"
            self.emit(EventType.SYSTEM_ERROR, msg, "ERROR", error=str(error) if error else None, **details)
        except Exception:
            pass

    def system_debug(self, message: str, **details):
        try:
            self.emit(EventType.SYSTEM_DEBUG, message, "DEBUG", **details)
        except Exception:
            pass


# Global instance
_global_event_logger: Optional[EventLogger] = None

def get_event_logger() -> EventLogger:
    """Get the global event logger instance"""
    global _global_event_logger
    if _global_event_logger is None:
        _global_event_logger = EventLogger(debug_mode=True)
    return _global_event_logger

def set_event_logger(logger: EventLogger) -> None:
    """Set the global event logger instance"""
    global _global_event_logger
    _global_event_logger = logger
