"""
Structured error handling for the browser task agent.

Errors fall into two families:
- ActionError and its subclasses are local to one function call. The agent
  loop reports them back to the model and keeps going.
- Everything else derived from BotError is fatal for the task.

TaskCancelledError sits outside the BotError tree; a cancelled task has not
failed.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class RecoveryStrategy(Enum):
    """How the agent loop reacts to an error."""
    REPORT = "report"   # tell the model, continue the task
    RETRY = "retry"
    ABORT = "abort"


@dataclass
class ErrorContext:
    """
    Context information about an error.

    Captures the action and browser state the error happened in.
    """

    error_type: str
    message: str
    timestamp: datetime = field(default_factory=datetime.now)

    # Browser state
    page_url: Optional[str] = None

    # Action context
    action_name: Optional[str] = None
    action_args: Optional[Dict[str, Any]] = None

    # Loop context
    iteration: Optional[int] = None

    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'error_type': self.error_type,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
            'page_url': self.page_url,
            'action_name': self.action_name,
            'action_args': self.action_args,
            'iteration': self.iteration,
            'metadata': self.metadata,
        }


class BotError(Exception):
    """
    Base exception for all agent errors.

    All custom exceptions except TaskCancelledError inherit from this.
    """

    severity: ErrorSeverity = ErrorSeverity.MEDIUM
    recovery_strategy: RecoveryStrategy = RecoveryStrategy.ABORT

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        **kwargs
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(
            error_type=self.__class__.__name__,
            message=message
        )

        # Allow overriding context fields
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)

    @property
    def is_fatal(self) -> bool:
        return self.recovery_strategy is RecoveryStrategy.ABORT


# ==================== Per-action errors ====================

class ActionError(BotError):
    """A single function call could not be carried out."""
    severity = ErrorSeverity.LOW
    recovery_strategy = RecoveryStrategy.REPORT


class InvalidCoordinateError(ActionError):
    """Coordinate is not a finite number."""


class InvalidArgumentError(ActionError):
    """A function call argument is missing or has the wrong type."""


class UnsupportedActionError(ActionError):
    """The model asked for an action outside the known vocabulary."""


class ActionExecutionError(ActionError):
    """The browser failed while performing a recognized action."""
    severity = ErrorSeverity.MEDIUM


# ==================== Fatal errors ====================

class BrowserSessionError(BotError):
    """The browser stopped answering outside of an action, e.g. a screenshot or reset failed."""
    severity = ErrorSeverity.HIGH


class SessionAcquisitionError(BrowserSessionError):
    """No browser session could be attached or launched."""
    severity = ErrorSeverity.CRITICAL


class LLMError(BotError):
    """Model call did not produce a usable turn."""
    severity = ErrorSeverity.HIGH


class ModelBlockedError(LLMError):
    """The prompt was blocked by the model's safety filters."""

    def __init__(self, message: str, block_reason: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.block_reason = block_reason


class EmptyModelResponseError(LLMError):
    """The model returned no candidate content."""


class IterationLimitExceededError(BotError):
    """The model did not finish within the iteration budget."""
    severity = ErrorSeverity.HIGH

    def __init__(self, max_iterations: int, **kwargs):
        super().__init__(
            f"Max iterations ({max_iterations}) reached without completing task",
            **kwargs
        )
        self.max_iterations = max_iterations


class ConfigurationError(BotError):
    """Invalid configuration."""
    severity = ErrorSeverity.CRITICAL


# ==================== Cancellation ====================

class TaskCancelledError(Exception):
    """The caller cancelled the task."""

    def __init__(self, message: str = "Task was cancelled"):
        super().__init__(message)
        self.message = message
