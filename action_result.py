"""
ActionOutcome - Structured return type for a single executed function call.
"""
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class ActionOutcome:
    """
    Result of executing one function call against the browser.

    Attributes:
        status: success, skipped (safety gate) or error
        message: Human-readable description sent back to the model
        data: Read-only action-specific values (resolved pixel coordinates, url, ...)
        requires_confirmation: True when the safety gate held the action back

    Example:
        >>> outcome = executor.execute(call)
        >>> if outcome.requires_confirmation:
        ...     print(outcome.message)
    """
    status: OutcomeStatus
    message: str = ""
    data: Mapping[str, Any] = field(default_factory=dict)
    requires_confirmation: bool = False

    def __post_init__(self):
        # Read-only view over a private copy
        object.__setattr__(self, "data", MappingProxyType(dict(self.data)))

    @classmethod
    def success(cls, message: str, **data: Any) -> "ActionOutcome":
        return cls(status=OutcomeStatus.SUCCESS, message=message, data=data)

    @classmethod
    def skipped(cls, message: str, requires_confirmation: bool = True, **data: Any) -> "ActionOutcome":
        return cls(
            status=OutcomeStatus.SKIPPED,
            message=message,
            data=data,
            requires_confirmation=requires_confirmation,
        )

    def __bool__(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS

    def __repr__(self) -> str:
        flag = ", requires_confirmation" if self.requires_confirmation else ""
        return f"ActionOutcome({self.status.value}, message='{self.message}'{flag})"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "status": self.status.value,
            "message": self.message,
            "data": dict(self.data),
            "requires_confirmation": self.requires_confirmation,
        }
