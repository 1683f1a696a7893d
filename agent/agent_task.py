"""
AgentTask - Per-invocation state owned by the agent loop.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
import time
import uuid

from models.conversation import ConversationTurn


class TaskState(str, Enum):
    REQUESTING = "requesting"
    DISPATCHING = "dispatching"
    AWAITING_NEXT_ITERATION = "awaiting_next_iteration"
    REQUIRES_CONFIRMATION = "requires_confirmation"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({TaskState.COMPLETED, TaskState.FAILED, TaskState.CANCELLED})


@dataclass
class AgentTask:
    """
    State of one browser task.

    Attributes:
        description: Natural-language task from the caller
        max_iterations: Request/act cycles allowed before the task fails
        iteration_count: Cycles started so far
        conversation: Append-only list of immutable turns
        state: Where the loop currently is
        result: Final model text once COMPLETED
        error: Error description once FAILED or CANCELLED
    """
    description: str
    max_iterations: int = 50
    task_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    iteration_count: int = 0
    conversation: List[ConversationTurn] = field(default_factory=list)
    state: TaskState = TaskState.REQUESTING
    result: Optional[str] = None
    error: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if not self.description or not self.description.strip():
            raise ValueError("description is required")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

    @property
    def is_first_iteration(self) -> bool:
        return self.iteration_count <= 1

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def has_iterations_left(self) -> bool:
        return self.iteration_count < self.max_iterations

    def begin_iteration(self) -> int:
        self.iteration_count += 1
        self.state = TaskState.REQUESTING
        return self.iteration_count

    def append_turn(self, turn: ConversationTurn) -> None:
        """Turns are only ever appended, never edited or removed."""
        if self.is_terminal:
            raise RuntimeError(f"Task {self.task_id} is {self.state.value}; conversation is closed")
        self.conversation.append(turn)

    @property
    def last_turn(self) -> Optional[ConversationTurn]:
        return self.conversation[-1] if self.conversation else None

    def mark_completed(self, result: str) -> None:
        self.state = TaskState.COMPLETED
        self.result = result

    def mark_failed(self, error: Optional[str] = None) -> None:
        self.state = TaskState.FAILED
        self.error = error

    def mark_cancelled(self, reason: Optional[str] = None) -> None:
        self.state = TaskState.CANCELLED
        self.error = reason
