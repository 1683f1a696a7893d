"""
Agent loop components for model-driven browser tasks.
"""

from .agent_controller import AgentController, COMPLETION_FALLBACK
from .agent_task import AgentTask, TaskState, TERMINAL_STATES

__all__ = [
    "AgentController",
    "AgentTask",
    "TaskState",
    "TERMINAL_STATES",
    "COMPLETION_FALLBACK",
]
