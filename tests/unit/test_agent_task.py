import pytest

from agent.agent_task import AgentTask, TaskState
from models.conversation import ConversationTurn, TextPart


def test_new_task_starts_requesting():
    task = AgentTask(description="Find a flight")

    assert task.state is TaskState.REQUESTING
    assert task.iteration_count == 0
    assert task.conversation == []
    assert task.has_iterations_left


@pytest.mark.parametrize("description", ["", "   "])
def test_description_is_required(description):
    with pytest.raises(ValueError):
        AgentTask(description=description)


def test_max_iterations_must_be_positive():
    with pytest.raises(ValueError):
        AgentTask(description="task", max_iterations=0)


def test_iterations_are_counted_up_to_the_limit():
    task = AgentTask(description="task", max_iterations=2)

    assert task.begin_iteration() == 1
    assert task.is_first_iteration
    assert task.begin_iteration() == 2
    assert not task.is_first_iteration
    assert not task.has_iterations_left


def test_conversation_is_closed_once_terminal():
    task = AgentTask(description="task")
    turn = ConversationTurn.user([TextPart(text="hi")])
    task.append_turn(turn)
    task.mark_completed("Done")

    assert task.is_terminal
    assert task.last_turn is turn
    with pytest.raises(RuntimeError):
        task.append_turn(turn)


def test_cancelled_is_distinct_from_failed():
    task = AgentTask(description="task")
    task.mark_cancelled("stop")

    assert task.state is TaskState.CANCELLED
    assert task.error == "stop"
