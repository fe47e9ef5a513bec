import pytest

from mockexam.utils.exceptions import InvalidStateError
from mockexam.utils.state_machine import ExamState, ExamStateMachine
from mockexam.utils.time_format import format_clock


def test_forward_transitions_are_allowed():
    machine = ExamStateMachine()

    assert machine.transition(ExamState.RUNNING)
    assert machine.transition(ExamState.COMPLETED)
    assert machine.get_state() is ExamState.COMPLETED


def test_no_regressions():
    machine = ExamStateMachine()
    machine.transition(ExamState.RUNNING)

    assert not machine.can_transition(ExamState.NOT_STARTED)
    assert not machine.transition(ExamState.NOT_STARTED)
    assert machine.get_state() is ExamState.RUNNING


def test_completed_is_terminal():
    machine = ExamStateMachine()
    machine.transition(ExamState.COMPLETED)

    assert not machine.transition(ExamState.RUNNING)


def test_require_names_the_operation():
    machine = ExamStateMachine()

    with pytest.raises(InvalidStateError, match="tick while exam is not_started"):
        machine.require(ExamState.RUNNING, "tick")


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "00:00:00"), (59, "00:00:59"), (3661, "01:01:01"), (10800, "03:00:00"), (-5, "00:00:00")],
)
def test_format_clock(seconds, expected):
    assert format_clock(seconds) == expected
