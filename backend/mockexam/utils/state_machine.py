import logging
from enum import Enum
from typing import Dict, Set

from mockexam.utils.exceptions import InvalidStateError

logger = logging.getLogger(__name__)


class ExamState(Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    COMPLETED = "completed"


class ExamStateMachine:
    """State machine for exam flow"""

    def __init__(self):
        self.current_state = ExamState.NOT_STARTED
        self._transitions: Dict[ExamState, Set[ExamState]] = {
            ExamState.NOT_STARTED: {ExamState.RUNNING, ExamState.COMPLETED},
            ExamState.RUNNING: {ExamState.COMPLETED},
            ExamState.COMPLETED: set(),
        }

    def can_transition(self, target_state: ExamState) -> bool:
        """Check if transition to target state is allowed"""
        allowed = self._transitions.get(self.current_state, set())
        return target_state in allowed

    def transition(self, target_state: ExamState) -> bool:
        """Attempt to transition to target state"""
        if self.can_transition(target_state):
            logger.debug(
                "Exam state %s -> %s", self.current_state.value, target_state.value
            )
            self.current_state = target_state
            return True
        return False

    def require(self, expected_state: ExamState, operation: str) -> None:
        """Raise InvalidStateError unless the machine is in expected_state"""
        if self.current_state is not expected_state:
            raise InvalidStateError(
                f"Cannot {operation} while exam is {self.current_state.value}"
            )

    def get_state(self) -> ExamState:
        """Get current state"""
        return self.current_state
