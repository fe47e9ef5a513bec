import logging
import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from mockexam.models.catalog import Section
from mockexam.utils.exceptions import EmptyCatalogError, OutOfRangeError
from mockexam.utils.state_machine import ExamState, ExamStateMachine
from mockexam.utils.time_format import format_clock

logger = logging.getLogger(__name__)


class CompletionReason(Enum):
    SUBMITTED = "submitted"
    TIME_EXPIRED = "time_expired"
    SECTIONS_EXHAUSTED = "sections_exhausted"


class AnswerKey(NamedTuple):
    section_id: str
    question_number: int


KeyLike = Union[AnswerKey, Tuple[str, int]]


class AnswerStore:
    """Answers keyed by (section_id, question_number), last write wins"""

    def __init__(self):
        self._answers: Dict[AnswerKey, str] = {}

    def upsert(self, key: KeyLike, value: str) -> None:
        self._answers[AnswerKey(*key)] = value

    def get(self, key: KeyLike) -> Optional[str]:
        return self._answers.get(AnswerKey(*key))

    def count_in(self, section_ids: Iterable[str]) -> int:
        wanted = set(section_ids)
        return sum(1 for key in self._answers if key.section_id in wanted)

    def items(self) -> List[Tuple[AnswerKey, str]]:
        return list(self._answers.items())

    def __len__(self) -> int:
        return len(self._answers)


class AnswerEntry(BaseModel):
    section_id: str
    question_number: int
    value: str


class SessionSnapshot(BaseModel):
    """Read-only view of a session handed to the presentation layer"""

    session_id: str
    catalog_code: Optional[str] = None
    created_at: datetime
    status: ExamState
    completion_reason: Optional[CompletionReason] = None
    current_section_index: int
    current_section_id: str
    current_question_number: int
    total_remaining_seconds: int
    section_remaining_seconds: int
    total_remaining_display: str
    section_remaining_display: str
    elapsed_seconds: int
    answered_count: int
    answers: List[AnswerEntry]


class ExamSession:
    """
    One timed, multi-section exam attempt.

    The session never schedules anything itself: an external driver calls
    tick() once per second while the session is running. Sections only move
    forward, and total-time exhaustion wins over section exhaustion when both
    happen on the same tick.
    """

    def __init__(
        self,
        sections: Sequence[Section],
        session_id: Optional[str] = None,
        catalog_code: Optional[str] = None,
    ):
        if not sections:
            raise EmptyCatalogError("An exam session needs at least one section")

        self.session_id = session_id or str(uuid.uuid4())
        self.catalog_code = catalog_code
        self.created_at = datetime.now()
        self.sections: Tuple[Section, ...] = tuple(sections)
        self.state_machine = ExamStateMachine()
        self.answers = AnswerStore()
        self.completion_reason: Optional[CompletionReason] = None
        self.section_time_spent: Dict[str, int] = {}

        self.current_section_index = 0
        self.current_question_number = 1
        self.total_duration_seconds = sum(s.duration_seconds for s in self.sections)
        self.total_remaining_seconds = self.total_duration_seconds
        self.section_remaining_seconds = self.sections[0].duration_seconds

    @property
    def status(self) -> ExamState:
        return self.state_machine.get_state()

    @property
    def current_section(self) -> Section:
        return self.sections[self.current_section_index]

    @property
    def elapsed_seconds(self) -> int:
        return self.total_duration_seconds - self.total_remaining_seconds

    def start(self) -> None:
        """Start the exam clock on the first section"""
        self.state_machine.require(ExamState.NOT_STARTED, "start")
        self.state_machine.transition(ExamState.RUNNING)
        self.section_remaining_seconds = self.sections[0].duration_seconds
        logger.info(
            "Session %s started: %d sections, %ds total",
            self.session_id,
            len(self.sections),
            self.total_remaining_seconds,
        )

    def tick(self) -> None:
        """Advance the clock by one second"""
        self.state_machine.require(ExamState.RUNNING, "tick")
        self.total_remaining_seconds = max(0, self.total_remaining_seconds - 1)
        self.section_remaining_seconds = max(0, self.section_remaining_seconds - 1)

        if self.total_remaining_seconds == 0:
            self.complete(CompletionReason.TIME_EXPIRED)
            return
        if self.section_remaining_seconds == 0:
            self.advance_section()

    def advance_section(self) -> None:
        """Move to the next section, or finish the exam from the last one"""
        self.state_machine.require(ExamState.RUNNING, "advance section")
        if self.current_section_index == len(self.sections) - 1:
            self.complete(CompletionReason.SECTIONS_EXHAUSTED)
            return

        self._record_section_time()
        self.current_section_index += 1
        self.current_question_number = 1
        self.section_remaining_seconds = self.current_section.duration_seconds
        logger.info(
            "Session %s entered section %s", self.session_id, self.current_section.id
        )

    def go_to_question(self, question_number: int) -> None:
        """Move the question pointer within the current section"""
        self.state_machine.require(ExamState.RUNNING, "navigate")
        question_count = self.current_section.question_count
        if not 1 <= question_number <= question_count:
            raise OutOfRangeError(
                f"Question {question_number} outside 1..{question_count} "
                f"in section {self.current_section.id}"
            )
        self.current_question_number = question_number

    def record_answer(self, question_id: KeyLike, value: str) -> None:
        self.state_machine.require(ExamState.RUNNING, "record an answer")
        self.answers.upsert(question_id, value)

    def answer_for(self, question_id: KeyLike) -> Optional[str]:
        return self.answers.get(question_id)

    def complete(self, reason: CompletionReason = CompletionReason.SUBMITTED) -> None:
        """Finish the exam; later calls are no-ops"""
        if self.status is ExamState.COMPLETED:
            return

        was_running = self.status is ExamState.RUNNING
        self.state_machine.transition(ExamState.COMPLETED)
        self.completion_reason = reason
        if was_running:
            self._record_section_time()
        logger.info("Session %s completed (%s)", self.session_id, reason.value)

    def answered_count(self) -> int:
        """Count answers in the current section and the ones before it"""
        reached = (s.id for s in self.sections[: self.current_section_index + 1])
        return self.answers.count_in(reached)

    def section_index(self, section_id: str) -> int:
        for index, section in enumerate(self.sections):
            if section.id == section_id:
                return index
        raise OutOfRangeError(f"Unknown section {section_id}")

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            session_id=self.session_id,
            catalog_code=self.catalog_code,
            created_at=self.created_at,
            status=self.status,
            completion_reason=self.completion_reason,
            current_section_index=self.current_section_index,
            current_section_id=self.current_section.id,
            current_question_number=self.current_question_number,
            total_remaining_seconds=self.total_remaining_seconds,
            section_remaining_seconds=self.section_remaining_seconds,
            total_remaining_display=format_clock(self.total_remaining_seconds),
            section_remaining_display=format_clock(self.section_remaining_seconds),
            elapsed_seconds=self.elapsed_seconds,
            answered_count=self.answered_count(),
            answers=[
                AnswerEntry(
                    section_id=key.section_id,
                    question_number=key.question_number,
                    value=value,
                )
                for key, value in self.answers.items()
            ],
        )

    def _record_section_time(self) -> None:
        section = self.current_section
        self.section_time_spent[section.id] = (
            section.duration_seconds - self.section_remaining_seconds
        )
