import logging
from functools import lru_cache
from typing import Dict, Optional, Union

from mockexam.config import get_settings
from mockexam.models.catalog import ExamCatalog, TaskMode
from mockexam.models.exam_session import AnswerKey, ExamSession
from mockexam.models.feedback import SpeakingFeedbackRequest, WritingFeedbackRequest
from mockexam.services.catalog_service import CatalogService
from mockexam.utils.exceptions import (
    InvalidStateError,
    OutOfRangeError,
    SessionNotFoundError,
)
from mockexam.utils.state_machine import ExamState

logger = logging.getLogger(__name__)


class ExamService:
    """Keeps one isolated ExamSession per attempt, keyed by session ID"""

    def __init__(self, catalog_service: Optional[CatalogService] = None):
        self.catalog_service = catalog_service or CatalogService(
            get_settings().section_catalog_path
        )
        self.sessions: Dict[str, ExamSession] = {}

    def create_session(self, catalog_code: str) -> ExamSession:
        """Create a new exam session from a catalog preset"""
        catalog = self.catalog_service.get_catalog(catalog_code)
        session = ExamSession(catalog.sections, catalog_code=catalog.code)
        self.sessions[session.session_id] = session
        logger.info("Created session %s for %s", session.session_id, catalog.code)
        return session

    def get_session(self, session_id: str) -> ExamSession:
        """Get session by ID"""
        session = self.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session {session_id} not found")
        return session

    def get_catalog_for(self, session: ExamSession) -> ExamCatalog:
        return self.catalog_service.get_catalog(session.catalog_code)

    def start(self, session_id: str) -> ExamSession:
        session = self.get_session(session_id)
        session.start()
        return session

    def tick(self, session_id: str) -> ExamSession:
        session = self.get_session(session_id)
        session.tick()
        return session

    def advance_section(self, session_id: str) -> ExamSession:
        session = self.get_session(session_id)
        session.advance_section()
        return session

    def go_to_question(self, session_id: str, question_number: int) -> ExamSession:
        session = self.get_session(session_id)
        session.go_to_question(question_number)
        return session

    def record_answer(
        self, session_id: str, section_id: str, question_number: int, value: str
    ) -> ExamSession:
        session = self.get_session(session_id)
        # Raises OutOfRangeError for unknown sections
        section = session.sections[session.section_index(section_id)]
        if not 1 <= question_number <= section.question_count:
            raise OutOfRangeError(
                f"Question {question_number} outside 1..{section.question_count} "
                f"in section {section_id}"
            )
        session.record_answer(AnswerKey(section_id, question_number), value)
        return session

    def end_session(self, session_id: str) -> ExamSession:
        """End a session (explicit submit)"""
        session = self.get_session(session_id)
        session.complete()
        return session

    def discard_session(self, session_id: str) -> None:
        """Forget a session; nothing is persisted"""
        self.get_session(session_id)
        del self.sessions[session_id]
        logger.info("Discarded session %s", session_id)

    def build_feedback_request(
        self, session_id: str, section_id: str, question_number: int
    ) -> Union[WritingFeedbackRequest, SpeakingFeedbackRequest]:
        """
        Assemble the feedback payload for one free-text answer.

        Only allowed once the task is over: the session has completed, or the
        task's section lies before the current section.
        """
        session = self.get_session(session_id)
        section_index = session.section_index(section_id)
        task_over = (
            session.status is ExamState.COMPLETED
            or section_index < session.current_section_index
        )
        if not task_over:
            raise InvalidStateError(
                f"Section {section_id} is still open; feedback is available after it ends"
            )

        catalog = self.get_catalog_for(session)
        task = catalog.get_task(section_id, question_number)
        if task is None:
            raise OutOfRangeError(
                f"No free-text task for {section_id} question {question_number}"
            )

        answer = session.answer_for(AnswerKey(section_id, question_number))
        if answer is None:
            raise OutOfRangeError(
                f"No answer recorded for {section_id} question {question_number}"
            )

        time_spent = session.section_time_spent.get(section_id)
        if task.mode is TaskMode.WRITING:
            return WritingFeedbackRequest(
                response=answer,
                test_type=catalog.test_type,
                task_type=task.task_type,
                prompt=task.prompt,
                target_word_count=task.target_word_count,
                time_spent_seconds=time_spent,
            )

        # Section time is shared by all of its speaking tasks
        if time_spent:
            section_tasks = [t for t in catalog.tasks if t.section_id == section_id]
            duration = time_spent / len(section_tasks)
        else:
            duration = task.target_duration_seconds or 1
        return SpeakingFeedbackRequest(
            transcript=answer,
            test_type=catalog.test_type,
            task_type=task.task_type,
            prompt=task.prompt,
            duration_seconds=duration,
            target_duration_seconds=task.target_duration_seconds,
        )


@lru_cache(maxsize=1)
def get_exam_service() -> ExamService:
    return ExamService()
