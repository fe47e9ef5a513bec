from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ValidationError

from mockexam.api.errors import to_http_exception
from mockexam.models.exam_session import SessionSnapshot
from mockexam.models.feedback import FeedbackReport, WritingFeedbackRequest
from mockexam.services.exam_service import ExamService, get_exam_service
from mockexam.services.feedback_service import FeedbackService, get_feedback_service
from mockexam.utils.exceptions import ExamError

router = APIRouter()


class CreateSessionRequest(BaseModel):
    catalog_code: str


class GoToQuestionRequest(BaseModel):
    question_number: int


class RecordAnswerRequest(BaseModel):
    section_id: str
    question_number: int
    value: str


class FeedbackForAnswerRequest(BaseModel):
    section_id: str
    question_number: int


@router.get("/catalogs")
async def list_catalogs(exam_service: ExamService = Depends(get_exam_service)):
    """Get available exam presets"""
    catalogs = exam_service.catalog_service.list_catalogs()
    return {
        "catalogs": [
            {
                "code": catalog.code,
                "title": catalog.title,
                "test_type": catalog.test_type.value,
                "section_count": len(catalog.sections),
                "total_duration_seconds": catalog.total_duration_seconds,
            }
            for catalog in catalogs
        ]
    }


@router.get("/catalogs/{code}")
async def get_catalog(code: str, exam_service: ExamService = Depends(get_exam_service)):
    """Get a specific exam preset with its sections and tasks"""
    try:
        return exam_service.catalog_service.get_catalog(code)
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session", response_model=SessionSnapshot)
async def create_session(
    request: CreateSessionRequest,
    exam_service: ExamService = Depends(get_exam_service),
):
    """Create a new exam session (not started yet)"""
    try:
        session = exam_service.create_session(request.catalog_code)
    except ExamError as e:
        raise to_http_exception(e)
    return session.snapshot()


@router.get("/session/{session_id}", response_model=SessionSnapshot)
async def get_session(
    session_id: str, exam_service: ExamService = Depends(get_exam_service)
):
    """Get session state"""
    try:
        return exam_service.get_session(session_id).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/start", response_model=SessionSnapshot)
async def start_session(
    session_id: str, exam_service: ExamService = Depends(get_exam_service)
):
    """Start the exam clock"""
    try:
        return exam_service.start(session_id).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/tick", response_model=SessionSnapshot)
async def tick_session(
    session_id: str, exam_service: ExamService = Depends(get_exam_service)
):
    """Advance the clock by one second (for clients driving their own timer)"""
    try:
        return exam_service.tick(session_id).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/advance", response_model=SessionSnapshot)
async def advance_section(
    session_id: str, exam_service: ExamService = Depends(get_exam_service)
):
    """Move to the next section; on the last section this submits the exam"""
    try:
        return exam_service.advance_section(session_id).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/question", response_model=SessionSnapshot)
async def go_to_question(
    session_id: str,
    request: GoToQuestionRequest,
    exam_service: ExamService = Depends(get_exam_service),
):
    try:
        return exam_service.go_to_question(
            session_id, request.question_number
        ).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/answer", response_model=SessionSnapshot)
async def record_answer(
    session_id: str,
    request: RecordAnswerRequest,
    exam_service: ExamService = Depends(get_exam_service),
):
    try:
        return exam_service.record_answer(
            session_id, request.section_id, request.question_number, request.value
        ).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/end", response_model=SessionSnapshot)
async def end_session(
    session_id: str, exam_service: ExamService = Depends(get_exam_service)
):
    """End an exam session (mark as completed)"""
    try:
        return exam_service.end_session(session_id).snapshot()
    except ExamError as e:
        raise to_http_exception(e)


@router.delete("/session/{session_id}", status_code=204)
async def discard_session(
    session_id: str, exam_service: ExamService = Depends(get_exam_service)
):
    try:
        exam_service.discard_session(session_id)
    except ExamError as e:
        raise to_http_exception(e)


@router.post("/session/{session_id}/feedback", response_model=FeedbackReport)
async def feedback_for_answer(
    session_id: str,
    request: FeedbackForAnswerRequest,
    exam_service: ExamService = Depends(get_exam_service),
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    """Score a finished writing or speaking task of this session"""
    try:
        feedback_request = exam_service.build_feedback_request(
            session_id, request.section_id, request.question_number
        )
    except ExamError as e:
        raise to_http_exception(e)
    except ValidationError as e:
        # e.g. a written answer too short to be assessed
        raise HTTPException(status_code=422, detail=str(e))

    if isinstance(feedback_request, WritingFeedbackRequest):
        return await feedback_service.evaluate_writing(feedback_request)
    return await feedback_service.evaluate_speaking(feedback_request)
