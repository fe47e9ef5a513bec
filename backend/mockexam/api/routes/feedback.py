from fastapi import APIRouter, Depends

from mockexam.models.feedback import (
    FeedbackReport,
    SpeakingFeedbackRequest,
    WritingFeedbackRequest,
)
from mockexam.services.feedback_service import FeedbackService, get_feedback_service

router = APIRouter()


@router.post("/writing", response_model=FeedbackReport)
async def writing_feedback(
    request: WritingFeedbackRequest,
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    """Evaluate a written response and return a score report"""
    return await feedback_service.evaluate_writing(request)


@router.post("/speaking", response_model=FeedbackReport)
async def speaking_feedback(
    request: SpeakingFeedbackRequest,
    feedback_service: FeedbackService = Depends(get_feedback_service),
):
    """Evaluate a spoken response transcript and return a score report"""
    return await feedback_service.evaluate_speaking(request)
