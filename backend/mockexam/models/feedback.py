from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from mockexam.models.catalog import ProficiencyTest


class WritingFeedbackRequest(BaseModel):
    response: str = Field(min_length=10)
    test_type: ProficiencyTest
    task_type: str
    prompt: str
    target_word_count: Optional[int] = None
    time_spent_seconds: Optional[int] = None


class SpeakingFeedbackRequest(BaseModel):
    transcript: str = Field(min_length=1)
    test_type: ProficiencyTest
    task_type: str
    prompt: str
    duration_seconds: float = Field(gt=0)
    target_duration_seconds: Optional[float] = None


class CriterionScore(BaseModel):
    score: float
    feedback: str
    suggestions: List[str] = []


class DetailedFeedback(BaseModel):
    strengths: List[str] = []
    areas_for_improvement: List[str] = []
    specific_suggestions: List[str] = []


class FeedbackReport(BaseModel):
    overall_score: float
    band_score: str
    readiness: str
    word_count: int
    time_spent_seconds: Optional[float] = None
    length_recommendation: str
    criteria: Dict[str, CriterionScore]
    detailed_feedback: DetailedFeedback
    improvement_points: List[str] = []
    corrected_version: Optional[str] = None
    source: str  # "ai" or "fallback"
