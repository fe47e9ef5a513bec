import json
import logging
from functools import lru_cache
from typing import Dict, List, Optional

from openai import AsyncOpenAI, OpenAIError

from mockexam.config import Settings, get_settings
from mockexam.models.catalog import ProficiencyTest
from mockexam.models.feedback import (
    CriterionScore,
    DetailedFeedback,
    FeedbackReport,
    SpeakingFeedbackRequest,
    WritingFeedbackRequest,
)
from mockexam.services.band_mapper import BandMapper

logger = logging.getLogger(__name__)

WRITING_CRITERIA = [
    "task_response",
    "coherence_cohesion",
    "lexical_resource",
    "grammatical_accuracy",
]
SPEAKING_CRITERIA = ["fluency", "pronunciation", "vocabulary", "grammar"]

TEST_CRITERIA_NOTES = {
    ProficiencyTest.IELTS: """IELTS Assessment Criteria:
- Task Response: Addresses all parts of task, clear position, relevant ideas, appropriate length
- Coherence & Cohesion: Logical organization, clear progression, appropriate linking devices
- Lexical Resource: Range of vocabulary, accuracy, appropriateness, spelling
- Grammatical Range & Accuracy: Sentence variety, accuracy, punctuation""",
    ProficiencyTest.TEF: """Critères d'évaluation TEF:
- Contenu: Pertinence et richesse des idées, respect du sujet
- Structure: Organisation logique, progression claire, connecteurs
- Langue: Vocabulaire varié et précis, registre approprié
- Correction: Grammaire, syntaxe, orthographe""",
}

FALLBACK_SUGGESTIONS = {
    ProficiencyTest.IELTS: [
        "Include a clear introduction and conclusion",
        "Support your main points with specific examples",
        "Address all parts of the question fully",
    ],
    ProficiencyTest.TEF: [
        "Respectez la structure demandée (introduction, développement, conclusion)",
        "Utilisez des exemples concrets pour illustrer vos idées",
        "Variez vos expressions et votre vocabulaire",
    ],
    ProficiencyTest.OPIC: [
        "Provide specific details and examples",
        "Use descriptive language to paint a clear picture",
        "Connect your ideas logically",
    ],
}

FALLBACK_FEEDBACK = {
    "task_response": "Your response is relevant to the prompt and shows understanding of the task.",
    "coherence_cohesion": "Your ideas follow a logical order; more varied linking words would improve the flow.",
    "lexical_resource": "Your vocabulary is appropriate for the task, with room for more precise word choice.",
    "grammatical_accuracy": "Your grammar is generally accurate; focus on complex structures.",
    "fluency": "Generally fluent delivery with minor hesitations.",
    "pronunciation": "Your pronunciation is mostly clear and easy to follow.",
    "vocabulary": "Vocabulary is appropriate for the topic but could be more varied.",
    "grammar": "Solid basic grammar; complex structures need more accuracy.",
}


class FeedbackService:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[AsyncOpenAI] = None,
        band_mapper: Optional[BandMapper] = None,
    ):
        self.settings = settings or get_settings()
        self.band_mapper = band_mapper or BandMapper()
        self.openai_client = client
        if self.openai_client is None and self.settings.openai_api_key:
            self.openai_client = AsyncOpenAI(api_key=self.settings.openai_api_key)

    async def evaluate_writing(self, request: WritingFeedbackRequest) -> FeedbackReport:
        """Score a written response, falling back to heuristics without AI"""
        word_count = len(request.response.split())
        target = request.target_word_count
        length_ok = not target or target * 0.8 <= word_count <= target * 1.2

        analysis = None
        if self.openai_client is not None:
            analysis = await self._evaluate_with_ai(
                self._writing_system_prompt(request.test_type, request.task_type),
                f"""Task Prompt: "{request.prompt}"

Student Response ({word_count} words): "{request.response}"

Target Word Count: {target or "Not specified"}

Return your analysis as a valid JSON object only, no additional text.""",
                WRITING_CRITERIA,
            )

        source = "ai"
        if analysis is None:
            source = "fallback"
            base_score = max(4, min(8, word_count // 50 + 4))
            analysis = self._fallback_analysis(
                base_score, WRITING_CRITERIA, request.test_type
            )

        return self._build_report(
            analysis,
            test_type=request.test_type,
            word_count=word_count,
            time_spent_seconds=request.time_spent_seconds,
            length_recommendation=self.band_mapper.length_recommendation(
                word_count, target
            ),
            length_ok=length_ok,
            source=source,
        )

    async def evaluate_speaking(
        self, request: SpeakingFeedbackRequest
    ) -> FeedbackReport:
        """Score a speaking transcript, falling back to heuristics without AI"""
        word_count = len(request.transcript.split())
        target = request.target_duration_seconds
        length_ok = not target or 0.8 <= request.duration_seconds / target <= 1.3

        criteria_names = list(SPEAKING_CRITERIA)
        if request.test_type is ProficiencyTest.IELTS:
            criteria_names.append("task_response")

        analysis = None
        if self.openai_client is not None:
            analysis = await self._evaluate_with_ai(
                self._speaking_system_prompt(
                    request.test_type, request.task_type, criteria_names
                ),
                f"""Task Prompt: "{request.prompt}"

Transcript ({word_count} words, {request.duration_seconds:.0f} seconds): "{request.transcript}"

Return your analysis as a valid JSON object only, no additional text.""",
                criteria_names,
            )

        source = "ai"
        if analysis is None:
            source = "fallback"
            base_score = max(4, min(8, word_count // 40 + 4))
            analysis = self._fallback_analysis(
                base_score, criteria_names, request.test_type
            )
            analysis["criteria"]["fluency"].feedback = self.band_mapper.pace_feedback(
                request.duration_seconds, word_count
            )

        return self._build_report(
            analysis,
            test_type=request.test_type,
            word_count=word_count,
            time_spent_seconds=request.duration_seconds,
            length_recommendation=self.band_mapper.duration_feedback(
                request.duration_seconds, target
            ),
            length_ok=length_ok,
            source=source,
        )

    async def _evaluate_with_ai(
        self, system_prompt: str, user_prompt: str, criteria_names: List[str]
    ) -> Optional[Dict]:
        """Ask the model for a JSON assessment; None when it cannot be used"""
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.settings.openai_model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=0.3,
                response_format={"type": "json_object"},
            )
            evaluation = json.loads(response.choices[0].message.content)
            return self._normalize_evaluation(evaluation, criteria_names)
        except (OpenAIError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.warning("AI evaluation failed, using fallback: %s", e)
            return None

    def _normalize_evaluation(
        self, evaluation: Dict, criteria_names: List[str]
    ) -> Dict:
        raw_criteria = evaluation.get("criteria") or {}
        criteria = {}
        for name in criteria_names:
            entry = raw_criteria.get(name, {})
            if isinstance(entry, (int, float)):
                entry = {"score": entry}
            criteria[name] = CriterionScore(
                score=float(entry.get("score", 5.0)),
                feedback=entry.get("feedback", ""),
                suggestions=entry.get("suggestions", []),
            )

        overall = evaluation.get("overall_score")
        if overall is None:
            overall = sum(c.score for c in criteria.values()) / len(criteria)

        detailed = evaluation.get("detailed_feedback") or {}
        return {
            "overall_score": float(overall),
            "criteria": criteria,
            "detailed_feedback": DetailedFeedback(
                strengths=detailed.get("strengths", []),
                areas_for_improvement=detailed.get("areas_for_improvement", []),
                specific_suggestions=detailed.get("specific_suggestions", []),
            ),
            "corrected_version": evaluation.get("corrected_version"),
        }

    def _fallback_analysis(
        self, base_score: int, criteria_names: List[str], test_type: ProficiencyTest
    ) -> Dict:
        suggestions = FALLBACK_SUGGESTIONS[test_type]
        return {
            "overall_score": float(base_score),
            "criteria": {
                name: CriterionScore(
                    score=float(base_score),
                    feedback=FALLBACK_FEEDBACK[name],
                    suggestions=suggestions,
                )
                for name in criteria_names
            },
            "detailed_feedback": DetailedFeedback(
                strengths=[
                    "Clear understanding of the task requirements",
                    "Relevant supporting details",
                ],
                areas_for_improvement=[
                    "Expand on main ideas with more specific details",
                    "Use more sophisticated vocabulary",
                ],
                specific_suggestions=suggestions,
            ),
            "corrected_version": None,
        }

    def _build_report(
        self,
        analysis: Dict,
        test_type: ProficiencyTest,
        word_count: int,
        time_spent_seconds: Optional[float],
        length_recommendation: str,
        length_ok: bool,
        source: str,
    ) -> FeedbackReport:
        overall = analysis["overall_score"]
        criteria: Dict[str, CriterionScore] = analysis["criteria"]
        return FeedbackReport(
            overall_score=overall,
            band_score=self.band_mapper.band_label(test_type, overall),
            readiness=self.band_mapper.readiness(overall),
            word_count=word_count,
            time_spent_seconds=time_spent_seconds,
            length_recommendation=length_recommendation,
            criteria=criteria,
            detailed_feedback=analysis["detailed_feedback"],
            improvement_points=self.band_mapper.improvement_points(
                {name: c.score for name, c in criteria.items()}, length_ok
            ),
            corrected_version=analysis["corrected_version"],
            source=source,
        )

    def _writing_system_prompt(self, test_type: ProficiencyTest, task_type: str) -> str:
        criteria_json = ",\n    ".join(
            f'"{name}": {{"score": number, "feedback": string, "suggestions": [string]}}'
            for name in WRITING_CRITERIA
        )
        notes = TEST_CRITERIA_NOTES.get(
            test_type,
            "Standard writing assessment criteria for language proficiency evaluation.",
        )
        return f"""You are an expert language assessment specialist for {test_type.value.upper()} {task_type} tasks. Analyze the given writing response with the precision of an official examiner.

Provide your assessment as a JSON object with the following structure:
{{
  "overall_score": number (1-9),
  "criteria": {{
    {criteria_json}
  }},
  "detailed_feedback": {{
    "strengths": [string],
    "areas_for_improvement": [string],
    "specific_suggestions": [string]
  }},
  "corrected_version": string
}}

{notes}"""

    def _speaking_system_prompt(
        self, test_type: ProficiencyTest, task_type: str, criteria_names: List[str]
    ) -> str:
        criteria_json = ",\n    ".join(
            f'"{name}": {{"score": number, "feedback": string, "suggestions": [string]}}'
            for name in criteria_names
        )
        return f"""You are an expert oral examiner for {test_type.value.upper()} {task_type} tasks. Assess the transcript of the candidate's spoken answer.

Provide your assessment as a JSON object with the following structure:
{{
  "overall_score": number (1-9),
  "criteria": {{
    {criteria_json}
  }},
  "detailed_feedback": {{
    "strengths": [string],
    "areas_for_improvement": [string],
    "specific_suggestions": [string]
  }}
}}"""


@lru_cache(maxsize=1)
def get_feedback_service() -> FeedbackService:
    return FeedbackService()
