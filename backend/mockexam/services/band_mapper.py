from typing import Dict, List, Optional

from mockexam.models.catalog import ProficiencyTest

TEF_LEVELS = ["A1", "A2", "B1", "B2", "C1", "C2"]
OPIC_LEVELS = [
    "Novice Low",
    "Novice Mid",
    "Novice High",
    "Intermediate Low",
    "Intermediate Mid",
    "Intermediate High",
]

# Criterion name -> improvement point when that criterion scores low
CRITERION_ADVICE = {
    "task_response": "Address every part of the task and support each point with an example.",
    "coherence_cohesion": "Organise ideas into clear paragraphs and vary your linking words.",
    "lexical_resource": "Widen your vocabulary range and avoid repeating the same words.",
    "grammatical_accuracy": "Check verb agreement and tense consistency in complex sentences.",
    "fluency": "Reduce long pauses and filler words so your speech flows naturally.",
    "pronunciation": "Practise difficult sounds and word stress with minimal pairs.",
    "vocabulary": "Use more topic-specific vocabulary and precise expressions.",
    "grammar": "Mix simple and complex structures while keeping them accurate.",
}


class BandMapper:
    """Map overall scores (1-9 scale) to test-specific bands and advice"""

    def band_label(self, test_type: ProficiencyTest, score: float) -> str:
        """Convert a score to the band label of the given test"""
        rounded = int(round(score))
        if test_type is ProficiencyTest.IELTS:
            return f"Band {self._format_score(score)}"
        # TEF and OPIc levels start at score 4
        index = max(0, min(rounded - 4, 5))
        if test_type is ProficiencyTest.TEF:
            return f"Niveau {TEF_LEVELS[index]}"
        return OPIC_LEVELS[index]

    def readiness(self, score: float) -> str:
        """Convert score to readiness indicator"""
        if score < 6:
            return "Not ready"
        elif score < 7:
            return "Almost"
        else:
            return "Ready"

    def length_recommendation(
        self, word_count: int, target_word_count: Optional[int]
    ) -> str:
        if not target_word_count:
            return "Monitor your time to ensure you complete the task within the allocated time."

        if word_count < target_word_count * 0.8:
            return "Your response is shorter than recommended. Try to develop your ideas more fully."
        elif word_count > target_word_count * 1.2:
            return "Your response is longer than necessary. Focus on being more concise while maintaining quality."
        return "Good word count management. You've met the target length effectively."

    def duration_feedback(
        self, actual_seconds: float, target_seconds: Optional[float]
    ) -> str:
        if not target_seconds:
            return "Monitor your response time to ensure you address all points adequately."

        ratio = actual_seconds / target_seconds
        if ratio < 0.8:
            return "Your response is shorter than recommended. Try to elaborate more on your points."
        elif ratio > 1.3:
            return "Your response is longer than necessary. Practice being more concise while maintaining content quality."
        return "Good time management. Your response length is appropriate for the task."

    def pace_feedback(self, duration_seconds: float, word_count: int) -> str:
        words_per_minute = word_count / duration_seconds * 60
        if words_per_minute < 120:
            return "Your speaking pace is slower than average. Consider speaking slightly faster while maintaining clarity."
        elif words_per_minute > 180:
            return "Your speaking pace is quite fast. Slow down slightly to improve clarity and comprehension."
        return "Good speaking pace that allows for clear communication."

    def improvement_points(
        self, criterion_scores: Dict[str, float], length_ok: bool
    ) -> List[str]:
        """Generate maximum 3 improvement points, weakest criteria first"""
        points = []

        if not length_ok:
            points.append("Aim for the recommended length so the examiner can judge your full range.")

        for name, score in sorted(criterion_scores.items(), key=lambda item: item[1]):
            if score < 6 and name in CRITERION_ADVICE:
                points.append(CRITERION_ADVICE[name])

        # Limit to 3 points
        return points[:3]

    def _format_score(self, score: float) -> str:
        if float(score).is_integer():
            return str(int(score))
        return f"{score:.1f}"
