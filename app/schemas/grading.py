from pydantic import BaseModel, Field
from typing import List

from app.core.constants import ESSAY_FEEDBACK_MAX_ITEMS

SYSTEM_FAILURE_WEAKNESS = "The essay could not be graded because the AI grading service failed."
SYSTEM_FAILURE_SUGGESTION = "Ask for the essay to be re-graded later."
SYSTEM_FAILURE_FEEDBACK = "The AI grading service is unavailable. This is not a grade of your writing."

class EssayReviewResult(BaseModel):
    """Structured grade for one essay, stored as the answer's ai_feedback."""
    score: int = Field(default=0, ge=0, le=100)
    strengths: List[str] = Field(default_factory=list, max_length=ESSAY_FEEDBACK_MAX_ITEMS)
    weaknesses: List[str] = Field(default_factory=list, max_length=ESSAY_FEEDBACK_MAX_ITEMS)
    suggestions: List[str] = Field(default_factory=list, max_length=ESSAY_FEEDBACK_MAX_ITEMS)
    detailed_feedback: str = ""
    system_failure: bool = False

    @classmethod
    def system_failure_result(cls) -> "EssayReviewResult":
        return cls(
            score=0,
            weaknesses=[SYSTEM_FAILURE_WEAKNESS],
            suggestions=[SYSTEM_FAILURE_SUGGESTION],
            detailed_feedback=SYSTEM_FAILURE_FEEDBACK,
            system_failure=True,
        )
