from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import SessionStatusEnum, SectionTypeEnum, MAX_REMAINING_SECONDS, MAX_QUESTION_INDEX
from app.schemas.question import QuestionWithKey
from app.schemas.session_answer import SessionAnswer

class ExamSession(BaseModel):
    id: int
    user_id: int
    exam_id: int
    status: SessionStatusEnum
    remaining_seconds: int
    expires_at: Optional[datetime] = None
    current_question_index: int = 0
    total_score: Optional[int] = None
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ExamSessionWithAnswers(ExamSession):
    answers: List[SessionAnswer] = []

class StartSessionRequest(BaseModel):
    exam_id: int

    class Config:
        json_schema_extra = {"example": {"exam_id": 1}}

class SaveAnswerRequest(BaseModel):
    question_id: int
    selected_choice_id: Optional[int] = None
    text_answer: Optional[str] = None
    flagged: Optional[bool] = None
    current_question_index: Optional[int] = Field(default=None, ge=0, le=MAX_QUESTION_INDEX)
    remaining_seconds: Optional[int] = Field(default=None, ge=0, le=MAX_REMAINING_SECONDS)

    class Config:
        json_schema_extra = {
            "example": {
                "question_id": 12,
                "selected_choice_id": 48,
                "current_question_index": 3,
                "remaining_seconds": 3120
            }
        }

class SaveAnswerResult(BaseModel):
    answer: SessionAnswer
    session: ExamSession

class SubmitSessionRequest(BaseModel):
    remaining_seconds: Optional[int] = Field(default=None, ge=0, le=MAX_REMAINING_SECONDS)

class SectionScore(BaseModel):
    section_type: SectionTypeEnum
    score: int = 0
    max_score: int = 0

class ReviewAnswer(SessionAnswer):
    section_type: SectionTypeEnum
    question: QuestionWithKey
    ai_review_pending: bool = False

class SessionReview(BaseModel):
    session: ExamSession
    answers: List[ReviewAnswer] = []
    section_scores: List[SectionScore] = []
    max_total_score: int = 0
    achieved_level: Optional[int] = None
