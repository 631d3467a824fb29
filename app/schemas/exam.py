from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime

from app.core.constants import ExamStatusEnum, TierSchemeEnum, SectionTypeEnum, MyExamStatusEnum
from app.schemas.question import QuestionPublic
from app.schemas.exam_session import ExamSessionWithAnswers


class SectionSummary(BaseModel):
    id: int
    section_type: SectionTypeEnum
    order_index: int
    duration_minutes: Optional[int] = None
    max_score: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

class SectionWithQuestions(SectionSummary):
    questions: List[QuestionPublic] = []

class ExamBase(BaseModel):
    id: int
    title: str
    year: int
    tier_scheme: TierSchemeEnum
    level: Optional[str] = None
    duration_minutes: int
    total_questions: int
    status: ExamStatusEnum
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ExamSummary(ExamBase):
    sections: List[SectionSummary] = []
    my_status: MyExamStatusEnum = MyExamStatusEnum.NOT_STARTED
    my_attempts: int = 0
    my_best_score: Optional[int] = None

class ExamWithSections(ExamBase):
    sections: List[SectionWithQuestions] = []

class ExamDetail(BaseModel):
    exam: ExamWithSections
    my_session: Optional[ExamSessionWithAnswers] = None

class ExamListFilters(BaseModel):
    tier_scheme: Optional[TierSchemeEnum] = None
    year: Optional[int] = None
    level: Optional[str] = None
    section_types: Optional[List[SectionTypeEnum]] = None
