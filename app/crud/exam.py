from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from app.core.constants import ExamStatusEnum
from app.crud.base import CRUDBase
from app.models.exam import Exam, ExamSection
from app.models.question import Question
from app.schemas.exam import ExamListFilters


class CRUDExam(CRUDBase[Exam]):
    """Read-only access to exam definitions. Authoring happens elsewhere."""

    def _query_published(self, db: Session):
        return db.query(Exam).filter(Exam.status == ExamStatusEnum.PUBLISHED)

    def get_published(self, db: Session, id: int) -> Optional[Exam]:
        return self._query_published(db).filter(Exam.id == id).first()

    def get_published_with_questions(self, db: Session, id: int) -> Optional[Exam]:
        return (
            self._query_published(db)
            .options(
                selectinload(Exam.sections)
                .selectinload(ExamSection.questions)
                .selectinload(Question.choices)
            )
            .filter(Exam.id == id)
            .first()
        )

    def get_published_multi(self, db: Session, *, filters: ExamListFilters) -> List[Exam]:
        query = self._query_published(db).options(selectinload(Exam.sections))

        if filters.tier_scheme:
            query = query.filter(Exam.tier_scheme == filters.tier_scheme)
        if filters.year:
            query = query.filter(Exam.year == filters.year)
        if filters.level:
            query = query.filter(Exam.level == filters.level)
        if filters.section_types:
            query = query.filter(
                Exam.sections.any(ExamSection.section_type.in_(filters.section_types))
            )

        return query.order_by(Exam.year.desc(), Exam.created_at.desc(), Exam.id.desc()).all()

    def get_questions_for_exam(self, db: Session, *, exam_id: int) -> List[Question]:
        return (
            db.query(Question)
            .join(ExamSection, Question.section_id == ExamSection.id)
            .options(selectinload(Question.choices), selectinload(Question.section))
            .filter(ExamSection.exam_id == exam_id)
            .order_by(ExamSection.order_index, Question.order_index, Question.id)
            .all()
        )

    def get_question(self, db: Session, *, question_id: int) -> Optional[Question]:
        return (
            db.query(Question)
            .options(selectinload(Question.choices), selectinload(Question.section))
            .filter(Question.id == question_id)
            .first()
        )


exam = CRUDExam(Exam)
