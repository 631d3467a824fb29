from typing import List
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.crud.exam import exam as crud_exam
from app.crud.exam_session import exam_session as crud_exam_session
from app.schemas.exam import ExamDetail, ExamListFilters, ExamSummary, ExamWithSections
from app.schemas.exam_session import ExamSessionWithAnswers
from app.schemas.user import UserContext
from app.core.constants import MyExamStatusEnum, SessionStatusEnum


class ExamService:
    """Read side of the exam catalog, annotated with the caller's own progress."""

    def _summarize_user_sessions(self, db: Session, user_id: int, exam_ids: List[int]) -> dict:
        summary = {}
        for exam_id, session_status, count, best_score in crud_exam_session.get_user_stats_by_exam(
            db, user_id=user_id, exam_ids=exam_ids
        ):
            entry = summary.setdefault(exam_id, {"in_progress": 0, "submitted": 0, "best_score": None})
            if session_status == SessionStatusEnum.IN_PROGRESS:
                entry["in_progress"] += count
            elif session_status == SessionStatusEnum.SUBMITTED:
                entry["submitted"] += count
                entry["best_score"] = best_score
        return summary

    def list_published_exams(self, db: Session, filters: ExamListFilters,
                             current_user_context: UserContext) -> List[ExamSummary]:
        exams = crud_exam.get_published_multi(db, filters=filters)
        user_sessions = self._summarize_user_sessions(
            db, current_user_context.user_id, [e.id for e in exams]
        )

        summaries = []
        for exam in exams:
            entry = user_sessions.get(exam.id, {"in_progress": 0, "submitted": 0, "best_score": None})
            if entry["in_progress"]:
                my_status = MyExamStatusEnum.IN_PROGRESS
            elif entry["submitted"]:
                my_status = MyExamStatusEnum.COMPLETED
            else:
                my_status = MyExamStatusEnum.NOT_STARTED

            summary = ExamSummary.model_validate(exam)
            summary.my_status = my_status
            summary.my_attempts = entry["in_progress"] + entry["submitted"]
            summary.my_best_score = entry["best_score"]
            summaries.append(summary)

        return summaries

    def get_exam_detail(self, db: Session, exam_id: int, current_user_context: UserContext) -> ExamDetail:
        exam = crud_exam.get_published_with_questions(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")

        my_session = crud_exam_session.get_in_progress_with_answers(
            db, user_id=current_user_context.user_id, exam_id=exam_id
        )

        return ExamDetail(
            exam=ExamWithSections.model_validate(exam),
            my_session=ExamSessionWithAnswers.model_validate(my_session) if my_session else None,
        )


exam_service = ExamService()
