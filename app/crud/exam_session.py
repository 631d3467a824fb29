from sqlalchemy.orm import Session, selectinload
from typing import Any, Dict, List, Optional
from datetime import datetime
from sqlalchemy import func, update

from app.core.constants import SessionStatusEnum
from app.crud.base import CRUDBase
from app.models.exam_session import ExamSession

class CRUDExamSession(CRUDBase[ExamSession]):

    def _query_with_relationships(self, db: Session):
        return db.query(ExamSession).options(selectinload(ExamSession.exam))

    def get(self, db: Session, id: int) -> Optional[ExamSession]:
        return self._query_with_relationships(db).filter(ExamSession.id == id).first()

    def get_in_progress(self, db: Session, *, user_id: int, exam_id: int) -> Optional[ExamSession]:
        return (
            self._query_with_relationships(db)
            .filter(
                ExamSession.user_id == user_id,
                ExamSession.exam_id == exam_id,
                ExamSession.status == SessionStatusEnum.IN_PROGRESS,
            )
            .order_by(ExamSession.updated_at.desc(), ExamSession.id.desc())
            .first()
        )

    def get_in_progress_with_answers(self, db: Session, *, user_id: int, exam_id: int) -> Optional[ExamSession]:
        return (
            db.query(ExamSession)
            .options(selectinload(ExamSession.answers))
            .filter(
                ExamSession.user_id == user_id,
                ExamSession.exam_id == exam_id,
                ExamSession.status == SessionStatusEnum.IN_PROGRESS,
            )
            .first()
        )

    def get_for_update(self, db: Session, id: int) -> Optional[ExamSession]:
        """Row-lock the session on databases that support it; a no-op on SQLite."""
        return db.query(ExamSession).filter(ExamSession.id == id).with_for_update().first()

    def conditional_update(
        self, db: Session, *, id: int, expected_status: SessionStatusEnum, values: Dict[str, Any]
    ) -> Optional[ExamSession]:
        """Compare-and-set on status. Returns None when the session was no longer in expected_status."""
        result = db.execute(
            update(ExamSession)
            .where(ExamSession.id == id, ExamSession.status == expected_status)
            .values(**values, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return None
        db.flush()
        session = db.get(ExamSession, id, populate_existing=True)
        return session

    def set_total_score(self, db: Session, *, id: int, total_score: int) -> None:
        db.execute(
            update(ExamSession)
            .where(ExamSession.id == id)
            .values(total_score=total_score, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )

    def get_overdue_in_progress_ids(self, db: Session, *, now: datetime, limit: int = 500) -> List[int]:
        rows = (
            db.query(ExamSession.id)
            .filter(
                ExamSession.status == SessionStatusEnum.IN_PROGRESS,
                ExamSession.expires_at.isnot(None),
                ExamSession.expires_at <= now,
            )
            .limit(limit)
            .all()
        )
        return [row[0] for row in rows]

    def get_user_stats_by_exam(self, db: Session, *, user_id: int, exam_ids: List[int]) -> List[tuple]:
        """(exam_id, status, count, best total score) for the user's sessions on the given exams."""
        if not exam_ids:
            return []
        return (
            db.query(
                ExamSession.exam_id,
                ExamSession.status,
                func.count(ExamSession.id),
                func.max(ExamSession.total_score),
            )
            .filter(ExamSession.user_id == user_id, ExamSession.exam_id.in_(exam_ids))
            .group_by(ExamSession.exam_id, ExamSession.status)
            .all()
        )


exam_session = CRUDExamSession(ExamSession)
