from sqlalchemy.orm import Session, selectinload
from typing import Any, Dict, List, Optional
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite

from app.core.constants import QuestionTypeEnum
from app.crud.base import CRUDBase
from app.models.exam_session import ExamSession
from app.models.question import Question
from app.models.session_answer import SessionAnswer

_UPSERT_KEY = ["session_id", "question_id"]

class CRUDSessionAnswer(CRUDBase[SessionAnswer]):

    def _insert(self, db: Session):
        dialect = db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise NotImplementedError(f"Answer upsert is not supported on {dialect}")

    def upsert(self, db: Session, *, session_id: int, question_id: int, values: Dict[str, Any]) -> SessionAnswer:
        """Insert or update the single answer for (session, question) in one statement.

        Only the keys present in ``values`` are written on conflict, so omitted
        fields keep their stored value.
        """
        insert = self._insert(db)
        create_values = {"session_id": session_id, "question_id": question_id, "flagged": False}
        create_values.update({k: v for k, v in values.items() if not (k == "flagged" and v is None)})

        stmt = insert(SessionAnswer).values(**create_values)
        if values:
            stmt = stmt.on_conflict_do_update(
                index_elements=_UPSERT_KEY,
                set_={**values, "updated_at": func.now()},
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=_UPSERT_KEY)
        db.execute(stmt)
        db.flush()
        return self.get_by_session_and_question(db, session_id=session_id, question_id=question_id)

    def get_by_session_and_question(self, db: Session, *, session_id: int, question_id: int) -> Optional[SessionAnswer]:
        return (
            db.query(SessionAnswer)
            .filter(SessionAnswer.session_id == session_id, SessionAnswer.question_id == question_id)
            .populate_existing()
            .first()
        )

    def get_all_by_session(self, db: Session, *, session_id: int) -> List[SessionAnswer]:
        return (
            db.query(SessionAnswer)
            .filter(SessionAnswer.session_id == session_id)
            .order_by(SessionAnswer.id)
            .all()
        )

    def get_all_by_session_for_review(self, db: Session, *, session_id: int) -> List[SessionAnswer]:
        return (
            db.query(SessionAnswer)
            .options(
                selectinload(SessionAnswer.question).selectinload(Question.choices),
                selectinload(SessionAnswer.question).selectinload(Question.section),
            )
            .filter(SessionAnswer.session_id == session_id)
            .order_by(SessionAnswer.id)
            .all()
        )

    def get_with_context(self, db: Session, id: int) -> Optional[SessionAnswer]:
        return (
            db.query(SessionAnswer)
            .options(
                selectinload(SessionAnswer.question),
                selectinload(SessionAnswer.session).selectinload(ExamSession.exam),
            )
            .filter(SessionAnswer.id == id)
            .populate_existing()
            .first()
        )

    def get_unreviewed_essay_ids(self, db: Session, *, session_id: int) -> List[int]:
        rows = (
            db.query(SessionAnswer.id)
            .join(Question, SessionAnswer.question_id == Question.id)
            .filter(
                SessionAnswer.session_id == session_id,
                SessionAnswer.ai_reviewed_at.is_(None),
                Question.question_type == QuestionTypeEnum.ESSAY,
            )
            .order_by(SessionAnswer.id)
            .all()
        )
        return [row[0] for row in rows]

    def sum_scores(self, db: Session, *, session_id: int) -> int:
        result = (
            db.query(func.coalesce(func.sum(SessionAnswer.score), 0))
            .filter(SessionAnswer.session_id == session_id)
            .scalar()
        )
        return int(result or 0)


session_answer = CRUDSessionAnswer(SessionAnswer)
