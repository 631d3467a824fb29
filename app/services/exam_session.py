import logging
from datetime import timedelta
from typing import Tuple
from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import MIN_SESSION_SECONDS, QuestionTypeEnum, SessionStatusEnum
from app.crud.exam import exam as crud_exam
from app.crud.exam_session import exam_session as crud_exam_session
from app.crud.session_answer import session_answer as crud_session_answer
from app.models.exam_session import ExamSession
from app.models.session_answer import SessionAnswer
from app.schemas.exam_session import (
    SaveAnswerRequest, SubmitSessionRequest, SessionReview, ReviewAnswer, SaveAnswerResult,
    ExamSession as ExamSessionSchema
)
from app.schemas.question import QuestionWithKey
from app.schemas.session_answer import SessionAnswer as SessionAnswerSchema, SessionAnswerPatch
from app.schemas.user import UserContext
from app.services import scoring
from app.services.essay_review import essay_review_service
from app.utils.time import as_naive_utc, utcnow

logger = logging.getLogger(__name__)


class ExamSessionService:

    def _get_owned_session(self, db: Session, session_id: int, current_user_context: UserContext) -> ExamSession:
        session = crud_exam_session.get(db, id=session_id)
        if not session:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")

        if session.user_id != current_user_context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only access your own exam sessions."
            )
        return session

    def _require_active_session(self, db: Session, session_id: int, current_user_context: UserContext) -> ExamSession:
        session = self._get_owned_session(db, session_id, current_user_context)

        if session.status != SessionStatusEnum.IN_PROGRESS:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session is not active.")

        now = utcnow()
        if session.expires_at and as_naive_utc(session.expires_at) <= now:
            self._expire(db, session.id, now)
            # The expiry must persist even though the request fails.
            db.commit()
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Session expired.")

        return session

    def _expire(self, db: Session, session_id: int, now) -> bool:
        expired = crud_exam_session.conditional_update(
            db,
            id=session_id,
            expected_status=SessionStatusEnum.IN_PROGRESS,
            values={"status": SessionStatusEnum.EXPIRED, "submitted_at": now, "remaining_seconds": 0},
        )
        if expired:
            logger.info(f"Session {session_id} expired")
        return expired is not None

    def _clamp_remaining(self, session: ExamSession, remaining_seconds: int) -> int:
        return max(0, min(remaining_seconds, session.exam.duration_seconds))

    def start_session(self, db: Session, exam_id: int, current_user_context: UserContext) -> ExamSession:
        session, _ = self.start_or_resume_session(db, exam_id=exam_id, current_user_context=current_user_context)
        return session

    def start_or_resume_session(
        self, db: Session, exam_id: int, current_user_context: UserContext
    ) -> Tuple[ExamSession, bool]:
        """Return the caller's in-progress session for the exam and whether it was created by this call."""
        user_id = current_user_context.user_id

        existing = crud_exam_session.get_in_progress(db, user_id=user_id, exam_id=exam_id)
        if existing:
            return existing, False

        exam = crud_exam.get_published(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")

        remaining_seconds = max(MIN_SESSION_SECONDS, exam.duration_seconds)
        now = utcnow()
        try:
            with db.begin_nested():
                new_session = crud_exam_session.create(db, obj_in={
                    "user_id": user_id,
                    "exam_id": exam_id,
                    "status": SessionStatusEnum.IN_PROGRESS,
                    "remaining_seconds": remaining_seconds,
                    "expires_at": now + timedelta(seconds=remaining_seconds),
                    "current_question_index": 0,
                }, commit=False)
        except IntegrityError:
            # Lost the race against a concurrent start; the winner's session is the one to resume.
            winner = crud_exam_session.get_in_progress(db, user_id=user_id, exam_id=exam_id)
            if winner:
                return winner, False
            raise

        logger.info(f"User {user_id} started session {new_session.id} for exam {exam_id}")
        return new_session, True

    def save_answer(self, db: Session, session_id: int, answer_in: SaveAnswerRequest,
                    current_user_context: UserContext) -> SaveAnswerResult:
        session = self._require_active_session(db, session_id, current_user_context)

        question = crud_exam.get_question(db, question_id=answer_in.question_id)
        if not question:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found.")

        if question.exam_id != session.exam_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Question does not belong to this exam."
            )

        patch = SessionAnswerPatch.model_validate(
            answer_in.model_dump(include={"selected_choice_id", "text_answer", "flagged"}, exclude_unset=True)
        )
        values = patch.model_dump(exclude_unset=True)
        if values.get("flagged", False) is None:
            values.pop("flagged")

        selected_choice_id = values.get("selected_choice_id")
        if selected_choice_id is not None and selected_choice_id not in {c.id for c in question.choices}:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Selected choice does not belong to this question."
            )

        answer = crud_session_answer.upsert(
            db, session_id=session.id, question_id=question.id, values=values
        )

        session_values = {}
        if answer_in.remaining_seconds is not None:
            remaining_seconds = self._clamp_remaining(session, answer_in.remaining_seconds)
            session_values["remaining_seconds"] = remaining_seconds
            session_values["expires_at"] = utcnow() + timedelta(seconds=remaining_seconds)
        if answer_in.current_question_index is not None:
            session_values["current_question_index"] = answer_in.current_question_index

        if session_values:
            updated = crud_exam_session.conditional_update(
                db, id=session.id, expected_status=SessionStatusEnum.IN_PROGRESS, values=session_values
            )
            if not updated:
                raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session is no longer in progress.")
            session = updated

        return SaveAnswerResult(
            answer=SessionAnswerSchema.model_validate(answer),
            session=ExamSessionSchema.model_validate(session),
        )

    def submit_session(self, db: Session, session_id: int, submit_in: SubmitSessionRequest,
                       current_user_context: UserContext) -> ExamSession:
        session = self._require_active_session(db, session_id, current_user_context)

        questions = crud_exam.get_questions_for_exam(db, exam_id=session.exam_id)
        answers_by_question = {
            a.question_id: a for a in crud_session_answer.get_all_by_session(db, session_id=session.id)
        }

        total_score = 0
        for question in questions:
            answer = answers_by_question.get(question.id)
            if not answer:
                continue

            result = scoring.score_answer(question, answer)
            if result is None:
                total_score += answer.score or 0
                continue

            answer.is_correct, answer.score = result
            db.add(answer)
            total_score += answer.score
        db.flush()

        remaining_seconds = session.remaining_seconds
        if submit_in.remaining_seconds is not None:
            remaining_seconds = self._clamp_remaining(session, submit_in.remaining_seconds)

        submitted = crud_exam_session.conditional_update(
            db,
            id=session.id,
            expected_status=SessionStatusEnum.IN_PROGRESS,
            values={
                "status": SessionStatusEnum.SUBMITTED,
                "submitted_at": utcnow(),
                "remaining_seconds": remaining_seconds,
                "total_score": total_score,
            },
        )
        if not submitted:
            db.rollback()
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Session has already been submitted.")

        db.commit()
        logger.info(f"Session {session.id} submitted with objective score {total_score}")

        essay_review_service.enqueue_for_session(db, session_id=session.id)
        return submitted

    def _to_review_answer(self, answer: SessionAnswer, hide_key: bool, closed: bool) -> ReviewAnswer:
        question = QuestionWithKey.model_validate(answer.question)
        if hide_key:
            question = question.model_copy(update={
                "choices": [c.model_copy(update={"is_correct": None}) for c in question.choices],
                "correct_text_answer": None,
                "explanation": None,
            })

        return ReviewAnswer(
            **SessionAnswerSchema.model_validate(answer).model_dump(),
            section_type=answer.question.section.section_type,
            question=question,
            ai_review_pending=(
                closed
                and question.question_type == QuestionTypeEnum.ESSAY
                and answer.ai_reviewed_at is None
            ),
        )

    def get_session_review(self, db: Session, session_id: int, current_user_context: UserContext) -> SessionReview:
        session = self._get_owned_session(db, session_id, current_user_context)

        answers = sorted(
            crud_session_answer.get_all_by_session_for_review(db, session_id=session.id),
            key=lambda a: (a.question.section.order_index, a.question.order_index, a.question.id),
        )

        closed = session.status != SessionStatusEnum.IN_PROGRESS
        section_scores = scoring.aggregate_sections(
            (a.question.section, a.question, a.score) for a in answers
        )

        return SessionReview(
            session=ExamSessionSchema.model_validate(session),
            answers=[self._to_review_answer(a, hide_key=not closed, closed=closed) for a in answers],
            section_scores=section_scores,
            max_total_score=sum(s.max_score for s in section_scores),
            achieved_level=scoring.achieved_level(session.exam.tier_scheme, session.total_score),
        )

    def expire_overdue_sessions(self, db: Session, limit: int = 500) -> int:
        """Close IN_PROGRESS sessions past their deadline. Used by the optional sweep job."""
        now = utcnow()
        expired_count = 0
        for session_id in crud_exam_session.get_overdue_in_progress_ids(db, now=now, limit=limit):
            if self._expire(db, session_id, now):
                expired_count += 1
        db.commit()
        return expired_count


exam_session_service = ExamSessionService()
