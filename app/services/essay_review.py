import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import ESSAY_REVIEW_JOB, QuestionTypeEnum
from app.crud.exam_session import exam_session as crud_exam_session
from app.crud.session_answer import session_answer as crud_session_answer
from app.models.session_answer import SessionAnswer
from app.schemas.background_job import RetryPolicy
from app.schemas.grading import EssayReviewResult
from app.services.grading_oracle import GradingOracleError, OpenRouterGradingOracle
from app.services.job_queue import job_queue
from app.services.scoring import essay_points
from app.utils.time import utcnow

logger = logging.getLogger(__name__)


class EssayReviewService:

    def __init__(self, oracle=None):
        self.oracle = oracle or OpenRouterGradingOracle()

    def _retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            attempts=settings.ESSAY_REVIEW_ATTEMPTS,
            backoff_seconds=settings.ESSAY_REVIEW_BACKOFF_SECONDS
        )

    def _is_reviewed(self, answer: SessionAnswer) -> bool:
        # A stored system-failure fallback does not count, so an operator re-queue re-grades it.
        if answer.ai_reviewed_at is None:
            return False
        return not (answer.ai_feedback or {}).get("system_failure", False)

    def enqueue_for_session(self, db: Session, session_id: int) -> int:
        """
        Queue one review job per essay answer in the session that has not been graded.

        Called after the submit has been committed. Failures are logged and
        swallowed: the submit already succeeded and must be reported as such.
        """
        try:
            answer_ids = crud_session_answer.get_unreviewed_essay_ids(db, session_id=session_id)
            for answer_id in answer_ids:
                job_queue.enqueue(
                    db, ESSAY_REVIEW_JOB, {"answer_id": answer_id},
                    retry_policy=self._retry_policy(), commit=False
                )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception(f"Failed to enqueue essay reviews for session {session_id}")
            return 0

        if answer_ids:
            logger.info(f"Queued {len(answer_ids)} essay review(s) for session {session_id}")
        return len(answer_ids)

    def _skip_reason(self, answer: SessionAnswer) -> Optional[str]:
        if self._is_reviewed(answer):
            return "already reviewed"
        if answer.question.question_type != QuestionTypeEnum.ESSAY:
            return "is not an essay answer"
        if not (answer.text_answer or "").strip():
            return "has no text"
        return None

    async def handle_review_job(self, db: Session, payload: Dict[str, Any], *, final_attempt: bool = False):
        answer_id = payload.get("answer_id")
        answer = crud_session_answer.get_with_context(db, id=answer_id) if answer_id else None
        if not answer:
            db.rollback()
            logger.warning(f"Essay review skipped: answer {answer_id} not found")
            return

        skip_reason = self._skip_reason(answer)
        prompt, essay_text = answer.question.content, answer.text_answer
        # No transaction may stay open across the oracle call.
        db.rollback()
        if skip_reason:
            logger.info(f"Essay review skipped: answer {answer_id} {skip_reason}")
            return

        try:
            result = await self.oracle.grade(prompt, essay_text)
        except GradingOracleError as e:
            logger.warning(f"Grading failed for answer {answer_id} (final attempt: {final_attempt}): {e}")
            if final_attempt:
                self._persist_review(db, answer_id, EssayReviewResult.system_failure_result())
            raise

        self._persist_review(db, answer_id, result)

    def _persist_review(self, db: Session, answer_id: int, result: EssayReviewResult) -> bool:
        """
        Write the grade and re-total the session in one transaction.

        The session row is locked before the answer is re-read, so a second
        worker holding the same job after a lock timeout sees the stored grade
        and leaves it alone. Returns False when nothing was written.
        """
        answer = crud_session_answer.get(db, id=answer_id)
        if not answer:
            db.rollback()
            logger.warning(f"Essay review not stored: answer {answer_id} no longer exists")
            return False

        session_id = answer.session_id
        crud_exam_session.get_for_update(db, id=session_id)
        answer = crud_session_answer.get_with_context(db, id=answer_id)
        if self._is_reviewed(answer):
            db.rollback()
            logger.info(f"Essay review not stored: answer {answer_id} was reviewed by another worker")
            return False

        points = essay_points(result.score, answer.question.score_weight or 0)
        answer.ai_score = result.score
        answer.ai_feedback = result.model_dump()
        answer.ai_reviewed_at = utcnow()
        answer.score = points
        db.add(answer)
        db.flush()

        total_score = crud_session_answer.sum_scores(db, session_id=session_id)
        crud_exam_session.set_total_score(db, id=session_id, total_score=total_score)
        db.commit()

        if result.system_failure:
            logger.error(f"Stored system-failure fallback for answer {answer_id}; session {session_id} total {total_score}")
        else:
            logger.info(f"Essay answer {answer_id} reviewed: {result.score}/100 -> {points} point(s); session {session_id} total {total_score}")
        return True


essay_review_service = EssayReviewService()
job_queue.register(ESSAY_REVIEW_JOB, essay_review_service.handle_review_job)
