import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, sessionmaker

from app.core.config import settings
from app.core.constants import JobStatusEnum
from app.core.database import SessionLocal
from app.crud.background_job import background_job as crud_background_job
from app.models.background_job import BackgroundJob
from app.schemas.background_job import RetryPolicy
from app.utils.time import utcnow

logger = logging.getLogger(__name__)

# handler(db, payload, *, final_attempt) -> None; raising marks the attempt failed
JobHandler = Callable[..., Awaitable[None]]


class JobQueue:
    """
    Durable job queue stored in the `background_jobs` table.

    Jobs are claimed with a compare-and-set on their status, so several worker
    processes can poll the same table. Delivery is at-least-once: handlers must
    tolerate running again for a job that already did its work.
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
        self._handlers: Dict[str, JobHandler] = {}

    def register(self, job_type: str, handler: JobHandler):
        self._handlers[job_type] = handler

    def enqueue(self, db: Session, job_type: str, payload: Dict[str, Any],
                retry_policy: Optional[RetryPolicy] = None, commit: bool = True) -> BackgroundJob:
        policy = retry_policy or RetryPolicy()
        job = crud_background_job.create(db, obj_in={
            "job_type": job_type,
            "payload": payload,
            "status": JobStatusEnum.PENDING,
            "attempts": 0,
            "max_attempts": policy.attempts,
            "backoff_seconds": policy.backoff_seconds,
            "run_after": utcnow(),
        }, commit=commit)
        logger.info(f"Enqueued {job_type} job {job.id} with payload {payload}")
        return job

    async def run_due_jobs(self, limit: Optional[int] = None) -> int:
        """Claim and run jobs whose time has come. Returns how many were run."""
        db = self.session_factory()
        processed = 0
        try:
            lock_timeout = timedelta(seconds=settings.JOB_LOCK_TIMEOUT_SECONDS)
            now = utcnow()
            job_ids = crud_background_job.get_due_ids(
                db, now=now, lock_expired_before=now - lock_timeout,
                limit=limit or settings.JOB_QUEUE_BATCH_SIZE
            )
            db.rollback()

            for job_id in job_ids:
                now = utcnow()
                job = crud_background_job.claim(db, id=job_id, now=now, lock_expired_before=now - lock_timeout)
                if not job:
                    continue
                logger.debug(f"Claimed {job.job_type} job {job.id} (attempt {job.attempts}/{job.max_attempts})")
                await self._run_job(db, job)
                processed += 1
        finally:
            db.close()
        return processed

    async def _run_job(self, db: Session, job: BackgroundJob):
        final_attempt = job.attempts >= job.max_attempts
        handler = self._handlers.get(job.job_type)
        if handler is None:
            self._mark_failed(db, job, f"No handler registered for job type '{job.job_type}'")
            return

        handler_db = self.session_factory()
        try:
            await handler(handler_db, dict(job.payload or {}), final_attempt=final_attempt)
        except Exception as e:
            handler_db.rollback()
            error = f"{type(e).__name__}: {e}"
            if final_attempt:
                self._mark_failed(db, job, error)
            else:
                self._reschedule(db, job, error)
            return
        finally:
            handler_db.close()

        crud_background_job.delete(db, id=job.id)
        logger.info(f"{job.job_type} job {job.id} succeeded on attempt {job.attempts}")

    def _reschedule(self, db: Session, job: BackgroundJob, error: str):
        stored = crud_background_job.get(db, id=job.id)
        policy = RetryPolicy(attempts=job.max_attempts, backoff_seconds=job.backoff_seconds)
        run_after = utcnow() + timedelta(seconds=policy.delay_for(job.attempts))
        crud_background_job.update(db, db_obj=stored, obj_in={
            "status": JobStatusEnum.PENDING,
            "run_after": run_after,
            "locked_at": None,
            "last_error": error,
        })
        logger.warning(
            f"{job.job_type} job {job.id} failed on attempt {job.attempts}/{job.max_attempts}, "
            f"retrying after {run_after.isoformat()}: {error}"
        )

    def _mark_failed(self, db: Session, job: BackgroundJob, error: str):
        stored = crud_background_job.get(db, id=job.id)
        crud_background_job.update(db, db_obj=stored, obj_in={
            "status": JobStatusEnum.FAILED,
            "locked_at": None,
            "last_error": error,
            "finished_at": utcnow(),
        })
        logger.error(f"{job.job_type} job {job.id} failed permanently after {job.attempts} attempt(s): {error}")
        crud_background_job.prune_failed(db, keep=settings.FAILED_JOB_RETENTION)

    def list_jobs(self, db: Session, status_filter: JobStatusEnum, job_type: Optional[str] = None,
                  skip: int = 0, limit: int = 100) -> List[BackgroundJob]:
        return crud_background_job.get_multi_by_status(
            db, status=status_filter, job_type=job_type, skip=skip, limit=limit
        )

    def requeue(self, db: Session, job_id: int) -> BackgroundJob:
        job = crud_background_job.get(db, id=job_id)
        if not job:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found.")

        if job.status != JobStatusEnum.FAILED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only failed jobs can be re-queued."
            )

        requeued = crud_background_job.update(db, db_obj=job, obj_in={
            "status": JobStatusEnum.PENDING,
            "attempts": 0,
            "run_after": utcnow(),
            "locked_at": None,
            "finished_at": None,
        }, commit=False)
        logger.info(f"Re-queued failed {job.job_type} job {job.id}")
        return requeued


job_queue = JobQueue()
