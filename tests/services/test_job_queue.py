import pytest
from datetime import timedelta
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import JobStatusEnum
from app.models.background_job import BackgroundJob
from app.schemas.background_job import RetryPolicy
from app.services.job_queue import JobQueue
from app.utils.time import utcnow


class RecordingHandler:
    def __init__(self, error: Exception = None):
        self.error = error
        self.calls = []

    async def __call__(self, db, payload, *, final_attempt):
        self.calls.append((payload, final_attempt))
        if self.error:
            raise self.error


@pytest.fixture
def queue():
    return JobQueue()


def enqueue(db: Session, queue: JobQueue, job_type="test_job", payload=None, **policy) -> int:
    job = queue.enqueue(db, job_type, payload or {"answer_id": 1}, retry_policy=RetryPolicy(**policy) if policy else None)
    job_id = job.id
    # The worker commits from its own session; release our read transaction first.
    db.commit()
    return job_id


def load(db: Session, job_id: int):
    return db.query(BackgroundJob).filter(BackgroundJob.id == job_id).populate_existing().first()


class TestRetryPolicy:
    @pytest.mark.parametrize("attempt,expected", [(1, 2), (2, 4), (3, 8)])
    def test_exponential_backoff(self, attempt, expected):
        assert RetryPolicy(attempts=3, backoff_seconds=2).delay_for(attempt) == expected

    def test_zero_backoff(self):
        assert RetryPolicy(backoff_seconds=0).delay_for(3) == 0


class TestJobQueue:
    def test_enqueue_stores_pending_job(self, db_session: Session, queue):
        job_id = enqueue(db_session, queue, payload={"answer_id": 7}, attempts=5, backoff_seconds=1)

        job = load(db_session, job_id)
        assert job.status == JobStatusEnum.PENDING
        assert job.payload == {"answer_id": 7}
        assert job.attempts == 0
        assert job.max_attempts == 5
        assert job.backoff_seconds == 1

    @pytest.mark.asyncio
    async def test_successful_job_is_removed(self, db_session: Session, queue):
        handler = RecordingHandler()
        queue.register("test_job", handler)
        job_id = enqueue(db_session, queue, payload={"answer_id": 3})

        processed = await queue.run_due_jobs()

        assert processed == 1
        assert handler.calls == [({"answer_id": 3}, False)]
        assert load(db_session, job_id) is None

    @pytest.mark.asyncio
    async def test_failed_attempt_is_rescheduled_with_backoff(self, db_session: Session, queue):
        handler = RecordingHandler(error=RuntimeError("boom"))
        queue.register("test_job", handler)
        job_id = enqueue(db_session, queue, attempts=3, backoff_seconds=30)
        before = utcnow()

        await queue.run_due_jobs()

        job = load(db_session, job_id)
        assert job.status == JobStatusEnum.PENDING
        assert job.attempts == 1
        assert job.last_error == "RuntimeError: boom"
        assert job.locked_at is None
        assert job.run_after >= before + timedelta(seconds=30)
        db_session.commit()

        # Not due again until the backoff has elapsed.
        assert await queue.run_due_jobs() == 0
        assert len(handler.calls) == 1

    @pytest.mark.asyncio
    async def test_final_attempt_marks_job_failed(self, db_session: Session, queue):
        handler = RecordingHandler(error=RuntimeError("still broken"))
        queue.register("test_job", handler)
        job_id = enqueue(db_session, queue, attempts=1, backoff_seconds=0)

        await queue.run_due_jobs()

        job = load(db_session, job_id)
        assert handler.calls == [({"answer_id": 1}, True)]
        assert job.status == JobStatusEnum.FAILED
        assert job.attempts == 1
        assert job.finished_at is not None
        assert job.last_error == "RuntimeError: still broken"

    @pytest.mark.asyncio
    async def test_retries_until_attempts_are_used_up(self, db_session: Session, queue):
        handler = RecordingHandler(error=RuntimeError("flaky"))
        queue.register("test_job", handler)
        job_id = enqueue(db_session, queue, attempts=2, backoff_seconds=0)

        await queue.run_due_jobs()
        await queue.run_due_jobs()

        assert [final for _, final in handler.calls] == [False, True]
        assert load(db_session, job_id).status == JobStatusEnum.FAILED

    @pytest.mark.asyncio
    async def test_unknown_job_type_fails_immediately(self, db_session: Session, queue):
        job_id = enqueue(db_session, queue, job_type="nobody_handles_this")

        await queue.run_due_jobs()

        job = load(db_session, job_id)
        assert job.status == JobStatusEnum.FAILED
        assert "No handler registered" in job.last_error

    @pytest.mark.asyncio
    async def test_stale_running_job_is_reclaimed(self, db_session: Session, queue):
        handler = RecordingHandler()
        queue.register("test_job", handler)
        stale = BackgroundJob(
            job_type="test_job",
            payload={"answer_id": 9},
            status=JobStatusEnum.RUNNING,
            attempts=1,
            max_attempts=3,
            backoff_seconds=2,
            run_after=utcnow() - timedelta(hours=1),
            locked_at=utcnow() - timedelta(seconds=settings.JOB_LOCK_TIMEOUT_SECONDS + 60),
        )
        db_session.add(stale)
        db_session.commit()

        assert await queue.run_due_jobs() == 1
        assert handler.calls == [({"answer_id": 9}, False)]

    @pytest.mark.asyncio
    async def test_fresh_running_job_is_left_alone(self, db_session: Session, queue):
        handler = RecordingHandler()
        queue.register("test_job", handler)
        db_session.add(BackgroundJob(
            job_type="test_job",
            payload={},
            status=JobStatusEnum.RUNNING,
            attempts=1,
            max_attempts=3,
            backoff_seconds=2,
            run_after=utcnow() - timedelta(minutes=1),
            locked_at=utcnow(),
        ))
        db_session.commit()

        assert await queue.run_due_jobs() == 0
        assert handler.calls == []

    @pytest.mark.asyncio
    async def test_failed_jobs_are_pruned_to_retention(self, db_session: Session, queue, monkeypatch):
        monkeypatch.setattr(settings, "FAILED_JOB_RETENTION", 1)
        queue.register("test_job", RecordingHandler(error=RuntimeError("boom")))
        first_id = enqueue(db_session, queue, attempts=1)
        second_id = enqueue(db_session, queue, attempts=1)

        await queue.run_due_jobs()

        failed_ids = [job.id for job in db_session.query(BackgroundJob).filter(BackgroundJob.status == JobStatusEnum.FAILED)]
        assert failed_ids == [second_id]
        assert first_id != second_id


class TestJobAdministration:
    @pytest.mark.asyncio
    async def test_list_jobs_filters_by_status_and_type(self, db_session: Session, queue):
        queue.register("test_job", RecordingHandler(error=RuntimeError("boom")))
        failed_id = enqueue(db_session, queue, attempts=1)
        await queue.run_due_jobs()
        pending_id = enqueue(db_session, queue, job_type="other_job")

        assert [j.id for j in queue.list_jobs(db_session, JobStatusEnum.FAILED)] == [failed_id]
        assert [j.id for j in queue.list_jobs(db_session, JobStatusEnum.PENDING, job_type="other_job")] == [pending_id]
        assert queue.list_jobs(db_session, JobStatusEnum.PENDING, job_type="test_job") == []

    @pytest.mark.asyncio
    async def test_requeue_resets_failed_job(self, db_session: Session, queue):
        handler = RecordingHandler(error=RuntimeError("boom"))
        queue.register("test_job", handler)
        job_id = enqueue(db_session, queue, attempts=1)
        await queue.run_due_jobs()

        job = queue.requeue(db_session, job_id)
        db_session.commit()

        assert job.status == JobStatusEnum.PENDING
        assert job.attempts == 0
        assert job.finished_at is None
        db_session.commit()

        handler.error = None
        assert await queue.run_due_jobs() == 1
        assert load(db_session, job_id) is None

    def test_requeue_rejects_pending_job(self, db_session: Session, queue):
        job_id = enqueue(db_session, queue)
        with pytest.raises(HTTPException) as exc_info:
            queue.requeue(db_session, job_id)
        assert exc_info.value.status_code == 400

    def test_requeue_unknown_job(self, db_session: Session, queue):
        with pytest.raises(HTTPException) as exc_info:
            queue.requeue(db_session, 999999)
        assert exc_info.value.status_code == 404
