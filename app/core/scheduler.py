import logging
import os
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from app.core.config import settings
from app.core.database import SessionLocal
from app.services.exam_session import exam_session_service
from app.services.job_queue import job_queue

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


async def process_job_queue():
    try:
        processed = await job_queue.run_due_jobs()
        if processed:
            logger.info(f"Job queue run finished: {processed} job(s) processed")
    except Exception as e:
        logger.error(f"Error processing job queue: {e}", exc_info=True)


async def expire_overdue_sessions():
    db = SessionLocal()
    try:
        expired_count = exam_session_service.expire_overdue_sessions(db)
        if expired_count:
            logger.info(f"Expiry sweep closed {expired_count} overdue session(s)")
    except Exception as e:
        db.rollback()
        logger.error(f"Error sweeping overdue sessions: {e}")
    finally:
        db.close()


def start_scheduler():
    if os.getenv("TESTING") == "true":
        logger.info("Scheduler disabled in test environment")
        return

    if not scheduler.running:
        scheduler.add_job(
            process_job_queue,
            'interval',
            seconds=settings.JOB_QUEUE_POLL_SECONDS,
            id='process_job_queue',
            name='Process Background Job Queue',
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        if settings.EXPIRY_SWEEP_ENABLED:
            scheduler.add_job(
                expire_overdue_sessions,
                'interval',
                seconds=settings.EXPIRY_SWEEP_INTERVAL_SECONDS,
                id='expire_overdue_sessions',
                name='Expire Overdue Exam Sessions',
                max_instances=1,
                coalesce=True,
                replace_existing=True
            )
        scheduler.start()
        logger.info(
            f"Scheduler started: job queue every {settings.JOB_QUEUE_POLL_SECONDS}s, "
            f"expiry sweep {'on' if settings.EXPIRY_SWEEP_ENABLED else 'off'}"
        )


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler stopped")
