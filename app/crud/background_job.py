from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from sqlalchemy import and_, or_, update, func

from app.core.constants import JobStatusEnum
from app.crud.base import CRUDBase
from app.models.background_job import BackgroundJob

class CRUDBackgroundJob(CRUDBase[BackgroundJob]):

    def get_due_ids(self, db: Session, *, now: datetime, lock_expired_before: datetime, limit: int) -> List[int]:
        rows = (
            db.query(BackgroundJob.id)
            .filter(
                or_(
                    and_(BackgroundJob.status == JobStatusEnum.PENDING, BackgroundJob.run_after <= now),
                    and_(BackgroundJob.status == JobStatusEnum.RUNNING, BackgroundJob.locked_at <= lock_expired_before),
                )
            )
            .order_by(BackgroundJob.run_after, BackgroundJob.id)
            .limit(limit)
            .all()
        )
        return [row[0] for row in rows]

    def claim(self, db: Session, *, id: int, now: datetime, lock_expired_before: datetime) -> Optional[BackgroundJob]:
        """Mark a due job RUNNING and count the attempt. None if another worker got there first."""
        result = db.execute(
            update(BackgroundJob)
            .where(
                BackgroundJob.id == id,
                or_(
                    and_(BackgroundJob.status == JobStatusEnum.PENDING, BackgroundJob.run_after <= now),
                    and_(BackgroundJob.status == JobStatusEnum.RUNNING, BackgroundJob.locked_at <= lock_expired_before),
                ),
            )
            .values(
                status=JobStatusEnum.RUNNING,
                locked_at=now,
                attempts=BackgroundJob.attempts + 1,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            db.rollback()
            return None
        job = db.get(BackgroundJob, id, populate_existing=True)
        # Detached so the caller holds no open transaction while the job runs.
        db.expunge(job)
        db.commit()
        return job

    def get_multi_by_status(self, db: Session, *, status: JobStatusEnum, job_type: Optional[str] = None,
                            skip: int = 0, limit: int = 100) -> List[BackgroundJob]:
        query = db.query(BackgroundJob).filter(BackgroundJob.status == status)
        if job_type:
            query = query.filter(BackgroundJob.job_type == job_type)
        return query.order_by(BackgroundJob.updated_at.desc(), BackgroundJob.id.desc()).offset(skip).limit(limit).all()

    def prune_failed(self, db: Session, *, keep: int) -> int:
        stale_ids = [
            row[0]
            for row in db.query(BackgroundJob.id)
            .filter(BackgroundJob.status == JobStatusEnum.FAILED)
            .order_by(BackgroundJob.id.desc())
            .offset(keep)
            .all()
        ]
        if not stale_ids:
            return 0
        deleted = (
            db.query(BackgroundJob)
            .filter(BackgroundJob.id.in_(stale_ids))
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted


background_job = CRUDBackgroundJob(BackgroundJob)
