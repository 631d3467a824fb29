from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.constants import RoleEnum, JobStatusEnum
from app.schemas.background_job import BackgroundJob
from app.services.job_queue import job_queue
from app.schemas.response import APIResponse
from app.utils import deps

router = APIRouter()

@router.get("/jobs", response_model=APIResponse[List[BackgroundJob]], dependencies=[Depends(deps.require_role(RoleEnum.ADMIN))])
async def list_jobs(
    *,
    db: Session = Depends(deps.get_db),
    status: JobStatusEnum = Query(JobStatusEnum.FAILED),
    job_type: Optional[str] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200)
):
    jobs = job_queue.list_jobs(db, status_filter=status, job_type=job_type, skip=skip, limit=limit)
    return APIResponse(message="Jobs retrieved successfully", data=[BackgroundJob.model_validate(j) for j in jobs])

@router.post("/jobs/{job_id}/retry", response_model=APIResponse[BackgroundJob], dependencies=[Depends(deps.require_role(RoleEnum.ADMIN))])
async def retry_job(
    *,
    job_id: int,
    db: Session = Depends(deps.get_transactional_db)
):
    job = job_queue.requeue(db, job_id)
    return APIResponse(message="Job re-queued successfully", data=BackgroundJob.model_validate(job))
