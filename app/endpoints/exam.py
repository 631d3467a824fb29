from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.constants import TierSchemeEnum, SectionTypeEnum

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.exam import ExamSummary, ExamDetail, ExamListFilters
from app.services.exam import exam_service
from app.schemas.user import UserContext

router = APIRouter()


@router.get("/", response_model=APIResponse[List[ExamSummary]])
async def list_published_exams(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context),
    tier_scheme: Optional[TierSchemeEnum] = Query(None),
    year: Optional[int] = Query(None),
    level: Optional[str] = Query(None),
    section_types: Optional[List[SectionTypeEnum]] = Query(None)
):
    filters = ExamListFilters(tier_scheme=tier_scheme, year=year, level=level, section_types=section_types)
    exams = exam_service.list_published_exams(db, filters=filters, current_user_context=context)
    return APIResponse(message="Exams retrieved successfully", data=exams)


@router.get("/{exam_id}", response_model=APIResponse[ExamDetail])
async def get_exam_detail(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    detail = exam_service.get_exam_detail(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam retrieved successfully", data=detail)
