from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.exam_session import (
    ExamSession, ExamSessionWithAnswers, StartSessionRequest, SaveAnswerRequest, SaveAnswerResult,
    SubmitSessionRequest, SessionReview
)
from app.services.exam_session import exam_session_service
from app.schemas.user import UserContext

router = APIRouter()


@router.post("/start", response_model=APIResponse[ExamSessionWithAnswers], status_code=status.HTTP_201_CREATED)
async def start_session(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_in: StartSessionRequest,
    response: Response,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    session, created = exam_session_service.start_or_resume_session(
        db, exam_id=session_in.exam_id, current_user_context=context
    )
    if not created:
        response.status_code = status.HTTP_200_OK
        return APIResponse(message="Exam session resumed", data=ExamSessionWithAnswers.model_validate(session))
    return APIResponse(message="Exam session started", data=ExamSessionWithAnswers.model_validate(session))


@router.put("/{session_id}/answers", response_model=APIResponse[SaveAnswerResult])
async def save_answer(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    answer_in: SaveAnswerRequest,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = exam_session_service.save_answer(db, session_id=session_id, answer_in=answer_in, current_user_context=context)
    return APIResponse(message="Answer saved", data=result)


@router.post("/{session_id}/submit", response_model=APIResponse[ExamSession])
async def submit_session(
    *,
    db: Session = Depends(deps.get_transactional_db),
    session_id: int,
    submit_in: SubmitSessionRequest = SubmitSessionRequest(),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    session = exam_session_service.submit_session(db, session_id=session_id, submit_in=submit_in, current_user_context=context)
    return APIResponse(message="Exam submitted successfully", data=ExamSession.model_validate(session))


@router.get("/{session_id}/review", response_model=APIResponse[SessionReview])
async def get_session_review(
    *,
    db: Session = Depends(deps.get_db),
    session_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    review = exam_session_service.get_session_review(db, session_id=session_id, current_user_context=context)
    return APIResponse(message="Session review retrieved successfully", data=review)
