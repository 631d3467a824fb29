from pydantic import BaseModel, ConfigDict
from typing import Optional, Any, Dict
from datetime import datetime

class SessionAnswerPatch(BaseModel):
    """Fields a test-taker may set on an answer. Unset fields are left untouched."""
    selected_choice_id: Optional[int] = None
    text_answer: Optional[str] = None
    flagged: Optional[bool] = None

class SessionAnswer(BaseModel):
    id: int
    session_id: int
    question_id: int
    selected_choice_id: Optional[int] = None
    text_answer: Optional[str] = None
    flagged: bool = False
    is_correct: Optional[bool] = None
    score: Optional[int] = None
    ai_score: Optional[int] = None
    ai_feedback: Optional[Dict[str, Any]] = None
    ai_reviewed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
