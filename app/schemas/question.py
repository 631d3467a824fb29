from pydantic import BaseModel, ConfigDict
from typing import Optional, List

from app.core.constants import QuestionTypeEnum

class ChoicePublic(BaseModel):
    id: int
    order_index: int
    content: str

    model_config = ConfigDict(from_attributes=True)

class ChoiceWithKey(ChoicePublic):
    # None while the answer key is hidden
    is_correct: Optional[bool] = None

class QuestionBase(BaseModel):
    id: int
    section_id: int
    question_type: QuestionTypeEnum
    order_index: int
    content: str
    audio_url: Optional[str] = None
    listening_script: Optional[str] = None
    score_weight: int = 1

    model_config = ConfigDict(from_attributes=True)

class QuestionPublic(QuestionBase):
    """A question as shown to a test-taker; carries no answer key."""
    choices: List[ChoicePublic] = []

class QuestionWithKey(QuestionBase):
    choices: List[ChoiceWithKey] = []
    correct_text_answer: Optional[str] = None
    explanation: Optional[str] = None
