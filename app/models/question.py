from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, Enum
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.core.constants import QuestionTypeEnum

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    section_id = Column(Integer, ForeignKey("exam_sections.id", ondelete="CASCADE"), nullable=False, index=True)
    question_type = Column(Enum(QuestionTypeEnum), nullable=False)
    order_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    audio_url = Column(String, nullable=True)
    listening_script = Column(Text, nullable=True)
    correct_text_answer = Column(String, nullable=True) # SHORT_TEXT only
    score_weight = Column(Integer, nullable=False, default=1)
    explanation = Column(Text, nullable=True)

    section = relationship("ExamSection", back_populates="questions")
    choices = relationship(
        "Choice",
        back_populates="question",
        cascade="all, delete-orphan",
        order_by="Choice.order_index",
    )

    @property
    def exam_id(self):
        return self.section.exam_id if self.section else None


class Choice(Base):
    __tablename__ = "choices"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    order_index = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    is_correct = Column(Boolean, nullable=False, default=False)

    question = relationship("Question", back_populates="choices")
