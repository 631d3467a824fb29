from sqlalchemy import Column, Integer, Text, DateTime, ForeignKey, Boolean, JSON, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base

class SessionAnswer(Base):
    __tablename__ = "session_answers"
    __table_args__ = (UniqueConstraint("session_id", "question_id", name="uq_session_answers_session_question"),)

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("exam_sessions.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    selected_choice_id = Column(Integer, ForeignKey("choices.id"), nullable=True)
    text_answer = Column(Text, nullable=True)
    flagged = Column(Boolean, nullable=False, default=False)

    is_correct = Column(Boolean, nullable=True)
    score = Column(Integer, nullable=True)

    ai_score = Column(Integer, nullable=True) # 0-100 as returned by the grading oracle
    ai_feedback = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
    ai_reviewed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    session = relationship("ExamSession", back_populates="answers")
    question = relationship("Question")
    selected_choice = relationship("Choice")
