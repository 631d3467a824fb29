from sqlalchemy import Column, Integer, DateTime, ForeignKey, Enum, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import SessionStatusEnum

class ExamSession(Base):
    __tablename__ = "exam_sessions"
    __table_args__ = (
        # At most one IN_PROGRESS attempt per (user, exam); finished attempts are unrestricted.
        Index(
            "uq_exam_sessions_one_in_progress",
            "user_id",
            "exam_id",
            unique=True,
            postgresql_where=text("status = 'IN_PROGRESS'"),
            sqlite_where=text("status = 'IN_PROGRESS'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id"), nullable=False, index=True)
    status = Column(Enum(SessionStatusEnum), nullable=False, default=SessionStatusEnum.IN_PROGRESS)
    remaining_seconds = Column(Integer, nullable=False)
    expires_at = Column(DateTime, nullable=True)
    current_question_index = Column(Integer, nullable=False, default=0)
    total_score = Column(Integer, nullable=True)
    submitted_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    exam = relationship("Exam", back_populates="sessions")
    answers = relationship("SessionAnswer", back_populates="session", cascade="all, delete-orphan")
