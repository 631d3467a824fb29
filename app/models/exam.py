from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import ExamStatusEnum, TierSchemeEnum, SectionTypeEnum

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, index=True, nullable=False)
    year = Column(Integer, nullable=False)
    tier_scheme = Column(Enum(TierSchemeEnum), nullable=False)
    level = Column(String, nullable=True)
    duration_minutes = Column(Integer, nullable=False)
    total_questions = Column(Integer, nullable=False, default=0)
    status = Column(Enum(ExamStatusEnum), nullable=False, default=ExamStatusEnum.DRAFT, index=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    sections = relationship(
        "ExamSection",
        back_populates="exam",
        cascade="all, delete-orphan",
        order_by="ExamSection.order_index",
    )
    sessions = relationship("ExamSession", back_populates="exam")

    @property
    def duration_seconds(self) -> int:
        return (self.duration_minutes or 0) * 60


class ExamSection(Base):
    __tablename__ = "exam_sections"

    id = Column(Integer, primary_key=True, index=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    section_type = Column(Enum(SectionTypeEnum), nullable=False)
    order_index = Column(Integer, nullable=False)
    duration_minutes = Column(Integer, nullable=True)
    # Official TOPIK sections are worth 100; when unset the section is worth the sum of its question weights.
    max_score = Column(Integer, nullable=True)

    exam = relationship("Exam", back_populates="sections")
    questions = relationship(
        "Question",
        back_populates="section",
        cascade="all, delete-orphan",
        order_by="Question.order_index",
    )
