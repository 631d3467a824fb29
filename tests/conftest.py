import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ["TESTING"] = "true"
os.environ["DATABASE_URL"] = os.environ.get("TEST_DATABASE_URL") or "sqlite:///./test.db"
os.environ["OPENROUTER_API_KEY"] = ""

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, engine, SessionLocal
from app.core.constants import (
    RoleEnum, ExamStatusEnum, TierSchemeEnum, SectionTypeEnum, QuestionTypeEnum
)
from app.core.security import create_access_token
from app.models.exam import Exam, ExamSection
from app.models.question import Question, Choice
from app.utils import deps as deps_utils
import app.models.all  # noqa: F401
import main

STUDENT_ID = 101
OTHER_STUDENT_ID = 202
ADMIN_ID = 1


@pytest.fixture(scope="session")
def database_engine():
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if str(engine.url).startswith("sqlite") and os.path.exists("./test.db"):
        os.remove("./test.db")


@pytest.fixture(scope="function")
def db_session(database_engine):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()
        # Tests commit through the API and the job queue, so clean up table by table.
        with database_engine.begin() as conn:
            for table in reversed(Base.metadata.sorted_tables):
                conn.execute(table.delete())


@pytest.fixture(scope="function")
def client(db_session):
    def _override_get_db():
        yield db_session

    def _override_get_transactional_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    main.app.dependency_overrides[deps_utils.get_db] = _override_get_db
    main.app.dependency_overrides[deps_utils.get_transactional_db] = _override_get_transactional_db
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


def auth_headers(user_id: int, role: RoleEnum = RoleEnum.STUDENT) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}


@pytest.fixture
def student_headers():
    return auth_headers(STUDENT_ID)


@pytest.fixture
def other_student_headers():
    return auth_headers(OTHER_STUDENT_ID)


@pytest.fixture
def admin_headers():
    return auth_headers(ADMIN_ID, role=RoleEnum.ADMIN)


@pytest.fixture
def exam_factory(db_session):
    """
    Build and commit an exam from a compact description.

    sections: list of dicts with section_type, optional max_score and a list of
    questions; each question is a dict of Question columns plus an optional
    `choices` list of (content, is_correct) pairs.
    """
    def _create_exam(*, sections, title="TOPIK Practice Test", year=2024,
                     tier_scheme=TierSchemeEnum.TOPIK_I, level=None, duration_minutes=100,
                     status=ExamStatusEnum.PUBLISHED):
        exam = Exam(
            title=title,
            year=year,
            tier_scheme=tier_scheme,
            level=level,
            duration_minutes=duration_minutes,
            status=status,
            total_questions=sum(len(s.get("questions", [])) for s in sections),
        )
        for section_index, section_def in enumerate(sections):
            section = ExamSection(
                section_type=section_def["section_type"],
                order_index=section_index,
                max_score=section_def.get("max_score"),
            )
            for question_index, question_def in enumerate(section_def.get("questions", [])):
                question_def = dict(question_def)
                choices = question_def.pop("choices", [])
                question = Question(
                    order_index=question_index,
                    content=question_def.pop("content", f"Question {question_index + 1}"),
                    **question_def,
                )
                question.choices = [
                    Choice(order_index=i, content=content, is_correct=is_correct)
                    for i, (content, is_correct) in enumerate(choices)
                ]
                section.questions.append(question)
            exam.sections.append(section)

        db_session.add(exam)
        db_session.commit()
        db_session.refresh(exam)
        return exam
    return _create_exam


@pytest.fixture
def topik_exam(exam_factory):
    """One MCQ (second choice correct), one short-text question and one essay."""
    return exam_factory(sections=[
        {
            "section_type": SectionTypeEnum.READING,
            "questions": [
                {
                    "question_type": QuestionTypeEnum.MCQ,
                    "content": "빈칸에 알맞은 것을 고르십시오.",
                    "score_weight": 1,
                    "choices": [("C1", False), ("C2", True), ("C3", False)],
                },
                {
                    "question_type": QuestionTypeEnum.SHORT_TEXT,
                    "content": "'love' in Korean?",
                    "correct_text_answer": "사랑",
                    "score_weight": 1,
                },
            ],
        },
        {
            "section_type": SectionTypeEnum.WRITING,
            "questions": [
                {
                    "question_type": QuestionTypeEnum.ESSAY,
                    "content": "Write about your hometown in 200-300 characters.",
                    "score_weight": 50,
                },
            ],
        },
    ])


@pytest.fixture
def objective_exam(exam_factory):
    """The MCQ and short-text questions without an essay."""
    return exam_factory(sections=[
        {
            "section_type": SectionTypeEnum.READING,
            "questions": [
                {
                    "question_type": QuestionTypeEnum.MCQ,
                    "score_weight": 1,
                    "choices": [("C1", False), ("C2", True)],
                },
                {
                    "question_type": QuestionTypeEnum.SHORT_TEXT,
                    "correct_text_answer": "사랑",
                    "score_weight": 1,
                },
            ],
        },
    ])
