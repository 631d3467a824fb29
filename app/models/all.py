# Import every model so string relationships resolve and Base.metadata is complete.
from app.models.exam import Exam, ExamSection  # noqa: F401
from app.models.question import Question, Choice  # noqa: F401
from app.models.exam_session import ExamSession  # noqa: F401
from app.models.session_answer import SessionAnswer  # noqa: F401
from app.models.background_job import BackgroundJob  # noqa: F401
