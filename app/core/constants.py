from enum import Enum


class RoleEnum(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"

class ExamStatusEnum(str, Enum):
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"

class TierSchemeEnum(str, Enum):
    TOPIK_I = "TOPIK_I"
    TOPIK_II = "TOPIK_II"

class SectionTypeEnum(str, Enum):
    LISTENING = "LISTENING"
    READING = "READING"
    WRITING = "WRITING"

class QuestionTypeEnum(str, Enum):
    MCQ = "MCQ"
    SHORT_TEXT = "SHORT_TEXT"
    ESSAY = "ESSAY"

class SessionStatusEnum(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    SUBMITTED = "SUBMITTED"
    EXPIRED = "EXPIRED"

class MyExamStatusEnum(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"

class JobStatusEnum(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    FAILED = "FAILED"


ESSAY_REVIEW_JOB = "review_essay"

MIN_SESSION_SECONDS = 60
MAX_REMAINING_SECONDS = 86400
MAX_QUESTION_INDEX = 500
ESSAY_FEEDBACK_MAX_ITEMS = 5

# Official TOPIK cut scores, highest first: (minimum total score, achieved level).
# TOPIK I is scored out of 200, TOPIK II out of 300.
ACHIEVED_LEVEL_THRESHOLDS = {
    TierSchemeEnum.TOPIK_I: ((140, 2), (80, 1)),
    TierSchemeEnum.TOPIK_II: ((230, 6), (190, 5), (150, 4), (120, 3)),
}
