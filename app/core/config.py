from pydantic_settings import BaseSettings
from typing import Optional, List

class Settings(BaseSettings):
    PROJECT_NAME: str = "Exam Session Engine"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 2

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
    ]

    # Database Configuration
    DATABASE_HOST: Optional[str] = None
    DATABASE_PORT: Optional[str] = "5432"
    DATABASE_USER: Optional[str] = None
    DATABASE_PASSWORD: Optional[str] = None
    DATABASE_NAME: Optional[str] = None

    DATABASE_URL: str = ""
    TEST_DATABASE_URL: Optional[str] = None

    def __init__(self, **data):
        super().__init__(**data)
        if not self.DATABASE_URL:
            if self.DATABASE_HOST:
                self.DATABASE_URL = (
                    f'postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}'
                    f'@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}'
                )
            else:
                self.DATABASE_URL = "sqlite:///./exam_engine.db"

    # Grading oracle (OpenRouter chat completions)
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_MODEL: str = "google/gemini-2.0-flash-001"
    OPENROUTER_MODEL_WRITING: Optional[str] = None
    GRADING_TIMEOUT_SECONDS: float = 45.0
    APP_URL: str = "http://localhost:3000"

    # Background job queue
    ESSAY_REVIEW_ATTEMPTS: int = 3
    ESSAY_REVIEW_BACKOFF_SECONDS: int = 2
    JOB_QUEUE_POLL_SECONDS: int = 5
    JOB_QUEUE_BATCH_SIZE: int = 10
    JOB_LOCK_TIMEOUT_SECONDS: int = 300
    FAILED_JOB_RETENTION: int = 100

    # Reconciliation sweep for sessions past their deadline; expiry is lazy when disabled
    EXPIRY_SWEEP_ENABLED: bool = False
    EXPIRY_SWEEP_INTERVAL_SECONDS: int = 60

    class Config:
        env_file = ".env"

settings = Settings()
