from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, Any, Dict
from datetime import datetime

from app.core.constants import JobStatusEnum

class RetryPolicy(BaseModel):
    attempts: int = Field(default=3, ge=1)
    backoff_seconds: int = Field(default=2, ge=0)

    def delay_for(self, attempt: int) -> int:
        """Exponential backoff after the given (1-based) failed attempt."""
        return self.backoff_seconds * (2 ** max(attempt - 1, 0))

class BackgroundJob(BaseModel):
    id: int
    job_type: str
    payload: Dict[str, Any] = {}
    status: JobStatusEnum
    attempts: int
    max_attempts: int
    backoff_seconds: int
    run_after: datetime
    locked_at: Optional[datetime] = None
    last_error: Optional[str] = None
    finished_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
