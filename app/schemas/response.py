from pydantic import BaseModel, ConfigDict, Field
from typing import Generic, TypeVar, Optional, Any, Dict

DataType = TypeVar("DataType")

ERROR_CODES: Dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
    501: "NOT_IMPLEMENTED",
}


class APIResponse(BaseModel, Generic[DataType]):
    """Success envelope for every session, catalog and admin endpoint."""
    message: str = Field(..., description="Short outcome, e.g. 'Exam session started' or 'Exam session resumed'.")
    data: Optional[DataType] = Field(None, description="The session, exam, review or job payload.")


class ErrorDetail(BaseModel):
    code: str = Field(..., description="Stable machine code derived from the HTTP status, e.g. NOT_FOUND or CONFLICT.")
    message: str = Field(..., description="Reason shown to the caller, e.g. 'Session expired.'")
    details: Optional[Dict[str, Any]] = Field(
        None, description="validation_errors for 422 responses, error_type for unhandled errors."
    )

    @classmethod
    def for_status(cls, status_code: int, message: str, details: Optional[Dict[str, Any]] = None) -> "ErrorDetail":
        return cls(code=ERROR_CODES.get(status_code, f"HTTP_{status_code}"), message=message, details=details)


class ErrorResponse(BaseModel):
    """Error envelope written by the exception handlers for every failed request."""
    model_config = ConfigDict(json_schema_extra={
        "example": {
            "error": {"code": "BAD_REQUEST", "message": "Session is not active.", "details": None},
            "timestamp": "2024-05-01T09:30:00+00:00",
            "path": "http://testserver/sessions/42/submit",
            "request_id": "3f6c1d2e-8a4b-4c1e-9f0a-5b7d2c9e1a44",
        }
    })

    error: ErrorDetail
    timestamp: str = Field(..., description="ISO 8601 UTC time the error was produced.")
    path: str = Field(..., description="Full URL of the failed request.")
    request_id: str = Field(..., description="X-Request-ID of the request, echoed in the response header.")
