from pydantic import BaseModel, field_validator

from app.core.constants import RoleEnum

class TokenPayload(BaseModel):
    """Claims issued by the identity provider."""
    sub: int
    role: RoleEnum = RoleEnum.STUDENT
    exp: int | None = None

    @field_validator("sub", mode="before")
    @classmethod
    def parse_subject(cls, v):
        if isinstance(v, str) and v.strip().isdigit():
            return int(v)
        return v
