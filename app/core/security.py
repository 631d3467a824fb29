from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import jwt

from app.core.config import settings
from app.core.constants import RoleEnum

ALGORITHM = "HS256"


def create_access_token(user_id: int, role: RoleEnum = RoleEnum.STUDENT, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token in the shape the identity provider hands out. Used by tooling and tests."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "role": RoleEnum(role).value, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
