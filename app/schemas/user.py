from pydantic import BaseModel, ConfigDict

from app.core.constants import RoleEnum

class UserContext(BaseModel):
    """The authenticated caller as supplied by the identity provider."""
    user_id: int
    role: RoleEnum = RoleEnum.STUDENT

    model_config = ConfigDict(frozen=True)

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.ADMIN
