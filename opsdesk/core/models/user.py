from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict

from opsdesk.core.errors import Forbidden
from opsdesk.core.models.common import Record

Role = Literal["admin", "user"]


class User(Record):
    username: str
    email: Optional[str] = None
    role: Role = "user"
    is_active: bool = True


class Session(BaseModel):
    """
    Jeton + utilisateur courant, passé explicitement aux services.
    Les droits sont vérifiés une fois, au moment de l'action.
    """
    model_config = ConfigDict(extra="ignore")

    token: str
    user: User

    @property
    def is_admin(self) -> bool:
        return self.user.role == "admin"

    def require_admin(self, action: str) -> Optional[Forbidden]:
        """None si autorisé, sinon un Forbidden (à lever ou afficher)."""
        if self.is_admin:
            return None
        return Forbidden(action)

    def ensure_admin(self, action: str) -> None:
        denied = self.require_admin(action)
        if denied is not None:
            raise denied
