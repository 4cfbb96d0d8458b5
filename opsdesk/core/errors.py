from __future__ import annotations

from typing import Any, Optional


class OpsDeskError(Exception):
    """Base des erreurs métier affichables à l'utilisateur."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ApiError(OpsDeskError):
    """Rejet serveur (message JSON repris tel quel) ou échec réseau."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)


class ValidationFailed(OpsDeskError):
    """Refus local, avant tout appel réseau."""


class Forbidden(OpsDeskError):
    def __init__(self, action: str):
        super().__init__(f"You are not allowed to {action}")
        self.action = action
