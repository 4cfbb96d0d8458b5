from __future__ import annotations

import logging
from typing import Optional

from pydantic import ValidationError

from opsdesk.core.errors import ApiError, ValidationFailed
from opsdesk.core.models.common import parse_record
from opsdesk.core.models.user import Session, User
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository
from opsdesk.core.storage.session_store import SessionStore

log = logging.getLogger(__name__)


class AuthService:
    """
    Connexion / déconnexion et reprise de la session persistée.
    La session est renvoyée à l'appelant : rien n'est global.
    """

    def __init__(self, client: ApiClient, store: SessionStore):
        self.client = client
        self.store = store
        self.repo = ApiRepository(client, "auth", "users", "user", entity_name="user")
        # 401/403 sur n'importe quel appel : on oublie la session enregistrée
        if client.on_auth_failure is None:
            client.on_auth_failure = self.store.clear

    def login(self, username: str, password: str) -> Session:
        if not (username or "").strip() or not password:
            raise ValidationFailed("Username and password are required")
        body = self.repo.post_action("login", payload={"username": username.strip(), "password": password},
                                     fallback="Login failed")
        session = parse_record(Session, body, "Login failed")
        self.client.token = session.token
        self.store.save(session)
        log.info("connecté: %s", session.user.username)
        return session

    def logout(self) -> None:
        try:
            if self.client.token:
                self.repo.post_action("logout", fallback="Logout failed")
        except ApiError as e:
            # la session locale est supprimée quoi qu'il arrive
            log.warning("logout serveur: %s", e.message)
        finally:
            self.client.token = None
            self.store.clear()

    def current_user(self) -> User:
        body = self.repo.get_json("me", fallback="Failed to load user")
        return parse_record(User, self.repo.unwrap(body), "Failed to load user")

    def restore(self) -> Optional[Session]:
        """Reprend la session enregistrée si le serveur accepte encore le jeton."""
        session = self.store.load()
        if session is None:
            return None
        self.client.token = session.token
        try:
            user = self.current_user()
        except (ApiError, ValidationError) as e:
            log.info("session expirée: %s", e)
            self.client.token = None
            self.store.clear()
            return None
        session = session.model_copy(update={"user": user})
        self.store.save(session)
        return session
