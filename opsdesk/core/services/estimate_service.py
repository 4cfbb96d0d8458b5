from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from opsdesk.core.errors import ApiError
from opsdesk.core.models.common import Page, to_page
from opsdesk.core.models.estimate import Estimate
from opsdesk.core.models.project import Project
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository

log = logging.getLogger(__name__)


def _estimate(data: Any, fallback: str) -> Estimate:
    try:
        return Estimate.model_validate(data)
    except ValidationError as e:
        log.warning("devis illisible: %s erreur(s)", e.error_count())
        raise ApiError(fallback) from e


class EstimateService:
    def __init__(self, client: ApiClient):
        self.repo = ApiRepository(client, "estimates", "estimates", "estimate", entity_name="estimate")

    # ---------------- Lecture ---------------- #

    def get_estimates(self, page: int = 1, limit: int = 10, search: str = "", status: str = "",
                      project_id: Optional[int] = None) -> Page[Estimate]:
        params = {"search": search or None, "status": status or None, "project_id": project_id}
        rows, pagination = self.repo.list_page(page, limit, params, fallback="Failed to load estimates")
        return to_page(Estimate, rows, pagination)

    def get_estimate(self, estimate_id: int) -> Estimate:
        return _estimate(self.repo.get_by_id(estimate_id, fallback="Failed to load estimate"),
                         "Failed to load estimate")

    # ---------------- Écriture ---------------- #

    def create_estimate(self, payload: Mapping[str, Any]) -> Estimate:
        return _estimate(self.repo.add(payload, fallback="Failed to create estimate"),
                         "Failed to create estimate")

    def update_estimate(self, estimate_id: int, payload: Mapping[str, Any]) -> Estimate:
        return _estimate(self.repo.update(estimate_id, payload, fallback="Failed to update estimate"),
                         "Failed to update estimate")

    def delete_estimate(self, estimate_id: int) -> None:
        self.repo.delete(estimate_id, fallback="Failed to delete estimate")

    # ---------------- Actions ---------------- #

    def create_project_from_estimate(self, estimate_id: int, project_name: str,
                                     project_description: str = "") -> Project:
        body = self.repo.post_action(
            estimate_id, "create-project",
            payload={"project_name": project_name, "project_description": project_description},
            fallback="Failed to create project from estimate",
        )
        data = body.get("project") if isinstance(body, dict) else None
        try:
            return Project.model_validate(data or {})
        except ValidationError as e:
            raise ApiError("Failed to create project from estimate") from e

    def send_estimate_email(self, estimate_id: int, recipient_email: str, sender_name: str = "") -> None:
        self.repo.post_action(estimate_id, "send-email",
                              payload={"recipient_email": recipient_email, "sender_name": sender_name},
                              fallback="Failed to send estimate email")

    def view_estimate_pdf(self, estimate_id: int) -> str:
        return self.repo.url(estimate_id, "pdf", "view")
