from __future__ import annotations

from opsdesk.core.models.common import Page, to_page
from opsdesk.core.models.rfi import Rfi
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository


class RfiService:
    def __init__(self, client: ApiClient):
        self.repo = ApiRepository(client, "rfi", "rfis", "rfi", entity_name="RFI")

    def get_rfis(self, page: int = 1, limit: int = 10, search: str = "", status: str = "") -> Page[Rfi]:
        params = {"search": search or None, "status": status or None}
        rows, pagination = self.repo.list_page(page, limit, params, fallback="Failed to load RFIs")
        return to_page(Rfi, rows, pagination)
