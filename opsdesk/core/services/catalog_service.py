from __future__ import annotations

from typing import Any, List, Mapping, Optional

from opsdesk.core.models.catalog import CatalogMaterial, CatalogService as CatalogServiceItem
from opsdesk.core.models.common import Page, parse_record, to_page
from opsdesk.core.models.user import Session
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository


def _categories(body: Any) -> List[str]:
    rows = body.get("categories", []) if isinstance(body, dict) else body
    if not isinstance(rows, list):
        return []
    out: List[str] = []
    for r in rows:
        # ["Electrical", ...] ou [{"category": "Electrical"}, ...]
        name = r.get("category") if isinstance(r, dict) else r
        if isinstance(name, str) and name:
            out.append(name)
    return out


class CatalogService:
    """Catalogues matériaux et prestations (même forme CRUD pour les deux)."""

    def __init__(self, client: ApiClient):
        self.materials = ApiRepository(client, "catalog-materials", "materials", "material",
                                       entity_name="catalog material")
        self.services = ApiRepository(client, "services", "services", "service", entity_name="service")

    # ---------------- Matériaux ---------------- #

    def get_materials(self, page: int = 1, limit: int = 20, search: str = "", category: str = "",
                      active_only: Optional[bool] = None) -> Page[CatalogMaterial]:
        params = {"search": search or None, "category": category or None,
                  "active_only": "true" if active_only else None}
        rows, pagination = self.materials.list_page(page, limit, params, fallback="Failed to load materials")
        return to_page(CatalogMaterial, rows, pagination)

    def get_material_categories(self) -> List[str]:
        return _categories(self.materials.get_json("categories", fallback="Failed to load categories"))

    def create_material(self, session: Session, payload: Mapping[str, Any]) -> CatalogMaterial:
        session.ensure_admin("manage the materials catalog")
        return parse_record(CatalogMaterial, self.materials.add(payload), "Failed to create catalog material")

    def update_material(self, session: Session, material_id: int, payload: Mapping[str, Any]) -> CatalogMaterial:
        session.ensure_admin("manage the materials catalog")
        return parse_record(CatalogMaterial, self.materials.update(material_id, payload),
                            "Failed to update catalog material")

    def delete_material(self, session: Session, material_id: int) -> None:
        session.ensure_admin("manage the materials catalog")
        self.materials.delete(material_id)

    # ---------------- Prestations ---------------- #

    def get_services(self, page: int = 1, limit: int = 20, search: str = "", category: str = "",
                     active_only: Optional[bool] = None) -> Page[CatalogServiceItem]:
        params = {"search": search or None, "category": category or None,
                  "active_only": "true" if active_only else None}
        rows, pagination = self.services.list_page(page, limit, params, fallback="Failed to load services")
        return to_page(CatalogServiceItem, rows, pagination)

    def get_service_categories(self) -> List[str]:
        return _categories(self.services.get_json("categories", fallback="Failed to load categories"))

    def create_service(self, session: Session, payload: Mapping[str, Any]) -> CatalogServiceItem:
        session.ensure_admin("manage the services catalog")
        return parse_record(CatalogServiceItem, self.services.add(payload), "Failed to create service")

    def update_service(self, session: Session, service_id: int, payload: Mapping[str, Any]) -> CatalogServiceItem:
        session.ensure_admin("manage the services catalog")
        return parse_record(CatalogServiceItem, self.services.update(service_id, payload),
                            "Failed to update service")

    def delete_service(self, session: Session, service_id: int) -> None:
        session.ensure_admin("manage the services catalog")
        self.services.delete(service_id)
