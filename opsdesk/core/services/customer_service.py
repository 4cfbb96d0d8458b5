from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from opsdesk.core.errors import ValidationFailed
from opsdesk.core.models.common import Page, parse_record, parse_records, to_page
from opsdesk.core.models.customer import Customer, CustomerRef
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository


def customer_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Saisie du formulaire client -> corps JSON (texte vide -> null). Le nom est obligatoire."""
    payload: Dict[str, Any] = {k: (str(v).strip() if v is not None else "") or None for k, v in values.items()}
    if not payload.get("name"):
        raise ValidationFailed("Name is required")
    return payload


class CustomerService:
    def __init__(self, client: ApiClient):
        self.repo = ApiRepository(client, "customers", "customers", "customer", entity_name="customer")

    def get_customers(self, page: int = 1, limit: int = 10, search: str = "") -> Page[Customer]:
        rows, pagination = self.repo.list_page(page, limit, {"search": search or None},
                                               fallback="Failed to load customers")
        return to_page(Customer, rows, pagination)

    def get_simple_customers(self) -> List[CustomerRef]:
        # liste (id, nom) pour les sélecteurs des formulaires
        rows = self.repo.list_all("simple", fallback="Failed to load customers")
        return parse_records(CustomerRef, rows)

    def get_customer(self, customer_id: int) -> Customer:
        data = self.repo.get_by_id(customer_id, fallback="Failed to load customer")
        return parse_record(Customer, data, "Failed to load customer")

    def create_customer(self, payload: Mapping[str, Any]) -> Customer:
        data = self.repo.add(payload, fallback="Failed to create customer")
        return parse_record(Customer, data, "Failed to create customer")

    def update_customer(self, customer_id: int, payload: Mapping[str, Any]) -> Customer:
        data = self.repo.update(customer_id, payload, fallback="Failed to update customer")
        return parse_record(Customer, data, "Failed to update customer")

    def delete_customer(self, customer_id: int) -> None:
        self.repo.delete(customer_id, fallback="Failed to delete customer")

    @staticmethod
    def name_for(customers: List[CustomerRef], customer_id: Optional[int]) -> str:
        for c in customers:
            if c.id == customer_id:
                return c.name
        return ""
