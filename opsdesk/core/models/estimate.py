from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from opsdesk.core.models.common import Record
from opsdesk.core.models.line_item import LineItem
from opsdesk.core.services.totals import to_number

EstimateStatus = Literal["draft", "sent", "approved", "rejected", "expired"]
ESTIMATE_STATUSES = ("draft", "sent", "approved", "rejected", "expired")


class Estimate(Record):
    title: str = ""
    description: Optional[str] = None

    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None

    project_id: Optional[int] = None
    project_name: Optional[str] = None

    status: EstimateStatus = "draft"
    tax_rate: float = 0.0
    valid_until: Optional[str] = None
    notes: Optional[str] = None

    items: List[LineItem] = Field(default_factory=list)

    # agrégats calculés côté serveur : lecture seule
    subtotal: float = 0.0
    tax_amount: float = 0.0
    total_amount: float = 0.0
    total_invoiced: float = 0.0
    total_paid: float = 0.0

    created_by: Optional[int] = None
    created_by_username: Optional[str] = None

    @field_validator("subtotal", "tax_amount", "total_amount", "total_invoiced", "total_paid", "tax_rate", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        # Postgres NUMERIC arrive souvent en chaîne ("250.00")
        return to_number(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v: Any) -> Any:
        return [] if v is None else v

    # helpers
    def is_approved(self) -> bool:
        return self.status == "approved"

    def remaining_to_invoice(self) -> float:
        return max(0.0, self.total_amount - self.total_invoiced)

    def remaining_to_collect(self) -> float:
        return max(0.0, self.total_invoiced - self.total_paid)

    def invoiced_percentage(self) -> float:
        if self.total_amount <= 0:
            return 0.0
        return self.total_invoiced * 100 / self.total_amount
