from __future__ import annotations

from typing import Any, List, Literal, Optional

from pydantic import Field, field_validator

from opsdesk.core.models.common import Record
from opsdesk.core.models.line_item import LineItem
from opsdesk.core.services.totals import to_number

InvoiceStatus = Literal["draft", "sent", "paid", "overdue", "cancelled"]
INVOICE_STATUSES = ("draft", "sent", "paid", "overdue", "cancelled")


class Invoice(Record):
    invoice_number: Optional[str] = None  # attribué par le serveur
    title: str = ""
    description: Optional[str] = None

    customer_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_address: Optional[str] = None

    estimate_id: Optional[int] = None
    estimate_title: Optional[str] = None
    project_id: Optional[int] = None
    project_name: Optional[str] = None

    status: InvoiceStatus = "draft"
    tax_rate: float = 0.0
    due_date: Optional[str] = None
    paid_date: Optional[str] = None
    notes: Optional[str] = None

    # facture partielle issue d'un devis
    percentage: Optional[float] = None

    items: List[LineItem] = Field(default_factory=list)

    subtotal: float = 0.0
    tax_amount: float = 0.0
    total_amount: float = 0.0

    payment_status: Optional[str] = None
    payment_method: Optional[str] = None

    created_by: Optional[int] = None
    created_by_username: Optional[str] = None

    @field_validator("subtotal", "tax_amount", "total_amount", "tax_rate", mode="before")
    @classmethod
    def _money(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("items", mode="before")
    @classmethod
    def _items(cls, v: Any) -> Any:
        return [] if v is None else v

    def is_paid(self) -> bool:
        return self.status == "paid"

    def is_cancelled(self) -> bool:
        return self.status == "cancelled"
