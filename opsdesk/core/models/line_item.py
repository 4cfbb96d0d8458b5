from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

from opsdesk.core.services.totals import line_total, to_number


class LineItem(BaseModel):
    """Ligne de devis/facture : pas d'identité hors de sa position."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    description: str = ""
    quantity: float = 1.0
    unit_price: float = 0.0

    @field_validator("description", mode="before")
    @classmethod
    def _desc(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @field_validator("quantity", "unit_price", mode="before")
    @classmethod
    def _non_negative(cls, v: Any) -> float:
        return max(0.0, to_number(v))

    @property
    def total(self) -> float:
        return line_total(self)

    def is_blank(self) -> bool:
        return self.description.strip() == ""

    def to_payload(self) -> dict:
        return {"description": self.description, "quantity": self.quantity, "unit_price": self.unit_price}
