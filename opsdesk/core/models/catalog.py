from __future__ import annotations

from typing import Any, Optional

from pydantic import field_validator

from opsdesk.core.models.common import Record
from opsdesk.core.services.totals import to_number


class CatalogMaterial(Record):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit: str = "each"
    standard_cost: float = 0.0
    supplier: Optional[str] = None
    part_number: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool = True

    @field_validator("standard_cost", mode="before")
    @classmethod
    def _cost(cls, v: Any) -> float:
        return to_number(v)


class CatalogService(Record):
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    unit: str = "hour"  # hour, each, sq ft, linear ft...
    standard_rate: float = 0.0
    cost: Optional[float] = None  # coût interne
    notes: Optional[str] = None
    is_active: bool = True

    @field_validator("standard_rate", mode="before")
    @classmethod
    def _rate(cls, v: Any) -> float:
        return to_number(v)

    @field_validator("cost", mode="before")
    @classmethod
    def _cost(cls, v: Any) -> Optional[float]:
        return None if v is None or v == "" else to_number(v)
