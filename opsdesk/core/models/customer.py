from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from opsdesk.core.models.common import Record


class Contact(Record):
    customer_id: Optional[int] = None
    first_name: str
    last_name: str = ""
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    is_primary: bool = False
    notes: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v: Any) -> Any:
        # les formulaires envoient "" plutôt que null
        return None if isinstance(v, str) and not v.strip() else v

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Customer(Record):
    name: str
    description: Optional[str] = None
    industry: Optional[str] = None
    website: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None
    created_by_username: Optional[str] = None
    contacts: List[Contact] = Field(default_factory=list)

    @field_validator("email", mode="before")
    @classmethod
    def _blank_email(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v

    def location(self) -> str:
        return ", ".join(p for p in (self.city, self.state, self.postal_code) if p)


class CustomerRef(BaseModel):
    """Entrée de la liste simplifiée (id, nom) pour les sélecteurs."""
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
