from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Union

from opsdesk.core.errors import ApiError, ValidationFailed
from opsdesk.core.models.customer import CustomerRef
from opsdesk.core.models.estimate import ESTIMATE_STATUSES, Estimate
from opsdesk.core.models.invoice import INVOICE_STATUSES, Invoice
from opsdesk.core.services.customer_service import CustomerService
from opsdesk.core.services.estimate_service import EstimateService
from opsdesk.core.services.invoice_service import InvoiceService
from opsdesk.core.services.line_items import LineItemCollection
from opsdesk.core.services.totals import Totals, to_number

log = logging.getLogger(__name__)

DocumentKind = Literal["estimate", "invoice"]
Document = Union[Estimate, Invoice]

_CUSTOMER_FIELDS = ("customer_id", "customer_name", "customer_email", "customer_phone", "customer_address")

HEADER_FIELDS: Dict[str, tuple] = {
    "estimate": ("title", "description", *_CUSTOMER_FIELDS, "project_id",
                 "tax_rate", "valid_until", "notes", "status"),
    "invoice": ("title", "description", *_CUSTOMER_FIELDS, "estimate_id", "project_id",
                "tax_rate", "due_date", "notes", "status"),
}

STATUSES = {"estimate": ESTIMATE_STATUSES, "invoice": INVOICE_STATUSES}

# None -> "" à l'envoi
_TEXT_FIELDS = ("description", "customer_name", "customer_email", "customer_phone", "customer_address", "notes")
# dates vides -> champ absent du JSON
_DATE_FIELDS = ("valid_until", "due_date")


def _defaults(kind: str) -> Dict[str, Any]:
    header: Dict[str, Any] = {f: None for f in HEADER_FIELDS[kind]}
    header.update(title="", tax_rate=0.0, status="draft")
    return header


class DocumentEditor:
    """
    Brouillon d'un devis ou d'une facture : en-tête + lignes.
    En cas d'échec, le formulaire garde tout ce qui a été saisi et expose `error`.
    """

    def __init__(self, kind: DocumentKind, service: Union[EstimateService, InvoiceService],
                 customers: Optional[Sequence[CustomerRef]] = None,
                 record: Optional[Document] = None) -> None:
        if kind not in HEADER_FIELDS:
            raise ValueError(f"Unknown document kind: {kind}")
        self.kind = kind
        self.service = service
        self.customers: List[CustomerRef] = list(customers or [])
        self.record_id: Optional[int] = record.id if record is not None else None

        self.header = _defaults(kind)
        if record is not None:
            for f in HEADER_FIELDS[kind]:
                self.header[f] = getattr(record, f, self.header[f])
        self.items = LineItemCollection(record.items if record is not None else None)

        self.loading = False
        self.error: Optional[str] = None
        self.saved: Optional[Document] = None

    @classmethod
    def for_create(cls, kind: DocumentKind, service, customers=None) -> "DocumentEditor":
        return cls(kind, service, customers)

    @classmethod
    def for_edit(cls, kind: DocumentKind, record: Document, service, customers=None) -> "DocumentEditor":
        return cls(kind, service, customers, record=record)

    @property
    def is_edit(self) -> bool:
        return self.record_id is not None

    # ---------------- En-tête ---------------- #

    def set_field(self, name: str, value: Any) -> None:
        if name not in self.header:
            raise KeyError(name)
        if name == "status" and value not in STATUSES[self.kind]:
            raise ValidationFailed(f"Unknown {self.kind} status: {value}")
        self.header[name] = value

    def select_customer(self, customer_id: Optional[int]) -> None:
        """Le nom vient de la liste déjà chargée ; aucun appel réseau."""
        if customer_id in (None, ""):
            self.header["customer_id"] = None
            self.header["customer_name"] = ""
            return
        cid = int(customer_id)
        self.header["customer_id"] = cid
        self.header["customer_name"] = CustomerService.name_for(self.customers, cid)
        if self.kind == "invoice":
            self.header["project_id"] = None

    # ---------------- Totaux / payload ---------------- #

    def totals(self) -> Totals:
        return self.items.totals(self.header.get("tax_rate"))

    def build_payload(self) -> Dict[str, Any]:
        """Les ids vides partent à null et le texte vide à "" ; seules les dates vides sont omises."""
        payload: Dict[str, Any] = {}
        for name, value in self.header.items():
            if name in _DATE_FIELDS:
                if value is None or not str(value).strip():
                    continue
            elif name in _TEXT_FIELDS and value is None:
                value = ""
            payload[name] = value
        payload["tax_rate"] = to_number(self.header.get("tax_rate"))
        payload["items"] = self.items.to_payload()
        return payload

    # ---------------- Envoi ---------------- #

    def _save_call(self) -> Callable[[Mapping[str, Any]], Document]:
        if self.kind == "estimate":
            if self.is_edit:
                return lambda p: self.service.update_estimate(self.record_id, p)
            return self.service.create_estimate
        if self.is_edit:
            return lambda p: self.service.update_invoice(self.record_id, p)
        return self.service.create_invoice

    def submit(self) -> Optional[Document]:
        if self.loading:
            return None
        self.loading = True
        self.error = None
        try:
            saved = self._save_call()(self.build_payload())
        except ApiError as e:
            self.error = e.message
            return None
        finally:
            self.loading = False
        log.info("%s enregistré (id=%s)", self.kind, saved.id)
        self.saved = saved
        self.record_id = saved.id if saved.id is not None else self.record_id
        return saved
