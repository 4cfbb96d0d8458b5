from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from opsdesk.core.errors import ApiError, ValidationFailed
from opsdesk.core.models.common import Page, compact, to_page
from opsdesk.core.models.invoice import Invoice
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository

log = logging.getLogger(__name__)


def _invoice(data: Any, fallback: str) -> Invoice:
    try:
        return Invoice.model_validate(data)
    except ValidationError as e:
        log.warning("facture illisible: %s erreur(s)", e.error_count())
        raise ApiError(fallback) from e


class InvoiceService:
    def __init__(self, client: ApiClient):
        self.repo = ApiRepository(client, "invoices", "invoices", "invoice", entity_name="invoice")

    # ---------------- Lecture ---------------- #

    def get_invoices(self, page: int = 1, limit: int = 10, search: str = "", status: str = "") -> Page[Invoice]:
        params = {"search": search or None, "status": status or None}
        rows, pagination = self.repo.list_page(page, limit, params, fallback="Failed to load invoices")
        return to_page(Invoice, rows, pagination)

    def get_invoice(self, invoice_id: int) -> Invoice:
        return _invoice(self.repo.get_by_id(invoice_id, fallback="Failed to load invoice"),
                        "Failed to load invoice")

    # ---------------- Écriture ---------------- #

    def create_invoice(self, payload: Mapping[str, Any]) -> Invoice:
        return _invoice(self.repo.add(payload, fallback="Failed to create invoice"), "Failed to create invoice")

    def update_invoice(self, invoice_id: int, payload: Mapping[str, Any]) -> Invoice:
        return _invoice(self.repo.update(invoice_id, payload, fallback="Failed to update invoice"),
                        "Failed to update invoice")

    def delete_invoice(self, invoice_id: int) -> None:
        self.repo.delete(invoice_id, fallback="Failed to delete invoice")

    # Facture partielle : le montant est calculé côté client, le serveur l'enregistre tel quel
    def create_invoice_from_estimate(self, estimate_id: int, *, title: str, percentage: float, amount: float,
                                     due_date: Optional[str] = None) -> Invoice:
        payload = compact({"title": title, "due_date": due_date or None,
                           "percentage": percentage, "amount": amount})
        body = self.repo.post_action("from-estimate", estimate_id, payload=payload,
                                     fallback="Failed to create invoice from estimate")
        return _invoice(self.repo.unwrap(body), "Failed to create invoice from estimate")

    # ---------------- Email / PDF ---------------- #

    def send_invoice_email(self, invoice_id: int, recipient_email: str, sender_name: str = "") -> None:
        if not (recipient_email or "").strip():
            raise ValidationFailed("Recipient email is required")
        self.repo.post_action(invoice_id, "send-email",
                              payload={"recipient_email": recipient_email.strip(), "sender_name": sender_name},
                              fallback="Failed to send invoice email")

    def view_invoice_pdf(self, invoice_id: int) -> str:
        return self.repo.url(invoice_id, "pdf", "view")

    def download_invoice_pdf(self, invoice_id: int, out_path: Optional[Union[str, Path]] = None) -> bytes:
        data = self.repo.get_bytes(invoice_id, "pdf", fallback="Failed to download invoice PDF")
        if out_path is not None:
            p = Path(out_path)
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
            log.info("PDF facture %s enregistré: %s", invoice_id, p)
        return data

    def regenerate_invoice_pdf(self, invoice_id: int) -> None:
        self.repo.post_action(invoice_id, "pdf", "regenerate", fallback="Failed to regenerate invoice PDF")
