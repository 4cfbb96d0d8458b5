from __future__ import annotations

import logging
from typing import Optional

from opsdesk.core.errors import ValidationFailed
from opsdesk.core.models.estimate import ESTIMATE_STATUSES, Estimate
from opsdesk.core.models.invoice import INVOICE_STATUSES, Invoice
from opsdesk.core.models.project import Project
from opsdesk.core.models.user import Session
from opsdesk.core.services.customer_service import CustomerService
from opsdesk.core.services.estimate_service import EstimateService
from opsdesk.core.services.invoice_service import InvoiceService

log = logging.getLogger(__name__)


class WorkflowService:
    """Actions ponctuelles des écrans de liste ; les droits sont vérifiés ici, une fois."""

    def __init__(self, estimates: EstimateService, invoices: InvoiceService, customers: CustomerService):
        self.estimates = estimates
        self.invoices = invoices
        self.customers = customers

    # Statut rapide depuis la liste
    def update_estimate_status(self, session: Session, estimate_id: int, status: str) -> Estimate:
        if status not in ESTIMATE_STATUSES:
            raise ValidationFailed(f"Unknown estimate status: {status}")
        log.info("devis %s -> %s (%s)", estimate_id, status, session.user.username)
        return self.estimates.update_estimate(estimate_id, {"status": status})

    def update_invoice_status(self, session: Session, invoice_id: int, status: str) -> Invoice:
        session.ensure_admin("change invoice status")
        if status not in INVOICE_STATUSES:
            raise ValidationFailed(f"Unknown invoice status: {status}")
        log.info("facture %s -> %s (%s)", invoice_id, status, session.user.username)
        return self.invoices.update_invoice(invoice_id, {"status": status})

    # Suppressions : réservées aux administrateurs
    def delete_estimate(self, session: Session, estimate_id: int) -> None:
        session.ensure_admin("delete estimates")
        self.estimates.delete_estimate(estimate_id)

    def delete_invoice(self, session: Session, invoice_id: int) -> None:
        session.ensure_admin("delete invoices")
        self.invoices.delete_invoice(invoice_id)

    def delete_customer(self, session: Session, customer_id: int) -> None:
        session.ensure_admin("delete customers")
        self.customers.delete_customer(customer_id)

    # Devis accepté -> projet
    def create_project_from_estimate(self, estimate: Estimate, project_name: Optional[str] = None,
                                     project_description: Optional[str] = None) -> Project:
        if not estimate.is_approved():
            raise ValidationFailed("Only approved estimates can be converted to projects")
        name = (project_name or "").strip() or estimate.title
        description = project_description if project_description is not None else (estimate.description or "")
        return self.estimates.create_project_from_estimate(estimate.id, name, description)

    def send_invoice_email(self, invoice: Invoice, recipient_email: Optional[str] = None,
                           sender_name: str = "") -> None:
        recipient = (recipient_email if recipient_email is not None else invoice.customer_email) or ""
        self.invoices.send_invoice_email(invoice.id, recipient, sender_name)
