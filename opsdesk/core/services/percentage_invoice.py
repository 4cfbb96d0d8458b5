from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Any, Callable, List, NamedTuple, Optional

from opsdesk.core.errors import ApiError
from opsdesk.core.models.estimate import Estimate
from opsdesk.core.models.invoice import Invoice
from opsdesk.core.services.estimate_service import EstimateService
from opsdesk.core.services.invoice_service import InvoiceService
from opsdesk.core.services.totals import format_money, format_percentage

log = logging.getLogger(__name__)

PERCENTAGE_ERROR = "Please enter a valid percentage between 1 and 100"
NOT_APPROVED_ERROR = "Only approved estimates can be invoiced"


class GeneratorState(str, Enum):
    IDLE = "idle"
    ESTIMATE_SELECTED = "estimate-selected"
    PERCENTAGE_ENTERED = "percentage-entered"
    SUBMITTING = "submitting"


def parse_percentage(value: Any) -> Optional[float]:
    """Nombre fini dans ]0, 100], sinon None. "25abc" est refusé."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        p = float(value)
    else:
        s = str(value).strip().rstrip("%").strip()
        if not s:
            return None
        try:
            p = float(s)
        except ValueError:
            return None
    if not math.isfinite(p) or p <= 0 or p > 100:
        return None
    return p


def percentage_amount(total_amount: float, percentage: float) -> float:
    return total_amount * percentage / 100


def default_title(percentage: float, estimate_title: str) -> str:
    return f"{format_percentage(percentage)}% of {estimate_title}"


class EstimateProgress(NamedTuple):
    """Projection d'affichage ; les agrégats restent ceux du serveur."""
    total_amount: float
    total_invoiced: float
    total_paid: float
    remaining_to_invoice: float
    invoiced_percentage: float

    @classmethod
    def of(cls, estimate: Estimate) -> "EstimateProgress":
        return cls(
            total_amount=estimate.total_amount,
            total_invoiced=estimate.total_invoiced,
            total_paid=estimate.total_paid,
            remaining_to_invoice=estimate.remaining_to_invoice(),
            invoiced_percentage=estimate.invoiced_percentage(),
        )


class PercentageInvoiceGenerator:
    """
    Facture partielle depuis un devis accepté :
    idle -> estimate-selected -> percentage-entered -> submitting -> idle | percentage-entered

    Le montant est calculé sur le devis tel qu'il était au moment de la sélection.
    """

    def __init__(self, estimates: EstimateService, invoices: InvoiceService,
                 on_created: Optional[Callable[[Invoice], None]] = None, currency: str = "USD") -> None:
        self.estimates = estimates
        self.invoices = invoices
        self.on_created = on_created
        self.currency = currency

        self.approved_estimates: List[Estimate] = []
        self.state = GeneratorState.IDLE
        self.estimate: Optional[Estimate] = None
        self.percentage: Any = None
        self.title: str = ""
        self.due_date: str = ""
        self.error: Optional[str] = None
        self.success: Optional[str] = None

    # ---------------- Devis proposés ---------------- #

    def load_estimates(self) -> bool:
        try:
            page = self.estimates.get_estimates(1, 100, "", "approved")
        except ApiError as e:
            self.error = e.message
            return False
        self.approved_estimates = [e for e in page.records if e.is_approved()]
        return True

    # ---------------- Transitions ---------------- #

    def select_estimate(self, estimate: Estimate) -> bool:
        if self.state == GeneratorState.SUBMITTING:
            return False
        if not estimate.is_approved():
            self.error = NOT_APPROVED_ERROR
            return False
        self._clear_inputs()
        self.estimate = estimate
        self.error = None
        self.success = None
        self.state = GeneratorState.ESTIMATE_SELECTED
        return True

    def enter(self, percentage: Any, title: Optional[str] = None, due_date: Optional[str] = None) -> bool:
        if self.estimate is None or self.state == GeneratorState.SUBMITTING:
            return False
        self.percentage = percentage
        self.title = title or ""
        self.due_date = due_date or ""
        self.state = GeneratorState.PERCENTAGE_ENTERED
        return True

    def validate(self) -> Optional[str]:
        if parse_percentage(self.percentage) is None:
            return PERCENTAGE_ERROR
        return None

    def preview_amount(self) -> Optional[float]:
        p = parse_percentage(self.percentage)
        if self.estimate is None or p is None:
            return None
        return percentage_amount(self.estimate.total_amount, p)

    def progress(self) -> Optional[EstimateProgress]:
        return EstimateProgress.of(self.estimate) if self.estimate is not None else None

    def submit(self) -> Optional[Invoice]:
        if self.estimate is None or self.state in (GeneratorState.IDLE, GeneratorState.SUBMITTING):
            return None
        message = self.validate()
        if message:
            # refus local : pas d'appel réseau, état inchangé
            self.error = message
            return None

        estimate = self.estimate
        percentage = parse_percentage(self.percentage)
        amount = percentage_amount(estimate.total_amount, percentage)
        title = self.title.strip() or default_title(percentage, estimate.title)

        self.state = GeneratorState.SUBMITTING
        self.error = None
        try:
            invoice = self.invoices.create_invoice_from_estimate(
                estimate.id, title=title, percentage=percentage, amount=amount,
                due_date=self.due_date or None,
            )
        except ApiError as e:
            self.error = e.message
            self.state = GeneratorState.PERCENTAGE_ENTERED
            return None

        self.success = (
            f"Invoice created successfully for {format_percentage(percentage)}% "
            f"({format_money(amount, self.currency)}) of estimate \"{estimate.title}\""
        )
        log.info("facture partielle %s%% sur devis %s", format_percentage(percentage), estimate.id)
        self._reset()
        if self.on_created:
            self.on_created(invoice)
        return invoice

    def cancel(self) -> None:
        if self.state == GeneratorState.SUBMITTING:
            return
        self._reset()
        self.error = None

    # ---------------- Helpers ---------------- #

    def _clear_inputs(self) -> None:
        self.percentage = None
        self.title = ""
        self.due_date = ""

    def _reset(self) -> None:
        self._clear_inputs()
        self.estimate = None
        self.state = GeneratorState.IDLE
