from __future__ import annotations

from typing import Optional

from opsdesk.core.errors import ValidationFailed
from opsdesk.core.models.common import parse_record
from opsdesk.core.models.invoice import Invoice
from opsdesk.core.models.payment import CheckoutSession, PaymentIntent, PaymentStatus
from opsdesk.core.storage.api_repo import ApiClient, ApiRepository


def check_payable(invoice: Invoice) -> Optional[ValidationFailed]:
    """None si la facture peut être réglée, sinon le refus à afficher."""
    if invoice.is_paid():
        return ValidationFailed("Invoice is already paid")
    if invoice.is_cancelled():
        return ValidationFailed("Cannot pay a cancelled invoice")
    return None


class PaymentService:
    """Délégation au prestataire de paiement ; le serveur fait tout le travail."""

    def __init__(self, client: ApiClient):
        self.repo = ApiRepository(client, "payments", "payments", "payment", entity_name="payment")

    def get_public_key(self) -> str:
        body = self.repo.get_json("public-key", fallback="Failed to initialize payment system")
        return str((body or {}).get("publishable_key") or "")

    def _ensure_payable(self, invoice: Invoice) -> None:
        denied = check_payable(invoice)
        if denied is not None:
            raise denied

    def create_payment_intent(self, invoice: Invoice) -> PaymentIntent:
        self._ensure_payable(invoice)
        body = self.repo.post_action("create-payment-intent", payload={"invoice_id": invoice.id},
                                     fallback="Payment failed")
        return parse_record(PaymentIntent, body, "Payment failed")

    def create_checkout_session(self, invoice: Invoice, success_url: str, cancel_url: str) -> CheckoutSession:
        self._ensure_payable(invoice)
        body = self.repo.post_action(
            "create-checkout-session",
            payload={"invoice_id": invoice.id, "success_url": success_url, "cancel_url": cancel_url},
            fallback="Failed to redirect to checkout",
        )
        return parse_record(CheckoutSession, body, "Failed to redirect to checkout")

    def get_payment_status(self, invoice_id: int) -> PaymentStatus:
        body = self.repo.get_json("status", invoice_id, fallback="Failed to load invoice details")
        return parse_record(PaymentStatus, body, "Failed to load invoice details")

    def checkout_for(self, invoice: Invoice, web_url: str) -> CheckoutSession:
        """Session de paiement hébergée, avec retour sur les pages succès / annulation du site."""
        base = web_url.rstrip("/")
        return self.create_checkout_session(
            invoice,
            success_url=f"{base}/payment-success?invoice_id={invoice.id}",
            cancel_url=f"{base}/payment-cancelled?invoice_id={invoice.id}",
        )
