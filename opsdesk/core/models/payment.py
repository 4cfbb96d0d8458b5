from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict

# Délégation au prestataire de paiement : formes opaques, rien n'est calculé ici.


class PaymentIntent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_secret: str
    payment_intent_id: Optional[str] = None


class CheckoutSession(BaseModel):
    model_config = ConfigDict(extra="ignore")

    session_id: Optional[str] = None
    url: str


class PaymentDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    amount: float = 0.0
    currency: str = "usd"
    payment_method: Optional[str] = None


class PaymentStatus(BaseModel):
    model_config = ConfigDict(extra="ignore")

    invoice_status: str
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    payment_details: Optional[PaymentDetails] = None
