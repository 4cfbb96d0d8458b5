from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, NamedTuple

# Montants en float (pas de centimes entiers côté API) ; seul l'affichage arrondit.

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "CAD": "$"}
_NUMERIC_NOISE = re.compile(r"[\s,$€£]")


def to_number(value: Any) -> float:
    """
    Conversion "souple" -> float.
    Chaîne non numérique, None, NaN, infini -> 0.0 (jamais de NaN dans un total).
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        f = float(value)
    else:
        s = _NUMERIC_NOISE.sub("", str(value))
        if not s:
            return 0.0
        try:
            f = float(s)
        except ValueError:
            return 0.0
    return f if math.isfinite(f) else 0.0


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def line_total(item: Any) -> float:
    return to_number(_field(item, "quantity")) * to_number(_field(item, "unit_price"))


class Totals(NamedTuple):
    subtotal: float
    tax_amount: float
    total: float


def compute_totals(items: Iterable[Any], tax_rate: Any = 0) -> Totals:
    # toutes les lignes comptent, même sans description
    subtotal = sum((line_total(it) for it in items), 0.0)
    tax_amount = subtotal * to_number(tax_rate) / 100
    return Totals(subtotal=subtotal, tax_amount=tax_amount, total=subtotal + tax_amount)


# ---------- Formats ----------

def format_money(amount: Any, currency: str = "USD") -> str:
    value = to_number(amount)
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), "")
    sign = "-" if value < 0 else ""
    body = f"{abs(value):,.2f}"
    if symbol:
        return f"{sign}{symbol}{body}"
    return f"{sign}{body} {currency.upper()}"


def format_percentage(value: Any) -> str:
    """25.0 -> '25', 12.5 -> '12.5', jamais de notation exponentielle."""
    f = to_number(value)
    if f == int(f):
        return str(int(f))
    return f"{f:.12f}".rstrip("0").rstrip(".")
