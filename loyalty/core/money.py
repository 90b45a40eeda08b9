from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

PENNY = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Decimal | int | str) -> Decimal:
    """Normalizes a GBP amount to pennies, rounding half-up."""
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted, pass Decimal or str")
    try:
        amount = Decimal(value)
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"invalid money amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid money amount: {value!r}")
    return amount.quantize(PENNY, rounding=ROUND_HALF_UP)


def format_gbp(amount: Decimal) -> str:
    return f"£{to_money(amount):,.2f}"
