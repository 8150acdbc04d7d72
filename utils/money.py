"""Currency rounding for display.

Amounts are stored at full float precision. Rounding happens only when a
value leaves the system for humans (preview, PDF, email), never before
persistence.
"""

from decimal import Decimal, ROUND_HALF_EVEN

_CENT = Decimal("0.01")


def round_currency(amount: float | int | Decimal) -> Decimal:
    """Round to 2 decimal places using banker's rounding (half-even)."""
    if not isinstance(amount, Decimal):
        # str() keeps the shortest repr, so 0.125 stays 0.125 and not 0.1249999...
        amount = Decimal(str(amount))
    return amount.quantize(_CENT, rounding=ROUND_HALF_EVEN)
