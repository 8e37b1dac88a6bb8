from decimal import ROUND_HALF_UP, Decimal

CENTS = Decimal("0.01")


def to_display(amount: Decimal) -> Decimal:
    """Round to two places. Only for values leaving the service, never for intermediate sums."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
