from decimal import ROUND_HALF_UP, Decimal

_CENT = Decimal("0.01")


def round2(value) -> float:
    """Round half-up to two decimal places."""
    return float(Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP))


def to_minor_units(amount) -> int:
    """Amount in the currency's smallest unit (paise, cents) as gateways expect."""
    return int((Decimal(str(amount)) * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))
