from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings

CENTS = Decimal("0.01")


def calculate_service_total(service) -> Decimal:
    """Base price plus the premium fee when it is enabled for the service."""
    total = Decimal(service.base_price)
    if service.premium_fee_enabled:
        total += Decimal(service.premium_fee or 0)
    return total.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_deposit(service) -> Decimal:
    """Online deposit: DEPOSIT_PERCENTAGE of the base price, capped at DEPOSIT_CAP."""
    pct = Decimal(settings.DEPOSIT_PERCENTAGE) / Decimal(100)
    cap = Decimal(str(settings.DEPOSIT_CAP))
    deposit = min(Decimal(service.base_price) * pct, cap)
    return deposit.quantize(CENTS, rounding=ROUND_HALF_UP)


def calculate_no_show_penalty(deposit_amount) -> Decimal:
    pct = Decimal(settings.NO_SHOW_PENALTY_PERCENTAGE) / Decimal(100)
    return (Decimal(deposit_amount or 0) * pct).quantize(CENTS, rounding=ROUND_HALF_UP)
