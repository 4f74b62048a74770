from decimal import Decimal

from django.conf import settings

CENT = Decimal("0.01")


# Project field defaults, read from settings at call time
def default_vat_rate() -> Decimal:
    return Decimal(str(getattr(settings, "TTO_DEFAULT_VAT_RATE", 18))).quantize(CENT)


def default_commission_rate() -> Decimal:
    return Decimal(str(getattr(settings, "TTO_DEFAULT_COMMISSION_RATE", 15))).quantize(CENT)


def currency_symbol() -> str:
    return getattr(settings, "TTO_CURRENCY_SYMBOL", "₺")
