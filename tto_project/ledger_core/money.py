"""
Decimal money math for incomes, commissions and payee shares.

Every monetary result is quantized to two places with ROUND_HALF_UP.
Floats are only ever accepted through their string form so that
repeated operations never drift by a cent.

Gross amounts are VAT-inclusive:

    vat = gross * rate / (100 + rate)
    net = gross - vat
    commission = net * commission_rate / 100
    distributable = net - commission
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Tuple

from .exceptions import InvalidAmount, InvalidRate

CENT = Decimal("0.01")
HUNDRED = Decimal("100")
ZERO = Decimal("0.00")
SHARE_EPSILON = Decimal("0.01")


def _to_decimal(value, error):
    if isinstance(value, bool) or value is None:
        raise error
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    elif isinstance(value, (int, str)):
        try:
            result = Decimal(value.strip() if isinstance(value, str) else value)
        except InvalidOperation:
            raise error from None
    else:
        raise error
    if not result.is_finite():
        raise error
    return result


def round_financial(value) -> Decimal:
    """Quantize any finite number to cents (sign is kept)."""
    return _to_decimal(value, InvalidAmount(amount=value)).quantize(CENT, rounding=ROUND_HALF_UP)


def to_amount(value) -> Decimal:
    """Parse a non-negative, finite amount without rounding it."""
    amount = _to_decimal(value, InvalidAmount(amount=value))
    if amount < 0:
        raise InvalidAmount(amount=value)
    return amount


def to_money(value) -> Decimal:
    return to_amount(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_rate(value) -> Decimal:
    rate = _to_decimal(value, InvalidRate(rate=value))
    if rate < 0 or rate > HUNDRED:
        raise InvalidRate(rate=value)
    return rate


# ---------- Income arithmetic ----------
def vat_from_gross(gross, vat_rate) -> Decimal:
    g = to_amount(gross)
    r = to_rate(vat_rate)
    return (g * r / (HUNDRED + r)).quantize(CENT, rounding=ROUND_HALF_UP)


def net_after_vat(gross, vat) -> Decimal:
    g = to_amount(gross)
    v = to_amount(vat)
    if v > g:
        raise InvalidAmount(amount=vat)
    return (g - v).quantize(CENT, rounding=ROUND_HALF_UP)


def commission(net, commission_rate) -> Decimal:
    n = to_amount(net)
    r = to_rate(commission_rate)
    return (n * r / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


def distributable(net, commission_amount) -> Decimal:
    n = to_amount(net)
    c = to_amount(commission_amount)
    if c > n:
        raise InvalidAmount(amount=commission_amount)
    return (n - c).quantize(CENT, rounding=ROUND_HALF_UP)


def withholding(gross, vat_rate, withholding_rate) -> Decimal:
    """Withholding is levied on the VAT portion of the gross amount."""
    vat = vat_from_gross(gross, vat_rate)
    r = to_rate(withholding_rate)
    return (vat * r / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class IncomeBreakdown:
    gross_amount: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    net_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    distributable_amount: Decimal


def income_breakdown(gross, vat_rate, commission_rate) -> IncomeBreakdown:
    vat = vat_from_gross(gross, vat_rate)
    net = net_after_vat(gross, vat)
    comm = commission(net, commission_rate)
    return IncomeBreakdown(
        gross_amount=to_money(gross),
        vat_rate=to_rate(vat_rate),
        vat_amount=vat,
        net_amount=net,
        commission_rate=to_rate(commission_rate),
        commission_amount=comm,
        distributable_amount=distributable(net, comm),
    )


# ---------- Shares ----------
def validate_shares(shares: Iterable) -> bool:
    total = sum((to_rate(share) for share in shares), Decimal("0"))
    return abs(total - HUNDRED) <= SHARE_EPSILON


def split_by_shares(amount, shares) -> List[Decimal]:
    shares = list(shares)
    if not validate_shares(shares):
        raise InvalidRate(rate=sum((to_rate(s) for s in shares), Decimal("0")))
    total = to_amount(amount)
    return [
        (total * to_rate(share) / HUNDRED).quantize(CENT, rounding=ROUND_HALF_UP)
        for share in shares
    ]


# ---------- Balances ----------
@dataclass(frozen=True)
class BalanceCheck:
    sufficient: bool
    shortfall: Decimal
    has_debt: bool


def check_sufficient_balance(available, requested, debt=0) -> BalanceCheck:
    # any outstanding debt blocks payouts entirely
    debt = to_money(debt)
    if debt > 0:
        return BalanceCheck(sufficient=False, shortfall=debt, has_debt=True)
    available = to_money(available)
    requested = to_money(requested)
    if available >= requested:
        return BalanceCheck(sufficient=True, shortfall=ZERO, has_debt=False)
    return BalanceCheck(sufficient=False, shortfall=requested - available, has_debt=False)


def apply_debt_to_income(income, debt) -> Tuple[Decimal, Decimal]:
    """Return (remaining_income, remaining_debt) after offsetting debt."""
    income = to_money(income)
    debt = to_money(debt)
    if income >= debt:
        return income - debt, ZERO
    return ZERO, debt - income


# ---------- Formatting ----------
def _turkish_grouping(value: Decimal, places: int) -> str:
    # 1,234.56 -> 1.234,56
    text = f"{value:,.{places}f}"
    return text.translate(str.maketrans({",": ".", ".": ","}))


def format_currency(amount, symbol: str = "₺") -> str:
    value = round_financial(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{_turkish_grouping(abs(value), 2)}"


def format_percentage(value, decimals: int = 2) -> str:
    number = _to_decimal(value, InvalidRate(rate=value))
    quantum = Decimal(1).scaleb(-decimals)
    number = number.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if number < 0 else ""
    return f"{sign}%{_turkish_grouping(abs(number), decimals)}"


def parse_turkish_number(text: str) -> Decimal:
    """'1.234,56' -> Decimal('1234.56')"""
    if not isinstance(text, str) or not text.strip():
        raise InvalidAmount(amount=text)
    normalized = text.strip().replace(".", "").replace(",", ".")
    return _to_decimal(normalized, InvalidAmount(amount=text))
