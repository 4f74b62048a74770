"""
Per-payee balance ledger.

Four operations move money between the pools of a Balance:

    credit    available += amount
    reserve   available -= amount, reserved += amount
    finalize  reserved -= amount (floor 0), total_payment += amount
    release   reserved -= amount (floor 0), available += amount

plus the debt pair ``record_debt`` / ``allocate``. Every write locks the
row, then updates it with a compare-and-swap on ``version`` and appends a
BalanceTransaction, all inside one atomic block.
"""

import functools
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .. import money
from ..exceptions import ConcurrencyConflict, InsufficientFunds, InvalidAmount
from ..models import Balance, BalanceTransaction

logger = logging.getLogger(__name__)


def retry_on_conflict(func):
    """Re-run ``func`` once if it lost a compare-and-swap race.

    Only the outermost call retries: inside an enclosing transaction the
    conflict propagates so the caller's whole unit of work is retried.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ConcurrencyConflict as exc:
            if transaction.get_connection().in_atomic_block:
                raise
            logger.warning("%s hit %s; retrying once", func.__name__, exc.render())
        try:
            return func(*args, **kwargs)
        except ConcurrencyConflict as exc:
            logger.error("%s gave up after retry: %s", func.__name__, exc.render())
            raise

    return wrapper


# ----------------------------
# Balance lookup
# ----------------------------
def get_balance(payee):
    """The payee's balance, or None if nothing was ever credited."""
    return Balance.objects.for_payee(payee).first()


def get_or_create_balance(payee):
    balance, created = Balance.objects.get_or_create(**payee.lookup())
    if created:
        logger.info("Opened balance %s for %s %s", balance.pk, payee.kind, payee.id)
    return balance


def lock_balance(payee, create=False):
    """Load the payee's balance row under a row lock."""
    balance = Balance.objects.select_for_update().for_payee(payee).first()
    if balance is None and create:
        get_or_create_balance(payee)
        balance = Balance.objects.select_for_update().for_payee(payee).get()
    return balance


def _positive(amount) -> Decimal:
    value = money.to_money(amount)
    if value <= 0:
        raise InvalidAmount(amount=amount)
    return value


def _write(balance, operation, amount, changes, reference=None, description=""):
    """Compare-and-swap ``changes`` onto ``balance`` and record the movement."""
    available_before = balance.available_amount
    reserved_before = balance.reserved_amount

    updated = Balance.objects.filter(pk=balance.pk, version=balance.version).update(
        version=F("version") + 1,
        last_updated=timezone.now(),
        **changes,
    )
    if updated != 1:
        raise ConcurrencyConflict(balance_id=balance.pk, version=balance.version)

    balance.refresh_from_db()
    BalanceTransaction.objects.create(
        balance=balance,
        operation=operation,
        amount=amount,
        available_before=available_before,
        available_after=balance.available_amount,
        reserved_before=reserved_before,
        reserved_after=balance.reserved_amount,
        reference_type=reference.__class__.__name__ if reference is not None else "",
        reference_id=str(reference.pk) if reference is not None else "",
        description=description,
    )
    logger.info(
        "%s %s on balance %s: available %s -> %s, reserved %s -> %s",
        operation, amount, balance.pk,
        available_before, balance.available_amount,
        reserved_before, balance.reserved_amount,
    )
    return balance


# ----------------------------
# Operations on a locked row
# ----------------------------
def _credit(balance, amount, reference=None, description=""):
    return _write(balance, "credit", amount, {
        "available_amount": balance.available_amount + amount,
    }, reference, description)


def _reserve(balance, amount, reference=None, description=""):
    if balance is None or balance.available_amount < amount:
        available = balance.available_amount if balance is not None else money.ZERO
        logger.warning("Reserve of %s refused, only %s available", amount, available)
        raise InsufficientFunds(available=available, requested=amount)
    return _write(balance, "reserve", amount, {
        "available_amount": balance.available_amount - amount,
        "reserved_amount": balance.reserved_amount + amount,
    }, reference, description)


def _finalize(balance, amount, reference=None, description=""):
    # floor at 0 so earlier rounding drift never turns reserved negative
    return _write(balance, "finalize", amount, {
        "reserved_amount": max(money.ZERO, balance.reserved_amount - amount),
        "total_payment": balance.total_payment + amount,
    }, reference, description)


def _release(balance, amount, reference=None, description=""):
    return _write(balance, "release", amount, {
        "reserved_amount": max(money.ZERO, balance.reserved_amount - amount),
        "available_amount": balance.available_amount + amount,
    }, reference, description)


# ----------------------------
# Public ledger API
# ----------------------------
@retry_on_conflict
def credit(payee, amount, reference=None, description=""):
    amount = _positive(amount)
    with transaction.atomic():
        balance = lock_balance(payee, create=True)
        return _credit(balance, amount, reference, description)


@retry_on_conflict
def reserve(payee, amount, reference=None, description=""):
    amount = _positive(amount)
    with transaction.atomic():
        balance = lock_balance(payee)
        return _reserve(balance, amount, reference, description)


@retry_on_conflict
def finalize(payee, amount, reference=None, description=""):
    amount = _positive(amount)
    with transaction.atomic():
        balance = lock_balance(payee, create=True)
        return _finalize(balance, amount, reference, description)


@retry_on_conflict
def release(payee, amount, reference=None, description=""):
    amount = _positive(amount)
    with transaction.atomic():
        balance = lock_balance(payee, create=True)
        return _release(balance, amount, reference, description)


@retry_on_conflict
def record_debt(payee, amount, reference=None, description=""):
    """Register money the payee owes back to the office."""
    amount = _positive(amount)
    with transaction.atomic():
        balance = lock_balance(payee, create=True)
        return _write(balance, "debt", amount, {
            "debt_amount": balance.debt_amount + amount,
        }, reference, description)


@retry_on_conflict
def allocate(payee, amount, reference=None, description=""):
    """
    Manual allocation of income to a payee.
    Outstanding debt is paid back first; only the remainder is credited.
    """
    amount = _positive(amount)
    with transaction.atomic():
        balance = lock_balance(payee, create=True)
        remaining_income, remaining_debt = money.apply_debt_to_income(
            amount, balance.debt_amount)

        offset = amount - remaining_income
        if offset > 0:
            balance = _write(balance, "debt_offset", offset, {
                "debt_amount": remaining_debt,
            }, reference, description)

        if remaining_income > 0:
            balance = _credit(balance, remaining_income, reference, description)
        return balance
