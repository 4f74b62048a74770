import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from .. import money
from ..exceptions import (InvalidAmount, InvalidStatusTransition,
                          OutstandingDebt)
from ..models import NumberSequence, PaymentInstruction
from . import ledger
from .audit_helper import log_action
from .ledger import retry_on_conflict

logger = logging.getLogger(__name__)


def _last_issued(prefix):
    numbers = PaymentInstruction.objects.filter(
        instruction_number__startswith=prefix
    ).values_list("instruction_number", flat=True)
    return max((int(number[len(prefix):]) for number in numbers), default=0)


def next_instruction_number(year=None):
    """
    PAY-<year>-<sequence>, sequence restarting every year.

    The per-year counter row stays locked until the caller's transaction
    ends, so concurrent creates never draw the same number. Numbers of
    deleted instructions are not reused.
    """
    year = year or timezone.now().year
    prefix = f"PAY-{year}-"
    with transaction.atomic():
        sequence, _ = NumberSequence.objects.select_for_update().get_or_create(
            name=f"PAY-{year}",
            # rows issued before the counter existed
            defaults={"next_value": _last_issued(prefix) + 1},
        )
        value = sequence.next_value
        sequence.next_value = F("next_value") + 1
        sequence.save(update_fields=["next_value", "updated_at"])
    return f"{prefix}{value:03d}"


# ----------------------------
# Payment instruction workflows
# ----------------------------
@retry_on_conflict
def create_payment_instruction(payee, total_amount, notes="", created_by=None):
    """
    Create a pending instruction and reserve its amount on the payee's balance.
    A payee owing money to the office cannot be paid until the debt is settled.
    """
    amount = money.to_money(total_amount)
    if amount <= 0:
        raise InvalidAmount(amount=total_amount)

    with transaction.atomic():
        balance = ledger.lock_balance(payee)
        if balance is not None:
            check = money.check_sufficient_balance(
                balance.available_amount, amount, balance.debt_amount)
            if check.has_debt:
                logger.warning(
                    "Payment of %s to %s %s refused, outstanding debt %s",
                    amount, payee.kind, payee.id, check.shortfall)
                raise OutstandingDebt(debt=check.shortfall)

        instruction = PaymentInstruction(
            instruction_number=next_instruction_number(),
            total_amount=amount,
            status="pending",
            notes=notes,
            created_by=created_by,
            **payee.lookup(),
        )
        instruction.save()

        # rolls the insert back on InsufficientFunds
        ledger.reserve(payee, amount, reference=instruction,
                       description=f"Reserved for {instruction.instruction_number}")

        log_action(
            action="create",
            instance=instruction,
            user=created_by,
            changes={
                "instruction_number": instruction.instruction_number,
                "payee": payee.kind,
                "payee_id": payee.id,
                "total_amount": str(amount),
            },
        )

    logger.info("Created %s for %s %s", instruction.instruction_number, payee.kind, payee.id)
    return instruction


@retry_on_conflict
def transition_payment_instruction(instruction_id, new_status, notes=None, user=None):
    """
    Move an instruction through its workflow, applying the ledger effect:

        pending  -> completed  finalize (money leaves the system)
        pending  -> rejected   release (back to available)
        rejected -> pending    reserve again (may fail InsufficientFunds)

    The ledger write and the status change commit together or not at all.
    """
    with transaction.atomic():
        instruction = PaymentInstruction.objects.select_for_update().get(pk=instruction_id)
        try:
            instruction.check_transition(new_status)
        except InvalidStatusTransition:
            logger.warning(
                "Refused %s transition %s -> %s",
                instruction.instruction_number, instruction.status, new_status)
            raise

        old_status = instruction.status
        payee = instruction.payee
        amount = instruction.total_amount
        description = f"{instruction.instruction_number} {old_status} -> {new_status}"

        if new_status == "completed":
            ledger.finalize(payee, amount, reference=instruction, description=description)
            instruction.approved_at = timezone.now()
        elif new_status == "rejected":
            ledger.release(payee, amount, reference=instruction, description=description)
        elif new_status == "pending":
            ledger.reserve(payee, amount, reference=instruction, description=description)

        instruction.status = new_status
        if notes is not None:
            instruction.notes = notes
        instruction.save()

        log_action(
            action="transition",
            instance=instruction,
            user=user,
            changes={"from": old_status, "to": new_status},
        )

    logger.info("%s moved %s -> %s", instruction.instruction_number, old_status, new_status)
    return instruction


def complete_payment_instruction(instruction_id, notes=None, user=None):
    return transition_payment_instruction(instruction_id, "completed", notes=notes, user=user)


def reject_payment_instruction(instruction_id, notes=None, user=None):
    return transition_payment_instruction(instruction_id, "rejected", notes=notes, user=user)


def reopen_payment_instruction(instruction_id, notes=None, user=None):
    return transition_payment_instruction(instruction_id, "pending", notes=notes, user=user)


@retry_on_conflict
def delete_payment_instruction(instruction_id, user=None):
    """
    Remove an instruction. A pending one returns its reservation first,
    a rejected one already did; completed instructions are permanent.
    """
    with transaction.atomic():
        instruction = PaymentInstruction.objects.select_for_update().get(pk=instruction_id)
        if instruction.status == "completed":
            raise InvalidStatusTransition(current="completed", requested="deleted")

        status = instruction.status
        if status == "pending":
            ledger.release(
                instruction.payee, instruction.total_amount, reference=instruction,
                description=f"{instruction.instruction_number} deleted")
            # nothing reserved any more; the delete guard lets it through
            instruction.status = "rejected"

        log_action(
            action="delete",
            instance=instruction,
            user=user,
            changes={
                "instruction_number": instruction.instruction_number,
                "status": status,
                "total_amount": str(instruction.total_amount),
            },
        )
        number = instruction.instruction_number
        instruction.delete()

    logger.info("Deleted %s", number)
