import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List

from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import Count, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from .. import money
from ..exceptions import InvalidAmount, LedgerError
from ..models import Income, Project
from ..tasks import relabel_installments
from . import budget
from .audit_helper import log_action

logger = logging.getLogger(__name__)


def _gross(value) -> Decimal:
    # spreadsheet cells arrive as "50.000,00"
    if isinstance(value, str) and "," in value:
        value = money.parse_turkish_number(value)
    gross = money.to_money(value)
    if gross <= 0:
        raise InvalidAmount(amount=value)
    return gross


def _enqueue_relabel(project_id):
    # best-effort: money is already committed
    try:
        relabel_installments.delay(project_id)
    except Exception:
        logger.exception("Could not enqueue installment relabel for project %s", project_id)


# ----------------------------
# Income workflows
# ----------------------------
def create_income(project_id, gross_amount, vat_rate=None, income_date=None,
                  is_tto_income=True, description="", collected_amount=0, user=None):
    """
    Record an income against a project.

    The project row stays locked from the budget check until the income
    and the project's running totals are written, so two incomes can never
    both pass the guard against the same stale total.
    Only gross and the VAT rate come from the caller; every other amount
    is derived.
    """
    gross = _gross(gross_amount)
    collected = money.to_money(collected_amount)
    if collected > gross:
        raise InvalidAmount(amount=collected_amount)

    with transaction.atomic():
        project = Project.objects.select_for_update().get(pk=project_id)

        existing = budget.existing_incomes_total(project)
        budget.ensure_can_accept_income(project, existing, gross, is_tto_income)

        rate = project.vat_rate if vat_rate is None else vat_rate
        income = Income(
            project=project,
            gross_amount=gross,
            vat_rate=money.to_rate(rate).quantize(money.CENT),
            income_date=income_date or timezone.localdate(),
            is_tto_income=is_tto_income,
            description=description,
            collected_amount=collected,
            created_by=user,
        )
        income.save()  # derives vat / net / withholding / commission

        project.remaining_budget = project.budget - (existing + gross)
        project.total_commission_due += income.commission_amount
        if is_tto_income and collected:
            project.total_commission_collected += income.collected_commission()
        project.save(update_fields=[
            "remaining_budget", "total_commission_due",
            "total_commission_collected", "updated_at",
        ])

        log_action(
            action="create",
            instance=income,
            user=user,
            changes={
                "project": project.code,
                "gross_amount": str(income.gross_amount),
                "vat_amount": str(income.vat_amount),
                "net_amount": str(income.net_amount),
                "commission_amount": str(income.commission_amount),
                "is_tto_income": is_tto_income,
            },
        )
        transaction.on_commit(lambda: _enqueue_relabel(project.pk))

    logger.info(
        "Income %s of %s recorded on %s, remaining budget %s",
        income.pk, income.gross_amount, project.code, project.remaining_budget)
    return income


def record_collection(income_id, collected_amount, user=None):
    """
    Set how much of an income has been received.
    The project's collected commission follows the commission share of
    the collected delta; money paid outside the office moves nothing.
    """
    with transaction.atomic():
        income = Income.objects.select_for_update().get(pk=income_id)
        project = Project.objects.select_for_update().get(pk=income.project_id)

        new_collected = money.to_money(collected_amount)
        if new_collected > income.gross_amount:
            raise InvalidAmount(amount=collected_amount)

        old_collected = income.collected_amount
        delta = money.ZERO
        if income.is_tto_income:
            delta = income.collected_commission(new_collected) - income.collected_commission()

        income.collected_amount = new_collected
        income.save(update_fields=["collected_amount"])

        if delta:
            project.total_commission_collected += delta
            project.save(update_fields=["total_commission_collected", "updated_at"])

        log_action(
            action="collect",
            instance=income,
            user=user,
            changes={
                "collected_amount": {"old": str(old_collected), "new": str(new_collected)},
                "commission_collected_delta": str(delta),
            },
        )

    logger.info("Income %s collected %s -> %s", income.pk, old_collected, new_collected)
    return income


@dataclass
class ImportRowError:
    row: int
    code: str
    message: str


@dataclass
class ImportResult:
    created: List[Income] = field(default_factory=list)
    errors: List[ImportRowError] = field(default_factory=list)


def import_incomes(rows: Iterable[Dict], user=None) -> ImportResult:
    """
    Create many incomes, one row at a time.

    Rows are numbered from 1. Each row is its own transaction and is
    checked against the project total including the rows accepted before
    it; a rejected row is reported and the import carries on.
    """
    result = ImportResult()
    for number, row in enumerate(rows, start=1):
        try:
            income = create_income(
                project_id=row["project_id"],
                gross_amount=row["gross_amount"],
                vat_rate=row.get("vat_rate"),
                income_date=row.get("income_date"),
                is_tto_income=row.get("is_tto_income", True),
                description=row.get("description", ""),
                collected_amount=row.get("collected_amount", 0),
                user=user,
            )
        except LedgerError as exc:
            result.errors.append(ImportRowError(number, exc.code, exc.render()))
        except ValidationError as exc:
            result.errors.append(ImportRowError(number, "invalid", "; ".join(exc.messages)))
        except Project.DoesNotExist:
            result.errors.append(ImportRowError(number, "unknown_project", f"Project {row['project_id']} not found."))
        except KeyError as exc:
            result.errors.append(ImportRowError(number, "missing_field", f"Missing column {exc.args[0]}."))
        else:
            result.created.append(income)

    logger.info("Imported %s incomes, %s rows rejected", len(result.created), len(result.errors))
    return result


def project_financial_summary(project) -> Dict:
    """Plain-data totals for reporting; no money moves."""
    zero = models.Value(money.ZERO, output_field=models.DecimalField(max_digits=18, decimal_places=2))
    totals = Income.objects.for_project(project).aggregate(
        income_count=Count("id"),
        gross=Coalesce(Sum("gross_amount"), zero),
        vat=Coalesce(Sum("vat_amount"), zero),
        net=Coalesce(Sum("net_amount"), zero),
        withholding=Coalesce(Sum("withholding_tax_amount"), zero),
        collected=Coalesce(Sum("collected_amount"), zero),
        distributable=Coalesce(Sum("distributable_amount"), zero),
    )
    totals.update(
        budget=project.budget,
        remaining_budget=project.budget - totals["gross"],
        commission_due=project.total_commission_due,
        commission_collected=project.total_commission_collected,
        remaining_commission=project.remaining_commission,
        outstanding=totals["gross"] - totals["collected"],
    )
    return totals
