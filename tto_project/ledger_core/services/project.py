import logging

from django.db import transaction
from django.db.models import Max
from django.utils import timezone

from .. import money
from ..exceptions import InvalidAmendment, InvalidAmount, ProjectNotEditable
from ..models import Project, SupplementaryContract
from .audit_helper import log_action

logger = logging.getLogger(__name__)


# ----------------------------
# Project lifecycle
# ----------------------------
def _transition_project(project_id, new_status, user=None):
    with transaction.atomic():
        # Lock the row so no income lands while the status flips
        project = Project.objects.select_for_update().get(pk=project_id)
        old_status = project.status
        project.transition_to(new_status)
        log_action(
            action="transition",
            instance=project,
            user=user,
            changes={"from": old_status, "to": new_status},
        )
    logger.info("Project %s moved %s -> %s", project.code, old_status, new_status)
    return project


def complete_project(project_id, user=None):
    return _transition_project(project_id, "completed", user=user)


def cancel_project(project_id, user=None):
    return _transition_project(project_id, "cancelled", user=user)


def approve_referee(project_id, user=None):
    """Record referee approval; incomes are refused until this is set."""
    with transaction.atomic():
        project = Project.objects.select_for_update().get(pk=project_id)
        if not project.referee_approved:
            project.referee_approved = True
            project.save(update_fields=["referee_approved", "updated_at"])
            log_action(
                action="approve_referee",
                instance=project,
                user=user,
                changes={"referee_approved": True},
            )
    return project


# ----------------------------
# Supplementary contracts
# ----------------------------
def add_supplementary_contract(project_id, budget_increase=0, new_end_date=None,
                               description="", user=None):
    """
    Amend an active project: raise its budget and/or push its end date.

    The amendment row records the budget before and after; the project's
    budget (and with it ``remaining_budget``) changes in the same
    transaction.
    """
    increase = money.to_money(budget_increase)
    if increase < 0:
        raise InvalidAmount(amount=budget_increase)

    with transaction.atomic():
        project = Project.objects.select_for_update().get(pk=project_id)
        if project.status != "active":
            raise ProjectNotEditable(status=project.status)
        if not increase and new_end_date is None:
            raise InvalidAmendment(reason="a budget increase or a new end date is required.")
        if new_end_date is not None and project.end_date is not None \
                and new_end_date <= project.end_date:
            raise InvalidAmendment(
                reason=f"the new end date must be after {project.end_date.isoformat()}.")

        last = project.supplementary_contracts.aggregate(last=Max("amendment_number"))["last"]
        contract = SupplementaryContract(
            project=project,
            amendment_number=(last or 0) + 1,
            amendment_date=timezone.localdate(),
            previous_budget=project.budget,
            budget_increase=increase,
            new_budget=project.budget + increase,
            previous_end_date=project.end_date,
            new_end_date=new_end_date,
            description=description,
            created_by=user,
        )
        contract.save()

        project.budget = contract.new_budget
        if new_end_date is not None:
            project.end_date = new_end_date
        project.save()

        log_action(
            action="amend",
            instance=project,
            user=user,
            changes={
                "amendment_number": contract.amendment_number,
                "budget": {"old": str(contract.previous_budget), "new": str(contract.new_budget)},
                "end_date": {
                    "old": str(contract.previous_end_date) if contract.previous_end_date else None,
                    "new": str(project.end_date) if project.end_date else None,
                },
            },
        )

    logger.info(
        "Project %s amendment %s: budget %s -> %s",
        project.code, contract.amendment_number, contract.previous_budget, contract.new_budget)
    return contract


def delete_supplementary_contract(contract_id, user=None):
    """
    Undo the latest amendment of a project. The project's budget and end
    date go back to the amendment's previous values; this fails with
    BudgetExceeded when incomes already use the added budget.
    """
    with transaction.atomic():
        contract = SupplementaryContract.objects.select_related("project").get(pk=contract_id)
        project = Project.objects.select_for_update().get(pk=contract.project_id)
        if not contract.is_latest():
            raise InvalidAmendment(
                reason="only the latest supplementary contract can be deleted.")

        project.budget = contract.previous_budget
        project.end_date = contract.previous_end_date
        project.save()

        log_action(
            action="delete",
            instance=contract,
            user=user,
            changes={
                "amendment_number": contract.amendment_number,
                "budget": {"old": str(contract.new_budget), "new": str(contract.previous_budget)},
            },
        )
        number = contract.amendment_number
        contract.delete()

    logger.info("Project %s amendment %s deleted", project.code, number)
    return project
