import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from .. import money
from ..exceptions import (BudgetExceeded, CommissionCoverageViolation,
                          LedgerError, ProjectNotEditable,
                          RefereeApprovalRequired)
from ..models import Income

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BudgetDecision:
    """Outcome of the budget guard: accepted, or rejected with the error."""

    error: Optional[LedgerError] = None

    @property
    def accepted(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    def raise_if_rejected(self):
        if self.error is not None:
            raise self.error


ACCEPT = BudgetDecision()


def existing_incomes_total(project) -> Decimal:
    return Income.objects.for_project(project).total_gross()


def can_accept_income(project, existing_total, candidate_gross,
                      candidate_is_tto_income=True) -> BudgetDecision:
    """
    Decide whether a new income of ``candidate_gross`` fits the project.

    Gates run before money checks so the caller always sees the most
    actionable rejection first:
      1. project must be active
      2. project must be referee approved
      3. incomes may never sum past the budget
      4. a non-office income must leave enough budget to cover the
         commission the office is still owed
    """
    if project.status != "active":
        return BudgetDecision(ProjectNotEditable(status=project.status))

    if not project.referee_approved:
        return BudgetDecision(RefereeApprovalRequired())

    existing = money.to_money(existing_total)
    candidate = money.to_money(candidate_gross)

    if existing + candidate > project.budget:
        return BudgetDecision(BudgetExceeded(
            budget=project.budget, existing=existing, candidate=candidate))

    if not candidate_is_tto_income:
        # budget minus the incomes total passed in
        remaining_budget = project.budget - existing
        new_remaining_budget = remaining_budget - candidate
        remaining_commission = project.remaining_commission
        if new_remaining_budget < remaining_commission:
            return BudgetDecision(CommissionCoverageViolation(
                remaining_budget=remaining_budget,
                candidate=candidate,
                new_remaining_budget=new_remaining_budget,
                remaining_commission=remaining_commission,
            ))

    return ACCEPT


def ensure_can_accept_income(project, existing_total, candidate_gross,
                             candidate_is_tto_income=True):
    decision = can_accept_income(
        project, existing_total, candidate_gross, candidate_is_tto_income)
    if not decision.accepted:
        logger.warning(
            "Income of %s rejected for project %s: %s",
            candidate_gross, project.code, decision.error.render())
    decision.raise_if_rejected()
    return decision
