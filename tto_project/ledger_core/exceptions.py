from decimal import Decimal

from django.core.exceptions import ValidationError


class LedgerError(ValidationError):
    """Base class for every rejection raised by the ledger core.

    Each subclass has a stable ``code``; the numeric context needed to
    self-correct travels in ``params`` and is interpolated into the
    message the Django way (``%(name)s``).
    """

    code = "ledger_error"
    default_message = "Ledger operation rejected."

    def __init__(self, message=None, **params):
        super().__init__(
            message or self.default_message,
            code=self.code,
            params=params or None,
        )

    def render(self):
        if self.params:
            return self.message % self.params
        return self.message

    def as_dict(self):
        """Plain structured result for API / report callers."""
        return {
            "code": self.code,
            "message": self.render(),
            "params": {
                key: (str(value) if isinstance(value, Decimal) else value)
                for key, value in (self.params or {}).items()
            },
        }


# ---------- Money math ----------
class InvalidAmount(LedgerError):
    code = "invalid_amount"
    default_message = "Invalid amount: %(amount)s."


class InvalidRate(LedgerError):
    code = "invalid_rate"
    default_message = "Rate %(rate)s must be between 0 and 100."


class InvalidPayee(LedgerError):
    code = "invalid_payee"
    default_message = "Exactly one of user or personnel must be given."


# ---------- Budget guard ----------
class ProjectNotEditable(LedgerError):
    code = "project_not_editable"
    default_message = "Project is %(status)s; only active projects accept changes."


class RefereeApprovalRequired(LedgerError):
    code = "referee_approval_required"
    default_message = "Project has not received referee approval."


class BudgetExceeded(LedgerError):
    code = "budget_exceeded"
    default_message = (
        "Income exceeds the project budget. Budget: %(budget)s, "
        "existing incomes: %(existing)s, attempted: %(candidate)s."
    )


class CommissionCoverageViolation(LedgerError):
    code = "commission_coverage_violation"
    default_message = (
        "Remaining budget after this income (%(new_remaining_budget)s) would not "
        "cover the outstanding commission (%(remaining_commission)s)."
    )


# ---------- Balance ledger ----------
class InsufficientFunds(LedgerError):
    code = "insufficient_funds"
    default_message = "Insufficient balance. Available: %(available)s, requested: %(requested)s."


class OutstandingDebt(LedgerError):
    code = "outstanding_debt"
    default_message = "Payee owes %(debt)s to the office; the debt must be settled first."


class ConcurrencyConflict(LedgerError):
    """Raised when a balance row changed between read and write."""

    code = "concurrency_conflict"
    default_message = "Balance %(balance_id)s was modified concurrently (version %(version)s)."


# ---------- Payment instructions ----------
class InvalidStatusTransition(LedgerError):
    code = "invalid_status_transition"
    default_message = "Cannot change status from %(current)s to %(requested)s."


# ---------- Supplementary contracts ----------
class InvalidAmendment(LedgerError):
    code = "invalid_amendment"
    default_message = "Supplementary contract rejected: %(reason)s"
