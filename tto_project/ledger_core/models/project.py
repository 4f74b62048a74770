from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .. import conf
from ..exceptions import (BudgetExceeded, InvalidStatusTransition,
                          ProjectNotEditable)
from ..managers import ProjectQuerySet

PROJECT_STATUS_CHOICES = [
    ("active", "Active"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]

# Fields frozen once a project leaves "active"
LOCKED_FIELDS = (
    "budget",
    "company_rate",
    "vat_rate",
    "has_withholding_tax",
    "withholding_tax_rate",
)

BUDGET_BELOW_INCOMES = (
    "Budget %(budget)s is below the incomes already recorded (%(existing)s)."
)


class Project(models.Model):  # A contract the office collects income for
    code = models.CharField(max_length=32, unique=True)  # e.g. "PRJ-2025-001"
    name = models.CharField(max_length=255)

    # Contract value, VAT-inclusive; sum of incomes may never exceed it
    budget = models.DecimalField(max_digits=18, decimal_places=2)
    # Office commission on net income, percent
    company_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=conf.default_commission_rate)
    # Default VAT rate for new incomes, percent
    vat_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=conf.default_vat_rate)
    has_withholding_tax = models.BooleanField(default=False)
    withholding_tax_rate = models.DecimalField(
        max_digits=5, decimal_places=2, null=True, blank=True)
    # Moved by supplementary contracts
    end_date = models.DateField(null=True, blank=True)

    # Commission the office is owed / has collected so far
    total_commission_due = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_commission_collected = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # budget - sum(incomes); NULL until the first income is recorded
    remaining_budget = models.DecimalField(
        max_digits=18, decimal_places=2, null=True, blank=True)

    status = models.CharField(
        max_length=10, choices=PROJECT_STATUS_CHOICES, default="active")
    referee_approved = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProjectQuerySet.as_manager()

    class Meta:
        indexes = [models.Index(fields=["status"], name="project_status_idx")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(budget__gt=0),
                name="project_budget_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(company_rate__gte=0) & models.Q(company_rate__lte=100)
                & models.Q(vat_rate__gte=0) & models.Q(vat_rate__lte=100),
                name="project_rates_in_range",
            ),
            models.CheckConstraint(
                condition=models.Q(total_commission_due__gte=0)
                & models.Q(total_commission_collected__gte=0),
                name="project_commission_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def is_editable(self):
        return self.status == "active"

    @property
    def remaining_commission(self):
        return self.total_commission_due - self.total_commission_collected

    def clean(self):
        if self.has_withholding_tax and self.withholding_tax_rate is None:
            raise ValidationError(
                "Withholding tax rate is required when withholding is enabled.")
        if self.withholding_tax_rate is not None and not (
                0 <= self.withholding_tax_rate <= 100):
            raise ValidationError("Withholding tax rate must be between 0 and 100.")

    def check_changes(self):
        """
        Rules that compare against the stored row. Raised as ledger errors
        after ``full_clean()`` so callers keep the code and params:

          - budget and rates are frozen after completion / cancellation
          - the budget may never drop below the incomes already recorded

        A budget change also rewrites ``remaining_budget``.
        """
        if not self.pk:
            return
        orig = Project.objects.filter(pk=self.pk).first()
        if orig is None:
            return

        if orig.status != "active":
            changed = [
                field for field in LOCKED_FIELDS
                if getattr(orig, field) != getattr(self, field)
            ]
            if changed:
                raise ProjectNotEditable(status=orig.status, fields=changed)

        if orig.budget != self.budget:
            existing = self.incomes.all().total_gross()
            if self.budget < existing:
                raise BudgetExceeded(
                    BUDGET_BELOW_INCOMES, budget=self.budget, existing=existing)
            # NULL means no income yet; the budget itself is then the remainder
            if self.remaining_budget is not None:
                self.remaining_budget = self.budget - existing

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        self.check_changes()
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "budget" in update_fields:
            kwargs["update_fields"] = {*update_fields, "remaining_budget"}
        return super().save(*args, **kwargs)

    def transition_to(self, new_status):
        allowed = {
            "active": ["completed", "cancelled"],
            "completed": [],
            "cancelled": [],
        }
        if new_status not in allowed.get(self.status, []):
            raise InvalidStatusTransition(current=self.status, requested=new_status)
        self.status = new_status
        self.save(update_fields=["status", "updated_at"])
