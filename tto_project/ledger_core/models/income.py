from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .. import money
from ..exceptions import InvalidAmount
from ..managers import IncomeManager
from .project import Project

# Caller-supplied amount inputs; everything else is derived
IMMUTABLE_FIELDS = ("project_id", "gross_amount", "vat_rate")


class Income(models.Model):  # One invoiced (VAT-inclusive) receipt on a project
    project = models.ForeignKey(
        Project,
        # incomes are never orphaned; delete them first
        on_delete=models.PROTECT,
        related_name="incomes",
    )

    gross_amount = models.DecimalField(max_digits=18, decimal_places=2)
    vat_rate = models.DecimalField(max_digits=5, decimal_places=2)

    # Derived from gross_amount / vat_rate on creation
    vat_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    net_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Only set when the project has withholding tax enabled
    withholding_tax_amount = models.DecimalField(
        max_digits=18, decimal_places=2, null=True, blank=True)
    # Office commission snapshot, taken from project.company_rate
    commission_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00"))
    commission_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    distributable_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # How much of the gross has actually been received
    collected_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    income_date = models.DateField()
    # False when the money is not an office income (counts against the
    # commission-coverage rule)
    is_tto_income = models.BooleanField(default=True)
    description = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = IncomeManager()

    class Meta:
        indexes = [
            models.Index(fields=["project", "income_date"], name="income_project_date_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(gross_amount__gt=0),
                name="income_gross_positive",
            ),
            models.CheckConstraint(
                condition=models.Q(collected_amount__gte=0)
                & models.Q(collected_amount__lte=models.F("gross_amount")),
                name="income_collected_within_gross",
            ),
            models.CheckConstraint(
                condition=models.Q(vat_amount__gte=0) & models.Q(net_amount__gte=0),
                name="income_derived_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.project.code} {self.income_date} {self.gross_amount}"

    @property
    def outstanding_amount(self):
        return self.gross_amount - self.collected_amount

    def collected_commission(self, collected=None):
        """Commission attributable to the collected part of the gross."""
        collected = self.collected_amount if collected is None else collected
        if not self.gross_amount:
            return Decimal("0.00")
        return money.round_financial(
            self.commission_amount * collected / self.gross_amount)

    def recalc_amounts(self):
        """Recompute every derived money field from gross and rates."""
        project = self.project
        breakdown = money.income_breakdown(
            self.gross_amount, self.vat_rate, project.company_rate)
        self.vat_amount = breakdown.vat_amount
        self.net_amount = breakdown.net_amount
        self.commission_rate = breakdown.commission_rate
        self.commission_amount = breakdown.commission_amount
        self.distributable_amount = breakdown.distributable_amount
        if project.has_withholding_tax and project.withholding_tax_rate is not None:
            self.withholding_tax_amount = money.withholding(
                self.gross_amount, self.vat_rate, project.withholding_tax_rate)
        else:
            self.withholding_tax_amount = None

    def clean(self):
        if self.collected_amount is not None and self.gross_amount is not None:
            if self.collected_amount < 0 or self.collected_amount > self.gross_amount:
                raise InvalidAmount(amount=self.collected_amount)

        # Gross fields are fixed once the income exists
        if self.pk:
            orig = Income.objects.filter(pk=self.pk).first()
            if orig is not None:
                changed = [
                    field for field in IMMUTABLE_FIELDS
                    if getattr(orig, field) != getattr(self, field)
                ]
                if changed:
                    raise ValidationError(
                        f"Cannot modify {changed} on a recorded income.")

    def save(self, *args, **kwargs):
        # derived amounts are never trusted from the caller
        if not self.pk:
            self.recalc_amounts()
        self.full_clean()
        return super().save(*args, **kwargs)
