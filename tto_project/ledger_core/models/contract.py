from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models

from .project import Project


class SupplementaryContract(models.Model):
    """An amendment raising a project's budget and/or moving its end date.

    Each row keeps the project values before and after, so the history
    reads as a chain: amendment N's ``previous_budget`` is amendment
    N-1's ``new_budget``.
    """

    project = models.ForeignKey(
        Project,
        on_delete=models.PROTECT,
        related_name="supplementary_contracts",
    )
    # 1, 2, 3... per project
    amendment_number = models.PositiveIntegerField()
    amendment_date = models.DateField()

    previous_budget = models.DecimalField(max_digits=18, decimal_places=2)
    budget_increase = models.DecimalField(max_digits=18, decimal_places=2)
    new_budget = models.DecimalField(max_digits=18, decimal_places=2)

    previous_end_date = models.DateField(null=True, blank=True)
    new_end_date = models.DateField(null=True, blank=True)

    description = models.TextField(blank=True, default="")
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["project", "amendment_number"]
        constraints = [
            models.UniqueConstraint(
                fields=["project", "amendment_number"],
                name="uniq_project_amendment_number",
            ),
            models.CheckConstraint(
                condition=models.Q(budget_increase__gte=0),
                name="contract_increase_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.project.code} amendment {self.amendment_number}"

    def is_latest(self):
        return not SupplementaryContract.objects.filter(
            project_id=self.project_id, amendment_number__gt=self.amendment_number
        ).exists()

    def clean(self):
        if self.previous_budget is not None and self.budget_increase is not None:
            if self.new_budget != self.previous_budget + self.budget_increase:
                raise ValidationError("New budget must equal previous budget plus the increase.")

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
