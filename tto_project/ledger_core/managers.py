from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce


# -----------------------------------------
# Scope balances / instructions to a payee
# -----------------------------------------
class PayeeQuerySet(models.QuerySet):
    def for_payee(self, payee):  # payee is a UserPayee / PersonnelPayee
        return self.filter(**payee.lookup())

    def for_users(self):
        return self.filter(user__isnull=False)

    def for_personnel(self):
        return self.filter(personnel__isnull=False)


class PayeeManager(models.Manager):
    def get_queryset(self):
        return PayeeQuerySet(self.model, using=self._db)

    def for_payee(self, payee):
        return self.get_queryset().for_payee(payee)


# -----------------------------------------
# Incomes per project
# -----------------------------------------
class IncomeQuerySet(models.QuerySet):
    def for_project(self, project):
        return self.filter(project=project)

    def total_gross(self):
        # Coalesce so an empty project sums to 0.00 instead of None
        return self.aggregate(
            total=Coalesce(Sum("gross_amount"), Decimal("0.00"),
                           output_field=models.DecimalField(max_digits=18, decimal_places=2))
        )["total"]

    def installment_order(self):
        return self.order_by("income_date", "id")


class IncomeManager(models.Manager):
    def get_queryset(self):
        return IncomeQuerySet(self.model, using=self._db)

    def for_project(self, project):
        return self.get_queryset().for_project(project)


class ProjectQuerySet(models.QuerySet):
    def active(self):
        return self.filter(status="active")
