import datetime
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management import CommandError, call_command
from django.test import TestCase

from ..exceptions import (BudgetExceeded, InvalidStatusTransition,
                          ProjectNotEditable)
from ..models import (AuditLog, Balance, Income, PaymentInstruction,
                      Personnel, Project)
from ..payees import PersonnelPayee, UserPayee
from ..services import (approve_referee, cancel_project, complete_project,
                        create_income, ledger, record_collection)

User = get_user_model()


class ProjectLifecycleTests(TestCase):
    def setUp(self):
        self.project = Project.objects.create(
            code="PRJ-2025-020",
            name="Lifecycle",
            budget=Decimal("50000.00"),
        )

    def test_referee_approval_is_recorded_once(self):
        approve_referee(self.project.pk)
        approve_referee(self.project.pk)
        self.project.refresh_from_db()
        self.assertTrue(self.project.referee_approved)
        self.assertEqual(AuditLog.objects.filter(action="approve_referee").count(), 1)

    def test_complete_and_cancel_are_terminal(self):
        project = complete_project(self.project.pk)
        self.assertEqual(project.status, "completed")

        for transition in (complete_project, cancel_project):
            with self.subTest(transition=transition.__name__):
                with self.assertRaises(InvalidStatusTransition):
                    transition(self.project.pk)

        other = Project.objects.create(code="PRJ-2025-021", name="Other", budget=Decimal("1.00"))
        self.assertEqual(cancel_project(other.pk).status, "cancelled")
        self.assertTrue(AuditLog.objects.filter(
            action="transition", object_type="Project", object_id=str(other.pk)).exists())

    def test_budget_and_rates_freeze_after_completion(self):
        complete_project(self.project.pk)
        self.project.refresh_from_db()

        for field, value in (("budget", Decimal("60000.00")),
                             ("company_rate", Decimal("10.00")),
                             ("vat_rate", Decimal("20.00"))):
            with self.subTest(field=field):
                project = Project.objects.get(pk=self.project.pk)
                setattr(project, field, value)
                with self.assertRaises(ProjectNotEditable) as ctx:
                    project.save()
                self.assertEqual(ctx.exception.code, "project_not_editable")
                self.assertEqual(ctx.exception.params, {"status": "completed", "fields": [field]})

        # descriptive fields stay editable
        self.project.name = "Renamed"
        self.project.save()

    def test_default_rates_come_from_settings(self):
        self.assertEqual(self.project.company_rate, Decimal("15.00"))
        self.assertEqual(self.project.vat_rate, Decimal("18.00"))

        with self.settings(TTO_DEFAULT_VAT_RATE=20, TTO_DEFAULT_COMMISSION_RATE=12.5):
            other = Project.objects.create(code="PRJ-2025-023", name="Rates", budget=Decimal("1.00"))
        self.assertEqual(other.vat_rate, Decimal("20.00"))
        self.assertEqual(other.company_rate, Decimal("12.50"))

    def test_withholding_rate_required_when_enabled(self):
        self.project.has_withholding_tax = True
        with self.assertRaises(ValidationError):
            self.project.save()


class BudgetEditTests(TestCase):
    def setUp(self):
        self.project = Project.objects.create(
            code="PRJ-2025-030",
            name="Budget edits",
            budget=Decimal("100000.00"),
            referee_approved=True,
        )

    def fresh(self):
        return Project.objects.get(pk=self.project.pk)

    def test_budget_cannot_drop_below_recorded_incomes(self):
        create_income(self.project.pk, "90000")

        project = self.fresh()
        project.budget = Decimal("50000")
        with self.assertRaises(BudgetExceeded) as ctx:
            project.save()
        self.assertEqual(ctx.exception.params, {
            "budget": Decimal("50000"),
            "existing": Decimal("90000.00"),
        })
        self.assertEqual(self.fresh().budget, Decimal("100000.00"))

        # down to exactly the incomes is fine
        project = self.fresh()
        project.budget = Decimal("90000.00")
        project.save()
        self.assertEqual(self.fresh().remaining_budget, Decimal("0.00"))

    def test_raised_budget_feeds_the_commission_coverage_rule(self):
        create_income(self.project.pk, "50000")  # commission 6,355.93

        project = self.fresh()
        project.budget = Decimal("200000.00")
        project.save()
        self.assertEqual(self.fresh().remaining_budget, Decimal("150000.00"))

        # 200,000 - 50,000 - 100,000 = 50,000 still covers the commission
        income = create_income(self.project.pk, "100000", is_tto_income=False)
        self.assertFalse(income.is_tto_income)
        self.assertEqual(self.fresh().remaining_budget, Decimal("50000.00"))

    def test_budget_in_update_fields_rewrites_remaining_budget(self):
        create_income(self.project.pk, "40000")

        project = self.fresh()
        project.budget = Decimal("120000.00")
        project.save(update_fields=["budget", "updated_at"])
        self.assertEqual(self.fresh().remaining_budget, Decimal("80000.00"))

    def test_budget_before_first_income_leaves_remaining_unset(self):
        project = self.fresh()
        project.budget = Decimal("80000.00")
        project.save()
        self.assertIsNone(self.fresh().remaining_budget)

    def test_deleting_an_income_gives_its_budget_and_commission_back(self):
        first = create_income(self.project.pk, "1180")   # commission 150
        create_income(self.project.pk, "2360")           # commission 300
        self.assertEqual(self.fresh().remaining_budget, Decimal("96460.00"))

        first.delete()

        project = self.fresh()
        self.assertEqual(project.remaining_budget, Decimal("97640.00"))
        self.assertEqual(project.total_commission_due, Decimal("300.00"))


class DeletionGuardTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="guarded")
        self.payee = UserPayee(self.user.pk)

    def test_balance_with_money_cannot_be_deleted(self):
        balance = ledger.credit(self.payee, "10")
        with self.assertRaises(ValidationError):
            balance.delete()

    def test_empty_balance_can_be_deleted(self):
        personnel = Personnel.objects.create(full_name="Leaving")
        payee = PersonnelPayee(personnel.pk)
        ledger.credit(payee, "10")
        ledger.reserve(payee, "10")
        balance = ledger.finalize(payee, "10")
        self.assertTrue(balance.is_empty)

        balance.delete()
        self.assertFalse(Balance.objects.filter(pk=balance.pk).exists())

    def test_collected_income_cannot_be_deleted(self):
        project = Project.objects.create(
            code="PRJ-2025-022", name="Guarded", budget=Decimal("1000.00"), referee_approved=True)
        income = create_income(project.pk, "100", income_date=datetime.date(2025, 1, 1))
        record_collection(income.pk, "50")
        income.refresh_from_db()
        with self.assertRaises(ValidationError):
            income.delete()


@pytest.mark.django_db
def test_seed_demo_builds_a_funded_pending_payment():
    call_command("seed_demo", project_code="PRJ-DEMO-T")

    project = Project.objects.get(code="PRJ-DEMO-T")
    assert project.referee_approved
    assert project.remaining_budget == Decimal("50000.00")

    income = Income.objects.get(project=project)
    assert income.distributable_amount == Decimal("36016.95")

    user = User.objects.get(username="demo")
    instruction = PaymentInstruction.objects.get(user=user)
    assert instruction.status == "pending"
    assert instruction.total_amount == Decimal("10000.00")

    # 70% of 36,016.95 allocated, 10,000 of it reserved
    balance = ledger.get_balance(UserPayee(user.pk))
    assert balance.available_amount == Decimal("15211.87")
    assert balance.reserved_amount == Decimal("10000.00")

    personnel = Personnel.objects.get(full_name="Demo Research Assistant")
    assert ledger.get_balance(PersonnelPayee(personnel.pk)).available_amount == Decimal("10805.08")

    with pytest.raises(CommandError):
        call_command("seed_demo", project_code="PRJ-DEMO-T")
