import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from ..exceptions import (BudgetExceeded, CommissionCoverageViolation,
                          InvalidAmount, ProjectNotEditable,
                          RefereeApprovalRequired)
from ..models import AuditLog, Income, Project
from ..services import (create_income, import_incomes,
                        project_financial_summary, record_collection)
from ..tasks import relabel_installments


class IncomePipelineTestMixin:
    def setUp(self):
        self.project = Project.objects.create(
            code="PRJ-2025-010",
            name="Income pipeline",
            budget=Decimal("100000.00"),
            company_rate=Decimal("15.00"),
            vat_rate=Decimal("18.00"),
            referee_approved=True,
        )

    def reload(self):
        self.project.refresh_from_db()
        return self.project


class CreateIncomeTests(IncomePipelineTestMixin, TestCase):
    def test_derived_amounts_are_computed_and_stored(self):
        income = create_income(self.project.pk, "50000", vat_rate=18,
                               income_date=datetime.date(2025, 5, 1))
        income.refresh_from_db()

        self.assertEqual(income.vat_amount, Decimal("7627.12"))
        self.assertEqual(income.net_amount, Decimal("42372.88"))
        self.assertEqual(income.commission_rate, Decimal("15.00"))
        self.assertEqual(income.commission_amount, Decimal("6355.93"))
        self.assertEqual(income.distributable_amount, Decimal("36016.95"))
        self.assertIsNone(income.withholding_tax_amount)

        project = self.reload()
        self.assertEqual(project.remaining_budget, Decimal("50000.00"))
        self.assertEqual(project.total_commission_due, Decimal("6355.93"))
        self.assertTrue(AuditLog.objects.filter(
            action="create", object_type="Income", object_id=str(income.pk)).exists())

    def test_vat_rate_defaults_to_the_project_rate(self):
        self.project.vat_rate = Decimal("20.00")
        self.project.save()

        income = create_income(self.project.pk, "1200")
        self.assertEqual(income.vat_rate, Decimal("20.00"))
        self.assertEqual(income.vat_amount, Decimal("200.00"))
        self.assertEqual(income.net_amount, Decimal("1000.00"))

    def test_withholding_when_project_has_it_enabled(self):
        self.project.has_withholding_tax = True
        self.project.withholding_tax_rate = Decimal("50.00")
        self.project.save()

        income = create_income(self.project.pk, "50000")
        self.assertEqual(income.withholding_tax_amount, Decimal("3813.56"))

    def test_budget_exceeded_leaves_everything_untouched(self):
        create_income(self.project.pk, "90000")

        with self.assertRaises(BudgetExceeded) as ctx:
            create_income(self.project.pk, "15000")
        self.assertEqual(ctx.exception.params, {
            "budget": Decimal("100000"),
            "existing": Decimal("90000"),
            "candidate": Decimal("15000"),
        })

        self.assertEqual(Income.objects.for_project(self.project).count(), 1)
        self.assertEqual(self.reload().remaining_budget, Decimal("10000.00"))

    def test_running_total_never_exceeds_budget(self):
        accepted = Decimal("0")
        for gross in ("40000", "35000", "30000", "25000", "0.01"):
            try:
                create_income(self.project.pk, gross)
            except BudgetExceeded:
                continue
            accepted += Decimal(gross)
            self.assertLessEqual(accepted, self.project.budget)
        self.assertEqual(accepted, Decimal("100000"))

    def test_gates_run_before_money_checks(self):
        self.project.referee_approved = False
        self.project.save()
        with self.assertRaises(RefereeApprovalRequired):
            create_income(self.project.pk, "150000")

        self.project.referee_approved = True
        self.project.status = "cancelled"
        self.project.save()
        with self.assertRaises(ProjectNotEditable):
            create_income(self.project.pk, "150000")

    def test_non_office_income_must_leave_commission_collectible(self):
        # 59,000 @18% -> net 50,000, commission 7,500; remaining budget 41,000
        create_income(self.project.pk, "59000")

        # 41,000 - 35,000 = 6,000 < 7,500
        with self.assertRaises(CommissionCoverageViolation):
            create_income(self.project.pk, "35000", is_tto_income=False)

        # 41,000 - 33,500 = 7,500 covers it
        income = create_income(self.project.pk, "33500", is_tto_income=False)
        self.assertFalse(income.is_tto_income)

    def test_bad_amounts_are_rejected(self):
        for gross, collected in (("0", "0"), ("-5", "0"), ("100", "100.01")):
            with self.subTest(gross=gross, collected=collected):
                with self.assertRaises(InvalidAmount):
                    create_income(self.project.pk, gross, collected_amount=collected)
        self.assertFalse(Income.objects.exists())

    def test_gross_fields_are_immutable(self):
        income = create_income(self.project.pk, "1000")
        income.gross_amount = Decimal("2000.00")
        with self.assertRaises(ValidationError):
            income.save()


class CollectionTests(IncomePipelineTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        # commission 7,500 on a 59,000 gross
        self.income = create_income(self.project.pk, "59000")

    def test_commission_collected_follows_collections(self):
        record_collection(self.income.pk, "29500")
        self.assertEqual(self.reload().total_commission_collected, Decimal("3750.00"))

        record_collection(self.income.pk, "59000")
        self.assertEqual(self.reload().total_commission_collected, Decimal("7500.00"))
        self.assertEqual(self.reload().remaining_commission, Decimal("0.00"))

        record_collection(self.income.pk, "0")
        self.assertEqual(self.reload().total_commission_collected, Decimal("0.00"))

    def test_collection_cannot_exceed_gross(self):
        with self.assertRaises(InvalidAmount):
            record_collection(self.income.pk, "59000.01")
        self.income.refresh_from_db()
        self.assertEqual(self.income.collected_amount, Decimal("0.00"))

    def test_non_office_income_collection_moves_no_commission(self):
        other = create_income(self.project.pk, "1180", is_tto_income=False)
        record_collection(other.pk, "1180")
        other.refresh_from_db()
        self.assertEqual(other.collected_amount, Decimal("1180.00"))
        self.assertEqual(self.reload().total_commission_collected, Decimal("0.00"))

    def test_collected_at_creation_counts_immediately(self):
        create_income(self.project.pk, "1180", collected_amount="1180")
        # net 1,000 -> commission 150
        self.assertEqual(self.reload().total_commission_collected, Decimal("150.00"))

    def test_financial_summary(self):
        record_collection(self.income.pk, "29500")
        summary = project_financial_summary(self.reload())

        self.assertEqual(summary["income_count"], 1)
        self.assertEqual(summary["gross"], Decimal("59000.00"))
        self.assertEqual(summary["vat"], Decimal("9000.00"))
        self.assertEqual(summary["net"], Decimal("50000.00"))
        self.assertEqual(summary["withholding"], Decimal("0.00"))
        self.assertEqual(summary["distributable"], Decimal("42500.00"))
        self.assertEqual(summary["collected"], Decimal("29500.00"))
        self.assertEqual(summary["outstanding"], Decimal("29500.00"))
        self.assertEqual(summary["commission_due"], Decimal("7500.00"))
        self.assertEqual(summary["commission_collected"], Decimal("3750.00"))
        self.assertEqual(summary["remaining_budget"], Decimal("41000.00"))


class ImportIncomesTests(IncomePipelineTestMixin, TestCase):
    def test_each_row_is_checked_against_the_running_total(self):
        pk = self.project.pk
        result = import_incomes([
            {"project_id": pk, "gross_amount": "60.000,00"},
            {"project_id": pk, "gross_amount": "30000", "description": "Second"},
            {"project_id": pk, "gross_amount": "20000"},
            {"project_id": 999999, "gross_amount": "100"},
            {"project_id": pk, "gross_amount": "10000"},
            {"project_id": pk},
        ])

        self.assertEqual(len(result.created), 3)
        self.assertEqual(
            [(error.row, error.code) for error in result.errors],
            [(3, "budget_exceeded"), (4, "unknown_project"), (6, "missing_field")],
        )
        self.assertIn("100000", result.errors[0].message)
        self.assertEqual(self.reload().remaining_budget, Decimal("0.00"))
        self.assertEqual(Income.objects.for_project(self.project).total_gross(), Decimal("100000.00"))


class InstallmentLabelTests(IncomePipelineTestMixin, TestCase):
    def test_relabel_numbers_incomes_in_date_order(self):
        second = create_income(self.project.pk, "1000", income_date=datetime.date(2025, 2, 1))
        first = create_income(self.project.pk, "1000", income_date=datetime.date(2025, 1, 1),
                              description="Installment 9/9")
        custom = create_income(self.project.pk, "1000", income_date=datetime.date(2025, 3, 1),
                               description="Advance for prototype")

        self.assertEqual(relabel_installments(self.project.pk), 2)

        for income, expected in ((first, "Installment 1/3"),
                                 (second, "Installment 2/3"),
                                 (custom, "Advance for prototype")):
            income.refresh_from_db()
            self.assertEqual(income.description, expected)

        # already labelled
        self.assertEqual(relabel_installments(self.project.pk), 0)

    def test_relabel_runs_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            income = create_income(self.project.pk, "1000")
        self.assertEqual(len(callbacks), 1)

        income.refresh_from_db()
        self.assertEqual(income.description, "Installment 1/1")
