from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Personnel",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=200)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("iban", models.CharField(blank=True, max_length=34)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "verbose_name_plural": "personnel",
                "indexes": [models.Index(fields=["full_name"], name="personnel_full_name_idx")],
            },
        ),
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(max_length=32, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("budget", models.DecimalField(decimal_places=2, max_digits=18)),
                ("company_rate", models.DecimalField(decimal_places=2, default=Decimal("15.00"), max_digits=5)),
                ("vat_rate", models.DecimalField(decimal_places=2, default=Decimal("18.00"), max_digits=5)),
                ("has_withholding_tax", models.BooleanField(default=False)),
                ("withholding_tax_rate", models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True)),
                ("total_commission_due", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_commission_collected", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("remaining_budget", models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ("status", models.CharField(choices=[("active", "Active"), ("completed", "Completed"), ("cancelled", "Cancelled")], default="active", max_length=10)),
                ("referee_approved", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "indexes": [models.Index(fields=["status"], name="project_status_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("budget__gt", 0)), name="project_budget_positive"),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("company_rate__gte", 0), ("company_rate__lte", 100),
                            ("vat_rate__gte", 0), ("vat_rate__lte", 100),
                        ),
                        name="project_rates_in_range",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_commission_due__gte", 0), ("total_commission_collected__gte", 0)),
                        name="project_commission_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=50)),
                ("object_type", models.CharField(max_length=100)),
                ("object_id", models.CharField(max_length=100)),
                ("changes", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [
                    models.Index(fields=["object_type", "object_id"], name="auditlog_object_idx"),
                    models.Index(fields=["created_at"], name="auditlog_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Balance",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("available_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("reserved_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("debt_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_payment", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("version", models.PositiveIntegerField(default=0)),
                ("last_updated", models.DateTimeField(auto_now=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("personnel", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="balance", to="ledger_core.personnel")),
                ("user", models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="balance", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("personnel__isnull", True), ("user__isnull", False)),
                            models.Q(("personnel__isnull", False), ("user__isnull", True)),
                            _connector="OR",
                        ),
                        name="balance_single_payee",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("available_amount__gte", 0), ("reserved_amount__gte", 0),
                            ("debt_amount__gte", 0), ("total_payment__gte", 0),
                        ),
                        name="balance_non_negative_amounts",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="BalanceTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("operation", models.CharField(choices=[("credit", "Credit"), ("reserve", "Reserve"), ("finalize", "Finalize"), ("release", "Release"), ("debt", "Debt"), ("debt_offset", "Debt offset")], max_length=20)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("available_before", models.DecimalField(decimal_places=2, max_digits=18)),
                ("available_after", models.DecimalField(decimal_places=2, max_digits=18)),
                ("reserved_before", models.DecimalField(decimal_places=2, max_digits=18)),
                ("reserved_after", models.DecimalField(decimal_places=2, max_digits=18)),
                ("reference_type", models.CharField(blank=True, default="", max_length=50)),
                ("reference_id", models.CharField(blank=True, default="", max_length=64)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("balance", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="transactions", to="ledger_core.balance")),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["balance", "created_at"], name="balancetx_balance_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="balancetx_reference_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Income",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("gross_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("vat_rate", models.DecimalField(decimal_places=2, max_digits=5)),
                ("vat_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("net_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("withholding_tax_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=18, null=True)),
                ("commission_rate", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=5)),
                ("commission_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("distributable_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("collected_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("income_date", models.DateField()),
                ("is_tto_income", models.BooleanField(default=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="incomes", to="ledger_core.project")),
            ],
            options={
                "indexes": [models.Index(fields=["project", "income_date"], name="income_project_date_idx")],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(("gross_amount__gt", 0)), name="income_gross_positive"),
                    models.CheckConstraint(
                        condition=models.Q(("collected_amount__gte", 0), ("collected_amount__lte", models.F("gross_amount"))),
                        name="income_collected_within_gross",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("vat_amount__gte", 0), ("net_amount__gte", 0)),
                        name="income_derived_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentInstruction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("instruction_number", models.CharField(max_length=32, unique=True)),
                ("total_amount", models.DecimalField(decimal_places=2, max_digits=18)),
                ("status", models.CharField(choices=[("pending", "Pending"), ("completed", "Completed"), ("rejected", "Rejected")], default="pending", max_length=10)),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("personnel", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payment_instructions", to="ledger_core.personnel")),
                ("user", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="payment_instructions", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "indexes": [models.Index(fields=["status", "created_at"], name="payment_status_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("personnel__isnull", True), ("user__isnull", False)),
                            models.Q(("personnel__isnull", False), ("user__isnull", True)),
                            _connector="OR",
                        ),
                        name="payment_single_payee",
                    ),
                    models.CheckConstraint(condition=models.Q(("total_amount__gt", 0)), name="payment_total_positive"),
                ],
            },
        ),
    ]
