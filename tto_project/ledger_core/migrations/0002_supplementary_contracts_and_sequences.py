import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import ledger_core.conf


class Migration(migrations.Migration):

    dependencies = [
        ("ledger_core", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.AddField(
            model_name="project",
            name="end_date",
            field=models.DateField(blank=True, null=True),
        ),
        migrations.AlterField(
            model_name="project",
            name="company_rate",
            field=models.DecimalField(decimal_places=2, default=ledger_core.conf.default_commission_rate, max_digits=5),
        ),
        migrations.AlterField(
            model_name="project",
            name="vat_rate",
            field=models.DecimalField(decimal_places=2, default=ledger_core.conf.default_vat_rate, max_digits=5),
        ),
        migrations.CreateModel(
            name="NumberSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=32, unique=True)),
                ("next_value", models.PositiveIntegerField(default=1)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
        ),
        migrations.CreateModel(
            name="SupplementaryContract",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amendment_number", models.PositiveIntegerField()),
                ("amendment_date", models.DateField()),
                ("previous_budget", models.DecimalField(decimal_places=2, max_digits=18)),
                ("budget_increase", models.DecimalField(decimal_places=2, max_digits=18)),
                ("new_budget", models.DecimalField(decimal_places=2, max_digits=18)),
                ("previous_end_date", models.DateField(blank=True, null=True)),
                ("new_end_date", models.DateField(blank=True, null=True)),
                ("description", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("created_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="supplementary_contracts", to="ledger_core.project")),
            ],
            options={
                "ordering": ["project", "amendment_number"],
                "constraints": [
                    models.UniqueConstraint(fields=["project", "amendment_number"], name="uniq_project_amendment_number"),
                    models.CheckConstraint(condition=models.Q(("budget_increase__gte", 0)), name="contract_increase_non_negative"),
                ],
            },
        ),
    ]
