import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from ledger_core import conf
from ledger_core.models import Personnel, Project
from ledger_core.money import format_currency, round_financial
from ledger_core.payees import PersonnelPayee, UserPayee
from ledger_core.services import (allocate, approve_referee, create_income,
                                  create_payment_instruction)

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo project with an income, two funded payees "
        "and a pending payment instruction."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--project-code",  # Define flag
            default="PRJ-DEMO-001",
            help="Code of the demo project to create.",
        )
        parser.add_argument(
            "--username", default="demo", help="Username of the demo academician."
        )
        parser.add_argument(
            "--budget", default="100000.00", help="Project budget (VAT inclusive)."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        code = options["project_code"]
        if Project.objects.filter(code=code).exists():
            raise CommandError(f"Project {code} already exists.")

        self.stdout.write(self.style.NOTICE(f"Seeding demo data for {code}..."))

        # 1. Payees
        user, _ = User.objects.get_or_create(username=options["username"])
        assistant, _ = Personnel.objects.get_or_create(
            full_name="Demo Research Assistant",
            defaults={"iban": "TR000000000000000000000000"},
        )

        # 2. Project at the configured default rates, approved so it accepts incomes
        project = Project.objects.create(
            code=code,
            name="Demo consultancy project",
            budget=Decimal(options["budget"]),
        )
        approve_referee(project.pk)

        # 3. First installment, half of the budget
        income = create_income(
            project.pk,
            project.budget / 2,
            income_date=datetime.date.today(),
            collected_amount=project.budget / 2,
        )

        # 4. Split the distributable amount 70/30 between the payees
        share = round_financial(income.distributable_amount * Decimal("0.70"))
        allocate(UserPayee(user.pk), share, reference=income, description="Demo allocation")
        allocate(PersonnelPayee(assistant.pk), income.distributable_amount - share,
                 reference=income, description="Demo allocation")

        # 5. A payment waiting for approval
        instruction = create_payment_instruction(
            UserPayee(user.pk), Decimal("10000.00"), notes="Demo payout")

        self.stdout.write(
            f"Income {format_currency(income.gross_amount, conf.currency_symbol())} -> "
            f"distributable {format_currency(income.distributable_amount, conf.currency_symbol())}"
        )
        self.stdout.write(f"Pending instruction {instruction.instruction_number}")
        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully!"))
