from decimal import Decimal

from django.conf import settings
from django.db import models

from ..managers import PayeeManager
from ..payees import payee_of
from .people import Personnel

# user XOR personnel, shared by every payee-owned table
SINGLE_PAYEE = (
    models.Q(user__isnull=False, personnel__isnull=True)
    | models.Q(user__isnull=True, personnel__isnull=False)
)

BALANCE_OPERATIONS = [
    ("credit", "Credit"),        # allocation into available
    ("reserve", "Reserve"),      # available -> reserved
    ("finalize", "Finalize"),    # reserved -> paid out
    ("release", "Release"),      # reserved -> available
    ("debt", "Debt"),            # debt recorded against the payee
    ("debt_offset", "Debt offset"),  # allocation used to pay debt back
]


class Balance(models.Model):
    """Spendable money of one payee, split into three pools.

    available: spendable now
    reserved:  earmarked by pending payment instructions
    debt:      owed back to the office
    """

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="balance",
    )
    personnel = models.OneToOneField(
        Personnel,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="balance",
    )

    available_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    reserved_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    debt_amount = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))
    # Cumulative payouts, never decreases
    total_payment = models.DecimalField(
        max_digits=18, decimal_places=2, default=Decimal("0.00"))

    # Bumped by every ledger write (compare-and-swap guard)
    version = models.PositiveIntegerField(default=0)
    last_updated = models.DateTimeField(auto_now=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = PayeeManager()

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=SINGLE_PAYEE,
                name="balance_single_payee",
            ),
            models.CheckConstraint(
                condition=models.Q(available_amount__gte=0)
                & models.Q(reserved_amount__gte=0)
                & models.Q(debt_amount__gte=0)
                & models.Q(total_payment__gte=0),
                name="balance_non_negative_amounts",
            ),
        ]

    def __str__(self):
        owner = self.user or self.personnel
        return f"{owner}: {self.available_amount} available / {self.reserved_amount} reserved"

    @property
    def payee(self):
        return payee_of(self)

    @property
    def is_empty(self):
        return not self.available_amount and not self.debt_amount


class BalanceTransaction(models.Model):  # Append-only history of ledger writes
    balance = models.ForeignKey(
        Balance, on_delete=models.CASCADE, related_name="transactions")
    operation = models.CharField(max_length=20, choices=BALANCE_OPERATIONS)
    amount = models.DecimalField(max_digits=18, decimal_places=2)

    available_before = models.DecimalField(max_digits=18, decimal_places=2)
    available_after = models.DecimalField(max_digits=18, decimal_places=2)
    reserved_before = models.DecimalField(max_digits=18, decimal_places=2)
    reserved_after = models.DecimalField(max_digits=18, decimal_places=2)

    # What caused the movement, e.g. ("payment_instruction", "12")
    reference_type = models.CharField(max_length=50, blank=True, default="")
    reference_id = models.CharField(max_length=64, blank=True, default="")
    description = models.TextField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["balance", "created_at"], name="balancetx_balance_idx"),
            models.Index(fields=["reference_type", "reference_id"], name="balancetx_reference_idx"),
        ]

    def __str__(self):
        return f"{self.operation} {self.amount} on balance {self.balance_id}"
