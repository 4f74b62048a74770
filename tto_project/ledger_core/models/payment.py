from django.conf import settings
from django.db import models

from ..exceptions import InvalidStatusTransition
from ..managers import PayeeManager
from ..payees import payee_of
from .balance import SINGLE_PAYEE
from .people import Personnel

PI_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("completed", "Completed"),
    ("rejected", "Rejected"),
]

""" Workflow:
    pending   -> completed (money leaves the system, terminal)
    pending   -> rejected  (money goes back to available)
    rejected  -> pending   (re-opened, money reserved again) """
ALLOWED_TRANSITIONS = {
    "pending": ("completed", "rejected"),
    "rejected": ("pending",),
    "completed": (),
}


class PaymentInstruction(models.Model):  # A request to pay a payee out of their balance
    # human-readable, e.g. "PAY-2025-004"
    instruction_number = models.CharField(max_length=32, unique=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="payment_instructions",
    )
    personnel = models.ForeignKey(
        Personnel,
        null=True,
        blank=True,
        on_delete=models.PROTECT,
        related_name="payment_instructions",
    )

    total_amount = models.DecimalField(max_digits=18, decimal_places=2)
    status = models.CharField(
        max_length=10, choices=PI_STATUS_CHOICES, default="pending")
    notes = models.TextField(blank=True, default="")

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    # set when the instruction enters "completed"
    approved_at = models.DateTimeField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PayeeManager()

    class Meta:
        indexes = [
            models.Index(fields=["status", "created_at"], name="payment_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=SINGLE_PAYEE,
                name="payment_single_payee",
            ),
            models.CheckConstraint(
                condition=models.Q(total_amount__gt=0),
                name="payment_total_positive",
            ),
        ]

    def __str__(self):
        return f"{self.instruction_number} ({self.status}) {self.total_amount}"

    @property
    def payee(self):
        return payee_of(self)

    def can_transition_to(self, new_status):
        return new_status in ALLOWED_TRANSITIONS.get(self.status, ())

    def check_transition(self, new_status):
        # Look up what states are allowed from current self.status
        if not self.can_transition_to(new_status):
            raise InvalidStatusTransition(current=self.status, requested=new_status)

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
