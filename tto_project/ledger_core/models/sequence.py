from django.db import models


class NumberSequence(models.Model):
    """
    Counter for human-readable document numbers, one row per series
    (e.g. "PAY-2025"). Callers lock the row with ``select_for_update()``
    and bump ``next_value`` in the same transaction as the insert that
    uses the number.
    """

    name = models.CharField(max_length=32, unique=True)
    next_value = models.PositiveIntegerField(default=1)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name}={self.next_value}"
