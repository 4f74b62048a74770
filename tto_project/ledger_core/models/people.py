from django.db import models


# ---------- Personnel ----------
class Personnel(models.Model):
    """Project staff who receive payments but have no login.

    Application users are the project's AUTH_USER_MODEL; personnel are
    the second kind of payee.
    """

    full_name = models.CharField(max_length=200)
    email = models.EmailField(blank=True)
    # Bank account used by the payment export
    iban = models.CharField(max_length=34, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "personnel"
        indexes = [models.Index(fields=["full_name"], name="personnel_full_name_idx")]

    def __str__(self):
        return self.full_name
