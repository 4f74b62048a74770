from django.core.exceptions import ValidationError
from django.db.models import F
from django.db.models.signals import post_delete, pre_delete
from django.dispatch import receiver
from django.utils import timezone

from .models import (Balance, Income, PaymentInstruction, Project,
                     SupplementaryContract)

"""Block deletion of instructions still holding or already spent money.
A pending one must go through delete_payment_instruction, which releases
its reservation first."""


@receiver(pre_delete, sender=PaymentInstruction)
def prevent_delete_unsettled_instruction(sender, instance, **kwargs):
    if instance.status == "completed":
        raise ValidationError("Cannot delete a completed payment instruction.")
    if instance.status == "pending":
        raise ValidationError(
            "Cannot delete a pending payment instruction while its amount is reserved.")


"""Block deletion of a balance that still holds money or debt."""


@receiver(pre_delete, sender=Balance)
def prevent_delete_balance_with_funds(sender, instance, **kwargs):
    if instance.available_amount or instance.reserved_amount or instance.debt_amount:
        raise ValidationError("Cannot delete a balance with available, reserved or owed money.")


"""Block deletion of incomes that have been (partly) collected."""


@receiver(pre_delete, sender=Income)
def prevent_delete_collected_income(sender, instance, **kwargs):
    if instance.collected_amount:
        raise ValidationError("Cannot delete an income with collected money.")


# Keep the project's running totals in step with the incomes left
@receiver(post_delete, sender=Income)
def refresh_project_totals(sender, instance, **kwargs):
    project = Project.objects.get(pk=instance.project_id)
    remaining = project.budget - Income.objects.for_project(project).total_gross()
    Project.objects.filter(pk=project.pk).update(
        remaining_budget=remaining,
        total_commission_due=F("total_commission_due") - instance.commission_amount,
        updated_at=timezone.now(),
    )


"""Only the latest supplementary contract may go, and only once the
project no longer carries its changes (delete_supplementary_contract
reverts them first)."""


@receiver(pre_delete, sender=SupplementaryContract)
def prevent_delete_applied_contract(sender, instance, **kwargs):
    if not instance.is_latest():
        raise ValidationError("Only the latest supplementary contract can be deleted.")
    project = Project.objects.get(pk=instance.project_id)
    if project.budget != instance.previous_budget or project.end_date != instance.previous_end_date:
        raise ValidationError(
            "Supplementary contract is still applied to the project; revert it first.")
