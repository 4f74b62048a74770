import logging
import re

from celery import shared_task

logger = logging.getLogger(__name__)

# Descriptions the task is allowed to overwrite; anything else was typed by a person
INSTALLMENT_LABEL = re.compile(r"^Installment \d+/\d+$")


@shared_task  # register this function as a Celery task
def relabel_installments(project_id):
    """Number a project's incomes "Installment N/M" in date order.

    Purely cosmetic: no money field is touched, and custom descriptions
    are left alone (they still count towards N and M).
    """
    # import models lazily to avoid circular imports at module import time
    from .models import Income

    incomes = list(
        Income.objects.filter(project_id=project_id)
        .installment_order()
        .only("pk", "description")
    )
    total = len(incomes)
    renamed = 0
    for position, income in enumerate(incomes, start=1):
        if income.description and not INSTALLMENT_LABEL.match(income.description):
            continue
        label = f"Installment {position}/{total}"
        if income.description != label:
            # update() skips full_clean; description carries no invariant
            Income.objects.filter(pk=income.pk).update(description=label)
            renamed += 1

    logger.info("Relabelled %s of %s incomes on project %s", renamed, total, project_id)
    return renamed
