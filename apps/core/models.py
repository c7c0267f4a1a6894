# apps/core/models.py
from django.db import models


class StatusChoices(models.TextChoices):
    # Używamy TextChoices dla wygody w Adminie, ale mapujemy to na Enum domenowy (Status)
    NOT_STARTED = 'not_started', 'Not started'
    IN_PROGRESS = 'in_progress', 'In progress'
    ON_HOLD = 'on_hold', 'On hold'
    COMPLETED = 'completed', 'Completed'
    CANCELED = 'canceled', 'Canceled'
    OVERDUE = 'overdue', 'Overdue'
