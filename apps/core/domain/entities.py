# apps/core/domain/entities.py
from enum import Enum

from apps.core.exceptions import ValidationError


class Status(str, Enum):
    """Wspólny cykl życia zadań i projektów."""
    NOT_STARTED = 'not_started'
    IN_PROGRESS = 'in_progress'
    ON_HOLD = 'on_hold'
    COMPLETED = 'completed'
    CANCELED = 'canceled'
    OVERDUE = 'overdue'

    @classmethod
    def parse(cls, raw) -> 'Status':
        """Akceptuje enum, 'IN_PROGRESS', 'in_progress' albo 'in progress'."""
        if isinstance(raw, cls):
            return raw
        if not raw:
            raise ValidationError("Status is required")
        key = str(raw).strip().lower().replace(' ', '_')
        try:
            return cls(key)
        except ValueError:
            raise ValidationError(f"Unknown status: {raw}")


# Statusy, których sentinel przeterminowania już nie rusza
TERMINAL_STATUSES = frozenset({Status.COMPLETED, Status.OVERDUE, Status.CANCELED})

# Statusy, których kaskada zatwierdzenia nie nadpisuje
SETTLED_STATUSES = frozenset({Status.COMPLETED, Status.OVERDUE})
