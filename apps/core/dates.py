# apps/core/dates.py
from datetime import date, datetime, time
from typing import Optional, Union

from dateutil.parser import isoparse
from django.utils import timezone

from apps.core.exceptions import ValidationError

Instant = Union[datetime, date, str, None]


def parse_instant(value: Instant) -> Optional[datetime]:
    """
    Zamienia wartość od wywołującego na świadomy strefy datetime.
    Napisy w ISO 8601 parsuje dateutil; sama data to północ tego dnia;
    naiwne daty dostają bieżącą strefę.
    """
    if value is None or value == '':
        return None

    if isinstance(value, str):
        try:
            value = isoparse(value)
        except ValueError:
            raise ValidationError(f"Invalid date: {value}")
    elif not isinstance(value, datetime):
        if not isinstance(value, date):
            raise ValidationError(f"Invalid date: {value!r}")
        value = datetime.combine(value, time.min)

    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value
