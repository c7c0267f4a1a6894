# apps/reports/adapters/orm_activity_log.py
from datetime import datetime
from typing import List, Optional

from apps.notifications.domain.events import ActivityEvent
from apps.notifications.ports.sinks import IActivityLog
from apps.reports.models import ActivityLog


class DjangoActivityLog(IActivityLog):
    def record(self, event: ActivityEvent) -> None:
        ActivityLog.objects.create(
            user_id=event.user_id,
            activity_type=event.activity_type.value,
            description=event.description,
            target_type=event.target_type,
            target_id=event.target_id,
        )

    def for_user(self, user_id: int, since: Optional[datetime] = None) -> List[ActivityLog]:
        qs = ActivityLog.objects.filter(user_id=user_id)
        if since is not None:
            qs = qs.filter(timestamp__gte=since)
        return list(qs)
