# apps/notifications/adapters/orm_notifier.py
import logging
from typing import List, Optional

from apps.core.exceptions import NotFound
from apps.notifications.domain.events import NotificationType
from apps.notifications.models import Notification
from apps.notifications.ports.sinks import INotifier

logger = logging.getLogger(__name__)


class DjangoNotifier(INotifier):
    def notify(self, message: str, event_type: NotificationType, user_id: int,
               related_id: Optional[int] = None, related_type: Optional[str] = None) -> None:
        data = {
            'message': message,
            'type': NotificationType(event_type).value,
            'user_id': user_id,
        }
        # Powiązanie zapisujemy tylko w komplecie (id + typ)
        if related_id is not None and related_type:
            data['related_id'] = related_id
            data['related_type'] = related_type

        Notification.objects.create(**data)
        logger.debug("Notification stored user=%s type=%s related=%s:%s",
                     user_id, data['type'], related_type, related_id)

    def unread_for(self, user_id: int) -> List[Notification]:
        return list(Notification.objects.filter(user_id=user_id, is_read=False))

    def mark_as_read(self, notification_id: int) -> None:
        updated = Notification.objects.filter(id=notification_id).update(is_read=True)
        if not updated:
            raise NotFound("Notification not found")
