# apps/notifications/ports/sinks.py
from abc import ABC, abstractmethod
from typing import Optional

from apps.notifications.domain.events import ActivityEvent, NotificationType, ProjectLogEvent


class INotifier(ABC):
    @abstractmethod
    def notify(self, message: str, event_type: NotificationType, user_id: int,
               related_id: Optional[int], related_type: Optional[str]) -> None:
        """Fire-and-forget. Błąd dostarczenia nie może cofnąć operacji."""
        pass


class IActivityLog(ABC):
    @abstractmethod
    def record(self, event: ActivityEvent) -> None:
        pass


class IProjectLog(ABC):
    @abstractmethod
    def record(self, event: ProjectLogEvent) -> None:
        pass
