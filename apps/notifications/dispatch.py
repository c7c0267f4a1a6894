# apps/notifications/dispatch.py
import logging
from typing import Iterable, List, Optional

from django.db import transaction

from apps.notifications.domain.events import (
    ActivityEvent, DomainEvent, NotificationEvent, ProjectLogEvent,
)
from apps.notifications.ports.sinks import IActivityLog, INotifier, IProjectLog

logger = logging.getLogger(__name__)


class EventDispatcher:
    """
    Rozsyła zdarzenia domenowe do odbiorców.
    Każde zdarzenie osobno: błąd jednego nie blokuje pozostałych
    i nigdy nie wraca do wywołującego.
    """

    def __init__(self, notifier: INotifier,
                 activity_log: Optional[IActivityLog] = None,
                 project_log: Optional[IProjectLog] = None):
        self.notifier = notifier
        self.activity_log = activity_log
        self.project_log = project_log

    def publish(self, events: Iterable[DomainEvent]) -> None:
        self._deliver_all(list(events))

    def _deliver_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            try:
                self._deliver(event)
            except Exception:
                logger.exception("Event delivery failed: %r", event)

    def _deliver(self, event: DomainEvent) -> None:
        if isinstance(event, NotificationEvent):
            self.notifier.notify(event.message, event.event_type, event.user_id,
                                 event.related_id, event.related_type)
        elif isinstance(event, ActivityEvent):
            if self.activity_log:
                self.activity_log.record(event)
        elif isinstance(event, ProjectLogEvent):
            if self.project_log:
                self.project_log.record(event)
        else:
            logger.warning("Unknown event type %s, skipping", type(event).__name__)


class OnCommitEventDispatcher(EventDispatcher):
    """Wariant dla Django: dostarczenie dopiero po COMMIT zewnętrznej transakcji."""

    def publish(self, events: Iterable[DomainEvent]) -> None:
        batch = list(events)
        if not batch:
            return
        transaction.on_commit(lambda: self._deliver_all(batch))
