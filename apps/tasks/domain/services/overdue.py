# apps/tasks/domain/services/overdue.py
import logging
from datetime import datetime
from typing import Callable, List, Optional

from django.utils import timezone

from apps.core.domain.entities import Status
from apps.notifications.domain.events import (
    DomainEvent, NotificationEvent, NotificationType, Outcome, task_notification,
)
from apps.tasks.domain.entities import TaskEntity
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)


class OverdueSentinel:
    """
    Leniwe wykrywanie przeterminowania: sprawdzamy przy KAŻDYM odczycie zadania,
    bez harmonogramu w tle. Ponowne wywołanie na OVERDUE nic nie robi.
    """

    def __init__(self, tasks: ITaskRepository, clock: Callable[[], datetime] = timezone.now):
        self.tasks = tasks
        self.clock = clock

    def refresh_overdue_state(self, task: TaskEntity, now: Optional[datetime] = None) -> List[NotificationEvent]:
        now = now or self.clock()

        if not task.is_past_deadline(now):
            return []

        task.status = Status.OVERDUE
        self.tasks.save(task)
        logger.info("Task %s is overdue (deadline %s)", task.id, task.deadline)

        return [
            task_notification(f"Task {task.title} is overdue", NotificationType.TASK_UPDATED, user_id, task.id)
            for user_id in sorted(task.assigned_user_ids)
        ]

    def sweep(self, project_id: Optional[int] = None) -> Outcome[List[TaskEntity]]:
        """Jednorazowe przejście po wszystkich kandydatach (komenda operatora)."""
        now = self.clock()
        flipped: List[TaskEntity] = []
        events: List[DomainEvent] = []
        for task in self.tasks.find_overdue_candidates(now, project_id=project_id):
            events.extend(self.refresh_overdue_state(task, now))
            if task.status == Status.OVERDUE:
                flipped.append(task)
        logger.info("Overdue sweep: %s tasks flipped", len(flipped))
        return Outcome(flipped, events)
