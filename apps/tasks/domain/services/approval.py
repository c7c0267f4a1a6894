# apps/tasks/domain/services/approval.py
import logging
from collections import deque
from datetime import datetime
from typing import Callable, List, Optional

from django.utils import timezone

from apps.core.domain.entities import SETTLED_STATUSES, Status
from apps.core.exceptions import NotFound
from apps.notifications.domain.events import (
    ActivityEvent, ActivityType, DomainEvent, NotificationEvent, NotificationType, Outcome,
    task_notification,
)
from apps.projects.domain.permissions import Operation, PermissionGate
from apps.projects.ports.repositories import IMembershipRepository
from apps.tasks.domain.entities import (
    ApprovalAction, ApprovalLogEntity, ApprovalState, TaskEntity,
)
from apps.tasks.ports.repositories import IApprovalLogRepository, ITaskRepository

logger = logging.getLogger(__name__)

LOG_RELATED_TYPE = 'TaskApprovalLog'


def _with_note(message: str, note: Optional[str]) -> str:
    return f"{message} with note: {note}" if note else message


class ApprovalWorkflow:
    """
    SUBMIT -> APPROVE / REJECT. Stan wynika z ostatniego wpisu logu.

    Uwaga na atrybucję: wpisy APPROVE/REJECT mają performed_by = autor zgłoszenia
    (nie zatwierdzający). Zatwierdzający trafia tylko do historii aktywności.
    """

    def __init__(
            self,
            tasks: ITaskRepository,
            logs: IApprovalLogRepository,
            memberships: IMembershipRepository,
            gate: PermissionGate,
            clock: Callable[[], datetime] = timezone.now,
    ):
        self.tasks = tasks
        self.logs = logs
        self.memberships = memberships
        self.gate = gate
        self.clock = clock

    # --- odczyt ---

    def approval_state(self, task_id: int) -> ApprovalState:
        latest = self.logs.latest_for_task(task_id)
        return ApprovalState.from_action(latest.action if latest else None)

    def history(self, task_id: int) -> List[ApprovalLogEntity]:
        return self.logs.find_by_task(task_id)

    # --- przejścia ---

    def submit(self, actor_id: int, task_id: int, note: Optional[str] = None) -> Outcome[ApprovalLogEntity]:
        task = self._get_task(task_id)
        self.gate.authorize(Operation.SUBMIT_APPROVAL, actor_id, task.project_id, task=task)

        entry = self._append(task, ApprovalAction.SUBMIT, actor_id, note)
        logger.info("Task %s submitted for approval by user %s (log %s)", task.id, actor_id, entry.id)

        events: List[DomainEvent] = [
            ActivityEvent(actor_id, f"Submitted task approval for task: {task.title}",
                          'Task', task.id, ActivityType.SUBMITTED_TASK),
        ]
        message = _with_note(f"New submission for task approval {task.title}", note)
        for member in self.memberships.find_by_project(task.project_id):
            if member.role.is_manager:
                events.append(NotificationEvent(message, NotificationType.TASK_SUBMITTED,
                                                member.user_id, entry.id, LOG_RELATED_TYPE))

        return Outcome(entry, events)

    def approve(self, actor_id: int, log_id: int, note: Optional[str] = None) -> Outcome[ApprovalLogEntity]:
        source, task = self._resolve(log_id)
        self.gate.authorize(Operation.REVIEW_APPROVAL, actor_id, task.project_id, task=task)

        entry = self._append(task, ApprovalAction.APPROVE, source.performed_by_id, note)
        logger.info("Task %s approved by user %s (log %s)", task.id, actor_id, entry.id)

        cascade = self.check_task_done(task.id)

        events: List[DomainEvent] = list(cascade.events)
        events.append(ActivityEvent(actor_id, f"Approved task approval for task: {task.title}",
                                    'Task', task.id, ActivityType.APPROVED_TASK))
        events.append(NotificationEvent(_with_note("Submission approved", note), NotificationType.TASK_APPROVED,
                                        entry.performed_by_id, entry.id, LOG_RELATED_TYPE))
        return Outcome(entry, events)

    def reject(self, actor_id: int, log_id: int, note: Optional[str] = None) -> Outcome[ApprovalLogEntity]:
        source, task = self._resolve(log_id)
        self.gate.authorize(Operation.REVIEW_APPROVAL, actor_id, task.project_id, task=task)

        # Status zadania się nie zmienia
        entry = self._append(task, ApprovalAction.REJECT, source.performed_by_id, note)
        logger.info("Task %s rejected by user %s (log %s)", task.id, actor_id, entry.id)

        events: List[DomainEvent] = [
            ActivityEvent(actor_id, f"Rejected task approval for task: {task.title}",
                          'Task', task.id, ActivityType.REJECTED_TASK),
            NotificationEvent(_with_note("Submission rejected", note), NotificationType.TASK_REJECTED,
                              entry.performed_by_id, entry.id, LOG_RELATED_TYPE),
        ]
        return Outcome(entry, events)

    def check_task_done(self, task_id: int) -> Outcome[TaskEntity]:
        """
        BFS od zadania w dół: każde odwiedzone zadanie dostaje progress = 100,
        a jeśli nie jest COMPLETED/OVERDUE, także status COMPLETED.
        Całe poddrzewo jest domykane bezwarunkowo.
        """
        root = self._get_task(task_id)

        queue = deque([root])
        visited = 0
        while queue:
            current = queue.popleft()
            queue.extend(self.tasks.find_children(current.id))

            if current.status not in SETTLED_STATUSES:
                current.status = Status.COMPLETED
            current.progress = 100
            self.tasks.save(current)
            visited += 1

        logger.info("Task %s completed with its subtree (%s tasks)", root.id, visited)

        # Powiadamiamy tylko przypisanych do zatwierdzonego zadania
        events: List[DomainEvent] = [
            task_notification(f"Task {root.title} is completed", NotificationType.TASK_UPDATED, user_id, root.id)
            for user_id in sorted(root.assigned_user_ids)
        ]
        return Outcome(self._get_task(root.id), events)

    # --- pomocnicze ---

    def _append(self, task: TaskEntity, action: ApprovalAction, performed_by_id: int,
                note: Optional[str]) -> ApprovalLogEntity:
        return self.logs.save(ApprovalLogEntity(
            id=None,
            task_id=task.id,
            action=action,
            performed_by_id=performed_by_id,
            note=note or "",
            created_at=self.clock(),
        ))

    def _resolve(self, log_id: int):
        source = self.logs.get_by_id(log_id)
        if not source:
            raise NotFound("Approval log not found")
        return source, self._get_task(source.task_id)

    def _get_task(self, task_id: int) -> TaskEntity:
        task = self.tasks.get_by_id(task_id)
        if not task:
            raise NotFound("Task not found")
        return task
