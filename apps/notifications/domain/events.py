# apps/notifications/domain/events.py
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, List, Optional, TypeVar, Union

from apps.core.domain.entities import Status


class NotificationType(str, Enum):
    TASK_ASSIGNED = 'task_assigned'
    TASK_UPDATED = 'task_updated'
    TASK_DELETED = 'task_deleted'
    TASK_APPROVED = 'task_approved'
    TASK_REJECTED = 'task_rejected'
    TASK_SUBMITTED = 'task_submitted'
    PROJECT_UPDATED = 'project_updated'
    PROJECT_DELETED = 'project_deleted'


class ActivityType(str, Enum):
    CREATED_TASK = 'created_task'
    UPDATED_TASK = 'updated_task'
    DELETED_TASK = 'deleted_task'
    CREATED_PROJECT = 'created_project'
    UPDATED_PROJECT = 'updated_project'
    DELETED_PROJECT = 'deleted_project'
    UPDATED_PROJECT_MEMBER = 'updated_project_member'
    SUBMITTED_TASK = 'submitted_task'
    APPROVED_TASK = 'approved_task'
    REJECTED_TASK = 'rejected_task'


class ProjectAction(str, Enum):
    CREATED = 'created'
    UPDATED = 'updated'
    STATUS_CHANGED = 'status_changed'
    READ = 'read'


@dataclass(frozen=True)
class NotificationEvent:
    """Powiadomienie dla jednego użytkownika (kontrakt notify())."""
    message: str
    event_type: NotificationType
    user_id: int
    related_id: Optional[int] = None
    related_type: Optional[str] = None


@dataclass(frozen=True)
class ActivityEvent:
    """Wpis do historii aktywności użytkownika."""
    user_id: int
    description: str
    target_type: str
    target_id: Optional[int]
    activity_type: ActivityType


@dataclass(frozen=True)
class ProjectLogEvent:
    """Wpis do dziennika projektu (postęp i status w chwili zdarzenia)."""
    project_id: int
    action: ProjectAction
    description: str
    performed_by_id: int
    progress: Optional[int] = None
    status: Optional[Status] = None


DomainEvent = Union[NotificationEvent, ActivityEvent, ProjectLogEvent]

T = TypeVar('T')


@dataclass
class Outcome(Generic[T]):
    """Wynik operacji domenowej + zdarzenia do wysłania PO zatwierdzeniu transakcji."""
    value: T
    events: List[DomainEvent] = field(default_factory=list)


def task_notification(message: str, event_type: NotificationType, user_id: int, task_id: int) -> NotificationEvent:
    return NotificationEvent(message, event_type, user_id, task_id, 'Task')


def project_notification(message: str, event_type: NotificationType, user_id: int, project_id: int) -> NotificationEvent:
    return NotificationEvent(message, event_type, user_id, project_id, 'Project')
