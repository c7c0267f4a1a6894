# apps/tasks/application/use_cases.py
import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, ContextManager, Iterable, List, Mapping, Optional

from django.conf import settings
from django.utils import timezone

from apps.core.dates import Instant, parse_instant
from apps.core.domain.entities import SETTLED_STATUSES, Status
from apps.core.exceptions import NotFound, ValidationError
from apps.notifications.dispatch import EventDispatcher
from apps.notifications.domain.events import (
    ActivityEvent, ActivityType, DomainEvent, NotificationType, task_notification,
)
from apps.projects.domain.entities import ProjectEntity, Role
from apps.projects.domain.permissions import Operation, PermissionGate
from apps.projects.ports.repositories import IMembershipRepository, IProjectRepository, IUserDirectory
from apps.tasks.domain.entities import ApprovalLogEntity, ApprovalState, TaskEntity
from apps.tasks.domain.services.approval import ApprovalWorkflow
from apps.tasks.domain.services.overdue import OverdueSentinel
from apps.tasks.domain.services.progress import ProgressAggregator
from apps.tasks.domain.services.queries import TaskTreeQueries
from apps.tasks.ports.repositories import IApprovalLogRepository, ITaskRepository

logger = logging.getLogger(__name__)

# Znacznik "pole nie zostało podane" (None dla parent_id znaczy "zrób korzeniem")
UNSET = object()


@dataclass
class TaskDeps:
    """Zależności przypadków użycia zadań. Składane ręcznie w apps.core.wiring."""
    tasks: ITaskRepository
    projects: IProjectRepository
    memberships: IMembershipRepository
    users: IUserDirectory
    approvals: IApprovalLogRepository
    dispatcher: EventDispatcher
    atomic: Callable[[], ContextManager] = nullcontext
    clock: Callable[[], datetime] = timezone.now

    @property
    def gate(self) -> PermissionGate:
        return PermissionGate(self.memberships)

    @property
    def aggregator(self) -> ProgressAggregator:
        return ProgressAggregator(self.tasks, self.projects)

    @property
    def sentinel(self) -> OverdueSentinel:
        return OverdueSentinel(self.tasks, clock=self.clock)

    @property
    def workflow(self) -> ApprovalWorkflow:
        return ApprovalWorkflow(self.tasks, self.approvals, self.memberships, self.gate, clock=self.clock)

    @property
    def queries(self) -> TaskTreeQueries:
        return TaskTreeQueries(self.tasks)


class TaskUseCase:
    def __init__(self, deps: TaskDeps):
        self.deps = deps

    def _get_task(self, task_id: int) -> TaskEntity:
        task = self.deps.tasks.get_by_id(task_id)
        if not task:
            raise NotFound("Task not found")
        return task

    def _get_project(self, project_id: int) -> ProjectEntity:
        project = self.deps.projects.get_by_id(project_id)
        if not project:
            raise NotFound(f"Project not found with id: {project_id}")
        return project

    def _check_deadline(self, deadline: Optional[datetime], parent: Optional[TaskEntity],
                        project: ProjectEntity) -> None:
        if deadline is None:
            return
        if parent is not None and parent.deadline is not None and deadline > parent.deadline:
            raise ValidationError("Deadline cannot be after the parent task's deadline")
        if project.end_date is not None and deadline > project.end_date:
            raise ValidationError("Deadline cannot be after the project's end date")

    def _check_users(self, user_ids: Iterable[int]) -> None:
        for user_id in user_ids:
            if not self.deps.users.exists(user_id):
                raise NotFound(f"User not found: {user_id}")

    def _publish(self, events: List[DomainEvent]) -> None:
        self.deps.dispatcher.publish(events)


def _clean_title(title: Optional[str]) -> str:
    if not title or not title.strip():
        raise ValidationError("Task title cannot be empty")
    return title.strip()


def _check_priority(priority: int) -> int:
    if priority is None or priority < 1:
        raise ValidationError("Priority must be a positive integer")
    return priority


# --- Tworzenie ---

@dataclass
class CreateTaskInput:
    actor_id: int
    project_id: int
    title: str
    description: str = ""
    priority: int = 1
    deadline: Instant = None
    parent_id: Optional[int] = None
    assigned_user_ids: List[int] = field(default_factory=list)


class CreateTaskUseCase(TaskUseCase):
    def execute(self, input_dto: CreateTaskInput) -> TaskEntity:
        deps = self.deps
        events: List[DomainEvent] = []

        with deps.atomic():
            project = self._get_project(input_dto.project_id)
            role = deps.gate.authorize(Operation.CREATE_TASK, input_dto.actor_id, project.id)

            title = _clean_title(input_dto.title)
            priority = _check_priority(input_dto.priority)
            deadline = parse_instant(input_dto.deadline)

            parent = None
            level = 1
            if input_dto.parent_id is not None:
                parent = self.deps.tasks.get_by_id(input_dto.parent_id)
                if not parent:
                    raise NotFound("Parent task not found")
                if parent.project_id != project.id:
                    raise ValidationError("Parent task belongs to another project")
                level = parent.level + 1

            self._check_deadline(deadline, parent, project)

            # MEMBER zawsze przypisuje siebie, kierownicy wskazują innych
            if role == Role.MEMBER:
                assignees = {input_dto.actor_id}
                notify_assignees = False
            else:
                assignees = set(input_dto.assigned_user_ids)
                self._check_users(assignees)
                notify_assignees = True

            task = deps.tasks.save(TaskEntity(
                id=None,
                title=title,
                project_id=project.id,
                created_by_id=input_dto.actor_id,
                description=input_dto.description or "",
                priority=priority,
                level=level,
                progress=0,
                status=Status.IN_PROGRESS,
                deadline=deadline,
                parent_id=parent.id if parent else None,
                assigned_user_ids=assignees,
            ))

            if notify_assignees:
                for user_id in sorted(assignees):
                    events.append(task_notification(f"You have been assigned to task: {task.title}",
                                                    NotificationType.TASK_ASSIGNED, user_id, task.id))
            events.append(task_notification(f"New task created: {task.title}",
                                            NotificationType.TASK_ASSIGNED, input_dto.actor_id, task.id))
            events.append(ActivityEvent(input_dto.actor_id, f"Created task: {task.title}",
                                        'Task', task.id, ActivityType.CREATED_TASK))

            # Nowy liść zmienia postęp przodków i projektu
            deps.aggregator.refresh_chain(task.id)
            task = self._get_task(task.id)

        logger.info("Task %s created in project %s by user %s", task.id, project.id, input_dto.actor_id)
        self._publish(events)
        return task


# --- Odczyt ---

@dataclass
class GetTaskInput:
    actor_id: int
    task_id: int


class GetTaskUseCase(TaskUseCase):
    """
    Odczyt z efektami ubocznymi: sentinel przeterminowania,
    zapis postępu w poddrzewie i automatyczne domknięcie przy 100%.
    """

    def execute(self, input_dto: GetTaskInput) -> TaskEntity:
        deps = self.deps

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            deps.gate.authorize(Operation.VIEW, input_dto.actor_id, task.project_id)

            events: List[DomainEvent] = list(deps.sentinel.refresh_overdue_state(task))

            progress = deps.aggregator.refresh_task_progress(task.id)
            task = self._get_task(task.id)
            task.progress = progress

            if progress == 100 and task.status not in SETTLED_STATUSES:
                task.status = Status.COMPLETED
                task = deps.tasks.save(task)
                logger.info("Task %s auto-completed on read", task.id)

        self._publish(events)
        return task


@dataclass
class ListProjectTasksInput:
    actor_id: int
    project_id: int


class ListProjectTasksUseCase(TaskUseCase):
    def execute(self, input_dto: ListProjectTasksInput) -> List[TaskEntity]:
        deps = self.deps
        events: List[DomainEvent] = []

        with deps.atomic():
            self._get_project(input_dto.project_id)
            deps.gate.authorize(Operation.VIEW, input_dto.actor_id, input_dto.project_id)

            now = deps.clock()
            tasks = deps.tasks.find_by_project(input_dto.project_id)
            for task in tasks:
                events.extend(deps.sentinel.refresh_overdue_state(task, now))

        self._publish(events)
        return tasks


@dataclass
class TaskHierarchyInput:
    actor_id: int
    task_id: int


class TaskHierarchyUseCase(TaskUseCase):
    """Całe drzewo od korzenia, bez zapisu (do raportów)."""

    def execute(self, input_dto: TaskHierarchyInput) -> List[TaskEntity]:
        task = self._get_task(input_dto.task_id)
        self.deps.gate.authorize(Operation.VIEW, input_dto.actor_id, task.project_id)
        return self.deps.queries.hierarchy(task.id)


@dataclass
class TasksNearDeadlineInput:
    actor_id: int
    project_id: Optional[int] = None


class TasksNearDeadlineUseCase(TaskUseCase):
    def execute(self, input_dto: TasksNearDeadlineInput) -> List[TaskEntity]:
        window = timedelta(hours=settings.TEAMWORK_DUE_SOON_HOURS)
        return self.deps.queries.near_deadline(
            input_dto.actor_id, self.deps.clock(), window, project_id=input_dto.project_id,
        )


@dataclass
class SearchTasksInput:
    actor_id: int
    params: Mapping[str, str] = field(default_factory=dict)
    scope: str = 'related'  # related | assigned | created


class SearchTasksUseCase(TaskUseCase):
    SCOPES = ('related', 'assigned', 'created')

    def execute(self, input_dto: SearchTasksInput) -> List[TaskEntity]:
        if input_dto.scope not in self.SCOPES:
            raise ValidationError(f"Unknown task scope: {input_dto.scope}")
        return self.deps.tasks.search(input_dto.actor_id, input_dto.params, scope=input_dto.scope)


# --- Edycja ---

@dataclass
class UpdateTaskInput:
    actor_id: int
    task_id: int
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[int] = None
    progress: Optional[int] = None
    status: Optional[str] = None
    deadline: Instant = None
    parent_id: object = UNSET
    assigned_user_ids: Optional[List[int]] = None


class UpdateTaskUseCase(TaskUseCase):
    def execute(self, input_dto: UpdateTaskInput) -> TaskEntity:
        deps = self.deps
        events: List[DomainEvent] = []

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            deps.gate.authorize(Operation.UPDATE_TASK, input_dto.actor_id, task.project_id, task=task)
            if input_dto.assigned_user_ids is not None and set(input_dto.assigned_user_ids) != task.assigned_user_ids:
                # Zmiana przypisań tylko dla LEADER / VICE_LEADER
                deps.gate.authorize(Operation.ASSIGN_USER, input_dto.actor_id, task.project_id, task=task)
            project = self._get_project(task.project_id)
            old_root_id = deps.queries.root_of(task.id).id

            if input_dto.title is not None:
                task.title = _clean_title(input_dto.title)
            if input_dto.description is not None:
                task.description = input_dto.description
            if input_dto.priority is not None:
                task.priority = _check_priority(input_dto.priority)
            if input_dto.progress is not None:
                if not 0 <= input_dto.progress <= 100:
                    raise ValidationError("Progress must be between 0 and 100")
                task.progress = input_dto.progress
            if input_dto.status is not None:
                task.status = Status.parse(input_dto.status)

            reparented = input_dto.parent_id is not UNSET and input_dto.parent_id != task.parent_id
            parent = self._resolve_parent(task, input_dto.parent_id)

            if input_dto.deadline is not None:
                task.deadline = parse_instant(input_dto.deadline)
            if input_dto.deadline is not None or reparented:
                self._check_deadline(task.deadline, parent, project)

            added = set()
            if input_dto.assigned_user_ids is not None:
                wanted = set(input_dto.assigned_user_ids)
                self._check_users(wanted - task.assigned_user_ids)
                added = wanted - task.assigned_user_ids
                task.assigned_user_ids = wanted

            if reparented:
                task.parent_id = parent.id if parent else None
                self._relevel(task, parent.level + 1 if parent else 1)

            task = deps.tasks.save(task)

            for user_id in sorted(added):
                events.append(task_notification(f"You have been assigned to task: {task.title}",
                                                NotificationType.TASK_ASSIGNED, user_id, task.id))
            events.append(task_notification(f"Task updated: {task.title}",
                                            NotificationType.TASK_UPDATED, input_dto.actor_id, task.id))
            events.append(ActivityEvent(input_dto.actor_id, f"Updated task: {task.title}",
                                        'Task', task.id, ActivityType.UPDATED_TASK))

            if reparented and old_root_id != task.id:
                deps.aggregator.refresh_chain(old_root_id)
            deps.aggregator.refresh_chain(task.id)
            task = self._get_task(task.id)

        logger.info("Task %s updated by user %s", task.id, input_dto.actor_id)
        self._publish(events)
        return task

    def _resolve_parent(self, task: TaskEntity, parent_id) -> Optional[TaskEntity]:
        if parent_id is UNSET:
            parent_id = task.parent_id
        if parent_id is None:
            return None

        parent = self.deps.tasks.get_by_id(parent_id)
        if not parent:
            raise NotFound("Parent task not found")
        if parent.project_id != task.project_id:
            raise ValidationError("Parent task belongs to another project")

        # Rodzic nie może leżeć w poddrzewie zadania
        ancestor = parent
        while ancestor is not None:
            if ancestor.id == task.id:
                raise ValidationError("A task cannot be moved under itself or its subtasks")
            ancestor = self.deps.tasks.get_by_id(ancestor.parent_id) if ancestor.parent_id else None
        return parent

    def _relevel(self, task: TaskEntity, level: int) -> None:
        """Nowy poziom zadania i przesunięcie całego poddrzewa (zapis dzieci od razu)."""
        shift = level - task.level
        task.level = level
        if shift == 0:
            return
        stack = list(self.deps.tasks.find_children(task.id))
        while stack:
            child = stack.pop()
            child.level += shift
            self.deps.tasks.save(child)
            stack.extend(self.deps.tasks.find_children(child.id))


@dataclass
class DeleteTaskInput:
    actor_id: int
    task_id: int


class DeleteTaskUseCase(TaskUseCase):
    def execute(self, input_dto: DeleteTaskInput) -> None:
        deps = self.deps

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            deps.gate.authorize(Operation.DELETE_TASK, input_dto.actor_id, task.project_id, task=task)

            events: List[DomainEvent] = [
                task_notification(f"Deleted task {task.title}", NotificationType.TASK_DELETED, user_id, task.id)
                for user_id in sorted(task.assigned_user_ids)
            ]
            events.append(ActivityEvent(input_dto.actor_id, f"Deleted task {task.title}",
                                        'Task', task.id, ActivityType.DELETED_TASK))

            deps.tasks.delete(task.id)

            if task.parent_id is not None:
                deps.aggregator.refresh_chain(task.parent_id)
            else:
                deps.aggregator.refresh_project_progress(task.project_id)

        logger.info("Task %s deleted by user %s", task.id, input_dto.actor_id)
        self._publish(events)


@dataclass
class ChangeTaskStatusInput:
    actor_id: int
    task_id: int
    status: str


class ChangeTaskStatusUseCase(TaskUseCase):
    def execute(self, input_dto: ChangeTaskStatusInput) -> TaskEntity:
        deps = self.deps

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            deps.gate.authorize(Operation.CHANGE_TASK_STATUS, input_dto.actor_id, task.project_id, task=task)
            status = Status.parse(input_dto.status)

            task.status = status
            task = deps.tasks.save(task)

        events: List[DomainEvent] = [
            task_notification(f"Task status updated: {task.title} to {status.name}",
                              NotificationType.TASK_UPDATED, input_dto.actor_id, task.id),
            ActivityEvent(input_dto.actor_id, f"Task status updated {task.title}",
                          'Task', task.id, ActivityType.UPDATED_TASK),
        ]
        self._publish(events)

        # Zwracamy widok po odczycie (sentinel + postęp)
        return GetTaskUseCase(deps).execute(GetTaskInput(input_dto.actor_id, task.id))


@dataclass
class UpdateTaskProgressInput:
    actor_id: int
    task_id: int
    progress: int


class UpdateTaskProgressUseCase(TaskUseCase):
    def execute(self, input_dto: UpdateTaskProgressInput) -> TaskEntity:
        deps = self.deps

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            deps.gate.authorize(Operation.UPDATE_TASK_PROGRESS, input_dto.actor_id, task.project_id, task=task)

            progress = input_dto.progress
            if progress is None or not 0 <= progress <= 100:
                raise ValidationError("Progress must be between 0 and 100")

            task.progress = progress
            if progress == 0:
                task.status = Status.NOT_STARTED
            elif progress == 100:
                task.status = Status.COMPLETED
            elif task.status == Status.NOT_STARTED:
                task.status = Status.IN_PROGRESS

            deps.tasks.save(task)
            deps.aggregator.refresh_chain(task.id)
            task = self._get_task(task.id)

        logger.info("Task %s progress set to %s by user %s", task.id, progress, input_dto.actor_id)
        return task


# --- Przypisania ---

@dataclass
class AssignmentInput:
    actor_id: int
    task_id: int
    user_id: int


class AssignUserUseCase(TaskUseCase):
    def execute(self, input_dto: AssignmentInput) -> List[int]:
        deps = self.deps

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            if not deps.users.exists(input_dto.user_id):
                raise NotFound("User not found")
            deps.gate.authorize(Operation.ASSIGN_USER, input_dto.actor_id, task.project_id, task=task)

            if task.is_assigned(input_dto.user_id):
                raise ValidationError("User is already assigned to this task")

            task.assigned_user_ids.add(input_dto.user_id)
            task = deps.tasks.save(task)

        self._publish([
            task_notification(f"You have been assigned to task: {task.title}",
                              NotificationType.TASK_ASSIGNED, input_dto.user_id, task.id),
        ])
        return sorted(task.assigned_user_ids)


class UnassignUserUseCase(TaskUseCase):
    def execute(self, input_dto: AssignmentInput) -> List[int]:
        deps = self.deps

        with deps.atomic():
            task = self._get_task(input_dto.task_id)
            if not deps.users.exists(input_dto.user_id):
                raise NotFound("User not found")
            deps.gate.authorize(Operation.ASSIGN_USER, input_dto.actor_id, task.project_id, task=task)

            if not task.is_assigned(input_dto.user_id):
                raise ValidationError("User is not assigned to this task")

            task.assigned_user_ids.discard(input_dto.user_id)
            task = deps.tasks.save(task)

        self._publish([
            task_notification(f"You have been removed from task: {task.title}",
                              NotificationType.TASK_UPDATED, input_dto.user_id, task.id),
        ])
        return sorted(task.assigned_user_ids)


# --- Akceptacja ---

@dataclass
class SubmitApprovalInput:
    actor_id: int
    task_id: int
    note: Optional[str] = None


class SubmitApprovalUseCase(TaskUseCase):
    def execute(self, input_dto: SubmitApprovalInput) -> ApprovalLogEntity:
        with self.deps.atomic():
            outcome = self.deps.workflow.submit(input_dto.actor_id, input_dto.task_id, input_dto.note)
        self._publish(outcome.events)
        return outcome.value


@dataclass
class ReviewApprovalInput:
    actor_id: int
    log_id: int
    note: Optional[str] = None


class ApproveSubmissionUseCase(TaskUseCase):
    def execute(self, input_dto: ReviewApprovalInput) -> ApprovalLogEntity:
        deps = self.deps

        # Wpis APPROVE i cała kaskada w jednej transakcji
        with deps.atomic():
            outcome = deps.workflow.approve(input_dto.actor_id, input_dto.log_id, input_dto.note)
            deps.aggregator.refresh_chain(outcome.value.task_id)

        self._publish(outcome.events)
        return outcome.value


class RejectSubmissionUseCase(TaskUseCase):
    def execute(self, input_dto: ReviewApprovalInput) -> ApprovalLogEntity:
        with self.deps.atomic():
            outcome = self.deps.workflow.reject(input_dto.actor_id, input_dto.log_id, input_dto.note)
        self._publish(outcome.events)
        return outcome.value


@dataclass
class ApprovalHistory:
    state: ApprovalState
    entries: List[ApprovalLogEntity]


@dataclass
class ApprovalHistoryInput:
    actor_id: int
    task_id: int


class ApprovalHistoryUseCase(TaskUseCase):
    def execute(self, input_dto: ApprovalHistoryInput) -> ApprovalHistory:
        task = self._get_task(input_dto.task_id)
        self.deps.gate.authorize(Operation.VIEW, input_dto.actor_id, task.project_id)

        workflow = self.deps.workflow
        return ApprovalHistory(
            state=workflow.approval_state(task.id),
            entries=workflow.history(task.id),
        )
