# apps/tasks/adapters/orm_repositories.py
from datetime import datetime
from typing import List, Mapping, Optional

from django.db.models import Q

from apps.core.domain.entities import Status, TERMINAL_STATUSES
from apps.core.exceptions import StateError, ValidationError
from apps.tasks.domain.entities import ApprovalAction, ApprovalLogEntity, TaskEntity
from apps.tasks.filters import TaskFilter
from apps.tasks.models import Task as TaskModel
from apps.tasks.models import TaskApprovalLog as LogModel
from apps.tasks.ports.repositories import IApprovalLogRepository, ITaskRepository


class DjangoTaskRepository(ITaskRepository):
    def to_entity(self, model: TaskModel) -> TaskEntity:
        """Konwertuje Model Django -> Czystą Encję."""
        return TaskEntity(
            id=model.id,
            title=model.title,
            project_id=model.project_id,
            created_by_id=model.created_by_id,
            description=model.description,
            priority=model.priority,
            level=model.level,
            progress=model.progress,
            status=Status(model.status),
            deadline=model.deadline,
            parent_id=model.parent_id,
            # Dzięki prefetch_related w zapytaniu, nie spowoduje to dodatkowego strzału do DB
            assigned_user_ids={u.id for u in model.assigned_users.all()},
        )

    def _queryset(self):
        return TaskModel.objects.prefetch_related('assigned_users')

    def get_by_id(self, task_id: int) -> Optional[TaskEntity]:
        try:
            return self.to_entity(self._queryset().get(id=task_id))
        except TaskModel.DoesNotExist:
            return None

    def save(self, task: TaskEntity) -> TaskEntity:
        data = {
            'title': task.title,
            'description': task.description,
            'priority': task.priority,
            'level': task.level,
            'progress': task.progress,
            'status': task.status.value,
            'deadline': task.deadline,
            'created_by_id': task.created_by_id,
            'project_id': task.project_id,
            'parent_id': task.parent_id,
        }

        if task.id:
            # Aktualizacja istniejącego
            TaskModel.objects.filter(id=task.id).update(**data)
            obj = TaskModel.objects.get(id=task.id)
        else:
            obj = TaskModel.objects.create(**data)

        obj.assigned_users.set(task.assigned_user_ids)
        return self.get_by_id(obj.id)

    def delete(self, task_id: int) -> None:
        TaskModel.objects.filter(id=task_id).delete()

    def find_children(self, parent_id: int) -> List[TaskEntity]:
        qs = self._queryset().filter(parent_id=parent_id).order_by('id')
        return [self.to_entity(t) for t in qs]

    def find_root_tasks(self, project_id: int, level: int = 1) -> List[TaskEntity]:
        qs = self._queryset().filter(project_id=project_id, level=level).order_by('id')
        return [self.to_entity(t) for t in qs]

    def find_by_project(self, project_id: int) -> List[TaskEntity]:
        qs = self._queryset().filter(project_id=project_id).order_by('level', 'id')
        return [self.to_entity(t) for t in qs]

    def find_assigned(self, user_id: int, project_id: Optional[int] = None) -> List[TaskEntity]:
        qs = self._queryset().filter(assigned_users__id=user_id)
        if project_id is not None:
            qs = qs.filter(project_id=project_id)
        return [self.to_entity(t) for t in qs.distinct().order_by('id')]

    def find_overdue_candidates(self, now: datetime, project_id: Optional[int] = None) -> List[TaskEntity]:
        qs = self._queryset().filter(deadline__lt=now) \
            .exclude(status__in=[s.value for s in TERMINAL_STATUSES])
        if project_id is not None:
            qs = qs.filter(project_id=project_id)
        return [self.to_entity(t) for t in qs.order_by('id')]

    def search(self, user_id: int, params: Mapping[str, str], scope: str = 'related') -> List[TaskEntity]:
        if scope == 'assigned':
            qs = self._queryset().filter(assigned_users__id=user_id)
        elif scope == 'created':
            qs = self._queryset().filter(created_by_id=user_id)
        else:
            qs = self._queryset().filter(Q(assigned_users__id=user_id) | Q(created_by_id=user_id))

        task_filter = TaskFilter(params, queryset=qs.distinct())
        if not task_filter.is_valid():
            raise ValidationError(f"Invalid task filters: {dict(task_filter.errors)}")
        return [self.to_entity(t) for t in task_filter.qs]

    def count_assigned(self, project_id: int, user_id: int, start: datetime, end: datetime,
                       status: Optional[Status] = None) -> int:
        qs = TaskModel.objects.filter(
            project_id=project_id,
            assigned_users__id=user_id,
            deadline__range=(start, end),
        )
        if status is not None:
            qs = qs.filter(status=status.value)
        return qs.count()

    def count_created(self, project_id: int, user_id: int, start: datetime, end: datetime) -> int:
        return TaskModel.objects.filter(
            project_id=project_id,
            created_by_id=user_id,
            deadline__range=(start, end),
        ).count()


class DjangoApprovalLogRepository(IApprovalLogRepository):
    def to_entity(self, model: LogModel) -> ApprovalLogEntity:
        return ApprovalLogEntity(
            id=model.id,
            task_id=model.task_id,
            action=ApprovalAction(model.action),
            performed_by_id=model.performed_by_id,
            note=model.note,
            created_at=model.created_at,
        )

    def get_by_id(self, log_id: int) -> Optional[ApprovalLogEntity]:
        log = LogModel.objects.filter(id=log_id).first()
        return self.to_entity(log) if log else None

    def save(self, entry: ApprovalLogEntity) -> ApprovalLogEntity:
        if entry.id is not None:
            raise StateError("Task approval logs are append-only")

        obj = LogModel.objects.create(
            task_id=entry.task_id,
            action=entry.action.value,
            performed_by_id=entry.performed_by_id,
            note=entry.note or '',
            created_at=entry.created_at,
        )
        return self.to_entity(obj)

    def find_by_task(self, task_id: int) -> List[ApprovalLogEntity]:
        qs = LogModel.objects.filter(task_id=task_id).order_by('created_at', 'id')
        return [self.to_entity(log) for log in qs]

    def latest_for_task(self, task_id: int) -> Optional[ApprovalLogEntity]:
        log = LogModel.objects.filter(task_id=task_id).order_by('-created_at', '-id').first()
        return self.to_entity(log) if log else None

    def count_actions(self, user_id: int, project_id: int, start: datetime, end: datetime,
                      action: Optional[ApprovalAction] = None) -> int:
        qs = LogModel.objects.filter(
            performed_by_id=user_id,
            task__project_id=project_id,
            created_at__range=(start, end),
        )
        if action is not None:
            qs = qs.filter(action=action.value)
        return qs.count()
