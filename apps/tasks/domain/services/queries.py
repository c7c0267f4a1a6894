# apps/tasks/domain/services/queries.py
from datetime import datetime, timedelta
from typing import List, Optional

from apps.core.domain.entities import TERMINAL_STATUSES
from apps.core.exceptions import NotFound
from apps.tasks.domain.entities import TaskEntity
from apps.tasks.ports.repositories import ITaskRepository


class TaskTreeQueries:
    """Odczyty drzewa zadań bez efektów ubocznych (bez zapisu postępu i statusu)."""

    def __init__(self, tasks: ITaskRepository):
        self.tasks = tasks

    def root_of(self, task_id: int) -> TaskEntity:
        task = self._get_task(task_id)
        while task.parent_id is not None:
            task = self._get_task(task.parent_id)
        return task

    def hierarchy(self, task_id: int) -> List[TaskEntity]:
        """Całe drzewo, do którego należy zadanie, od korzenia w kolejności preorder."""
        ordered: List[TaskEntity] = []
        stack = [self.root_of(task_id)]
        while stack:
            current = stack.pop()
            ordered.append(current)
            # Odwracamy, żeby dzieci wyszły w kolejności ID
            stack.extend(reversed(self.tasks.find_children(current.id)))
        return ordered

    def near_deadline(self, user_id: int, now: datetime, window: timedelta,
                      project_id: Optional[int] = None) -> List[TaskEntity]:
        """Otwarte zadania użytkownika z terminem w przedziale (now, now + window]."""
        horizon = now + window
        found = [
            t for t in self.tasks.find_assigned(user_id, project_id=project_id)
            if t.deadline is not None
            and now < t.deadline <= horizon
            and t.status not in TERMINAL_STATUSES
        ]
        return sorted(found, key=lambda t: (t.deadline, t.id))

    def _get_task(self, task_id: int) -> TaskEntity:
        task = self.tasks.get_by_id(task_id)
        if not task:
            raise NotFound("Task not found")
        return task
