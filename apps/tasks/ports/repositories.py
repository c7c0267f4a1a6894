# apps/tasks/ports/repositories.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Mapping, Optional

from apps.core.domain.entities import Status
from apps.tasks.domain.entities import ApprovalAction, ApprovalLogEntity, TaskEntity


class ITaskRepository(ABC):
    @abstractmethod
    def get_by_id(self, task_id: int) -> Optional[TaskEntity]:
        pass

    @abstractmethod
    def save(self, task: TaskEntity) -> TaskEntity:
        """Zapisuje (tworzy lub aktualizuje) zadanie i zwraca zaktualizowaną encję (np. z ID)."""
        pass

    @abstractmethod
    def delete(self, task_id: int) -> None:
        """Usuwa zadanie razem z potomkami."""
        pass

    @abstractmethod
    def find_children(self, parent_id: int) -> List[TaskEntity]:
        pass

    @abstractmethod
    def find_root_tasks(self, project_id: int, level: int = 1) -> List[TaskEntity]:
        pass

    @abstractmethod
    def find_by_project(self, project_id: int) -> List[TaskEntity]:
        pass

    @abstractmethod
    def find_assigned(self, user_id: int, project_id: Optional[int] = None) -> List[TaskEntity]:
        pass

    @abstractmethod
    def find_overdue_candidates(self, now: datetime, project_id: Optional[int] = None) -> List[TaskEntity]:
        """Zadania z terminem < now, które nie są jeszcze zamknięte."""
        pass

    @abstractmethod
    def search(self, user_id: int, params: Mapping[str, str], scope: str = 'related') -> List[TaskEntity]:
        """
        Zadania użytkownika wg filtrów (title, search, status, project, due_soon, ordering).
        scope: 'assigned', 'created' albo 'related' (jedno lub drugie).
        """
        pass

    @abstractmethod
    def count_assigned(self, project_id: int, user_id: int, start: datetime, end: datetime,
                       status: Optional[Status] = None) -> int:
        """Zadania przypisane użytkownikowi z terminem w [start, end], opcjonalnie w danym statusie."""
        pass

    @abstractmethod
    def count_created(self, project_id: int, user_id: int, start: datetime, end: datetime) -> int:
        """Zadania utworzone przez użytkownika z terminem w [start, end]."""
        pass


class IApprovalLogRepository(ABC):
    @abstractmethod
    def get_by_id(self, log_id: int) -> Optional[ApprovalLogEntity]:
        pass

    @abstractmethod
    def save(self, entry: ApprovalLogEntity) -> ApprovalLogEntity:
        """Tylko dopisywanie. Wpis z ID to błąd."""
        pass

    @abstractmethod
    def find_by_task(self, task_id: int) -> List[ApprovalLogEntity]:
        """Historia od najstarszego wpisu."""
        pass

    @abstractmethod
    def latest_for_task(self, task_id: int) -> Optional[ApprovalLogEntity]:
        pass

    @abstractmethod
    def count_actions(self, user_id: int, project_id: int, start: datetime, end: datetime,
                      action: Optional[ApprovalAction] = None) -> int:
        pass
