# apps/tasks/domain/services/progress.py
import logging
from fractions import Fraction
from numbers import Real
from typing import List, Optional

from apps.core.exceptions import NotFound, StateError
from apps.projects.domain.entities import ProjectEntity
from apps.projects.ports.repositories import IProjectRepository
from apps.tasks.domain.entities import TaskEntity
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)


def task_weight(task: TaskEntity) -> Fraction:
    """Waga podzadania: priorytet / poziom (głębsze zadania ważą mniej)."""
    return Fraction(task.priority, task.level)


def project_weight(task: TaskEntity) -> Fraction:
    """Waga zadania głównego w projekcie: sam priorytet, bez dzielenia przez poziom."""
    return Fraction(task.priority)


def display_progress(raw: Real) -> int:
    """
    Reguła wyświetlania: obcinamy do int i dodajemy 1,
    chyba że wynik to już 100. "Prawie gotowe" nie pokazuje się jako 0.
    """
    value = int(raw)
    return value + 1 if value < 100 else value


class ProgressAggregator:
    """
    Postęp zadania = średnia ważona postępu dzieci (rekurencyjnie).
    Średnie liczone dokładnie (Fraction); obcinany jest dopiero wynik.

    Dwa warianty:
    - peek_*: czyste obliczenie, nic nie zapisuje,
    - refresh_*: zapisuje wynik na każdym odwiedzonym zadaniu-rodzicu
      (i na projekcie). Od zapisanego postępu zależą dalsze zmiany statusu.
    """

    def __init__(self, tasks: ITaskRepository, projects: Optional[IProjectRepository] = None):
        self.tasks = tasks
        self.projects = projects

    # --- zadania ---

    def peek_task_progress(self, task_id: int) -> int:
        return self._compute(self._get_task(task_id), persist=False)

    def refresh_task_progress(self, task_id: int) -> int:
        return self._compute(self._get_task(task_id), persist=True)

    # Kontrakt computeProgress(taskId): odczyt z zapisem
    compute_progress = refresh_task_progress

    def refresh_chain(self, task_id: int) -> None:
        """Przelicza gałąź od korzenia zadania w górę aż do projektu."""
        task = self._get_task(task_id)
        root = task
        while root.parent_id is not None:
            root = self._get_task(root.parent_id)

        self._compute(root, persist=True)
        if self.projects is not None:
            self.refresh_project_progress(task.project_id)

    def _compute(self, task: TaskEntity, persist: bool) -> int:
        children = self.tasks.find_children(task.id)
        if not children:
            # Liść: zapisany postęp jest autorytatywny
            return task.progress
        raw = self._weighted(task, children, persist)
        return display_progress(raw)

    def _raw(self, task: TaskEntity, persist: bool) -> Fraction:
        children = self.tasks.find_children(task.id)
        if not children:
            return Fraction(task.progress)
        return self._weighted(task, children, persist)

    def _weighted(self, task: TaskEntity, children: List[TaskEntity], persist: bool) -> Fraction:
        total_weight = Fraction(0)
        total_progress = Fraction(0)

        for child in children:
            weight = task_weight(child)
            total_weight += weight
            total_progress += weight * self._raw(child, persist) / 100

        if total_weight == 0:
            raise StateError(f"Cannot aggregate progress of task {task.id}: total child weight is zero")

        raw = total_progress / total_weight * 100

        if persist:
            shown = display_progress(raw)
            if task.progress != shown:
                task.progress = shown
                self.tasks.save(task)
                logger.debug("Task %s progress persisted: %s", task.id, shown)

        return raw

    # --- projekt ---

    def peek_project_progress(self, project_id: int) -> int:
        return self._compute_project(self._get_project(project_id), persist=False)

    def refresh_project_progress(self, project_id: int) -> int:
        return self._compute_project(self._get_project(project_id), persist=True)

    def _compute_project(self, project: ProjectEntity, persist: bool) -> int:
        roots = self.tasks.find_root_tasks(project.id, level=1)

        if not roots:
            # Pusty projekt: nic do zrobienia, nic zrobione
            shown = 0
        else:
            total_weight = Fraction(0)
            total_progress = Fraction(0)
            for task in roots:
                weight = project_weight(task)
                total_weight += weight
                total_progress += weight * self._raw(task, persist) / 100

            if total_weight == 0:
                raise StateError(f"Cannot aggregate progress of project {project.id}: total task weight is zero")

            shown = display_progress(total_progress / total_weight * 100)

        if persist and project.progress != shown:
            project.progress = shown
            self.projects.save(project)
            logger.info("Project %s progress persisted: %s", project.id, shown)

        return shown

    def _get_task(self, task_id: int) -> TaskEntity:
        task = self.tasks.get_by_id(task_id)
        if not task:
            raise NotFound("Task not found")
        return task

    def _get_project(self, project_id: int) -> ProjectEntity:
        if self.projects is None:
            raise StateError("Project repository is not configured")
        project = self.projects.get_by_id(project_id)
        if not project:
            raise NotFound(f"Project not found with id: {project_id}")
        return project
