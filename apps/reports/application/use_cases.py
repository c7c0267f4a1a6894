# apps/reports/application/use_cases.py
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from django.utils import timezone

from apps.core.dates import Instant, parse_instant
from apps.core.exceptions import NotFound
from apps.projects.domain.permissions import Operation, PermissionGate
from apps.projects.ports.repositories import IMembershipRepository, IProjectRepository
from apps.reports.domain.services import MemberEvaluationReport, MemberEvaluationService
from apps.tasks.ports.repositories import IApprovalLogRepository, ITaskRepository

logger = logging.getLogger(__name__)


@dataclass
class MemberEvaluationInput:
    actor_id: int
    project_id: int
    start: Instant = None
    end: Instant = None


class MemberEvaluationReportUseCase:
    """Ocena członków projektu. Domyślny zakres: od startu projektu do teraz."""

    def __init__(self, projects: IProjectRepository, memberships: IMembershipRepository,
                 tasks: ITaskRepository, logs: IApprovalLogRepository,
                 clock: Callable[[], datetime] = timezone.now):
        self.projects = projects
        self.memberships = memberships
        self.service = MemberEvaluationService(tasks, logs, memberships)
        self.clock = clock

    def execute(self, input_dto: MemberEvaluationInput) -> MemberEvaluationReport:
        project = self.projects.get_by_id(input_dto.project_id)
        if not project:
            raise NotFound(f"Project not found with id: {input_dto.project_id}")
        PermissionGate(self.memberships).authorize(Operation.VIEW, input_dto.actor_id, project.id)

        end = parse_instant(input_dto.end) or self.clock()
        start = parse_instant(input_dto.start) or project.start_date or end
        report = self.service.build_report(project, start, end)
        logger.debug("Member evaluation for project %s built by user %s (%s rows)",
                     project.id, input_dto.actor_id, len(report.rows))
        return report
