# apps/reports/domain/services.py
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from apps.core.domain.entities import Status
from apps.core.exceptions import ValidationError
from apps.projects.domain.entities import ProjectEntity
from apps.projects.ports.repositories import IMembershipRepository
from apps.tasks.domain.entities import ApprovalAction
from apps.tasks.ports.repositories import IApprovalLogRepository, ITaskRepository

ON_TIME_WEIGHT = 60
APPROVAL_WEIGHT = 30
SELF_INIT_WEIGHT = 10


def round_half_up(value: float, digits: int = 1) -> float:
    scale = 10 ** digits
    return math.floor(value * scale + 0.5) / scale


@dataclass
class MemberEvaluation:
    user_id: int
    assigned: int = 0
    completed: int = 0
    overdue: int = 0
    created: int = 0
    submissions: int = 0
    approvals: int = 0
    rejections: int = 0
    score: float = 0.0
    rank: int = 0

    @property
    def on_time_rate(self) -> float:
        return self.completed / self.assigned if self.assigned else 0.0

    @property
    def approval_rate(self) -> float:
        """Zatwierdzone / zgłoszone (0.0 bez zgłoszeń)."""
        return self.approvals / self.submissions if self.submissions else 0.0

    @property
    def self_init_rate(self) -> float:
        """Własne zadania względem przypisanych, ucięte do 1.0."""
        return min(self.created / self.assigned, 1.0) if self.assigned else 0.0


@dataclass
class MemberEvaluationReport:
    project_id: int
    project_name: str
    project_status: Status
    start: datetime
    end: datetime
    rows: List[MemberEvaluation] = field(default_factory=list)

    def for_user(self, user_id: int) -> Optional[MemberEvaluation]:
        return next((row for row in self.rows if row.user_id == user_id), None)


class MemberEvaluationService:
    """
    Ocena członków projektu w okresie [start, end].

    Liczniki zadań biorą zadania z terminem w okresie. Wpisy APPROVE/REJECT są
    przypisane autorowi zgłoszenia, więc approvals/rejections to wyniki JEGO zgłoszeń.

    score = 60 * on_time + 30 * approval_rate + 10 * self_init (0..100, jedno miejsce po przecinku).
    Ranking malejąco po score; równe wyniki dzielą miejsce (1, 1, 3).
    """

    def __init__(self, tasks: ITaskRepository, logs: IApprovalLogRepository, memberships: IMembershipRepository):
        self.tasks = tasks
        self.logs = logs
        self.memberships = memberships

    def evaluate(self, project_id: int, user_id: int, start: datetime, end: datetime) -> MemberEvaluation:
        if end < start:
            raise ValidationError("End date cannot be before start date")

        def actions(action: ApprovalAction) -> int:
            return self.logs.count_actions(user_id, project_id, start, end, action=action)

        row = MemberEvaluation(
            user_id=user_id,
            assigned=self.tasks.count_assigned(project_id, user_id, start, end),
            completed=self.tasks.count_assigned(project_id, user_id, start, end, status=Status.COMPLETED),
            overdue=self.tasks.count_assigned(project_id, user_id, start, end, status=Status.OVERDUE),
            created=self.tasks.count_created(project_id, user_id, start, end),
            submissions=actions(ApprovalAction.SUBMIT),
            approvals=actions(ApprovalAction.APPROVE),
            rejections=actions(ApprovalAction.REJECT),
        )
        row.score = round_half_up(
            ON_TIME_WEIGHT * row.on_time_rate
            + APPROVAL_WEIGHT * row.approval_rate
            + SELF_INIT_WEIGHT * row.self_init_rate
        )
        return row

    def build_report(self, project: ProjectEntity, start: datetime, end: datetime) -> MemberEvaluationReport:
        if end < start:
            raise ValidationError("End date cannot be before start date")

        rows = [
            self.evaluate(project.id, member.user_id, start, end)
            for member in self.memberships.find_by_project(project.id)
        ]
        rank_rows(rows)
        return MemberEvaluationReport(
            project_id=project.id,
            project_name=project.name,
            project_status=project.status,
            start=start,
            end=end,
            rows=rows,
        )


def rank_rows(rows: List[MemberEvaluation]) -> None:
    """Sortuje w miejscu i nadaje miejsca; remis = to samo miejsce, następne przeskakuje."""
    rows.sort(key=lambda row: (-row.score, row.user_id))
    last_score = None
    for position, row in enumerate(rows, start=1):
        if row.score != last_score:
            rank = position
            last_score = row.score
        row.rank = rank
