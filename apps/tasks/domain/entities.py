# apps/tasks/domain/entities.py
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Set

from apps.core.domain.entities import Status, TERMINAL_STATUSES


@dataclass
class TaskEntity:
    id: Optional[int]  # ID może być None przed zapisem
    title: str
    project_id: int
    created_by_id: int
    description: str = ""

    # Priorytet = waga przy agregacji postępu (>= 1)
    priority: int = 1
    level: int = 1  # głębokość w drzewie, korzeń = 1
    progress: int = 0  # 0-100
    status: Status = Status.IN_PROGRESS
    deadline: Optional[datetime] = None

    # Relacje (tylko ID, żeby nie wiązać obiektów domenowych z ORM)
    parent_id: Optional[int] = None
    assigned_user_ids: Set[int] = field(default_factory=set)

    def is_root(self) -> bool:
        return self.parent_id is None

    def is_assigned(self, user_id: int) -> bool:
        return user_id in self.assigned_user_ids

    def is_past_deadline(self, now: datetime) -> bool:
        """Czy termin minął, a zadanie nadal jest otwarte."""
        if self.deadline is None:
            return False
        return self.deadline < now and self.status not in TERMINAL_STATUSES


class ApprovalAction(str, Enum):
    SUBMIT = 'submit'
    APPROVE = 'approve'
    REJECT = 'reject'


class ApprovalState(str, Enum):
    """Stan akceptacji wyliczany z ostatniego wpisu logu (nie jest zapisywany)."""
    NONE = 'none'
    SUBMITTED = 'submitted'
    APPROVED = 'approved'
    REJECTED = 'rejected'

    @classmethod
    def from_action(cls, action: Optional[ApprovalAction]) -> 'ApprovalState':
        if action is None:
            return cls.NONE
        return {
            ApprovalAction.SUBMIT: cls.SUBMITTED,
            ApprovalAction.APPROVE: cls.APPROVED,
            ApprovalAction.REJECT: cls.REJECTED,
        }[action]


@dataclass(frozen=True)
class ApprovalLogEntity:
    """Niezmienny wpis audytu. Nigdy nie jest aktualizowany ani usuwany."""
    id: Optional[int]
    task_id: int
    action: ApprovalAction
    performed_by_id: int
    note: str = ""
    created_at: Optional[datetime] = None
