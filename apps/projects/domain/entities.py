# apps/projects/domain/entities.py
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from apps.core.domain.entities import Status


class Role(str, Enum):
    LEADER = 'leader'
    VICE_LEADER = 'vice_leader'
    MEMBER = 'member'

    @property
    def is_manager(self) -> bool:
        """LEADER i VICE_LEADER mają prawa zarządcze."""
        return self in (Role.LEADER, Role.VICE_LEADER)


@dataclass
class ProjectEntity:
    id: Optional[int]
    name: str
    description: str = ""
    status: Status = Status.NOT_STARTED
    progress: int = 0  # wyliczany, nigdy nie podawany z zewnątrz

    # Terminy
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    def has_started(self, now: datetime) -> bool:
        return self.start_date is not None and now >= self.start_date


@dataclass
class MemberEntity:
    id: Optional[int]
    project_id: int
    user_id: int
    role: Role = Role.MEMBER


@dataclass
class ProjectLogEntry:
    id: int
    project_id: int
    action: str
    description: str
    performed_by_id: Optional[int]
    timestamp: datetime
    progress: Optional[int] = None
    status: Optional[Status] = None


@dataclass
class InviteCodeEntity:
    id: Optional[int]
    project_id: int
    code: str
    expires_at: datetime
    created_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
