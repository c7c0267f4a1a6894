# apps/projects/ports/repositories.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from apps.projects.domain.entities import InviteCodeEntity, MemberEntity, ProjectEntity, ProjectLogEntry, Role


class IProjectRepository(ABC):
    @abstractmethod
    def get_by_id(self, project_id: int) -> Optional[ProjectEntity]:
        pass

    @abstractmethod
    def save(self, project: ProjectEntity) -> ProjectEntity:
        """Tworzy lub aktualizuje projekt i zwraca encję z ID."""
        pass

    @abstractmethod
    def delete(self, project_id: int) -> None:
        """Usuwa projekt razem z zadaniami i członkostwem (kaskada w bazie)."""
        pass


class IMembershipRepository(ABC):
    @abstractmethod
    def find_role(self, project_id: int, user_id: int) -> Optional[Role]:
        """Rola użytkownika w projekcie albo None, jeśli nie jest członkiem."""
        pass

    @abstractmethod
    def get_member(self, project_id: int, user_id: int) -> Optional[MemberEntity]:
        pass

    @abstractmethod
    def find_by_project(self, project_id: int) -> List[MemberEntity]:
        """Członkowie w kolejności dołączenia."""
        pass

    @abstractmethod
    def find_leader(self, project_id: int) -> Optional[MemberEntity]:
        pass

    @abstractmethod
    def save(self, member: MemberEntity) -> MemberEntity:
        pass

    @abstractmethod
    def delete(self, member_id: int) -> None:
        pass


class IUserDirectory(ABC):
    @abstractmethod
    def exists(self, user_id: int) -> bool:
        pass


class IProjectLogReader(ABC):
    @abstractmethod
    def find_between(self, project_id: int, start: datetime, end: datetime) -> List[ProjectLogEntry]:
        pass


class IInviteCodeRepository(ABC):
    @abstractmethod
    def latest_for_project(self, project_id: int) -> Optional[InviteCodeEntity]:
        """Ostatnio utworzony kod projektu (także przeterminowany)."""
        pass

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[InviteCodeEntity]:
        pass

    @abstractmethod
    def save(self, invite: InviteCodeEntity) -> InviteCodeEntity:
        pass
