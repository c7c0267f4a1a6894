# apps/projects/application/use_cases.py
import logging
import string
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, ContextManager, List, Optional

from django.conf import settings
from django.utils import timezone
from django.utils.crypto import get_random_string

from apps.core.dates import Instant, parse_instant
from apps.core.domain.entities import Status
from apps.core.exceptions import NotFound, StateError, ValidationError
from apps.notifications.dispatch import EventDispatcher
from apps.notifications.domain.events import (
    ActivityEvent, ActivityType, DomainEvent, NotificationType, ProjectAction, ProjectLogEvent,
    project_notification,
)
from apps.projects.domain.entities import InviteCodeEntity, MemberEntity, ProjectEntity, ProjectLogEntry, Role
from apps.projects.domain.permissions import Operation, PermissionGate
from apps.projects.ports.repositories import (
    IInviteCodeRepository, IMembershipRepository, IProjectLogReader, IProjectRepository, IUserDirectory,
)
from apps.tasks.domain.entities import TaskEntity
from apps.tasks.domain.services.progress import ProgressAggregator
from apps.tasks.ports.repositories import ITaskRepository

logger = logging.getLogger(__name__)

INVITE_CODE_LENGTH = 8


def generate_invite_code() -> str:
    return get_random_string(INVITE_CODE_LENGTH, allowed_chars=string.ascii_uppercase + string.digits)


@dataclass
class ProjectDeps:
    """Zależności przypadków użycia projektów. Składane ręcznie w apps.core.wiring."""
    projects: IProjectRepository
    memberships: IMembershipRepository
    users: IUserDirectory
    tasks: ITaskRepository
    logs: IProjectLogReader
    dispatcher: EventDispatcher
    invites: IInviteCodeRepository
    atomic: Callable[[], ContextManager] = nullcontext
    clock: Callable[[], datetime] = timezone.now
    make_invite_code: Callable[[], str] = generate_invite_code

    @property
    def gate(self) -> PermissionGate:
        return PermissionGate(self.memberships)

    @property
    def aggregator(self) -> ProgressAggregator:
        return ProgressAggregator(self.tasks, self.projects)


@dataclass
class ProjectDetails:
    project: ProjectEntity
    members: List[MemberEntity]
    tasks: List[TaskEntity]


class ProjectUseCase:
    def __init__(self, deps: ProjectDeps):
        self.deps = deps

    def _get_project(self, project_id: int) -> ProjectEntity:
        project = self.deps.projects.get_by_id(project_id)
        if not project:
            raise NotFound(f"Project not found with id: {project_id}")
        return project

    def _get_member(self, project_id: int, user_id: int) -> MemberEntity:
        member = self.deps.memberships.get_member(project_id, user_id)
        if not member:
            raise NotFound(f"Project member not found with id: {user_id}")
        return member

    def _log(self, project: ProjectEntity, action: ProjectAction, description: str, actor_id: int) -> ProjectLogEvent:
        return ProjectLogEvent(project.id, action, description, actor_id,
                               progress=project.progress, status=project.status)

    def _notify_members(self, project: ProjectEntity, message: str,
                        event_type: NotificationType) -> List[DomainEvent]:
        return [
            project_notification(message, event_type, member.user_id, project.id)
            for member in self.deps.memberships.find_by_project(project.id)
        ]

    def _publish(self, events: List[DomainEvent]) -> None:
        self.deps.dispatcher.publish(events)


def _check_dates(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and end < start:
        raise ValidationError("End date cannot be before start date")


# --- Projekt ---

@dataclass
class CreateProjectInput:
    actor_id: int
    name: str
    description: str = ""
    start_date: Instant = None
    end_date: Instant = None


class CreateProjectUseCase(ProjectUseCase):
    def execute(self, input_dto: CreateProjectInput) -> ProjectEntity:
        deps = self.deps

        if not input_dto.name or not input_dto.name.strip():
            raise ValidationError("Project name cannot be empty")
        start = parse_instant(input_dto.start_date)
        end = parse_instant(input_dto.end_date)
        _check_dates(start, end)

        with deps.atomic():
            project = deps.projects.save(ProjectEntity(
                id=None,
                name=input_dto.name.strip(),
                description=input_dto.description or "",
                status=Status.NOT_STARTED,
                progress=0,
                start_date=start,
                end_date=end,
            ))
            # Twórca zostaje liderem
            deps.memberships.save(MemberEntity(None, project.id, input_dto.actor_id, Role.LEADER))

        self._publish([
            ActivityEvent(input_dto.actor_id, f"Created project: {project.name}",
                          'Project', project.id, ActivityType.CREATED_PROJECT),
            self._log(project, ProjectAction.CREATED, f"Project created by user: {input_dto.actor_id}",
                      input_dto.actor_id),
        ])
        logger.info("Project %s created by user %s", project.id, input_dto.actor_id)
        return project


@dataclass
class GetProjectInput:
    actor_id: int
    project_id: int


class GetProjectUseCase(ProjectUseCase):
    """
    Odczyt projektu: przelicza i zapisuje postęp, uruchamia projekt,
    którego data startu minęła, i zapisuje wpis READ w dzienniku.
    """

    def execute(self, input_dto: GetProjectInput) -> ProjectDetails:
        deps = self.deps
        events: List[DomainEvent] = []

        with deps.atomic():
            deps.gate.authorize(Operation.VIEW, input_dto.actor_id, input_dto.project_id)
            self._get_project(input_dto.project_id)

            deps.aggregator.refresh_project_progress(input_dto.project_id)
            project = self._get_project(input_dto.project_id)

            if project.status == Status.NOT_STARTED and project.has_started(deps.clock()):
                project.status = Status.IN_PROGRESS
                project = deps.projects.save(project)
                events.append(self._log(project, ProjectAction.STATUS_CHANGED,
                                        f"Project status changed to IN_PROGRESS by user: {input_dto.actor_id}",
                                        input_dto.actor_id))
                logger.info("Project %s started on read", project.id)

            events.append(self._log(project, ProjectAction.READ,
                                    f"Project viewed by user: {input_dto.actor_id}", input_dto.actor_id))

            details = ProjectDetails(
                project=project,
                members=deps.memberships.find_by_project(project.id),
                tasks=deps.tasks.find_by_project(project.id),
            )

        self._publish(events)
        return details


@dataclass
class UpdateProjectInput:
    actor_id: int
    project_id: int
    name: Optional[str] = None
    description: Optional[str] = None
    start_date: Instant = None
    end_date: Instant = None


class UpdateProjectUseCase(ProjectUseCase):
    def execute(self, input_dto: UpdateProjectInput) -> ProjectEntity:
        deps = self.deps

        with deps.atomic():
            project = self._get_project(input_dto.project_id)
            deps.gate.authorize(Operation.UPDATE_PROJECT, input_dto.actor_id, project.id)

            if input_dto.name is not None:
                if not input_dto.name.strip():
                    raise ValidationError("Project name cannot be empty")
                project.name = input_dto.name.strip()
            if input_dto.description is not None:
                project.description = input_dto.description
            # Postęp jest wyliczany, nie przyjmujemy go z zewnątrz
            if input_dto.start_date is not None:
                project.start_date = parse_instant(input_dto.start_date)
            if input_dto.end_date is not None:
                project.end_date = parse_instant(input_dto.end_date)
            _check_dates(project.start_date, project.end_date)

            project = deps.projects.save(project)

            events: List[DomainEvent] = [
                ActivityEvent(input_dto.actor_id, f"Updated project: {project.name}",
                              'Project', project.id, ActivityType.UPDATED_PROJECT),
            ]
            events.extend(self._notify_members(project, f"Project Updated {project.name}",
                                               NotificationType.PROJECT_UPDATED))
            events.append(self._log(project, ProjectAction.UPDATED,
                                    f"Project updated by user: {input_dto.actor_id}", input_dto.actor_id))

        self._publish(events)
        return project


@dataclass
class UpdateProjectStatusInput:
    actor_id: int
    project_id: int
    status: str


class UpdateProjectStatusUseCase(ProjectUseCase):
    def execute(self, input_dto: UpdateProjectStatusInput) -> ProjectEntity:
        deps = self.deps

        with deps.atomic():
            project = self._get_project(input_dto.project_id)
            deps.gate.authorize(Operation.UPDATE_PROJECT, input_dto.actor_id, project.id)
            status = Status.parse(input_dto.status)

            project.status = status
            project = deps.projects.save(project)

            events: List[DomainEvent] = [
                self._log(project, ProjectAction.STATUS_CHANGED,
                          f"Project status changed to {status.name} by user: {input_dto.actor_id}",
                          input_dto.actor_id),
                ActivityEvent(input_dto.actor_id,
                              f"Updated project status to {status.name} for project: {project.name}",
                              'Project', project.id, ActivityType.UPDATED_PROJECT),
            ]
            events.extend(self._notify_members(project, f"Project Status Updated: {project.name}",
                                               NotificationType.PROJECT_UPDATED))

        self._publish(events)
        return project


@dataclass
class DeleteProjectInput:
    actor_id: int
    project_id: int


class DeleteProjectUseCase(ProjectUseCase):
    def execute(self, input_dto: DeleteProjectInput) -> None:
        deps = self.deps

        with deps.atomic():
            deps.gate.authorize(Operation.DELETE_PROJECT, input_dto.actor_id, input_dto.project_id)
            project = self._get_project(input_dto.project_id)

            events: List[DomainEvent] = [
                ActivityEvent(input_dto.actor_id, f"Deleted project with id: {project.id}",
                              'Project', project.id, ActivityType.DELETED_PROJECT),
            ]
            events.extend(self._notify_members(project, f"Project Deleted: {project.name}",
                                               NotificationType.PROJECT_DELETED))

            # Członkostwa i zadania znikają kaskadowo
            deps.projects.delete(project.id)

        logger.info("Project %s deleted by user %s", project.id, input_dto.actor_id)
        self._publish(events)


@dataclass
class ProjectLogsInput:
    actor_id: int
    project_id: int
    start: Instant = None
    end: Instant = None


class GetProjectLogsUseCase(ProjectUseCase):
    def execute(self, input_dto: ProjectLogsInput) -> List[ProjectLogEntry]:
        deps = self.deps
        project = self._get_project(input_dto.project_id)
        deps.gate.authorize(Operation.VIEW, input_dto.actor_id, project.id)

        start = parse_instant(input_dto.start) or project.start_date
        end = parse_instant(input_dto.end)
        if end is None:
            now = deps.clock()
            end = min(now, project.end_date) if project.end_date else now
        if start is None:
            raise ValidationError("Start date is required for a project without a start date")
        _check_dates(start, end)

        return deps.logs.find_between(project.id, start, end)


# --- Członkowie ---

@dataclass
class MemberInput:
    actor_id: int
    project_id: int
    user_id: int


class AddMemberUseCase(ProjectUseCase):
    def execute(self, input_dto: MemberInput) -> List[MemberEntity]:
        deps = self.deps

        with deps.atomic():
            deps.gate.authorize(Operation.ADD_MEMBER, input_dto.actor_id, input_dto.project_id)

            if deps.memberships.get_member(input_dto.project_id, input_dto.user_id):
                raise ValidationError("User is already a member of this project")
            if not deps.users.exists(input_dto.user_id):
                raise NotFound(f"User not found with id: {input_dto.user_id}")
            project = self._get_project(input_dto.project_id)

            deps.memberships.save(MemberEntity(None, project.id, input_dto.user_id, Role.MEMBER))
            members = deps.memberships.find_by_project(project.id)

        self._publish([
            project_notification(f"You have been added to project: {project.name}",
                                 NotificationType.PROJECT_UPDATED, input_dto.user_id, project.id),
            ActivityEvent(input_dto.actor_id, f"Added member {input_dto.user_id} to project: {project.name}",
                          'Project', project.id, ActivityType.UPDATED_PROJECT_MEMBER),
        ])
        return members


class ChangeLeaderUseCase(ProjectUseCase):
    """Przekazanie przywództwa: stary lider -> MEMBER, nowy -> LEADER, w jednej transakcji."""

    def execute(self, input_dto: MemberInput) -> List[MemberEntity]:
        deps = self.deps

        with deps.atomic():
            deps.gate.authorize(Operation.CHANGE_LEADER, input_dto.actor_id, input_dto.project_id)
            project = self._get_project(input_dto.project_id)

            new_leader = deps.memberships.get_member(project.id, input_dto.user_id)
            if not new_leader:
                raise NotFound(f"New leader not found with id: {input_dto.user_id}")

            old_leader = deps.memberships.find_leader(project.id)
            if old_leader and old_leader.user_id != new_leader.user_id:
                old_leader.role = Role.MEMBER
                deps.memberships.save(old_leader)

            new_leader.role = Role.LEADER
            deps.memberships.save(new_leader)
            members = deps.memberships.find_by_project(project.id)

        self._publish([
            project_notification(f"You are now the leader of project: {project.name}",
                                 NotificationType.PROJECT_UPDATED, new_leader.user_id, project.id),
            self._log(project, ProjectAction.UPDATED,
                      f"Leadership transferred to user {new_leader.user_id} by user: {input_dto.actor_id}",
                      input_dto.actor_id),
            ActivityEvent(input_dto.actor_id,
                          f"Changed leader of project {project.name} to user {new_leader.user_id}",
                          'Project', project.id, ActivityType.UPDATED_PROJECT_MEMBER),
        ])
        logger.info("Project %s leader changed to user %s", project.id, new_leader.user_id)
        return members


class PromoteViceLeaderUseCase(ProjectUseCase):
    def execute(self, input_dto: MemberInput) -> List[MemberEntity]:
        deps = self.deps

        with deps.atomic():
            deps.gate.authorize(Operation.PROMOTE_VICE_LEADER, input_dto.actor_id, input_dto.project_id)
            project = self._get_project(input_dto.project_id)
            member = self._get_member(project.id, input_dto.user_id)
            if member.role == Role.LEADER:
                raise ValidationError("The project leader cannot be promoted to Vice Leader")

            member.role = Role.VICE_LEADER
            deps.memberships.save(member)
            members = deps.memberships.find_by_project(project.id)

        self._publish([
            project_notification(f"You have been promoted to Vice Leader in project: {project.name}",
                                 NotificationType.PROJECT_UPDATED, member.user_id, project.id),
            self._log(project, ProjectAction.UPDATED,
                      f"Member {member.user_id} promoted to Vice Leader by user: {input_dto.actor_id}",
                      input_dto.actor_id),
            ActivityEvent(input_dto.actor_id,
                          f"Promoted member {member.user_id} to Vice Leader in project: {project.name}",
                          'Project', project.id, ActivityType.UPDATED_PROJECT_MEMBER),
        ])
        return members


class DemoteViceLeaderUseCase(ProjectUseCase):
    def execute(self, input_dto: MemberInput) -> List[MemberEntity]:
        deps = self.deps

        with deps.atomic():
            deps.gate.authorize(Operation.DEMOTE_VICE_LEADER, input_dto.actor_id, input_dto.project_id)
            project = self._get_project(input_dto.project_id)
            member = self._get_member(project.id, input_dto.user_id)
            if member.role != Role.VICE_LEADER:
                raise ValidationError("Only Vice Leaders can be demoted to Members")

            member.role = Role.MEMBER
            deps.memberships.save(member)
            members = deps.memberships.find_by_project(project.id)

        self._publish([
            project_notification(f"You have been demoted to Member in project: {project.name}",
                                 NotificationType.PROJECT_UPDATED, member.user_id, project.id),
            self._log(project, ProjectAction.UPDATED,
                      f"Member {member.user_id} demoted to Member by user: {input_dto.actor_id}",
                      input_dto.actor_id),
            ActivityEvent(input_dto.actor_id,
                          f"Demoted Vice Leader {member.user_id} to Member in project: {project.name}",
                          'Project', project.id, ActivityType.UPDATED_PROJECT_MEMBER),
        ])
        return members


class RemoveMemberUseCase(ProjectUseCase):
    def execute(self, input_dto: MemberInput) -> List[MemberEntity]:
        deps = self.deps

        with deps.atomic():
            project = self._get_project(input_dto.project_id)
            member = self._get_member(project.id, input_dto.user_id)
            deps.gate.authorize(Operation.REMOVE_MEMBER, input_dto.actor_id, project.id, target_role=member.role)
            if member.role == Role.LEADER:
                raise ValidationError("The project leader cannot be removed; transfer leadership first")

            # Zdejmujemy usuwanego ze wszystkich zadań projektu
            for task in deps.tasks.find_assigned(member.user_id, project_id=project.id):
                task.assigned_user_ids.discard(member.user_id)
                deps.tasks.save(task)
            deps.memberships.delete(member.id)
            members = deps.memberships.find_by_project(project.id)

        self._publish([
            project_notification(f"You have been removed from project: {project.name}",
                                 NotificationType.PROJECT_UPDATED, member.user_id, project.id),
            self._log(project, ProjectAction.UPDATED,
                      f"Member {member.user_id} removed from project by user: {input_dto.actor_id}",
                      input_dto.actor_id),
            ActivityEvent(input_dto.actor_id,
                          f"Removed member {member.user_id} from project: {project.name}",
                          'Project', project.id, ActivityType.UPDATED_PROJECT_MEMBER),
        ])
        return members


# --- Zaproszenia ---

@dataclass
class InviteCodeInput:
    actor_id: int
    project_id: int


class CreateInviteCodeUseCase(ProjectUseCase):
    """
    Kod zaproszenia do projektu. Dopóki ostatni kod jest ważny, zwracamy ten sam;
    po wygaśnięciu powstaje nowy (8 znaków, ważny TEAMWORK_INVITE_TTL_DAYS dni).
    """

    MAX_ATTEMPTS = 5

    def execute(self, input_dto: InviteCodeInput) -> InviteCodeEntity:
        deps = self.deps

        with deps.atomic():
            deps.gate.authorize(Operation.INVITE_MEMBER, input_dto.actor_id, input_dto.project_id)
            project = self._get_project(input_dto.project_id)
            now = deps.clock()

            latest = deps.invites.latest_for_project(project.id)
            if latest and not latest.is_expired(now):
                return latest

            invite = deps.invites.save(InviteCodeEntity(
                id=None,
                project_id=project.id,
                code=self._unused_code(),
                expires_at=now + timedelta(days=settings.TEAMWORK_INVITE_TTL_DAYS),
            ))

        logger.info("Invite code created for project %s by user %s", project.id, input_dto.actor_id)
        return invite

    def _unused_code(self) -> str:
        for _ in range(self.MAX_ATTEMPTS):
            code = self.deps.make_invite_code()
            if not self.deps.invites.get_by_code(code):
                return code
        raise StateError("Could not generate a unique invite code")


@dataclass
class JoinProjectInput:
    actor_id: int
    code: str


class JoinProjectByCodeUseCase(ProjectUseCase):
    """Dołączenie z kodem zaproszenia: zawsze jako MEMBER."""

    def execute(self, input_dto: JoinProjectInput) -> ProjectEntity:
        deps = self.deps
        code = (input_dto.code or '').strip().upper()

        with deps.atomic():
            invite = deps.invites.get_by_code(code) if code else None
            if not invite:
                raise NotFound("Invalid invite code")
            if invite.is_expired(deps.clock()):
                raise ValidationError("Invite code has expired")

            project = self._get_project(invite.project_id)
            if deps.memberships.get_member(project.id, input_dto.actor_id):
                raise ValidationError("You are already a member of this project")

            deps.memberships.save(MemberEntity(None, project.id, input_dto.actor_id, Role.MEMBER))

        logger.info("User %s joined project %s with an invite code", input_dto.actor_id, project.id)
        self._publish([
            project_notification(f"You have joined project: {project.name}",
                                 NotificationType.PROJECT_UPDATED, input_dto.actor_id, project.id),
            self._log(project, ProjectAction.UPDATED,
                      f"Member {input_dto.actor_id} joined project with invite code",
                      input_dto.actor_id),
            ActivityEvent(input_dto.actor_id, f"Joined project: {project.name}",
                          'Project', project.id, ActivityType.UPDATED_PROJECT_MEMBER),
        ])
        return project


@dataclass
class RecalculateProgressInput:
    project_id: int


class RecalculateProgressUseCase(ProjectUseCase):
    """Operator: przeliczenie całego drzewa i projektu (bez sprawdzania ról)."""

    def execute(self, input_dto: RecalculateProgressInput) -> int:
        deps = self.deps
        with deps.atomic():
            self._get_project(input_dto.project_id)
            progress = deps.aggregator.refresh_project_progress(input_dto.project_id)
        logger.info("Project %s progress recalculated: %s", input_dto.project_id, progress)
        return progress
