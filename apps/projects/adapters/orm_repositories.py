# apps/projects/adapters/orm_repositories.py
from datetime import datetime
from typing import List, Optional

from django.contrib.auth import get_user_model

from apps.core.domain.entities import Status
from apps.notifications.domain.events import ProjectLogEvent
from apps.notifications.ports.sinks import IProjectLog
from apps.projects.domain.entities import InviteCodeEntity, MemberEntity, ProjectEntity, ProjectLogEntry, Role
from apps.projects.models import InviteCode as InviteModel
from apps.projects.models import Project as ProjectModel
from apps.projects.models import ProjectLog as ProjectLogModel
from apps.projects.models import ProjectMember as MemberModel
from apps.projects.ports.repositories import (
    IInviteCodeRepository, IMembershipRepository, IProjectLogReader, IProjectRepository, IUserDirectory,
)


class DjangoProjectRepository(IProjectRepository):
    def to_entity(self, model: ProjectModel) -> ProjectEntity:
        """Konwertuje Model Django -> Czystą Encję."""
        return ProjectEntity(
            id=model.id,
            name=model.name,
            description=model.description,
            status=Status(model.status),
            progress=model.progress,
            start_date=model.start_date,
            end_date=model.end_date,
        )

    def get_by_id(self, project_id: int) -> Optional[ProjectEntity]:
        try:
            return self.to_entity(ProjectModel.objects.get(id=project_id))
        except ProjectModel.DoesNotExist:
            return None

    def save(self, project: ProjectEntity) -> ProjectEntity:
        data = {
            'name': project.name,
            'description': project.description,
            'status': project.status.value,
            'progress': project.progress,
            'start_date': project.start_date,
            'end_date': project.end_date,
        }

        if project.id:
            ProjectModel.objects.filter(id=project.id).update(**data)
            obj = ProjectModel.objects.get(id=project.id)
        else:
            obj = ProjectModel.objects.create(**data)

        return self.to_entity(obj)

    def delete(self, project_id: int) -> None:
        ProjectModel.objects.filter(id=project_id).delete()


class DjangoMembershipRepository(IMembershipRepository):
    def to_entity(self, model: MemberModel) -> MemberEntity:
        return MemberEntity(
            id=model.id,
            project_id=model.project_id,
            user_id=model.user_id,
            role=Role(model.role),
        )

    def find_role(self, project_id: int, user_id: int) -> Optional[Role]:
        role = MemberModel.objects.filter(project_id=project_id, user_id=user_id) \
            .values_list('role', flat=True).first()
        return Role(role) if role else None

    def get_member(self, project_id: int, user_id: int) -> Optional[MemberEntity]:
        member = MemberModel.objects.filter(project_id=project_id, user_id=user_id).first()
        return self.to_entity(member) if member else None

    def find_by_project(self, project_id: int) -> List[MemberEntity]:
        qs = MemberModel.objects.filter(project_id=project_id).order_by('id')
        return [self.to_entity(m) for m in qs]

    def find_leader(self, project_id: int) -> Optional[MemberEntity]:
        leader = MemberModel.objects.filter(project_id=project_id, role=Role.LEADER.value).first()
        return self.to_entity(leader) if leader else None

    def save(self, member: MemberEntity) -> MemberEntity:
        if member.id:
            MemberModel.objects.filter(id=member.id).update(role=member.role.value)
            obj = MemberModel.objects.get(id=member.id)
        else:
            obj = MemberModel.objects.create(
                project_id=member.project_id,
                user_id=member.user_id,
                role=member.role.value,
            )
        return self.to_entity(obj)

    def delete(self, member_id: int) -> None:
        MemberModel.objects.filter(id=member_id).delete()


class DjangoInviteCodeRepository(IInviteCodeRepository):
    def to_entity(self, model: InviteModel) -> InviteCodeEntity:
        return InviteCodeEntity(
            id=model.id,
            project_id=model.project_id,
            code=model.code,
            expires_at=model.expires_at,
            created_at=model.created_at,
        )

    def latest_for_project(self, project_id: int) -> Optional[InviteCodeEntity]:
        invite = InviteModel.objects.filter(project_id=project_id).order_by('-id').first()
        return self.to_entity(invite) if invite else None

    def get_by_code(self, code: str) -> Optional[InviteCodeEntity]:
        invite = InviteModel.objects.filter(code=code).first()
        return self.to_entity(invite) if invite else None

    def save(self, invite: InviteCodeEntity) -> InviteCodeEntity:
        if invite.id:
            InviteModel.objects.filter(id=invite.id).update(expires_at=invite.expires_at)
            obj = InviteModel.objects.get(id=invite.id)
        else:
            obj = InviteModel.objects.create(
                project_id=invite.project_id,
                code=invite.code,
                expires_at=invite.expires_at,
            )
        return self.to_entity(obj)


class DjangoUserDirectory(IUserDirectory):
    def exists(self, user_id: int) -> bool:
        return get_user_model().objects.filter(id=user_id).exists()


class DjangoProjectLog(IProjectLog, IProjectLogReader):
    def record(self, event: ProjectLogEvent) -> None:
        ProjectLogModel.objects.create(
            project_id=event.project_id,
            action=event.action.value,
            description=event.description,
            progress=event.progress,
            new_status=event.status.value if event.status else '',
            performed_by_id=event.performed_by_id,
        )

    def find_between(self, project_id: int, start: datetime, end: datetime) -> List[ProjectLogEntry]:
        qs = ProjectLogModel.objects.filter(
            project_id=project_id,
            timestamp__gte=start,
            timestamp__lte=end,
        ).order_by('timestamp', 'id')

        return [
            ProjectLogEntry(
                id=log.id,
                project_id=log.project_id,
                action=log.action,
                description=log.description,
                performed_by_id=log.performed_by_id,
                timestamp=log.timestamp,
                progress=log.progress,
                status=Status(log.new_status) if log.new_status else None,
            )
            for log in qs
        ]
