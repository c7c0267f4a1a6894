# apps/projects/domain/permissions.py
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, Optional

from apps.core.exceptions import PermissionDenied
from apps.projects.domain.entities import Role
from apps.projects.ports.repositories import IMembershipRepository

if TYPE_CHECKING:
    from apps.tasks.domain.entities import TaskEntity


class Operation(str, Enum):
    VIEW = 'view'
    CREATE_TASK = 'create_task'
    UPDATE_TASK = 'update_task'
    DELETE_TASK = 'delete_task'
    CHANGE_TASK_STATUS = 'change_task_status'
    UPDATE_TASK_PROGRESS = 'update_task_progress'
    ASSIGN_USER = 'assign_user'
    SUBMIT_APPROVAL = 'submit_approval'
    REVIEW_APPROVAL = 'review_approval'
    UPDATE_PROJECT = 'update_project'
    ADD_MEMBER = 'add_member'
    INVITE_MEMBER = 'invite_member'
    CHANGE_LEADER = 'change_leader'
    DELETE_PROJECT = 'delete_project'
    PROMOTE_VICE_LEADER = 'promote_vice_leader'
    DEMOTE_VICE_LEADER = 'demote_vice_leader'
    REMOVE_MEMBER = 'remove_member'


ANY_ROLE: FrozenSet[Role] = frozenset(Role)
MANAGERS: FrozenSet[Role] = frozenset({Role.LEADER, Role.VICE_LEADER})
LEADER_ONLY: FrozenSet[Role] = frozenset({Role.LEADER})

# Role, które w ogóle mogą próbować operacji.
# Dodatkowe warunki (twórca, przypisanie, rola celu) sprawdza authorize().
ALLOWED_ROLES: Dict[Operation, FrozenSet[Role]] = {
    Operation.VIEW: ANY_ROLE,
    Operation.CREATE_TASK: ANY_ROLE,
    Operation.UPDATE_TASK: ANY_ROLE,
    Operation.DELETE_TASK: MANAGERS,
    Operation.CHANGE_TASK_STATUS: ANY_ROLE,
    Operation.UPDATE_TASK_PROGRESS: ANY_ROLE,
    Operation.ASSIGN_USER: MANAGERS,
    Operation.SUBMIT_APPROVAL: ANY_ROLE,
    Operation.REVIEW_APPROVAL: MANAGERS,
    Operation.UPDATE_PROJECT: MANAGERS,
    Operation.ADD_MEMBER: MANAGERS,
    Operation.INVITE_MEMBER: MANAGERS,
    Operation.CHANGE_LEADER: LEADER_ONLY,
    Operation.DELETE_PROJECT: LEADER_ONLY,
    Operation.PROMOTE_VICE_LEADER: MANAGERS,
    Operation.DEMOTE_VICE_LEADER: LEADER_ONLY,
    Operation.REMOVE_MEMBER: MANAGERS,
}

DENIAL_REASONS: Dict[Operation, str] = {
    Operation.VIEW: "User does not have permission to view this project",
    Operation.CREATE_TASK: "User does not have permission to create tasks in this project",
    Operation.UPDATE_TASK: "Only the creator and managers can update the task",
    Operation.DELETE_TASK: "User does not have permission to delete this task",
    Operation.CHANGE_TASK_STATUS: "User does not have permission to update the status of this task",
    Operation.UPDATE_TASK_PROGRESS: "You don't have permission to update progress for this task",
    Operation.ASSIGN_USER: "You do not have permission to assign users to this task",
    Operation.SUBMIT_APPROVAL: "Only project members can submit task approvals",
    Operation.REVIEW_APPROVAL: "Only LEADER or VICE_LEADER can approve or reject",
    Operation.UPDATE_PROJECT: "Current user does not have permission to update this project",
    Operation.ADD_MEMBER: "Current user does not have permission to add members to this project",
    Operation.INVITE_MEMBER: "Current user does not have permission to invite members to this project",
    Operation.CHANGE_LEADER: "Current user does not have permission to change the project leader",
    Operation.DELETE_PROJECT: "Current user does not have permission to delete this project",
    Operation.PROMOTE_VICE_LEADER: "Current user does not have permission to promote members in this project",
    Operation.DEMOTE_VICE_LEADER: "Current user does not have permission to demote members in this project",
    Operation.REMOVE_MEMBER: "Current user does not have permission to remove members from this project",
}


class PermissionGate:
    """
    Jedyne miejsce, gdzie rola w projekcie zamienia się na decyzję.
    Wywoływane PRZED jakąkolwiek zmianą stanu.
    """

    def __init__(self, memberships: IMembershipRepository):
        self.memberships = memberships

    def role_of(self, project_id: int, user_id: int) -> Optional[Role]:
        return self.memberships.find_role(project_id, user_id)

    def authorize(
            self,
            operation: Operation,
            actor_id: int,
            project_id: int,
            task: Optional['TaskEntity'] = None,
            target_role: Optional[Role] = None,
    ) -> Role:
        """Zwraca rolę aktora albo rzuca PermissionDenied."""
        role = self.role_of(project_id, actor_id)
        reason = DENIAL_REASONS[operation]

        if role is None or role not in ALLOWED_ROLES[operation]:
            raise PermissionDenied(reason)

        if operation == Operation.UPDATE_TASK:
            # MEMBER tylko dla własnych zadań
            if role == Role.MEMBER and task.created_by_id != actor_id:
                raise PermissionDenied(reason)

        elif operation == Operation.DELETE_TASK:
            # Kierownik, który sam utworzył zadanie, nie usuwa go tą ścieżką
            if task.created_by_id == actor_id:
                raise PermissionDenied(reason)

        elif operation == Operation.CHANGE_TASK_STATUS:
            if not role.is_manager and not task.is_assigned(actor_id):
                raise PermissionDenied(reason)

        elif operation == Operation.UPDATE_TASK_PROGRESS:
            if task.created_by_id != actor_id and not task.is_assigned(actor_id):
                raise PermissionDenied(reason)

        elif operation == Operation.REMOVE_MEMBER:
            # VICE_LEADER usuwa tylko zwykłych członków
            if role == Role.VICE_LEADER and target_role != Role.MEMBER:
                raise PermissionDenied(reason)

        return role
