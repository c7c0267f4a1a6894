# tests/test_project_use_cases.py

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from apps.core.domain.entities import Status
from apps.core.exceptions import NotFound, PermissionDenied, ValidationError
from apps.notifications.domain.events import ActivityType, NotificationType, ProjectAction
from apps.projects.application.use_cases import (
    AddMemberUseCase, ChangeLeaderUseCase, CreateProjectInput, CreateProjectUseCase, DeleteProjectInput,
    DeleteProjectUseCase, DemoteViceLeaderUseCase, GetProjectInput, GetProjectUseCase, GetProjectLogsUseCase,
    MemberInput, ProjectLogsInput, PromoteViceLeaderUseCase, RecalculateProgressInput,
    RecalculateProgressUseCase, RemoveMemberUseCase, UpdateProjectInput, UpdateProjectStatusInput,
    UpdateProjectStatusUseCase, UpdateProjectUseCase,
)
from apps.projects.domain.entities import Role

from .conftest import LEADER, MEMBER, OUTSIDER, VICE


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def roles(world, project_id=1):
    return {m.user_id: m.role for m in world.memberships.find_by_project(project_id)}


# --- Projekt ---

def test_creator_becomes_leader(world):
    project = CreateProjectUseCase(world.project_deps).execute(
        CreateProjectInput(OUTSIDER, 'Gemini', start_date='2025-07-01', end_date='2025-09-30'))

    assert project.status == Status.NOT_STARTED
    assert project.progress == 0
    assert roles(world, project.id) == {OUTSIDER: Role.LEADER}
    assert world.activity.events[0].activity_type == ActivityType.CREATED_PROJECT
    assert world.project_log.events[0].action == ProjectAction.CREATED
    assert world.project_log.events[0].description == f"Project created by user: {OUTSIDER}"


@pytest.mark.parametrize('name, start, end', [
    ('', None, None),
    ('Gemini', '2025-09-30', '2025-07-01'),
])
def test_create_project_validation(world, name, start, end):
    with pytest.raises(ValidationError):
        CreateProjectUseCase(world.project_deps).execute(CreateProjectInput(LEADER, name, start_date=start,
                                                                              end_date=end))
    assert list(world.projects.rows) == [world.project.id]


def test_get_project_starts_it_and_logs_reads(world):
    get = GetProjectUseCase(world.project_deps)

    details = get.execute(GetProjectInput(MEMBER, world.project.id))

    assert details.project.status == Status.IN_PROGRESS
    assert details.project.progress == 0
    assert sorted(m.user_id for m in details.members) == [LEADER, VICE, MEMBER]
    assert [e.action for e in world.project_log.events] == [ProjectAction.STATUS_CHANGED, ProjectAction.READ]
    assert world.project_log.events[0].description == f"Project status changed to IN_PROGRESS by user: {MEMBER}"

    get.execute(GetProjectInput(LEADER, world.project.id))

    assert [e.action for e in world.project_log.events][2:] == [ProjectAction.READ]


def test_get_project_before_start_date(world):
    future = world.projects.add(name='Later', start_date=utc(2025, 8, 1))
    world.memberships.add(future.id, LEADER, Role.LEADER)

    details = GetProjectUseCase(world.project_deps).execute(GetProjectInput(LEADER, future.id))

    assert details.project.status == Status.NOT_STARTED


def test_get_project_refreshes_progress(world):
    world.tasks.add(title='A', progress=50)
    world.tasks.add(title='B', progress=100, priority=3)

    details = GetProjectUseCase(world.project_deps).execute(GetProjectInput(LEADER, world.project.id))

    # (50 + 3 * 100) / 4 = 87.5 -> 87 + 1
    assert details.project.progress == 88
    assert world.projects.rows[world.project.id].progress == 88


def test_outsider_cannot_view_project(world):
    with pytest.raises(PermissionDenied):
        GetProjectUseCase(world.project_deps).execute(GetProjectInput(OUTSIDER, world.project.id))
    assert world.project_log.events == []


def test_update_project_notifies_members(world):
    project = UpdateProjectUseCase(world.project_deps).execute(
        UpdateProjectInput(VICE, world.project.id, name='Apollo 11'))

    assert project.name == 'Apollo 11'
    assert sorted(n.user_id for n in world.notifier.sent) == [LEADER, VICE, MEMBER]
    assert {n.message for n in world.notifier.sent} == {"Project Updated Apollo 11"}
    assert world.project_log.events[-1].action == ProjectAction.UPDATED


def test_update_project_rejects_end_before_start(world):
    with pytest.raises(ValidationError):
        UpdateProjectUseCase(world.project_deps).execute(
            UpdateProjectInput(LEADER, world.project.id, end_date='2024-12-31'))
    assert world.projects.rows[world.project.id].end_date == utc(2025, 12, 31)


def test_update_project_status(world):
    project = UpdateProjectStatusUseCase(world.project_deps).execute(
        UpdateProjectStatusInput(VICE, world.project.id, 'on hold'))

    assert project.status == Status.ON_HOLD
    assert world.project_log.events[0].description == f"Project status changed to ON_HOLD by user: {VICE}"
    assert world.project_log.events[0].status == Status.ON_HOLD


def test_delete_project(world):
    DeleteProjectUseCase(world.project_deps).execute(DeleteProjectInput(LEADER, world.project.id))

    assert world.projects.rows == {}
    assert {(n.message, n.event_type) for n in world.notifier.sent} == {
        ("Project Deleted: Apollo", NotificationType.PROJECT_DELETED),
    }
    assert world.activity.events[0].description == f"Deleted project with id: {world.project.id}"


def test_recalculate_progress(world):
    world.tasks.add(title='A', progress=50)
    world.tasks.add(title='B', progress=100, priority=3)

    progress = RecalculateProgressUseCase(world.project_deps).execute(RecalculateProgressInput(world.project.id))

    assert progress == 88


def test_recalculate_unknown_project(world):
    with pytest.raises(NotFound):
        RecalculateProgressUseCase(world.project_deps).execute(RecalculateProgressInput(404))


# --- Dziennik projektu ---

def test_project_logs_default_window(world):
    GetProjectUseCase(world.project_deps).execute(GetProjectInput(LEADER, world.project.id))

    entries = GetProjectLogsUseCase(world.project_deps).execute(ProjectLogsInput(MEMBER, world.project.id))

    assert [e.action for e in entries] == ['status_changed', 'read']


def test_project_logs_explicit_window(world):
    GetProjectUseCase(world.project_deps).execute(GetProjectInput(LEADER, world.project.id))

    entries = GetProjectLogsUseCase(world.project_deps).execute(
        ProjectLogsInput(MEMBER, world.project.id, start='2025-02-01', end='2025-03-01'))

    assert entries == []


def test_project_logs_without_start_date(world):
    undated = world.projects.add(name='Undated')
    world.memberships.add(undated.id, LEADER, Role.LEADER)

    with pytest.raises(ValidationError):
        GetProjectLogsUseCase(world.project_deps).execute(ProjectLogsInput(LEADER, undated.id))


# --- Członkowie ---

def test_add_member(world):
    AddMemberUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, 5))

    assert roles(world)[5] == Role.MEMBER
    assert world.notifier.to(5)[0].message == "You have been added to project: Apollo"

    with pytest.raises(ValidationError):
        AddMemberUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, 5))
    with pytest.raises(NotFound):
        AddMemberUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, 99))


def test_change_leader(world):
    ChangeLeaderUseCase(world.project_deps).execute(MemberInput(LEADER, world.project.id, VICE))

    assert roles(world) == {LEADER: Role.MEMBER, VICE: Role.LEADER, MEMBER: Role.MEMBER}

    # Były lider traci uprawnienia od razu
    with pytest.raises(PermissionDenied):
        DeleteProjectUseCase(world.project_deps).execute(DeleteProjectInput(LEADER, world.project.id))


def test_change_leader_to_non_member(world):
    with pytest.raises(NotFound):
        ChangeLeaderUseCase(world.project_deps).execute(MemberInput(LEADER, world.project.id, OUTSIDER))
    assert roles(world)[LEADER] == Role.LEADER


def test_promote_and_demote(world):
    PromoteViceLeaderUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, MEMBER))
    assert roles(world)[MEMBER] == Role.VICE_LEADER

    DemoteViceLeaderUseCase(world.project_deps).execute(MemberInput(LEADER, world.project.id, MEMBER))
    assert roles(world)[MEMBER] == Role.MEMBER

    with pytest.raises(ValidationError) as excinfo:
        DemoteViceLeaderUseCase(world.project_deps).execute(MemberInput(LEADER, world.project.id, MEMBER))
    assert excinfo.value.message == "Only Vice Leaders can be demoted to Members"

    with pytest.raises(ValidationError):
        PromoteViceLeaderUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, LEADER))
    assert roles(world)[LEADER] == Role.LEADER


def test_vice_leader_cannot_remove_vice_leader(world):
    world.memberships.add(world.project.id, 5, Role.VICE_LEADER)

    with pytest.raises(PermissionDenied):
        RemoveMemberUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, 5))

    RemoveMemberUseCase(world.project_deps).execute(MemberInput(LEADER, world.project.id, 5))
    assert 5 not in roles(world)


def test_leader_cannot_be_removed(world):
    with pytest.raises(ValidationError):
        RemoveMemberUseCase(world.project_deps).execute(MemberInput(LEADER, world.project.id, LEADER))
    assert roles(world)[LEADER] == Role.LEADER


def test_remove_member_unassigns_project_tasks(world):
    shared = world.tasks.add(title='Shared', assigned_user_ids={MEMBER, 5})
    solo = world.tasks.add(title='Solo', assigned_user_ids={MEMBER})
    elsewhere = world.tasks.add(title='Elsewhere', project_id=2, assigned_user_ids={MEMBER})

    members = RemoveMemberUseCase(world.project_deps).execute(MemberInput(VICE, world.project.id, MEMBER))

    assert sorted(m.user_id for m in members) == [LEADER, VICE]
    assert world.tasks.rows[shared.id].assigned_user_ids == {5}
    assert world.tasks.rows[solo.id].assigned_user_ids == set()
    assert world.tasks.rows[elsewhere.id].assigned_user_ids == {MEMBER}
    assert world.notifier.to(MEMBER)[0].message == "You have been removed from project: Apollo"

