# tests/test_invites.py

from __future__ import annotations

import re
from dataclasses import replace
from datetime import timedelta

import pytest

from apps.core.exceptions import NotFound, PermissionDenied, StateError, ValidationError
from apps.notifications.domain.events import ActivityType, NotificationType, ProjectAction
from apps.projects.application.use_cases import (
    CreateInviteCodeUseCase, InviteCodeInput, JoinProjectByCodeUseCase, JoinProjectInput,
)
from apps.projects.domain.entities import InviteCodeEntity, Role

from .conftest import LEADER, MEMBER, OUTSIDER, VICE
from .fakes import CodeSequence


def create(world, actor_id=LEADER, codes=None):
    deps = world.project_deps if codes is None else replace(world.project_deps, make_invite_code=CodeSequence(*codes))
    return CreateInviteCodeUseCase(deps).execute(InviteCodeInput(actor_id, world.project.id))


def join(world, actor_id, code):
    return JoinProjectByCodeUseCase(world.project_deps).execute(JoinProjectInput(actor_id, code))


# --- Tworzenie kodu ---

@pytest.mark.parametrize('manager', [LEADER, VICE])
def test_manager_creates_code_valid_for_thirty_days(world, manager):
    invite = create(world, actor_id=manager)

    assert re.fullmatch(r'[A-Z0-9]{8}', invite.code)
    assert invite.project_id == world.project.id
    assert invite.expires_at == world.clock() + timedelta(days=30)
    assert list(world.invites.rows) == [invite.id]


def test_ttl_comes_from_settings(world, settings):
    settings.TEAMWORK_INVITE_TTL_DAYS = 2

    invite = create(world)

    assert invite.expires_at == world.clock() + timedelta(days=2)


def test_valid_code_is_reused(world):
    first = create(world, codes=['APOLLO11'])
    world.clock.now += timedelta(days=29)

    again = create(world)

    assert again == first
    assert len(world.invites.rows) == 1


def test_expired_code_is_replaced(world):
    create(world, codes=['APOLLO11'])
    world.clock.now += timedelta(days=30)

    fresh = create(world, codes=['APOLLO13'])

    assert fresh.code == 'APOLLO13'
    assert world.invites.latest_for_project(world.project.id).code == 'APOLLO13'
    assert len(world.invites.rows) == 2


def test_code_taken_by_another_project_is_skipped(world):
    world.invites.save(InviteCodeEntity(None, 2, 'TAKEN001', world.clock() + timedelta(days=1)))

    invite = create(world, codes=['TAKEN001', 'FRESH002'])

    assert invite.code == 'FRESH002'


def test_gives_up_when_every_candidate_is_taken(world):
    world.invites.save(InviteCodeEntity(None, 2, 'TAKEN001', world.clock() + timedelta(days=1)))

    with pytest.raises(StateError):
        create(world, codes=['TAKEN001'] * CreateInviteCodeUseCase.MAX_ATTEMPTS)
    assert len(world.invites.rows) == 1


@pytest.mark.parametrize('actor', [MEMBER, OUTSIDER])
def test_only_managers_create_codes(world, actor):
    with pytest.raises(PermissionDenied):
        create(world, actor_id=actor)
    assert world.invites.rows == {}


def test_unknown_project(world):
    world.memberships.add(404, LEADER, Role.LEADER)

    with pytest.raises(NotFound):
        CreateInviteCodeUseCase(world.project_deps).execute(InviteCodeInput(LEADER, 404))


# --- Dołączanie ---

def test_join_adds_member(world):
    create(world, codes=['APOLLO11'])

    project = join(world, OUTSIDER, ' apollo11 ')

    assert project.id == world.project.id
    assert world.memberships.find_role(world.project.id, OUTSIDER) == Role.MEMBER
    assert [(n.user_id, n.message, n.event_type) for n in world.notifier.sent] == [
        (OUTSIDER, "You have joined project: Apollo", NotificationType.PROJECT_UPDATED),
    ]
    assert world.project_log.events[-1].action == ProjectAction.UPDATED
    assert world.project_log.events[-1].description == f"Member {OUTSIDER} joined project with invite code"
    assert world.activity.events[-1].activity_type == ActivityType.UPDATED_PROJECT_MEMBER


@pytest.mark.parametrize('code', ['NOPE0000', '', None])
def test_join_with_unknown_code(world, code):
    create(world, codes=['APOLLO11'])

    with pytest.raises(NotFound):
        join(world, OUTSIDER, code)
    assert world.memberships.find_role(world.project.id, OUTSIDER) is None


def test_join_with_expired_code(world):
    create(world, codes=['APOLLO11'])
    world.clock.now += timedelta(days=31)

    with pytest.raises(ValidationError) as excinfo:
        join(world, OUTSIDER, 'APOLLO11')

    assert excinfo.value.message == "Invite code has expired"
    assert world.memberships.find_role(world.project.id, OUTSIDER) is None
    assert world.notifier.sent == []


def test_existing_member_cannot_join_again(world):
    create(world, codes=['APOLLO11'])

    with pytest.raises(ValidationError) as excinfo:
        join(world, VICE, 'APOLLO11')

    assert excinfo.value.message == "You are already a member of this project"
    assert world.memberships.find_role(world.project.id, VICE) == Role.VICE_LEADER
    assert len(world.memberships.find_by_project(world.project.id)) == 3


def test_code_works_for_many_users(world):
    create(world, codes=['APOLLO11'])

    join(world, OUTSIDER, 'APOLLO11')
    join(world, 5, 'APOLLO11')

    assert world.memberships.find_role(world.project.id, 5) == Role.MEMBER
    assert len(world.invites.rows) == 1
