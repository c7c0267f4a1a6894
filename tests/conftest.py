# tests/conftest.py

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model

from apps.notifications.dispatch import EventDispatcher
from apps.projects.application.use_cases import ProjectDeps
from apps.projects.domain.entities import Role
from apps.projects.domain.permissions import PermissionGate
from apps.tasks.application.use_cases import TaskDeps

from .fakes import (
    FakeApprovalLogRepository, FakeClock, FakeInviteCodeRepository, FakeMembershipRepository,
    FakeProjectRepository, FakeTaskRepository, FakeUserDirectory, RecordingActivityLog, RecordingNotifier,
    RecordingProjectLog,
)

LEADER, VICE, MEMBER, OUTSIDER = 1, 2, 3, 4


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def world(clock: FakeClock) -> SimpleNamespace:
    """
    Projekt 1 z trzema członkami (LEADER=1, VICE_LEADER=2, MEMBER=3) i obcym użytkownikiem 4,
    w całości na fake'ach: bez bazy, zdarzenia dostarczane od razu.
    """
    tasks = FakeTaskRepository()
    projects = FakeProjectRepository()
    memberships = FakeMembershipRepository()
    notifier = RecordingNotifier()
    activity = RecordingActivityLog()
    project_log = RecordingProjectLog(clock=clock)

    project = projects.add(
        name='Apollo',
        start_date=datetime(2025, 1, 1, tzinfo=timezone.utc),
        end_date=datetime(2025, 12, 31, tzinfo=timezone.utc),
    )
    memberships.add(project.id, LEADER, Role.LEADER)
    memberships.add(project.id, VICE, Role.VICE_LEADER)
    memberships.add(project.id, MEMBER, Role.MEMBER)

    w = SimpleNamespace(
        project=project,
        tasks=tasks,
        projects=projects,
        memberships=memberships,
        users=FakeUserDirectory({LEADER, VICE, MEMBER, OUTSIDER, 5, 6}),
        approvals=FakeApprovalLogRepository(tasks),
        invites=FakeInviteCodeRepository(),
        notifier=notifier,
        activity=activity,
        project_log=project_log,
        dispatcher=EventDispatcher(notifier, activity_log=activity, project_log=project_log),
        clock=clock,
    )
    w.gate = PermissionGate(memberships)
    w.task_deps = TaskDeps(
        tasks=w.tasks, projects=w.projects, memberships=w.memberships, users=w.users,
        approvals=w.approvals, dispatcher=w.dispatcher, clock=clock,
    )
    w.project_deps = ProjectDeps(
        projects=w.projects, memberships=w.memberships, users=w.users, tasks=w.tasks,
        logs=w.project_log, dispatcher=w.dispatcher, invites=w.invites, clock=clock,
    )
    return w


@pytest.fixture()
def make_user(db):
    """Tworzy prawdziwych użytkowników Django (testy adapterów ORM)."""
    counter = {'n': 0}

    def _make(username: str = '') -> object:
        counter['n'] += 1
        name = username or f"user{counter['n']}"
        return get_user_model().objects.create_user(username=name, password='secret')

    return _make
