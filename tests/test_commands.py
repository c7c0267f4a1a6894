# tests/test_commands.py

from __future__ import annotations

from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from django.utils import timezone

from apps.core.domain.entities import Status
from apps.notifications.models import Notification
from apps.projects.adapters.orm_repositories import DjangoProjectRepository
from apps.projects.domain.entities import ProjectEntity
from apps.projects.models import Project
from apps.tasks.adapters.orm_repositories import DjangoTaskRepository
from apps.tasks.domain.entities import TaskEntity
from apps.tasks.models import Task

pytestmark = pytest.mark.django_db


@pytest.fixture()
def seeded(make_user):
    user = make_user()
    project = DjangoProjectRepository().save(ProjectEntity(id=None, name='Apollo'))
    repo = DjangoTaskRepository()
    return user, project, repo


def test_recalculate_progress(seeded):
    user, project, repo = seeded
    repo.save(TaskEntity(id=None, title='A', project_id=project.id, created_by_id=user.id, progress=50))
    repo.save(TaskEntity(id=None, title='B', project_id=project.id, created_by_id=user.id, progress=100,
                         priority=3))
    out = StringIO()

    call_command('recalculate_progress', project.id, stdout=out)

    assert f"Project {project.id} progress: 88%" in out.getvalue()
    assert Project.objects.get(id=project.id).progress == 88


def test_recalculate_unknown_project(db):
    with pytest.raises(CommandError):
        call_command('recalculate_progress', 404)


def test_refresh_overdue(seeded, django_capture_on_commit_callbacks):
    user, project, repo = seeded
    now = timezone.now()
    late = repo.save(TaskEntity(id=None, title='Late', project_id=project.id, created_by_id=user.id,
                                deadline=now - timedelta(hours=2), assigned_user_ids={user.id}))
    repo.save(TaskEntity(id=None, title='Fine', project_id=project.id, created_by_id=user.id,
                         deadline=now + timedelta(hours=2)))
    out = StringIO()

    with django_capture_on_commit_callbacks(execute=True):
        call_command('refresh_overdue', stdout=out)

    assert "Marked 1 tasks as overdue." in out.getvalue()
    assert "- Late (" in out.getvalue()
    assert Task.objects.get(id=late.id).status == Status.OVERDUE.value
    assert list(Notification.objects.values_list('user_id', 'message')) == [(user.id, "Task Late is overdue")]

    out = StringIO()
    call_command('refresh_overdue', '--project', str(project.id), stdout=out)
    assert "Marked 0 tasks as overdue." in out.getvalue()
