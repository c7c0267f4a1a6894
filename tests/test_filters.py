# tests/test_filters.py

from __future__ import annotations

from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.domain.entities import Status
from apps.core.exceptions import ValidationError
from apps.projects.adapters.orm_repositories import DjangoProjectRepository
from apps.projects.domain.entities import ProjectEntity
from apps.tasks.adapters.orm_repositories import DjangoTaskRepository
from apps.tasks.domain.entities import TaskEntity

pytestmark = pytest.mark.django_db


@pytest.fixture()
def board(make_user, settings):
    settings.TEAMWORK_DUE_SOON_HOURS = 12
    owner = make_user('owner')
    other = make_user('other')
    project = DjangoProjectRepository().save(ProjectEntity(id=None, name='Apollo'))
    repo = DjangoTaskRepository()
    now = timezone.now()

    def add(title, **kwargs):
        kwargs.setdefault('created_by_id', owner.id)
        return repo.save(TaskEntity(id=None, title=title, project_id=project.id, **kwargs))

    tasks = {
        'soon': add('Fuel check', priority=2, deadline=now + timedelta(hours=1)),
        'later': add('Launch window', priority=5, deadline=now + timedelta(days=3),
                     description='Coordinate telemetry'),
        'late': add('Debrief', priority=1, deadline=now - timedelta(hours=1), status=Status.OVERDUE),
        'assigned': add('Sample return', priority=3, created_by_id=other.id, assigned_user_ids={owner.id},
                        status=Status.ON_HOLD),
        'foreign': add('Not mine', created_by_id=other.id),
    }
    return repo, owner, tasks


def ids(found):
    return [t.id for t in found]


def test_default_scope_and_newest_first(board):
    repo, owner, t = board

    found = repo.search(owner.id, {})

    assert ids(found) == [t['assigned'].id, t['late'].id, t['later'].id, t['soon'].id]


def test_scopes(board):
    repo, owner, t = board

    assert ids(repo.search(owner.id, {}, scope='assigned')) == [t['assigned'].id]
    assert t['assigned'].id not in ids(repo.search(owner.id, {}, scope='created'))


@pytest.mark.parametrize('raw', ['IN_PROGRESS', 'in_progress', 'in progress'])
def test_status_filter_accepts_any_spelling(board, raw):
    repo, owner, t = board

    found = repo.search(owner.id, {'status': raw, 'ordering': 'title'})

    assert ids(found) == [t['soon'].id, t['later'].id]


def test_unknown_status_is_ignored(board):
    repo, owner, t = board

    assert len(repo.search(owner.id, {'status': 'sleeping'})) == 4


def test_search_matches_title_and_description(board):
    repo, owner, t = board

    assert ids(repo.search(owner.id, {'search': 'TELEMETRY'})) == [t['later'].id]
    assert ids(repo.search(owner.id, {'title': 'fuel'})) == [t['soon'].id]


def test_due_soon(board):
    repo, owner, t = board

    assert ids(repo.search(owner.id, {'due_soon': 'true'})) == [t['soon'].id]


def test_ordering(board):
    repo, owner, t = board

    found = repo.search(owner.id, {'ordering': '-priority'})

    assert ids(found) == [t['later'].id, t['assigned'].id, t['soon'].id, t['late'].id]


def test_invalid_filter_value(board):
    repo, owner, t = board

    with pytest.raises(ValidationError):
        repo.search(owner.id, {'project': 'apollo'})
