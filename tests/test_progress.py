# tests/test_progress.py

from __future__ import annotations

from fractions import Fraction

import pytest

from apps.core.exceptions import NotFound, StateError
from apps.tasks.domain.services.progress import ProgressAggregator, display_progress, task_weight

from .fakes import FakeProjectRepository, FakeTaskRepository


@pytest.fixture()
def tasks() -> FakeTaskRepository:
    return FakeTaskRepository()


@pytest.fixture()
def projects() -> FakeProjectRepository:
    repo = FakeProjectRepository()
    repo.add(name='Apollo')
    return repo


@pytest.fixture()
def aggregator(tasks, projects) -> ProgressAggregator:
    return ProgressAggregator(tasks, projects)


def test_display_rule_adds_one_below_hundred() -> None:
    assert display_progress(0.0) == 1
    assert display_progress(49.99) == 50
    assert display_progress(99.9) == 100
    assert display_progress(100.0) == 100


def test_leaf_progress_is_its_stored_value(tasks, aggregator) -> None:
    leaf = tasks.add(title='leaf', progress=37)

    assert aggregator.peek_task_progress(leaf.id) == 37
    assert aggregator.refresh_task_progress(leaf.id) == 37
    assert tasks.saves == 0


def test_weight_is_priority_over_level(tasks) -> None:
    root = tasks.add(title='root')
    child = tasks.add(title='child', parent_id=root.id, priority=6)

    assert child.level == 2
    assert task_weight(child) == 3.0


def test_children_at_full_progress_stay_at_hundred(tasks, aggregator) -> None:
    parent = tasks.add(title='parent')
    tasks.add(title='a', parent_id=parent.id, priority=2, level=1, progress=100)
    tasks.add(title='b', parent_id=parent.id, priority=6, level=2, progress=100)

    assert aggregator.peek_task_progress(parent.id) == 100


def test_peek_does_not_persist_but_refresh_does(tasks, aggregator) -> None:
    parent = tasks.add(title='parent', progress=0)
    tasks.add(title='a', parent_id=parent.id, progress=100)
    tasks.add(title='b', parent_id=parent.id, progress=0)

    assert aggregator.peek_task_progress(parent.id) == 51
    assert tasks.rows[parent.id].progress == 0
    assert tasks.saves == 0

    assert aggregator.refresh_task_progress(parent.id) == 51
    assert tasks.rows[parent.id].progress == 51


def test_raw_value_of_nested_parent_feeds_its_parent(tasks, aggregator) -> None:
    root = tasks.add(title='root')
    mid = tasks.add(title='mid', parent_id=root.id)
    tasks.add(title='x', parent_id=mid.id, progress=50)
    tasks.add(title='y', parent_id=mid.id, progress=0)

    # mid: raw 25.0 -> wyświetla 26; root liczy z 25.0, nie z 26
    assert aggregator.refresh_task_progress(root.id) == 26
    assert tasks.rows[mid.id].progress == 26
    assert tasks.rows[root.id].progress == 26


def test_exact_quarter_at_third_level_is_not_truncated_down(tasks, aggregator) -> None:
    root = tasks.add(title='root')
    mid = tasks.add(title='mid', parent_id=root.id)
    tasks.add(title='x', parent_id=mid.id, progress=50)
    tasks.add(title='y', parent_id=mid.id, progress=0)

    assert aggregator.peek_task_progress(mid.id) == 26
    assert aggregator.refresh_task_progress(mid.id) == 26
    assert tasks.rows[mid.id].progress == 26


def test_project_average_of_thirds_is_exact(tasks, projects, aggregator) -> None:
    for progress in (10, 20, 60):
        tasks.add(title=f'root {progress}', priority=3, progress=progress)

    # (3*10 + 3*20 + 3*60) / 9 = 30 -> 31
    assert aggregator.refresh_project_progress(1) == 31
    assert projects.rows[1].progress == 31


def test_weights_are_exact_fractions(tasks) -> None:
    root = tasks.add(title='root')
    mid = tasks.add(title='mid', parent_id=root.id)
    leaf = tasks.add(title='leaf', parent_id=mid.id, priority=1)

    assert task_weight(leaf) == Fraction(1, 3)
    assert task_weight(leaf) * 3 == 1


def test_progress_is_monotonic_in_child_progress(tasks, aggregator) -> None:
    parent = tasks.add(title='parent')
    moving = tasks.add(title='moving', parent_id=parent.id, priority=3)
    tasks.add(title='fixed', parent_id=parent.id, priority=1, progress=40)

    seen = []
    for value in range(0, 101, 10):
        tasks.rows[moving.id].progress = value
        seen.append(aggregator.peek_task_progress(parent.id))

    assert seen == sorted(seen)
    assert seen[-1] > seen[0]


def test_zero_total_weight_is_a_state_error(tasks, aggregator) -> None:
    parent = tasks.add(title='parent')
    tasks.add(title='free', parent_id=parent.id, priority=0)

    with pytest.raises(StateError):
        aggregator.peek_task_progress(parent.id)


def test_unknown_task_is_not_found(aggregator) -> None:
    with pytest.raises(NotFound):
        aggregator.peek_task_progress(999)


def test_project_without_root_tasks_has_zero_progress(projects, aggregator) -> None:
    assert aggregator.refresh_project_progress(1) == 0
    assert projects.rows[1].progress == 0


def test_project_weights_roots_by_priority_only(tasks, projects, aggregator) -> None:
    tasks.add(title='done', priority=1, progress=100)
    deep = tasks.add(title='open', priority=3, progress=0)
    tasks.add(title='leaf', parent_id=deep.id, progress=0)

    # 1*100 + 3*0 / 4 = 25 -> 26
    assert aggregator.peek_project_progress(1) == 26
    assert projects.rows[1].progress == 0

    assert aggregator.refresh_project_progress(1) == 26
    assert projects.rows[1].progress == 26


def test_project_with_only_weightless_roots_is_a_state_error(tasks, aggregator) -> None:
    tasks.add(title='weightless', priority=0)

    with pytest.raises(StateError):
        aggregator.peek_project_progress(1)


def test_refresh_chain_updates_ancestors_and_project(tasks, projects, aggregator) -> None:
    root = tasks.add(title='root')
    mid = tasks.add(title='mid', parent_id=root.id)
    leaf = tasks.add(title='leaf', parent_id=mid.id, progress=0)

    tasks.rows[leaf.id].progress = 100
    aggregator.refresh_chain(leaf.id)

    assert tasks.rows[mid.id].progress == 100
    assert tasks.rows[root.id].progress == 100
    assert projects.rows[1].progress == 100
