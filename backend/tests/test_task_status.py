# backend/tests/test_task_status.py

import pytest

from ems.models.task import TaskStatus, count_tasks, resolve_status, status_flags


@pytest.mark.parametrize("raw", ["active", "in progress", "in-progress", "In_Progress"])
def test_progress_aliases_resolve_to_active(raw):
    assert TaskStatus(raw) is TaskStatus.ACTIVE


def test_unknown_status_is_rejected():
    with pytest.raises(ValueError):
        TaskStatus("archived")


@pytest.mark.parametrize("status", list(TaskStatus))
def test_exactly_one_flag_matches_status(status):
    flags = status_flags(status)
    assert sum(flags.values()) == 1
    assert flags[{"new": "new_task"}.get(status.value, status.value)] is True


def test_resolve_status_prefers_status_then_legacy_flags():
    assert resolve_status({"status": "completed", "failed": True}) is TaskStatus.COMPLETED
    assert resolve_status({"failed": True}) is TaskStatus.FAILED
    assert resolve_status({"newTask": True}) is TaskStatus.NEW
    assert resolve_status({"title": "no state"}) is None


def test_counts_are_derived_from_the_given_set():
    tasks = [
        {"status": "new"},
        {"status": "in progress"},
        {"status": "active"},
        {"completed": True},
        {"status": "failed"},
        {"title": "unknown state"},
    ]
    assert count_tasks(tasks) == {"new_task": 1, "active": 2, "completed": 1, "failed": 1}
    assert count_tasks([]) == {"new_task": 0, "active": 0, "completed": 0, "failed": 0}
