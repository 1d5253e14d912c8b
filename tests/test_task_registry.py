import threading

import pytest

from core.errors import DuplicateTaskError
from core.schemas import BackgroundTask, TaskStatus
from core.task_registry import BackgroundTaskRegistry, TaskMutators


def test_add_then_get_returns_running_task(registry) -> None:
    registry.add(BackgroundTask(id="t1", description="Drafting response..."))
    task = registry.get("t1")
    assert task.status is TaskStatus.RUNNING
    assert task.progress == 0
    assert "t1" in registry


def test_duplicate_id_is_a_programming_error(registry) -> None:
    registry.add(BackgroundTask(id="t1"))
    with pytest.raises(DuplicateTaskError):
        registry.add(BackgroundTask(id="t1"))


def test_update_unknown_id_is_a_noop(registry) -> None:
    assert registry.update("missing", progress=50) is False
    assert len(registry) == 0


def test_update_patches_only_given_fields(registry) -> None:
    registry.add(BackgroundTask(id="t1", description="Comparing 2 documents..."))
    assert registry.update("t1", progress=40) is True
    task = registry.get("t1")
    assert task.progress == 40
    assert task.description == "Comparing 2 documents..."


@pytest.mark.parametrize("terminal", [TaskStatus.SUCCESS, TaskStatus.ERROR])
def test_terminal_status_is_final(registry, terminal) -> None:
    registry.add(BackgroundTask(id="t1", description="Researching"))
    registry.update("t1", status=terminal, progress=100, description="done")
    before = registry.get("t1")

    assert registry.update("t1", status=TaskStatus.RUNNING) is False
    assert registry.update("t1", status=TaskStatus.ERROR if terminal is TaskStatus.SUCCESS else TaskStatus.SUCCESS) is False
    assert registry.update("t1", progress=5, description="late") is False
    assert registry.get("t1") == before


def test_progress_is_clamped(registry) -> None:
    registry.add(BackgroundTask(id="t1"))
    registry.update("t1", progress=250)
    assert registry.get("t1").progress == 100
    registry.update("t1", progress=-3)
    assert registry.get("t1").progress == 0


def test_remove_is_idempotent(registry) -> None:
    registry.add(BackgroundTask(id="t1"))
    registry.remove("t1")
    registry.remove("t1")
    assert registry.get("t1") is None
    assert registry.list() == []


def test_returned_records_are_copies(registry) -> None:
    registry.add(BackgroundTask(id="t1"))
    snapshot = registry.get("t1")
    snapshot.progress = 99
    assert registry.get("t1").progress == 0


def test_mutators_are_bound_to_the_registry(registry) -> None:
    mutators = TaskMutators.for_registry(registry)
    mutators.add(BackgroundTask(id="t1"))
    mutators.update("t1", status=TaskStatus.SUCCESS)
    assert registry.get("t1").status is TaskStatus.SUCCESS
    mutators.remove("t1")
    assert len(registry) == 0


def test_concurrent_mutations_on_different_ids_are_not_lost() -> None:
    registry = BackgroundTaskRegistry()
    ids = [f"t{i}" for i in range(8)]

    def worker(task_id):
        registry.add(BackgroundTask(id=task_id))
        for progress in range(1, 51):
            registry.update(task_id, progress=progress)
        registry.update(task_id, status=TaskStatus.SUCCESS)

    threads = [threading.Thread(target=worker, args=(task_id,)) for task_id in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    tasks = {t.id: t for t in registry.list()}
    assert set(tasks) == set(ids)
    assert all(t.progress == 50 and t.status is TaskStatus.SUCCESS for t in tasks.values())
