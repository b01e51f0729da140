# tests/test_mutations.py

from __future__ import annotations

import asyncio

import pytest

from taskboard.query.cache import TASKS_KEY, QueryCache
from taskboard.query.hooks import TaskQueries
from taskboard.query.mutations import MutationContext, MutationState, optimistic_update
from taskboard.tasks.errors import NotFoundError, TaskValidationError, TransientServiceFault
from taskboard.tasks.task_models import CreateTaskInput, TaskStatus, UpdateTaskInput
from taskboard.view.pipeline import FilterSortState, SortBy, process

from .fakes import FakeClock, FakeTaskApi, instant_sleep, make_task


async def _settle(rounds: int = 8) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


async def _loaded(api: FakeTaskApi) -> TaskQueries:
    cache = QueryCache(sleep=instant_sleep, clock=FakeClock())
    queries = TaskQueries(cache, api, sleep=instant_sleep)
    # an open list view, so settled mutations trigger the reconciling refetch
    queries.use_tasks(fetch_on_open=False)
    await cache.fetch()
    return queries


def _by_id(queries: TaskQueries):
    return {t.id: t for t in queries.cache.get_data()}


@pytest.mark.asyncio
async def test_optimistic_create_is_replaced_by_server_task() -> None:
    api = FakeTaskApi([make_task("1")])
    queries = await _loaded(api)
    create = queries.use_create_task()
    gate = api.gates["create"] = asyncio.Event()

    pending = asyncio.ensure_future(
        create.mutate(
            CreateTaskInput(
                title="Fresh task",
                description="Created while the server is slow",
                status=TaskStatus.PENDING,
                due_date="2099-02-01",
            )
        )
    )
    await _settle()

    visible = queries.cache.get_data()
    assert len(visible) == 2
    assert visible[-1].title == "Fresh task"
    assert visible[-1].created_at == visible[-1].updated_at
    assert create.is_pending

    gate.set()
    created = await pending

    assert created.id == "srv101"
    assert [t.id for t in queries.cache.get_data()] == ["1", "srv101"]
    assert not create.is_pending
    assert create.data == created
    assert create.error is None


@pytest.mark.asyncio
async def test_update_of_missing_task_rolls_back() -> None:
    api = FakeTaskApi([make_task("1", title="Original")])
    queries = await _loaded(api)
    snapshot = queries.cache.get_data()
    update = queries.use_update_task()
    api.failures["update:1"] = NotFoundError("1")

    with pytest.raises(NotFoundError):
        await update.mutate(UpdateTaskInput(id="1", title="Changed"))

    assert queries.cache.get_data() == snapshot
    assert isinstance(update.error, NotFoundError)
    assert not update.is_pending


@pytest.mark.asyncio
async def test_failed_delete_restores_exact_snapshot() -> None:
    api = FakeTaskApi([make_task("1"), make_task("2"), make_task("3")])
    queries = await _loaded(api)
    snapshot = queries.cache.get_data()
    delete = queries.use_delete_task()
    gate = api.gates["delete:2"] = asyncio.Event()
    api.failures["delete:2"] = TransientServiceFault("server unavailable")
    refetch_gate = asyncio.Event()
    api.fetch_plan = [(refetch_gate, api.tasks)]

    pending = asyncio.ensure_future(delete.mutate("2"))
    await _settle()
    assert [t.id for t in queries.cache.get_data()] == ["1", "3"]

    gate.set()
    await _settle()
    # rolled back before the reconciling refetch lands
    assert queries.cache.get_data() == snapshot

    refetch_gate.set()
    with pytest.raises(TransientServiceFault):
        await pending
    assert queries.cache.get_data() == snapshot


@pytest.mark.asyncio
async def test_failure_on_one_record_keeps_success_on_another() -> None:
    api = FakeTaskApi([make_task("a", title="Alpha"), make_task("b", title="Bravo")])
    queries = await _loaded(api)
    gate_a = api.gates["update:a"] = asyncio.Event()
    gate_b = api.gates["update:b"] = asyncio.Event()
    api.failures["update:a"] = TransientServiceFault("boom")

    ua = asyncio.ensure_future(queries.use_update_task().mutate(UpdateTaskInput(id="a", title="Alpha 2")))
    ub = asyncio.ensure_future(queries.use_update_task().mutate(UpdateTaskInput(id="b", title="Bravo 2")))
    await _settle()
    assert _by_id(queries)["a"].title == "Alpha 2"
    assert _by_id(queries)["b"].title == "Bravo 2"

    gate_b.set()
    await ub
    # a is still outstanding, so its optimistic edit survives the refetch
    assert _by_id(queries)["a"].title == "Alpha 2"

    gate_a.set()
    with pytest.raises(TransientServiceFault):
        await ua

    tasks = _by_id(queries)
    assert tasks["a"].title == "Alpha"
    assert tasks["b"].title == "Bravo 2"


@pytest.mark.asyncio
async def test_overlapping_updates_to_one_record() -> None:
    api = FakeTaskApi([make_task("a", title="Alpha")])
    queries = await _loaded(api)
    gate = api.gates["update:a"] = asyncio.Event()
    api.failures["update:a"] = TransientServiceFault("first write fails")

    update = queries.use_update_task()
    first = asyncio.ensure_future(update.mutate(UpdateTaskInput(id="a", title="Alpha 2")))
    second = asyncio.ensure_future(
        update.mutate(UpdateTaskInput(id="a", status=TaskStatus.IN_PROGRESS))
    )
    await _settle()

    a = _by_id(queries)["a"]
    assert (a.title, a.status) == ("Alpha 2", TaskStatus.IN_PROGRESS)
    assert update.is_pending
    # the second write waits for the first one on the same record
    assert api.calls.count("update:a") == 1

    gate.set()
    results = await asyncio.gather(first, second, return_exceptions=True)

    assert isinstance(results[0], TransientServiceFault)
    assert results[1].status == TaskStatus.IN_PROGRESS
    a = _by_id(queries)["a"]
    assert (a.title, a.status) == ("Alpha", TaskStatus.IN_PROGRESS)
    assert not update.is_pending


def test_snapshots_chain_and_rollback_is_per_invocation() -> None:
    cache = QueryCache(sleep=instant_sleep, clock=FakeClock())
    original = [make_task("a", title="Alpha"), make_task("b")]
    cache.set_data(TASKS_KEY, original)

    first = MutationContext(
        cache, TASKS_KEY, optimistic_update(UpdateTaskInput(id="a", title="Alpha 2"), original)
    )
    first.apply()
    second = MutationContext(
        cache,
        TASKS_KEY,
        optimistic_update(UpdateTaskInput(id="a", status=TaskStatus.COMPLETED), cache.get_data()),
    )
    second.apply()

    assert first.snapshot == original
    assert second.snapshot is not None
    assert second.snapshot[0].title == "Alpha 2"

    first.rollback()
    a = cache.get_data()[0]
    assert (a.title, a.status) == ("Alpha", TaskStatus.COMPLETED)
    assert first.state == MutationState.ROLLED_BACK

    second.rollback()
    assert cache.get_data() == original

    # settling twice is a no-op
    second.commit()
    assert second.state == MutationState.ROLLED_BACK


@pytest.mark.asyncio
async def test_mutation_supersedes_in_flight_fetch() -> None:
    api = FakeTaskApi([make_task("1")])
    queries = await _loaded(api)
    gate = asyncio.Event()
    api.fetch_plan = [(gate, [make_task("1")])]

    slow = asyncio.ensure_future(queries.cache.refetch())
    await _settle()
    await queries.use_delete_task().mutate("1")
    assert queries.cache.get_data() == []

    gate.set()
    assert await slow == []
    assert queries.cache.get_data() == []


@pytest.mark.asyncio
async def test_mutation_without_cached_data_skips_optimistic_step() -> None:
    api = FakeTaskApi([make_task("1")])
    cache = QueryCache(sleep=instant_sleep, clock=FakeClock())
    queries = TaskQueries(cache, api, sleep=instant_sleep)
    observer = queries.use_tasks(fetch_on_open=False)

    await queries.use_delete_task().mutate("1")

    assert api.tasks == []
    # nothing to roll back to, but the follow-up refetch still lands
    assert cache.get_data() == []
    observer.close()


@pytest.mark.asyncio
async def test_string_status_is_parsed_before_the_optimistic_apply() -> None:
    api = FakeTaskApi([make_task("1", status=TaskStatus.COMPLETED), make_task("2")])
    queries = await _loaded(api)
    api.gates["create"] = create_gate = asyncio.Event()
    api.gates["update:2"] = update_gate = asyncio.Event()

    created = asyncio.ensure_future(
        queries.use_create_task().mutate(
            CreateTaskInput(
                title="Raw status",
                description="Status given as a plain string",
                status="in_progress",
                due_date="2099-02-01",
            )
        )
    )
    updated = asyncio.ensure_future(
        queries.use_update_task().mutate(UpdateTaskInput(id="2", status="completed"))
    )
    await _settle()

    pending_view = process(queries.cache.get_data(), FilterSortState(sort_by=SortBy.STATUS))
    assert all(isinstance(t.status, TaskStatus) for t in pending_view.page_items)
    assert [t.status for t in pending_view.page_items] == [
        TaskStatus.COMPLETED,
        TaskStatus.COMPLETED,
        TaskStatus.IN_PROGRESS,
    ]

    create_gate.set()
    update_gate.set()
    await asyncio.gather(created, updated)
    assert {t.status for t in queries.cache.get_data()} == {
        TaskStatus.COMPLETED,
        TaskStatus.IN_PROGRESS,
    }


@pytest.mark.asyncio
async def test_unknown_status_skips_the_optimistic_step() -> None:
    api = FakeTaskApi([make_task("1")])
    queries = await _loaded(api)
    snapshot = queries.cache.get_data()
    api.gates["update:1"] = gate = asyncio.Event()
    api.failures["update:1"] = TaskValidationError({"status": "bad status"})

    pending = asyncio.ensure_future(
        queries.use_update_task().mutate(UpdateTaskInput(id="1", status="archived"))
    )
    await _settle()
    assert queries.cache.get_data() == snapshot

    gate.set()
    with pytest.raises(TaskValidationError):
        await pending
    assert queries.cache.get_data() == snapshot
