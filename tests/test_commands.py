# tests/test_commands.py

from __future__ import annotations

import pytest

from taskboard.cli.bootstrap import create_initial_state
from taskboard.cli.commands import CommandRegistry, registry
from taskboard.tasks.task_models import TaskStatus

from .fakes import instant_sleep


@pytest.mark.asyncio
async def test_command_registry_routes_and_reports_unknown(settings) -> None:
    state = create_initial_state(settings=settings, sleep=instant_sleep)
    reg = CommandRegistry()
    notes: list[str] = []

    async def echo(state, args, emit):
        if emit is not None:
            emit("note")
        return " ".join(args)

    reg.register("echo", echo, "echo", aliases=["e"])

    assert await reg.handle(state, "/echo a b", emit=notes.append) == "a b"
    assert await reg.handle(state, "/E c") == "c"
    assert notes == ["note"]
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")
    assert "/echo - echo" in reg.build_help()
    await state.close()


@pytest.mark.asyncio
async def test_list_shows_first_page_of_seeded_tasks(settings) -> None:
    state = create_initial_state(settings=settings, sleep=instant_sleep)
    state.start()

    out = await registry.handle(state, "/list")

    assert "20 match" in out
    assert "Page 1 of 2" in out
    assert len([line for line in out.splitlines() if line.startswith("  ") and "[stale]" not in line]) == 10

    out = await registry.handle(state, "/page next")
    assert "Page 2 of 2" in out
    await state.close()


@pytest.mark.asyncio
async def test_add_edit_delete_roundtrip(settings) -> None:
    state = create_initial_state(settings=settings, sleep=instant_sleep)
    state.start()

    out = await registry.handle(
        state, "/add Write docs | Describe the new endpoints | pending | 2099-05-01"
    )
    assert out.startswith("Created task ")
    new_id = out.split()[2].rstrip(":")
    assert "Total Tasks: 21" in await registry.handle(state, "/stats")

    out = await registry.handle(state, f"/edit {new_id} title=Write better docs | status=in_progress")
    assert out == f"Updated task {new_id}: Write better docs"
    stored = {t.id: t for t in state.store.load()}
    assert stored[new_id].status == TaskStatus.IN_PROGRESS

    assert await registry.handle(state, f"/rm {new_id}") == f"Deleted task {new_id}"
    assert new_id not in {t.id for t in state.store.load()}
    assert "Total Tasks: 20" in await registry.handle(state, "/stats")
    await state.close()


@pytest.mark.asyncio
async def test_errors_are_reported_as_messages(settings) -> None:
    state = create_initial_state(settings=settings, sleep=instant_sleep)
    state.start()

    out = await registry.handle(state, "/add ab | short | pending | 2000-01-01")
    assert out.startswith("Invalid task:")
    assert "title" in out and "description" in out and "due_date" in out

    assert await registry.handle(state, "/delete nope") == "Task with id nope not found"
    assert await registry.handle(state, "/show nope") == "Task with id nope not found"

    # task 3 is pending; jumping straight to completed is not allowed
    out = await registry.handle(state, "/status 3 completed")
    assert out == "Cannot change status from pending to completed"
    out = await registry.handle(state, "/status 3 in_progress")
    assert out == "Task 3 is now In Progress"
    await state.close()


@pytest.mark.asyncio
async def test_filter_sort_and_reset(settings) -> None:
    state = create_initial_state(settings=settings, sleep=instant_sleep)
    state.start()

    out = await registry.handle(state, "/filter completed")
    assert "filter=completed" in out
    assert "Pending" not in out.split("\n", 1)[1]

    out = await registry.handle(state, "/sort title desc")
    assert "sort=title desc" in out
    assert state.controller.state.current_page == 1

    assert "Usage: /sort" in await registry.handle(state, "/sort nonsense")

    out = await registry.handle(state, "/reset")
    assert "filter=all" in out
    assert "sort=due_date asc" in out
    await state.close()
