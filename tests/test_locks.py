"""Tests for the per-project lock registry."""
import asyncio
import gc

import pytest

from taskgraph.services.locks import ProjectLockRegistry


def test_same_lock_while_referenced():
    """Test a project keeps one lock while someone holds a reference."""
    registry = ProjectLockRegistry()
    first = registry.get("proj_a")

    assert registry.get("proj_a") is first
    assert registry.get("proj_b") is not first


def test_unreferenced_locks_are_dropped():
    """Test the registry forgets a project's lock once nobody uses it."""
    registry = ProjectLockRegistry()
    for i in range(50):
        registry.get(f"proj_{i}")
    gc.collect()

    assert len(registry._locks) == 0

    lock = registry.get("proj_kept")
    assert len(registry._locks) == 1
    del lock
    gc.collect()
    assert len(registry._locks) == 0


@pytest.mark.asyncio
async def test_hold_serializes_one_project():
    """Test holders of the same project run one at a time."""
    registry = ProjectLockRegistry()
    active = {"proj_a": 0, "proj_b": 0}
    peak = {"proj_a": 0, "proj_b": 0}

    async def worker(project_id: str):
        async with registry.hold(project_id):
            active[project_id] += 1
            peak[project_id] = max(peak[project_id], active[project_id])
            await asyncio.sleep(0.01)
            active[project_id] -= 1

    await asyncio.gather(*(worker("proj_a") for _ in range(5)), worker("proj_b"))

    assert peak == {"proj_a": 1, "proj_b": 1}
    gc.collect()
    assert len(registry._locks) == 0


@pytest.mark.asyncio
async def test_waiters_share_the_held_lock():
    """Test a waiter queued behind a holder gets the same lock, not a fresh one."""
    registry = ProjectLockRegistry()
    order = []

    async def worker(name: str):
        async with registry.hold("proj_a"):
            order.append(f"{name}-in")
            await asyncio.sleep(0.01)
            order.append(f"{name}-out")

    await asyncio.gather(worker("first"), worker("second"))

    assert order == ["first-in", "first-out", "second-in", "second-out"]
