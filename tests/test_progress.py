"""Tests for progress derivation, reconciliation and the progress engine."""
import pytest

from taskgraph.errors import (
    InconsistentStateError,
    InvalidStatusError,
    NotFoundError,
    OutOfRangeError,
    ValidationError,
)
from taskgraph.services.progress import (
    ProgressEngine,
    derive_progress,
    is_overdue,
    normalize,
    reconcile,
    validate_progress,
)
from taskgraph.services.task_store import SubtaskState, TaskSnapshot, TaskStore

NOW = 1_700_000_000_000


def snapshot(**overrides) -> TaskSnapshot:
    values = dict(
        id="task_x",
        project_id="proj_x",
        parent_task_id=None,
        status="in_progress",
        progress=0,
        start_at=None,
        due_at=None,
        estimated_hours=None,
        actual_hours=0.0,
        subtasks=(),
    )
    values.update(overrides)
    return TaskSnapshot(**values)


# ── Pure rules ───────────────────────────────────────────────────────────


def test_derive_from_subtasks_is_rounded_mean():
    """Test [20, 60, 100] derives 60."""
    subs = tuple(SubtaskState(id=f"s{i}", progress=p) for i, p in enumerate([20, 60, 100]))
    assert derive_progress(snapshot(subtasks=subs)) == 60


def test_derive_from_subtasks_rounds_half_up():
    """Test a mean of 50.5 rounds to 51."""
    subs = (SubtaskState(id="a", progress=50), SubtaskState(id="b", progress=51))
    assert derive_progress(snapshot(subtasks=subs)) == 51


def test_derive_subtasks_ignore_own_effort():
    """Test subtask progress wins over the parent's own logged hours."""
    subs = (SubtaskState(id="a", progress=10),)
    snap = snapshot(subtasks=subs, estimated_hours=10.0, actual_hours=10.0)
    assert derive_progress(snap) == 10


def test_derive_from_effort_is_clamped():
    """Test 15h against a 10h estimate derives 100, not 150."""
    assert derive_progress(snapshot(estimated_hours=10.0, actual_hours=15.0)) == 100


def test_derive_from_effort_ratio():
    """Test 3h against an 8h estimate derives 38 (37.5 rounded up)."""
    assert derive_progress(snapshot(estimated_hours=8.0, actual_hours=3.0)) == 38


def test_derive_without_estimate_keeps_stored_value():
    """Test a leaf with no estimate reports its stored progress."""
    assert derive_progress(snapshot(progress=42, actual_hours=5.0)) == 42
    assert derive_progress(snapshot(progress=42, estimated_hours=0.0)) == 42


def test_normalize():
    """Test 100 forces done and a lower derived value reopens a done task."""
    assert normalize("done", 40) == ("in_progress", 40)
    assert normalize("done", 100) == ("done", 100)
    assert normalize("in_progress", 100) == ("done", 100)
    assert normalize("blocked", 30) == ("blocked", 30)


def test_validate_progress_bounds():
    """Test the accepted range is 0..100 inclusive."""
    assert validate_progress(0) == 0
    assert validate_progress(100) == 100
    for bad in (-1, 101, 1000):
        with pytest.raises(OutOfRangeError):
            validate_progress(bad)


def test_validate_progress_rejects_non_integers():
    """Test bools, floats and strings are out of range."""
    for bad in (True, 50.0, "50", None):
        with pytest.raises(OutOfRangeError):
            validate_progress(bad)


def test_out_of_range_is_a_validation_error():
    """Test callers can catch the broader class."""
    with pytest.raises(ValidationError) as exc_info:
        validate_progress(150)
    assert exc_info.value.code == "out_of_range"
    assert exc_info.value.status_code == 422


def test_reconcile_progress_100_marks_done():
    """Test setting 100 alone completes the task."""
    assert reconcile("in_progress", 80, new_progress=100) == ("done", 100)


def test_reconcile_lower_progress_reopens_done():
    """Test lowering progress on a done task moves it to in_progress."""
    assert reconcile("done", 100, new_progress=70) == ("in_progress", 70)


def test_reconcile_progress_keeps_other_status():
    """Test a plain progress edit leaves a non-done status alone."""
    assert reconcile("blocked", 10, new_progress=30) == ("blocked", 30)


def test_reconcile_status_done_forces_100():
    """Test marking done alone sets progress to 100."""
    assert reconcile("in_progress", 40, new_status="done") == ("done", 100)


def test_reconcile_status_keeps_progress():
    """Test a non-done status edit keeps progress."""
    assert reconcile("in_progress", 40, new_status="in_review") == ("in_review", 40)


def test_reconcile_reopen_at_100_requires_progress():
    """Test leaving done without lowering progress is rejected."""
    with pytest.raises(InconsistentStateError):
        reconcile("done", 100, new_status="in_progress")
    assert reconcile("done", 100, new_status="in_progress", new_progress=90) == (
        "in_progress",
        90,
    )


def test_reconcile_contradicting_pair():
    """Test done with less than 100, and 100 with a non-done status, both fail."""
    with pytest.raises(InconsistentStateError):
        reconcile("in_progress", 10, new_status="done", new_progress=60)
    with pytest.raises(InconsistentStateError):
        reconcile("in_progress", 10, new_status="in_review", new_progress=100)
    assert reconcile("in_progress", 10, new_status="done", new_progress=100) == ("done", 100)


def test_reconcile_validates_inputs():
    """Test invalid values fail before any reconciliation."""
    with pytest.raises(OutOfRangeError):
        reconcile("in_progress", 10, new_progress=-5)
    with pytest.raises(InvalidStatusError):
        reconcile("in_progress", 10, new_status="archived")


def test_reconcile_no_change():
    """Test an empty update returns the current pair."""
    assert reconcile("blocked", 25) == ("blocked", 25)


def test_is_overdue_boundaries():
    """Test overdue needs a past due date and unfinished progress."""
    assert is_overdue(NOW - 1, 99, NOW)
    assert not is_overdue(NOW, 99, NOW)
    assert not is_overdue(NOW + 1, 0, NOW)
    assert not is_overdue(NOW - 1, 100, NOW)
    assert not is_overdue(None, 0, NOW)


# ── Engine ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_engine_report_for_parent_task(test_session):
    """Test the report derives from subtasks and lists each one."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    parent = await store.create_task(project.id, "Launch")
    for progress, due in [(20, NOW - 1000), (60, None), (100, NOW - 1000)]:
        await store.create_task(
            project.id, f"Step {progress}", parent_task_id=parent.id,
            progress=progress, due_at=due,
            status="done" if progress == 100 else "in_progress",
        )

    report = await ProgressEngine(test_session).get_progress(parent.id, now=NOW)

    assert report.progress == 60
    assert report.status == "not_started"
    overdue = {s.progress: s.is_overdue for s in report.subtasks}
    assert overdue == {20: True, 60: False, 100: False}


@pytest.mark.asyncio
async def test_engine_report_is_read_only(test_session):
    """Test reading progress never writes the derived value back."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(project.id, "Write docs", estimated_hours=10.0)
    await store.adjust_actual_hours(task.id, 15.0)

    report = await ProgressEngine(test_session).get_progress(task.id, now=NOW)

    assert report.progress == 100
    assert report.status == "done"
    assert report.effort_variance_percent == 50
    assert report.projected_completion == NOW
    refreshed = await store.get_task(task.id)
    assert refreshed.progress == 0
    assert refreshed.status == "not_started"


@pytest.mark.asyncio
async def test_engine_report_projection_and_overdue(test_session):
    """Test projection and overdue figures for a half-finished task."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(
        project.id, "Migrate", estimated_hours=16.0,
        start_at=NOW - 86_400_000, due_at=NOW - 1,
    )
    await store.adjust_actual_hours(task.id, 8.0)

    report = await ProgressEngine(test_session).get_progress(task.id, now=NOW)

    assert report.progress == 50
    assert report.is_overdue is True
    # 8h for 50% leaves 8h: one 8-hour day
    assert report.projected_completion == NOW + 86_400_000
    assert report.effort_variance_percent == -50


@pytest.mark.asyncio
async def test_engine_report_done_task_not_overdue(test_session):
    """Test a done task is never overdue and stays at 100."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(
        project.id, "Ship", status="done", progress=100, due_at=NOW - 5000
    )

    report = await ProgressEngine(test_session).get_progress(task.id, now=NOW)

    assert (report.status, report.progress) == ("done", 100)
    assert report.is_overdue is False


@pytest.mark.asyncio
async def test_engine_unknown_task(test_session):
    """Test reporting on a missing task raises NotFound."""
    with pytest.raises(NotFoundError):
        await ProgressEngine(test_session).get_progress("task_missing")


@pytest.mark.asyncio
async def test_engine_update_rejects_before_lookup(test_session):
    """Test validation fails even for a missing task, with nothing written."""
    with pytest.raises(OutOfRangeError):
        await ProgressEngine(test_session).set_progress("task_missing", 101)


@pytest.mark.asyncio
async def test_engine_set_progress_persists_and_refreshes_parent(test_session):
    """Test an explicit edit is saved and the parent's cached value follows."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    parent = await store.create_task(project.id, "Launch")
    first = await store.create_task(project.id, "One", parent_task_id=parent.id)
    await store.create_task(project.id, "Two", parent_task_id=parent.id)
    engine = ProgressEngine(test_session)

    task = await engine.set_progress(first.id, 100)

    assert (task.status, task.progress) == ("done", 100)
    assert task.completed_at is not None
    refreshed_parent = await store.get_task(parent.id)
    assert refreshed_parent.progress == 50


@pytest.mark.asyncio
async def test_engine_set_progress_100_twice_is_idempotent(test_session):
    """Test repeating 100% keeps the task done with its first completion time."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(project.id, "Ship")
    engine = ProgressEngine(test_session)

    first = await engine.set_progress(task.id, 100)
    completed_at = first.completed_at
    second = await engine.set_progress(task.id, 100)

    assert (second.status, second.progress) == ("done", 100)
    assert second.completed_at == completed_at


@pytest.mark.asyncio
async def test_engine_failed_update_leaves_task_unchanged(test_session):
    """Test an inconsistent update writes nothing."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(project.id, "Ship", status="done", progress=100)
    engine = ProgressEngine(test_session)

    with pytest.raises(InconsistentStateError):
        await engine.set_status(task.id, "in_review")

    refreshed = await store.get_task(task.id)
    assert (refreshed.status, refreshed.progress) == ("done", 100)


@pytest.mark.asyncio
async def test_engine_reopen_clears_completed_at(test_session):
    """Test lowering progress on a done task reopens it."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(project.id, "Ship", status="done", progress=100)

    task = await ProgressEngine(test_session).set_progress(task.id, 70)

    assert (task.status, task.progress) == ("in_progress", 70)
    assert task.completed_at is None


@pytest.mark.asyncio
async def test_engine_recalculate_walks_ancestors(test_session):
    """Test logged effort on a grandchild moves every level above it."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    root = await store.create_task(project.id, "Root")
    middle = await store.create_task(project.id, "Middle", parent_task_id=root.id)
    leaf = await store.create_task(
        project.id, "Leaf", parent_task_id=middle.id, estimated_hours=4.0
    )
    await store.create_task(project.id, "Sibling", parent_task_id=root.id)

    await store.create_time_log(leaf.id, 2.0, "first pass")
    await ProgressEngine(test_session).recalculate(leaf.id)

    assert (await store.get_task(leaf.id)).progress == 50
    assert (await store.get_task(middle.id)).progress == 50
    assert (await store.get_task(root.id)).progress == 25


@pytest.mark.asyncio
async def test_engine_reopened_subtask_reopens_completed_parent(test_session):
    """Test a parent completed by its subtasks drops back when one is reopened."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    parent = await store.create_task(project.id, "Launch")
    children = [
        (await store.create_task(project.id, f"Step {i}", parent_task_id=parent.id)).id
        for i in range(3)
    ]
    engine = ProgressEngine(test_session)
    for child_id in children:
        await engine.set_progress(child_id, 100)
    assert ((await store.get_task(parent.id)).status) == "done"

    await engine.set_progress(children[0], 20)
    await engine.set_progress(children[1], 60)

    stored = await store.get_task(parent.id)
    assert (stored.status, stored.progress) == ("in_progress", 60)
    assert stored.completed_at is None
    report = await engine.get_progress(parent.id, now=NOW)
    assert (report.status, report.progress) == ("in_progress", 60)


@pytest.mark.asyncio
async def test_engine_shrunk_time_log_reopens_completed_leaf(test_session):
    """Test a leaf completed by logged hours reopens when the hours shrink."""
    store = TaskStore(test_session)
    project = await store.create_project("Roadmap")
    task = await store.create_task(project.id, "Estimate", estimated_hours=10.0)
    engine = ProgressEngine(test_session)

    log = await store.create_time_log(task.id, 10.0)
    completed = await engine.recalculate(task.id)
    assert (completed.status, completed.progress) == ("done", 100)

    await store.update_time_log(log, hours=3.0)
    reopened = await engine.recalculate(task.id)

    assert (reopened.status, reopened.progress) == ("in_progress", 30)
    assert reopened.completed_at is None
    report = await engine.get_progress(task.id, now=NOW)
    assert report.progress == 30
