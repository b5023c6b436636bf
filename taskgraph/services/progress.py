"""Progress derivation and status/progress reconciliation.

A task with subtasks takes the rounded mean of its direct subtasks' current
progress. A leaf task takes its logged-versus-estimated effort ratio, capped
at 100, or keeps its stored value when it has no estimate to divide by.

``status`` and ``progress`` are edited independently, so every explicit
update goes through ``reconcile`` to keep ``done`` and ``100`` together.
"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.constants import (
    PROGRESS_MAX,
    PROGRESS_MIN,
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    TASK_STATUSES,
)
from taskgraph.errors import (
    InconsistentStateError,
    InvalidStatusError,
    OutOfRangeError,
)
from taskgraph.logging_config import get_logger
from taskgraph.models import Task
from taskgraph.services.schedule import effort_variance, project_completion
from taskgraph.services.task_store import TaskSnapshot, TaskStore
from taskgraph.utils import now_ms, round_half_up

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubtaskProgress:
    id: str
    progress: int
    is_overdue: bool


@dataclass(frozen=True)
class ProgressReport:
    task_id: str
    progress: int
    status: str
    is_overdue: bool
    # Epoch ms, or None when there is nothing to extrapolate from
    projected_completion: Optional[int]
    effort_variance_percent: int
    subtasks: tuple[SubtaskProgress, ...] = field(default_factory=tuple)


def validate_progress(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise OutOfRangeError(value)
    if value < PROGRESS_MIN or value > PROGRESS_MAX:
        raise OutOfRangeError(value)
    return value


def validate_status(value: object) -> str:
    if value not in TASK_STATUSES:
        raise InvalidStatusError(value)
    return value


def derive_progress(snapshot: TaskSnapshot) -> int:
    if snapshot.subtasks:
        total = sum(s.progress for s in snapshot.subtasks)
        return round_half_up(total / len(snapshot.subtasks))

    if not snapshot.estimated_hours:
        return snapshot.progress

    ratio = round_half_up(snapshot.actual_hours / snapshot.estimated_hours * 100)
    return min(PROGRESS_MAX, ratio)


def normalize(status: str, progress: int) -> tuple[str, int]:
    """Bring the stored status in line with a derived progress value.

    Reaching 100 makes a task ``done``; a ``done`` task whose subtasks or
    logged hours fall back below 100 reopens as ``in_progress``.
    """
    if progress >= PROGRESS_MAX:
        return STATUS_DONE, PROGRESS_MAX
    if status == STATUS_DONE:
        return STATUS_IN_PROGRESS, progress
    return status, progress


def reconcile(
    status: str,
    progress: int,
    *,
    new_status: Optional[str] = None,
    new_progress: Optional[int] = None,
) -> tuple[str, int]:
    """Apply an explicit update to the current (status, progress) pair.

    Raises OutOfRangeError, InvalidStatusError or InconsistentStateError
    without side effects.
    """
    if new_progress is not None:
        validate_progress(new_progress)
    if new_status is not None:
        validate_status(new_status)
    if new_status is None and new_progress is None:
        return status, progress

    if new_status is not None and new_progress is not None:
        if (new_status == STATUS_DONE) != (new_progress == PROGRESS_MAX):
            raise InconsistentStateError(
                f"Status {new_status!r} contradicts progress {new_progress}",
                details={"status": new_status, "progress": new_progress},
            )
        return new_status, new_progress

    if new_progress is not None:
        if new_progress == PROGRESS_MAX:
            return STATUS_DONE, PROGRESS_MAX
        if status == STATUS_DONE:
            # Lowering progress reopens the task
            return STATUS_IN_PROGRESS, new_progress
        return status, new_progress

    if new_status == STATUS_DONE:
        return STATUS_DONE, PROGRESS_MAX
    if progress == PROGRESS_MAX:
        raise InconsistentStateError(
            f"Task is at {PROGRESS_MAX}% progress; reopening it as {new_status!r} "
            "requires a progress below 100 in the same update",
            details={"status": new_status, "progress": progress},
        )
    return new_status, progress


def is_overdue(due_at: Optional[int], progress: int, now: int) -> bool:
    return due_at is not None and due_at < now and progress < PROGRESS_MAX


class ProgressEngine:
    def __init__(self, session: AsyncSession):
        self.session = session
        self.store = TaskStore(session)

    async def get_progress(self, task_id: str, now: Optional[int] = None) -> ProgressReport:
        """Derive a task's progress and schedule figures. Read-only."""
        now = now if now is not None else now_ms()
        snapshot = await self.store.get_task_snapshot(task_id)
        status, progress = normalize(snapshot.status, derive_progress(snapshot))

        return ProgressReport(
            task_id=snapshot.id,
            progress=progress,
            status=status,
            is_overdue=is_overdue(snapshot.due_at, progress, now),
            projected_completion=project_completion(
                progress,
                snapshot.estimated_hours,
                snapshot.actual_hours,
                snapshot.start_at,
                now,
            ),
            effort_variance_percent=effort_variance(
                snapshot.estimated_hours, snapshot.actual_hours
            ),
            subtasks=tuple(
                SubtaskProgress(
                    id=s.id,
                    progress=s.progress,
                    is_overdue=is_overdue(s.due_at, s.progress, now),
                )
                for s in snapshot.subtasks
            ),
        )

    async def set_progress(self, task_id: str, progress: int) -> Task:
        return await self.update(task_id, progress=progress)

    async def set_status(self, task_id: str, status: str) -> Task:
        return await self.update(task_id, status=status)

    async def update(
        self,
        task_id: str,
        status: Optional[str] = None,
        progress: Optional[int] = None,
    ) -> Task:
        """Explicit edit of status and/or progress, reconciled before saving."""
        logger.debug(f"Updating task {task_id}: status={status}, progress={progress}")
        if progress is not None:
            validate_progress(progress)
        if status is not None:
            validate_status(status)

        task = await self.store.get_task(task_id)
        new_status, new_progress = reconcile(
            task.status, task.progress, new_status=status, new_progress=progress
        )
        if (new_status, new_progress) != (task.status, task.progress):
            await self.store.save_status_progress(task, new_status, new_progress)
            logger.info(f"Task {task_id} now {new_status} at {new_progress}%")

        await self._refresh_ancestors(task.parent_task_id, seen={task.id})
        return task

    async def recalculate(self, task_id: str) -> Task:
        """Persist the derived progress of a task, then of each ancestor.

        Used after logged effort changes. Each level reads its children's
        cached values; nothing below the task is recomputed.
        """
        task = await self._persist_derived(task_id)
        await self._refresh_ancestors(task.parent_task_id, seen={task.id})
        return task

    async def _persist_derived(self, task_id: str) -> Task:
        snapshot = await self.store.get_task_snapshot(task_id)
        task = await self.store.get_task(task_id)
        status, progress = normalize(snapshot.status, derive_progress(snapshot))
        if (status, progress) != (task.status, task.progress):
            await self.store.save_status_progress(task, status, progress)
            logger.info(f"Recalculated task {task_id}: {status} at {progress}%")
        return task

    async def _refresh_ancestors(self, parent_id: Optional[str], seen: set[str]) -> None:
        while parent_id is not None and parent_id not in seen:
            seen.add(parent_id)
            parent = await self._persist_derived(parent_id)
            parent_id = parent.parent_task_id
