"""Persistence for tasks, dependency edges and time logs.

The store is the only module that issues SQL. It never commits: the caller
owns the transaction boundary (the request session, or the graph manager's
critical section).
"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select, update, or_, func, text
from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.constants import STATUS_DONE, STATUS_NOT_STARTED
from taskgraph.errors import NotFoundError
from taskgraph.logging_config import get_logger
from taskgraph.models import Project, Task, DependencyEdge, TimeLog
from taskgraph.utils import now_ms

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubtaskState:
    id: str
    progress: int
    due_at: Optional[int] = None


@dataclass(frozen=True)
class TaskSnapshot:
    """Read-only view of a task with what progress and scheduling need."""

    id: str
    project_id: str
    parent_task_id: Optional[str]
    status: str
    progress: int
    start_at: Optional[int]
    due_at: Optional[int]
    estimated_hours: Optional[float]
    actual_hours: float
    subtasks: tuple[SubtaskState, ...] = field(default_factory=tuple)


class TaskStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Projects ─────────────────────────────────────────────────────────

    async def create_project(self, name: str, description: str = "") -> Project:
        now = now_ms()
        project = Project(
            id=Project.generate_id(),
            name=name,
            description=description,
            created_at=now,
            updated_at=now,
        )
        self.session.add(project)
        await self.session.flush()
        return project

    async def get_project(self, project_id: str) -> Project:
        result = await self.session.execute(
            select(Project).where(Project.id == project_id)
        )
        project = result.scalar_one_or_none()
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    async def lock_project(self, project_id: str) -> Project:
        """Row-lock the project for the rest of the transaction.

        FOR UPDATE is honoured by PostgreSQL and ignored by SQLite, which is
        serialized by ``begin_immediate`` instead.
        """
        result = await self.session.execute(
            select(Project).where(Project.id == project_id).with_for_update()
        )
        project = result.scalar_one_or_none()
        if not project:
            raise NotFoundError("Project", project_id)
        return project

    async def begin_immediate(self) -> None:
        """Open a SQLite transaction that already holds the database write lock.

        A plain BEGIN only locks at the first write, which lets two processes
        read the same edge set before either inserts.
        """
        await self.session.execute(text("BEGIN IMMEDIATE"))

    # ── Tasks ────────────────────────────────────────────────────────────

    async def create_task(
        self,
        project_id: str,
        title: str,
        *,
        description: str = "",
        parent_task_id: Optional[str] = None,
        phase_id: Optional[str] = None,
        status: str = STATUS_NOT_STARTED,
        progress: int = 0,
        start_at: Optional[int] = None,
        due_at: Optional[int] = None,
        estimated_hours: Optional[float] = None,
    ) -> Task:
        await self.get_project(project_id)
        if parent_task_id is not None:
            parent = await self.get_task(parent_task_id)
            if parent.project_id != project_id:
                raise NotFoundError("Task", parent_task_id)

        now = now_ms()
        task = Task(
            id=Task.generate_id(),
            project_id=project_id,
            parent_task_id=parent_task_id,
            phase_id=phase_id,
            title=title,
            description=description,
            status=status,
            progress=progress,
            start_at=start_at,
            due_at=due_at,
            estimated_hours=estimated_hours,
            actual_hours=0.0,
            created_at=now,
            updated_at=now,
            completed_at=now if status == STATUS_DONE else None,
        )
        self.session.add(task)
        await self.session.flush()
        return task

    async def get_task(self, task_id: str) -> Task:
        result = await self.session.execute(select(Task).where(Task.id == task_id))
        task = result.scalar_one_or_none()
        if not task:
            raise NotFoundError("Task", task_id)
        return task

    async def get_tasks(self, task_ids: list[str]) -> dict[str, Task]:
        if not task_ids:
            return {}
        result = await self.session.execute(select(Task).where(Task.id.in_(task_ids)))
        return {t.id: t for t in result.scalars().all()}

    async def list_project_tasks(self, project_id: str) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.created_at, Task.id)
        )
        return list(result.scalars().all())

    async def list_subtasks(self, task_id: str) -> list[Task]:
        result = await self.session.execute(
            select(Task)
            .where(Task.parent_task_id == task_id)
            .order_by(Task.created_at, Task.id)
        )
        return list(result.scalars().all())

    async def get_task_snapshot(self, task_id: str) -> TaskSnapshot:
        task = await self.get_task(task_id)
        result = await self.session.execute(
            select(Task.id, Task.progress, Task.due_at)
            .where(Task.parent_task_id == task_id)
            .order_by(Task.created_at, Task.id)
        )
        subtasks = tuple(
            SubtaskState(id=row.id, progress=row.progress, due_at=row.due_at)
            for row in result.all()
        )
        return TaskSnapshot(
            id=task.id,
            project_id=task.project_id,
            parent_task_id=task.parent_task_id,
            status=task.status,
            progress=task.progress,
            start_at=task.start_at,
            due_at=task.due_at,
            estimated_hours=task.estimated_hours,
            actual_hours=task.actual_hours or 0.0,
            subtasks=subtasks,
        )

    async def save_status_progress(self, task: Task, status: str, progress: int) -> Task:
        """Persist a reconciled (status, progress) pair."""
        now = now_ms()
        if status == STATUS_DONE and task.status != STATUS_DONE:
            task.completed_at = now
        elif status != STATUS_DONE:
            task.completed_at = None
        task.status = status
        task.progress = progress
        task.updated_at = now
        await self.session.flush()
        return task

    async def adjust_actual_hours(self, task_id: str, delta: float) -> float:
        """Atomically add ``delta`` hours (may be negative) to the accumulator.

        Runs as a single UPDATE so concurrent log writers never lose an
        increment. The total never drops below zero.
        """
        result = await self.session.execute(
            update(Task)
            .where(Task.id == task_id)
            .values(actual_hours=self._clamped_sum(delta), updated_at=now_ms())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Task", task_id)

        # Reload so an instance already in the session sees the new total
        reloaded = await self.session.execute(
            select(Task)
            .where(Task.id == task_id)
            .execution_options(populate_existing=True)
        )
        return float(reloaded.scalar_one().actual_hours)

    def _clamped_sum(self, delta: float):
        total = Task.actual_hours + delta
        if self.session.get_bind().dialect.name == "sqlite":
            return func.max(total, 0.0)
        return func.greatest(total, 0.0)

    # ── Dependency edges ─────────────────────────────────────────────────

    async def list_project_edges(self, project_id: str) -> list[DependencyEdge]:
        result = await self.session.execute(
            select(DependencyEdge)
            .where(DependencyEdge.project_id == project_id)
            .order_by(DependencyEdge.created_at, DependencyEdge.id)
        )
        return list(result.scalars().all())

    async def find_edge(
        self, predecessor_id: str, successor_id: str
    ) -> Optional[DependencyEdge]:
        result = await self.session.execute(
            select(DependencyEdge).where(
                DependencyEdge.predecessor_id == predecessor_id,
                DependencyEdge.successor_id == successor_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_edge(self, edge_id: str) -> DependencyEdge:
        result = await self.session.execute(
            select(DependencyEdge).where(DependencyEdge.id == edge_id)
        )
        edge = result.scalar_one_or_none()
        if not edge:
            raise NotFoundError("Dependency", edge_id)
        return edge

    async def insert_edge(
        self,
        project_id: str,
        predecessor_id: str,
        successor_id: str,
        kind: str,
        lag_days: int,
    ) -> DependencyEdge:
        edge = DependencyEdge(
            id=DependencyEdge.generate_id(),
            project_id=project_id,
            predecessor_id=predecessor_id,
            successor_id=successor_id,
            kind=kind,
            lag_days=lag_days,
            created_at=now_ms(),
        )
        self.session.add(edge)
        await self.session.flush()
        return edge

    async def update_edge(
        self,
        edge: DependencyEdge,
        *,
        kind: Optional[str] = None,
        lag_days: Optional[int] = None,
    ) -> DependencyEdge:
        if kind is not None:
            edge.kind = kind
        if lag_days is not None:
            edge.lag_days = lag_days
        await self.session.flush()
        return edge

    async def delete_edge(self, edge: DependencyEdge) -> None:
        await self.session.delete(edge)
        await self.session.flush()

    async def edges_for_task(self, task_id: str) -> list[DependencyEdge]:
        result = await self.session.execute(
            select(DependencyEdge)
            .where(
                or_(
                    DependencyEdge.predecessor_id == task_id,
                    DependencyEdge.successor_id == task_id,
                )
            )
            .order_by(DependencyEdge.created_at, DependencyEdge.id)
        )
        return list(result.scalars().all())

    # ── Time logs ────────────────────────────────────────────────────────

    async def create_time_log(
        self,
        task_id: str,
        hours: float,
        description: str = "",
        logged_at: Optional[int] = None,
    ) -> TimeLog:
        await self.get_task(task_id)
        now = now_ms()
        log = TimeLog(
            id=TimeLog.generate_id(),
            task_id=task_id,
            hours=hours,
            description=description,
            logged_at=logged_at if logged_at is not None else now,
            created_at=now,
            updated_at=now,
        )
        self.session.add(log)
        await self.session.flush()
        await self.adjust_actual_hours(task_id, hours)
        return log

    async def get_time_log(self, log_id: str) -> TimeLog:
        result = await self.session.execute(select(TimeLog).where(TimeLog.id == log_id))
        log = result.scalar_one_or_none()
        if not log:
            raise NotFoundError("TimeLog", log_id)
        return log

    async def list_time_logs(self, task_id: str) -> list[TimeLog]:
        result = await self.session.execute(
            select(TimeLog)
            .where(TimeLog.task_id == task_id)
            .order_by(TimeLog.logged_at, TimeLog.id)
        )
        return list(result.scalars().all())

    async def update_time_log(
        self,
        log: TimeLog,
        *,
        hours: Optional[float] = None,
        description: Optional[str] = None,
    ) -> TimeLog:
        if hours is not None and hours != log.hours:
            await self.adjust_actual_hours(log.task_id, hours - log.hours)
            log.hours = hours
        if description is not None:
            log.description = description
        log.updated_at = now_ms()
        await self.session.flush()
        return log

    async def delete_time_log(self, log: TimeLog) -> None:
        task_id, hours = log.task_id, log.hours
        await self.session.delete(log)
        await self.session.flush()
        await self.adjust_actual_hours(task_id, -hours)
