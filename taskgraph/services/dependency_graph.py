"""Dependency graph manager: the single gatekeeper for edge mutations.

Acyclicity is enforced here and only here. An insertion reads the project's
edges, checks reachability and writes the edge while holding the project's
lock, so two concurrent insertions that are each acyclic on their own can't
interleave into a cycle. Across processes the project row lock (PostgreSQL)
or an immediate transaction (SQLite) extends that guarantee.
"""
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.constants import DEPENDENCY_KINDS, FINISH_TO_START
from taskgraph.errors import (
    CrossProjectEdgeError,
    CycleDetectedError,
    DuplicateEdgeError,
    InvalidEdgeError,
    NotFoundError,
)
from taskgraph.logging_config import get_logger
from taskgraph.models import DependencyEdge, Task
from taskgraph.services.cycle_detector import (
    build_adjacency,
    topological_order,
    would_create_cycle,
)
from taskgraph.services.locks import ProjectLockRegistry, project_locks
from taskgraph.services.task_store import TaskStore

logger = get_logger(__name__)


@dataclass
class TaskDependencies:
    """Edges touching one task, split by direction."""

    task_id: str
    # Edges ending at the task: their predecessor_id must come first
    predecessors: list[DependencyEdge] = field(default_factory=list)
    # Edges starting at the task
    successors: list[DependencyEdge] = field(default_factory=list)
    # The tasks on the other end of each edge, by id
    related: dict[str, Task] = field(default_factory=dict)


@dataclass
class GraphSnapshot:
    project_id: str
    tasks: list[Task]
    edges: list[DependencyEdge]
    topological_order: list[str]
    critical_path: list[str]
    critical_path_hours: float


def _validate_kind(kind: str) -> None:
    if kind not in DEPENDENCY_KINDS:
        raise InvalidEdgeError(
            f"Unknown dependency kind: {kind}",
            details={"kind": kind, "allowed": list(DEPENDENCY_KINDS)},
        )


def _validate_lag(lag_days: int) -> None:
    if lag_days < 0:
        raise InvalidEdgeError(
            "Lag must be zero or more days", details={"lag_days": lag_days}
        )


class DependencyGraphManager:
    def __init__(
        self, session: AsyncSession, locks: ProjectLockRegistry = project_locks
    ):
        self.session = session
        self.store = TaskStore(session)
        self.locks = locks

    async def add_edge(
        self,
        predecessor_id: str,
        successor_id: str,
        kind: str = FINISH_TO_START,
        lag_days: int = 0,
        project_id: Optional[str] = None,
    ) -> DependencyEdge:
        """Validate and persist ``predecessor -> successor``.

        Commits on success. When ``project_id`` is given, both tasks must
        belong to it.
        """
        logger.debug(
            f"Adding dependency: {predecessor_id} -> {successor_id}, kind={kind}, lag={lag_days}"
        )
        if predecessor_id == successor_id:
            raise InvalidEdgeError(
                "A task cannot depend on itself", details={"task_id": predecessor_id}
            )
        _validate_kind(kind)
        _validate_lag(lag_days)

        tasks = await self.store.get_tasks([predecessor_id, successor_id])
        for task_id in (predecessor_id, successor_id):
            task = tasks.get(task_id)
            if task is None or (project_id is not None and task.project_id != project_id):
                raise NotFoundError("Task", task_id)
        predecessor, successor = tasks[predecessor_id], tasks[successor_id]
        if predecessor.project_id != successor.project_id:
            raise CrossProjectEdgeError(predecessor_id, successor_id)

        scope = predecessor.project_id
        async with self.locks.hold(scope):
            await self._begin_write()
            try:
                await self.store.lock_project(scope)
                if await self.store.find_edge(predecessor_id, successor_id):
                    raise DuplicateEdgeError(predecessor_id, successor_id)

                edges = await self.store.list_project_edges(scope)
                path = would_create_cycle(
                    ((e.predecessor_id, e.successor_id) for e in edges),
                    predecessor_id,
                    successor_id,
                )
                if path:
                    raise CycleDetectedError(predecessor_id, successor_id, path)

                edge = await self.store.insert_edge(
                    scope, predecessor_id, successor_id, kind, lag_days
                )
                await self.session.commit()
            except IntegrityError:
                # Another process inserted the same pair between check and write
                await self.session.rollback()
                if await self.store.find_edge(predecessor_id, successor_id):
                    raise DuplicateEdgeError(predecessor_id, successor_id)
                raise
            except (DuplicateEdgeError, CycleDetectedError) as exc:
                await self.session.rollback()
                logger.warning(f"Rejected dependency {predecessor_id} -> {successor_id}: {exc.code}")
                raise

        logger.info(f"Added dependency {edge.id}: {predecessor_id} -> {successor_id} ({kind})")
        return edge

    async def _begin_write(self) -> None:
        if self.session.get_bind().dialect.name != "sqlite":
            return
        # End the read transaction left by validation before taking the write lock
        await self.session.commit()
        await self.store.begin_immediate()

    async def remove_edge(
        self,
        edge_id: str,
        project_id: Optional[str] = None,
        task_id: Optional[str] = None,
    ) -> DependencyEdge:
        """Delete an edge. Removal can't create a cycle, so no lock is taken.

        ``project_id`` / ``task_id`` scope the lookup: an edge outside the
        scope is reported as not found.
        """
        logger.debug(f"Removing dependency: edge_id={edge_id}")
        edge = await self.store.get_edge(edge_id)
        if project_id is not None and edge.project_id != project_id:
            raise NotFoundError("Dependency", edge_id)
        if task_id is not None and task_id not in (edge.predecessor_id, edge.successor_id):
            raise NotFoundError("Dependency", edge_id)
        await self.store.delete_edge(edge)
        logger.info(f"Removed dependency {edge_id}")
        return edge

    async def update_edge(
        self,
        edge_id: str,
        kind: Optional[str] = None,
        lag_days: Optional[int] = None,
        project_id: Optional[str] = None,
    ) -> DependencyEdge:
        """Change an edge's kind and/or lag. The endpoints never change, so
        acyclicity can't be affected."""
        logger.debug(f"Updating dependency {edge_id}: kind={kind}, lag={lag_days}")
        if kind is not None:
            _validate_kind(kind)
        if lag_days is not None:
            _validate_lag(lag_days)

        edge = await self.store.get_edge(edge_id)
        if project_id is not None and edge.project_id != project_id:
            raise NotFoundError("Dependency", edge_id)
        await self.store.update_edge(edge, kind=kind, lag_days=lag_days)
        logger.info(f"Updated dependency {edge_id}: {edge.kind}, lag={edge.lag_days}")
        return edge

    async def list_edges(self, task_id: str) -> TaskDependencies:
        await self.store.get_task(task_id)
        deps = TaskDependencies(task_id=task_id)
        for edge in await self.store.edges_for_task(task_id):
            if edge.successor_id == task_id:
                deps.predecessors.append(edge)
            else:
                deps.successors.append(edge)

        other_ids = [e.predecessor_id for e in deps.predecessors]
        other_ids += [e.successor_id for e in deps.successors]
        deps.related = await self.store.get_tasks(other_ids)
        return deps

    async def list_project_edges(self, project_id: str) -> list[DependencyEdge]:
        await self.store.get_project(project_id)
        return await self.store.list_project_edges(project_id)

    async def graph_snapshot(self, project_id: str) -> GraphSnapshot:
        """Nodes, edges, a topological order and the longest chain by estimate.

        The critical path follows finish-to-start edges only and weighs each
        task by its estimated hours (1 when unestimated). It is advisory.
        """
        await self.store.get_project(project_id)
        tasks = await self.store.list_project_tasks(project_id)
        edges = await self.store.list_project_edges(project_id)

        task_ids = [t.id for t in tasks]
        order = topological_order(task_ids, [(e.predecessor_id, e.successor_id) for e in edges])

        hours = {t.id: (t.estimated_hours or 1.0) for t in tasks}
        adj = build_adjacency(
            (e.predecessor_id, e.successor_id) for e in edges if e.kind == FINISH_TO_START
        )
        dist = dict(hours)
        prev: dict[str, Optional[str]] = {tid: None for tid in task_ids}
        for node in order:
            for neighbor in adj.get(node, []):
                if dist[node] + hours[neighbor] > dist[neighbor]:
                    dist[neighbor] = dist[node] + hours[neighbor]
                    prev[neighbor] = node

        critical_path: list[str] = []
        end = max(order, key=lambda tid: dist[tid]) if order else None
        current = end
        while current:
            critical_path.insert(0, current)
            current = prev[current]

        return GraphSnapshot(
            project_id=project_id,
            tasks=tasks,
            edges=edges,
            topological_order=order,
            critical_path=critical_path,
            critical_path_hours=dist[end] if end else 0.0,
        )
