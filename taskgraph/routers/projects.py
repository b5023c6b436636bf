"""Project endpoints: creation, task creation, project-wide dependency views."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.constants import (
    EVENT_DEPENDENCY_ADDED,
    EVENT_DEPENDENCY_REMOVED,
    EVENT_DEPENDENCY_UPDATED,
)
from taskgraph.database import get_async_session
from taskgraph.dependencies import get_project_locks
from taskgraph.logging_config import get_logger
from taskgraph.schemas import (
    AddProjectDependencyRequest,
    CreateProjectRequest,
    CreateTaskRequest,
    UpdateDependencyRequest,
)
from taskgraph.services.dependency_graph import DependencyGraphManager
from taskgraph.services.locks import ProjectLockRegistry
from taskgraph.services.task_store import TaskStore
from ._common import (
    publish_event,
    serialize_edge,
    serialize_graph,
    serialize_project,
    serialize_task,
)

logger = get_logger(__name__)
router = APIRouter()


@router.post("/projects/")
async def create_project(
    req: CreateProjectRequest, session: AsyncSession = Depends(get_async_session)
):
    logger.debug(f"Creating project: name={req.name}")
    project = await TaskStore(session).create_project(req.name, req.description)
    await session.commit()
    return serialize_project(project)


@router.get("/projects/{project_id}")
async def get_project(project_id: str, session: AsyncSession = Depends(get_async_session)):
    project = await TaskStore(session).get_project(project_id)
    return serialize_project(project)


@router.post("/projects/{project_id}/tasks")
async def create_task(
    project_id: str,
    req: CreateTaskRequest,
    session: AsyncSession = Depends(get_async_session),
):
    logger.debug(f"Creating task: project_id={project_id}, title={req.title}")
    task = await TaskStore(session).create_task(
        project_id,
        req.title,
        description=req.description,
        parent_task_id=req.parentTaskId,
        phase_id=req.phaseId,
        start_at=req.startAt,
        due_at=req.dueAt,
        estimated_hours=req.estimatedHours,
    )
    await session.commit()
    return serialize_task(task)


@router.get("/projects/{project_id}/tasks")
async def list_tasks(project_id: str, session: AsyncSession = Depends(get_async_session)):
    store = TaskStore(session)
    await store.get_project(project_id)
    return [serialize_task(t) for t in await store.list_project_tasks(project_id)]


@router.get("/projects/{project_id}/dependencies")
async def list_project_dependencies(
    project_id: str, session: AsyncSession = Depends(get_async_session)
):
    edges = await DependencyGraphManager(session).list_project_edges(project_id)
    return [serialize_edge(e) for e in edges]


@router.post("/projects/{project_id}/dependencies", status_code=201)
async def add_project_dependency(
    project_id: str,
    req: AddProjectDependencyRequest,
    session: AsyncSession = Depends(get_async_session),
    locks: ProjectLockRegistry = Depends(get_project_locks),
):
    """Add predecessorId -> successorId; both tasks must belong to the project."""
    edge = await DependencyGraphManager(session, locks).add_edge(
        req.predecessorId,
        req.successorId,
        kind=req.kind,
        lag_days=req.lagDays,
        project_id=project_id,
    )
    await publish_event(EVENT_DEPENDENCY_ADDED, {"projectId": project_id, **serialize_edge(edge)})
    return serialize_edge(edge)


@router.put("/projects/{project_id}/dependencies/{dep_id}")
async def update_project_dependency(
    project_id: str,
    dep_id: str,
    req: UpdateDependencyRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Change the kind and/or lag of an edge in this project."""
    edge = await DependencyGraphManager(session).update_edge(
        dep_id, kind=req.kind, lag_days=req.lagDays, project_id=project_id
    )
    await session.commit()
    await publish_event(
        EVENT_DEPENDENCY_UPDATED, {"projectId": project_id, **serialize_edge(edge)}
    )
    return serialize_edge(edge)


@router.delete("/projects/{project_id}/dependencies/{dep_id}")
async def remove_project_dependency(
    project_id: str, dep_id: str, session: AsyncSession = Depends(get_async_session)
):
    await DependencyGraphManager(session).remove_edge(dep_id, project_id=project_id)
    await session.commit()
    await publish_event(
        EVENT_DEPENDENCY_REMOVED, {"projectId": project_id, "dependencyId": dep_id}
    )
    return {"status": "removed"}


@router.get("/projects/{project_id}/dependency-graph")
async def get_dependency_graph(
    project_id: str, session: AsyncSession = Depends(get_async_session)
):
    """Full dependency graph for visualization."""
    snapshot = await DependencyGraphManager(session).graph_snapshot(project_id)
    return serialize_graph(snapshot)
