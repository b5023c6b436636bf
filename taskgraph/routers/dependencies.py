"""Task dependency endpoints, addressed from a task."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.constants import EVENT_DEPENDENCY_ADDED, EVENT_DEPENDENCY_REMOVED
from taskgraph.database import get_async_session
from taskgraph.dependencies import get_project_locks
from taskgraph.logging_config import get_logger
from taskgraph.schemas import AddTaskDependencyRequest
from taskgraph.services.dependency_graph import DependencyGraphManager
from taskgraph.services.locks import ProjectLockRegistry
from ._common import publish_event, serialize_edge, serialize_task_dependencies

logger = get_logger(__name__)
router = APIRouter()


@router.get("/tasks/{task_id}/dependencies")
async def get_dependencies(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Predecessor and successor edges of a task."""
    deps = await DependencyGraphManager(session).list_edges(task_id)
    return serialize_task_dependencies(deps)


@router.post("/tasks/{task_id}/dependencies", status_code=201)
async def add_dependency(
    task_id: str,
    req: AddTaskDependencyRequest,
    session: AsyncSession = Depends(get_async_session),
    locks: ProjectLockRegistry = Depends(get_project_locks),
):
    """Add a dependency: task_id must precede successorId."""
    edge = await DependencyGraphManager(session, locks).add_edge(
        task_id, req.successorId, kind=req.kind, lag_days=req.lagDays
    )
    await publish_event(
        EVENT_DEPENDENCY_ADDED, {"projectId": edge.project_id, **serialize_edge(edge)}
    )
    return serialize_edge(edge)


@router.delete("/tasks/{task_id}/dependencies/{dep_id}")
async def remove_dependency(
    task_id: str, dep_id: str, session: AsyncSession = Depends(get_async_session)
):
    edge = await DependencyGraphManager(session).remove_edge(dep_id, task_id=task_id)
    await session.commit()
    await publish_event(
        EVENT_DEPENDENCY_REMOVED, {"projectId": edge.project_id, "dependencyId": dep_id}
    )
    return {"status": "removed"}
