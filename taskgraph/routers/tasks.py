"""Task read and progress/status endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.constants import EVENT_TASK_PROGRESS_UPDATED
from taskgraph.database import get_async_session
from taskgraph.logging_config import get_logger
from taskgraph.schemas import UpdateProgressRequest, UpdateStatusRequest
from taskgraph.services.progress import ProgressEngine
from taskgraph.services.task_store import TaskStore
from ._common import publish_event, serialize_progress, serialize_task

logger = get_logger(__name__)
router = APIRouter()


async def _announce(task) -> None:
    await publish_event(
        EVENT_TASK_PROGRESS_UPDATED,
        {
            "projectId": task.project_id,
            "taskId": task.id,
            "status": task.status,
            "progress": task.progress,
        },
    )


@router.get("/tasks/{task_id}")
async def get_task(task_id: str, session: AsyncSession = Depends(get_async_session)):
    task = await TaskStore(session).get_task(task_id)
    return serialize_task(task)


@router.get("/tasks/{task_id}/subtasks")
async def list_subtasks(task_id: str, session: AsyncSession = Depends(get_async_session)):
    store = TaskStore(session)
    await store.get_task(task_id)
    return [serialize_task(t) for t in await store.list_subtasks(task_id)]


@router.get("/tasks/{task_id}/progress")
async def get_progress(task_id: str, session: AsyncSession = Depends(get_async_session)):
    """Derived progress, overdue flag, projected completion and effort variance."""
    report = await ProgressEngine(session).get_progress(task_id)
    return serialize_progress(report)


@router.patch("/tasks/{task_id}/progress")
async def update_progress(
    task_id: str,
    req: UpdateProgressRequest,
    session: AsyncSession = Depends(get_async_session),
):
    """Set progress and/or status; the pair is reconciled before saving."""
    task = await ProgressEngine(session).update(
        task_id, status=req.status, progress=req.progress
    )
    await session.commit()
    await _announce(task)
    return serialize_task(task)


@router.put("/tasks/{task_id}/status")
async def set_status(
    task_id: str,
    req: UpdateStatusRequest,
    session: AsyncSession = Depends(get_async_session),
):
    task = await ProgressEngine(session).set_status(task_id, req.status)
    await session.commit()
    await _announce(task)
    return serialize_task(task)
