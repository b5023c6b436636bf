"""Time-log endpoints. Each change moves the task's actual hours and
re-derives its progress."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from taskgraph.database import get_async_session
from taskgraph.logging_config import get_logger
from taskgraph.schemas import CreateTimeLogRequest, UpdateTimeLogRequest
from taskgraph.services.progress import ProgressEngine
from taskgraph.services.task_store import TaskStore
from ._common import serialize_task, serialize_time_log

logger = get_logger(__name__)
router = APIRouter()


@router.get("/tasks/{task_id}/time-logs")
async def list_time_logs(task_id: str, session: AsyncSession = Depends(get_async_session)):
    store = TaskStore(session)
    await store.get_task(task_id)
    return [serialize_time_log(log) for log in await store.list_time_logs(task_id)]


@router.post("/tasks/{task_id}/time-logs", status_code=201)
async def create_time_log(
    task_id: str,
    req: CreateTimeLogRequest,
    session: AsyncSession = Depends(get_async_session),
):
    logger.debug(f"Logging {req.hours}h on task {task_id}")
    log = await TaskStore(session).create_time_log(
        task_id, req.hours, req.description, logged_at=req.loggedAt
    )
    task = await ProgressEngine(session).recalculate(task_id)
    await session.commit()
    return {"time_log": serialize_time_log(log), "task": serialize_task(task)}


@router.patch("/time-logs/{log_id}")
async def update_time_log(
    log_id: str,
    req: UpdateTimeLogRequest,
    session: AsyncSession = Depends(get_async_session),
):
    store = TaskStore(session)
    log = await store.update_time_log(
        await store.get_time_log(log_id), hours=req.hours, description=req.description
    )
    task = await ProgressEngine(session).recalculate(log.task_id)
    await session.commit()
    return {"time_log": serialize_time_log(log), "task": serialize_task(task)}


@router.delete("/time-logs/{log_id}")
async def delete_time_log(log_id: str, session: AsyncSession = Depends(get_async_session)):
    store = TaskStore(session)
    log = await store.get_time_log(log_id)
    task_id = log.task_id
    await store.delete_time_log(log)
    task = await ProgressEngine(session).recalculate(task_id)
    await session.commit()
    return {"status": "removed", "task": serialize_task(task)}
