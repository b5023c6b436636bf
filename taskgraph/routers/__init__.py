"""HTTP endpoints.

The endpoints are split across:
- projects.py: project and task creation, project-wide dependency views
- tasks.py: task reads and progress/status updates
- dependencies.py: dependencies addressed from a task
- time_logs.py: logged effort
"""

from fastapi import APIRouter

from .projects import router as projects_router
from .tasks import router as tasks_router
from .dependencies import router as dependencies_router
from .time_logs import router as time_logs_router

router = APIRouter()

router.include_router(projects_router, tags=["projects"])
router.include_router(tasks_router, tags=["tasks"])
router.include_router(dependencies_router, tags=["dependencies"])
router.include_router(time_logs_router, tags=["time-logs"])

__all__ = ["router"]
