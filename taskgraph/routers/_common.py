"""Shared serializers and helpers for the routers."""

from __future__ import annotations

import json
from typing import Optional

from taskgraph import dependencies
from taskgraph.config import settings
from taskgraph.logging_config import get_logger
from taskgraph.models import Project, Task, DependencyEdge, TimeLog
from taskgraph.services.dependency_graph import GraphSnapshot, TaskDependencies
from taskgraph.services.progress import ProgressReport
from taskgraph.utils import now_ms

logger = get_logger(__name__)

__all__ = [
    "serialize_project",
    "serialize_task",
    "serialize_edge",
    "serialize_task_dependencies",
    "serialize_graph",
    "serialize_progress",
    "serialize_time_log",
    "publish_event",
]


# ══════════════════════════════════════════════════════════════════════════
# SERIALIZERS
# ══════════════════════════════════════════════════════════════════════════


def serialize_project(project: Project) -> dict:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "created_at": project.created_at,
        "updated_at": project.updated_at,
    }


def serialize_task(task: Task) -> dict:
    """Serialize a Task model to dict."""
    return {
        "id": task.id,
        "project_id": task.project_id,
        "phase_id": task.phase_id,
        "parent_task_id": task.parent_task_id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "progress": task.progress,
        "start_at": task.start_at,
        "due_at": task.due_at,
        "estimated_hours": task.estimated_hours,
        "actual_hours": task.actual_hours,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
        "completed_at": task.completed_at,
    }


def _task_summary(task: Optional[Task]) -> Optional[dict]:
    if task is None:
        return None
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status,
        "due_at": task.due_at,
    }


def serialize_edge(edge: DependencyEdge) -> dict:
    return {
        "id": edge.id,
        "project_id": edge.project_id,
        "predecessor_id": edge.predecessor_id,
        "successor_id": edge.successor_id,
        "kind": edge.kind,
        "lag_days": edge.lag_days,
        "created_at": edge.created_at,
    }


def serialize_task_dependencies(deps: TaskDependencies) -> dict:
    return {
        "task_id": deps.task_id,
        "predecessors": [
            {**serialize_edge(e), "predecessor": _task_summary(deps.related.get(e.predecessor_id))}
            for e in deps.predecessors
        ],
        "successors": [
            {**serialize_edge(e), "successor": _task_summary(deps.related.get(e.successor_id))}
            for e in deps.successors
        ],
    }


def serialize_graph(snapshot: GraphSnapshot) -> dict:
    return {
        "project_id": snapshot.project_id,
        "nodes": [
            {
                "id": t.id,
                "title": t.title,
                "status": t.status,
                "progress": t.progress,
                "estimated_hours": t.estimated_hours,
            }
            for t in snapshot.tasks
        ],
        "edges": [serialize_edge(e) for e in snapshot.edges],
        "topological_order": snapshot.topological_order,
        "critical_path": snapshot.critical_path,
        "critical_path_hours": snapshot.critical_path_hours,
    }


def serialize_progress(report: ProgressReport) -> dict:
    return {
        "task_id": report.task_id,
        "progress": report.progress,
        "status": report.status,
        "is_overdue": report.is_overdue,
        "projected_completion": report.projected_completion,
        "effort_variance_percent": report.effort_variance_percent,
        "subtasks": [
            {"id": s.id, "progress": s.progress, "is_overdue": s.is_overdue}
            for s in report.subtasks
        ],
    }


def serialize_time_log(log: TimeLog) -> dict:
    return {
        "id": log.id,
        "task_id": log.task_id,
        "hours": log.hours,
        "description": log.description,
        "logged_at": log.logged_at,
        "created_at": log.created_at,
        "updated_at": log.updated_at,
    }


# ══════════════════════════════════════════════════════════════════════════
# EVENTS
# ══════════════════════════════════════════════════════════════════════════


async def publish_event(event_type: str, data: dict) -> None:
    """Publish event to the event stream for real-time consumers. Best effort."""
    if not dependencies.redis_client:
        return
    try:
        logger.debug(f"Publishing event: type={event_type}")
        event = {"type": event_type, **data, "timestamp": now_ms()}
        await dependencies.redis_client.xadd(
            settings.event_stream, {"data": json.dumps(event)}
        )
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} event: {e}")
