"""Dependency graph, progress and schedule services."""

from taskgraph.services.dependency_graph import (
    DependencyGraphManager,
    GraphSnapshot,
    TaskDependencies,
)
from taskgraph.services.progress import ProgressEngine, ProgressReport
from taskgraph.services.task_store import TaskSnapshot, TaskStore

__all__ = [
    "DependencyGraphManager",
    "GraphSnapshot",
    "TaskDependencies",
    "ProgressEngine",
    "ProgressReport",
    "TaskSnapshot",
    "TaskStore",
]
