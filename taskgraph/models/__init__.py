"""SQLAlchemy ORM models for taskgraph."""

from taskgraph.models.base import (
    Base,
    TimestampMixin,
    TimestampWithCompletedMixin,
    PrefixedIdMixin,
    now_ms,
)
from taskgraph.models.project import (
    Project,
    Task,
    DependencyEdge,
    TimeLog,
)

__all__ = [
    "Base",
    "TimestampMixin",
    "TimestampWithCompletedMixin",
    "PrefixedIdMixin",
    "now_ms",
    "Project",
    "Task",
    "DependencyEdge",
    "TimeLog",
]
