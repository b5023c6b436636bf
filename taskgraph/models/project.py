"""Project, task, dependency and time-log models."""

from typing import Optional
from sqlalchemy import (
    String,
    Text,
    Integer,
    BigInteger,
    Float,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskgraph.models.base import (
    Base,
    PrefixedIdMixin,
    TimestampMixin,
    TimestampWithCompletedMixin,
)


class Project(PrefixedIdMixin, Base, TimestampMixin):
    """Project entity. Only what is needed to scope tasks and edges."""

    __tablename__ = "projects"
    _id_prefix = "proj_"

    name: Mapped[str] = mapped_column(String(256), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Relationships
    tasks: Mapped[list["Task"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )
    dependency_edges: Mapped[list["DependencyEdge"]] = relationship(
        back_populates="project", cascade="all, delete-orphan"
    )


class Task(PrefixedIdMixin, Base, TimestampWithCompletedMixin):
    """Task entity.

    ``status`` and ``progress`` overlap: either may be edited
    on its own, and the progress engine keeps ``status == "done"`` in step
    with ``progress == 100``.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_project", "project_id"),
        Index("idx_tasks_parent", "parent_task_id"),
        Index("idx_tasks_status", "status"),
        CheckConstraint("progress >= 0 AND progress <= 100", name="ck_task_progress"),
    )
    _id_prefix = "task_"

    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    # Phases live outside this service; the id is carried as an opaque label.
    phase_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    parent_task_id: Mapped[Optional[str]] = mapped_column(
        String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(512), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="not_started"
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    start_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    due_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    estimated_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    # Only ever changed through TaskStore.adjust_actual_hours
    actual_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="tasks")
    subtasks: Mapped[list["Task"]] = relationship(
        back_populates="parent", cascade="all, delete-orphan"
    )
    parent: Mapped[Optional["Task"]] = relationship(
        back_populates="subtasks", remote_side="Task.id"
    )
    time_logs: Mapped[list["TimeLog"]] = relationship(
        back_populates="task", cascade="all, delete-orphan"
    )


class DependencyEdge(PrefixedIdMixin, Base):
    """Precedence edge: ``predecessor_id`` relates to ``successor_id`` per ``kind``.

    ``kind`` and ``lag_days`` are descriptive; no dates are pushed along edges.
    """

    __tablename__ = "dependency_edges"
    __table_args__ = (
        Index("idx_deps_project", "project_id"),
        Index("idx_deps_predecessor", "predecessor_id"),
        Index("idx_deps_successor", "successor_id"),
        UniqueConstraint("predecessor_id", "successor_id", name="uq_dependency_edge"),
        CheckConstraint("predecessor_id <> successor_id", name="ck_dependency_no_self_loop"),
        CheckConstraint("lag_days >= 0", name="ck_dependency_lag"),
    )
    _id_prefix = "dep_"

    project_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    predecessor_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    successor_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    kind: Mapped[str] = mapped_column(
        String(32), nullable=False, default="finish_to_start"
    )
    lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relationships
    project: Mapped["Project"] = relationship(back_populates="dependency_edges")


class TimeLog(PrefixedIdMixin, Base, TimestampMixin):
    """Hours logged against a task; mirrored into Task.actual_hours."""

    __tablename__ = "time_logs"
    __table_args__ = (Index("idx_time_logs_task", "task_id"),)
    _id_prefix = "log_"

    task_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False
    )
    hours: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    logged_at: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Relationships
    task: Mapped["Task"] = relationship(back_populates="time_logs")
