"""Request models for the HTTP API."""
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

TaskStatusLiteral = Literal["not_started", "in_progress", "in_review", "done", "blocked"]
DependencyKindLiteral = Literal[
    "finish_to_start", "start_to_start", "finish_to_finish", "start_to_finish"
]


class CreateProjectRequest(BaseModel):
    name: str = Field(min_length=1, max_length=256)
    description: str = ""


class CreateTaskRequest(BaseModel):
    title: str = Field(min_length=1, max_length=512)
    description: str = ""
    parentTaskId: Optional[str] = None
    phaseId: Optional[str] = None
    # Epoch milliseconds
    startAt: Optional[int] = None
    dueAt: Optional[int] = None
    estimatedHours: Optional[float] = Field(default=None, ge=0)


class AddTaskDependencyRequest(BaseModel):
    """Dependency added from the predecessor's side: the path task comes first."""
    successorId: str
    kind: DependencyKindLiteral = "finish_to_start"
    lagDays: int = Field(default=0, ge=0)


class AddProjectDependencyRequest(BaseModel):
    predecessorId: str
    successorId: str
    kind: DependencyKindLiteral = "finish_to_start"
    lagDays: int = Field(default=0, ge=0)


class UpdateDependencyRequest(BaseModel):
    kind: Optional[DependencyKindLiteral] = None
    lagDays: Optional[int] = Field(default=None, ge=0)


class UpdateProgressRequest(BaseModel):
    # Range is checked by the progress engine so it reports out_of_range
    progress: Optional[int] = None
    status: Optional[TaskStatusLiteral] = None

    @model_validator(mode="after")
    def require_one_field(self) -> "UpdateProgressRequest":
        if self.progress is None and self.status is None:
            raise ValueError("Provide progress, status, or both")
        return self


class UpdateStatusRequest(BaseModel):
    status: TaskStatusLiteral


class CreateTimeLogRequest(BaseModel):
    hours: float = Field(gt=0)
    description: str = ""
    loggedAt: Optional[int] = None


class UpdateTimeLogRequest(BaseModel):
    hours: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None
