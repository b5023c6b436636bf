"""Typed failures raised by the task-graph core.

Every error is raised before anything is persisted. The HTTP layer maps
``status_code`` and ``code`` onto the response; library callers can catch
the classes directly.
"""


class TaskGraphError(Exception):
    """Base exception for all taskgraph errors."""

    code = "taskgraph_error"
    status_code = 400

    def __init__(self, message: str, *, details: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, object]:
        return {"detail": self.message, "code": self.code, **self.details}


class NotFoundError(TaskGraphError):
    """Raised when a referenced task, project, edge or time log does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, entity_type: str, identifier: str) -> None:
        super().__init__(
            f"{entity_type} not found: {identifier}",
            details={"entity_type": entity_type, "identifier": identifier},
        )


class ValidationError(TaskGraphError):
    """Raised when input fails a domain rule that the request schema can't express."""

    code = "validation_error"
    status_code = 422


class InvalidEdgeError(TaskGraphError):
    """Raised for a structurally malformed dependency (self-loop, bad kind, negative lag)."""

    code = "invalid_edge"
    status_code = 400


class CrossProjectEdgeError(NotFoundError, InvalidEdgeError):
    """Raised when the two endpoints of a dependency belong to different projects.

    The successor is "not found" within the predecessor's project, and the
    request is also a malformed edge; callers may catch either.
    """

    code = "cross_project_edge"
    status_code = 404

    def __init__(self, predecessor_id: str, successor_id: str) -> None:
        TaskGraphError.__init__(
            self,
            f"Tasks {predecessor_id} and {successor_id} are not in the same project",
            details={"predecessor_id": predecessor_id, "successor_id": successor_id},
        )


class DuplicateEdgeError(TaskGraphError):
    """Raised when an edge with the same (predecessor, successor) pair exists."""

    code = "duplicate_edge"
    status_code = 409

    def __init__(self, predecessor_id: str, successor_id: str) -> None:
        super().__init__(
            f"Dependency {predecessor_id} -> {successor_id} already exists",
            details={"predecessor_id": predecessor_id, "successor_id": successor_id},
        )


class CycleDetectedError(TaskGraphError):
    """Raised when a new edge would close a directed cycle.

    ``path`` runs from the proposed successor back to the proposed predecessor.
    """

    code = "cycle_detected"
    status_code = 409

    def __init__(self, predecessor_id: str, successor_id: str, path: list[str]) -> None:
        super().__init__(
            f"Cannot add dependency {predecessor_id} -> {successor_id}: "
            f"would create a cycle: {' -> '.join(path + [successor_id])}",
            details={
                "predecessor_id": predecessor_id,
                "successor_id": successor_id,
                "path": path,
            },
        )
        self.path = path


class OutOfRangeError(ValidationError):
    """Raised when a progress value falls outside 0..100."""

    code = "out_of_range"
    status_code = 422

    def __init__(self, value: object) -> None:
        super().__init__(
            f"Progress must be between 0 and 100, got {value}",
            details={"value": value},
        )


class InvalidStatusError(ValidationError):
    """Raised for a status outside the known set."""

    code = "invalid_status"

    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown task status: {value}", details={"value": value})


class InconsistentStateError(TaskGraphError):
    """Raised when one update asks for a status and a progress that contradict."""

    code = "inconsistent_state"
    status_code = 409
