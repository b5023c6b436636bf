"""Shared constants for the taskgraph service."""

# Task statuses
STATUS_NOT_STARTED = "not_started"
STATUS_IN_PROGRESS = "in_progress"
STATUS_IN_REVIEW = "in_review"
STATUS_DONE = "done"
STATUS_BLOCKED = "blocked"

TASK_STATUSES = (
    STATUS_NOT_STARTED,
    STATUS_IN_PROGRESS,
    STATUS_IN_REVIEW,
    STATUS_DONE,
    STATUS_BLOCKED,
)

# Dependency kinds (descriptive only, no date propagation)
FINISH_TO_START = "finish_to_start"
START_TO_START = "start_to_start"
FINISH_TO_FINISH = "finish_to_finish"
START_TO_FINISH = "start_to_finish"

DEPENDENCY_KINDS = (
    FINISH_TO_START,
    START_TO_START,
    FINISH_TO_FINISH,
    START_TO_FINISH,
)

PROGRESS_MIN = 0
PROGRESS_MAX = 100

# Projection assumes fixed 8-hour workdays on calendar days
HOURS_PER_WORKDAY = 8
MS_PER_DAY = 24 * 60 * 60 * 1000

# Event types published to the event stream
EVENT_DEPENDENCY_ADDED = "DEPENDENCY_ADDED"
EVENT_DEPENDENCY_REMOVED = "DEPENDENCY_REMOVED"
EVENT_DEPENDENCY_UPDATED = "DEPENDENCY_UPDATED"
EVENT_TASK_PROGRESS_UPDATED = "TASK_PROGRESS_UPDATED"
