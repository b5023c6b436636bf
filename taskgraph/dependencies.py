"""FastAPI dependencies for the taskgraph API."""
from typing import Optional

import redis.asyncio as redis

from taskgraph.services.locks import ProjectLockRegistry, project_locks

# Global Redis client (initialized in main.py lifespan); None disables events
redis_client: Optional[redis.Redis] = None


def get_project_locks() -> ProjectLockRegistry:
    """Shared registry serializing edge insertions per project."""
    return project_locks
