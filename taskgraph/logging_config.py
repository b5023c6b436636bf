"""Service-wide log setup.

Every line reads ``LEVEL: utc-timestamp : module.function.lineno : message``,
e.g. ``WARNING: 2026-03-02 09:15:40 : taskgraph.services.dependency_graph.add_edge.141 : Rejected dependency``.
Modules call ``get_logger(__name__)``; ``setup_logging`` runs once from the
app lifespan.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from taskgraph.config import settings


class TaskgraphFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")

        module = record.name
        filename = record.filename
        if filename.endswith(".py"):
            filename = filename[:-3]
        # Loggers named after their module already end in the file name
        if module.endswith(f".{filename}"):
            location = f"{module}.{record.funcName}.{record.lineno}"
        else:
            location = f"{module}.{filename}.{record.funcName}.{record.lineno}"

        line = f"{record.levelname}: {timestamp} : {location} : {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def setup_logging(level: Optional[int] = None, stream: Optional[object] = None) -> None:
    """Install a single stream handler on the root logger.

    ``level`` defaults to ``settings.log_level`` and ``stream`` to stdout.
    Calling it again replaces the handler rather than stacking another.
    """
    if level is None:
        level = getattr(logging, settings.log_level, logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(TaskgraphFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    logging.getLogger("taskgraph").setLevel(level)
    for name in ("uvicorn.access", "aiosqlite"):
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
