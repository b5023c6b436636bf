"""Tests for the service log format."""
import io
import logging
import re

from taskgraph.logging_config import TaskgraphFormatter, get_logger, setup_logging

LINE = re.compile(r"^(\w+): (\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) : (\S+) : (.*)$")


def _record(name: str, pathname: str, func: str = "add_edge", lineno: int = 42, msg: str = "hello"):
    return logging.LogRecord(name, logging.WARNING, pathname, lineno, msg, None, None, func=func)


def test_module_logger_location_not_duplicated():
    """Test a logger named after its module doesn't repeat the file name."""
    record = _record("taskgraph.services.dependency_graph", "/x/taskgraph/services/dependency_graph.py")

    match = LINE.match(TaskgraphFormatter().format(record))

    assert match
    assert match.group(1) == "WARNING"
    assert match.group(3) == "taskgraph.services.dependency_graph.add_edge.42"
    assert match.group(4) == "hello"


def test_other_logger_gets_file_name():
    """Test a logger not named after the file gets the file appended."""
    record = _record("taskgraph", "/x/taskgraph/main.py", func="lifespan", lineno=7)

    match = LINE.match(TaskgraphFormatter().format(record))

    assert match.group(3) == "taskgraph.main.lifespan.7"


def test_setup_logging_replaces_handlers():
    """Test repeated setup leaves one handler writing the formatted line."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    stream = io.StringIO()
    try:
        setup_logging(level=logging.INFO)
        setup_logging(level=logging.INFO, stream=stream)
        assert len(root.handlers) == 1

        get_logger("taskgraph.services.progress").info("Task task_1 now done at 100%")

        line = stream.getvalue().strip()
        assert LINE.match(line)
        assert line.startswith("INFO: ")
        assert line.endswith(" : Task task_1 now done at 100%")
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
