from __future__ import annotations

import io
import json
import logging

import pytest

from marlin.observability import bind_connection_id, configure_logging, reset_connection_id


@pytest.fixture
def restore_root_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def test_json_lines_carry_service_and_connection(restore_root_logging):
    stream = io.StringIO()
    configure_logging("marlin-node", "INFO", stream=stream)
    token = bind_connection_id("abc123")
    try:
        logging.getLogger("marlin.test").info("viewer joined", extra={"viewers": 2})
    finally:
        reset_connection_id(token)
    logging.getLogger("marlin.test").info("no viewer")

    first, second = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert first["message"] == "viewer joined"
    assert first["service"] == "marlin-node"
    assert first["connection_id"] == "abc123"
    assert first["extra"] == {"viewers": 2}
    assert first["level"] == "INFO"
    assert second.get("connection_id") is None


def test_text_format_and_level(restore_root_logging):
    stream = io.StringIO()
    configure_logging("marlin-viewer", "WARNING", fmt="text", stream=stream)
    logging.getLogger("marlin.test").info("hidden")
    logging.getLogger("marlin.test").warning("shown")
    output = stream.getvalue()
    assert "hidden" not in output
    assert "shown" in output
