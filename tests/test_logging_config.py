"""Test unified logging configuration.

Tests for dotmatrix.utils.logging_config:
    - JSON file lines carry context fields
    - Repeated setup does not stack handlers
    - context_scope restores the previous context
    - Human format layout

Run:
    pytest tests/test_logging_config.py -v
"""

import json
import logging

import pytest

from dotmatrix.utils import logging_config


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture()
def restore_root():
    """Put the root logger back the way pytest configured it."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
    logging.captureWarnings(False)
    logging_config._context_var.set({})


# ============================================================================
# SETUP
# ============================================================================

def test_json_file_lines(tmp_path, restore_root):
    log_path = tmp_path / "logs" / "strike.jsonl"
    logging_config.setup_logging(
        log_level="INFO",
        log_file=str(log_path),
        json=True,
        to_stderr=False,
        context={"app": "test"},
    )

    with logging_config.context_scope(request_id="abc123"):
        logging.getLogger("dotmatrix.test").info("Strike complete")
    for handler in restore_root.handlers:
        handler.flush()

    lines = log_path.read_text().strip().splitlines()
    record = json.loads(lines[-1])
    assert record["msg"] == "Strike complete"
    assert record["lvl"] == "INFO"
    assert record["app"] == "test"
    assert record["request_id"] == "abc123"


def test_setup_is_idempotent(tmp_path, restore_root):
    log_path = tmp_path / "strike.log"
    for _ in range(3):
        handlers = logging_config.setup_logging(
            log_file=str(log_path), to_stderr=True,
        )
    assert len(handlers) == 2
    assert all(h in restore_root.handlers for h in handlers)
    assert len(restore_root.handlers) == 2


def test_level_applied(restore_root):
    logging_config.setup_logging(log_level="warning", to_stderr=False)
    assert restore_root.level == logging.WARNING


def test_bad_rotation_mode(tmp_path):
    with pytest.raises(ValueError, match="rotation mode"):
        logging_config._create_file_handler(
            str(tmp_path / "x.log"), {"mode": "weekly"}, False,
        )


# ============================================================================
# CONTEXT
# ============================================================================

def _human_line(msg):
    formatter = logging_config.ContextFormatter("human", use_color=False)
    record = logging.LogRecord("dotmatrix", logging.INFO, __file__, 1, msg, (), None)
    return formatter.format(record)


def test_context_scope_restores():
    logging_config._context_var.set({})
    logging_config.push_context(app="strike")
    try:
        with logging_config.context_scope(request_id="r1", op="execute"):
            assert "| app=strike request_id=r1 op=execute | inside" in _human_line("inside")
        assert "| app=strike | after" in _human_line("after")
    finally:
        logging_config._context_var.set({})


def test_push_context_merges():
    logging_config._context_var.set({})
    try:
        logging_config.push_context(a=1)
        logging_config.push_context(b=2, a=3)
        assert "| a=3 b=2 | msg" in _human_line("msg")
    finally:
        logging_config._context_var.set({})


# ============================================================================
# FORMAT
# ============================================================================

def test_human_format():
    logging_config._context_var.set({})
    formatter = logging_config.ContextFormatter("human", use_color=False)
    record = logging.LogRecord(
        "dotmatrix", logging.INFO, __file__, 1, "Wrote %s", ("data.fth",), None,
    )
    with logging_config.context_scope(request_id="r9"):
        line = formatter.format(record)
    assert line.endswith("| INFO     | request_id=r9 | Wrote data.fth")
