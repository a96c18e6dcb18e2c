"""
Tests for logging setup.
"""

from loguru import logger

from fsx_stack import StackConfig, build_graph
from fsx_stack.logging import setup_logging, teardown_logging


def test_file_handler_receives_package_records(tmp_path):
    log_file = tmp_path / "fsx-stack.log"

    handler_ids = setup_logging(level="DEBUG", file=str(log_file))
    try:
        build_graph(StackConfig(), "Logged")
    finally:
        teardown_logging(handler_ids)

    text = log_file.read_text()
    assert "Building stack 'Logged'" in text
    assert "Logged: added filesystem 'Lustre'" in text


def test_disabled_after_teardown(tmp_path):
    log_file = tmp_path / "fsx-stack.log"
    teardown_logging(setup_logging(level="DEBUG"))

    handler_id = logger.add(str(log_file), level="DEBUG")
    try:
        build_graph(StackConfig(), "Quiet")
    finally:
        logger.remove(handler_id)

    assert "Quiet" not in log_file.read_text()


def test_host_handlers_survive_setup():
    received = []
    host_id = logger.add(received.append, format="{message}")
    try:
        handler_ids = setup_logging(level="INFO")
        logger.info("host message")
        teardown_logging(handler_ids)
        logger.info("after teardown")
    finally:
        logger.remove(host_id)

    assert [str(m).strip() for m in received] == ["host message", "after teardown"]


def test_handlers_only_see_package_records(tmp_path):
    log_file = tmp_path / "fsx-stack.log"

    handler_ids = setup_logging(level="DEBUG", file=str(log_file))
    try:
        logger.info("record from the host application")
        build_graph(StackConfig(), "Scoped")
    finally:
        teardown_logging(handler_ids)

    text = log_file.read_text()
    assert "Building stack 'Scoped'" in text
    assert "host application" not in text
