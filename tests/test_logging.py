"""Tests for structured JSON logging and LogContext propagation."""

import json
import logging
import sys
from datetime import date
from decimal import Decimal
from io import StringIO
from uuid import uuid4

import pytest

from wbs_kernel.domain.dtos import WbsStatus
from wbs_kernel.exceptions import BoundaryError
from wbs_kernel.logging_config import LogContext, StructuredFormatter, get_logger


def _format(record: logging.LogRecord) -> dict:
    return json.loads(StructuredFormatter().format(record))


def _record(msg="event", exc_info=None, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "wbs_kernel.test", logging.INFO, __file__, 1, msg, (), exc_info
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:

    def test_envelope(self):
        payload = _format(_record("node_created"))
        assert payload["message"] == "node_created"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "wbs_kernel.test"
        assert "ts" in payload

    def test_extra_values_serialized(self):
        node_id = uuid4()
        payload = _format(
            _record(
                node_id=node_id,
                weight=Decimal("1.5"),
                due=date(2025, 1, 31),
                status=WbsStatus.DELAYED,
            )
        )
        assert payload["node_id"] == str(node_id)
        assert payload["weight"] == "1.5"
        assert payload["due"] == "2025-01-31"
        assert payload["status"] == "delayed"

    def test_kernel_error_fields_included(self):
        try:
            raise BoundaryError("n-1", "promote", 1)
        except BoundaryError:
            payload = _format(_record("rejected", exc_info=sys.exc_info()))

        assert payload["exc_type"] == "BoundaryError"
        assert payload["exc_code"] == "LEVEL_BOUNDARY"
        assert payload["exc_node_id"] == "n-1"
        assert payload["exc_level"] == 1
        assert "traceback" in payload


class TestLogContext:

    def test_bind_restores_previous_values(self):
        LogContext.set(project_id="outer")
        with LogContext.bind(project_id="inner", node_id="n-1"):
            assert LogContext.get_all() == {"project_id": "inner", "node_id": "n-1"}
        assert LogContext.get_all() == {"project_id": "outer"}

    def test_unknown_field_rejected(self):
        with pytest.raises(TypeError):
            LogContext.set(ledger_id="x")
        assert LogContext.get_all() == {}

    def test_context_added_to_lines(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        logger = get_logger("context_test")
        logger.addHandler(handler)
        try:
            with LogContext.bind(correlation_id="req-42"):
                logger.info("inside")
        finally:
            logger.removeHandler(handler)

        line = json.loads(stream.getvalue().strip().splitlines()[-1])
        assert line["correlation_id"] == "req-42"
        assert line["logger"] == "wbs_kernel.context_test"

    def test_engine_binds_context(self, wbs_engine, project, test_actor_id, captured_logs):
        node = wbs_engine.create_node(project.id, "Task", test_actor_id)
        record = next(r for r in captured_logs() if r["message"] == "node_created")

        assert record["project_id"] == str(project.id)
        assert record["actor_id"] == str(test_actor_id)
        assert record["node_id"] == str(node.id)
        assert record["operation"] == "create_node"
        assert LogContext.get_all() == {}


def test_get_logger_namespaced():
    assert get_logger("x").name == "wbs_kernel.x"
    assert logging.getLogger("wbs_kernel").propagate is False
