"""Tests for JSON logging and correlation ids."""

import json
import logging
from datetime import date
from decimal import Decimal

from innkeep.domain.inventory import LedgerFailure
from innkeep.observability.correlation import (
    get_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)
from innkeep.observability.logging import JsonFormatter, get_logger, log_fields


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("innkeep.test", logging.INFO, __file__, 1, msg, None, None)
    for k, v in extra.items():
        setattr(record, k, v)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        out = json.loads(JsonFormatter().format(_record("hello")))
        assert out["message"] == "hello"
        assert out["level"] == "INFO"
        assert out["logger"] == "innkeep.test"
        assert "correlationId" not in out

    def test_includes_correlation_id(self):
        token = set_correlation_id("cid-123")
        try:
            out = json.loads(JsonFormatter().format(_record("hello")))
        finally:
            reset_correlation_id(token)
        assert out["correlationId"] == "cid-123"
        assert get_correlation_id() == ""

    def test_merges_extra_fields(self):
        record = _record("reserved", extra_fields={"room_type_id": 3, "quantity": 2})
        out = json.loads(JsonFormatter().format(record))
        assert out["room_type_id"] == 3
        assert out["quantity"] == 2


class TestLogFields:
    def test_plain_values(self):
        fields = log_fields(
            night=date(2025, 3, 10),
            amount=Decimal("12.50"),
            reason=LedgerFailure.STOP_SELL_ACTIVE,
            count=2,
            missing=None,
        )
        assert fields == {
            "night": "2025-03-10",
            "amount": "12.50",
            "reason": "stop_sell_active",
            "count": 2,
            "missing": None,
        }

    def test_objects_reduced_to_type_name(self):
        assert log_fields(row=object()) == {"row": "<object>"}


class TestGetLogger:
    def test_configured_once(self):
        a = get_logger("innkeep.test.once")
        b = get_logger("innkeep.test.once")
        assert a is b
        assert len(a.handlers) == 1
        assert isinstance(a.handlers[0].formatter, JsonFormatter)
