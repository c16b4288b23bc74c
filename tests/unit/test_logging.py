"""Unit tests for structured JSON logging"""

import json
import logging
from datetime import datetime, timezone
from careguard_gateway.infrastructure.observability.logging import (
    JSON_HANDLER_NAME,
    CustomJsonFormatter,
    setup_logging,
)


def test_json_formatter_adds_event_time_level_and_service():
    record = logging.LogRecord("careguard_gateway.test", logging.WARNING, __file__, 1, "Transaction scored", None, None)
    record.patient_id = 7

    payload = json.loads(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s").format(record))

    assert payload["message"] == "Transaction scored"
    assert payload["level"] == "WARNING"
    assert payload["service"] == "careguard-gateway"
    assert payload["patient_id"] == 7
    assert payload["timestamp"] == datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


def test_setup_logging_replaces_only_its_own_handler():
    root = logging.getLogger()
    host_handler = logging.NullHandler()
    root.addHandler(host_handler)
    try:
        setup_logging("debug")
        setup_logging("DEBUG")

        json_handlers = [h for h in root.handlers if h.get_name() == JSON_HANDLER_NAME]
        assert len(json_handlers) == 1
        assert host_handler in root.handlers
        assert root.level == logging.DEBUG
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
    finally:
        root.removeHandler(host_handler)
        setup_logging("INFO")
