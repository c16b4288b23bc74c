"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from careguard_gateway.config import settings

JSON_HANDLER_NAME = "careguard-json"

# Library loggers that drown scoring events at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "uvicorn.access")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds the event time, level and service name to every record"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """
    Route the root logger to one JSON stdout handler.

    Safe to call more than once: only the handler installed by a previous call is
    replaced, handlers added by the host (test capture, uvicorn) are left alone.
    """
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in [h for h in root.handlers if h.get_name() == JSON_HANDLER_NAME]:
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(JSON_HANDLER_NAME)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, root.level))


def log_transaction_scored(
    request_id: str,
    patient_id: int,
    transaction_id: int,
    risk_score: int,
    is_anomaly: bool,
    duration_ms: float,
) -> None:
    """Log structured scoring outcome for analysis"""
    logging.info(
        "Transaction scored",
        extra={
            "request_id": request_id,
            "patient_id": patient_id,
            "transaction_id": transaction_id,
            "step": "transaction_scored",
            "risk_score": risk_score,
            "outcome": "anomaly" if is_anomaly else "normal",
            "duration_ms": duration_ms,
        },
    )


def log_risk_reassessed(patient_id: int, total_score: int, risk_level: str) -> None:
    logging.info(
        "Risk reassessed",
        extra={
            "patient_id": patient_id,
            "step": "risk_reassessed",
            "total_score": total_score,
            "risk_level": risk_level,
        },
    )
