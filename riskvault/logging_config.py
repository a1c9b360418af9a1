"""
Logging configuration for RiskVault.

Provides structured JSON logging for audit trails and debugging.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

# Context variable for request ID tracking
request_id_var: ContextVar[str] = ContextVar('request_id', default='')


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per line for log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        return json.dumps(log_data, default=str)


class AuditLogger:
    """
    Specialized logger for ledger audit events.

    Provides methods for logging submissions, reveal requests,
    finalizations and rejected oracle callbacks.
    """

    def __init__(self, name: str = "riskvault.audit"):
        self._logger = logging.getLogger(name)

    def _log(self, level: int, event_type: str, **kwargs) -> None:
        extra = {
            "event_type": event_type,
            "request_id": request_id_var.get(),
            **kwargs
        }

        record = self._logger.makeRecord(
            self._logger.name,
            level,
            "",
            0,
            f"{event_type}: {kwargs.get('message', '')}",
            (),
            None
        )
        record.extra_fields = extra
        self._logger.handle(record)

    def data_submitted(self, record_id: int, institution: Optional[str] = None) -> None:
        self._log(
            logging.INFO,
            "DATA_SUBMITTED",
            record_id=record_id,
            institution=institution,
            message=f"Encrypted measurement {record_id} submitted"
        )

    def reveal_requested(self, target: str, oracle_request_id: str) -> None:
        self._log(
            logging.INFO,
            "REVEAL_REQUESTED",
            target=target,
            oracle_request_id=oracle_request_id,
            message=f"Reveal requested for {target}"
        )

    def assessment_finalized(self, record_id: int, risk_level: str, systemic_risk_flag: str) -> None:
        level = logging.WARNING if systemic_risk_flag != "None" else logging.INFO
        self._log(
            level,
            "ASSESSMENT_FINALIZED",
            record_id=record_id,
            risk_level=risk_level,
            systemic_risk_flag=systemic_risk_flag,
            message=f"Assessment {record_id} finalized as {risk_level}"
        )

    def aggregate_revealed(self, category: str, count: int) -> None:
        self._log(
            logging.INFO,
            "AGGREGATE_REVEALED",
            category=category,
            count=count,
            message=f"Aggregate for {category} revealed"
        )

    def callback_rejected(self, oracle_request_id: str, code: str, reason: str) -> None:
        """Log an oracle callback that was refused."""
        self._log(
            logging.WARNING,
            "CALLBACK_REJECTED",
            oracle_request_id=oracle_request_id,
            code=code,
            reason=reason,
            message=f"Callback rejected: {code}"
        )

    def security_event(
        self,
        event: str,
        severity: str = "medium",
        **details
    ) -> None:
        """Log a security-relevant event."""
        level = {
            "low": logging.INFO,
            "medium": logging.WARNING,
            "high": logging.ERROR,
            "critical": logging.CRITICAL
        }.get(severity, logging.WARNING)

        self._log(
            level,
            "SECURITY_EVENT",
            security_event=event,
            severity=severity,
            **details,
            message=f"Security event: {event}"
        )


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    log_file: Optional[str] = None
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatting
        log_file: Optional file path for log output
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def set_request_id(request_id: Optional[str] = None) -> str:
    """
    Set the correlation id for the current context.

    Args:
        request_id: Id to set, or None to generate one

    Returns:
        The id that was set
    """
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()


# Global audit logger instance
audit_log = AuditLogger()
