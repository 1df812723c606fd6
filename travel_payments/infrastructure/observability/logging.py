"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def __init__(self, *args, service_name: str = "travel-payments", **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "travel-payments") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        service_name=service_name,
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_contract_created(
    request_id: str,
    contract_id: str,
    client_ref: str,
    outstanding: str,
    installments: int,
    credit_ref: Optional[str],
    duration_ms: float,
) -> None:
    """Log structured contract creation outcome"""
    logging.info(
        "Contract created",
        extra={
            "request_id": request_id,
            "contract_id": contract_id,
            "client_ref": client_ref,
            "step": "contract_created",
            "amount_to_schedule": outstanding,
            "installments": installments,
            "credit_ref": credit_ref,
            "duration_ms": duration_ms,
        },
    )


def log_credit_event(request_id: str, event: str, credit_id: str, amount: str, **fields: Any) -> None:
    """Log credit issuance / redemption for audit"""
    logging.info(
        f"Credit {event}",
        extra={
            "request_id": request_id,
            "step": f"credit_{event}",
            "credit_id": credit_id,
            "amount": amount,
            **fields,
        },
    )
