"""Structured logging configuration for the KafkaChannel Operator."""

import json
import logging
import os
import sys
from typing import Any

CONTROLLER_NAME = "kafka-channel-operator"

# Logger used by kafka-python for its client internals
KAFKA_CLIENT_LOGGER = "kafka"


def setup_structured_logging() -> None:
    """Configure structured JSON logging."""
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Admin client chatter stays off until the ConfigMap enables it
    enable_kafka_client_logging(False)


def enable_kafka_client_logging(enabled: bool) -> None:
    """Toggle verbose logging for the Kafka admin client library."""
    level = logging.DEBUG if enabled else logging.WARNING
    logging.getLogger(KAFKA_CLIENT_LOGGER).setLevel(level)


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event."""
    log_data = {
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
    }
    log_data.update(sanitize_secrets(kwargs))
    logger.log(level, json.dumps(log_data, default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Remove secret fields from log data."""
    secret_fields = {"password", "sasl_plain_password", "username", "sasl_plain_username"}
    sanitized = log_data.copy()
    for field in secret_fields:
        if field in sanitized:
            sanitized[field] = "***REDACTED***"
    return sanitized
