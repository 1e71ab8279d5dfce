"""Kafka administrative API access."""

from .base import AdminSession
from .client import KafkaAdminSession, build_client_options, create_admin_session

__all__ = [
    "AdminSession",
    "KafkaAdminSession",
    "build_client_options",
    "create_admin_session",
]
