"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_CHANNEL_FINALIZED,
    EVENT_REASON_CHANNEL_RECONCILED,
    EVENT_REASON_FINALIZE_FAILED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_TOPIC_CREATED,
    EVENT_REASON_TOPIC_DELETED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (apiVersion, kind, metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_channel_reconciled(body: dict[str, Any], namespace: str, name: str) -> None:
    emit_event(
        body,
        EVENT_REASON_CHANNEL_RECONCILED,
        f'KafkaChannel Reconciled Successfully: "{namespace}/{name}"',
    )


def emit_channel_finalized(body: dict[str, Any], namespace: str, name: str) -> None:
    emit_event(
        body,
        EVENT_REASON_CHANNEL_FINALIZED,
        f'KafkaChannel Finalized Successfully: "{namespace}/{name}"',
    )


def emit_finalize_failed(body: dict[str, Any], message: str) -> None:
    emit_event(body, EVENT_REASON_FINALIZE_FAILED, message, type_="Warning")


def emit_topic_created(body: dict[str, Any], topic_name: str) -> None:
    emit_event(body, EVENT_REASON_TOPIC_CREATED, f"Kafka topic {topic_name} ensured")


def emit_topic_deleted(body: dict[str, Any], topic_name: str) -> None:
    emit_event(body, EVENT_REASON_TOPIC_DELETED, f"Kafka topic {topic_name} deleted")
