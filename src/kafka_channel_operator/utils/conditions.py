"""Utilities for managing Kubernetes conditions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

from ..constants import (
    COND_ADDRESSABLE,
    COND_CHANNEL_SERVICE_READY,
    COND_CONFIG_READY,
    COND_DISPATCHER_DEPLOYMENT_READY,
    COND_DISPATCHER_SERVICE_READY,
    COND_READY,
    COND_TOPIC_READY,
    STATUS_FALSE,
    STATUS_TRUE,
    STATUS_UNKNOWN,
)

# Conditions that must all be True for a KafkaChannel to be Ready
CHANNEL_CONDITIONS = (
    COND_ADDRESSABLE,
    COND_CONFIG_READY,
    COND_TOPIC_READY,
    COND_CHANNEL_SERVICE_READY,
    COND_DISPATCHER_SERVICE_READY,
    COND_DISPATCHER_DEPLOYMENT_READY,
)

VALID_STATUSES = (STATUS_TRUE, STATUS_FALSE, STATUS_UNKNOWN)


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
) -> list[dict[str, Any]]:
    """Update or add a condition to the conditions list.

    Args:
        conditions: List of existing conditions
        condition_type: Type of condition
        status: Status of condition ("True", "False", "Unknown")
        reason: Reason for the condition
        message: Human-readable message
        observed_generation: Generation when condition was observed

    Returns:
        Updated list of conditions
    """
    now = datetime.now(timezone.utc).isoformat()

    existing_idx = None
    for idx, cond in enumerate(conditions):
        if cond.get("type") == condition_type:
            existing_idx = idx
            break

    new_condition = {
        "type": condition_type,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now,
    }

    if observed_generation is not None:
        new_condition["observedGeneration"] = observed_generation

    if existing_idx is not None:
        existing = conditions[existing_idx]
        # Only update lastTransitionTime if status changed
        if existing.get("status") == status:
            new_condition["lastTransitionTime"] = existing.get("lastTransitionTime", now)
        conditions[existing_idx] = new_condition
    else:
        conditions.append(new_condition)

    return conditions


class ConditionSet:
    """Named tri-state readiness flags for a single resource.

    The orchestrator is the only writer. ``Ready`` is derived from the
    load-bearing conditions every time one of them changes.
    """

    def __init__(self, types: Iterable[str] = CHANNEL_CONDITIONS):
        self.types = tuple(types)
        self._conditions: list[dict[str, Any]] = []
        self.reset()

    @classmethod
    def from_list(
        cls,
        conditions: list[dict[str, Any]] | None,
        types: Iterable[str] = CHANNEL_CONDITIONS,
    ) -> ConditionSet:
        """Seed a condition set from a stored status.conditions list."""
        condition_set = cls(types)
        condition_set._conditions = [dict(cond) for cond in conditions or [] if cond.get("type")]
        return condition_set

    def reset(self) -> None:
        """Set every condition, including Ready, back to Unknown."""
        for condition_type in (*self.types, COND_READY):
            update_condition(self._conditions, condition_type, STATUS_UNKNOWN, "Initializing", "")

    def set(self, condition_type: str, status: str, reason: str = "", message: str = "") -> None:
        if status not in VALID_STATUSES:
            raise ValueError(f"Invalid condition status {status!r} for {condition_type}")
        update_condition(self._conditions, condition_type, status, reason, message)
        if condition_type in self.types:
            self._refresh_ready()

    def mark_true(self, condition_type: str, reason: str = "", message: str = "") -> None:
        self.set(condition_type, STATUS_TRUE, reason or condition_type, message)

    def mark_false(self, condition_type: str, reason: str, message: str) -> None:
        self.set(condition_type, STATUS_FALSE, reason, message)

    def get(self, condition_type: str) -> dict[str, Any] | None:
        for cond in self._conditions:
            if cond.get("type") == condition_type:
                return cond
        return None

    def status_of(self, condition_type: str) -> str:
        cond = self.get(condition_type)
        return cond["status"] if cond else STATUS_UNKNOWN

    def is_ready(self) -> bool:
        """Return True iff every load-bearing condition is True."""
        return all(self.status_of(condition_type) == STATUS_TRUE for condition_type in self.types)

    def to_list(self) -> list[dict[str, Any]]:
        """Return a copy of the conditions suitable for status publishing."""
        return [dict(cond) for cond in self._conditions]

    def _refresh_ready(self) -> None:
        statuses = [self.status_of(condition_type) for condition_type in self.types]
        if all(status == STATUS_TRUE for status in statuses):
            update_condition(self._conditions, COND_READY, STATUS_TRUE, "Ready", "KafkaChannel is ready")
            return
        for condition_type, status in zip(self.types, statuses):
            if status == STATUS_FALSE:
                failed = self.get(condition_type) or {}
                update_condition(
                    self._conditions,
                    COND_READY,
                    STATUS_FALSE,
                    failed.get("reason") or "NotReady",
                    failed.get("message") or f"{condition_type} is False",
                )
                return
        update_condition(self._conditions, COND_READY, STATUS_UNKNOWN, "Reconciling", "")
