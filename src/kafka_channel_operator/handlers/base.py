"""Base handler class with common functionality for all KafkaChannel handlers."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import kopf

from .. import metrics
from ..constants import FINALIZER
from ..logging import CONTROLLER_NAME, log_resource_event
from ..models import KafkaChannel
from ..utils.errors import sanitize_exception


class BaseHandler:
    """Base class for handlers with structured logging, metrics and finalizers."""

    def __init__(self, kind: str):
        """Initialize base handler.

        Args:
            kind: The Kubernetes resource kind (e.g., "KafkaChannel")
        """
        self.kind = kind
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        """Extract common resource context from metadata.

        Args:
            meta: Kubernetes resource metadata

        Returns:
            Dictionary with resource context fields
        """
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid", "unknown"),
        }

    def _log(
        self,
        level: int,
        meta: dict[str, Any],
        message: str,
        event: str,
        reason: str,
        **kwargs: Any,
    ) -> None:
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_debug(self, meta: dict[str, Any], message: str, reason: str = "Debug", **kwargs: Any) -> None:
        self._log(logging.DEBUG, meta, message, "debug", reason, **kwargs)

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, meta, message, event, reason, **kwargs)

    def log_warning(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, meta, message, event, reason, **kwargs)

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()

        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__
            metrics.error_total.labels(kind=self.kind, error_type=type(error).__name__).inc()

        self._log(logging.ERROR, meta, message, event, reason, **log_data)

    def ensure_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Ensure finalizer is present in metadata."""
        finalizers = list(meta.get("finalizers", []))
        if FINALIZER not in finalizers:
            finalizers.append(FINALIZER)
            patch.metadata["finalizers"] = finalizers

    def remove_finalizer(self, meta: dict[str, Any], patch: kopf.Patch) -> None:
        """Remove finalizer from metadata."""
        finalizers = list(meta.get("finalizers", []))
        if FINALIZER in finalizers:
            finalizers.remove(FINALIZER)
            patch.metadata["finalizers"] = finalizers if finalizers else None

    def run_with_metrics(
        self,
        meta: dict[str, Any],
        operation: str,
        fn: Callable[[], None],
    ) -> None:
        """Execute a reconciliation or finalization with metrics.

        Args:
            meta: Kubernetes resource metadata
            operation: "reconcile" or "finalize"
            fn: Function to execute
        """
        counter = metrics.finalize_total if operation == "finalize" else metrics.reconcile_total
        counter.labels(kind=self.kind, result="started").inc()

        start_time = time.time()
        try:
            fn()
            counter.labels(kind=self.kind, result="success").inc()
        except Exception:
            counter.labels(kind=self.kind, result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            if operation == "reconcile":
                metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(duration)

    def update_resource_status(self, patch: kopf.Patch, channel: KafkaChannel) -> None:
        """Publish the in-memory channel status through the kopf patch.

        Args:
            patch: Kopf patch object
            channel: Channel whose status was updated by an attempt
        """
        ready = channel.status.conditions.is_ready()
        metrics.resource_status_total.labels(kind=self.kind, status="ready" if ready else "not_ready").inc()
        patch.status.update(channel.status.to_dict())
