"""Handler for the KafkaChannel CRD."""

from __future__ import annotations

import functools
import threading
from typing import Any, Callable

import kopf
from kubernetes import client

from ..config import ConfigStore, Settings
from ..constants import (
    API_GROUP_VERSION,
    COND_CONFIG_READY,
    EVENT_REASON_KAFKA_SECRET_RECONCILED,
    KIND_KAFKA_CHANNEL,
)
from ..models import KafkaChannel
from ..services.cluster import ClusterStore
from ..services.kafka import create_admin_session
from ..session import AdminSessionManager
from ..tracing import trace_span
from ..utils.errors import (
    AdminSessionUnavailableError,
    ConfigurationUnresolvedError,
    FinalizationFailedError,
    ReconciliationFailedError,
    SubResourceConvergenceError,
    TopicError,
)
from ..utils.events import (
    emit_channel_finalized,
    emit_channel_reconciled,
    emit_finalize_failed,
    emit_reconcile_failed,
    emit_reconcile_started,
)
from .base import BaseHandler
from .children import ChannelReconciler, DispatcherReconciler
from .topic import TopicReconciler

NO_KAFKA_SECRET_MESSAGE = "No Kafka Secret For KafkaChannel"


class KafkaChannelHandler(BaseHandler):
    """Reconciliation and finalization orchestrators for KafkaChannel resources.

    Each attempt holds the admin session lock and a fresh admin session from
    start to finish. Stage failures are logged where they happen; only
    ReconciliationFailedError or FinalizationFailedError leave this class.
    """

    def __init__(
        self,
        settings: Settings,
        sessions: AdminSessionManager,
        store: ClusterStore,
        topics: TopicReconciler | None = None,
        channels: ChannelReconciler | None = None,
        dispatchers: DispatcherReconciler | None = None,
    ):
        super().__init__(KIND_KAFKA_CHANNEL)
        self.settings = settings
        self.sessions = sessions
        self.store = store
        self.topics = topics or TopicReconciler(settings)
        self.channels = channels or ChannelReconciler(settings)
        self.dispatchers = dispatchers or DispatcherReconciler(settings)

    def reconcile(self, channel: KafkaChannel) -> None:
        """Converge the channel's topic, front-end Service and dispatcher.

        Raises:
            ReconciliationFailedError: If any stage failed; the attempt should be retried
        """
        with trace_span("reconcile_kafkachannel", channel):
            with self.sessions.session() as admin:
                self._reconcile(admin, channel)

    def _reconcile(self, admin: Any, channel: KafkaChannel) -> None:
        meta = channel.meta
        conditions = channel.status.conditions
        conditions.reset()
        self.log_debug(meta, "Reconciling KafkaChannel", reason="Reconciling")

        try:
            secret_name = self.topics.ensure_topic(admin, channel)
        except AdminSessionUnavailableError as e:
            self.log_error(meta, "Failed to reconcile Kafka topic", error=e, reason="TopicReconcileFailed")
            raise ReconciliationFailedError() from e
        except TopicError as e:
            raise ReconciliationFailedError() from e
        except Exception as e:
            self.log_error(meta, "Unexpected failure reconciling Kafka topic", error=e, reason="TopicReconcileFailed")
            raise ReconciliationFailedError() from e

        if not secret_name:
            conditions.mark_false(COND_CONFIG_READY, EVENT_REASON_KAFKA_SECRET_RECONCILED, NO_KAFKA_SECRET_MESSAGE)
            error = ConfigurationUnresolvedError(f"no Kafka secret bound to topic {channel.topic_name}")
            self.log_error(meta, NO_KAFKA_SECRET_MESSAGE, error=error, reason=EVENT_REASON_KAFKA_SECRET_RECONCILED)
            raise ReconciliationFailedError() from error

        conditions.mark_true(COND_CONFIG_READY, EVENT_REASON_KAFKA_SECRET_RECONCILED,
                             f"Kafka secret {secret_name} is bound to the channel")
        self.log_debug(meta, "Kafka topic reconciled", reason="TopicReconciled", secret=secret_name)

        failures: list[Exception] = []
        for stage, reconcile in (
            ("channel Service", lambda: self.channels.reconcile(channel, self.store)),
            ("dispatcher", lambda: self.dispatchers.reconcile(channel, self.store, secret_name)),
        ):
            failure = self._attempt_child(meta, stage, reconcile)
            if failure is not None:
                failures.append(failure)

        if failures:
            self.log_warning(
                meta,
                f"{len(failures)} child resource(s) failed to converge",
                reason="ChildResourcesFailed",
                failures=[str(f) for f in failures],
            )
            raise ReconciliationFailedError() from failures[0]

        channel.status.observed_generation = channel.generation
        emit_channel_reconciled(channel.body, channel.namespace, channel.name)
        self.log_info(meta, "KafkaChannel reconciled", reason="Reconciled")

    def _attempt_child(self, meta: dict[str, Any], stage: str, reconcile: Callable[[], None]) -> Exception | None:
        """Run one child reconciler and return its failure instead of raising it."""
        try:
            reconcile()
        except SubResourceConvergenceError as e:
            return e
        except Exception as e:
            self.log_error(meta, f"Unexpected failure reconciling {stage}", error=e, reason="ChildResourceFailed")
            return e
        return None

    def finalize(self, channel: KafkaChannel) -> None:
        """Tear down the dispatcher, then delete the topic.

        A dispatcher failure leaves the topic in place so that the dispatcher
        never outlives the topic it consumes.

        Raises:
            FinalizationFailedError: If any stage failed; the attempt should be retried
        """
        meta = channel.meta
        with trace_span("finalize_kafkachannel", channel):
            with self.sessions.session() as admin:
                self.log_debug(meta, "Finalizing KafkaChannel", reason="Finalizing")

                try:
                    self.dispatchers.finalize(channel, self.store)
                except Exception as e:
                    self.log_error(meta, "Failed to finalize dispatcher", error=e, reason="DispatcherFinalizeFailed")
                    raise FinalizationFailedError() from e

                try:
                    self.topics.delete_topic(admin, channel)
                except Exception as e:
                    self.log_error(meta, f"Failed to delete Kafka topic {channel.topic_name}", error=e,
                                   reason="TopicDeleteFailed")
                    raise FinalizationFailedError() from e

        emit_channel_finalized(channel.body, channel.namespace, channel.name)
        self.log_info(meta, "KafkaChannel finalized", reason="Finalized")


# Latest Kafka configuration, fed by the config-kafka ConfigMap watch in main
config_store = ConfigStore()

_handler: KafkaChannelHandler | None = None
_handler_lock = threading.Lock()


def get_handler() -> KafkaChannelHandler:
    """Return the process-wide handler, building it on first use."""
    global _handler
    with _handler_lock:
        if _handler is None:
            settings = Settings.from_env()
            core_api = client.CoreV1Api()
            factory = functools.partial(
                create_admin_session,
                core_api=core_api,
                system_namespace=settings.system_namespace,
            )
            _handler = KafkaChannelHandler(
                settings,
                AdminSessionManager(factory, config_store),
                ClusterStore(core_api=core_api),
            )
        return _handler


@kopf.on.create(API_GROUP_VERSION, KIND_KAFKA_CHANNEL)
@kopf.on.update(API_GROUP_VERSION, KIND_KAFKA_CHANNEL)
@kopf.on.resume(API_GROUP_VERSION, KIND_KAFKA_CHANNEL)
def handle_kafkachannel(
    spec: dict[str, Any],
    meta: dict[str, Any],
    status: dict[str, Any],
    body: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle KafkaChannel resource reconciliation."""
    handler = get_handler()
    handler.ensure_finalizer(meta, patch)
    emit_reconcile_started(body)

    channel = KafkaChannel.from_kopf(spec, meta, status)
    try:
        handler.run_with_metrics(meta, "reconcile", lambda: handler.reconcile(channel))
    except ReconciliationFailedError as e:
        emit_reconcile_failed(body, str(e))
        raise kopf.TemporaryError(str(e), delay=handler.settings.retry_delay_seconds) from e
    finally:
        handler.update_resource_status(patch, channel)


@kopf.on.delete(API_GROUP_VERSION, KIND_KAFKA_CHANNEL)
def handle_kafkachannel_delete(
    spec: dict[str, Any],
    meta: dict[str, Any],
    body: dict[str, Any],
    patch: kopf.Patch,
    **kwargs: Any,
) -> None:
    """Handle KafkaChannel resource deletion."""
    handler = get_handler()
    channel = KafkaChannel.from_kopf(spec, meta)
    try:
        handler.run_with_metrics(meta, "finalize", lambda: handler.finalize(channel))
    except FinalizationFailedError as e:
        emit_finalize_failed(body, str(e))
        raise kopf.TemporaryError(str(e), delay=handler.settings.retry_delay_seconds) from e

    handler.remove_finalizer(meta, patch)
