"""Reconciliation of the Kafka topic backing a KafkaChannel."""

from __future__ import annotations

from ..builders.topic import create_topic_config_from_spec
from ..config import Settings
from ..constants import COND_TOPIC_READY, KIND_KAFKA_CHANNEL
from ..models import KafkaChannel
from ..services.kafka.base import AdminSession
from ..tracing import trace_span
from ..utils.errors import AdminSessionUnavailableError, TopicError
from ..utils.events import emit_topic_created, emit_topic_deleted
from .base import BaseHandler


class TopicReconciler(BaseHandler):
    """Ensures a channel's topic exists and reports the Kafka secret bound to it."""

    def __init__(self, settings: Settings):
        super().__init__(KIND_KAFKA_CHANNEL)
        self.settings = settings

    def ensure_topic(self, admin: AdminSession | None, channel: KafkaChannel) -> str | None:
        """Create the channel's topic if absent.

        Returns:
            Name of the Kafka secret bound to the topic, or None. A missing
            secret is not an error here; the caller decides.

        Raises:
            AdminSessionUnavailableError: If no admin session is open
            TopicError: If the topic spec is invalid or creation fails
        """
        conditions = channel.status.conditions
        name = channel.topic_name

        with trace_span("ensure_topic", channel):
            if admin is None:
                conditions.mark_false(COND_TOPIC_READY, "AdminClientUnavailable", "No Kafka admin client available")
                raise AdminSessionUnavailableError(f"cannot ensure topic {name}: no admin session")

            try:
                topic_config = create_topic_config_from_spec(channel.spec, self.settings)
            except ValueError as e:
                conditions.mark_false(COND_TOPIC_READY, "InvalidTopicSpec", str(e))
                self.log_error(channel.meta, f"Invalid topic configuration for {name}", error=e,
                               reason="InvalidTopicSpec", topic=name)
                raise TopicError(f"invalid topic configuration for {name}: {e}") from e

            try:
                created = admin.ensure_topic(name, topic_config)
            except TopicError as e:
                conditions.mark_false(COND_TOPIC_READY, "TopicCreateFailed", f"Failed to create Kafka topic {name}")
                self.log_error(channel.meta, f"Failed to reconcile Kafka topic {name}", error=e,
                               reason="TopicReconciliationFailed", topic=name)
                raise

            if created:
                emit_topic_created(channel.body, name)
                self.log_info(channel.meta, f"Created Kafka topic {name}", reason="TopicCreated", topic=name,
                              partitions=topic_config.num_partitions,
                              replication_factor=topic_config.replication_factor)
            conditions.mark_true(COND_TOPIC_READY, "TopicReady", f"Kafka topic {name} exists")

            return admin.resolve_secret_reference(name)

    def delete_topic(self, admin: AdminSession | None, channel: KafkaChannel) -> None:
        """Delete the channel's topic; an absent topic counts as deleted.

        Raises:
            AdminSessionUnavailableError: If no admin session is open
            TopicError: If deletion fails
        """
        name = channel.topic_name
        with trace_span("delete_topic", channel):
            if admin is None:
                raise AdminSessionUnavailableError(f"cannot delete topic {name}: no admin session")

            if admin.delete_topic(name):
                emit_topic_deleted(channel.body, name)
                self.log_info(channel.meta, f"Deleted Kafka topic {name}", reason="TopicDeleted", topic=name)
            else:
                self.log_info(channel.meta, f"Kafka topic {name} does not exist, skipping deletion",
                              reason="TopicNotExists", topic=name)
