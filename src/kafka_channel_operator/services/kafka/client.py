"""Kafka admin session implementation."""

from __future__ import annotations

import logging
import time
from typing import Any

from kafka.admin import KafkaAdminClient, NewTopic
from kafka.errors import KafkaError, TopicAlreadyExistsError, UnknownTopicOrPartitionError
from kubernetes import client

from ... import metrics
from ...builders.topic import TopicConfig
from ...config import AdminConfig
from ...constants import (
    KAFKA_SECRET_KEY_BROKERS,
    KAFKA_SECRET_KEY_PASSWORD,
    KAFKA_SECRET_KEY_PROTOCOL,
    KAFKA_SECRET_KEY_USERNAME,
)
from ...utils.errors import TopicError
from ...utils.rate_limit import rate_limit_kafka
from ...utils.secrets import read_kafka_secret

logger = logging.getLogger(__name__)


def _security_protocol(admin_config: AdminConfig, secret_data: dict[str, str]) -> str:
    protocol = secret_data.get(KAFKA_SECRET_KEY_PROTOCOL)
    if protocol:
        return protocol.upper()
    if admin_config.sasl_enabled:
        return "SASL_SSL" if admin_config.tls_enabled else "SASL_PLAINTEXT"
    return "SSL" if admin_config.tls_enabled else "PLAINTEXT"


def build_client_options(
    admin_config: AdminConfig,
    component_id: str,
    secret_data: dict[str, str],
) -> dict[str, Any]:
    """Translate configuration and Kafka secret data into KafkaAdminClient options.

    Brokers and credentials in the Kafka secret take precedence over the ConfigMap.

    Raises:
        ValueError: If no brokers are configured anywhere
    """
    brokers = secret_data.get(KAFKA_SECRET_KEY_BROKERS) or admin_config.brokers
    if not brokers:
        raise ValueError("no Kafka brokers configured in the Kafka secret or the ConfigMap")

    options: dict[str, Any] = {
        "bootstrap_servers": [broker.strip() for broker in brokers.split(",") if broker.strip()],
        "client_id": admin_config.client_id or component_id,
        "request_timeout_ms": admin_config.request_timeout_ms,
        "security_protocol": _security_protocol(admin_config, secret_data),
    }
    username = secret_data.get(KAFKA_SECRET_KEY_USERNAME)
    password = secret_data.get(KAFKA_SECRET_KEY_PASSWORD)
    if options["security_protocol"].startswith("SASL"):
        options["sasl_mechanism"] = admin_config.sasl_mechanism
        options["sasl_plain_username"] = username
        options["sasl_plain_password"] = password
    return options


class KafkaAdminSession:
    """One Kafka admin connection plus the Kafka secret resolved when it was opened."""

    def __init__(self, admin_client: KafkaAdminClient, secret_name: str | None) -> None:
        self.admin_client = admin_client
        self.secret_name = secret_name
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.admin_client.close()

    def resolve_secret_reference(self, topic_name: str) -> str | None:
        # All topics share the single labelled Kafka secret
        return self.secret_name or None

    def _list_topics(self) -> set[str]:
        start_time = time.time()
        try:
            topics = set(rate_limit_kafka(self.admin_client.list_topics)())
            metrics.api_call_total.labels(api_type="kafka", operation="list_topics", result="success").inc()
            return topics
        except (KafkaError, OSError):
            metrics.api_call_total.labels(api_type="kafka", operation="list_topics", result="error").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="kafka", operation="list_topics").observe(duration)

    def ensure_topic(self, name: str, config: TopicConfig) -> bool:
        """Create a topic if it does not exist; an existing topic is left untouched."""
        try:
            if name in self._list_topics():
                metrics.topic_operations_total.labels(operation="create", result="exists").inc()
                return False
            new_topic = NewTopic(
                name=name,
                num_partitions=config.num_partitions,
                replication_factor=config.replication_factor,
                topic_configs=dict(config.configs),
            )
            rate_limit_kafka(self.admin_client.create_topics)([new_topic])
        except TopicAlreadyExistsError:
            # Raced with another creator
            metrics.topic_operations_total.labels(operation="create", result="exists").inc()
            return False
        except (KafkaError, OSError) as e:
            logger.error(f"Failed to create Kafka topic {name}: {e}")
            metrics.topic_operations_total.labels(operation="create", result="failed").inc()
            raise TopicError(f"failed to create topic {name}: {e}") from e

        logger.info(f"Created Kafka topic {name}")
        metrics.topic_operations_total.labels(operation="create", result="success").inc()
        return True

    def delete_topic(self, name: str) -> bool:
        """Delete a topic; a topic that does not exist counts as deleted."""
        try:
            if name not in self._list_topics():
                metrics.topic_operations_total.labels(operation="delete", result="absent").inc()
                return False
            rate_limit_kafka(self.admin_client.delete_topics)([name])
        except UnknownTopicOrPartitionError:
            metrics.topic_operations_total.labels(operation="delete", result="absent").inc()
            return False
        except (KafkaError, OSError) as e:
            logger.error(f"Failed to delete Kafka topic {name}: {e}")
            metrics.topic_operations_total.labels(operation="delete", result="failed").inc()
            raise TopicError(f"failed to delete topic {name}: {e}") from e

        logger.info(f"Deleted Kafka topic {name}")
        metrics.topic_operations_total.labels(operation="delete", result="success").inc()
        return True


def create_admin_session(
    admin_config: AdminConfig,
    component_id: str,
    core_api: client.CoreV1Api,
    system_namespace: str,
) -> KafkaAdminSession:
    """Open a new Kafka admin session.

    Reads the Kafka secret from the system namespace, then connects with the
    merged configuration.

    Raises:
        ValueError: If no brokers are configured
        KafkaError: If the connection cannot be established
        ApiException: If the secret lookup fails
    """
    secret_name, secret_data = read_kafka_secret(core_api, system_namespace)
    if secret_name is None:
        logger.warning(f"No Kafka secret found in namespace {system_namespace}")

    options = build_client_options(admin_config, component_id, secret_data)
    admin_client = KafkaAdminClient(**options)
    return KafkaAdminSession(admin_client, secret_name)
