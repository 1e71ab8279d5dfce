"""Operator settings and the Kafka configuration snapshot store."""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field
from typing import Any

import yaml

from . import metrics
from .constants import (
    CONFIG_MAP_EVENTING_KAFKA_KEY,
    CONFIG_MAP_SARAMA_KEY,
    DEFAULT_CONFIG_MAP_NAME,
)
from .logging import enable_kafka_client_logging

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_TIMEOUT_MS = 10000


@dataclass(frozen=True)
class Settings:
    """Process-level settings read from the environment once at startup."""

    system_namespace: str = "knative-eventing"
    config_map_name: str = DEFAULT_CONFIG_MAP_NAME
    dispatcher_image: str = "gcr.io/knative-releases/knative.dev/eventing-kafka/cmd/channel/distributed/dispatcher:latest"
    dispatcher_replicas: int = 1
    dispatcher_cpu_request: str = "100m"
    dispatcher_cpu_limit: str = "500m"
    dispatcher_memory_request: str = "50Mi"
    dispatcher_memory_limit: str = "128Mi"
    service_account: str = "eventing-kafka-channel-controller"
    default_num_partitions: int = 4
    default_replication_factor: int = 1
    default_retention_millis: int = 604800000
    metrics_port: int = 8080
    retry_delay_seconds: float = 10.0

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            system_namespace=os.getenv("SYSTEM_NAMESPACE", defaults.system_namespace),
            config_map_name=os.getenv("CONFIG_MAP_NAME", defaults.config_map_name),
            dispatcher_image=os.getenv("DISPATCHER_IMAGE", defaults.dispatcher_image),
            dispatcher_replicas=int(os.getenv("DISPATCHER_REPLICAS", str(defaults.dispatcher_replicas))),
            dispatcher_cpu_request=os.getenv("DISPATCHER_CPU_REQUEST", defaults.dispatcher_cpu_request),
            dispatcher_cpu_limit=os.getenv("DISPATCHER_CPU_LIMIT", defaults.dispatcher_cpu_limit),
            dispatcher_memory_request=os.getenv("DISPATCHER_MEMORY_REQUEST", defaults.dispatcher_memory_request),
            dispatcher_memory_limit=os.getenv("DISPATCHER_MEMORY_LIMIT", defaults.dispatcher_memory_limit),
            service_account=os.getenv("SERVICE_ACCOUNT", defaults.service_account),
            default_num_partitions=int(os.getenv("DEFAULT_NUM_PARTITIONS", str(defaults.default_num_partitions))),
            default_replication_factor=int(
                os.getenv("DEFAULT_REPLICATION_FACTOR", str(defaults.default_replication_factor))
            ),
            default_retention_millis=int(
                os.getenv("DEFAULT_RETENTION_MILLIS", str(defaults.default_retention_millis))
            ),
            metrics_port=int(os.getenv("METRICS_PORT", str(defaults.metrics_port))),
            retry_delay_seconds=float(os.getenv("RETRY_DELAY_SECONDS", str(defaults.retry_delay_seconds))),
        )


@dataclass(frozen=True)
class AdminConfig:
    """Kafka admin client configuration parsed from the config-kafka ConfigMap."""

    brokers: str | None = None
    client_id: str | None = None
    tls_enabled: bool = False
    sasl_enabled: bool = False
    sasl_mechanism: str = "PLAIN"
    request_timeout_ms: int = DEFAULT_ADMIN_TIMEOUT_MS
    enable_client_logging: bool = False
    extra: dict[str, Any] = field(default_factory=dict)


def _load_yaml_section(data: dict[str, str], key: str) -> dict[str, Any]:
    raw = data.get(key)
    if not raw:
        return {}
    loaded = yaml.safe_load(raw)
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"ConfigMap key '{key}' must contain a YAML mapping")
    return loaded


def _duration_to_ms(value: Any) -> int:
    # Integer durations in the sarama section are nanoseconds
    if isinstance(value, bool) or value is None:
        return DEFAULT_ADMIN_TIMEOUT_MS
    if isinstance(value, int):
        return max(value // 1_000_000, 1)
    text = str(value).strip()
    for suffix, factor in (("ms", 1), ("s", 1000), ("m", 60000)):
        if text.endswith(suffix) and text[: -len(suffix)].isdigit():
            return int(text[: -len(suffix)]) * factor
    raise ValueError(f"Invalid admin timeout: {value!r}")


def parse_admin_config(config_map: dict[str, Any]) -> AdminConfig:
    """Parse the sarama and eventing-kafka sections of the config-kafka ConfigMap.

    Args:
        config_map: ConfigMap body (as delivered by kopf)

    Returns:
        Parsed AdminConfig

    Raises:
        ValueError: If a section is not valid YAML or has the wrong shape
    """
    data = config_map.get("data") or {}
    try:
        sarama = _load_yaml_section(data, CONFIG_MAP_SARAMA_KEY)
        eventing_kafka = _load_yaml_section(data, CONFIG_MAP_EVENTING_KAFKA_KEY)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in ConfigMap: {e}") from e

    net = sarama.get("Net") or {}
    tls = net.get("TLS") or {}
    sasl = net.get("SASL") or {}
    admin = sarama.get("Admin") or {}
    kafka = eventing_kafka.get("kafka") or {}

    return AdminConfig(
        brokers=kafka.get("brokers"),
        client_id=sarama.get("ClientID"),
        tls_enabled=bool(tls.get("Enable", False)),
        sasl_enabled=bool(sasl.get("Enable", False)),
        sasl_mechanism=sasl.get("Mechanism") or "PLAIN",
        request_timeout_ms=_duration_to_ms(admin.get("Timeout")) if "Timeout" in admin else DEFAULT_ADMIN_TIMEOUT_MS,
        enable_client_logging=bool(kafka.get("enableSaramaLogging", False)),
        extra={k: v for k, v in kafka.items() if k not in ("brokers", "enableSaramaLogging")},
    )


class ConfigStore:
    """Holds the most recent Kafka configuration snapshot.

    Updates replace the snapshot wholesale (latest wins); no history is kept
    and sessions that are already open are not reconnected.
    """

    def __init__(self, initial: AdminConfig | None = None):
        self._lock = threading.Lock()
        self._current = initial

    @property
    def loaded(self) -> bool:
        return self.current() is not None

    def current(self) -> AdminConfig | None:
        with self._lock:
            return self._current

    def replace(self, admin_config: AdminConfig) -> None:
        with self._lock:
            self._current = admin_config

    def update(self, config_map: dict[str, Any] | None) -> None:
        """Observe a changed config-kafka ConfigMap."""
        if config_map is None:
            logger.warning("Nil ConfigMap passed to config observer; ignoring")
            metrics.config_updates_total.labels(result="ignored").inc()
            return

        try:
            admin_config = parse_admin_config(config_map)
        except ValueError as e:
            logger.error(f"Could not load Kafka settings from updated ConfigMap, keeping previous: {e}")
            metrics.config_updates_total.labels(result="invalid").inc()
            return

        enable_kafka_client_logging(admin_config.enable_client_logging)
        self.replace(admin_config)
        metrics.config_updates_total.labels(result="applied").inc()
        logger.info("ConfigMap changed; updated Kafka admin configuration")
