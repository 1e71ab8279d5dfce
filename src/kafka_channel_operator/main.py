"""Main entry point for the KafkaChannel Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import Settings
from .constants import CONTROLLER_COMPONENT_NAME
from .handlers.kafkachannel import config_store, get_handler
from .services.cluster import load_kube_config
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)

_settings = Settings.from_env()


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()
    load_kube_config()

    # Use AnnotationsProgressStorage to avoid conflicts with status updates
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.WARNING
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    # Build the handler before any worker thread needs it
    get_handler()

    health.start_health_server(_settings.metrics_port, is_ready=lambda: config_store.loaded)
    logger.info(f"{CONTROLLER_COMPONENT_NAME} started; metrics on port {_settings.metrics_port}")


def is_kafka_config_map(name: str, namespace: str, **_: Any) -> bool:
    return name == _settings.config_map_name and namespace == _settings.system_namespace


@kopf.on.event("v1", "configmaps", when=is_kafka_config_map)
def handle_config_map_event(event: dict[str, Any], body: dict[str, Any], **_: Any) -> None:
    """Feed config-kafka ConfigMap changes into the configuration store."""
    if event.get("type") == "DELETED":
        logger.warning(f"ConfigMap {_settings.system_namespace}/{_settings.config_map_name} was deleted")
        config_store.update(None)
        return
    config_store.update(dict(body))


def main() -> None:
    """Main entry point for the operator."""
    logger.info("Starting KafkaChannel Operator...")
    kopf.run(clusterwide=True)


if __name__ == "__main__":
    main()
