"""Utilities for reading Kafka credentials from Kubernetes secrets."""

from __future__ import annotations

import base64
import logging
from typing import Any

from kubernetes import client

from ..constants import LABEL_KAFKA_SECRET

logger = logging.getLogger(__name__)


def decode_secret_data(data: dict[str, Any] | None) -> dict[str, str]:
    """Decode the base64 ``data`` section of a secret.

    Handles both string and bytes values (different versions of kubernetes client).
    """
    result = {}
    for key, value in (data or {}).items():
        if isinstance(value, bytes):
            result[key] = value.decode("utf-8")
            continue
        try:
            result[key] = base64.b64decode(value, validate=True).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            # Already decoded
            result[key] = value
    return result


def find_kafka_secret(api: client.CoreV1Api, namespace: str) -> Any | None:
    """Find the Kafka secret in the given namespace.

    The Kafka secret is identified by the ``eventing-kafka.knative.dev/kafka-secret=true``
    label. When several secrets carry the label the first one (by name) is used.

    Args:
        api: Kubernetes API client
        namespace: Namespace to search (the operator's system namespace)

    Returns:
        The V1Secret, or None if no labelled secret exists
    """
    secrets_list = api.list_namespaced_secret(
        namespace=namespace,
        label_selector=f"{LABEL_KAFKA_SECRET}=true",
    )
    items = sorted(secrets_list.items or [], key=lambda s: s.metadata.name)
    if not items:
        return None
    if len(items) > 1:
        logger.warning(
            f"Found {len(items)} Kafka secrets in namespace {namespace}, using {items[0].metadata.name}"
        )
    return items[0]


def read_kafka_secret(api: client.CoreV1Api, namespace: str) -> tuple[str | None, dict[str, str]]:
    """Return the Kafka secret's name and decoded data.

    Returns:
        ``(None, {})`` when no Kafka secret is present
    """
    secret = find_kafka_secret(api, namespace)
    if secret is None:
        return None, {}
    return secret.metadata.name, decode_secret_data(secret.data)
