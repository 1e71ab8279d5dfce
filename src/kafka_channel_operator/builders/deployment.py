"""Builder for KafkaChannel dispatcher Deployments."""

from __future__ import annotations

from typing import Any

from ..config import Settings
from ..constants import (
    CONTAINER_PORT_NUMBER,
    DISPATCHER_COMPONENT_NAME,
    KAFKA_SECRET_KEY_BROKERS,
    KAFKA_SECRET_KEY_PASSWORD,
    KAFKA_SECRET_KEY_USERNAME,
    KIND_DEPLOYMENT,
    LABEL_APP,
    LABEL_MANAGED_BY,
    LABEL_MESSAGING_ROLE,
    MESSAGING_ROLE,
    METRICS_PORT_NAME,
    METRICS_PORT_NUMBER,
    PORT_NAME,
)
from ..models import KafkaChannel
from ..utils.errors import ResourceBuildError
from . import ChildResource, Ownership, ResourceOption, apply_options


def dispatcher_labels(channel: KafkaChannel) -> dict[str, str]:
    """Labels selecting the dispatcher pods of one channel."""
    return {LABEL_APP: channel.dispatcher_name}


def _secret_env(name: str, secret_name: str, key: str) -> dict[str, Any]:
    return {
        "name": name,
        "valueFrom": {"secretKeyRef": {"name": secret_name, "key": key, "optional": True}},
    }


def build_dispatcher_deployment(
    channel: KafkaChannel,
    settings: Settings,
    secret_name: str,
    *options: ResourceOption,
) -> ChildResource:
    """Build the desired dispatcher Deployment for a channel.

    The base draft lives in the channel's namespace with an owner reference,
    like every other child. Callers move it to the system namespace with
    :func:`~kafka_channel_operator.builders.options.in_namespace`.

    Args:
        channel: The owning KafkaChannel
        settings: Operator settings (image, replicas, resources)
        secret_name: Name of the Kafka secret resolved for the channel's topic
        options: Construction options, applied in order

    Raises:
        ResourceBuildError: If the draft is invalid or any option fails
    """
    if not secret_name:
        raise ResourceBuildError("dispatcher deployment requires a Kafka secret name")

    name = channel.dispatcher_name
    selector = dispatcher_labels(channel)
    labels = {
        **selector,
        LABEL_MESSAGING_ROLE: MESSAGING_ROLE,
        LABEL_MANAGED_BY: DISPATCHER_COMPONENT_NAME,
    }
    container = {
        "name": "dispatcher",
        "image": settings.dispatcher_image,
        "imagePullPolicy": "IfNotPresent",
        "ports": [
            {"name": PORT_NAME, "containerPort": CONTAINER_PORT_NUMBER, "protocol": "TCP"},
            {"name": METRICS_PORT_NAME, "containerPort": METRICS_PORT_NUMBER, "protocol": "TCP"},
        ],
        "env": [
            {"name": "SYSTEM_NAMESPACE", "value": settings.system_namespace},
            {"name": "CHANNEL_KEY", "value": f"{channel.namespace}/{channel.name}"},
            {"name": "KAFKA_TOPIC", "value": channel.topic_name},
            {"name": "KAFKA_SECRET_NAME", "value": secret_name},
            _secret_env("KAFKA_BROKERS", secret_name, KAFKA_SECRET_KEY_BROKERS),
            _secret_env("KAFKA_USERNAME", secret_name, KAFKA_SECRET_KEY_USERNAME),
            _secret_env("KAFKA_PASSWORD", secret_name, KAFKA_SECRET_KEY_PASSWORD),
        ],
        "resources": {
            "requests": {
                "cpu": settings.dispatcher_cpu_request,
                "memory": settings.dispatcher_memory_request,
            },
            "limits": {
                "cpu": settings.dispatcher_cpu_limit,
                "memory": settings.dispatcher_memory_limit,
            },
        },
    }
    body: dict[str, Any] = {
        "apiVersion": "apps/v1",
        "kind": KIND_DEPLOYMENT,
        "metadata": {
            "name": name,
            "namespace": channel.namespace,
            "labels": labels,
            "ownerReferences": [channel.owner_reference()],
        },
        "spec": {
            "replicas": settings.dispatcher_replicas,
            "selector": {"matchLabels": selector},
            "template": {
                "metadata": {"labels": labels},
                "spec": {
                    "serviceAccountName": settings.service_account,
                    "containers": [container],
                },
            },
        },
    }
    draft = ChildResource(
        kind=KIND_DEPLOYMENT,
        namespace=channel.namespace,
        name=name,
        body=body,
        ownership=Ownership.GARBAGE_COLLECTED,
    )
    return apply_options(draft, options)

